#!/usr/bin/env python3
"""
Shared command-line plumbing for the stage scripts

Every stage script follows the same shape:

    parser = stage_parser(__doc__, llm=True)
    args = parser.parse_args()
    setup_logging(args.verbose)
    config = PipelineConfig.from_file(args.config)
    ...
    print_summary('STAGE TITLE', [...])
    return 0
"""

import argparse
import logging
from pathlib import Path
from typing import Iterable, Optional, Tuple, Union

from tagmap.config import PipelineConfig
from tagmap.ollama import OllamaClient

logger = logging.getLogger(__name__)

PROJECT_ROOT = Path(__file__).resolve().parent.parent
DEFAULT_CONFIG_PATH = PROJECT_ROOT / 'config.yaml'

LOG_FORMAT = '%(asctime)s - %(levelname)s - %(message)s'


def setup_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format=LOG_FORMAT,
    )


def stage_parser(description: str, llm: bool = False) -> argparse.ArgumentParser:
    """
    Argument parser with the options every stage accepts

    Args:
        description: Usually the script's module docstring
        llm: Add --limit and --skip-model-check for the service-backed stages
    """
    parser = argparse.ArgumentParser(
        description=description,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        '--config',
        type=Path,
        default=DEFAULT_CONFIG_PATH,
        help=f'Path to config.yaml (default: {DEFAULT_CONFIG_PATH.name} in the project root)',
    )
    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Enable debug logging',
    )
    if llm:
        parser.add_argument(
            '--limit',
            type=int,
            default=None,
            help='Only consider the first N input entries (highest usage first)',
        )
        parser.add_argument(
            '--skip-model-check',
            action='store_true',
            help='Do not verify that the configured model is installed before starting',
        )
    return parser


def connect_client(config: PipelineConfig, skip_model_check: bool = False) -> Optional[OllamaClient]:
    """Build the Ollama client; None (with an error logged) when the model is not available"""
    client = OllamaClient.from_config(config.ollama)
    if skip_model_check:
        return client

    logger.info(f"Checking Ollama model '{client.model}' at {client.host}")
    if not client.is_model_available():
        logger.error(
            f"Ollama model {client.model} is not available. "
            f"Please ensure Ollama is running and the model is installed."
        )
        return None
    return client


def print_summary(title: str, rows: Iterable[Tuple[str, Union[int, str]]]) -> None:
    """Print a banner-framed summary table to stdout"""
    print("\n" + "=" * 60)
    print(title)
    print("=" * 60)
    for label, value in rows:
        if isinstance(value, int):
            print(f"  {label + ':':<32}{value:6d}")
        else:
            print(f"  {label + ':':<32}{value}")
    print("=" * 60)
