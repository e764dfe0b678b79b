#!/usr/bin/env python3
"""
run_pipeline.py - Run the tag taxonomy pipeline stages in order

Each stage is a separate script run as a subprocess from the project root.
The first stage that exits non-zero stops the run, and its exit code becomes
the exit code of this script.

Usage:
    python run_pipeline.py                  # all stages, 1 -> 9
    python run_pipeline.py --from 4         # re-run from postprocessing onward
    python run_pipeline.py --from 6 --to 7  # only the style LLM stages
    python run_pipeline.py --list
"""

import sys
import logging
import argparse
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional

from tagmap.cli import DEFAULT_CONFIG_PATH, PROJECT_ROOT, setup_logging

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Stage:
    id: int
    name: str
    script: str


STAGES: List[Stage] = [
    Stage(1, 'Collect raw tags', 'scripts/stage_collect_tags.py'),
    Stage(2, 'Aggregate normalized tags', 'scripts/stage_aggregate_tags.py'),
    Stage(3, 'Compound interpretation (LLM)', 'scripts/stage_compound_interpret.py'),
    Stage(4, 'Postprocess tag compounds', 'scripts/stage_compound_postprocess.py'),
    Stage(5, 'Style harvest', 'scripts/stage_style_harvest.py'),
    Stage(6, 'Style canonicalization (LLM)', 'scripts/stage_style_canonicalize.py'),
    Stage(7, 'Style hierarchy (LLM)', 'scripts/stage_style_hierarchy.py'),
    Stage(8, 'Taxonomy + tag-to-style map', 'scripts/stage_style_finalize.py'),
    Stage(9, 'Compile tag expansion mapping', 'scripts/stage_compile_mapping.py'),
]


def select_stages(first: Optional[int] = None, last: Optional[int] = None,
                  stages: List[Stage] = STAGES) -> List[Stage]:
    """
    Stages with first <= id <= last

    Raises:
        ValueError: range outside 1..len(stages) or first > last
    """
    first = 1 if first is None else first
    last = len(stages) if last is None else last
    if first < 1 or last > len(stages) or first > last:
        raise ValueError(f"Invalid --from / --to range. Valid range: 1 to {len(stages)}")
    return [s for s in stages if first <= s.id <= last]


def run_stage(stage: Stage, config_path: Path, verbose: bool = False,
              runner: Callable = subprocess.run) -> int:
    """Run one stage script and return its exit code (1 when it was killed by a signal)"""
    command = [sys.executable, stage.script, '--config', str(config_path)]
    if verbose:
        command.append('--verbose')

    print("\n" + "=" * 60)
    print(f"Running stage {stage.id}: {stage.name}")
    print(f"   {' '.join(command[1:])}")
    print("=" * 60 + "\n")

    result = runner(command, cwd=str(PROJECT_ROOT))
    if result.returncode < 0:
        logger.error(f"Stage {stage.id} was terminated by signal {-result.returncode}")
        return 1
    return result.returncode


def run_pipeline(stages: List[Stage], config_path: Path, verbose: bool = False,
                 runner: Callable = subprocess.run) -> int:
    for stage in stages:
        code = run_stage(stage, config_path, verbose, runner)
        if code != 0:
            logger.error(f"Stage failed: {stage.id} - {stage.name} (exit code {code})")
            return code
        logger.info(f"Stage completed: {stage.id} - {stage.name}")
    return 0


def print_stage_list(stages: List[Stage] = STAGES) -> None:
    print("\n" + "=" * 60)
    print("TAG MAP PIPELINE STAGES")
    print("=" * 60)
    for stage in stages:
        print(f"  {stage.id}. {stage.name:<36} {stage.script}")
    print("=" * 60)


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description='Run the tag taxonomy pipeline',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument('--from', dest='first', type=int, default=None,
                        help='First stage to run (default: 1)')
    parser.add_argument('--to', dest='last', type=int, default=None,
                        help=f'Last stage to run (default: {len(STAGES)})')
    parser.add_argument('--config', type=Path, default=DEFAULT_CONFIG_PATH,
                        help='Path to config.yaml, passed on to every stage')
    parser.add_argument('--list', action='store_true',
                        help='Print the stages and exit')
    parser.add_argument('--verbose', '-v', action='store_true',
                        help='Enable debug logging in every stage')
    args = parser.parse_args(argv)

    setup_logging(args.verbose)

    if args.list:
        print_stage_list()
        return 0

    try:
        selected = select_stages(args.first, args.last)
    except ValueError as e:
        logger.error(str(e))
        return 1

    config_path = args.config.resolve()
    logger.info(f"Running stages {selected[0].id} -> {selected[-1].id} ({len(selected)} total)")
    code = run_pipeline(selected, config_path, args.verbose)
    if code == 0:
        print("\nAll selected stages completed.")
    return code


if __name__ == '__main__':
    sys.exit(main())
