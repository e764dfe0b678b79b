#!/usr/bin/env python3
"""
tagmap/config.py - YAML configuration for all pipeline stages

config.yaml is merged over DEFAULT_CONFIG section by section, so a config file
only needs the keys it changes. Relative paths resolve against the directory
that holds the config file (the project root for the shipped config.yaml).
"""

import copy
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml

from tagmap import constants
from tagmap.policy import ErrorPolicy

logger = logging.getLogger(__name__)

DEFAULT_CONFIG: Dict[str, Any] = {
    'paths': {
        'songs_dir': 'server/assets/songs',
        'data_dir': 'data/tag-map-pipeline',
        'prompts_dir': 'prompts',
        'blacklist': 'server/assets/tag-blacklist.json',
        'override': 'data/tag-map-pipeline/' + constants.COMPOUND_OVERRIDE_LEDGER,
        'final_mapping': 'server/assets/tag-expanded-mappings.json',
    },
    'ollama': {
        'host': 'http://localhost:11434',
        'model': 'gemma3:4b',
        'timeout': 120,
        'temperature': 0,
        'request_interval': 0.0,
    },
    'tag_sources': [list(s) for s in constants.TAG_SOURCES],
    'policies': {
        'compound': {'on_invalid_response': 'abort', 'on_service_error': 'abort'},
        'canonical': {'on_invalid_response': 'skip', 'on_service_error': 'skip'},
        'hierarchy': {'on_invalid_response': 'skip', 'on_service_error': 'skip'},
    },
    'limits': {
        'raw_examples': constants.MAX_RAW_EXAMPLES,
        'style_examples': constants.MAX_STYLE_EXAMPLES,
        'canonical_examples': constants.MAX_CANONICAL_EXAMPLES,
        'blacklist_batch_size': constants.BLACKLIST_BATCH_SIZE,
    },
}


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in (override or {}).items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def load_config(config_path: Path) -> dict:
    """Load configuration from YAML file"""
    with open(config_path, 'r', encoding='utf-8') as f:
        return yaml.safe_load(f) or {}


class PipelineConfig:
    """Resolved configuration shared by every stage CLI"""

    def __init__(self, data: Optional[Dict[str, Any]] = None, base_dir: Optional[Path] = None):
        self.data = _deep_merge(DEFAULT_CONFIG, data or {})
        self.base_dir = Path(base_dir) if base_dir else Path.cwd()

    @classmethod
    def from_file(cls, config_path: Path) -> 'PipelineConfig':
        config_path = Path(config_path)
        if not config_path.exists():
            logger.info(f"Config file not found: {config_path} - using built-in defaults")
            return cls({}, base_dir=config_path.resolve().parent)
        return cls(load_config(config_path), base_dir=config_path.resolve().parent)

    # ------------------------------------------------------------------
    # Paths
    # ------------------------------------------------------------------

    def path(self, name: str) -> Path:
        p = Path(self.data['paths'][name])
        return p if p.is_absolute() else self.base_dir / p

    def ledger(self, filename: str) -> Path:
        return self.path('data_dir') / filename

    def prompt(self, filename: str) -> Path:
        return self.path('prompts_dir') / filename

    # ------------------------------------------------------------------
    # Sections
    # ------------------------------------------------------------------

    @property
    def ollama(self) -> Dict[str, Any]:
        return self.data['ollama']

    @property
    def tag_sources(self) -> List[Tuple[str, str, str]]:
        sources = []
        for item in self.data.get('tag_sources') or []:
            if isinstance(item, (list, tuple)) and len(item) == 3:
                sources.append((str(item[0]), str(item[1]), str(item[2])))
            else:
                logger.warning(f"Ignoring malformed tag_sources entry: {item!r}")
        return sources

    def limit(self, name: str) -> int:
        return int(self.data['limits'][name])

    def policy(self, stage: str) -> ErrorPolicy:
        return ErrorPolicy.from_dict(self.data['policies'].get(stage, {}))
