#!/usr/bin/env python3
"""Prompt loading and assembly for the classification stages."""

import json
import logging
from pathlib import Path
from typing import Any

from tagmap.errors import LedgerError

logger = logging.getLogger(__name__)


def load_base_prompt(path: Path) -> str:
    if not path.exists():
        raise LedgerError(f"Prompt file not found: {path}")
    with open(path, 'r', encoding='utf-8') as f:
        return f.read()


def build_prompt(base_prompt: str, payload: Any) -> str:
    """Append the JSON input block and an empty output heading to the base prompt"""
    input_json = json.dumps(payload, indent=2, ensure_ascii=False)
    return f"{base_prompt.strip()}\n\n### INPUT\n{input_json}\n\n### OUTPUT\n"
