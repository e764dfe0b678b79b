#!/usr/bin/env python3
"""
tagmap/checkpoint.py - Resume support for append-only LLM stages

The "already done" index is built once from the stage's own output ledger and
only ever grows. Every recorded result is appended and flushed immediately,
so an interrupted run resumes at the first key without an output line.
"""

import logging
from pathlib import Path
from typing import Any, Dict, Set

from tagmap.ledger import append_record, iter_ledger

logger = logging.getLogger(__name__)


class LedgerCheckpoint:
    """
    Checkpoint store backed by a JSONL ledger

    Args:
        path: Output ledger of the stage
        key_field: Record field holding the unit key (e.g. 'normalized', 'style')
    """

    def __init__(self, path: Path, key_field: str):
        self.path = path
        self.key_field = key_field
        self._done: Set[str] = set()
        self._load()

    def _load(self) -> None:
        for record in iter_ledger(self.path, required_key=self.key_field):
            self._done.add(record[self.key_field])
        if self._done:
            logger.info(f"Resuming from {self.path.name}: {len(self._done)} keys already processed")

    def has_processed(self, key: str) -> bool:
        return key in self._done

    def record_result(self, key: str, value: Dict[str, Any]) -> bool:
        """
        Append the result for key unless the key is already present

        Returns True when a line was written. A duplicate key is ignored so the
        ledger never holds two entries for one key.
        """
        if key in self._done:
            logger.debug(f"Checkpoint already holds '{key}', not re-emitting")
            return False
        record = dict(value)
        record[self.key_field] = key
        append_record(self.path, record)
        self._done.add(key)
        return True

    def __len__(self) -> int:
        return len(self._done)

    def __contains__(self, key: str) -> bool:
        return key in self._done
