#!/usr/bin/env python3
"""
tagmap/ledger.py - Line-delimited JSON ledgers

Every stage reads its upstream ledger and writes its own:
  - append-only ledgers (resumable LLM stages) grow one line per completed key
  - rewritten ledgers (pure reduction stages) are truncated and regenerated

Blank lines are ignored on read. Malformed lines are skipped with a warning,
never fatal to a read.
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Optional

from tagmap.errors import LedgerError

logger = logging.getLogger(__name__)


def ensure_parent_dir(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)


def iter_ledger(path: Path, required_key: Optional[str] = None) -> Iterator[Dict[str, Any]]:
    """
    Yield one dict per valid line of a ledger

    Args:
        path: Ledger path. A missing file yields nothing.
        required_key: If given, lines whose object lacks a string value
            for this key are skipped with a warning.
    """
    if not path.exists():
        return

    with open(path, 'rb') as f:
        for line_no, raw_line in enumerate(f, start=1):
            try:
                line = raw_line.decode('utf-8').strip()
            except UnicodeDecodeError as e:
                logger.warning(f"Skipping non-UTF-8 JSONL line {path.name}:{line_no}: {e}")
                continue
            if not line:
                continue
            try:
                record = json.loads(line)
            except json.JSONDecodeError as e:
                logger.warning(f"Skipping invalid JSONL line {path.name}:{line_no}: {e}")
                continue
            if not isinstance(record, dict):
                logger.warning(f"Skipping non-object JSONL line {path.name}:{line_no}")
                continue
            if required_key and not isinstance(record.get(required_key), str):
                logger.warning(f"Skipping line without '{required_key}' {path.name}:{line_no}")
                continue
            yield record


def read_ledger(path: Path, required_key: Optional[str] = None) -> List[Dict[str, Any]]:
    return list(iter_ledger(path, required_key))


def require_ledger(path: Path, required_key: Optional[str] = None) -> List[Dict[str, Any]]:
    """Like read_ledger, but a missing upstream ledger is an error"""
    if not path.exists():
        raise LedgerError(f"Input file does not exist: {path}")
    return read_ledger(path, required_key)


def _dump_line(record: Dict[str, Any]) -> str:
    return json.dumps(record, ensure_ascii=False) + '\n'


def append_record(path: Path, record: Dict[str, Any]) -> None:
    """Append one record and flush it to disk before returning"""
    ensure_parent_dir(path)
    with open(path, 'a', encoding='utf-8') as f:
        f.write(_dump_line(record))
        f.flush()
        os.fsync(f.fileno())


def rewrite_ledger(path: Path, records: Iterable[Dict[str, Any]]) -> int:
    """Truncate the ledger and write every record. Returns the line count."""
    ensure_parent_dir(path)
    count = 0
    with open(path, 'w', encoding='utf-8') as f:
        for record in records:
            f.write(_dump_line(record))
            count += 1
    return count


class LedgerWriter:
    """Truncate-on-open writer for stages that stream records into a rewritten ledger"""

    def __init__(self, path: Path):
        self.path = path
        self.count = 0
        self._file = None

    def __enter__(self) -> 'LedgerWriter':
        ensure_parent_dir(self.path)
        self._file = open(self.path, 'w', encoding='utf-8')
        return self

    def write(self, record: Dict[str, Any]) -> None:
        self._file.write(_dump_line(record))
        self.count += 1

    def __exit__(self, exc_type, exc, tb) -> None:
        self._file.close()
        self._file = None


def read_json(path: Path) -> Any:
    with open(path, 'r', encoding='utf-8') as f:
        return json.load(f)


def write_json(path: Path, data: Any) -> None:
    ensure_parent_dir(path)
    with open(path, 'w', encoding='utf-8') as f:
        json.dump(data, f, indent=2, ensure_ascii=False)
        f.write('\n')
