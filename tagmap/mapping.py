#!/usr/bin/env python3
"""
tagmap/mapping.py - Stage 9: compile the query-time expansion file

Output format (consumed by the app when expanding a tag search):
  {
    "updated_at": "2026-01-01T00:00:00+00:00",
    "mappings": {"lo-fi hip-hop": ["hip hop"], ...}
  }

A tag expands to its canonical styles followed by their parent genres,
deduplicated. Tags with nothing to expand to are left out.
"""

import logging
from collections import Counter, OrderedDict
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from tagmap.ledger import require_ledger, write_json
from tagmap.models import TagStyleMapEntry
from tagmap.normalization import dedupe_preserve_order

logger = logging.getLogger(__name__)


def build_expanded_mappings(entries: Iterable[TagStyleMapEntry]) -> Dict[str, List[str]]:
    """Repeated tags have their term lists merged in order"""
    mappings: 'OrderedDict[str, List[str]]' = OrderedDict()
    for entry in entries:
        terms = [t for t in entry.canonical_styles + entry.parent_genres if t]
        if not terms:
            continue
        existing = mappings.get(entry.normalized, [])
        mappings[entry.normalized] = dedupe_preserve_order(existing + terms)
    return dict(mappings)


def utc_timestamp(now: Optional[datetime] = None) -> str:
    return (now or datetime.now(timezone.utc)).isoformat()


def run_mapping_stage(input_path: Path, output_path: Path, now: Optional[datetime] = None) -> Counter:
    logger.info(f"Reading tag-style map from: {input_path}")
    entries = [TagStyleMapEntry.from_dict(r) for r in require_ledger(input_path, required_key='normalized')]

    mappings = build_expanded_mappings(entries)
    write_json(output_path, {
        'updated_at': utc_timestamp(now),
        'mappings': mappings,
    })
    logger.info(f"Wrote {len(mappings)} tag expansions -> {output_path}")

    return Counter({
        'entries': len(entries),
        'mappings': len(mappings),
        'dropped_empty': len({e.normalized for e in entries} - set(mappings)),
    })
