#!/usr/bin/env python3
"""
tagmap/aggregator.py - Stage 2: group raw tag occurrences by normalized tag

Pure reduction over tag-source-raw.jsonl. The output ledger is rewritten on
every run and is always reproducible from the raw ledger.
"""

import logging
from collections import Counter, OrderedDict
from pathlib import Path
from typing import Any, Dict, Iterable, List

from tagmap.constants import MAX_RAW_EXAMPLES
from tagmap.ledger import require_ledger, rewrite_ledger
from tagmap.models import NormalizedTagEntry

logger = logging.getLogger(__name__)


class _TagAggregate:
    __slots__ = ('normalized', 'total_count', 'entity_ids', 'source_counts', 'examples')

    def __init__(self, normalized: str):
        self.normalized = normalized
        self.total_count = 0
        self.entity_ids = set()
        self.source_counts: Counter = Counter()
        self.examples: List[str] = []


def aggregate_tags(records: Iterable[Dict[str, Any]], max_examples: int = MAX_RAW_EXAMPLES) -> List[NormalizedTagEntry]:
    """
    Reduce raw tag records to one NormalizedTagEntry per normalized tag

    Entries come out in first-seen order of their normalized key; example raw
    tags are distinct and in first-seen order.
    """
    groups: 'OrderedDict[str, _TagAggregate]' = OrderedDict()

    for record in records:
        key = record.get('normalized')
        if not isinstance(key, str) or not key:
            logger.warning(f"Missing normalized field, skipping: {record}")
            continue

        agg = groups.get(key)
        if agg is None:
            agg = groups[key] = _TagAggregate(key)

        agg.total_count += 1
        agg.entity_ids.add(str(record.get('entity_id', '')))
        agg.source_counts[str(record.get('source', ''))] += 1

        raw_tag = record.get('raw_tag')
        if isinstance(raw_tag, str) and raw_tag not in agg.examples and len(agg.examples) < max_examples:
            agg.examples.append(raw_tag)

    return [
        NormalizedTagEntry(
            normalized=agg.normalized,
            total_count=agg.total_count,
            entity_count=len(agg.entity_ids),
            source_counts=dict(agg.source_counts),
            example_raw_tags=list(agg.examples),
        )
        for agg in groups.values()
    ]


def run_aggregate_stage(input_path: Path, output_path: Path, max_examples: int = MAX_RAW_EXAMPLES) -> Counter:
    logger.info(f"Reading raw tags from: {input_path}")
    records = require_ledger(input_path)

    entries = aggregate_tags(records, max_examples)
    written = rewrite_ledger(output_path, (e.to_dict() for e in entries))
    logger.info(f"Wrote {written} normalized entries -> {output_path}")

    return Counter({'raw_records': len(records), 'unique_tags': written})
