#!/usr/bin/env python3
"""
tagmap/harvest.py - Stage 5: collect the distinct style strings

Reduces tag-compound-postprocessed.jsonl to one RawStyleEntry per normalized
style. A style's total_count is the sum of the usage counts of every tag it
appears in; a style listed twice inside one tag counts once for that tag.
"""

import logging
from collections import Counter, OrderedDict
from pathlib import Path
from typing import Iterable, List

from tagmap.constants import MAX_STYLE_EXAMPLES
from tagmap.ledger import require_ledger, rewrite_ledger
from tagmap.models import PostprocessedTagEntry, RawStyleEntry
from tagmap.normalization import dedupe_preserve_order, normalize_tag_list

logger = logging.getLogger(__name__)


def harvest_styles(entries: Iterable[PostprocessedTagEntry], max_examples: int = MAX_STYLE_EXAMPLES) -> List[RawStyleEntry]:
    styles: 'OrderedDict[str, RawStyleEntry]' = OrderedDict()

    for entry in entries:
        for style in dedupe_preserve_order(normalize_tag_list(entry.styles)):
            raw = styles.get(style)
            if raw is None:
                raw = styles[style] = RawStyleEntry(style=style)
            raw.total_count += entry.total_count
            raw.tag_count += 1
            if len(raw.example_tags) < max_examples and entry.normalized not in raw.example_tags:
                raw.example_tags.append(entry.normalized)

    result = list(styles.values())
    result.sort(key=lambda s: s.total_count, reverse=True)
    return result


def run_harvest_stage(input_path: Path, output_path: Path, max_examples: int = MAX_STYLE_EXAMPLES) -> Counter:
    logger.info(f"Reading postprocessed tags from: {input_path}")
    entries = [PostprocessedTagEntry.from_dict(r) for r in require_ledger(input_path, required_key='normalized')]

    styles = harvest_styles(entries, max_examples)
    written = rewrite_ledger(output_path, (s.to_dict() for s in styles))
    logger.info(f"Wrote {written} raw styles -> {output_path}")

    return Counter({
        'tags': len(entries),
        'tags_with_styles': sum(1 for e in entries if e.styles),
        'unique_styles': written,
    })
