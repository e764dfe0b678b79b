#!/usr/bin/env python3
"""
tagmap/hierarchy.py - Stage 7: genre / subgenre classification (LLM)

Raw styles are first folded into their canonical styles (usage summed over
every raw style that resolves to the canonical name). Each canonical style is
then classified once:

  {"is_subgenre": true, "parent_genre": "hip hop", "reason": "..."}

Results are appended to style-hierarchy.jsonl; the stage resumes from it.
"""

import logging
from collections import Counter, OrderedDict
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from tagmap.canonical import CanonicalResolver, load_raw_styles
from tagmap.checkpoint import LedgerCheckpoint
from tagmap.constants import MAX_CANONICAL_EXAMPLES
from tagmap.errors import InvalidResponseError, LedgerError
from tagmap.ledger import iter_ledger
from tagmap.llm_stage import run_resumable
from tagmap.models import CanonicalStyleStats, RawStyleEntry, StyleHierarchyEntry
from tagmap.policy import SKIP_ALL, ErrorPolicy
from tagmap.prompts import build_prompt
from tagmap.responses import decode_hierarchy_response

logger = logging.getLogger(__name__)


def build_canonical_style_stats(
    raw_styles: Iterable[RawStyleEntry],
    resolver: CanonicalResolver,
    max_examples: int = MAX_CANONICAL_EXAMPLES,
) -> List[CanonicalStyleStats]:
    """
    Sum raw style usage per canonical style

    Raw styles that were rejected, or have no canonical decision yet, are left
    out. Example tags are merged in order without duplicates. Sorted by
    descending total_count (stable).
    """
    stats: 'OrderedDict[str, CanonicalStyleStats]' = OrderedDict()

    for raw in raw_styles:
        if raw.style not in resolver.entries:
            continue
        canonical = resolver.resolve(raw.style)
        if canonical is None:
            continue

        entry = stats.get(canonical)
        if entry is None:
            entry = stats[canonical] = CanonicalStyleStats(canonical_style=canonical)
        entry.total_count += raw.total_count
        entry.tag_count += raw.tag_count
        for tag in raw.example_tags:
            if len(entry.example_tags) >= max_examples:
                break
            if tag not in entry.example_tags:
                entry.example_tags.append(tag)

    result = list(stats.values())
    result.sort(key=lambda s: s.total_count, reverse=True)
    return result


def load_hierarchy(path: Path) -> Dict[str, StyleHierarchyEntry]:
    """Hierarchy ledger keyed by canonical style; first line per style wins"""
    entries: Dict[str, StyleHierarchyEntry] = {}
    for record in iter_ledger(path, required_key='style'):
        entry = StyleHierarchyEntry.from_dict(record)
        if entry.style not in entries:
            entries[entry.style] = entry
    return entries


class HierarchyClassifier:
    def __init__(self, client, base_prompt: str):
        self.client = client
        self.base_prompt = base_prompt

    def classify(self, stats: CanonicalStyleStats) -> Dict:
        prompt = build_prompt(self.base_prompt, stats.to_dict())
        raw = self.client.generate(prompt)

        decoded = decode_hierarchy_response(raw, stats.canonical_style)
        if not decoded.ok:
            raise InvalidResponseError(stats.canonical_style, decoded.error, raw)

        return StyleHierarchyEntry(
            style=stats.canonical_style,
            total_count=stats.total_count,
            is_subgenre=decoded.value.is_subgenre,
            parent_genre=decoded.value.parent_genre,
            reason=decoded.value.reason,
        ).to_dict()


def run_hierarchy_stage(
    client,
    base_prompt: str,
    raw_styles_path: Path,
    canonical_map_path: Path,
    output_path: Path,
    policy: ErrorPolicy = SKIP_ALL,
    limit: Optional[int] = None,
    max_examples: int = MAX_CANONICAL_EXAMPLES,
) -> Counter:
    if not canonical_map_path.exists():
        raise LedgerError(f"Input file does not exist: {canonical_map_path}")

    logger.info(f"Reading raw styles from: {raw_styles_path}")
    raw_styles = load_raw_styles(raw_styles_path)
    resolver = CanonicalResolver.from_ledger(canonical_map_path)
    logger.info(f"Loaded {len(resolver.entries)} canonical decisions from {canonical_map_path}")

    canonical_stats = build_canonical_style_stats(raw_styles, resolver, max_examples)
    logger.info(f"Canonical styles to classify: {len(canonical_stats)}")

    checkpoint = LedgerCheckpoint(output_path, key_field='style')
    classifier = HierarchyClassifier(client, base_prompt)
    stats = run_resumable(
        canonical_stats,
        key_of=lambda s: s.canonical_style,
        classify=classifier.classify,
        checkpoint=checkpoint,
        policy=policy,
        limit=limit,
        label='canonical style',
    )
    stats['total'] = len(canonical_stats)
    stats['unmapped_raw_styles'] = sum(1 for r in raw_styles if r.style not in resolver.entries)
    return stats
