#!/usr/bin/env python3
"""
tagmap/postprocess.py - Stage 4: merge manual overrides and bucket every tag

Inputs:
  tag-compound-stage.jsonl           interpreter output (base layer)
  tag-compound-stage-override.jsonl  hand-curated corrections, same schema (override layer)

Outputs (both rewritten):
  tag-compound-postprocessed.jsonl      one PostprocessedTagEntry per tag
  tag-auto-blacklist-candidates.jsonl   PURE_INVALID tags, a human review queue.
                                        Never applied to the live blacklist automatically.

Bucket rule (pure function of which segment kinds are present):
  styles and descriptors -> STYLE_WITH_DESCRIPTORS
  styles only            -> STYLE_ONLY
  descriptors only       -> DESCRIPTORS_ONLY
  neither                -> PURE_INVALID
"""

import logging
from collections import Counter
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

from tagmap.constants import (
    BUCKET_DESCRIPTORS_ONLY,
    BUCKET_PURE_INVALID,
    BUCKET_STYLE_ONLY,
    BUCKET_STYLE_WITH_DESCRIPTORS,
    OVERRIDE_REASON,
    PURE_INVALID_REASON,
    SEGMENT_DESCRIPTOR,
    SEGMENT_INVALID,
    SEGMENT_STYLE,
)
from tagmap.ledger import LedgerWriter, iter_ledger
from tagmap.models import BlacklistCandidate, CompoundTagEntry, PostprocessedTagEntry, TagSegment
from tagmap.normalization import dedupe_preserve_order
from tagmap.overrides import LayeredEntries

logger = logging.getLogger(__name__)


def load_compound_entries(path: Path) -> Dict[str, CompoundTagEntry]:
    """Load a compound ledger keyed by normalized tag; later lines win within one file"""
    entries: Dict[str, CompoundTagEntry] = {}
    for record in iter_ledger(path):
        entry = CompoundTagEntry.from_dict(record)
        if entry is None:
            logger.warning(f"Skipping compound line without normalized/segments in {path.name}: {record}")
            continue
        entries[entry.normalized] = entry
    return entries


def mark_overridden(entry: CompoundTagEntry) -> CompoundTagEntry:
    """Copy of an override entry with every segment reason noting the manual correction"""
    return CompoundTagEntry(
        normalized=entry.normalized,
        total_count=entry.total_count,
        segments=[TagSegment(text=s.text, kind=s.kind, reason=OVERRIDE_REASON) for s in entry.segments],
    )


def build_layers(base_path: Path, override_path: Optional[Path]) -> LayeredEntries[CompoundTagEntry]:
    base = load_compound_entries(base_path)
    override: Dict[str, CompoundTagEntry] = {}
    if override_path is not None:
        for key, entry in load_compound_entries(override_path).items():
            # Hand-written lines often omit total_count; usage comes from the base ledger
            if entry.total_count <= 0 and key in base:
                entry.total_count = base[key].total_count
            override[key] = mark_overridden(entry)
    return LayeredEntries(base, override)


def partition_segments(segments: Iterable[TagSegment]) -> Tuple[List[str], List[str], List[str]]:
    """Split segments into (styles, descriptors, invalid) texts, each deduplicated in order"""
    by_kind: Dict[str, List[str]] = {SEGMENT_STYLE: [], SEGMENT_DESCRIPTOR: [], SEGMENT_INVALID: []}
    for segment in segments:
        text = segment.text.strip()
        if text and segment.kind in by_kind:
            by_kind[segment.kind].append(text)
    return (
        dedupe_preserve_order(by_kind[SEGMENT_STYLE]),
        dedupe_preserve_order(by_kind[SEGMENT_DESCRIPTOR]),
        dedupe_preserve_order(by_kind[SEGMENT_INVALID]),
    )


def decide_bucket(styles: List[str], descriptors: List[str]) -> str:
    if styles and descriptors:
        return BUCKET_STYLE_WITH_DESCRIPTORS
    if styles:
        return BUCKET_STYLE_ONLY
    if descriptors:
        return BUCKET_DESCRIPTORS_ONLY
    return BUCKET_PURE_INVALID


def postprocess_entry(entry: CompoundTagEntry) -> PostprocessedTagEntry:
    styles, descriptors, invalid = partition_segments(entry.segments)
    return PostprocessedTagEntry(
        normalized=entry.normalized,
        total_count=entry.total_count,
        styles=styles,
        descriptors=descriptors,
        invalid_segments=invalid,
        bucket=decide_bucket(styles, descriptors),
    )


def run_postprocess_stage(
    base_path: Path,
    override_path: Optional[Path],
    output_path: Path,
    candidates_path: Path,
) -> Counter:
    logger.info(f"Reading base compound tags from: {base_path}")
    if override_path is not None:
        logger.info(f"Reading overrides from: {override_path}")
    layers = build_layers(base_path, override_path)

    stats: Counter = Counter({
        'base_entries': len(layers.base),
        'overrides_applied': layers.overrides_applied,
        'overrides_added': layers.overrides_added,
        'merged_entries': len(layers),
    })
    logger.info(
        f"Base entries: {stats['base_entries']}, overrides applied: {stats['overrides_applied']}, "
        f"overrides added: {stats['overrides_added']}, merged: {stats['merged_entries']}"
    )

    with LedgerWriter(output_path) as out, LedgerWriter(candidates_path) as candidates_out:
        for _, entry in layers.items():
            post = postprocess_entry(entry)
            out.write(post.to_dict())
            stats[post.bucket] += 1

            if post.bucket == BUCKET_PURE_INVALID:
                candidates_out.write(BlacklistCandidate(
                    normalized=entry.normalized,
                    total_count=entry.total_count,
                    segments=entry.segments,
                    reason=PURE_INVALID_REASON,
                ).to_dict())

    logger.info(f"Blacklist candidates: {stats[BUCKET_PURE_INVALID]} tags -> {candidates_path}")
    return stats
