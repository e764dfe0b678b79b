#!/usr/bin/env python3
"""
tagmap/finalize.py - Stage 8: taxonomy, genre summary and tag-to-style map

Pure reduction over the hierarchy, canonical map and postprocessed tags.
All three outputs are rewritten on every run:

  style-taxonomy.jsonl  one StyleTaxonomyEntry per classified canonical style
  genre-summary.json    genres with their subgenres, most used first
  tag-style-map.jsonl   each tag with its canonical styles, parent genres and descriptors
"""

import logging
from collections import Counter, OrderedDict
from pathlib import Path
from typing import Dict, Iterable, List

from tagmap.canonical import CanonicalResolver
from tagmap.constants import KIND_GENRE, KIND_SUBGENRE
from tagmap.hierarchy import load_hierarchy
from tagmap.ledger import require_ledger, rewrite_ledger, write_json
from tagmap.models import (
    GenreSummaryEntry,
    PostprocessedTagEntry,
    StyleHierarchyEntry,
    StyleTaxonomyEntry,
    SubgenreSummary,
    TagStyleMapEntry,
)
from tagmap.normalization import dedupe_preserve_order, normalize_tag, normalize_tag_list

logger = logging.getLogger(__name__)


def build_style_taxonomy(hierarchy: Iterable[StyleHierarchyEntry]) -> List[StyleTaxonomyEntry]:
    taxonomy = []
    for entry in hierarchy:
        if entry.has_parent:
            kind, parents = KIND_SUBGENRE, [normalize_tag(entry.parent_genre)]
        else:
            kind, parents = KIND_GENRE, []
        taxonomy.append(StyleTaxonomyEntry(
            style=entry.style,
            total_count=entry.total_count,
            kind=kind,
            parent_genres=parents,
            reason=entry.reason,
        ))
    taxonomy.sort(key=lambda t: t.total_count, reverse=True)
    return taxonomy


def build_genre_summary(taxonomy: Iterable[StyleTaxonomyEntry]) -> List[GenreSummaryEntry]:
    """
    Group subgenres under their parent genre

    A genre's own_count is its own usage; a parent named only by subgenres is
    created with own_count 0. total_count = own_count + every attached subgenre.
    """
    genres: 'OrderedDict[str, GenreSummaryEntry]' = OrderedDict()

    def genre(name: str) -> GenreSummaryEntry:
        if name not in genres:
            genres[name] = GenreSummaryEntry(genre=name)
        return genres[name]

    for entry in taxonomy:
        if entry.kind == KIND_SUBGENRE and entry.parent_genres:
            genre(entry.parent_genres[0]).subgenres.append(
                SubgenreSummary(name=entry.style, total_count=entry.total_count)
            )
        else:
            genre(entry.style).own_count += entry.total_count

    summary = list(genres.values())
    for entry in summary:
        entry.subgenres.sort(key=lambda s: s.total_count, reverse=True)
    summary.sort(key=lambda g: g.total_count, reverse=True)
    return summary


def parent_genre_of(style: str, hierarchy: Dict[str, StyleHierarchyEntry]) -> str:
    """A subgenre's parent; genres and unclassified styles are their own parent"""
    entry = hierarchy.get(style)
    if entry is not None and entry.has_parent:
        return normalize_tag(entry.parent_genre)
    return style


def build_tag_style_map(
    entries: Iterable[PostprocessedTagEntry],
    resolver: CanonicalResolver,
    hierarchy: Dict[str, StyleHierarchyEntry],
) -> List[TagStyleMapEntry]:
    """One entry per tag that keeps at least one style after canonicalization"""
    tag_map = []
    for entry in entries:
        resolved = (resolver.resolve(s) for s in normalize_tag_list(entry.styles))
        canonical = dedupe_preserve_order(s for s in resolved if s)
        if not canonical:
            continue

        tag_map.append(TagStyleMapEntry(
            normalized=entry.normalized,
            total_count=entry.total_count,
            canonical_styles=canonical,
            parent_genres=dedupe_preserve_order(parent_genre_of(s, hierarchy) for s in canonical),
            descriptors=dedupe_preserve_order(normalize_tag_list(entry.descriptors)),
        ))
    tag_map.sort(key=lambda t: t.total_count, reverse=True)
    return tag_map


def run_finalize_stage(
    hierarchy_path: Path,
    canonical_map_path: Path,
    postprocessed_path: Path,
    taxonomy_path: Path,
    summary_path: Path,
    tag_map_path: Path,
) -> Counter:
    logger.info(f"Reading hierarchy from: {hierarchy_path}")
    require_ledger(hierarchy_path)
    hierarchy = load_hierarchy(hierarchy_path)

    require_ledger(canonical_map_path)
    resolver = CanonicalResolver.from_ledger(canonical_map_path)

    logger.info(f"Reading postprocessed tags from: {postprocessed_path}")
    entries = [PostprocessedTagEntry.from_dict(r) for r in require_ledger(postprocessed_path, required_key='normalized')]

    taxonomy = build_style_taxonomy(hierarchy.values())
    rewrite_ledger(taxonomy_path, (t.to_dict() for t in taxonomy))
    logger.info(f"Wrote {len(taxonomy)} taxonomy entries -> {taxonomy_path}")

    summary = build_genre_summary(taxonomy)
    write_json(summary_path, [g.to_dict() for g in summary])
    logger.info(f"Wrote {len(summary)} genres -> {summary_path}")

    tag_map = build_tag_style_map(entries, resolver, hierarchy)
    rewrite_ledger(tag_map_path, (t.to_dict() for t in tag_map))
    logger.info(f"Wrote {len(tag_map)} tag mappings -> {tag_map_path}")

    kinds = Counter(t.kind for t in taxonomy)
    return Counter({
        'genres': kinds[KIND_GENRE],
        'subgenres': kinds[KIND_SUBGENRE],
        'summary_genres': len(summary),
        'tags': len(entries),
        'mapped_tags': len(tag_map),
        'unmapped_tags': len(entries) - len(tag_map),
    })
