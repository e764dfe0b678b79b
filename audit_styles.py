#!/usr/bin/env python3
"""
audit_styles.py - Style taxonomy audit: canonical map + hierarchy review report

Read-only. Never calls the model, never edits a ledger. Flags the decisions
a human should look at before trusting the taxonomy:

  near_duplicate   two canonical styles whose names are almost identical
                   ("synthpop" / "synth pop") - usually a missed alias
  alias_chain      a raw style that needs more than one alias hop to resolve
  alias_cycle      aliases that point at each other
  orphan_parent    a subgenre whose parent genre was never classified itself
  unclassified     a canonical style with no hierarchy decision yet

Output: output/style_audit.csv

Usage:
    python audit_styles.py
    python audit_styles.py --threshold 85 --output output/my_audit.csv
"""

import sys
import csv
import logging
import argparse
from itertools import combinations
from pathlib import Path
from typing import Dict, List

from fuzzywuzzy import fuzz

from tagmap.canonical import CanonicalResolver, load_canonical_map
from tagmap.cli import DEFAULT_CONFIG_PATH, setup_logging
from tagmap.config import PipelineConfig
from tagmap.constants import CANONICAL_MAP_LEDGER, HIERARCHY_LEDGER
from tagmap.hierarchy import load_hierarchy
from tagmap.models import StyleHierarchyEntry

logger = logging.getLogger(__name__)

DEFAULT_THRESHOLD = 90

FIELDNAMES = ['check', 'style', 'related', 'total_count', 'detail']

CHECKS = ['near_duplicate', 'alias_chain', 'alias_cycle', 'orphan_parent', 'unclassified']


def canonical_usage(resolver: CanonicalResolver) -> Dict[str, int]:
    """Total usage per resolved canonical style"""
    usage: Dict[str, int] = {}
    for style, entry in resolver.entries.items():
        canonical = resolver.resolve(style)
        if canonical is not None:
            usage[canonical] = usage.get(canonical, 0) + entry.total_count
    return usage


def find_near_duplicates(usage: Dict[str, int], threshold: int = DEFAULT_THRESHOLD) -> List[dict]:
    rows = []
    for a, b in combinations(sorted(usage), 2):
        score = fuzz.ratio(a, b)
        if score >= threshold:
            rows.append({
                'check': 'near_duplicate',
                'style': a,
                'related': b,
                'total_count': usage[a] + usage[b],
                'detail': f'similarity {score}',
            })
    return rows


def find_alias_chains(resolver: CanonicalResolver) -> List[dict]:
    rows = []
    for style, entry in resolver.entries.items():
        hops = resolver.chain(style)
        if len(hops) > 2:
            rows.append({
                'check': 'alias_chain',
                'style': style,
                'related': hops[-1],
                'total_count': entry.total_count,
                'detail': ' -> '.join(hops),
            })
    return rows


def find_alias_cycles(resolver: CanonicalResolver) -> List[dict]:
    for style in resolver.entries:
        resolver.resolve(style)
    return [
        {
            'check': 'alias_cycle',
            'style': min(loop),
            'related': ', '.join(sorted(loop)),
            'total_count': sum(resolver.entries[s].total_count for s in loop),
            'detail': ' -> '.join(loop + [loop[0]]),
        }
        for loop in resolver.cycles
    ]


def find_orphan_parents(hierarchy: Dict[str, StyleHierarchyEntry]) -> List[dict]:
    rows = []
    for style, entry in hierarchy.items():
        if entry.has_parent and entry.parent_genre not in hierarchy:
            rows.append({
                'check': 'orphan_parent',
                'style': style,
                'related': entry.parent_genre,
                'total_count': entry.total_count,
                'detail': 'parent genre has no hierarchy decision',
            })
    return rows


def find_unclassified(usage: Dict[str, int], hierarchy: Dict[str, StyleHierarchyEntry]) -> List[dict]:
    return [
        {
            'check': 'unclassified',
            'style': style,
            'related': '',
            'total_count': count,
            'detail': 'no hierarchy decision yet',
        }
        for style, count in sorted(usage.items(), key=lambda kv: kv[1], reverse=True)
        if style not in hierarchy
    ]


def audit(resolver: CanonicalResolver, hierarchy: Dict[str, StyleHierarchyEntry],
          threshold: int = DEFAULT_THRESHOLD) -> List[dict]:
    usage = canonical_usage(resolver)
    rows = []
    rows.extend(find_near_duplicates(usage, threshold))
    rows.extend(find_alias_chains(resolver))
    rows.extend(find_alias_cycles(resolver))
    rows.extend(find_orphan_parents(hierarchy))
    rows.extend(find_unclassified(usage, hierarchy))
    return rows


def main():
    parser = argparse.ArgumentParser(
        description='Audit the canonical style map and hierarchy for review',
        epilog='Output: output/style_audit.csv',
    )
    parser.add_argument('--config', type=Path, default=DEFAULT_CONFIG_PATH,
                        help='Config file (default: config.yaml in the project root)')
    parser.add_argument('--output', '-o', type=Path, default=Path('output/style_audit.csv'),
                        help='Output CSV path (default: output/style_audit.csv)')
    parser.add_argument('--threshold', type=int, default=DEFAULT_THRESHOLD,
                        help=f'fuzz.ratio score at or above which two styles are flagged (default: {DEFAULT_THRESHOLD})')
    args = parser.parse_args()

    setup_logging()
    config = PipelineConfig.from_file(args.config)

    canonical_path = config.ledger(CANONICAL_MAP_LEDGER)
    if not canonical_path.exists():
        print(f"Error: canonical map not found: {canonical_path}. Run stage 6 first.")
        return 1

    resolver = CanonicalResolver(load_canonical_map(canonical_path))
    hierarchy = load_hierarchy(config.ledger(HIERARCHY_LEDGER))

    print(f"Auditing {len(resolver.entries)} canonical decisions, {len(hierarchy)} hierarchy decisions")
    rows = audit(resolver, hierarchy, args.threshold)

    args.output.parent.mkdir(parents=True, exist_ok=True)
    with open(args.output, 'w', newline='', encoding='utf-8') as f:
        writer = csv.DictWriter(f, fieldnames=FIELDNAMES, quoting=csv.QUOTE_ALL)
        writer.writeheader()
        writer.writerows(rows)

    counts = {check: 0 for check in CHECKS}
    for row in rows:
        counts[row['check']] += 1

    print(f"\n{'=' * 50}")
    print("STYLE AUDIT COMPLETE")
    print(f"{'=' * 50}")
    for check in CHECKS:
        print(f"  {check:<16} {counts[check]:5d}")
    print(f"  {'TOTAL':<16} {len(rows):5d}")
    print(f"\nOutput: {args.output}")

    return 0


if __name__ == '__main__':
    sys.exit(main())
