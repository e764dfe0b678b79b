#!/usr/bin/env python3
"""
tagmap/canonical.py - Stage 6: style canonicalization (LLM) and alias resolution

Each raw style gets one decision:

  keep    the style is already a canonical name
  alias   the style is another spelling of canonical_style ("hiphop" -> "hip hop")
  reject  the style is not a usable music style

Decisions are appended to style-canonical-map.jsonl one style at a time and
the stage resumes from that ledger. Undecodable answers and service errors are
skipped by default, so the affected style is retried on the next run.

CanonicalResolver turns the map into a lookup used by stages 7 and 8.
"""

import logging
from collections import Counter
from pathlib import Path
from typing import Dict, List, Optional

from tagmap.checkpoint import LedgerCheckpoint
from tagmap.constants import ACTION_REJECT
from tagmap.errors import InvalidResponseError
from tagmap.ledger import iter_ledger, require_ledger
from tagmap.llm_stage import run_resumable
from tagmap.models import CanonicalStyleEntry, RawStyleEntry
from tagmap.normalization import normalize_tag
from tagmap.policy import SKIP_ALL, ErrorPolicy
from tagmap.prompts import build_prompt
from tagmap.responses import decode_canonical_response

logger = logging.getLogger(__name__)


def load_raw_styles(path: Path) -> List[RawStyleEntry]:
    """Load the harvester ledger sorted by descending total_count (stable)"""
    styles = [RawStyleEntry.from_dict(r) for r in require_ledger(path, required_key='style')]
    styles.sort(key=lambda s: s.total_count, reverse=True)
    return styles


def load_canonical_map(path: Path) -> Dict[str, CanonicalStyleEntry]:
    """
    Load the canonical map keyed by raw style

    The first line for a style is authoritative, matching the checkpoint
    which never re-emits a recorded key.
    """
    entries: Dict[str, CanonicalStyleEntry] = {}
    for record in iter_ledger(path, required_key='style'):
        entry = CanonicalStyleEntry.from_dict(record)
        if entry.style not in entries:
            entries[entry.style] = entry
    return entries


class CanonicalResolver:
    """
    Resolve raw style names to canonical style names

    - rejected styles resolve to None
    - styles absent from the map resolve to themselves
    - keep/alias targets are followed hop by hop until a name maps to itself
      or is absent from the map; an alias onto a rejected style is rejected
    - a cycle resolves to the alphabetically first name in the loop, so every
      member of the loop agrees
    """

    def __init__(self, entries: Dict[str, CanonicalStyleEntry]):
        self.entries = entries
        self._cache: Dict[str, Optional[str]] = {}
        self.cycles: List[List[str]] = []

    @classmethod
    def from_ledger(cls, path: Path) -> 'CanonicalResolver':
        return cls(load_canonical_map(path))

    def _next(self, name: str) -> Optional[str]:
        entry = self.entries[name]
        return normalize_tag(entry.canonical_style) or name

    def resolve(self, style: str) -> Optional[str]:
        style = normalize_tag(style)
        if not style:
            return None
        if style in self._cache:
            return self._cache[style]

        path: List[str] = []
        current = style
        while True:
            entry = self.entries.get(current)
            if entry is None:
                result = current
                break
            if entry.action == ACTION_REJECT:
                result = None
                break
            if current in path:
                loop = path[path.index(current):]
                result = min(loop)
                if sorted(loop) not in [sorted(c) for c in self.cycles]:
                    self.cycles.append(loop)
                    logger.warning(f"Alias cycle {' -> '.join(loop + [current])}; using '{result}'")
                break
            path.append(current)
            target = self._next(current)
            if target == current:
                result = current
                break
            current = target

        self._cache[style] = result
        return result

    def is_rejected(self, style: str) -> bool:
        return self.resolve(style) is None

    def chain(self, style: str) -> List[str]:
        """The raw alias hops followed from style, for audits"""
        style = normalize_tag(style)
        hops = [style]
        current = style
        while current in self.entries and self.entries[current].action != ACTION_REJECT:
            target = self._next(current)
            if target == current or target in hops:
                break
            hops.append(target)
            current = target
        return hops


class StyleCanonicalizer:
    def __init__(self, client, base_prompt: str):
        self.client = client
        self.base_prompt = base_prompt

    def canonicalize(self, raw_style: RawStyleEntry) -> Dict:
        prompt = build_prompt(self.base_prompt, raw_style.to_dict())
        raw = self.client.generate(prompt)

        decoded = decode_canonical_response(raw, raw_style.style)
        if not decoded.ok:
            raise InvalidResponseError(raw_style.style, decoded.error, raw)

        return CanonicalStyleEntry(
            style=raw_style.style,
            canonical_style=decoded.value.canonical_style,
            action=decoded.value.action,
            reason=decoded.value.reason,
            total_count=raw_style.total_count,
        ).to_dict()


def run_canonical_stage(
    client,
    base_prompt: str,
    input_path: Path,
    output_path: Path,
    policy: ErrorPolicy = SKIP_ALL,
    limit: Optional[int] = None,
) -> Counter:
    logger.info(f"Reading raw styles from: {input_path}")
    styles = load_raw_styles(input_path)
    checkpoint = LedgerCheckpoint(output_path, key_field='style')
    logger.info(f"Total raw styles: {len(styles)}")

    canonicalizer = StyleCanonicalizer(client, base_prompt)
    stats = run_resumable(
        styles,
        key_of=lambda s: s.style,
        classify=canonicalizer.canonicalize,
        checkpoint=checkpoint,
        policy=policy,
        limit=limit,
        label='style',
    )
    stats['total'] = len(styles)

    actions = Counter(e.action for e in load_canonical_map(output_path).values())
    for action, count in actions.items():
        stats[f'action_{action}'] = count
    return stats
