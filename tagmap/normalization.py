#!/usr/bin/env python3
"""
Shared tag normalization for the tag taxonomy pipeline

CRITICAL: The same normalization MUST be used for:
1. Building ledger keys (collector, harvester, canonical names)
2. Matching against the blacklist

If these differ, blacklist matches and style lookups fail silently.
"""

import re
import unicodedata
from typing import Iterable, List

_WHITESPACE_RE = re.compile(r'\s+')


def normalize_tag(value: str) -> str:
    """
    Normalize a raw tag string into its stable aggregation key

    Normalization steps:
    1. Unicode NFKC (compatibility forms, full-width characters)
    2. Case-fold
    3. NFKC again (case folding can emit non-normalized sequences)
    4. Collapse whitespace runs to a single space and trim

    The function is pure and idempotent: normalize_tag(normalize_tag(s)) == normalize_tag(s)

    Examples:
        >>> normalize_tag("  ROCK   music ")
        'rock music'

        >>> normalize_tag("Lo-Fi Hip-Hop")
        'lo-fi hip-hop'
    """
    if not value:
        return ''
    value = unicodedata.normalize('NFKC', value)
    value = value.casefold()
    value = unicodedata.normalize('NFKC', value)
    return _WHITESPACE_RE.sub(' ', value).strip()


def normalize_tag_list(values: Iterable[str]) -> List[str]:
    """Normalize a list of tags, dropping values that normalize to empty"""
    out = []
    for value in values:
        normalized = normalize_tag(value)
        if normalized:
            out.append(normalized)
    return out


def dedupe_preserve_order(values: Iterable[str]) -> List[str]:
    """Remove duplicates while keeping first-seen order"""
    seen = set()
    out = []
    for value in values:
        if value not in seen:
            seen.add(value)
            out.append(value)
    return out
