#!/usr/bin/env python3
"""
tagmap/responses.py - Decoding classification-service responses

The service returns free text that should contain exactly one JSON object or
array, sometimes wrapped in ``` fences despite the prompt asking otherwise.
All stages go through the same two steps:

1. strip_code_fences() / extract_json() - text -> Python value
2. decode_*() - Python value -> typed record, or an error reason

Decoders never raise; they return a DecodeResult and the calling stage applies
its ErrorPolicy.
"""

import json
from dataclasses import dataclass
from typing import Any, Dict, Generic, List, Optional, TypeVar

from tagmap.constants import CANONICAL_ACTIONS, ACTION_ALIAS, ACTION_REJECT, SEGMENT_KINDS
from tagmap.models import TagSegment
from tagmap.normalization import normalize_tag

T = TypeVar('T')


@dataclass
class DecodeResult(Generic[T]):
    """Either a decoded value or the reason decoding failed"""
    value: Optional[T] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T) -> 'DecodeResult[T]':
        return cls(value=value)

    @classmethod
    def failure(cls, reason: str) -> 'DecodeResult[T]':
        return cls(error=reason)


def strip_code_fences(raw: str) -> str:
    """
    Remove a leading ``` / ```json fence line and a trailing ``` fence

    >>> strip_code_fences('```json\\n{"a": 1}\\n```')
    '{"a": 1}'
    """
    text = (raw or '').strip()
    if not text.startswith('```'):
        return text
    first_newline = text.find('\n')
    if first_newline == -1:
        # Single-line fence: ```{"a": 1}```
        text = text[3:]
        if text.lower().startswith('json'):
            text = text[4:]
    else:
        text = text[first_newline + 1:]
    if text.rstrip().endswith('```'):
        text = text.rstrip()[:-3]
    return text.strip()


def extract_json(raw: str) -> DecodeResult[Any]:
    """
    Parse the single JSON value in a response

    Falls back to the outermost {...} or [...] span when the model wrapped the
    payload in prose; the bracket that opens first is tried first.
    """
    text = strip_code_fences(raw)
    if not text:
        return DecodeResult.failure('empty response')
    try:
        return DecodeResult.success(json.loads(text))
    except json.JSONDecodeError as first_error:
        spans = sorted(
            (('{', '}'), ('[', ']')),
            key=lambda pair: text.find(pair[0]) if pair[0] in text else len(text),
        )
        for open_ch, close_ch in spans:
            start = text.find(open_ch)
            end = text.rfind(close_ch)
            if start != -1 and end > start:
                try:
                    return DecodeResult.success(json.loads(text[start:end + 1]))
                except json.JSONDecodeError:
                    continue
        return DecodeResult.failure(f'not valid JSON: {first_error}')


def _as_object(raw: str) -> DecodeResult[Dict[str, Any]]:
    parsed = extract_json(raw)
    if not parsed.ok:
        return parsed
    if not isinstance(parsed.value, dict):
        return DecodeResult.failure(f'expected a JSON object, got {type(parsed.value).__name__}')
    return parsed


# ---------------------------------------------------------------------------
# Stage 3: compound interpretation
# ---------------------------------------------------------------------------

def decode_compound_response(raw: str) -> DecodeResult[List[TagSegment]]:
    """Expect {"parts": [{"text", "type", "reason"}, ...]}"""
    parsed = _as_object(raw)
    if not parsed.ok:
        return DecodeResult.failure(parsed.error)

    parts = parsed.value.get('parts')
    if not isinstance(parts, list):
        return DecodeResult.failure("missing 'parts' array")

    segments = []
    for i, part in enumerate(parts):
        if not isinstance(part, dict):
            return DecodeResult.failure(f'part {i} is not an object')
        kind = str(part.get('type', '')).strip().lower()
        if kind not in SEGMENT_KINDS:
            return DecodeResult.failure(f"part {i} has unknown type '{kind}'")
        text = str(part.get('text') or '').strip()
        if not text:
            continue
        segments.append(TagSegment(text=text, kind=kind, reason=str(part.get('reason') or '')))
    return DecodeResult.success(segments)


# ---------------------------------------------------------------------------
# Stage 6: style canonicalization
# ---------------------------------------------------------------------------

@dataclass
class CanonicalDecision:
    canonical_style: str
    action: str
    reason: str


def decode_canonical_response(raw: str, style: str) -> DecodeResult[CanonicalDecision]:
    """Expect {"canonical_style", "action": keep|alias|reject, "reason"}"""
    parsed = _as_object(raw)
    if not parsed.ok:
        return DecodeResult.failure(parsed.error)
    data = parsed.value

    action = str(data.get('action') or '').strip().lower()
    if action not in CANONICAL_ACTIONS:
        return DecodeResult.failure(f"unknown action '{action}'")

    canonical = normalize_tag(str(data.get('canonical_style') or ''))
    if action == ACTION_ALIAS and not canonical:
        return DecodeResult.failure('alias without canonical_style')
    if not canonical and action != ACTION_REJECT:
        canonical = style
    return DecodeResult.success(CanonicalDecision(
        canonical_style=canonical,
        action=action,
        reason=str(data.get('reason') or ''),
    ))


# ---------------------------------------------------------------------------
# Stage 7: style hierarchy
# ---------------------------------------------------------------------------

@dataclass
class HierarchyDecision:
    is_subgenre: bool
    parent_genre: str
    reason: str


def _as_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in ('true', 'false'):
        return value.strip().lower() == 'true'
    return None


def decode_hierarchy_response(raw: str, style: str) -> DecodeResult[HierarchyDecision]:
    """Expect {"is_subgenre": bool, "parent_genre": str, "reason"}"""
    parsed = _as_object(raw)
    if not parsed.ok:
        return DecodeResult.failure(parsed.error)
    data = parsed.value

    is_subgenre = _as_bool(data.get('is_subgenre'))
    if is_subgenre is None:
        return DecodeResult.failure("'is_subgenre' is not a boolean")

    parent = data.get('parent_genre')
    if parent is not None and not isinstance(parent, str):
        return DecodeResult.failure("'parent_genre' is not a string")
    parent = normalize_tag(parent or '')

    if parent == style:
        # A style cannot be its own parent; treat as top-level
        is_subgenre, parent = False, ''
    if not is_subgenre:
        parent = ''
    return DecodeResult.success(HierarchyDecision(
        is_subgenre=is_subgenre,
        parent_genre=parent,
        reason=str(data.get('reason') or ''),
    ))


# ---------------------------------------------------------------------------
# Blacklist augmenter
# ---------------------------------------------------------------------------

def decode_blacklist_response(raw: str) -> DecodeResult[List[Dict[str, Any]]]:
    """Expect [{"tag", "decision", "reason"?, "score"?}, ...]"""
    parsed = extract_json(raw)
    if not parsed.ok:
        return DecodeResult.failure(parsed.error)
    if not isinstance(parsed.value, list):
        return DecodeResult.failure(f'expected a JSON array, got {type(parsed.value).__name__}')

    results = []
    for item in parsed.value:
        if not isinstance(item, dict):
            continue
        tag = normalize_tag(str(item.get('tag') or ''))
        if not tag:
            continue
        result = dict(item)
        result['tag'] = tag
        result['decision'] = str(item.get('decision') or '').strip().lower()
        results.append(result)
    return DecodeResult.success(results)
