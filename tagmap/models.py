#!/usr/bin/env python3
"""
Ledger record types

Each dataclass maps to one JSONL line shape. from_dict() is lenient about
missing optional fields so hand-edited ledgers (the override file) load;
to_dict() always emits the full schema.
"""

from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Optional

from tagmap.constants import BUCKET_PURE_INVALID, KIND_GENRE


def _int(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


def _str_list(values: Any) -> List[str]:
    if not isinstance(values, list):
        return []
    return [str(v) for v in values if isinstance(v, str)]


@dataclass
class RawTagRecord:
    """One tag occurrence on one entity from one source"""
    entity_id: str
    raw_tag: str
    normalized: str
    source: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'RawTagRecord':
        return cls(
            entity_id=str(data.get('entity_id', '')),
            raw_tag=str(data.get('raw_tag', '')),
            normalized=str(data.get('normalized', '')),
            source=str(data.get('source', '')),
        )


@dataclass
class NormalizedTagEntry:
    normalized: str
    total_count: int
    entity_count: int
    source_counts: Dict[str, int] = field(default_factory=dict)
    example_raw_tags: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'NormalizedTagEntry':
        sources = data.get('source_counts') or {}
        return cls(
            normalized=str(data['normalized']),
            total_count=_int(data.get('total_count')),
            entity_count=_int(data.get('entity_count')),
            source_counts={str(k): _int(v) for k, v in sources.items()} if isinstance(sources, dict) else {},
            example_raw_tags=_str_list(data.get('example_raw_tags')),
        )


@dataclass
class TagSegment:
    """One decomposed unit of a compound tag"""
    text: str
    kind: str
    reason: str = ''

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'TagSegment':
        # Hand-written override lines may use the model's 'type' spelling
        kind = data.get('kind', data.get('type', ''))
        return cls(
            text=str(data.get('text', '')).strip(),
            kind=str(kind).strip().lower(),
            reason=str(data.get('reason', '') or ''),
        )


@dataclass
class CompoundTagEntry:
    normalized: str
    total_count: int
    segments: List[TagSegment] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'normalized': self.normalized,
            'total_count': self.total_count,
            'segments': [s.to_dict() for s in self.segments],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Optional['CompoundTagEntry']:
        """Return None when the line has no usable key or segment list"""
        normalized = data.get('normalized')
        segments = data.get('segments', data.get('parts'))
        if not isinstance(normalized, str) or not normalized or not isinstance(segments, list):
            return None
        return cls(
            normalized=normalized,
            total_count=_int(data.get('total_count')),
            segments=[TagSegment.from_dict(s) for s in segments if isinstance(s, dict)],
        )


@dataclass
class PostprocessedTagEntry:
    normalized: str
    total_count: int
    styles: List[str] = field(default_factory=list)
    descriptors: List[str] = field(default_factory=list)
    invalid_segments: List[str] = field(default_factory=list)
    bucket: str = BUCKET_PURE_INVALID

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'PostprocessedTagEntry':
        return cls(
            normalized=str(data['normalized']),
            total_count=_int(data.get('total_count')),
            styles=_str_list(data.get('styles')),
            descriptors=_str_list(data.get('descriptors')),
            invalid_segments=_str_list(data.get('invalid_segments')),
            bucket=str(data.get('bucket', BUCKET_PURE_INVALID)),
        )


@dataclass
class BlacklistCandidate:
    normalized: str
    total_count: int
    segments: List[TagSegment]
    reason: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            'normalized': self.normalized,
            'total_count': self.total_count,
            'segments': [s.to_dict() for s in self.segments],
            'reason': self.reason,
        }


@dataclass
class RawStyleEntry:
    style: str
    total_count: int = 0
    tag_count: int = 0
    example_tags: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'RawStyleEntry':
        return cls(
            style=str(data['style']),
            total_count=_int(data.get('total_count')),
            tag_count=_int(data.get('tag_count')),
            example_tags=_str_list(data.get('example_tags')),
        )


@dataclass
class CanonicalStyleEntry:
    style: str
    canonical_style: str
    action: str
    reason: str = ''
    total_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'CanonicalStyleEntry':
        return cls(
            style=str(data['style']),
            canonical_style=str(data.get('canonical_style', '') or ''),
            action=str(data.get('action', '') or '').lower(),
            reason=str(data.get('reason', '') or ''),
            total_count=_int(data.get('total_count')),
        )


@dataclass
class CanonicalStyleStats:
    """Aggregate usage of one canonical style; the hierarchy prompt input"""
    canonical_style: str
    total_count: int = 0
    tag_count: int = 0
    example_tags: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class StyleHierarchyEntry:
    style: str
    total_count: int
    is_subgenre: bool
    parent_genre: str = ''
    reason: str = ''

    @property
    def has_parent(self) -> bool:
        return self.is_subgenre and bool(self.parent_genre.strip())

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'StyleHierarchyEntry':
        return cls(
            style=str(data['style']),
            total_count=_int(data.get('total_count')),
            is_subgenre=data.get('is_subgenre') is True,
            parent_genre=str(data.get('parent_genre', '') or ''),
            reason=str(data.get('reason', '') or ''),
        )


@dataclass
class StyleTaxonomyEntry:
    style: str
    total_count: int
    kind: str = KIND_GENRE
    parent_genres: List[str] = field(default_factory=list)
    reason: str = ''

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class SubgenreSummary:
    name: str
    total_count: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class GenreSummaryEntry:
    genre: str
    own_count: int = 0
    subgenres: List[SubgenreSummary] = field(default_factory=list)

    @property
    def total_count(self) -> int:
        return self.own_count + sum(s.total_count for s in self.subgenres)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'genre': self.genre,
            'total_count': self.total_count,
            'own_count': self.own_count,
            'subgenres': [s.to_dict() for s in self.subgenres],
        }


@dataclass
class TagStyleMapEntry:
    normalized: str
    total_count: int
    canonical_styles: List[str] = field(default_factory=list)
    parent_genres: List[str] = field(default_factory=list)
    descriptors: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'TagStyleMapEntry':
        return cls(
            normalized=str(data['normalized']),
            total_count=_int(data.get('total_count')),
            canonical_styles=_str_list(data.get('canonical_styles')),
            parent_genres=_str_list(data.get('parent_genres')),
            descriptors=_str_list(data.get('descriptors')),
        )
