#!/usr/bin/env python3
"""
tagmap/collector.py - Stage 1: collect raw tags from song metadata files

Reads every song JSON file, extracts tag strings from the configured
(container, field) sources plus the song's own "tags" list, normalizes them
and routes each occurrence to one of two ledgers:

  tag-source-raw.jsonl          kept tags
  tag-source-blacklisted.jsonl  tags whose normalized form is blacklisted (audit trail)

Both ledgers are truncated and regenerated on every run.

Blacklist file format:
  {"blacklistedTags": ["seen live", "favorites", ...], "lastUpdated": "...", "model": "...", "prompt": "..."}
"""

import json
import logging
from collections import Counter
from pathlib import Path
from typing import Any, Dict, FrozenSet, Iterable, List, Optional, Sequence, Tuple

from tagmap.constants import LOCAL_TAG_SOURCE, SONG_FILE_SUFFIXES, TAG_SOURCES
from tagmap.errors import LedgerError
from tagmap.ledger import LedgerWriter
from tagmap.models import RawTagRecord
from tagmap.normalization import normalize_tag

logger = logging.getLogger(__name__)


def load_blacklist(path: Path) -> FrozenSet[str]:
    """Load and normalize blacklisted tags. A missing file means an empty blacklist."""
    if not path.exists():
        logger.warning(f"No blacklist file found at {path}")
        return frozenset()

    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise LedgerError(f"Could not read blacklist {path}: {e}") from e

    if isinstance(data, dict):
        tags = data.get('blacklistedTags', [])
    else:
        tags = data
    if not isinstance(tags, list):
        logger.warning(f"'blacklistedTags' in {path} is not a list - ignoring blacklist")
        return frozenset()

    blacklist = frozenset(normalize_tag(t) for t in tags if isinstance(t, str) and normalize_tag(t))
    logger.info(f"Loaded {len(blacklist)} blacklisted tags")
    return blacklist


def read_song_file(path: Path) -> Optional[Dict[str, Any]]:
    """Parse one song file; None (with a warning) when unreadable or not an object"""
    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        logger.warning(f"Could not parse song file {path.name}: {e}")
        return None
    if not isinstance(data, dict):
        logger.warning(f"Song file {path.name} is not a JSON object - skipped")
        return None
    return data


def song_files(songs_dir: Path) -> List[Path]:
    return sorted(
        p for p in songs_dir.iterdir()
        if p.is_file() and p.suffix.lower() in SONG_FILE_SUFFIXES
    )


def get_entity_id(path: Path, data: Dict[str, Any]) -> str:
    entity_id = data.get('id')
    if isinstance(entity_id, str) and entity_id.strip():
        return entity_id.strip()
    return path.stem


def _tag_strings(values: Any) -> Iterable[str]:
    if not isinstance(values, list):
        return
    for value in values:
        if isinstance(value, dict):
            # MusicBrainz tag objects: {"name": "...", "count": N}
            value = value.get('name')
        if isinstance(value, str) and value.strip():
            yield value


def extract_tags(
    data: Dict[str, Any],
    tag_sources: Sequence[Tuple[str, str, str]] = TAG_SOURCES,
) -> List[Tuple[str, str]]:
    """
    Extract (raw_tag, source_label) pairs from one song record

    Order: song-local tags first, then each configured source in order.
    """
    found: List[Tuple[str, str]] = []

    for tag in _tag_strings(data.get('tags')):
        found.append((tag, LOCAL_TAG_SOURCE))

    for container_key, field_key, label in tag_sources:
        container = data.get(container_key)
        if not isinstance(container, dict):
            continue
        for tag in _tag_strings(container.get(field_key)):
            found.append((tag, label))

    return found


def split_by_blacklist(
    entity_id: str,
    tags: Iterable[Tuple[str, str]],
    blacklist: FrozenSet[str],
) -> Tuple[List[RawTagRecord], List[RawTagRecord]]:
    """Return (kept, removed) records for one entity"""
    kept: List[RawTagRecord] = []
    removed: List[RawTagRecord] = []
    for raw_tag, source in tags:
        normalized = normalize_tag(raw_tag)
        if not normalized:
            continue
        record = RawTagRecord(entity_id=entity_id, raw_tag=raw_tag, normalized=normalized, source=source)
        if normalized in blacklist:
            removed.append(record)
        else:
            kept.append(record)
    return kept, removed


def collect_tags(
    songs_dir: Path,
    blacklist: FrozenSet[str],
    output_path: Path,
    removed_path: Path,
    tag_sources: Sequence[Tuple[str, str, str]] = TAG_SOURCES,
) -> Counter:
    """
    Scan songs_dir and rewrite the raw and removed tag ledgers

    Returns:
        Counter with files / skipped_files / kept / removed
    """
    if not songs_dir.is_dir():
        raise LedgerError(f"Songs directory does not exist: {songs_dir}")

    files = song_files(songs_dir)
    logger.info(f"Found {len(files)} song files in {songs_dir}")
    stats: Counter = Counter()

    with LedgerWriter(output_path) as kept_out, LedgerWriter(removed_path) as removed_out:
        for path in files:
            stats['files'] += 1
            data = read_song_file(path)
            if data is None:
                stats['skipped_files'] += 1
                continue

            entity_id = get_entity_id(path, data)
            kept, removed = split_by_blacklist(entity_id, extract_tags(data, tag_sources), blacklist)

            for record in kept:
                kept_out.write(record.to_dict())
            for record in removed:
                removed_out.write(record.to_dict())
            stats['kept'] += len(kept)
            stats['removed'] += len(removed)

    logger.info(f"Kept tags: {stats['kept']}, removed blacklisted: {stats['removed']}")
    return stats
