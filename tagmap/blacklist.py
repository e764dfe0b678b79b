#!/usr/bin/env python3
"""
tagmap/blacklist.py - Model-assisted blacklist augmentation

Classifies every distinct tag in the song files as "whitelist" or "blacklist"
in batches through the chat API. Every batch result is appended to
tag-blacklist-model-results.jsonl, and tags judged "blacklist" are merged into
the live blacklist file right away, so an interrupted run loses at most one
batch.

Tags already present in the results ledger or the blacklist are never sent
again.
"""

import json
import logging
from collections import Counter
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence, Set, Tuple

from tagmap.collector import extract_tags, load_blacklist, read_song_file, song_files
from tagmap.constants import BLACKLIST_BATCH_SIZE, BLACKLIST_DECISION, TAG_SOURCES
from tagmap.errors import InvalidResponseError, LedgerError
from tagmap.ledger import append_record, iter_ledger, write_json
from tagmap.normalization import normalize_tag
from tagmap.responses import decode_blacklist_response

logger = logging.getLogger(__name__)


def extract_all_tags(
    songs_dir: Path,
    tag_sources: Sequence[Tuple[str, str, str]] = TAG_SOURCES,
) -> Set[str]:
    """Every distinct normalized tag across all song files"""
    if not songs_dir.is_dir():
        raise LedgerError(f"Songs directory does not exist: {songs_dir}")

    tags: Set[str] = set()
    for path in song_files(songs_dir):
        data = read_song_file(path)
        if data is None:
            continue
        for raw_tag, _ in extract_tags(data, tag_sources):
            normalized = normalize_tag(raw_tag)
            if normalized:
                tags.add(normalized)
    return tags


def load_processed_tags(results_path: Path) -> Set[str]:
    return {normalize_tag(r['tag']) for r in iter_ledger(results_path, required_key='tag')}


def sort_tags(tags: Iterable[str]) -> List[str]:
    return sorted(tags, key=lambda t: (t.casefold(), t))


def batched(items: Sequence[str], size: int) -> Iterable[List[str]]:
    for start in range(0, len(items), size):
        yield list(items[start:start + size])


def merge_into_blacklist(
    results: Iterable[Dict[str, Any]],
    blacklist_path: Path,
    model: str,
    prompt_name: str,
    now: Optional[datetime] = None,
) -> int:
    """
    Add every tag decided as blacklist to the blacklist file

    The file is only rewritten when at least one tag is new.

    Returns:
        Number of tags added
    """
    current = set(load_blacklist(blacklist_path))
    added = []
    for result in results:
        tag = normalize_tag(str(result.get('tag') or ''))
        decision = str(result.get('decision') or '').lower()
        if tag and decision == BLACKLIST_DECISION and tag not in current:
            current.add(tag)
            added.append(tag)

    if not added:
        return 0

    write_json(blacklist_path, {
        'blacklistedTags': sort_tags(current),
        'lastUpdated': (now or datetime.now(timezone.utc)).isoformat(),
        'model': model,
        'prompt': prompt_name,
    })
    logger.info(f"Blacklist updated: +{len(added)} tags ({', '.join(added)})")
    return len(added)


class BlacklistClassifier:
    """One chat call per batch: system prompt + {"tags": [...]}"""

    def __init__(self, client, system_prompt: str):
        self.client = client
        self.system_prompt = system_prompt

    def classify_batch(self, tags: List[str]) -> List[Dict[str, Any]]:
        raw = self.client.chat([
            {'role': 'system', 'content': self.system_prompt},
            {'role': 'user', 'content': json.dumps({'tags': tags}, ensure_ascii=False)},
        ])
        decoded = decode_blacklist_response(raw)
        if not decoded.ok:
            raise InvalidResponseError(f"batch starting '{tags[0]}'", decoded.error, raw)
        return decoded.value


def run_blacklist_augmenter(
    classifier: BlacklistClassifier,
    songs_dir: Path,
    blacklist_path: Path,
    results_path: Path,
    prompt_name: str,
    batch_size: int = BLACKLIST_BATCH_SIZE,
    tag_sources: Sequence[Tuple[str, str, str]] = TAG_SOURCES,
    limit: Optional[int] = None,
) -> Counter:
    """
    Classify all not-yet-seen tags and grow the blacklist

    Raises:
        ClassificationServiceError / InvalidResponseError on the first failing
        batch; earlier batches stay recorded.
    """
    all_tags = extract_all_tags(songs_dir, tag_sources)
    processed = load_processed_tags(results_path) | set(load_blacklist(blacklist_path))
    todo = [t for t in sort_tags(all_tags) if t not in processed]
    if limit is not None:
        todo = todo[:limit]

    stats: Counter = Counter({'unique_tags': len(all_tags), 'already_processed': len(all_tags & processed)})
    logger.info(f"Total unique tags: {len(all_tags)}")
    logger.info(f"Already processed (results + blacklist): {len(processed)}")
    logger.info(f"Remaining to classify: {len(todo)}")

    batches = list(batched(todo, batch_size))
    for number, batch in enumerate(batches, start=1):
        logger.info(f"Batch {number}/{len(batches)} ({len(batch)} tags)")
        results = classifier.classify_batch(batch)

        for result in results:
            append_record(results_path, result)
            stats[f"decision_{result['decision'] or 'none'}"] += 1
        stats['batches'] += 1
        stats['classified'] += len(results)
        stats['added_to_blacklist'] += merge_into_blacklist(
            results, blacklist_path, classifier.client.model, prompt_name,
        )

    return stats
