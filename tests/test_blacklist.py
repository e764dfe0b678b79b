#!/usr/bin/env python3
"""
Test suite for tagmap/blacklist.py - model-assisted blacklist augmentation
"""

import json
import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from conftest import FakeClient, read_jsonl, write_jsonl
from tagmap.blacklist import (
    BlacklistClassifier,
    batched,
    extract_all_tags,
    merge_into_blacklist,
    run_blacklist_augmenter,
    sort_tags,
)
from tagmap.errors import InvalidResponseError, LedgerError


def write_song(songs_dir: Path, name: str, data: dict):
    songs_dir.mkdir(parents=True, exist_ok=True)
    (songs_dir / name).write_text(json.dumps(data), encoding='utf-8')


def decide(payload):
    """Blacklist anything with 'seen' or 'favorite' in it"""
    return json.dumps([
        {'tag': t, 'decision': 'blacklist' if ('seen' in t or 'favorite' in t) else 'whitelist'}
        for t in payload['tags']
    ])


class TestHelpers:

    def test_sort_is_case_insensitive_and_stable(self):
        assert sort_tags(['b', 'A', 'a', 'C']) == ['A', 'a', 'b', 'C']

    def test_batched(self):
        assert list(batched(['a', 'b', 'c', 'd', 'e'], 2)) == [['a', 'b'], ['c', 'd'], ['e']]

    def test_extract_all_tags(self, tmp_path):
        write_song(tmp_path, 'a.json', {'tags': ['Chill'], 'lastfm': {'tags': ['Rock', 'rock ']}})
        write_song(tmp_path, 'b.json', {'musicbrainz': {'genres': [{'name': 'Jazz', 'count': 2}]}})
        assert extract_all_tags(tmp_path) == {'chill', 'rock', 'jazz'}

    def test_missing_songs_dir(self, tmp_path):
        with pytest.raises(LedgerError):
            extract_all_tags(tmp_path / 'missing')


class TestMergeIntoBlacklist:

    def test_adds_sorted_with_metadata(self, tmp_path):
        path = tmp_path / 'blacklist.json'
        path.write_text(json.dumps({'blacklistedTags': ['Seen Live']}), encoding='utf-8')
        now = datetime(2026, 3, 1, tzinfo=timezone.utc)

        added = merge_into_blacklist([
            {'tag': 'favorites', 'decision': 'blacklist'},
            {'tag': 'seen live', 'decision': 'blacklist'},
            {'tag': 'rock', 'decision': 'whitelist'},
        ], path, 'gemma3:4b', 'tag-blacklist-prompt-v2.txt', now=now)

        data = json.loads(path.read_text(encoding='utf-8'))
        assert added == 1
        assert data['blacklistedTags'] == ['favorites', 'seen live']
        assert data['lastUpdated'] == '2026-03-01T00:00:00+00:00'
        assert data['model'] == 'gemma3:4b'
        assert data['prompt'] == 'tag-blacklist-prompt-v2.txt'

    def test_nothing_new_leaves_file_alone(self, tmp_path):
        path = tmp_path / 'blacklist.json'
        original = json.dumps({'blacklistedTags': ['seen live']})
        path.write_text(original, encoding='utf-8')

        assert merge_into_blacklist([{'tag': 'rock', 'decision': 'whitelist'}], path, 'm', 'p') == 0
        assert path.read_text(encoding='utf-8') == original


class TestAugmenter:

    def test_classifies_in_batches_and_resumes(self, tmp_path):
        songs = tmp_path / 'songs'
        write_song(songs, 'a.json', {'lastfm': {'tags': ['Seen Live', 'Rock', 'Jazz']}})
        write_song(songs, 'b.json', {'tags': ['my favorites', 'Ambient']})
        blacklist_path = tmp_path / 'blacklist.json'
        results_path = tmp_path / 'results.jsonl'
        write_jsonl(results_path, [{'tag': 'jazz', 'decision': 'whitelist'}])

        client = FakeClient(decide)
        stats = run_blacklist_augmenter(
            BlacklistClassifier(client, 'Decide.'), songs, blacklist_path, results_path,
            'tag-blacklist-prompt-v2.txt', batch_size=2,
        )

        assert [p['tags'] for p in client.payloads] == [['ambient', 'my favorites'], ['rock', 'seen live']]
        assert stats['unique_tags'] == 5
        assert stats['already_processed'] == 1
        assert stats['batches'] == 2
        assert stats['classified'] == 4
        assert stats['added_to_blacklist'] == 2
        data = json.loads(blacklist_path.read_text(encoding='utf-8'))
        assert data['blacklistedTags'] == ['my favorites', 'seen live']
        assert data['model'] == 'fake-model'
        assert len(read_jsonl(results_path)) == 5

        # Second run has nothing left to send
        again = FakeClient(decide)
        stats = run_blacklist_augmenter(
            BlacklistClassifier(again, 'Decide.'), songs, blacklist_path, results_path,
            'tag-blacklist-prompt-v2.txt', batch_size=2,
        )
        assert again.payloads == []
        assert stats['already_processed'] == 5

    def test_bad_batch_keeps_earlier_batches(self, tmp_path):
        songs = tmp_path / 'songs'
        write_song(songs, 'a.json', {'tags': ['a', 'b', 'c']})
        results_path = tmp_path / 'results.jsonl'

        def respond(payload):
            if payload['tags'] == ['c']:
                return 'I cannot answer that'
            return decide(payload)

        with pytest.raises(InvalidResponseError):
            run_blacklist_augmenter(
                BlacklistClassifier(FakeClient(respond), 'Decide.'), songs, tmp_path / 'blacklist.json',
                results_path, 'p', batch_size=2,
            )
        assert [r['tag'] for r in read_jsonl(results_path)] == ['a', 'b']
