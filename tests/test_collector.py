#!/usr/bin/env python3
"""
Test suite for tagmap/collector.py - Stage 1 tag collection and blacklist routing
"""

import json
import pytest
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from conftest import read_jsonl
from tagmap.collector import collect_tags, extract_tags, get_entity_id, load_blacklist, split_by_blacklist
from tagmap.errors import LedgerError


def write_song(songs_dir: Path, name: str, data) -> Path:
    songs_dir.mkdir(parents=True, exist_ok=True)
    path = songs_dir / name
    path.write_text(json.dumps(data), encoding='utf-8')
    return path


class TestLoadBlacklist:

    def test_object_format(self, tmp_path):
        path = tmp_path / 'blacklist.json'
        path.write_text(json.dumps({'blacklistedTags': ['Seen Live', ' FAVORITES '], 'model': 'x'}))
        assert load_blacklist(path) == frozenset({'seen live', 'favorites'})

    def test_bare_list(self, tmp_path):
        path = tmp_path / 'blacklist.json'
        path.write_text(json.dumps(['Seen Live']))
        assert load_blacklist(path) == frozenset({'seen live'})

    def test_missing_file_is_empty(self, tmp_path):
        assert load_blacklist(tmp_path / 'missing.json') == frozenset()

    def test_invalid_json_raises(self, tmp_path):
        path = tmp_path / 'blacklist.json'
        path.write_text('{broken')
        with pytest.raises(LedgerError):
            load_blacklist(path)


class TestExtractTags:

    def test_all_sources_in_order(self):
        data = {
            'tags': ['Chill'],
            'lastfm': {'tags': ['Lo-Fi Hip-Hop', '']},
            'musicbrainz': {
                'artistTags': [{'name': 'hip hop', 'count': 3}],
                'genres': ['Hip Hop'],
            },
        }
        assert extract_tags(data) == [
            ('Chill', 'local'),
            ('Lo-Fi Hip-Hop', 'lastfm:tags'),
            ('hip hop', 'musicbrainz:artistTags'),
            ('Hip Hop', 'musicbrainz:genres'),
        ]

    def test_non_dict_container_ignored(self):
        assert extract_tags({'lastfm': ['rock'], 'musicbrainz': None}) == []

    def test_custom_sources(self):
        data = {'spotify': {'genres': ['indie']}}
        assert extract_tags(data, [('spotify', 'genres', 'spotify')]) == [('indie', 'spotify')]

    def test_entity_id_fallback(self, tmp_path):
        assert get_entity_id(tmp_path / 'song-1.json', {'id': ' abc '}) == 'abc'
        assert get_entity_id(tmp_path / 'song-1.json', {'id': ''}) == 'song-1'
        assert get_entity_id(tmp_path / 'song-1.json', {}) == 'song-1'


class TestBlacklistRouting:

    def test_split(self):
        kept, removed = split_by_blacklist(
            's1', [('Rock', 'local'), ('Seen Live', 'lastfm:tags')], frozenset({'seen live'})
        )
        assert [r.normalized for r in kept] == ['rock']
        assert [r.normalized for r in removed] == ['seen live']
        assert removed[0].raw_tag == 'Seen Live'
        assert removed[0].entity_id == 's1'

    def test_collect_routes_every_occurrence(self, tmp_path):
        songs = tmp_path / 'songs'
        write_song(songs, 'a.json', {'id': 'a', 'lastfm': {'tags': ['Rock', 'Seen Live']}})
        write_song(songs, 'b.json', {'lastfm': {'tags': ['seen   live', 'Jazz']}})
        (songs / 'broken.json').write_text('{nope', encoding='utf-8')
        (songs / 'notes.txt').write_text('ignored', encoding='utf-8')

        raw_path = tmp_path / 'data' / 'raw.jsonl'
        removed_path = tmp_path / 'data' / 'removed.jsonl'
        stats = collect_tags(songs, frozenset({'seen live'}), raw_path, removed_path)

        raw = read_jsonl(raw_path)
        removed = read_jsonl(removed_path)
        assert [(r['entity_id'], r['normalized']) for r in raw] == [('a', 'rock'), ('b', 'jazz')]
        assert [(r['entity_id'], r['raw_tag']) for r in removed] == [('a', 'Seen Live'), ('b', 'seen   live')]
        assert all(r['normalized'] not in {'seen live'} for r in raw)
        assert stats['files'] == 3
        assert stats['skipped_files'] == 1
        assert stats['kept'] == 2
        assert stats['removed'] == 2

    def test_collect_truncates_previous_output(self, tmp_path):
        songs = tmp_path / 'songs'
        write_song(songs, 'a.json', {'tags': ['rock']})
        raw_path = tmp_path / 'raw.jsonl'
        removed_path = tmp_path / 'removed.jsonl'
        collect_tags(songs, frozenset(), raw_path, removed_path)
        collect_tags(songs, frozenset(), raw_path, removed_path)
        assert len(read_jsonl(raw_path)) == 1

    def test_missing_songs_dir(self, tmp_path):
        with pytest.raises(LedgerError):
            collect_tags(tmp_path / 'nope', frozenset(), tmp_path / 'r.jsonl', tmp_path / 'x.jsonl')
