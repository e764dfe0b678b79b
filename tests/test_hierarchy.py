#!/usr/bin/env python3
"""
Test suite for tagmap/hierarchy.py - Stage 7 canonical stats and classification
"""

import json
import pytest
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from conftest import FakeClient, read_jsonl, write_jsonl
from tagmap.canonical import CanonicalResolver
from tagmap.errors import LedgerError
from tagmap.hierarchy import build_canonical_style_stats, run_hierarchy_stage
from tagmap.models import CanonicalStyleEntry, RawStyleEntry

RAW_STYLES = [
    {'style': 'hip hop', 'total_count': 20, 'tag_count': 3, 'example_tags': ['lo-fi hip-hop', 'hip hop']},
    {'style': 'trip hop', 'total_count': 8, 'tag_count': 2, 'example_tags': ['trip hop']},
    {'style': 'hiphop', 'total_count': 5, 'tag_count': 1, 'example_tags': ['hiphop', 'hip hop']},
    {'style': 'awesome', 'total_count': 4, 'tag_count': 1, 'example_tags': ['awesome']},
    {'style': 'unreviewed', 'total_count': 50, 'tag_count': 1, 'example_tags': ['unreviewed']},
]

CANONICAL_MAP = [
    {'style': 'hip hop', 'canonical_style': 'hip hop', 'action': 'keep', 'total_count': 20},
    {'style': 'trip hop', 'canonical_style': 'trip hop', 'action': 'keep', 'total_count': 8},
    {'style': 'hiphop', 'canonical_style': 'hip hop', 'action': 'alias', 'total_count': 5},
    {'style': 'awesome', 'canonical_style': '', 'action': 'reject', 'total_count': 4},
]


def make_resolver():
    return CanonicalResolver({r['style']: CanonicalStyleEntry.from_dict(r) for r in CANONICAL_MAP})


class TestCanonicalStyleStats:

    def test_sums_over_aliases(self):
        stats = build_canonical_style_stats([RawStyleEntry.from_dict(r) for r in RAW_STYLES], make_resolver())
        by_style = {s.canonical_style: s for s in stats}

        assert set(by_style) == {'hip hop', 'trip hop'}
        assert by_style['hip hop'].total_count == 25
        assert by_style['hip hop'].tag_count == 4
        assert by_style['hip hop'].example_tags == ['lo-fi hip-hop', 'hip hop', 'hiphop']
        assert [s.canonical_style for s in stats] == ['hip hop', 'trip hop']

    def test_example_cap(self):
        raw = [RawStyleEntry('hip hop', 1, 1, [f't{i}' for i in range(15)])]
        stats = build_canonical_style_stats(raw, make_resolver(), max_examples=10)
        assert len(stats[0].example_tags) == 10


class TestHierarchyStage:

    @pytest.fixture
    def inputs(self, tmp_path):
        raw_path = write_jsonl(tmp_path / 'styles.jsonl', RAW_STYLES)
        map_path = write_jsonl(tmp_path / 'map.jsonl', CANONICAL_MAP)
        return raw_path, map_path, tmp_path / 'hierarchy.jsonl'

    def test_classifies_canonical_styles(self, inputs):
        raw_path, map_path, output_path = inputs
        answers = {
            'hip hop': {'is_subgenre': False, 'parent_genre': None, 'reason': 'top level'},
            'trip hop': {'is_subgenre': True, 'parent_genre': 'Electronic', 'reason': 'downtempo'},
        }
        client = FakeClient(lambda p: json.dumps(answers[p['canonical_style']]))

        stats = run_hierarchy_stage(client, 'Classify.', raw_path, map_path, output_path)

        lines = read_jsonl(output_path)
        assert lines == [
            {'style': 'hip hop', 'total_count': 25, 'is_subgenre': False, 'parent_genre': '', 'reason': 'top level'},
            {'style': 'trip hop', 'total_count': 8, 'is_subgenre': True, 'parent_genre': 'electronic',
             'reason': 'downtempo'},
        ]
        assert stats['processed'] == 2
        assert stats['unmapped_raw_styles'] == 1
        assert client.payloads[0]['canonical_style'] == 'hip hop'

    def test_invalid_answer_skipped_by_default(self, inputs):
        raw_path, map_path, output_path = inputs

        def respond(payload):
            if payload['canonical_style'] == 'hip hop':
                return '{"is_subgenre": "perhaps"}'
            return '{"is_subgenre": true, "parent_genre": "electronic"}'

        stats = run_hierarchy_stage(FakeClient(respond), 'Classify.', raw_path, map_path, output_path)

        assert [l['style'] for l in read_jsonl(output_path)] == ['trip hop']
        assert stats['invalid_responses'] == 1

    def test_missing_canonical_map(self, tmp_path):
        raw_path = write_jsonl(tmp_path / 'styles.jsonl', RAW_STYLES)
        with pytest.raises(LedgerError):
            run_hierarchy_stage(FakeClient(lambda p: ''), 'x', raw_path, tmp_path / 'missing.jsonl',
                                tmp_path / 'out.jsonl')
