#!/usr/bin/env python3
"""
Test suite for tagmap/canonical.py - Stage 6 canonicalization and alias resolution
"""

import json
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from conftest import FakeClient, read_jsonl, write_jsonl
from tagmap.canonical import CanonicalResolver, load_canonical_map, run_canonical_stage
from tagmap.models import CanonicalStyleEntry


def entry(style, canonical, action):
    return CanonicalStyleEntry(style=style, canonical_style=canonical, action=action, total_count=1)


def resolver(*entries):
    return CanonicalResolver({e.style: e for e in entries})


class TestCanonicalResolver:

    def test_keep(self):
        r = resolver(entry('hip hop', 'hip hop', 'keep'))
        assert r.resolve('hip hop') == 'hip hop'

    def test_alias(self):
        r = resolver(entry('hiphop', 'hip hop', 'alias'), entry('hip hop', 'hip hop', 'keep'))
        assert r.resolve('hiphop') == 'hip hop'

    def test_reject(self):
        r = resolver(entry('awesome', '', 'reject'))
        assert r.resolve('awesome') is None
        assert r.is_rejected('awesome')

    def test_unknown_resolves_to_itself(self):
        assert resolver().resolve('Shoegaze') == 'shoegaze'

    def test_alias_chain_followed(self):
        r = resolver(
            entry('hip-hop', 'hiphop', 'alias'),
            entry('hiphop', 'hip hop', 'alias'),
            entry('hip hop', 'hip hop', 'keep'),
        )
        assert r.resolve('hip-hop') == 'hip hop'
        assert r.chain('hip-hop') == ['hip-hop', 'hiphop', 'hip hop']

    def test_alias_to_unmapped_target(self):
        r = resolver(entry('dnb', 'drum and bass', 'alias'))
        assert r.resolve('dnb') == 'drum and bass'

    def test_alias_onto_rejected_style(self):
        r = resolver(entry('xx', 'junk', 'alias'), entry('junk', '', 'reject'))
        assert r.resolve('xx') is None

    def test_cycle_terminates_consistently(self):
        r = resolver(entry('synth pop', 'synthpop', 'alias'), entry('synthpop', 'synth pop', 'alias'))
        assert r.resolve('synth pop') == 'synth pop'
        assert r.resolve('synthpop') == 'synth pop'
        assert len(r.cycles) == 1


class TestLoadCanonicalMap:

    def test_first_line_wins(self, tmp_path):
        path = write_jsonl(tmp_path / 'map.jsonl', [
            {'style': 'rock', 'canonical_style': 'rock', 'action': 'keep'},
            {'style': 'rock', 'canonical_style': '', 'action': 'reject'},
        ])
        assert load_canonical_map(path)['rock'].action == 'keep'


class TestCanonicalStage:

    def test_resumable_with_skips(self, tmp_path):
        input_path = write_jsonl(tmp_path / 'styles.jsonl', [
            {'style': 'hip hop', 'total_count': 20, 'tag_count': 3, 'example_tags': ['lo-fi hip-hop']},
            {'style': 'hiphop', 'total_count': 5, 'tag_count': 1, 'example_tags': []},
            {'style': 'awesome', 'total_count': 2, 'tag_count': 1, 'example_tags': []},
        ])
        output_path = tmp_path / 'map.jsonl'
        answers = {
            'hip hop': {'canonical_style': 'hip hop', 'action': 'keep', 'reason': 'standard'},
            'hiphop': {'canonical_style': 'Hip Hop', 'action': 'alias', 'reason': 'spelling'},
            'awesome': 'not json at all',
        }

        def respond(payload):
            answer = answers[payload['style']]
            return answer if isinstance(answer, str) else json.dumps(answer)

        client = FakeClient(respond)
        stats = run_canonical_stage(client, 'Canonicalize.', input_path, output_path)

        lines = read_jsonl(output_path)
        assert [(l['style'], l['canonical_style'], l['action']) for l in lines] == [
            ('hip hop', 'hip hop', 'keep'),
            ('hiphop', 'hip hop', 'alias'),
        ]
        assert lines[0]['total_count'] == 20
        assert stats['invalid_responses'] == 1
        assert stats['action_keep'] == 1
        assert stats['action_alias'] == 1
        assert client.payloads[0]['example_tags'] == ['lo-fi hip-hop']

        # The skipped style is retried on the next run
        answers['awesome'] = {'canonical_style': '', 'action': 'reject', 'reason': 'not a style'}
        retry = FakeClient(respond)
        stats = run_canonical_stage(retry, 'Canonicalize.', input_path, output_path)
        assert [p['style'] for p in retry.payloads] == ['awesome']
        assert stats['action_reject'] == 1
        assert len(read_jsonl(output_path)) == 3
