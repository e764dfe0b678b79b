#!/usr/bin/env python3
"""
Test suite for tagmap/aggregator.py - Stage 2 reduction
"""

import pytest
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from conftest import read_jsonl, write_jsonl
from tagmap.aggregator import aggregate_tags, run_aggregate_stage
from tagmap.errors import LedgerError


def raw(entity_id, raw_tag, normalized, source='lastfm:tags'):
    return {'entity_id': entity_id, 'raw_tag': raw_tag, 'normalized': normalized, 'source': source}


RECORDS = [
    raw('s1', 'Hip-Hop', 'hip-hop'),
    raw('s1', 'hip-hop', 'hip-hop', 'musicbrainz:genres'),
    raw('s2', 'HIP-HOP', 'hip-hop'),
    raw('s2', 'Jazz', 'jazz'),
    raw('s3', 'Hip-Hop', 'hip-hop'),
]


class TestAggregateTags:

    def test_counts(self):
        entries = {e.normalized: e for e in aggregate_tags(RECORDS)}
        hip_hop = entries['hip-hop']
        assert hip_hop.total_count == 4
        assert hip_hop.entity_count == 3
        assert hip_hop.source_counts == {'lastfm:tags': 3, 'musicbrainz:genres': 1}
        assert hip_hop.example_raw_tags == ['Hip-Hop', 'hip-hop', 'HIP-HOP']

    def test_first_seen_order(self):
        assert [e.normalized for e in aggregate_tags(RECORDS)] == ['hip-hop', 'jazz']

    def test_example_cap(self):
        records = [raw('s', f'Rock{i}', 'rock') for i in range(8)]
        entry = aggregate_tags(records, max_examples=5)[0]
        assert entry.example_raw_tags == ['Rock0', 'Rock1', 'Rock2', 'Rock3', 'Rock4']

    def test_missing_normalized_skipped(self):
        entries = aggregate_tags([{'entity_id': 's1', 'raw_tag': 'x'}, raw('s1', 'Rock', 'rock')])
        assert [e.normalized for e in entries] == ['rock']

    def test_pure(self):
        assert [e.to_dict() for e in aggregate_tags(RECORDS)] == [e.to_dict() for e in aggregate_tags(RECORDS)]


class TestAggregateStage:

    def test_rewrites_output(self, tmp_path):
        input_path = write_jsonl(tmp_path / 'raw.jsonl', RECORDS)
        output_path = tmp_path / 'normalized.jsonl'
        write_jsonl(output_path, [{'normalized': 'stale', 'total_count': 99}])

        stats = run_aggregate_stage(input_path, output_path)

        lines = read_jsonl(output_path)
        assert [l['normalized'] for l in lines] == ['hip-hop', 'jazz']
        assert stats['raw_records'] == 5
        assert stats['unique_tags'] == 2

    def test_missing_input(self, tmp_path):
        with pytest.raises(LedgerError):
            run_aggregate_stage(tmp_path / 'missing.jsonl', tmp_path / 'out.jsonl')
