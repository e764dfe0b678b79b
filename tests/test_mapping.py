#!/usr/bin/env python3
"""
Test suite for tagmap/mapping.py - Stage 9 expansion file
"""

import json
import sys
from datetime import datetime, timezone
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from conftest import write_jsonl
from tagmap.mapping import build_expanded_mappings, run_mapping_stage
from tagmap.models import TagStyleMapEntry


class TestExpandedMappings:

    def test_styles_then_parents_deduped(self):
        mappings = build_expanded_mappings([
            TagStyleMapEntry('trip-hop', 4, ['trip hop'], ['electronic']),
            TagStyleMapEntry('hip hop', 9, ['hip hop'], ['hip hop']),
        ])
        assert mappings == {'trip-hop': ['trip hop', 'electronic'], 'hip hop': ['hip hop']}

    def test_empty_expansions_dropped(self):
        mappings = build_expanded_mappings([TagStyleMapEntry('chill', 3, [], [], ['chill'])])
        assert mappings == {}

    def test_duplicate_keys_merged(self):
        mappings = build_expanded_mappings([
            TagStyleMapEntry('x', 1, ['rock'], ['rock']),
            TagStyleMapEntry('x', 1, ['punk'], ['rock']),
        ])
        assert mappings == {'x': ['rock', 'punk']}


class TestMappingStage:

    def test_writes_file(self, tmp_path):
        input_path = write_jsonl(tmp_path / 'tag-style-map.jsonl', [
            TagStyleMapEntry('lo-fi hip-hop', 10, ['hip hop'], ['hip hop'], ['lo-fi']).to_dict(),
            TagStyleMapEntry('nothing', 1).to_dict(),
        ])
        output_path = tmp_path / 'assets' / 'tag-expanded-mappings.json'
        now = datetime(2026, 1, 2, 3, 4, 5, tzinfo=timezone.utc)

        stats = run_mapping_stage(input_path, output_path, now=now)

        data = json.loads(output_path.read_text(encoding='utf-8'))
        assert data['updated_at'] == '2026-01-02T03:04:05+00:00'
        assert data['mappings'] == {'lo-fi hip-hop': ['hip hop']}
        assert stats['mappings'] == 1
        assert stats['dropped_empty'] == 1
