#!/usr/bin/env python3
"""
Test suite for tagmap/responses.py - decoding model output
"""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from tagmap.responses import (
    decode_blacklist_response,
    decode_canonical_response,
    decode_compound_response,
    decode_hierarchy_response,
    extract_json,
    strip_code_fences,
)


class TestCodeFences:

    def test_json_fence(self):
        assert strip_code_fences('```json\n{"a": 1}\n```') == '{"a": 1}'

    def test_plain_fence(self):
        assert strip_code_fences('```\n[1]\n```') == '[1]'

    def test_no_fence(self):
        assert strip_code_fences('  {"a": 1} ') == '{"a": 1}'

    def test_single_line_fence(self):
        assert strip_code_fences('```json{"a": 1}```') == '{"a": 1}'

    def test_extract_from_prose(self):
        result = extract_json('Sure! Here it is: {"a": 1} Hope that helps.')
        assert result.ok
        assert result.value == {'a': 1}

    def test_array_in_prose_not_mistaken_for_object(self):
        result = extract_json('Here you go: [{"tag": "seen live"}] done.')
        assert result.ok
        assert result.value == [{'tag': 'seen live'}]

    def test_object_in_prose_containing_array(self):
        result = extract_json('Answer: {"parts": [{"text": "rock"}]}')
        assert result.value == {'parts': [{'text': 'rock'}]}

    def test_empty_response(self):
        assert not extract_json('').ok

    def test_garbage(self):
        result = extract_json('no json here')
        assert not result.ok
        assert 'not valid JSON' in result.error


class TestCompoundDecoding:

    def test_valid(self):
        raw = '```json\n{"parts": [{"text": "Hip Hop", "type": "style", "reason": "genre"},' \
              ' {"text": "lo-fi", "type": "DESCRIPTOR"}]}\n```'
        result = decode_compound_response(raw)
        assert result.ok
        assert [(s.text, s.kind) for s in result.value] == [('Hip Hop', 'style'), ('lo-fi', 'descriptor')]
        assert result.value[0].reason == 'genre'

    def test_missing_parts(self):
        result = decode_compound_response('{"segments": []}')
        assert not result.ok
        assert 'parts' in result.error

    def test_unknown_type(self):
        result = decode_compound_response('{"parts": [{"text": "x", "type": "mood"}]}')
        assert not result.ok
        assert "unknown type 'mood'" in result.error

    def test_not_an_object(self):
        assert not decode_compound_response('[1, 2]').ok

    def test_empty_text_dropped(self):
        result = decode_compound_response('{"parts": [{"text": " ", "type": "style"}]}')
        assert result.ok
        assert result.value == []


class TestCanonicalDecoding:

    def test_keep(self):
        result = decode_canonical_response('{"canonical_style": "Hip Hop", "action": "keep"}', 'hip hop')
        assert result.ok
        assert result.value.canonical_style == 'hip hop'
        assert result.value.action == 'keep'

    def test_keep_without_canonical_falls_back(self):
        result = decode_canonical_response('{"canonical_style": "", "action": "keep"}', 'shoegaze')
        assert result.value.canonical_style == 'shoegaze'

    def test_alias_requires_canonical(self):
        assert not decode_canonical_response('{"canonical_style": "", "action": "alias"}', 'hiphop').ok

    def test_reject_empty_canonical(self):
        result = decode_canonical_response('{"canonical_style": "", "action": "reject"}', 'x')
        assert result.ok
        assert result.value.canonical_style == ''

    def test_unknown_action(self):
        assert not decode_canonical_response('{"canonical_style": "a", "action": "merge"}', 'a').ok


class TestHierarchyDecoding:

    def test_subgenre(self):
        raw = '{"is_subgenre": true, "parent_genre": "Electronic", "reason": "downtempo"}'
        result = decode_hierarchy_response(raw, 'trip hop')
        assert result.ok
        assert result.value.is_subgenre is True
        assert result.value.parent_genre == 'electronic'

    def test_string_boolean(self):
        result = decode_hierarchy_response('{"is_subgenre": "false", "parent_genre": null}', 'rock')
        assert result.ok
        assert result.value.is_subgenre is False
        assert result.value.parent_genre == ''

    def test_non_boolean_rejected(self):
        assert not decode_hierarchy_response('{"is_subgenre": "maybe"}', 'rock').ok

    def test_non_string_parent_rejected(self):
        assert not decode_hierarchy_response('{"is_subgenre": true, "parent_genre": 3}', 'rock').ok

    def test_self_parent_becomes_genre(self):
        result = decode_hierarchy_response('{"is_subgenre": true, "parent_genre": "Rock"}', 'rock')
        assert result.ok
        assert result.value.is_subgenre is False
        assert result.value.parent_genre == ''

    def test_genre_parent_cleared(self):
        result = decode_hierarchy_response('{"is_subgenre": false, "parent_genre": "pop"}', 'rock')
        assert result.value.parent_genre == ''


class TestBlacklistDecoding:

    def test_array(self):
        raw = 'Result:\n[{"tag": "Seen Live", "decision": "BLACKLIST"}, {"tag": "rock", "decision": "whitelist"}]'
        result = decode_blacklist_response(raw)
        assert result.ok
        assert [(r['tag'], r['decision']) for r in result.value] == [
            ('seen live', 'blacklist'), ('rock', 'whitelist'),
        ]

    def test_single_item_array_in_prose(self):
        result = decode_blacklist_response('Here you go: [{"tag": "seen live", "decision": "blacklist"}]')
        assert result.ok
        assert [(r['tag'], r['decision']) for r in result.value] == [('seen live', 'blacklist')]

    def test_object_rejected(self):
        assert not decode_blacklist_response('{"tag": "x"}').ok

    def test_items_without_tag_dropped(self):
        result = decode_blacklist_response('[{"decision": "blacklist"}, "x"]')
        assert result.ok
        assert result.value == []
