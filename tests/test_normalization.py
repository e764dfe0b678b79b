#!/usr/bin/env python3
"""
Test suite for tagmap/normalization.py - tag keys must be stable and idempotent
"""

import pytest
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from tagmap.normalization import dedupe_preserve_order, normalize_tag, normalize_tag_list


class TestNormalizeTag:
    """Case, whitespace and unicode compatibility forms"""

    def test_lowercases(self):
        assert normalize_tag("Hip-Hop") == "hip-hop"

    def test_collapses_whitespace(self):
        assert normalize_tag("  ROCK   music ") == "rock music"

    def test_tabs_and_newlines(self):
        assert normalize_tag("post\trock\n") == "post rock"

    def test_full_width_characters(self):
        # NFKC folds full-width latin letters
        assert normalize_tag("ＲＯＣＫ") == "rock"

    def test_casefold_sharp_s(self):
        assert normalize_tag("Straße") == "strasse"

    def test_empty(self):
        assert normalize_tag("") == ""
        assert normalize_tag("   ") == ""

    def test_punctuation_kept(self):
        assert normalize_tag("R&B") == "r&b"
        assert normalize_tag("Lo-Fi Hip-Hop") == "lo-fi hip-hop"


class TestIdempotence:
    """normalize_tag(normalize_tag(s)) == normalize_tag(s)"""

    @pytest.mark.parametrize("value", [
        "Lo-Fi Hip-Hop",
        "  ROCK   music ",
        "ＲＯＣＫ",
        "Straße",
        "ǅ",
        "ﬁlm score",
        "Ⅻ",
        "",
    ])
    def test_idempotent(self, value):
        once = normalize_tag(value)
        assert normalize_tag(once) == once


class TestListHelpers:

    def test_normalize_list_drops_empty(self):
        assert normalize_tag_list(["Rock", "  ", "Jazz "]) == ["rock", "jazz"]

    def test_dedupe_keeps_first_seen_order(self):
        assert dedupe_preserve_order(["b", "a", "b", "c", "a"]) == ["b", "a", "c"]
