"""
Paired-region and argument helper tests
"""

import pytest

from bladerunner.lib.regions import (
    PairedRegion,
    arguments_scan,
    arguments_split,
    name_unquote,
    literal_requote,
)


class TestPairedRegion:
    """Test region finding policies"""

    SOURCE = "@section('a')1@endsection@section('b')2@endsection"

    def test_all_matches_policy(self):
        matches = PairedRegion("section").matches_find(self.SOURCE)

        assert [m.argument for m in matches] == ["'a'", "'b'"]
        assert [m.body for m in matches] == ["1", "2"]

    def test_first_match_policy(self):
        matches = PairedRegion("section", multiple=False).matches_find(self.SOURCE)

        assert len(matches) == 1
        assert matches[0].argument == "'a'"
        assert matches[0].start == 0

    def test_match_offsets_cover_region(self):
        text = "x@section('a')Hi@endsectiony"
        match = PairedRegion("section").matches_find(text)[0]

        assert text[match.start:match.end] == "@section('a')Hi@endsection"

    def test_unclosed_region_not_found(self):
        assert PairedRegion("section").matches_find("@section('a') no end") == []

    def test_close_tag_needs_word_boundary(self):
        assert PairedRegion("section").matches_find("@section('a')x@endsections") == []

    def test_call_with_comma_is_not_an_opener(self):
        """@push('s', 'x') is the single-line form, never a block"""
        assert PairedRegion("push").matches_find("@push('s', 'x')\n@endpush") == []

    def test_regions_rewrite(self):
        text, count = PairedRegion("section").regions_rewrite(
            "<p>" + self.SOURCE + "</p>", lambda m: f"[{m.body}]"
        )
        assert text == "<p>[1][2]</p>"
        assert count == 2

    def test_regions_rewrite_without_matches(self):
        text, count = PairedRegion("slot").regions_rewrite("plain", lambda m: "x")
        assert (text, count) == ("plain", 0)

    def test_regions_remove(self):
        text, matches = PairedRegion("slot").regions_remove("a@slot('x')X@endslotb")

        assert text == "ab"
        assert matches[0].body == "X"

    def test_custom_closer(self):
        region = PairedRegion("verbatim", closer="stop")
        assert region.matches_find("@verbatim()raw@stop")[0].body == "raw"


class TestArgumentScan:
    """Test balanced argument scanning"""

    def test_nested_and_quoted_parentheses(self):
        text = "f('a)', (b))"
        assert arguments_scan(text, 1) == len(text) - 1

    def test_multiline(self):
        text = "(\n  [1,\n   2]\n)"
        assert arguments_scan(text, 0) == len(text) - 1

    def test_unclosed(self):
        assert arguments_scan("f((a)", 1) is None

    def test_escaped_quote(self):
        text = "('it\\'s )')"
        assert arguments_scan(text, 0) == len(text) - 1


class TestArgumentSplit:
    """Test top-level comma splitting"""

    def test_simple(self):
        assert arguments_split("'a', 'b', 'c'") == ["'a'", "'b'", "'c'"]

    def test_nested_commas_ignored(self):
        assert arguments_split("'card', ['a' => f(1, 2)]") == ["'card'", "['a' => f(1, 2)]"]

    def test_quoted_commas_ignored(self):
        assert arguments_split("'a,b', $c") == ["'a,b'", "$c"]

    def test_maxsplit(self):
        assert arguments_split("a, b, c", maxsplit=1) == ["a", "b, c"]

    def test_single(self):
        assert arguments_split("'nav'") == ["'nav'"]


class TestLiterals:
    """Test name unquoting and literal re-quoting"""

    @pytest.mark.parametrize("argument, expected", [
        ("'title'", "title"),
        ('"title"', "title"),
        (" 'cards.big' ", "cards.big"),
    ])
    def test_name_unquote(self, argument, expected):
        assert name_unquote(argument) == expected

    @pytest.mark.parametrize("value, expected", [
        ("'Hi'", '"Hi"'),
        ('"Hi"', '"Hi"'),
        ("'héllo'", '"héllo"'),
        ("$title", "$title"),
        ("strtoupper($a)", "strtoupper($a)"),
    ])
    def test_literal_requote(self, value, expected):
        assert literal_requote(value) == expected

    def test_undecodable_literal_returned_verbatim(self):
        """Malformed literals fail in PHP, not at compile time"""
        assert literal_requote("'a") == "'a"
