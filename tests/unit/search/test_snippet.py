"""Unit tests for excerpt windows and highlighting."""

import pytest

from documenter_search.search.analyzers import StandardAnalyzer
from documenter_search.search.snippet import build_excerpt, excerpt_window, find_match_spans, highlight_spans


@pytest.fixture
def analyzer():
    return StandardAnalyzer()


@pytest.mark.unit
class TestFindMatchSpans:
    def test_spans_are_whole_tokens(self, analyzer):
        text = "Reaction networks and reactions"

        assert find_match_spans(text, {"reaction"}, analyzer) == [(0, 8)]
        assert find_match_spans(text, {"reaction", "reactions"}, analyzer) == [(0, 8), (22, 31)]

    def test_no_terms_or_text(self, analyzer):
        assert find_match_spans("", {"a"}, analyzer) == []
        assert find_match_spans("text", set(), analyzer) == []


@pytest.mark.unit
class TestExcerptWindow:
    def test_short_text_is_returned_whole(self):
        assert excerpt_window("short text", [(0, 5)], 40) == (0, 10)

    def test_empty_text(self):
        assert excerpt_window("", [], 40) == (0, 0)

    def test_without_spans_starts_at_beginning(self):
        text = "word " * 20

        start, end = excerpt_window(text, [], 42)

        assert start == 0
        assert end <= 42
        assert text[end].isspace()

    def test_end_snaps_back_to_whitespace(self):
        text = "alpha " + "b" * 31 + " alpha" + " zz" * 20

        assert excerpt_window(text, [(0, 5), (38, 43)], 40) == (0, 37)

    def test_edge_never_cuts_a_matched_token(self):
        text = "alpha," + "b" * 31 + ",alpha" + ",zz" * 20

        assert excerpt_window(text, [(0, 5), (38, 43)], 40) == (0, 38)

    def test_start_snaps_to_sentence(self):
        text = "A" * 50 + ". Second sentence has the needle inside it and more words follow here." + " pad" * 30
        needle = text.index("needle")

        start, end = excerpt_window(text, [(needle, needle + 6)], 60)

        assert start == 52
        assert text[start:].startswith("Second")
        assert start <= needle < needle + 6 <= end
        assert end - start <= 60

    def test_oversized_token_is_returned_alone(self):
        text = "prefix " + "x" * 80 + " suffix" * 10

        assert excerpt_window(text, [(7, 87)], 40) == (7, 87)


@pytest.mark.unit
class TestHighlightSpans:
    def test_plain_markers(self):
        assert highlight_spans("getting started guide", [(16, 21)]) == "getting started [[guide]]"

    def test_html_escapes_surrounding_text(self):
        assert highlight_spans("a <b> guide", [(6, 11)], style="html") == "a &lt;b&gt; <mark>guide</mark>"

    def test_overlapping_spans_are_merged_to_first(self):
        assert highlight_spans("abcdef", [(0, 4), (2, 6)]) == "[[abcd]]ef"

    def test_max_highlights(self):
        assert highlight_spans("a a a", [(0, 1), (2, 3), (4, 5)], max_highlights=2) == "[[a]] [[a]] a"


@pytest.mark.unit
class TestBuildExcerpt:
    def test_highlights_text_match(self, analyzer):
        excerpt = build_excerpt("getting started guide", "Intro", {"guide"}, analyzer)

        assert excerpt == "getting started [[guide]]"

    def test_long_text_is_trimmed_around_match(self, analyzer):
        text = " ".join(["filler"] * 60) + " the needle sits here " + " ".join(["padding"] * 60)

        excerpt = build_excerpt(text, "Title", {"needle"}, analyzer, max_chars=160)

        assert "[[needle]]" in excerpt
        assert len(excerpt.replace("[[", "").replace("]]", "")) <= 160
        assert not excerpt.startswith(" ")
        assert not excerpt.endswith(" ")

    def test_falls_back_to_title(self, analyzer):
        assert build_excerpt("", "API Reference", {"reference"}, analyzer) == "API [[Reference]]"

    def test_no_match_anywhere(self, analyzer):
        assert build_excerpt("functions and types", "API", {"guide"}, analyzer) == ""

    def test_html_style(self, analyzer):
        excerpt = build_excerpt("use <b> guide here", "T", {"guide"}, analyzer, style="html")

        assert excerpt == "use &lt;b&gt; <mark>guide</mark> here"
