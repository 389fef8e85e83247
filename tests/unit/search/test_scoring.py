"""Unit tests for tiered record scoring."""

import pytest

from documenter_search.search.models import Posting
from documenter_search.search.scoring import (
    DEFAULT_WEIGHTS,
    MatchKind,
    ScoringWeights,
    TermMatch,
    field_relevance,
    score_record,
)


def _match(term: str, kind: MatchKind = MatchKind.EXACT, relevance: float = 1.0) -> TermMatch:
    return TermMatch(query_term=term, index_term=term, kind=kind, relevance=relevance)


@pytest.mark.unit
class TestScoringWeights:
    def test_default_units(self):
        assert DEFAULT_WEIGHTS.relevance_ceiling == 8.0
        assert DEFAULT_WEIGHTS.bonus_ceiling == pytest.approx(1.0)
        assert DEFAULT_WEIGHTS.exact_unit == pytest.approx(9.0)
        assert DEFAULT_WEIGHTS.coverage_unit(1) == pytest.approx(18.0)
        assert DEFAULT_WEIGHTS.coverage_unit(2) == pytest.approx(27.0)

    def test_bonus_shrinks_with_term_count(self):
        assert DEFAULT_WEIGHTS.bonus(1, phrase_ratio=1.0, is_page=True) == pytest.approx(1.0)
        assert DEFAULT_WEIGHTS.bonus(4, phrase_ratio=1.0, is_page=True) == pytest.approx(0.25)
        assert DEFAULT_WEIGHTS.bonus(1, phrase_ratio=0.0, is_page=True) == pytest.approx(0.2)
        assert DEFAULT_WEIGHTS.bonus(2, phrase_ratio=0.0, is_page=False) == 0.0

    def test_bonus_without_bonus_weights(self):
        weights = ScoringWeights(phrase_bonus=0.0, page_bonus=0.0)

        assert weights.bonus(1, phrase_ratio=1.0, is_page=True) == 0.0

    def test_discounts(self):
        assert DEFAULT_WEIGHTS.discount(MatchKind.EXACT) == 1.0
        assert DEFAULT_WEIGHTS.discount(MatchKind.PREFIX) == 0.8
        assert DEFAULT_WEIGHTS.discount(MatchKind.FUZZY) == 0.5

    @pytest.mark.parametrize(
        ("overrides", "message"),
        [
            ({"text_weight": 0}, "text_weight must be positive"),
            ({"phrase_bonus": -1}, "phrase_bonus must not be negative"),
            ({"fuzzy_discount": 0.9}, "Discounts"),
            ({"prefix_discount": 1.0}, "Discounts"),
            ({"title_weight": 3.0}, "title_weight must exceed"),
        ],
    )
    def test_rejects_inconsistent_weights(self, overrides, message):
        with pytest.raises(ValueError, match=message):
            ScoringWeights(**overrides)


@pytest.mark.unit
class TestFieldRelevance:
    def test_title_and_page_count_by_presence(self):
        once = Posting(record_id=0, title_positions=(0,), page_positions=(0,))
        twice = Posting(record_id=0, title_positions=(0, 2), page_positions=(0, 1))

        assert field_relevance(once) == field_relevance(twice) == 7.0

    def test_text_saturates(self):
        assert field_relevance(Posting(record_id=0, text_positions=(1,))) == pytest.approx(0.5)
        assert field_relevance(Posting(record_id=0, text_positions=(1, 2, 3))) == pytest.approx(0.75)

    def test_title_beats_every_weaker_field(self):
        title_only = Posting(record_id=0, title_positions=(0,))
        everything_else = Posting(record_id=1, page_positions=(0,), text_positions=tuple(range(50)))

        assert field_relevance(title_only) > field_relevance(everything_else) + DEFAULT_WEIGHTS.page_bonus


@pytest.mark.unit
class TestScoreRecord:
    def test_no_matches_scores_zero(self):
        assert score_record({}, query_term_count=2, is_page=True) == 0.0

    def test_single_exact_match(self):
        score = score_record({"solver": _match("solver", relevance=5.0)}, query_term_count=1, is_page=False)

        assert score == pytest.approx(18.0 + 9.0 + 5.0)

    def test_page_bonus(self):
        matches = {"solver": _match("solver", relevance=5.0)}

        section = score_record(matches, query_term_count=1, is_page=False)
        page = score_record(matches, query_term_count=1, is_page=True)

        assert page - section == pytest.approx(0.2)

    def test_coverage_dominates_relevance(self):
        weak_but_complete = {
            "reaction": _match("reaction", MatchKind.FUZZY, 0.25),
            "network": _match("network", MatchKind.FUZZY, 0.25),
        }
        strong_but_partial = {"reaction": _match("reaction", relevance=8.0)}

        assert score_record(weak_but_complete, query_term_count=2, is_page=False) > score_record(
            strong_but_partial, query_term_count=2, is_page=True, phrase_ratio=1.0
        )

    def test_exact_beats_prefix(self):
        exact = {"react": _match("react", relevance=0.5)}
        prefix = {"react": TermMatch("react", "reaction", MatchKind.PREFIX, 8.0 * 0.8)}

        assert score_record(exact, query_term_count=1, is_page=False) > score_record(
            prefix, query_term_count=1, is_page=True
        )

    def test_phrase_ratio_is_clamped(self):
        matches = {"a": _match("a"), "b": _match("b")}

        clamped = score_record(matches, query_term_count=2, is_page=False, phrase_ratio=5.0)
        full = score_record(matches, query_term_count=2, is_page=False, phrase_ratio=1.0)

        assert clamped == full

    @pytest.mark.parametrize("term_count", [2, 4, 8, 20])
    def test_bonuses_never_outweigh_title_evidence(self, term_count):
        in_title = Posting(record_id=0, title_positions=(0,))
        in_page_and_text = Posting(record_id=1, page_positions=(0,), text_positions=tuple(range(100)))
        others = {f"t{i}": _match(f"t{i}", relevance=0.5) for i in range(1, term_count)}

        title_record = score_record(
            {"foo": _match("foo", MatchKind.FUZZY, 0.5 * field_relevance(in_title)), **others},
            query_term_count=term_count,
            is_page=False,
        )
        bonus_record = score_record(
            {"foo": _match("foo", MatchKind.FUZZY, 0.5 * field_relevance(in_page_and_text)), **others},
            query_term_count=term_count,
            is_page=True,
            phrase_ratio=1.0,
        )

        assert title_record > bonus_record
