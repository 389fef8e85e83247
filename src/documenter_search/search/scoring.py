"""Relevance scoring for documentation records.

Scores are a single float built from tiers so that ordering is lexicographic:

1. coverage - how many distinct query terms the record matched at all;
2. exactness - how many query terms matched exactly rather than by prefix
   or fuzzy expansion;
3. relevance - field-weighted evidence per term, averaged over the query;
4. bonuses - phrase proximity and the page-over-section tie-break.

Each tier's unit is larger than the maximum contribution of every tier below
it, so a lower tier can only reorder records that tie on all higher tiers.
Relevance is averaged over the query, so bonuses shrink with the term count:
for an n-term query they never reach the smallest relevance gap a title hit
opens over page and text hits for one term, ``fuzzy_discount * (title_weight -
page_weight - text_weight) / n``.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum

from documenter_search.search.models import Posting


class MatchKind(str, Enum):
    """How a query term reached a record."""

    EXACT = "exact"
    PREFIX = "prefix"
    FUZZY = "fuzzy"


@dataclass(frozen=True)
class ScoringWeights:
    """Field weights, match discounts and bonuses.

    ``title_weight`` must exceed ``page_weight + text_weight + page_bonus`` so a
    title hit always beats any combination of weaker fields for the same term.
    """

    title_weight: float = 5.0
    page_weight: float = 2.0
    text_weight: float = 1.0
    prefix_discount: float = 0.8
    fuzzy_discount: float = 0.5
    page_bonus: float = 0.25
    phrase_bonus: float = 1.0

    def __post_init__(self) -> None:
        for name in ("title_weight", "page_weight", "text_weight"):
            if getattr(self, name) <= 0:
                msg = f"{name} must be positive"
                raise ValueError(msg)
        for name in ("page_bonus", "phrase_bonus"):
            if getattr(self, name) < 0:
                msg = f"{name} must not be negative"
                raise ValueError(msg)
        if not 0 < self.fuzzy_discount <= self.prefix_discount < 1:
            msg = "Discounts must satisfy 0 < fuzzy_discount <= prefix_discount < 1"
            raise ValueError(msg)
        if self.title_weight <= self.page_weight + self.text_weight + self.page_bonus:
            msg = "title_weight must exceed page_weight + text_weight + page_bonus"
            raise ValueError(msg)

    @property
    def relevance_ceiling(self) -> float:
        """Upper bound of the per-term field relevance."""
        return self.title_weight + self.page_weight + self.text_weight

    @property
    def bonus_ceiling(self) -> float:
        """Largest bonus a one-term query can earn; n-term queries get a 1/n share."""
        return self.fuzzy_discount * (self.title_weight - self.page_weight - self.text_weight)

    @property
    def exact_unit(self) -> float:
        return self.relevance_ceiling + self.bonus_ceiling

    def coverage_unit(self, query_term_count: int) -> float:
        """Value of one matched query term; exceeds every exactness and relevance gain."""
        return (query_term_count + 1) * self.exact_unit

    def bonus(self, query_term_count: int, *, phrase_ratio: float, is_page: bool) -> float:
        """Scaled phrase and page bonus, at most ``bonus_ceiling / query_term_count``."""
        full = self.phrase_bonus + self.page_bonus
        if full <= 0 or query_term_count <= 0:
            return 0.0
        earned = max(0.0, min(phrase_ratio, 1.0)) * self.phrase_bonus
        if is_page:
            earned += self.page_bonus
        return self.bonus_ceiling / query_term_count * earned / full

    def discount(self, kind: MatchKind) -> float:
        if kind is MatchKind.EXACT:
            return 1.0
        if kind is MatchKind.PREFIX:
            return self.prefix_discount
        return self.fuzzy_discount


DEFAULT_WEIGHTS = ScoringWeights()


@dataclass(frozen=True)
class TermMatch:
    """Best evidence for one query term within one record."""

    query_term: str
    index_term: str
    kind: MatchKind
    relevance: float


def field_relevance(posting: Posting, weights: ScoringWeights = DEFAULT_WEIGHTS) -> float:
    """Return the undiscounted field-weighted evidence carried by a posting.

    Title and page are short heading-like fields, so presence is what counts.
    Body text saturates with term frequency (``tf / (tf + 1)``).
    """
    relevance = 0.0
    if posting.title_count:
        relevance += weights.title_weight
    if posting.page_count:
        relevance += weights.page_weight
    if posting.text_count:
        tf = posting.text_count
        relevance += weights.text_weight * tf / (tf + 1)
    return relevance


def score_record(
    matches: Mapping[str, TermMatch],
    *,
    query_term_count: int,
    is_page: bool,
    phrase_ratio: float = 0.0,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
) -> float:
    """Combine per-term matches into the final record score."""

    if not matches or query_term_count <= 0:
        return 0.0

    coverage = len(matches)
    exact = sum(1 for match in matches.values() if match.kind is MatchKind.EXACT)
    relevance = sum(match.relevance for match in matches.values()) / query_term_count

    score = coverage * weights.coverage_unit(query_term_count) + exact * weights.exact_unit + relevance
    return score + weights.bonus(query_term_count, phrase_ratio=phrase_ratio, is_page=is_page)
