"""Phrase proximity scoring for multi-word queries.

Rewards records where the query terms appear close together within a single
field. An exact phrase in query order scores highest; nearby terms in any
order earn a smaller, decaying bonus.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence


MAX_SCATTER_RATIO = 3.0


def get_min_span(term_positions: Mapping[str, Sequence[int]]) -> float:
    """Calculate minimum span containing at least one of each term.

    The span is the number of positions from first to last term inclusive.
    For adjacent terms, span equals the number of terms.

    Args:
        term_positions: Dictionary mapping terms to their positions.

    Returns:
        Minimum span, or infinity if any term has no positions.
    """
    if not term_positions:
        return float("inf")

    position_lists = list(term_positions.values())
    if any(not positions for positions in position_lists):
        return float("inf")
    if len(position_lists) == 1:
        return 1.0

    min_span = float("inf")

    # Greedy: anchor on each position of the first term and take the closest
    # position of every other term.
    for anchor in position_lists[0]:
        span_positions = [anchor]
        for other_positions in position_lists[1:]:
            closest = min(other_positions, key=lambda p: abs(p - anchor))
            span_positions.append(closest)

        span = max(span_positions) - min(span_positions) + 1
        min_span = min(min_span, span)

    return min_span


def proximity_ratio(term_positions: Mapping[str, Sequence[int]], *, max_scatter: float = MAX_SCATTER_RATIO) -> float:
    """Return 1.0 for an exact phrase, decaying to 0.0 as terms scatter.

    Single-term inputs never earn a phrase bonus.
    """
    term_count = len(term_positions)
    if term_count < 2:
        return 0.0

    span = get_min_span(term_positions)
    if span == float("inf"):
        return 0.0
    if span <= term_count:
        return 1.0

    scatter_ratio = span / term_count
    if scatter_ratio >= max_scatter:
        return 0.0
    return 1.0 - (scatter_ratio - 1.0) / (max_scatter - 1.0)


def has_ordered_phrase(position_lists: Sequence[Sequence[int]]) -> bool:
    """Return True when the terms occur consecutively, in the given order."""
    if len(position_lists) < 2 or any(not positions for positions in position_lists):
        return False
    followers = [set(positions) for positions in position_lists[1:]]
    return any(
        all(anchor + offset in positions for offset, positions in enumerate(followers, start=1))
        for anchor in position_lists[0]
    )


def phrase_score(position_lists: Sequence[Sequence[int]]) -> float:
    """Score query-ordered term positions in ``[0, 1]``.

    An exact in-order phrase scores 1.0. Otherwise terms that merely sit close
    together earn at most half, decaying with scatter.
    """
    if has_ordered_phrase(position_lists):
        return 1.0
    term_positions = {str(idx): positions for idx, positions in enumerate(position_lists)}
    return 0.5 * proximity_ratio(term_positions)
