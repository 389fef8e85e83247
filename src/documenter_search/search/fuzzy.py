"""Typo-tolerant term matching.

Only used as a last resort for query terms that hit nothing exactly and are
not a prefix of any title token.

Edit budget by term length:
- 1-2 chars: none
- 3-5 chars: 1 edit
- 6+ chars: 2 edits
"""

from __future__ import annotations

from collections.abc import Iterable


def levenshtein_distance(s1: str, s2: str, max_distance: int | None = None) -> int:
    """Return the edit distance between two strings.

    When ``max_distance`` is given the computation stops early and returns
    ``max_distance + 1`` as soon as the budget is exceeded.

    Examples:
        >>> levenshtein_distance("kitten", "sitting")
        3
        >>> levenshtein_distance("", "abc")
        3
    """
    if not s1:
        return len(s2)
    if not s2:
        return len(s1)

    if len(s1) > len(s2):
        s1, s2 = s2, s1

    m, n = len(s1), len(s2)

    if max_distance is not None and n - m > max_distance:
        return max_distance + 1

    prev_row = list(range(m + 1))
    curr_row = [0] * (m + 1)

    for j in range(1, n + 1):
        curr_row[0] = j
        row_min = j
        for i in range(1, m + 1):
            cost = 0 if s1[i - 1] == s2[j - 1] else 1
            curr_row[i] = min(
                prev_row[i] + 1,  # deletion
                curr_row[i - 1] + 1,  # insertion
                prev_row[i - 1] + cost,  # substitution
            )
            row_min = min(row_min, curr_row[i])

        if max_distance is not None and row_min > max_distance:
            return max_distance + 1

        prev_row, curr_row = curr_row, prev_row

    return prev_row[m]


def get_max_edit_distance(term_length: int) -> int:
    """Return the edit budget for a term of the given length."""
    if term_length <= 2:
        return 0
    if term_length <= 5:
        return 1
    return 2


def find_fuzzy_matches(
    query_term: str,
    vocabulary: Iterable[str],
    max_distance: int | None = None,
    *,
    limit: int = 3,
) -> list[tuple[str, int]]:
    """Return near-miss vocabulary terms for ``query_term``.

    Exact matches are excluded. Results are ``(term, distance)`` pairs sorted by
    distance then alphabetically, truncated to ``limit``.
    """
    if not query_term or limit <= 0:
        return []

    if max_distance is None:
        max_distance = get_max_edit_distance(len(query_term))
    if max_distance <= 0:
        return []

    matches: list[tuple[str, int]] = []
    for term in vocabulary:
        if term == query_term or abs(len(query_term) - len(term)) > max_distance:
            continue
        distance = levenshtein_distance(query_term, term, max_distance)
        if distance <= max_distance:
            matches.append((term, distance))

    matches.sort(key=lambda item: (item[1], item[0]))
    return matches[:limit]
