"""Excerpt extraction and highlighting for search results.

Excerpts are windows of a record's ``text`` centered on the first matched
token. Window edges prefer sentence starts and whitespace, and are pulled
inwards whenever they would cut through a matched token. Highlights are
placed on analyzer token offsets, so only whole tokens are marked.
"""

from __future__ import annotations

from collections.abc import Collection, Sequence
import html
import re
from typing import Literal

from documenter_search.search.analyzers import Analyzer


HighlightStyle = Literal["plain", "html"]

DEFAULT_EXCERPT_CHARS = 160

SENTENCE_END_PATTERN = re.compile(r"[.!?]\s+")
WHITESPACE_PATTERN = re.compile(r"\s+")

Span = tuple[int, int]


def find_match_spans(text: str, terms: Collection[str], analyzer: Analyzer) -> list[Span]:
    """Return ``(start, end)`` character offsets of tokens whose text is in ``terms``."""
    if not text or not terms:
        return []
    return [(token.start_char, token.end_char) for token in analyzer(text) if token.text in terms]


def _snap_start(text: str, start: int, limit: int) -> int:
    """Move ``start`` forward to a sentence or word boundary, never past ``limit``."""
    if start <= 0:
        return 0
    sentence_ends = list(SENTENCE_END_PATTERN.finditer(text, start, limit))
    if sentence_ends:
        return sentence_ends[-1].end()
    if text[start - 1].isspace():
        return start
    boundary = WHITESPACE_PATTERN.search(text, start, limit)
    if boundary:
        return boundary.end()
    return start


def _snap_end(text: str, end: int, limit: int) -> int:
    """Move ``end`` back to a word boundary, never before ``limit``."""
    if end >= len(text) or text[end].isspace() or text[end - 1].isspace():
        return end
    boundaries = list(WHITESPACE_PATTERN.finditer(text, limit, end))
    if boundaries:
        return boundaries[-1].start()
    return end


def excerpt_window(text: str, spans: Sequence[Span], max_chars: int = DEFAULT_EXCERPT_CHARS) -> Span:
    """Pick the ``[start, end)`` window of ``text`` to show for the first span.

    The window holds at most ``max_chars`` characters unless the matched token
    alone is longer, in which case exactly that token is returned.
    """
    if not text:
        return 0, 0
    if len(text) <= max_chars:
        return 0, len(text)
    if not spans:
        return 0, _snap_end(text, max_chars, 0)

    match_start, match_end = spans[0]
    if match_end - match_start >= max_chars:
        return match_start, match_end

    center = (match_start + match_end) // 2
    start = max(0, center - max_chars // 2)
    end = min(len(text), start + max_chars)
    start = max(0, end - max_chars)

    start = _snap_start(text, start, match_start)
    end = _snap_end(text, min(len(text), start + max_chars), match_end)

    for span_start, span_end in spans:
        if span_start < start < span_end:
            start = span_end
        if span_start < end < span_end:
            end = span_start
    return start, end


def highlight_spans(
    text: str,
    spans: Sequence[Span],
    *,
    style: HighlightStyle = "plain",
    max_highlights: int | None = None,
) -> str:
    """Mark spans as ``[[term]]`` (plain) or ``<mark>term</mark>`` (html).

    In html style the surrounding text is escaped.
    """
    escape = html.escape if style == "html" else _identity
    selected: list[Span] = []
    for span in sorted(spans):
        if selected and span[0] < selected[-1][1]:
            continue
        selected.append(span)
        if max_highlights is not None and len(selected) >= max_highlights:
            break

    parts: list[str] = []
    cursor = 0
    for start, end in selected:
        parts.append(escape(text[cursor:start]))
        matched = escape(text[start:end])
        parts.append(f"<mark>{matched}</mark>" if style == "html" else f"[[{matched}]]")
        cursor = end
    parts.append(escape(text[cursor:]))
    return "".join(parts)


def _identity(value: str) -> str:
    return value


def build_excerpt(
    text: str,
    title: str,
    terms: Collection[str],
    analyzer: Analyzer,
    *,
    max_chars: int = DEFAULT_EXCERPT_CHARS,
    style: HighlightStyle = "plain",
) -> str:
    """Build the highlighted excerpt for one result.

    Falls back to the highlighted title when no term occurs in ``text``, and to
    an empty string when neither field contains a matched token.
    """
    spans = find_match_spans(text, terms, analyzer)
    if spans:
        start, end = excerpt_window(text, spans, max_chars)
        window = text[start:end]
        stripped = window.lstrip()
        offset = start + len(window) - len(stripped)
        stripped = stripped.rstrip()
        limit = offset + len(stripped)
        relative = [(s - offset, e - offset) for s, e in spans if s >= offset and e <= limit]
        return highlight_spans(stripped, relative, style=style)

    title_spans = find_match_spans(title, terms, analyzer)
    if title_spans:
        return highlight_spans(title, title_spans, style=style)
    return ""
