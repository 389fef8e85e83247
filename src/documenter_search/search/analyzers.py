"""Analyzer utilities for the documentation search engine.

Analyzers follow a composable tokenizer/filter design: a tokenizer emits
positioned tokens with character offsets and filters transform the stream.
The same analyzer instance is shared by the index builder and the query
engine so both sides agree on the token space.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator, Sequence
from dataclasses import dataclass, replace
import re
from typing import Protocol


DEFAULT_MIN_TOKEN_LENGTH = 2


@dataclass(frozen=True, slots=True)
class Token:
    """Represents a token emitted by analyzers."""

    text: str
    position: int
    start_char: int
    end_char: int

    def copy_with(self, **updates: object) -> Token:
        return replace(self, **updates)


class Analyzer(Protocol):
    """Protocol implemented by analyzers."""

    def __call__(self, text: str) -> list[Token]:  # pragma: no cover - interface definition
        ...


class Tokenizer(Protocol):
    """Protocol implemented by tokenizers."""

    def __call__(self, text: str) -> Iterator[Token]:  # pragma: no cover - interface definition
        ...


class TokenFilter(Protocol):
    """Protocol implemented by token filters."""

    def __call__(self, tokens: Iterable[Token]) -> Iterator[Token]:  # pragma: no cover - interface definition
        ...


class RegexTokenizer:
    """Regex-based tokenizer that splits on non-alphanumeric boundaries.

    The default pattern treats underscores and punctuation as separators, so
    ``reaction_network`` yields ``reaction`` and ``network``.
    """

    def __init__(self, pattern: str = r"[^\W_]+", flags: int = re.UNICODE) -> None:
        self.pattern = re.compile(pattern, flags)

    def __call__(self, text: str) -> Iterator[Token]:
        for position, match in enumerate(self.pattern.finditer(text)):
            yield Token(
                text=match.group(0),
                position=position,
                start_char=match.start(),
                end_char=match.end(),
            )


class LowercaseFilter:
    """Filter that lowercases token text."""

    def __call__(self, tokens: Iterable[Token]) -> Iterator[Token]:
        for token in tokens:
            lowered = token.text.lower()
            if lowered == token.text:
                yield token
            else:
                yield token.copy_with(text=lowered)


class MinLengthFilter:
    """Drops tokens shorter than ``min_length`` characters."""

    def __init__(self, min_length: int = DEFAULT_MIN_TOKEN_LENGTH) -> None:
        if min_length < 1:
            msg = f"min_length must be positive, got {min_length}"
            raise ValueError(msg)
        self.min_length = min_length

    def __call__(self, tokens: Iterable[Token]) -> Iterator[Token]:
        for token in tokens:
            if len(token.text) >= self.min_length:
                yield token


DEFAULT_STOPWORDS = frozenset("a an and are as at be by for if in is it of on or the this to with".split())


class StopFilter:
    """Drops stopwords. Runs after ``LowercaseFilter``, so matching is exact."""

    def __init__(self, stopwords: Iterable[str] | None = None) -> None:
        self.stopwords = frozenset(word.lower() for word in (DEFAULT_STOPWORDS if stopwords is None else stopwords))

    def __call__(self, tokens: Iterable[Token]) -> Iterator[Token]:
        return (token for token in tokens if token.text not in self.stopwords)


class AnalyzerPipeline:
    """Composable analyzer pipeline (tokenizer + filters).

    Positions are renumbered after filtering so that phrase proximity works on
    the surviving tokens only.
    """

    def __init__(self, tokenizer: Tokenizer, filters: Sequence[TokenFilter] | None = None) -> None:
        self.tokenizer = tokenizer
        self.filters = list(filters or [])

    def __call__(self, text: str) -> list[Token]:
        if not text:
            return []
        stream: Iterable[Token] = self.tokenizer(text)
        for token_filter in self.filters:
            stream = token_filter(stream)
        return [token.copy_with(position=idx) for idx, token in enumerate(stream)]


class StandardAnalyzer:
    """Default analyzer: alphanumeric words, lower-cased, minimum length 2."""

    def __init__(
        self,
        *,
        min_length: int = DEFAULT_MIN_TOKEN_LENGTH,
        stopwords: Sequence[str] | None = None,
        remove_stopwords: bool = False,
    ) -> None:
        filters: list[TokenFilter] = [LowercaseFilter(), MinLengthFilter(min_length)]
        if remove_stopwords:
            filters.append(StopFilter(stopwords))
        self.min_length = min_length
        self.pipeline = AnalyzerPipeline(RegexTokenizer(), filters)

    def __call__(self, text: str) -> list[Token]:
        return self.pipeline(text)


_ANALYZER_FACTORIES: dict[str, Callable[[], Analyzer]] = {
    "default": lambda: StandardAnalyzer(),
    "english": lambda: StandardAnalyzer(remove_stopwords=True),
}


def get_analyzer(name: str | None) -> Analyzer:
    """Return analyzer by name, defaulting to the standard analyzer."""

    if name is None:
        return _ANALYZER_FACTORIES["default"]()
    normalized = name.lower()
    if normalized not in _ANALYZER_FACTORIES:
        msg = f"Unknown analyzer '{name}'. Available: {sorted(_ANALYZER_FACTORIES)}"
        raise ValueError(msg)
    return _ANALYZER_FACTORIES[normalized]()
