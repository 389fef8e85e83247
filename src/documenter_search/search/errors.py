"""Exceptions raised by the search stack.

Malformed data is a hard failure; an unsuccessful search is a normal, empty
outcome and never raises.
"""

from __future__ import annotations


class SearchIndexError(ValueError):
    """Base class for index construction failures."""


class MalformedRecord(SearchIndexError):
    """Raised when a record cannot be indexed; aborts the whole build."""

    def __init__(self, record_index: int, reason: str) -> None:
        self.record_index = record_index
        self.reason = reason
        super().__init__(f"Malformed record at index {record_index}: {reason}")


class PayloadError(SearchIndexError):
    """Raised when a search-index payload cannot be decoded."""


class InvalidQueryState(RuntimeError):
    """Raised when a search is requested before any index was built."""
