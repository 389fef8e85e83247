"""Search data models."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


TITLE_FIELD = "title"
PAGE_FIELD = "page"
TEXT_FIELD = "text"

INDEXED_FIELDS: tuple[str, ...] = (TITLE_FIELD, PAGE_FIELD, TEXT_FIELD)


@dataclass(frozen=True, slots=True)
class Posting:
    """Occurrences of one token within one record.

    Token positions are kept per field; occurrence counts are derived from
    them so the two can never disagree.
    """

    record_id: int
    title_positions: tuple[int, ...] = ()
    page_positions: tuple[int, ...] = ()
    text_positions: tuple[int, ...] = ()

    @property
    def title_count(self) -> int:
        return len(self.title_positions)

    @property
    def page_count(self) -> int:
        return len(self.page_positions)

    @property
    def text_count(self) -> int:
        return len(self.text_positions)

    @property
    def fields(self) -> tuple[str, ...]:
        """Fields the token occurred in, in index field order."""
        return tuple(name for name in INDEXED_FIELDS if self.positions(name))

    def positions(self, field_name: str) -> tuple[int, ...]:
        if field_name == TITLE_FIELD:
            return self.title_positions
        if field_name == PAGE_FIELD:
            return self.page_positions
        if field_name == TEXT_FIELD:
            return self.text_positions
        msg = f"Unknown field: {field_name}"
        raise KeyError(msg)

    def to_dict(self) -> dict[str, Any]:
        """Serialize with short keys: r=record, t=title, p=page, x=text."""
        return {
            "r": self.record_id,
            "t": list(self.title_positions),
            "p": list(self.page_positions),
            "x": list(self.text_positions),
        }
