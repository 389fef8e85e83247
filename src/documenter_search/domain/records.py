"""Typed search-index records.

The generator emits a flat list of loosely typed mappings. Records turn that
implicit contract into an explicit one that is checked once, when the index
is built, instead of being assumed by every query.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, StrictStr


class Category(str, Enum):
    """Kinds of records emitted by the documentation generator."""

    PAGE = "page"
    SECTION = "section"


class Record(BaseModel):
    """A single page or section entry of the search-index payload.

    ``location`` is the only stable identity. ``page`` + ``title`` pairs repeat
    across pages, and ``text`` is empty for most page-level records.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    location: StrictStr = Field(min_length=1)
    page: StrictStr
    title: StrictStr
    category: Category
    text: StrictStr

    @property
    def is_page(self) -> bool:
        return self.category is Category.PAGE
