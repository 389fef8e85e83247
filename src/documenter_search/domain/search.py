"""Domain models returned by the query engine.

Value objects are immutable (frozen=True) so that cached result pages can be
handed to several consumers without copying.
"""

from pydantic import BaseModel, ConfigDict, Field

from documenter_search.domain.records import Category


class SearchHit(BaseModel):
    """A single ranked, highlighted search result."""

    model_config = ConfigDict(frozen=True)

    location: str
    page: str
    title: str
    excerpt: str
    score: float
    category: Category = Category.SECTION
    matched_terms: tuple[str, ...] = Field(default_factory=tuple)


class SearchPage(BaseModel):
    """One page of results plus the totals a result list needs for paging."""

    model_config = ConfigDict(frozen=True)

    hits: list[SearchHit] = Field(default_factory=list)
    page: int = 0
    page_size: int = 10
    total_count: int = 0

    @property
    def page_count(self) -> int:
        if self.page_size <= 0:
            return 0
        return -(-self.total_count // self.page_size)

    @property
    def has_next(self) -> bool:
        return self.page + 1 < self.page_count
