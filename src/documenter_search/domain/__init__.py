"""Domain value objects for documentation search."""

from documenter_search.domain.records import Category, Record
from documenter_search.domain.search import SearchHit, SearchPage


__all__ = ["Category", "Record", "SearchHit", "SearchPage"]
