"""Client-side full-text search over static documentation search-index payloads."""

from documenter_search.config import Settings
from documenter_search.domain.records import Category, Record
from documenter_search.domain.search import SearchHit, SearchPage
from documenter_search.search.engine import IncrementalSearch, QueryEngine, RankedQuery
from documenter_search.search.errors import InvalidQueryState, MalformedRecord, PayloadError, SearchIndexError
from documenter_search.search.index import IndexBuilder, SearchIndex, build_index
from documenter_search.search.payload import load_records, load_search_index, parse_search_index_payload


__all__ = [
    "Category",
    "IncrementalSearch",
    "IndexBuilder",
    "InvalidQueryState",
    "MalformedRecord",
    "PayloadError",
    "QueryEngine",
    "RankedQuery",
    "Record",
    "SearchHit",
    "SearchIndex",
    "SearchIndexError",
    "SearchPage",
    "Settings",
    "build_index",
    "load_records",
    "load_search_index",
    "parse_search_index_payload",
]
