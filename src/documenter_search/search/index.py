"""Immutable inverted index over search-index records.

``IndexBuilder`` turns the ordered record sequence into a ``SearchIndex``:

* every record's ``title``, ``page`` and ``text`` are analyzed independently;
* each token maps to a tuple of ``Posting`` entries ordered by record id;
* the title vocabulary is kept sorted so prefix expansion is a bisect;
* a fingerprint over records and postings proves two builds are identical.

The index is built once and never mutated; it can be shared freely between
concurrent queries.
"""

from __future__ import annotations

from bisect import bisect_left
from collections import defaultdict
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
import hashlib
import logging
from types import MappingProxyType
from typing import Any

import orjson

from documenter_search.domain.records import Record
from documenter_search.observability.metrics import INDEX_BUILD_LATENCY, INDEX_RECORD_COUNT, track_latency
from documenter_search.observability.tracing import search_span
from documenter_search.search.analyzers import Analyzer, StandardAnalyzer
from documenter_search.search.errors import MalformedRecord
from documenter_search.search.models import INDEXED_FIELDS, PAGE_FIELD, TEXT_FIELD, TITLE_FIELD, Posting
from documenter_search.search.payload import coerce_record


logger = logging.getLogger(__name__)

_INDEX_FORMAT_VERSION = "v1-title-page-text"


@dataclass(frozen=True)
class SearchIndex:
    """Immutable token -> postings mapping plus the records it was built from."""

    records: tuple[Record, ...]
    postings: Mapping[str, tuple[Posting, ...]]
    title_vocabulary: tuple[str, ...]
    vocabulary: tuple[str, ...]
    analyzer: Analyzer = field(default_factory=StandardAnalyzer, compare=False, repr=False)

    @property
    def doc_count(self) -> int:
        return len(self.records)

    @property
    def term_count(self) -> int:
        return len(self.postings)

    def record(self, record_id: int) -> Record:
        return self.records[record_id]

    def get_postings(self, term: str) -> tuple[Posting, ...]:
        return self.postings.get(term, ())

    def title_terms_with_prefix(self, prefix: str) -> list[str]:
        """Return title tokens that strictly extend ``prefix``, in sorted order."""
        if not prefix:
            return []
        start = bisect_left(self.title_vocabulary, prefix)
        matches: list[str] = []
        for term in self.title_vocabulary[start:]:
            if not term.startswith(prefix):
                break
            if term != prefix:
                matches.append(term)
        return matches

    def to_dict(self) -> dict[str, Any]:
        return {
            "format": _INDEX_FORMAT_VERSION,
            "records": [record.model_dump(mode="json") for record in self.records],
            "postings": {term: [posting.to_dict() for posting in entries] for term, entries in self.postings.items()},
        }

    def fingerprint(self) -> str:
        """Return a sha256 digest over the records and the token -> postings mapping."""
        payload = orjson.dumps(self.to_dict(), option=orjson.OPT_SORT_KEYS)
        return hashlib.sha256(payload).hexdigest()


class IndexBuilder:
    """Builds ``SearchIndex`` instances from record sequences."""

    def __init__(self, analyzer: Analyzer | None = None) -> None:
        self.analyzer = analyzer or StandardAnalyzer()

    def build(self, raw_records: Sequence[Record | Mapping[str, Any]]) -> SearchIndex:
        """Validate and index every record, failing the whole build on the first bad one."""

        with (
            search_span("search.index.build", record_count=len(raw_records)),
            track_latency(INDEX_BUILD_LATENCY),
        ):
            records = self._validate(raw_records)
            accumulated: defaultdict[str, dict[int, dict[str, list[int]]]] = defaultdict(dict)

            for record_id, record in enumerate(records):
                for field_name in INDEXED_FIELDS:
                    for token in self.analyzer(getattr(record, field_name)):
                        per_record = accumulated[token.text].setdefault(record_id, {})
                        per_record.setdefault(field_name, []).append(token.position)

            postings: dict[str, tuple[Posting, ...]] = {}
            title_terms: list[str] = []
            for term in sorted(accumulated):
                by_record = accumulated[term]
                entries = tuple(self._freeze(record_id, by_record[record_id]) for record_id in sorted(by_record))
                postings[term] = entries
                if any(entry.title_count for entry in entries):
                    title_terms.append(term)

        index = SearchIndex(
            records=tuple(records),
            postings=MappingProxyType(postings),
            title_vocabulary=tuple(title_terms),
            vocabulary=tuple(postings),
            analyzer=self.analyzer,
        )
        INDEX_RECORD_COUNT.set(index.doc_count)
        logger.info(
            "Built search index: %d records, %d terms (%d title terms)",
            index.doc_count,
            index.term_count,
            len(index.title_vocabulary),
        )
        return index

    @staticmethod
    def _validate(raw_records: Sequence[Record | Mapping[str, Any]]) -> list[Record]:
        records: list[Record] = []
        seen_locations: dict[str, int] = {}
        for index, raw in enumerate(raw_records):
            record = coerce_record(raw, index)
            first_seen = seen_locations.setdefault(record.location, index)
            if first_seen != index:
                raise MalformedRecord(index, f"duplicate location '{record.location}' (first seen at {first_seen})")
            records.append(record)
        return records

    @staticmethod
    def _freeze(record_id: int, positions: Mapping[str, list[int]]) -> Posting:
        return Posting(
            record_id=record_id,
            title_positions=tuple(positions.get(TITLE_FIELD, ())),
            page_positions=tuple(positions.get(PAGE_FIELD, ())),
            text_positions=tuple(positions.get(TEXT_FIELD, ())),
        )


def build_index(
    records: Sequence[Record | Mapping[str, Any]],
    *,
    analyzer: Analyzer | None = None,
) -> SearchIndex:
    """Convenience wrapper around ``IndexBuilder(analyzer).build(records)``."""
    return IndexBuilder(analyzer).build(records)
