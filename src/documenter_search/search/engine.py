"""Query engine: candidate selection, ranking, excerpts and pagination.

The engine owns no mutable state shared between queries other than a bounded
cache of finished, immutable rankings. The active index and its cache are
swapped together in a single attribute assignment on ``rebuild``, so a query
that is running (or cancelled) against the previous index never observes a
half-updated engine.
"""

from __future__ import annotations

import asyncio
from collections import OrderedDict
from collections.abc import Iterable, Mapping, Sequence
from contextlib import suppress
from dataclasses import dataclass, field
import logging
import threading
from typing import Any

from documenter_search.config import Settings
from documenter_search.domain.records import Record
from documenter_search.domain.search import SearchHit, SearchPage
from documenter_search.observability.metrics import SEARCH_LATENCY, SEARCH_QUERIES, track_latency
from documenter_search.observability.tracing import search_span
from documenter_search.search.analyzers import get_analyzer
from documenter_search.search.errors import InvalidQueryState
from documenter_search.search.fuzzy import find_fuzzy_matches
from documenter_search.search.index import IndexBuilder, SearchIndex
from documenter_search.search.models import INDEXED_FIELDS, Posting
from documenter_search.search.phrase import phrase_score
from documenter_search.search.scoring import MatchKind, ScoringWeights, TermMatch, field_relevance, score_record
from documenter_search.search.snippet import build_excerpt


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class QueryTerms:
    """Analyzed query: unique terms in first-seen order."""

    terms: tuple[str, ...]
    seed_text: str = ""

    @classmethod
    def empty(cls) -> QueryTerms:
        return cls(())

    def is_empty(self) -> bool:
        return not self.terms


@dataclass(frozen=True)
class RankedEntry:
    """A scored candidate record; ``matched_terms`` are the index terms to highlight."""

    record_id: int
    score: float
    matched_terms: frozenset[str] = field(default_factory=frozenset)


@dataclass
class _Candidate:
    matches: dict[str, TermMatch] = field(default_factory=dict)
    exact_postings: dict[str, Posting] = field(default_factory=dict)
    matched_terms: set[str] = field(default_factory=set)


class _Ranker:
    """Stateless scoring helpers bound to one index and one configuration."""

    def __init__(self, index: SearchIndex, settings: Settings, weights: ScoringWeights) -> None:
        self.index = index
        self.settings = settings
        self.weights = weights

    def expand_term(self, term: str) -> list[tuple[str, MatchKind, tuple[Posting, ...]]]:
        """Return every index term reachable from a query term, with its match kind."""
        expansions: list[tuple[str, MatchKind, tuple[Posting, ...]]] = []
        exact = self.index.get_postings(term)
        if exact:
            expansions.append((term, MatchKind.EXACT, exact))

        if len(term) >= self.settings.min_prefix_length:
            prefixed = self.index.title_terms_with_prefix(term)
            cap = self.settings.max_prefix_expansions
            if cap is not None and len(prefixed) > cap:
                logger.debug("Prefix %r expands to %d title terms; keeping the %d shortest", term, len(prefixed), cap)
                prefixed = sorted(prefixed, key=len)[:cap]
            for title_term in prefixed:
                title_postings = tuple(p for p in self.index.get_postings(title_term) if p.title_count)
                expansions.append((title_term, MatchKind.PREFIX, title_postings))

        if not expansions and self.settings.enable_fuzzy:
            for fuzzy_term, _distance in find_fuzzy_matches(term, self.index.vocabulary):
                expansions.append((fuzzy_term, MatchKind.FUZZY, self.index.get_postings(fuzzy_term)))
        return expansions

    def collect_term(self, term: str, candidates: dict[int, _Candidate]) -> None:
        """Merge one query term's postings into the candidate map (OR semantics)."""
        for index_term, kind, postings in self.expand_term(term):
            discount = self.weights.discount(kind)
            for posting in postings:
                candidate = candidates.get(posting.record_id)
                if candidate is None:
                    candidate = candidates[posting.record_id] = _Candidate()
                candidate.matched_terms.add(index_term)
                if kind is MatchKind.EXACT:
                    candidate.exact_postings[term] = posting

                relevance = field_relevance(posting, self.weights) * discount
                current = candidate.matches.get(term)
                if current is None:
                    candidate.matches[term] = TermMatch(term, index_term, kind, relevance)
                    continue
                best_kind = MatchKind.EXACT if MatchKind.EXACT in (current.kind, kind) else current.kind
                if relevance > current.relevance:
                    candidate.matches[term] = TermMatch(term, index_term, best_kind, relevance)
                elif best_kind is not current.kind:
                    candidate.matches[term] = TermMatch(term, current.index_term, best_kind, current.relevance)

    def score(self, query: QueryTerms, record_id: int, candidate: _Candidate) -> RankedEntry:
        record = self.index.record(record_id)
        phrase_ratio = 0.0
        if self.settings.enable_phrase_bonus and len(query.terms) > 1:
            phrase_ratio = self._phrase_ratio(query.terms, candidate.exact_postings)
        score = score_record(
            candidate.matches,
            query_term_count=len(query.terms),
            is_page=record.is_page,
            phrase_ratio=phrase_ratio,
            weights=self.weights,
        )
        return RankedEntry(record_id=record_id, score=score, matched_terms=frozenset(candidate.matched_terms))

    @staticmethod
    def _phrase_ratio(terms: Sequence[str], exact_postings: Mapping[str, Posting]) -> float:
        if len(exact_postings) < len(terms):
            return 0.0
        best = 0.0
        for field_name in INDEXED_FIELDS:
            position_lists = [exact_postings[term].positions(field_name) for term in terms]
            if all(position_lists):
                best = max(best, phrase_score(position_lists))
        return best

    @staticmethod
    def order(entries: Iterable[RankedEntry]) -> tuple[RankedEntry, ...]:
        """Sort by score descending; equal scores keep record-sequence order."""
        return tuple(sorted(entries, key=lambda entry: (-entry.score, entry.record_id)))

    def rank(self, query: QueryTerms) -> tuple[RankedEntry, ...]:
        candidates: dict[int, _Candidate] = {}
        for term in query.terms:
            self.collect_term(term, candidates)
        return self.order(self.score(query, record_id, candidate) for record_id, candidate in candidates.items())


class _RankingCache:
    """Bounded LRU of finished rankings keyed by analyzed query terms."""

    def __init__(self, maxsize: int) -> None:
        self.maxsize = maxsize
        self._entries: OrderedDict[tuple[str, ...], tuple[RankedEntry, ...]] = OrderedDict()
        self._lock = threading.Lock()

    def get(self, key: tuple[str, ...]) -> tuple[RankedEntry, ...] | None:
        with self._lock:
            ranked = self._entries.get(key)
            if ranked is not None:
                self._entries.move_to_end(key)
            return ranked

    def put(self, key: tuple[str, ...], ranked: tuple[RankedEntry, ...]) -> None:
        if self.maxsize <= 0:
            return
        with self._lock:
            self._entries[key] = ranked
            self._entries.move_to_end(key)
            while len(self._entries) > self.maxsize:
                self._entries.popitem(last=False)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


@dataclass(frozen=True)
class _EngineState:
    ranker: _Ranker
    cache: _RankingCache
    generation: int = 0

    @property
    def index(self) -> SearchIndex:
        return self.ranker.index


class RankedQuery:
    """The full ranked candidate list of one query, sliced into result pages.

    Excerpts are only built for the page being requested.
    """

    def __init__(
        self,
        query: QueryTerms,
        entries: tuple[RankedEntry, ...],
        index: SearchIndex,
        settings: Settings,
    ) -> None:
        self.query = query
        self.entries = entries
        self.index = index
        self.settings = settings

    @property
    def total_count(self) -> int:
        return len(self.entries)

    @property
    def page_size(self) -> int:
        return self.settings.page_size

    @property
    def page_count(self) -> int:
        return -(-self.total_count // self.page_size)

    def page(self, page: int = 0) -> list[SearchHit]:
        """Return hits for a zero-based page; out-of-range pages are empty."""
        if page < 0:
            return []
        start = page * self.page_size
        return [self._to_hit(entry) for entry in self.entries[start : start + self.page_size]]

    def page_info(self, page: int = 0) -> SearchPage:
        return SearchPage(
            hits=self.page(page),
            page=page,
            page_size=self.page_size,
            total_count=self.total_count,
        )

    def _to_hit(self, entry: RankedEntry) -> SearchHit:
        record: Record = self.index.record(entry.record_id)
        excerpt = build_excerpt(
            record.text,
            record.title,
            entry.matched_terms,
            self.index.analyzer,
            max_chars=self.settings.excerpt_chars,
            style=self.settings.highlight_style,
        )
        return SearchHit(
            location=record.location,
            page=record.page,
            title=record.title,
            excerpt=excerpt,
            score=entry.score,
            category=record.category,
            matched_terms=tuple(sorted(entry.matched_terms)),
        )


class QueryEngine:
    """Answers free-text queries against a built ``SearchIndex``."""

    def __init__(
        self,
        index: SearchIndex | None = None,
        *,
        settings: Settings | None = None,
    ) -> None:
        self.settings = settings or Settings()
        self.weights = self.settings.scoring_weights()
        self._generation = 0
        self._builder = IndexBuilder(index.analyzer if index else get_analyzer(self.settings.analyzer))
        self._state: _EngineState | None = self._make_state(index) if index is not None else None

    @classmethod
    def from_records(
        cls,
        records: Sequence[Record | Mapping[str, Any]],
        *,
        settings: Settings | None = None,
    ) -> QueryEngine:
        engine = cls(settings=settings)
        engine.rebuild(records)
        return engine

    def _make_state(self, index: SearchIndex) -> _EngineState:
        self._generation += 1
        return _EngineState(
            _Ranker(index, self.settings, self.weights),
            _RankingCache(self.settings.query_cache_size),
            generation=self._generation,
        )

    def _require_state(self) -> _EngineState:
        state = self._state
        if state is None:
            raise InvalidQueryState("No search index has been built; call rebuild() first")
        return state

    @property
    def index(self) -> SearchIndex:
        return self._require_state().index

    @property
    def has_index(self) -> bool:
        return self._state is not None

    def rebuild(self, records: Sequence[Record | Mapping[str, Any]]) -> SearchIndex:
        """Replace the active index with one built from ``records``.

        On failure the previously active index (if any) stays in place and the
        error propagates to the caller.
        """
        index = self._builder.build(records)
        self._state = self._make_state(index)
        return index

    def tokenize_query(self, text: str, *, index: SearchIndex | None = None) -> QueryTerms:
        """Analyze a query with the same analyzer the index was built with."""
        seed = text.strip() if text else ""
        if not seed:
            return QueryTerms.empty()
        analyzer = (index or self.index).analyzer
        terms = tuple(dict.fromkeys(token.text for token in analyzer(seed)))
        return QueryTerms(terms, seed)

    def query(self, text: str, *, page: int | None = None) -> RankedQuery:
        """Rank every candidate for ``text`` once; later pages reuse the ranking.

        ``page`` only labels the span and log records of this call.
        """
        state = self._require_state()
        query = self.tokenize_query(text, index=state.index)
        with (
            search_span(
                "search.query",
                query=query.seed_text,
                page=page,
                index_id=state.generation,
                term_count=len(query.terms),
            ),
            track_latency(SEARCH_LATENCY, mode="sync"),
        ):
            ranked = self._ranked(state, query)
            self._record_outcome(query, ranked)
        return RankedQuery(query, ranked, state.index, self.settings)

    def search(self, text: str, page: int = 0) -> list[SearchHit]:
        """Return one page of ranked hits; empty, unmatched or out-of-range requests give ``[]``."""
        return self.query(text, page=page).page(page)

    def search_page(self, text: str, page: int = 0) -> SearchPage:
        return self.query(text, page=page).page_info(page)

    async def search_async(self, text: str, page: int = 0) -> list[SearchHit]:
        """Cooperative variant of ``search`` that yields to the event loop while ranking.

        Cancelling the awaiting task discards the partial ranking; nothing is
        cached until ranking completes.
        """
        state = self._require_state()
        query = self.tokenize_query(text, index=state.index)
        with (
            search_span(
                "search.query_async",
                query=query.seed_text,
                page=page,
                index_id=state.generation,
                term_count=len(query.terms),
            ),
            track_latency(SEARCH_LATENCY, mode="async"),
        ):
            ranked = state.cache.get(query.terms) if not query.is_empty() else ()
            if ranked is None:
                ranked = await self._rank_cooperatively(state, query)
                state.cache.put(query.terms, ranked)
            self._record_outcome(query, ranked)
        return RankedQuery(query, ranked, state.index, self.settings).page(page)

    def _ranked(self, state: _EngineState, query: QueryTerms) -> tuple[RankedEntry, ...]:
        if query.is_empty():
            return ()
        ranked = state.cache.get(query.terms)
        if ranked is None:
            ranked = state.ranker.rank(query)
            state.cache.put(query.terms, ranked)
        return ranked

    async def _rank_cooperatively(self, state: _EngineState, query: QueryTerms) -> tuple[RankedEntry, ...]:
        ranker = state.ranker
        candidates: dict[int, _Candidate] = {}
        for term in query.terms:
            ranker.collect_term(term, candidates)
            await asyncio.sleep(0)

        chunk_size = self.settings.async_chunk_size
        items = list(candidates.items())
        entries: list[RankedEntry] = []
        for offset in range(0, len(items), chunk_size):
            chunk = items[offset : offset + chunk_size]
            entries.extend(ranker.score(query, record_id, candidate) for record_id, candidate in chunk)
            await asyncio.sleep(0)
        return ranker.order(entries)

    @staticmethod
    def _record_outcome(query: QueryTerms, ranked: Sequence[RankedEntry]) -> None:
        if query.is_empty():
            outcome = "empty_query"
        elif not ranked:
            outcome = "no_match"
        else:
            outcome = "hit"
        SEARCH_QUERIES.labels(outcome=outcome).inc()
        logger.debug("Query %r -> %d candidates (%s)", query.seed_text, len(ranked), outcome)


class IncrementalSearch:
    """Runs per-keystroke queries where each new query supersedes the in-flight one."""

    def __init__(self, engine: QueryEngine, *, page: int = 0) -> None:
        self.engine = engine
        self.page = page
        self._task: asyncio.Task[list[SearchHit]] | None = None

    def submit(self, text: str) -> asyncio.Task[list[SearchHit]]:
        """Start a query for ``text``, cancelling any query still running."""
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = asyncio.create_task(self.engine.search_async(text, self.page))
        return self._task

    async def results(self) -> list[SearchHit]:
        """Await the most recently submitted query."""
        if self._task is None:
            return []
        return await self._task

    async def close(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
            with suppress(asyncio.CancelledError):
                await self._task
        self._task = None
