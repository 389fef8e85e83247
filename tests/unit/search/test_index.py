"""Unit tests for the immutable inverted index and its builder."""

import copy

import pytest

from documenter_search.domain.records import Record
from documenter_search.search.analyzers import StandardAnalyzer
from documenter_search.search.errors import MalformedRecord
from documenter_search.search.index import IndexBuilder, build_index
from documenter_search.search.models import Posting


@pytest.mark.unit
class TestIndexBuilder:
    """Index construction from record sequences."""

    def test_postings_track_fields_and_positions(self, guide_records):
        index = build_index(guide_records)

        assert index.get_postings("guide") == (
            Posting(record_id=0, page_positions=(0,), text_positions=(2,)),
            Posting(record_id=1, page_positions=(0,)),
        )
        assert index.get_postings("reference") == (Posting(record_id=1, title_positions=(1,), text_positions=(3,)),)
        assert index.get_postings("missing") == ()

    def test_posting_counts_and_fields(self, guide_records):
        posting = build_index(guide_records).get_postings("reference")[0]

        assert posting.title_count == 1
        assert posting.page_count == 0
        assert posting.text_count == 1
        assert posting.fields == ("title", "text")

    def test_postings_follow_record_order(self, record_factory):
        records = [record_factory(f"#s{i}", "Solver", "solver solver") for i in range(5)]

        postings = build_index(records).get_postings("solver")

        assert [posting.record_id for posting in postings] == [0, 1, 2, 3, 4]
        assert postings[0].text_count == 2

    def test_vocabularies_are_sorted(self, guide_records):
        index = build_index(guide_records)

        assert index.title_vocabulary == ("api", "intro", "reference")
        assert list(index.vocabulary) == sorted(index.vocabulary)
        assert "guide" in index.vocabulary
        assert index.doc_count == 2
        assert index.term_count == len(index.vocabulary)

    def test_title_terms_with_prefix(self, record_factory):
        index = build_index(
            [
                record_factory("#a", "Reaction networks"),
                record_factory("#b", "Reactions"),
                record_factory("#c", "React"),
                record_factory("#d", "Solver", "reactant"),
            ]
        )

        assert index.title_terms_with_prefix("reac") == ["react", "reaction", "reactions"]
        assert index.title_terms_with_prefix("react") == ["reaction", "reactions"]
        assert index.title_terms_with_prefix("") == []
        assert index.title_terms_with_prefix("zzz") == []

    def test_empty_fields_are_allowed(self):
        index = build_index([{"location": "#", "page": "", "title": "", "category": "page", "text": ""}])

        assert index.doc_count == 1
        assert index.term_count == 0

    def test_records_are_not_mutated(self, guide_records):
        snapshot = copy.deepcopy(guide_records)

        build_index(guide_records)

        assert guide_records == snapshot

    def test_uses_supplied_analyzer(self, guide_records):
        index = IndexBuilder(StandardAnalyzer(remove_stopwords=True)).build(guide_records)

        assert index.get_postings("and") == ()
        assert build_index(guide_records).get_postings("and") != ()


@pytest.mark.unit
class TestDeterminism:
    """Two builds over the same input are identical."""

    def test_independent_builds_match(self, guide_records):
        first = build_index(guide_records)
        second = build_index([Record(**entry) for entry in guide_records])

        assert dict(first.postings) == dict(second.postings)
        assert list(first.postings) == list(second.postings)
        assert first.to_dict() == second.to_dict()
        assert first.fingerprint() == second.fingerprint()

    def test_fingerprint_changes_with_content(self, guide_records):
        changed = [dict(guide_records[0], text="something else"), guide_records[1]]

        assert build_index(guide_records).fingerprint() != build_index(changed).fingerprint()

    def test_index_is_read_only(self, guide_records):
        index = build_index(guide_records)

        with pytest.raises(TypeError):
            index.postings["new"] = ()  # type: ignore[index]


@pytest.mark.unit
class TestMalformedRecords:
    """Any bad record aborts the whole build with its index."""

    @pytest.mark.parametrize(
        ("mutation", "fragment"),
        [
            ({"category": "chapter"}, "category"),
            ({"location": ""}, "location"),
            ({"text": None}, "text"),
            ({"title": 3}, "title"),
            ({"extra": "field"}, "extra"),
        ],
    )
    def test_invalid_fields(self, guide_records, mutation, fragment):
        broken = [guide_records[0], {**guide_records[1], **mutation}]

        with pytest.raises(MalformedRecord) as excinfo:
            build_index(broken)

        assert excinfo.value.record_index == 1
        assert fragment in excinfo.value.reason

    def test_missing_field(self, guide_records):
        incomplete = {key: value for key, value in guide_records[0].items() if key != "page"}

        with pytest.raises(MalformedRecord) as excinfo:
            build_index([incomplete, guide_records[1]])

        assert excinfo.value.record_index == 0
        assert "page" in str(excinfo.value)

    def test_duplicate_location(self, guide_records):
        duplicate = {**guide_records[1], "location": "#intro"}

        with pytest.raises(MalformedRecord, match="duplicate location '#intro'") as excinfo:
            build_index([*guide_records, duplicate])

        assert excinfo.value.record_index == 2
