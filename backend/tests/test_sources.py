import asyncio

import numpy as np
import pytest

from scholargy.errors import SourceUnavailable
from scholargy.rag.evidence import SearchOrigin, SourceKind
from scholargy.sources.articles import ArticleSearchSource
from scholargy.sources.records import (
    RecordKeywordSource,
    RecordVectorSource,
    record_label,
    record_to_hit,
)


STANFORD = {
    "unitid": 243744,
    "general_info": {"name": "Stanford University", "city": "Stanford", "state": "CA"},
    "admissions": {"admission_rate": 0.0368},
    "graduation": {"overall_rate": 0.95},
    "enrollment": {"total": 17529},
    "cost_and_aid": {"tuition_in_state": 62484},
}


class _AsyncResults:
    def __init__(self, items):
        self._items = list(items)

    def __aiter__(self):
        return self._iter()

    async def _iter(self):
        for item in self._items:
            yield item


class _FakeSearchClient:
    def __init__(self, documents):
        self.documents = documents
        self.kwargs = None

    async def search(self, **kwargs):
        self.kwargs = kwargs
        return _AsyncResults(self.documents)


class _FakeCursor:
    def __init__(self, documents):
        self.documents = list(documents)
        self.limit_value = None

    def limit(self, n):
        self.limit_value = n
        return self

    async def to_list(self, length=None):
        return self.documents if length is None else self.documents[:length]


class _FakeCollection:
    def __init__(self, documents=(), error=None):
        self.documents = list(documents)
        self.error = error
        self.pipeline = None
        self.filter = None
        self.projection = None

    async def aggregate(self, pipeline):
        if self.error is not None:
            raise self.error
        self.pipeline = pipeline
        return _FakeCursor(self.documents)

    def find(self, filter, projection=None):
        self.filter = filter
        self.projection = projection
        return _FakeCursor(self.documents)


EMBEDDING = np.array([0.1, 0.2, 0.3])


def test_record_label_includes_headline_statistics():
    fields = {"name": "Stanford University", "admission_rate": 0.0368, "graduation_rate": 95, "enrollment": 17529}

    assert record_label(fields) == (
        "Stanford University (Admission rate: 4%, Graduation rate: 95%, Enrollment: 17,529)"
    )
    assert record_label({"name": "Quiet College"}) == "Quiet College"


def test_record_to_hit_uses_unitid_and_describes_fields():
    hit = record_to_hit(STANFORD, score=0.8, origin=SearchOrigin.VECTOR_SEARCH)

    assert hit.identity_key == "243744"
    assert hit.source_kind is SourceKind.STRUCTURED_RECORD
    assert hit.rendered_text == (
        "Stanford University is located in Stanford, CA. In-state tuition is $62,484."
    )
    assert hit.label.startswith("Stanford University (Admission rate: 4%")
    assert hit.fields["state"] == "CA"


def test_article_search_sends_text_and_vector_and_maps_hits():
    client = _FakeSearchClient(
        [
            {"metadata_storage_name": "aid-guide.pdf", "content": "  FAFSA opens in October. ", "@search.score": 2.5},
            {"metadata_storage_name": "empty.pdf", "content": ""},
            {"title": "Essay tips", "content": "Be specific."},
        ]
    )
    source = ArticleSearchSource(client, vector_field="contentVector")

    hits = asyncio.run(source.search(query_text="financial aid", embedding=EMBEDDING, k=3))

    assert client.kwargs["search_text"] == "financial aid"
    assert client.kwargs["top"] == 3
    vector_query = client.kwargs["vector_queries"][0]
    assert vector_query.fields == "contentVector"
    assert vector_query.k_nearest_neighbors == 3
    assert [h.identity_key for h in hits] == ["aid-guide.pdf", "Essay tips"]
    assert hits[0].rendered_text == "FAFSA opens in October."
    assert hits[0].relevance_score == 2.5


def test_record_vector_search_pipeline_and_malformed_records_skipped():
    collection = _FakeCollection(
        [
            {"similarityScore": 0.91, "document": STANFORD},
            {"similarityScore": 0.80, "document": {"general_info": {"name": "No Id College"}}},
            {"similarityScore": 0.70},
        ]
    )
    source = RecordVectorSource(collection, index_name="idx", vector_field="embedding")

    hits = asyncio.run(source.search(query_text="q", embedding=EMBEDDING, k=5))

    search_stage = collection.pipeline[0]["$search"]
    assert search_stage["index"] == "idx"
    assert search_stage["cosmosDbVectorSearch"]["k"] == 5
    assert search_stage["cosmosDbVectorSearch"]["path"] == "embedding"
    assert search_stage["cosmosDbVectorSearch"]["vector"] == pytest.approx([0.1, 0.2, 0.3])
    assert [h.identity_key for h in hits] == ["243744"]
    assert hits[0].relevance_score == pytest.approx(0.91)
    assert hits[0].origin is SearchOrigin.VECTOR_SEARCH


def test_record_keyword_search_uses_text_index_without_embedding():
    collection = _FakeCollection([STANFORD])
    source = RecordKeywordSource(collection, vector_field="embedding")

    hits = asyncio.run(source.search(query_text="stanford", embedding=None, k=5))

    assert collection.filter == {"$text": {"$search": "stanford"}}
    assert collection.projection == {"embedding": 0}
    assert hits[0].origin is SearchOrigin.KEYWORD_SEARCH
    assert hits[0].relevance_score == 0.0


def test_vector_source_requires_an_embedding():
    source = RecordVectorSource(_FakeCollection([STANFORD]))

    with pytest.raises(SourceUnavailable):
        asyncio.run(source.search(query_text="q", embedding=None, k=5))


def test_store_errors_become_source_unavailable():
    source = RecordVectorSource(_FakeCollection(error=ConnectionError("timed out")))

    with pytest.raises(SourceUnavailable) as info:
        asyncio.run(source.search(query_text="q", embedding=EMBEDDING, k=5))

    assert info.value.source_name == "record_vector_search"


def test_unconfigured_sources_fail_fast():
    for source in (
        ArticleSearchSource(None),
        RecordVectorSource(None),
        RecordKeywordSource(None),
    ):
        assert source.configured is False
        with pytest.raises(SourceUnavailable):
            asyncio.run(source.search(query_text="q", embedding=EMBEDDING, k=1))


def test_non_finite_statistics_are_left_out_of_the_label():
    document = {
        "unitid": 100654,
        "general_info": {"name": "Alabama A&M University", "city": "Normal", "state": "AL"},
        "admissions": {"admission_rate": float("nan")},
        "enrollment": {"total": float("inf")},
        "cost_and_aid": {"tuition_in_state": float("inf")},
    }
    collection = _FakeCollection([document, STANFORD])
    source = RecordKeywordSource(collection)

    hits = asyncio.run(source.search(query_text="alabama", embedding=None, k=5))

    assert [h.identity_key for h in hits] == ["100654", "243744"]
    assert hits[0].label == "Alabama A&M University"
    assert hits[0].rendered_text == "Alabama A&M University is located in Normal, AL."
