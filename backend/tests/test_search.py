"""Unit tests for project file search."""

import asyncio
from unittest.mock import AsyncMock, Mock

from postgrest.exceptions import APIError

from case_tracker.core.exceptions import ProviderError
from case_tracker.features.documents.schemas import Pagination, SearchFilters
from case_tracker.features.documents.search import ProjectSearch, ilike_pattern
from case_tracker.features.documents.store import ChunkMatch, ChunkStore


def make_search(fake_db, matches=None, embed_error=None, entity_ids=None):
    embedder = Mock(embed=AsyncMock(side_effect=embed_error, return_value=[0.1] * 4))
    chunks = Mock(similarity_search=Mock(return_value=matches or []))
    entities = Mock(file_ids_matching=Mock(return_value=entity_ids or []))
    return ProjectSearch(fake_db, embedder, chunks, entities), embedder, chunks


def hit(file_id: str, similarity: float) -> ChunkMatch:
    return ChunkMatch(chunk_id=f"c-{file_id}-{similarity}", file_id=file_id, similarity=similarity)


def run(search, query_text, filters=None, pagination=None):
    return asyncio.run(search.search("proj-1", query_text, filters or SearchFilters(), pagination or Pagination()))


class TestProjectSearch:
    def test_keyword_search_uses_ilike_and_pagination(self, fake_db):
        fake_db.queue("files", data=[{"id": "f1"}], count=1)
        search, embedder, _ = make_search(fake_db)

        result = run(search, "lease", SearchFilters(searchType="keyword"), Pagination(limit=10, offset=20))

        query = fake_db.queries_for("files")[0]
        assert query.called("ilike") == [("name", "%lease%")]
        assert query.called("range") == [(20, 29)]
        assert query.called("order") == [("created_at",)]
        assert result.total_count == 1
        embedder.embed.assert_not_awaited()

    def test_combined_unions_semantic_hits_with_name_match(self, fake_db):
        search, _, chunks = make_search(fake_db, matches=[hit("f2", 0.9), hit("f1", 0.8), hit("f2", 0.75)])

        run(search, "lease")

        query = fake_db.queries_for("files")[0]
        assert query.called("or_") == [("id.in.(f2,f1),name.ilike.%lease%",)]
        assert chunks.similarity_search.call_args.kwargs == {"threshold": 0.7, "limit": 50}

    def test_semantic_only_without_hits_is_empty(self, fake_db):
        search, *_ = make_search(fake_db, matches=[])
        result = run(search, "lease", SearchFilters(searchType="semantic"))
        assert result.files == [] and result.total_count == 0

    def test_semantic_failure_falls_back_to_keyword(self, fake_db):
        search, *_ = make_search(fake_db, embed_error=ProviderError("Embedding", "quota"))

        run(search, "lease", SearchFilters(searchType="semantic"))

        query = fake_db.queries_for("files")[0]
        assert query.called("ilike") == [("name", "%lease%")]

    def test_match_function_failure_falls_back_to_keyword(self, fake_db):
        fake_db.queue("match_chunks", error=APIError({"message": "function match_chunks does not exist"}))
        fake_db.queue("files", data=[{"id": "f1", "name": "lease.pdf"}], count=1)
        embedder = Mock(embed=AsyncMock(return_value=[0.1] * 4))
        search = ProjectSearch(fake_db, embedder, ChunkStore(fake_db, dimensions=4), Mock())

        result = run(search, "lease")

        assert result.total_count == 1
        query = fake_db.queries_for("files")[0]
        assert query.called("ilike") == [("name", "%lease%")]
        assert query.called("or_") == []

    def test_entity_filter_without_matches_is_empty(self, fake_db):
        search, *_ = make_search(fake_db, entity_ids=[])
        filters = SearchFilters(entities=[{"type": "PERSON", "text": "Jane Doe"}])
        result = run(search, None, filters)
        assert result.total_count == 0

    def test_filters_applied(self, fake_db):
        search, *_ = make_search(fake_db, entity_ids=["f3"])
        filters = SearchFilters(
            dateRange={"start": "2024-01-01", "end": "2024-12-31"},
            fileTypes=["pdf", "image"],
            tags=["contract"],
            entities=[{"type": "ORG", "text": "Acme Corp"}],
        )

        run(search, None, filters)

        query = fake_db.queries_for("files")[0]
        assert query.called("gte") == [("created_at", "2024-01-01")]
        assert query.called("lte") == [("created_at", "2024-12-31")]
        assert ("file_type", ["pdf", "image"]) in query.called("in_")
        assert ("id", ["f3"]) in query.called("in_")
        assert query.called("filter") == [("metadata->tags", "cs", '["contract"]')]

    def test_ilike_pattern_strips_filter_syntax(self):
        assert ilike_pattern("smith, (jane)") == "%smith   jane%"
