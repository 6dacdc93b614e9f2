"""
Documents feature: file search within a project.

Keyword search matches file names; semantic search matches chunk embeddings
and maps them back to their files. ``combined`` returns the union.
"""

import json
import logging
import re

from supabase import Client

from case_tracker.core.database import SupabaseService
from case_tracker.core.exceptions import AppBaseError
from case_tracker.core.session import SessionRefresher
from case_tracker.features.documents.embedding import EmbeddingGenerator
from case_tracker.features.documents.entities import EntityStore
from case_tracker.features.documents.schemas import Pagination, SearchFilters, SearchResult
from case_tracker.features.documents.store import ChunkStore

logger = logging.getLogger(__name__)

FILE_COLUMNS = (
    "id, name, project_id, owner_id, storage_path, content_type, size, file_type, "
    "metadata, exhibit_id, processing_status, thumbnail_url, created_at"
)

# PostgREST uses these as filter syntax inside or=(...)
_FILTER_SYNTAX = re.compile(r"[,()%*\\]")


def ilike_pattern(query_text: str) -> str:
    return f"%{_FILTER_SYNTAX.sub(' ', query_text).strip()}%"


class ProjectSearch(SupabaseService):
    def __init__(
        self,
        db: Client,
        embedder: EmbeddingGenerator,
        chunks: ChunkStore,
        entities: EntityStore,
        threshold: float = 0.7,
        match_count: int = 50,
        refresher: SessionRefresher | None = None,
    ):
        super().__init__(db, refresher)
        self.embedder = embedder
        self.chunks = chunks
        self.entities = entities
        self.threshold = threshold
        self.match_count = match_count

    async def search(
        self,
        project_id: str,
        query_text: str | None,
        filters: SearchFilters,
        pagination: Pagination,
    ) -> SearchResult:
        """Files of a project matching the filters, newest first."""
        query = self.db.table("files").select(FILE_COLUMNS, count="exact").eq("project_id", project_id)

        if filters.date_range:
            if filters.date_range.start:
                query = query.gte("created_at", filters.date_range.start)
            if filters.date_range.end:
                query = query.lte("created_at", filters.date_range.end)

        if filters.file_types:
            query = query.in_("file_type", filters.file_types)

        if filters.tags:
            query = query.filter("metadata->tags", "cs", json.dumps(filters.tags))

        if filters.entities:
            file_ids = self.entities.file_ids_matching(
                project_id, [(e.type, e.text) for e in filters.entities]
            )
            if not file_ids:
                return SearchResult(files=[], total_count=0)
            query = query.in_("id", file_ids)

        text = (query_text or "").strip()
        search_type = filters.search_type
        semantic_ids: list[str] = []

        if text and search_type in ("semantic", "combined"):
            try:
                semantic_ids = await self._semantic_file_ids(project_id, text)
            except AppBaseError as e:
                logger.error(f"❌ Semantic search failed, falling back to keyword: {e.message}")
                search_type = "keyword"
            else:
                if search_type == "semantic":
                    if not semantic_ids:
                        return SearchResult(files=[], total_count=0)
                    query = query.in_("id", semantic_ids)

        if text and search_type in ("keyword", "combined"):
            pattern = ilike_pattern(text)
            if search_type == "combined" and semantic_ids:
                query = query.or_(f"id.in.({','.join(semantic_ids)}),name.ilike.{pattern}")
            else:
                query = query.ilike("name", pattern)

        res = self._execute(
            query.order("created_at", desc=True).range(
                pagination.offset, pagination.offset + pagination.limit - 1
            )
        )
        return SearchResult(files=res.data or [], total_count=res.count or 0)

    async def _semantic_file_ids(self, project_id: str, text: str) -> list[str]:
        vector = await self.embedder.embed(text)
        matches = self.chunks.similarity_search(
            vector, project_id, threshold=self.threshold, limit=self.match_count
        )
        # Unique file ids in rank order
        return list(dict.fromkeys(m.file_id for m in matches))
