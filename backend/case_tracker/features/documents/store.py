"""
Documents feature: chunk persistence and similarity search (pgvector via Supabase).
"""

import logging

from pydantic import BaseModel
from supabase import Client

from case_tracker.core.database import SupabaseService
from case_tracker.core.exceptions import ProviderError, ValidationError
from case_tracker.core.session import SessionRefresher
from case_tracker.features.documents.chunker import TextChunk

logger = logging.getLogger(__name__)

CHUNKS_TABLE = "document_chunks"
MATCH_FUNCTION = "match_chunks"
INSERT_BATCH_SIZE = 50


class ChunkRecord(BaseModel):
    """A chunk row ready for insertion."""
    file_id: str
    project_id: str
    owner_id: str | None = None
    chunk_index: int
    content: str
    start_char: int
    end_char: int
    page_number: int
    embedding: list[float]

    @classmethod
    def from_chunk(cls, file: dict, chunk: TextChunk, embedding: list[float]) -> "ChunkRecord":
        """Build a record whose project always comes from the owning file row."""
        return cls(
            file_id=str(file["id"]),
            project_id=str(file["project_id"]),
            owner_id=file.get("owner_id"),
            chunk_index=chunk.chunk_index,
            content=chunk.content,
            start_char=chunk.start_char,
            end_char=chunk.end_char,
            page_number=chunk.page_number,
            embedding=embedding,
        )


class ChunkMatch(BaseModel):
    """One similarity-search hit."""
    chunk_id: str
    file_id: str
    similarity: float
    content: str = ""
    page_number: int | None = None
    file_name: str | None = None


class ChunkStore(SupabaseService):
    """Writes chunk rows and runs vector similarity search."""

    def __init__(self, db: Client, dimensions: int, refresher: SessionRefresher | None = None):
        super().__init__(db, refresher)
        self.dimensions = dimensions

    def insert_chunks(self, records: list[ChunkRecord]) -> int:
        """Insert chunk rows in batches.

        Raises:
            ValidationError: If a vector has the wrong dimension, or chunks of
                one file disagree on the project.
        """
        if not records:
            return 0

        projects_by_file: dict[str, str] = {}
        for record in records:
            if len(record.embedding) != self.dimensions:
                raise ValidationError(
                    f"Chunk {record.chunk_index} of file {record.file_id} has "
                    f"{len(record.embedding)} dimensions, expected {self.dimensions}"
                )
            known = projects_by_file.setdefault(record.file_id, record.project_id)
            if known != record.project_id:
                raise ValidationError(
                    f"Chunks of file {record.file_id} reference different projects"
                )

        rows = [record.model_dump() for record in records]
        for i in range(0, len(rows), INSERT_BATCH_SIZE):
            self._execute(self.db.table(CHUNKS_TABLE).insert(rows[i:i + INSERT_BATCH_SIZE]))

        logger.info(f"✅ Inserted {len(rows)} chunks into {CHUNKS_TABLE}")
        return len(rows)

    def delete_for_file(self, file_id: str) -> None:
        """Drop every chunk of a file (regeneration is delete-all + re-create)."""
        self._execute(self.db.table(CHUNKS_TABLE).delete().eq("file_id", file_id))

    def similarity_search(
        self,
        query_vector: list[float],
        project_id: str,
        threshold: float,
        limit: int,
        file_id: str | None = None,
    ) -> list[ChunkMatch]:
        """Chunks of a project most similar to the query vector.

        Returns:
            At most ``limit`` matches above ``threshold``, most similar first.
        """
        if len(query_vector) != self.dimensions:
            raise ValidationError(
                f"Query vector has {len(query_vector)} dimensions, expected {self.dimensions}"
            )
        if limit <= 0:
            return []

        try:
            res = self._execute(
                self.db.rpc(
                    MATCH_FUNCTION,
                    {
                        "query_embedding": query_vector,
                        "match_threshold": threshold,
                        "match_count": limit,
                        "p_project_id": project_id,
                        "p_file_id": file_id,
                    },
                )
            )
        except Exception as e:
            raise ProviderError("Database", f"{MATCH_FUNCTION} failed: {e}") from e

        matches = [
            ChunkMatch(
                chunk_id=str(row["id"]),
                file_id=str(row["file_id"]),
                similarity=float(row["similarity"]),
                content=row.get("content") or "",
                page_number=row.get("page_number"),
                file_name=row.get("file_name"),
            )
            for row in (res.data or [])
        ]
        matches = [m for m in matches if m.similarity > threshold]
        matches.sort(key=lambda m: m.similarity, reverse=True)
        return matches[:limit]
