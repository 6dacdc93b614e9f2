"""
Documents feature: request/response models.

Request bodies accept the camelCase field names the web client sends.
"""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class CamelRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


# ── Requests ─────────────────────────────────────────────
class ProcessFileRequest(CamelRequest):
    file_id: str = Field(alias="fileId", min_length=1)
    project_id: str | None = Field(default=None, alias="projectId")


class RegenerateRequest(CamelRequest):
    file_id: str = Field(alias="fileId", min_length=1)


class FileQuestionRequest(CamelRequest):
    file_id: str = Field(alias="fileId", min_length=1)
    question: str = Field(min_length=1)


class ProjectQuestionRequest(CamelRequest):
    project_id: str = Field(alias="projectId", min_length=1)
    question: str = Field(min_length=1)
    limit: int = Field(default=5, ge=1, le=50)


class DateRange(CamelRequest):
    start: str | None = None
    end: str | None = None


class EntityFilter(CamelRequest):
    type: str
    text: str


class SearchFilters(CamelRequest):
    date_range: DateRange | None = Field(default=None, alias="dateRange")
    file_types: list[str] = Field(default_factory=list, alias="fileTypes")
    tags: list[str] = Field(default_factory=list)
    entities: list[EntityFilter] = Field(default_factory=list)
    search_type: Literal["keyword", "semantic", "combined"] = Field(default="combined", alias="searchType")


class Pagination(CamelRequest):
    limit: int = Field(default=50, ge=1, le=200)
    offset: int = Field(default=0, ge=0)


class SearchRequest(CamelRequest):
    project_id: str = Field(alias="projectId", min_length=1)
    query_text: str | None = Field(default=None, alias="queryText")
    filters: SearchFilters = Field(default_factory=SearchFilters)
    pagination: Pagination = Field(default_factory=Pagination)


# ── Responses ────────────────────────────────────────────
class Citation(BaseModel):
    text: str
    source: str | None = None


class SourceChunk(BaseModel):
    chunk_id: str
    file_id: str
    file_name: str | None = None
    page_number: int | None = None
    similarity: float
    preview: str


class QAResult(BaseModel):
    """Answer plus the evidence it was built from."""
    answer: str
    confidence: float
    source_chunk_ids: list[str] = []
    insufficient_evidence: bool = False
    needs_attorney_review: bool = True
    citations: list[Citation] = []
    sources: list[SourceChunk] = []


class ProcessingResult(BaseModel):
    file_id: str
    chunk_count: int
    failed_chunks: int = 0
    text_length: int
    thumbnail_url: str | None = None
    entity_count: int = 0


class SearchResult(BaseModel):
    files: list[dict]
    total_count: int
