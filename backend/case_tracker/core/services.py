"""
Service container: every external client is built here once, at startup.

Handlers get the feature services through ``core.dependencies``; nothing in
the codebase constructs a client at import time.
"""

import logging
from dataclasses import dataclass

from langchain_core.language_models import BaseChatModel
from supabase import Client

from case_tracker.background.document_tasks import DocumentPipeline
from case_tracker.config import Settings
from case_tracker.core.database import create_supabase_client
from case_tracker.core.llm_provider import create_embeddings, create_genai_client, create_llm
from case_tracker.core.session import SessionRefresher
from case_tracker.features.collaborators.service import CollaboratorsService
from case_tracker.features.documents.embedding import EmbeddingGenerator
from case_tracker.features.documents.entities import EntityExtractor, EntityStore
from case_tracker.features.documents.extractor import TextExtractor
from case_tracker.features.documents.qa import RetrievalQA
from case_tracker.features.documents.search import ProjectSearch
from case_tracker.features.documents.store import ChunkStore
from case_tracker.features.files.service import FileService
from case_tracker.features.notes.service import NotesService
from case_tracker.features.projects.service import ProjectsService

logger = logging.getLogger(__name__)


@dataclass
class Services:
    settings: Settings
    db: Client
    refresher: SessionRefresher | None
    llm: BaseChatModel
    embedder: EmbeddingGenerator
    extractor: TextExtractor

    def projects(self) -> ProjectsService:
        return ProjectsService(self.db, self.refresher)

    def files(self) -> FileService:
        return FileService(
            self.db,
            bucket=self.settings.STORAGE_BUCKET,
            max_upload_bytes=self.settings.MAX_UPLOAD_BYTES,
            refresher=self.refresher,
        )

    def notes(self) -> NotesService:
        return NotesService(self.db, self.refresher)

    def collaborators(self) -> CollaboratorsService:
        return CollaboratorsService(self.db, self.settings.APP_URL, self.refresher)

    def chunk_store(self) -> ChunkStore:
        return ChunkStore(self.db, self.settings.EMBEDDING_DIMENSIONS, self.refresher)

    def entity_store(self) -> EntityStore:
        return EntityStore(self.db, self.refresher)

    def pipeline(self) -> DocumentPipeline:
        return DocumentPipeline(
            files=self.files(),
            extractor=self.extractor,
            embedder=self.embedder,
            chunks=self.chunk_store(),
            settings=self.settings,
            entity_extractor=EntityExtractor(self.llm, self.settings.LLM_TIMEOUT_SECONDS),
            entity_store=self.entity_store(),
        )

    def qa(self) -> RetrievalQA:
        return RetrievalQA(self.embedder, self.chunk_store(), self.llm, self.settings)

    def search(self) -> ProjectSearch:
        return ProjectSearch(
            self.db,
            embedder=self.embedder,
            chunks=self.chunk_store(),
            entities=self.entity_store(),
            threshold=self.settings.SEARCH_MATCH_THRESHOLD,
            match_count=self.settings.SEARCH_MATCH_COUNT,
            refresher=self.refresher,
        )


def build_services(settings: Settings) -> Services:
    """Construct clients in dependency order: database, session guard, models."""
    db = create_supabase_client(settings)
    refresher = SessionRefresher(
        db.auth,
        cooldown_seconds=settings.SESSION_REFRESH_COOLDOWN_SECONDS,
        max_failures=settings.SESSION_MAX_REFRESH_FAILURES,
        retry_delay_seconds=settings.SESSION_RETRY_DELAY_SECONDS,
    )
    embedder = EmbeddingGenerator(
        create_embeddings(settings),
        dimensions=settings.EMBEDDING_DIMENSIONS,
        timeout_seconds=settings.EMBEDDING_TIMEOUT_SECONDS,
        concurrency=settings.EMBEDDING_CONCURRENCY,
    )
    extractor = TextExtractor(
        create_genai_client(settings),
        model=settings.EXTRACTION_MODEL,
        timeout_seconds=settings.LLM_TIMEOUT_SECONDS * 2,
    )
    logger.info(
        f"🤖 LLM: {settings.LLM_PROVIDER} ({settings.LLM_MODEL}), "
        f"embeddings: {settings.EMBEDDING_PROVIDER} ({settings.EMBEDDING_MODEL}, {settings.EMBEDDING_DIMENSIONS}d)"
    )
    return Services(
        settings=settings,
        db=db,
        refresher=refresher,
        llm=create_llm(settings),
        embedder=embedder,
        extractor=extractor,
    )
