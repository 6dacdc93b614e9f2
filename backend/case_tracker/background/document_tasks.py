import asyncio
import logging

from case_tracker.config import Settings
from case_tracker.core.exceptions import AppBaseError, NotFoundError, ProviderError, ValidationError
from case_tracker.features.documents.chunker import chunk_text
from case_tracker.features.documents.embedding import EmbeddingGenerator
from case_tracker.features.documents.entities import EntityExtractor, EntityStore
from case_tracker.features.documents.extractor import TextExtractor
from case_tracker.features.documents.schemas import ProcessingResult
from case_tracker.features.documents.store import ChunkRecord, ChunkStore
from case_tracker.features.files.service import FileService
from case_tracker.features.files.thumbnails import make_image_thumbnail

logger = logging.getLogger(__name__)


class DocumentPipeline:
    """
    Processes one stored file end to end:
    1. Mark the file `processing` and download it from storage.
    2. Extract text (local parsers first, Gemini for scans/images/media).
    3. Store a thumbnail for images.
    4. Chunk and embed concurrently, then replace the file's stored chunks.
    5. Extract named entities (best effort).
    6. Mark `completed`, or `failed` with the error if any step above raised.
    """

    def __init__(
        self,
        files: FileService,
        extractor: TextExtractor,
        embedder: EmbeddingGenerator,
        chunks: ChunkStore,
        settings: Settings,
        entity_extractor: EntityExtractor | None = None,
        entity_store: EntityStore | None = None,
    ):
        self.files = files
        self.extractor = extractor
        self.embedder = embedder
        self.chunks = chunks
        self.settings = settings
        self.entity_extractor = entity_extractor
        self.entity_store = entity_store

    async def process(self, file_id: str, project_id: str | None = None) -> ProcessingResult:
        file = self.files.get_file(file_id)
        if project_id and str(file["project_id"]) != str(project_id):
            raise NotFoundError("File", file_id)

        name = file.get("name") or file_id
        logger.info(f"🚀 Starting processing for file {file_id} ({name})")
        self.files.set_status(file_id, "processing", extraction_error=None)

        try:
            result = await self._run(file)
        except Exception as e:
            message = e.message if isinstance(e, AppBaseError) else str(e)
            logger.error(f"❌ Document pipeline failed for {file_id}: {message}")
            self.files.mark_failed(file_id, message)
            raise

        logger.info(f"🎉 Document pipeline finished for {file_id}: {result.chunk_count} chunks")
        return result

    async def _run(self, file: dict) -> ProcessingResult:
        file_id = str(file["id"])
        content_type = file.get("content_type") or "application/octet-stream"

        file_bytes = await asyncio.to_thread(self.files.download, file)
        text = await self.extractor.extract(file_bytes, content_type, file.get("name") or "")
        if not text.strip():
            raise ValidationError("No text could be extracted from the file", status_code=422)
        logger.info(f"✅ Extracted {len(text)} characters from {file_id}")

        thumbnail_url = None
        if content_type.startswith("image/"):
            thumbnail_url = await self._store_thumbnail(file_id, file_bytes)

        chunk_count, failed = await self._replace_chunks(file, text)

        entity_count = await self._extract_entities(file, text)

        self.files.mark_completed(
            file_id,
            chunk_count=chunk_count,
            text_length=len(text),
            thumbnail_url=thumbnail_url,
        )
        return ProcessingResult(
            file_id=file_id,
            chunk_count=chunk_count,
            failed_chunks=failed,
            text_length=len(text),
            thumbnail_url=thumbnail_url,
            entity_count=entity_count,
        )

    async def _replace_chunks(self, file: dict, text: str) -> tuple[int, int]:
        """Embed first, then delete-all and re-create; returns (stored, failed) chunk counts."""
        file_id = str(file["id"])

        pieces = chunk_text(text, self.settings.CHUNK_MAX_SIZE, self.settings.CHUNK_OVERLAP)
        logger.info(f"✅ Generated {len(pieces)} chunks for {file_id}")

        vectors = await self.embedder.embed_many([piece.content for piece in pieces])

        records = []
        failed = 0
        for piece, vector in zip(pieces, vectors):
            if isinstance(vector, ProviderError):
                failed += 1
                logger.warning(f"⚠️ Embedding failed for chunk {piece.chunk_index} of {file_id}: {vector.detail}")
                continue
            records.append(ChunkRecord.from_chunk(file, piece, vector))

        if pieces and not records:
            raise ProviderError("Embedding", f"all {len(pieces)} chunks of {file_id} failed to embed")
        if failed:
            logger.warning(f"⚠️ Stored {len(records)}/{len(pieces)} chunks for {file_id}, {failed} failed")

        # Replace only once new vectors exist
        self.chunks.delete_for_file(file_id)
        return self.chunks.insert_chunks(records), failed

    async def _store_thumbnail(self, file_id: str, file_bytes: bytes) -> str | None:
        try:
            thumbnail = await asyncio.to_thread(make_image_thumbnail, file_bytes)
            return await asyncio.to_thread(self.files.upload_thumbnail, file_id, thumbnail)
        except Exception as e:
            logger.warning(f"⚠️ Thumbnail generation failed for {file_id}: {e}")
            return None

    async def _extract_entities(self, file: dict, text: str) -> int:
        if not (self.entity_extractor and self.entity_store):
            return 0
        try:
            entities = await self.entity_extractor.extract(text)
            return await asyncio.to_thread(self.entity_store.replace_for_file, file, entities)
        except Exception as e:
            logger.warning(f"⚠️ Entity extraction failed for {file['id']}: {e}")
            return 0


async def process_file_task(pipeline: DocumentPipeline, file_id: str) -> None:
    """BackgroundTasks entry point; the file row already records any failure."""
    try:
        await pipeline.process(file_id)
    except Exception as e:
        logger.error(f"❌ Background processing for {file_id} ended with error: {e}")
