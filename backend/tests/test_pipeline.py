"""Unit tests for the document processing pipeline."""

import asyncio
import io
from unittest.mock import AsyncMock, Mock, patch

import pytest

from case_tracker.background.document_tasks import DocumentPipeline, process_file_task
from case_tracker.core.exceptions import NotFoundError, ProviderError, ValidationError
from case_tracker.features.files.thumbnails import make_image_thumbnail

FILE = {
    "id": "file-1",
    "project_id": "proj-1",
    "owner_id": "user-1",
    "name": "deposition.txt",
    "storage_path": "proj-1/abc_deposition.txt",
    "content_type": "text/plain",
}

TEXT = "\n\n".join(f"Paragraph {i}. " + "The witness stated the facts. " * 20 for i in range(6))


def make_pipeline(settings, text=TEXT, vectors=None, file=FILE):
    files = Mock()
    files.get_file.return_value = file
    files.download.return_value = text.encode()

    extractor = Mock(extract=AsyncMock(return_value=text))

    async def embed_many(texts):
        if vectors is not None:
            return vectors(texts)
        return [[0.1] * 4 for _ in texts]

    embedder = Mock(embed_many=embed_many)
    chunks = Mock()
    chunks.insert_chunks.side_effect = lambda records: len(records)

    pipeline = DocumentPipeline(files, extractor, embedder, chunks, settings)
    return pipeline, files, chunks


class TestDocumentPipeline:
    def test_success_marks_completed(self, settings):
        pipeline, files, chunks = make_pipeline(settings)

        result = asyncio.run(pipeline.process("file-1"))

        assert result.chunk_count > 1
        assert result.failed_chunks == 0
        assert result.text_length == len(TEXT)
        files.set_status.assert_called_once_with("file-1", "processing", extraction_error=None)
        chunks.delete_for_file.assert_called_once_with("file-1")
        files.mark_completed.assert_called_once()
        assert files.mark_completed.call_args.kwargs["chunk_count"] == result.chunk_count
        files.mark_failed.assert_not_called()

    def test_chunk_records_carry_file_project(self, settings):
        pipeline, _, chunks = make_pipeline(settings)
        asyncio.run(pipeline.process("file-1"))

        records = chunks.insert_chunks.call_args.args[0]
        assert {r.project_id for r in records} == {"proj-1"}
        assert [r.chunk_index for r in records] == list(range(len(records)))

    def test_partial_embedding_failure_stores_the_rest(self, settings):
        def vectors(texts):
            return [ProviderError("Embedding", "quota") if i == 1 else [0.1] * 4 for i in range(len(texts))]

        pipeline, files, chunks = make_pipeline(settings, vectors=vectors)
        result = asyncio.run(pipeline.process("file-1"))

        records = chunks.insert_chunks.call_args.args[0]
        assert 1 not in [r.chunk_index for r in records]
        assert result.failed_chunks == 1
        assert result.chunk_count == len(records)
        files.mark_completed.assert_called_once()

    def test_all_embeddings_failing_marks_failed(self, settings):
        def vectors(texts):
            return [ProviderError("Embedding", "quota") for _ in texts]

        pipeline, files, chunks = make_pipeline(settings, vectors=vectors)
        with pytest.raises(ProviderError):
            asyncio.run(pipeline.process("file-1"))

        chunks.insert_chunks.assert_not_called()
        files.mark_failed.assert_called_once()

    def test_existing_chunks_kept_when_every_embedding_fails(self, settings):
        def vectors(texts):
            return [ProviderError("Embedding", "quota") for _ in texts]

        pipeline, _, chunks = make_pipeline(settings, vectors=vectors)
        with pytest.raises(ProviderError):
            asyncio.run(pipeline.process("file-1"))

        chunks.delete_for_file.assert_not_called()

    def test_old_chunks_deleted_only_after_embedding(self, settings):
        pipeline, _, chunks = make_pipeline(settings)
        calls = []
        chunks.delete_for_file.side_effect = lambda file_id: calls.append("delete")
        chunks.insert_chunks.side_effect = lambda records: calls.append("insert") or len(records)
        embed_many = pipeline.embedder.embed_many

        async def tracking_embed_many(texts):
            calls.append("embed")
            return await embed_many(texts)

        pipeline.embedder.embed_many = tracking_embed_many
        asyncio.run(pipeline.process("file-1"))

        assert calls == ["embed", "delete", "insert"]

    def test_no_text_is_422_and_marks_failed(self, settings):
        pipeline, files, _ = make_pipeline(settings, text="   ")
        with pytest.raises(ValidationError) as exc_info:
            asyncio.run(pipeline.process("file-1"))

        assert exc_info.value.status_code == 422
        files.mark_failed.assert_called_once_with("file-1", "No text could be extracted from the file")
        files.mark_completed.assert_not_called()

    def test_project_mismatch_is_not_found(self, settings):
        pipeline, files, _ = make_pipeline(settings)
        with pytest.raises(NotFoundError):
            asyncio.run(pipeline.process("file-1", project_id="other-project"))
        files.set_status.assert_not_called()

    def test_entity_failure_does_not_fail_file(self, settings):
        pipeline, files, _ = make_pipeline(settings)
        pipeline.entity_extractor = Mock(extract=AsyncMock(side_effect=RuntimeError("NER down")))
        pipeline.entity_store = Mock()

        result = asyncio.run(pipeline.process("file-1"))

        assert result.entity_count == 0
        files.mark_completed.assert_called_once()

    def test_background_task_swallows_after_marking(self, settings):
        pipeline, files, _ = make_pipeline(settings, text="")
        asyncio.run(process_file_task(pipeline, "file-1"))
        files.mark_failed.assert_called_once()


IMAGE_FILE = {**FILE, "name": "receipt.png", "content_type": "image/png"}


class TestThumbnails:
    def test_thumbnail_fits_300px_jpeg(self):
        from PIL import Image

        source = io.BytesIO()
        Image.new("RGBA", (600, 400), (200, 10, 10, 128)).save(source, format="PNG")

        with Image.open(io.BytesIO(make_image_thumbnail(source.getvalue()))) as thumb:
            assert thumb.format == "JPEG"
            assert thumb.size == (300, 200)

    def test_image_file_gets_thumbnail_url(self, settings):
        pipeline, files, _ = make_pipeline(settings, file=IMAGE_FILE)
        files.upload_thumbnail.return_value = "https://storage.test/thumbnails/file-1.jpg"

        with patch("case_tracker.background.document_tasks.make_image_thumbnail", return_value=b"jpeg"):
            result = asyncio.run(pipeline.process("file-1"))

        files.upload_thumbnail.assert_called_once_with("file-1", b"jpeg")
        assert result.thumbnail_url == "https://storage.test/thumbnails/file-1.jpg"
        assert files.mark_completed.call_args.kwargs["thumbnail_url"] == result.thumbnail_url

    def test_thumbnail_failure_is_not_fatal(self, settings):
        pipeline, files, _ = make_pipeline(settings, file=IMAGE_FILE)

        with patch("case_tracker.background.document_tasks.make_image_thumbnail", side_effect=OSError("bad image")):
            result = asyncio.run(pipeline.process("file-1"))

        assert result.thumbnail_url is None
        files.upload_thumbnail.assert_not_called()
        files.mark_completed.assert_called_once()

    def test_text_file_has_no_thumbnail(self, settings):
        pipeline, files, _ = make_pipeline(settings)
        asyncio.run(pipeline.process("file-1"))
        files.upload_thumbnail.assert_not_called()
