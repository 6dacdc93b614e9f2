"""
Files feature: Service layer for case files (storage objects + `files` rows).
"""

import logging
import re
import unicodedata
import uuid
from datetime import datetime, timezone

from supabase import Client

from case_tracker.core.database import SupabaseService
from case_tracker.core.exceptions import NotFoundError, ProviderError, ValidationError
from case_tracker.core.session import SessionRefresher
from case_tracker.features.files.thumbnails import THUMBNAIL_CONTENT_TYPE

logger = logging.getLogger(__name__)

FILE_STATUSES = ("pending", "processing", "completed", "failed")
EXHIBIT_PATTERN = re.compile(r"EXH-(\d+)")
SIGNED_URL_TTL_SECONDS = 3600


def secure_filename(filename: str) -> str:
    """Strip accents and special characters, replace spaces with underscores."""
    filename = unicodedata.normalize("NFKD", filename).encode("ascii", "ignore").decode("ascii")
    filename = re.sub(r"[^\w\.-]", "_", filename)
    return filename or "file"


def file_type_for(content_type: str) -> str:
    """Coarse file category used by the search filters."""
    content_type = (content_type or "").lower()
    if content_type == "application/pdf":
        return "pdf"
    if "wordprocessingml" in content_type or content_type == "application/msword":
        return "document"
    for prefix in ("image", "audio", "video", "text"):
        if content_type.startswith(f"{prefix}/"):
            return prefix
    return "other"


def format_exhibit_id(number: int) -> str:
    return f"EXH-{number:03d}"


class FileService(SupabaseService):
    """Case files: storage upload/download, row bookkeeping, processing status."""

    def __init__(
        self,
        db: Client,
        bucket: str,
        max_upload_bytes: int,
        refresher: SessionRefresher | None = None,
    ):
        super().__init__(db, refresher)
        self.bucket = bucket
        self.max_upload_bytes = max_upload_bytes

    # ── Rows ─────────────────────────────────────────────
    def get_file(self, file_id: str) -> dict:
        result = self._execute(self.db.table("files").select("*").eq("id", file_id).limit(1))
        if not result.data:
            raise NotFoundError("File", file_id)
        return result.data[0]

    def list_files(
        self,
        project_id: str,
        page: int = 1,
        page_size: int = 20,
        status: str | None = None,
    ) -> tuple[list[dict], int]:
        """One page of a project's files, newest first, plus the total count."""
        page = max(1, page)
        page_size = max(1, min(100, page_size))
        offset = (page - 1) * page_size

        query = self.db.table("files").select("*", count="exact").eq("project_id", project_id)
        if status:
            if status not in FILE_STATUSES:
                raise ValidationError(f"Invalid status. Must be one of: {', '.join(FILE_STATUSES)}")
            query = query.eq("processing_status", status)

        result = self._execute(
            query.order("created_at", desc=True).range(offset, offset + page_size - 1)
        )
        return result.data, result.count or 0

    def next_exhibit_id(self, project_id: str) -> str:
        """``EXH-NNN``, one above the highest exhibit number in the project."""
        result = self._execute(
            self.db.table("files")
            .select("exhibit_id")
            .eq("project_id", project_id)
            .not_.is_("exhibit_id", "null")
        )
        highest = 0
        for row in result.data or []:
            match = EXHIBIT_PATTERN.search(row.get("exhibit_id") or "")
            if match:
                highest = max(highest, int(match.group(1)))
        return format_exhibit_id(highest + 1)

    def set_status(self, file_id: str, status: str, **fields) -> None:
        if status not in FILE_STATUSES:
            raise ValidationError(f"Unknown processing status: {status}")
        self._execute(
            self.db.table("files")
            .update({"processing_status": status, **fields})
            .eq("id", file_id)
        )

    def mark_completed(
        self,
        file_id: str,
        chunk_count: int,
        text_length: int,
        thumbnail_url: str | None = None,
    ) -> None:
        fields = {
            "chunk_count": chunk_count,
            "extracted_text_length": text_length,
            "extraction_error": None,
            "processed_at": datetime.now(timezone.utc).isoformat(),
        }
        if thumbnail_url:
            fields["thumbnail_url"] = thumbnail_url
        self.set_status(file_id, "completed", **fields)

    def mark_failed(self, file_id: str, error: str) -> None:
        self.set_status(file_id, "failed", extraction_error=error[:1000])

    def rename(self, file_id: str, name: str) -> dict:
        name = name.strip()
        if not name:
            raise ValidationError("File name is required")
        result = self._execute(self.db.table("files").update({"name": name}).eq("id", file_id))
        return result.data[0] if result.data else self.get_file(file_id)

    # ── Storage ──────────────────────────────────────────
    def upload(
        self,
        user_id: str,
        project_id: str,
        filename: str,
        content_type: str,
        file_bytes: bytes,
    ) -> dict:
        """Store the object and create its `files` row with the next exhibit id.

        The row starts in ``pending``; processing is scheduled by the caller.
        """
        if not file_bytes:
            raise ValidationError("Uploaded file is empty")
        if len(file_bytes) > self.max_upload_bytes:
            raise ValidationError(
                f"File too large. Maximum size is {self.max_upload_bytes // (1024 * 1024)}MB.",
                status_code=413,
            )

        content_type = content_type or "application/octet-stream"
        storage_path = f"{project_id}/{uuid.uuid4().hex}_{secure_filename(filename)}"
        try:
            self.db.storage.from_(self.bucket).upload(
                file=file_bytes,
                path=storage_path,
                file_options={"content-type": content_type, "upsert": "false"},
            )
        except Exception as e:
            raise ProviderError("Storage", f"upload of {storage_path} failed: {e}") from e

        try:
            insert_data = {
                "project_id": project_id,
                "owner_id": user_id,
                "name": filename,
                "storage_path": storage_path,
                "content_type": content_type,
                "file_type": file_type_for(content_type),
                "size": len(file_bytes),
                "exhibit_id": self.next_exhibit_id(project_id),
                "processing_status": "pending",
                "metadata": {},
            }
            result = self._execute(self.db.table("files").insert(insert_data))
        except Exception:
            self._remove_orphan(storage_path)
            raise
        logger.info(f"📄 Stored file {filename} at {storage_path}")
        return result.data[0]

    def _remove_orphan(self, storage_path: str) -> None:
        try:
            self.db.storage.from_(self.bucket).remove([storage_path])
        except Exception as e:
            logger.warning(f"⚠️ Could not remove orphaned object {storage_path}: {e}")
        else:
            logger.info(f"🧹 Removed orphaned object {storage_path}")

    def download(self, file: dict) -> bytes:
        try:
            return self.db.storage.from_(self.bucket).download(file["storage_path"])
        except Exception as e:
            raise ProviderError("Storage", f"download of {file.get('storage_path')} failed: {e}") from e

    def upload_thumbnail(self, file_id: str, thumbnail_bytes: bytes) -> str:
        """Store a thumbnail at ``thumbnails/{file_id}.jpg`` and return its URL."""
        path = f"thumbnails/{file_id}.jpg"
        bucket = self.db.storage.from_(self.bucket)
        try:
            bucket.upload(
                file=thumbnail_bytes,
                path=path,
                file_options={"content-type": THUMBNAIL_CONTENT_TYPE, "upsert": "true"},
            )
        except Exception as e:
            raise ProviderError("Storage", f"thumbnail upload for {file_id} failed: {e}") from e
        return bucket.get_public_url(path)

    def signed_url(self, file: dict) -> str | None:
        try:
            signed = self.db.storage.from_(self.bucket).create_signed_url(
                file["storage_path"], SIGNED_URL_TTL_SECONDS
            )
        except Exception as e:
            logger.warning(f"Could not generate signed URL for {file.get('storage_path')}: {e}")
            return None
        return signed.get("signedURL") or signed.get("signedUrl")

    def delete_file(self, file: dict) -> None:
        """Remove the object (and thumbnail) then the row; chunks/entities cascade."""
        paths = [file["storage_path"]]
        if file.get("thumbnail_url"):
            paths.append(f"thumbnails/{file['id']}.jpg")
        try:
            self.db.storage.from_(self.bucket).remove(paths)
        except Exception as e:
            logger.warning(f"⚠️ Could not remove storage objects for file {file['id']}: {e}")
        self._execute(self.db.table("files").delete().eq("id", file["id"]))
