"""
Notes feature: Service layer for case notes.
"""

from datetime import datetime, timezone

from supabase import Client

from case_tracker.core.database import SupabaseService
from case_tracker.core.exceptions import NotFoundError
from case_tracker.core.session import SessionRefresher


class NotesService(SupabaseService):
    """CRUD operations for notes attached to a project."""

    def __init__(self, db: Client, refresher: SessionRefresher | None = None):
        super().__init__(db, refresher)

    def get_note(self, note_id: str) -> dict:
        result = self._execute(self.db.table("notes").select("*").eq("id", note_id).limit(1))
        if not result.data:
            raise NotFoundError("Note", note_id)
        return result.data[0]

    def create_note(
        self,
        user_id: str,
        project_id: str,
        content: str,
        is_pinned: bool = False,
    ) -> dict:
        insert_data = {
            "owner_id": user_id,
            "project_id": project_id,
            "content": content,
            "is_pinned": is_pinned,
        }
        result = self._execute(self.db.table("notes").insert(insert_data))
        return result.data[0]

    def list_notes(
        self,
        project_id: str,
        include_archived: bool = False,
        pinned_only: bool = False,
    ) -> list[dict]:
        """List notes of a project, pinned first, then newest first."""
        query = self.db.table("notes").select("*").eq("project_id", project_id)

        if not include_archived:
            query = query.eq("is_archived", False)

        if pinned_only:
            query = query.eq("is_pinned", True)

        result = self._execute(
            query.order("is_pinned", desc=True).order("created_at", desc=True)
        )
        return result.data

    def update_note(self, note_id: str, update_data: dict) -> dict:
        # Filter out None values
        clean_data = {k: v for k, v in update_data.items() if v is not None}
        if not clean_data:
            return self.get_note(note_id)

        clean_data["updated_at"] = datetime.now(timezone.utc).isoformat()
        result = self._execute(self.db.table("notes").update(clean_data).eq("id", note_id))
        return result.data[0] if result.data else self.get_note(note_id)

    def delete_note(self, note_id: str) -> None:
        self._execute(self.db.table("notes").delete().eq("id", note_id))
