"""
Projects feature: Service layer for cases and their access rules.
"""

from datetime import datetime, timezone

from supabase import Client

from case_tracker.core.database import SupabaseService
from case_tracker.core.exceptions import AuthorizationError, NotFoundError
from case_tracker.core.session import SessionRefresher


class ProjectsService(SupabaseService):
    """CRUD for projects plus the owner/collaborator access check every handler uses."""

    def __init__(self, db: Client, refresher: SessionRefresher | None = None):
        super().__init__(db, refresher)

    def get_project(self, project_id: str) -> dict:
        result = self._execute(
            self.db.table("projects").select("*").eq("id", project_id).limit(1)
        )
        if not result.data:
            raise NotFoundError("Project", project_id)
        return result.data[0]

    def is_collaborator(self, project_id: str, user_id: str) -> bool:
        result = self._execute(
            self.db.table("project_collaborators")
            .select("id")
            .eq("project_id", project_id)
            .eq("user_id", user_id)
            .eq("status", "accepted")
            .limit(1)
        )
        return bool(result.data)

    def require_access(self, project_id: str, user_id: str) -> dict:
        """Return the project if the user owns it or is an accepted collaborator.

        Raises:
            NotFoundError: Project does not exist.
            AuthorizationError: User is neither owner nor collaborator.
        """
        project = self.get_project(project_id)
        if project.get("owner_id") == user_id:
            return project
        if not self.is_collaborator(project_id, user_id):
            raise AuthorizationError()
        return project

    def require_owner(self, project_id: str, user_id: str) -> dict:
        project = self.get_project(project_id)
        if project.get("owner_id") != user_id:
            raise AuthorizationError("Only the project owner can do this")
        return project

    def list_projects(self, user_id: str, include_archived: bool = False) -> list[dict]:
        """Projects the user owns or collaborates on, newest first."""
        shared = self._execute(
            self.db.table("project_collaborators")
            .select("project_id")
            .eq("user_id", user_id)
            .eq("status", "accepted")
        )
        shared_ids = [row["project_id"] for row in shared.data or []]

        query = self.db.table("projects").select("*")
        if shared_ids:
            query = query.or_(f"owner_id.eq.{user_id},id.in.({','.join(shared_ids)})")
        else:
            query = query.eq("owner_id", user_id)

        if not include_archived:
            query = query.eq("is_archived", False)

        result = self._execute(query.order("created_at", desc=True))
        return result.data

    def create_project(
        self,
        user_id: str,
        name: str,
        description: str | None = None,
        goal_type: str | None = None,
    ) -> dict:
        insert_data = {
            "owner_id": user_id,
            "name": name,
            "description": description,
            "goal_type": goal_type,
            "is_archived": False,
        }
        result = self._execute(self.db.table("projects").insert(insert_data))
        return result.data[0]

    def update_project(self, user_id: str, project_id: str, update_data: dict) -> dict:
        self.require_owner(project_id, user_id)

        # Filter out None values
        clean_data = {k: v for k, v in update_data.items() if v is not None}
        if not clean_data:
            return self.get_project(project_id)

        clean_data["updated_at"] = datetime.now(timezone.utc).isoformat()
        result = self._execute(
            self.db.table("projects").update(clean_data).eq("id", project_id)
        )
        return result.data[0] if result.data else self.get_project(project_id)

    def archive_project(self, user_id: str, project_id: str) -> dict:
        return self.update_project(user_id, project_id, {"is_archived": True})

    def delete_project(self, user_id: str, project_id: str) -> None:
        """Hard delete; files, chunks, notes and entities cascade in the database."""
        self.require_owner(project_id, user_id)
        self._execute(self.db.table("projects").delete().eq("id", project_id))
