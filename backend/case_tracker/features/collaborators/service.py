"""
Collaborators feature: invitations to share a case.
"""

import logging
import secrets
from datetime import datetime, timezone

from supabase import Client

from case_tracker.core.database import SupabaseService
from case_tracker.core.exceptions import (
    AuthorizationError,
    ConflictError,
    ValidationError,
)
from case_tracker.core.session import SessionRefresher

logger = logging.getLogger(__name__)

DEFAULT_ROLE = "client_uploader"


class CollaboratorsService(SupabaseService):
    def __init__(self, db: Client, app_url: str, refresher: SessionRefresher | None = None):
        super().__init__(db, refresher)
        self.app_url = app_url.rstrip("/")

    def list_collaborators(self, project_id: str) -> list[dict]:
        result = self._execute(
            self.db.table("project_collaborators")
            .select("id, project_id, user_id, email, role, status, invited_by, accepted_at, created_at")
            .eq("project_id", project_id)
            .order("created_at", desc=True)
        )
        return result.data

    def invite(self, project_id: str, inviter_id: str, email: str, role: str = DEFAULT_ROLE) -> dict:
        """Create a pending invitation; the caller must already be the project owner.

        Raises:
            ConflictError: The email already has an invitation for this project.
        """
        email = email.strip().lower()
        existing = self._execute(
            self.db.table("project_collaborators")
            .select("id, status")
            .eq("project_id", project_id)
            .eq("email", email)
            .limit(1)
        )
        if existing.data:
            raise ConflictError(
                "User already invited to this project",
                detail=f"status: {existing.data[0].get('status')}",
            )

        invite_token = secrets.token_urlsafe(32)
        result = self._execute(
            self.db.table("project_collaborators").insert({
                "project_id": project_id,
                "email": email,
                "role": role,
                "invited_by": inviter_id,
                "invite_token": invite_token,
                "status": "pending",
            })
        )
        logger.info(f"✉️ Invited {email} to project {project_id}")
        return {
            "collaborator": result.data[0],
            "invite_url": f"{self.app_url}/accept-invite?token={invite_token}",
        }

    def accept(self, invite_token: str, user_id: str, user_email: str | None) -> dict:
        """Attach a pending invitation to the signed-in user.

        Raises:
            ValidationError: Token unknown or already used.
            AuthorizationError: Invitation was addressed to another email.
        """
        result = self._execute(
            self.db.table("project_collaborators")
            .select("*")
            .eq("invite_token", invite_token)
            .eq("status", "pending")
            .limit(1)
        )
        if not result.data:
            raise ValidationError("Invalid or expired invitation token")

        invite = result.data[0]
        invited_email = (invite.get("email") or "").lower()
        if invited_email and invited_email != (user_email or "").lower():
            raise AuthorizationError("This invitation was sent to a different email address")

        updated = self._execute(
            self.db.table("project_collaborators")
            .update({
                "user_id": user_id,
                "status": "accepted",
                "invite_token": None,
                "accepted_at": datetime.now(timezone.utc).isoformat(),
            })
            .eq("id", invite["id"])
        )
        return updated.data[0] if updated.data else {**invite, "status": "accepted", "user_id": user_id}

    def remove(self, project_id: str, collaborator_id: str) -> None:
        self._execute(
            self.db.table("project_collaborators")
            .delete()
            .eq("id", collaborator_id)
            .eq("project_id", project_id)
        )
