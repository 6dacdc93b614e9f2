"""
Collaborators feature: Schemas for request/response models.
"""

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class InviteRequest(BaseModel):
    """Invite someone to a case by email."""
    model_config = ConfigDict(populate_by_name=True)

    project_id: str = Field(alias="projectId", min_length=1)
    email: EmailStr
    role: str = "client_uploader"


class AcceptInviteRequest(BaseModel):
    token: str = Field(min_length=1)
