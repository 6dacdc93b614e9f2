"""
Notes feature: Schemas for request/response models.
"""

from pydantic import BaseModel, ConfigDict, Field


class NoteCreate(BaseModel):
    """Request to add a note to a case."""
    model_config = ConfigDict(populate_by_name=True)

    project_id: str = Field(alias="projectId", min_length=1)
    content: str = Field(min_length=1)
    is_pinned: bool = False


class NoteUpdate(BaseModel):
    content: str | None = Field(default=None, min_length=1)
    is_pinned: bool | None = None
    is_archived: bool | None = None
