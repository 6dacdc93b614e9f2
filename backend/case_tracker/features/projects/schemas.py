"""
Projects feature: Schemas for request/response models.
"""

from pydantic import BaseModel, Field


class ProjectCreate(BaseModel):
    """Request to open a new case."""
    name: str = Field(min_length=1, max_length=200)
    description: str | None = None
    goal_type: str | None = None


class ProjectUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = None
    goal_type: str | None = None
    is_archived: bool | None = None
