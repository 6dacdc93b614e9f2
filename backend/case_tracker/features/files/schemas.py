"""
Files feature: Schemas for request/response models.
"""

from pydantic import BaseModel, ConfigDict, Field


class FileRename(BaseModel):
    name: str = Field(min_length=1, max_length=255)


class SuggestFilenameRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    file_id: str = Field(alias="fileId", min_length=1)


class SuggestFilenameResponse(BaseModel):
    """Suggested names plus the exhibit id the file would get next."""
    model_config = ConfigDict(populate_by_name=True)

    suggested_names: list[str] = Field(serialization_alias="suggestedNames")
    next_exhibit_id: str = Field(serialization_alias="nextExhibitId")
