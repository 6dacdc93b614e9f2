"""
Notes feature: API routes for case notes.
"""

from fastapi import APIRouter, Depends

from case_tracker.core.dependencies import get_current_user_id, get_notes_service, get_projects_service
from case_tracker.features.notes.schemas import NoteCreate, NoteUpdate
from case_tracker.features.notes.service import NotesService
from case_tracker.features.projects.service import ProjectsService

router = APIRouter()


@router.get("/")
async def list_notes(
    project_id: str,
    include_archived: bool = False,
    pinned_only: bool = False,
    user_id: str = Depends(get_current_user_id),
    projects: ProjectsService = Depends(get_projects_service),
    service: NotesService = Depends(get_notes_service),
):
    """List notes of a case."""
    projects.require_access(project_id, user_id)
    return {"data": service.list_notes(project_id, include_archived, pinned_only)}


@router.post("/")
async def create_note(
    data: NoteCreate,
    user_id: str = Depends(get_current_user_id),
    projects: ProjectsService = Depends(get_projects_service),
    service: NotesService = Depends(get_notes_service),
):
    projects.require_access(data.project_id, user_id)
    note = service.create_note(
        user_id=user_id,
        project_id=data.project_id,
        content=data.content,
        is_pinned=data.is_pinned,
    )
    return {"data": note}


@router.put("/{note_id}")
async def update_note(
    note_id: str,
    data: NoteUpdate,
    user_id: str = Depends(get_current_user_id),
    projects: ProjectsService = Depends(get_projects_service),
    service: NotesService = Depends(get_notes_service),
):
    """Update an existing note."""
    note = service.get_note(note_id)
    projects.require_access(note["project_id"], user_id)
    return {"data": service.update_note(note_id, data.model_dump())}


@router.delete("/{note_id}")
async def delete_note(
    note_id: str,
    user_id: str = Depends(get_current_user_id),
    projects: ProjectsService = Depends(get_projects_service),
    service: NotesService = Depends(get_notes_service),
):
    note = service.get_note(note_id)
    projects.require_access(note["project_id"], user_id)
    service.delete_note(note_id)
    return {"message": "Note deleted"}
