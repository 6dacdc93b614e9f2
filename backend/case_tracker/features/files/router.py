"""
Files feature: API routes for case files.
"""

import logging

from fastapi import APIRouter, BackgroundTasks, Depends, File, Form, UploadFile

from case_tracker.background.document_tasks import DocumentPipeline, process_file_task
from case_tracker.core.dependencies import (
    get_current_user_id,
    get_file_service,
    get_pipeline,
    get_projects_service,
    get_services,
)
from case_tracker.core.services import Services
from case_tracker.features.files.naming import suggest_filenames
from case_tracker.features.files.schemas import (
    FileRename,
    SuggestFilenameRequest,
    SuggestFilenameResponse,
)
from case_tracker.features.files.service import FileService
from case_tracker.features.projects.service import ProjectsService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/")
async def list_files(
    project_id: str,
    page: int = 1,
    page_size: int = 20,
    status: str | None = None,
    user_id: str = Depends(get_current_user_id),
    projects: ProjectsService = Depends(get_projects_service),
    files: FileService = Depends(get_file_service),
):
    """List a case's files, newest first, with pagination."""
    projects.require_access(project_id, user_id)
    data, total = files.list_files(project_id, page, page_size, status)
    page_size = max(1, min(100, page_size))
    return {
        "data": data,
        "pagination": {
            "total": total,
            "page": max(1, page),
            "page_size": page_size,
            "total_pages": max(1, -(-total // page_size)),  # ceiling division
        },
    }


@router.post("/upload")
async def upload_file(
    background_tasks: BackgroundTasks,
    file: UploadFile = File(...),
    project_id: str = Form(...),
    user_id: str = Depends(get_current_user_id),
    projects: ProjectsService = Depends(get_projects_service),
    files: FileService = Depends(get_file_service),
    pipeline: DocumentPipeline = Depends(get_pipeline),
):
    """
    Upload evidence to a case.
    - Stores the object in Supabase Storage.
    - Creates the `files` row (status `pending`, next exhibit id).
    - Schedules text extraction, chunking and embedding in the background.
    """
    projects.require_access(project_id, user_id)
    file_bytes = await file.read()
    row = files.upload(
        user_id=user_id,
        project_id=project_id,
        filename=file.filename or "upload",
        content_type=file.content_type,
        file_bytes=file_bytes,
    )
    background_tasks.add_task(process_file_task, pipeline, row["id"])
    return {
        "status": "success",
        "message": "Upload successful. File is being processed in the background.",
        "data": row,
    }


@router.get("/next-exhibit-id")
async def next_exhibit_id(
    project_id: str,
    user_id: str = Depends(get_current_user_id),
    projects: ProjectsService = Depends(get_projects_service),
    files: FileService = Depends(get_file_service),
):
    projects.require_access(project_id, user_id)
    return {"nextExhibitId": files.next_exhibit_id(project_id)}


@router.post("/suggest-filename", response_model=SuggestFilenameResponse)
async def suggest_filename(
    data: SuggestFilenameRequest,
    user_id: str = Depends(get_current_user_id),
    projects: ProjectsService = Depends(get_projects_service),
    files: FileService = Depends(get_file_service),
    services: Services = Depends(get_services),
):
    """Three professional names for a file plus the next exhibit id."""
    file = files.get_file(data.file_id)
    projects.require_access(file["project_id"], user_id)
    exhibit_id = files.next_exhibit_id(file["project_id"])
    names = await suggest_filenames(
        services.llm, file, exhibit_id, services.settings.LLM_TIMEOUT_SECONDS
    )
    return SuggestFilenameResponse(suggested_names=names, next_exhibit_id=exhibit_id)


@router.get("/{file_id}")
async def get_file(
    file_id: str,
    user_id: str = Depends(get_current_user_id),
    projects: ProjectsService = Depends(get_projects_service),
    files: FileService = Depends(get_file_service),
):
    """File row plus a short-lived download URL (the bucket is private)."""
    file = files.get_file(file_id)
    projects.require_access(file["project_id"], user_id)
    return {"data": {**file, "download_url": files.signed_url(file)}}


@router.put("/{file_id}")
async def rename_file(
    file_id: str,
    data: FileRename,
    user_id: str = Depends(get_current_user_id),
    projects: ProjectsService = Depends(get_projects_service),
    files: FileService = Depends(get_file_service),
):
    file = files.get_file(file_id)
    projects.require_access(file["project_id"], user_id)
    return {"data": files.rename(file_id, data.name)}


@router.delete("/{file_id}")
async def delete_file(
    file_id: str,
    user_id: str = Depends(get_current_user_id),
    projects: ProjectsService = Depends(get_projects_service),
    files: FileService = Depends(get_file_service),
):
    """Delete the stored object and the row; chunks and entities cascade."""
    file = files.get_file(file_id)
    projects.require_access(file["project_id"], user_id)
    files.delete_file(file)
    return {"message": "File deleted"}
