"""
Documents feature: API routes for processing, question answering and search.
"""

import logging

from fastapi import APIRouter, Depends

from case_tracker.background.document_tasks import DocumentPipeline
from case_tracker.core.dependencies import (
    get_current_user_id,
    get_file_service,
    get_pipeline,
    get_project_search,
    get_projects_service,
    get_qa,
)
from case_tracker.features.documents.qa import RetrievalQA
from case_tracker.features.documents.schemas import (
    FileQuestionRequest,
    ProcessFileRequest,
    ProjectQuestionRequest,
    RegenerateRequest,
    SearchRequest,
)
from case_tracker.features.documents.search import ProjectSearch
from case_tracker.features.files.service import FileService
from case_tracker.features.projects.service import ProjectsService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/process")
async def process_file(
    data: ProcessFileRequest,
    user_id: str = Depends(get_current_user_id),
    projects: ProjectsService = Depends(get_projects_service),
    files: FileService = Depends(get_file_service),
    pipeline: DocumentPipeline = Depends(get_pipeline),
):
    """Run the document pipeline for one file and wait for the result."""
    file = files.get_file(data.file_id)
    projects.require_access(file["project_id"], user_id)
    result = await pipeline.process(data.file_id, data.project_id)
    return {"data": result}


@router.post("/regenerate")
async def regenerate_embeddings(
    data: RegenerateRequest,
    user_id: str = Depends(get_current_user_id),
    projects: ProjectsService = Depends(get_projects_service),
    files: FileService = Depends(get_file_service),
    pipeline: DocumentPipeline = Depends(get_pipeline),
):
    """Drop a file's chunks and rebuild them from the stored object."""
    file = files.get_file(data.file_id)
    projects.require_access(file["project_id"], user_id)
    logger.info(f"🔄 Regenerating chunks for file {data.file_id}")
    result = await pipeline.process(data.file_id)
    return {"data": result}


@router.post("/file-qa")
async def ask_file(
    data: FileQuestionRequest,
    user_id: str = Depends(get_current_user_id),
    projects: ProjectsService = Depends(get_projects_service),
    files: FileService = Depends(get_file_service),
    qa: RetrievalQA = Depends(get_qa),
):
    """Answer a question from one file's chunks."""
    file = files.get_file(data.file_id)
    projects.require_access(file["project_id"], user_id)
    result = await qa.answer(file["project_id"], data.question, file_id=data.file_id)
    return {"data": result}


@router.post("/project-qa")
async def ask_project(
    data: ProjectQuestionRequest,
    user_id: str = Depends(get_current_user_id),
    projects: ProjectsService = Depends(get_projects_service),
    qa: RetrievalQA = Depends(get_qa),
):
    """Answer a question from every processed file in a case."""
    projects.require_access(data.project_id, user_id)
    result = await qa.answer(data.project_id, data.question, limit=data.limit)
    return {"data": result}


@router.post("/search")
async def search_files(
    data: SearchRequest,
    user_id: str = Depends(get_current_user_id),
    projects: ProjectsService = Depends(get_projects_service),
    search: ProjectSearch = Depends(get_project_search),
):
    projects.require_access(data.project_id, user_id)
    result = await search.search(data.project_id, data.query_text, data.filters, data.pagination)
    return {"data": result.files, "totalCount": result.total_count}
