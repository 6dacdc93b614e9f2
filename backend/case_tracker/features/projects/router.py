"""
Projects feature: API routes for case management.
"""

from fastapi import APIRouter, Depends

from case_tracker.core.dependencies import get_current_user_id, get_projects_service
from case_tracker.features.projects.schemas import ProjectCreate, ProjectUpdate
from case_tracker.features.projects.service import ProjectsService

router = APIRouter()


@router.get("/")
async def list_projects(
    include_archived: bool = False,
    user_id: str = Depends(get_current_user_id),
    service: ProjectsService = Depends(get_projects_service),
):
    """List cases the current user owns or collaborates on."""
    return {"data": service.list_projects(user_id, include_archived)}


@router.post("/")
async def create_project(
    data: ProjectCreate,
    user_id: str = Depends(get_current_user_id),
    service: ProjectsService = Depends(get_projects_service),
):
    project = service.create_project(
        user_id=user_id,
        name=data.name,
        description=data.description,
        goal_type=data.goal_type,
    )
    return {"data": project}


@router.get("/{project_id}")
async def get_project(
    project_id: str,
    user_id: str = Depends(get_current_user_id),
    service: ProjectsService = Depends(get_projects_service),
):
    return {"data": service.require_access(project_id, user_id)}


@router.put("/{project_id}")
async def update_project(
    project_id: str,
    data: ProjectUpdate,
    user_id: str = Depends(get_current_user_id),
    service: ProjectsService = Depends(get_projects_service),
):
    """Update case details (owner only)."""
    return {"data": service.update_project(user_id, project_id, data.model_dump())}


@router.post("/{project_id}/archive")
async def archive_project(
    project_id: str,
    user_id: str = Depends(get_current_user_id),
    service: ProjectsService = Depends(get_projects_service),
):
    return {"data": service.archive_project(user_id, project_id)}


@router.delete("/{project_id}")
async def delete_project(
    project_id: str,
    user_id: str = Depends(get_current_user_id),
    service: ProjectsService = Depends(get_projects_service),
):
    """Permanently delete a case and everything in it (owner only)."""
    service.delete_project(user_id, project_id)
    return {"message": "Project deleted"}
