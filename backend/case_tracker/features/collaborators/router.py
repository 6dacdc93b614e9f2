"""
Collaborators feature: API routes for sharing a case.
"""

from fastapi import APIRouter, Depends

from case_tracker.core.dependencies import (
    CurrentUser,
    get_collaborators_service,
    get_current_user,
    get_current_user_id,
    get_projects_service,
)
from case_tracker.features.collaborators.schemas import AcceptInviteRequest, InviteRequest
from case_tracker.features.collaborators.service import CollaboratorsService
from case_tracker.features.projects.service import ProjectsService

router = APIRouter()


@router.get("/")
async def list_collaborators(
    project_id: str,
    user_id: str = Depends(get_current_user_id),
    projects: ProjectsService = Depends(get_projects_service),
    service: CollaboratorsService = Depends(get_collaborators_service),
):
    projects.require_access(project_id, user_id)
    return {"data": service.list_collaborators(project_id)}


@router.post("/invite")
async def invite_collaborator(
    data: InviteRequest,
    user_id: str = Depends(get_current_user_id),
    projects: ProjectsService = Depends(get_projects_service),
    service: CollaboratorsService = Depends(get_collaborators_service),
):
    """Invite a client or colleague by email (project owner only)."""
    projects.require_owner(data.project_id, user_id)
    result = service.invite(data.project_id, user_id, data.email, data.role)
    return {"data": result["collaborator"], "invite_url": result["invite_url"]}


@router.post("/accept")
async def accept_invite(
    data: AcceptInviteRequest,
    user: CurrentUser = Depends(get_current_user),
    projects: ProjectsService = Depends(get_projects_service),
    service: CollaboratorsService = Depends(get_collaborators_service),
):
    """Accept an invitation addressed to the signed-in user's email."""
    collaboration = service.accept(data.token, user.id, user.email)
    project = projects.get_project(collaboration["project_id"])
    return {"data": collaboration, "project": {"id": project["id"], "name": project.get("name")}}


@router.delete("/{collaborator_id}")
async def remove_collaborator(
    collaborator_id: str,
    project_id: str,
    user_id: str = Depends(get_current_user_id),
    projects: ProjectsService = Depends(get_projects_service),
    service: CollaboratorsService = Depends(get_collaborators_service),
):
    projects.require_owner(project_id, user_id)
    service.remove(project_id, collaborator_id)
    return {"message": "Collaborator removed"}
