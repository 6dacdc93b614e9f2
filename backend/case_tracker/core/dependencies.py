"""
FastAPI dependency injection functions.
"""

import logging

from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from pydantic import BaseModel

from case_tracker.background.document_tasks import DocumentPipeline
from case_tracker.core.exceptions import AuthenticationError
from case_tracker.core.security import decode_access_token
from case_tracker.core.services import Services
from case_tracker.features.collaborators.service import CollaboratorsService
from case_tracker.features.documents.qa import RetrievalQA
from case_tracker.features.documents.search import ProjectSearch
from case_tracker.features.files.service import FileService
from case_tracker.features.notes.service import NotesService
from case_tracker.features.projects.service import ProjectsService

logger = logging.getLogger(__name__)

# Bearer token scheme for Swagger UI; missing tokens raise our own 401 body
bearer_scheme = HTTPBearer(auto_error=False)


class CurrentUser(BaseModel):
    id: str
    email: str | None = None


def get_services(request: Request) -> Services:
    """Dependency: the service container built in the app lifespan."""
    return request.app.state.services


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    services: Services = Depends(get_services),
) -> CurrentUser:
    """Dependency: validate the Supabase access token.

    Tokens are verified locally when SUPABASE_JWT_SECRET is set, otherwise
    through Supabase Auth.

    Raises:
        AuthenticationError: If the token is missing, invalid or expired.
    """
    if credentials is None or not credentials.credentials:
        raise AuthenticationError("Missing bearer token")
    token = credentials.credentials

    if services.settings.SUPABASE_JWT_SECRET:
        payload = decode_access_token(token, services.settings)
        if payload is None:
            raise AuthenticationError()
        user_id = payload.get("sub")
        if not user_id:
            raise AuthenticationError("Token has no subject")
        return CurrentUser(id=user_id, email=payload.get("email"))

    try:
        response = services.db.auth.get_user(token)
    except Exception as e:
        logger.info(f"Token rejected by Supabase Auth: {e}")
        raise AuthenticationError()
    user = getattr(response, "user", None)
    if user is None:
        raise AuthenticationError()
    return CurrentUser(id=str(user.id), email=getattr(user, "email", None))


async def get_current_user_id(user: CurrentUser = Depends(get_current_user)) -> str:
    """Dependency: the authenticated user's UUID as string."""
    return user.id


# ── Feature services ─────────────────────────────────────
def get_projects_service(services: Services = Depends(get_services)) -> ProjectsService:
    return services.projects()


def get_file_service(services: Services = Depends(get_services)) -> FileService:
    return services.files()


def get_notes_service(services: Services = Depends(get_services)) -> NotesService:
    return services.notes()


def get_collaborators_service(services: Services = Depends(get_services)) -> CollaboratorsService:
    return services.collaborators()


def get_pipeline(services: Services = Depends(get_services)) -> DocumentPipeline:
    return services.pipeline()


def get_qa(services: Services = Depends(get_services)) -> RetrievalQA:
    return services.qa()


def get_project_search(services: Services = Depends(get_services)) -> ProjectSearch:
    return services.search()
