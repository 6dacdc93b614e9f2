"""
Legal Case Tracker - FastAPI Application Entry Point.

Feature-based modular architecture:
  Each feature in case_tracker/features/ has its own router, schemas and service.
  Clients are built once in the lifespan and reached through core.dependencies.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from case_tracker.config import get_settings
from case_tracker.core.exceptions import AppBaseError, ProviderError
from case_tracker.core.services import Services, build_services

# ── Feature Routers ──────────────────────────────────────
from case_tracker.features.collaborators.router import router as collaborators_router
from case_tracker.features.documents.router import router as documents_router
from case_tracker.features.files.router import router as files_router
from case_tracker.features.notes.router import router as notes_router
from case_tracker.features.projects.router import router as projects_router

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifecycle: startup & shutdown."""
    settings = get_settings()
    logger.info(f"🚀 {settings.APP_NAME} v{settings.APP_VERSION} starting...")
    if getattr(app.state, "services", None) is None:
        app.state.services = build_services(settings)
    logger.info(f"🔗 Supabase: {settings.SUPABASE_URL[:40]}...")
    yield
    logger.info("👋 Shutting down...")


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(AppBaseError)
    async def app_error_handler(request: Request, exc: AppBaseError):
        if isinstance(exc, ProviderError):
            logger.error(f"❌ {exc.provider} failure on {request.url.path}: {exc.detail}")
        elif exc.status_code >= 500:
            logger.error(f"❌ {type(exc).__name__} on {request.url.path}: {exc.message}")
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        first = errors[0] if errors else {}
        field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{field}: {first.get('msg')}" if field else str(first.get("msg", "Invalid request"))
        return JSONResponse(
            status_code=400,
            content={"error": message, "type": "ValidationError"},
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception(f"❌ Unhandled error on {request.url.path}: {exc}")
        return JSONResponse(
            status_code=500,
            content={"error": "Internal server error", "type": "InternalError"},
        )


def create_app(services: Services | None = None) -> FastAPI:
    """Application factory. Pass ``services`` to skip building real clients."""
    settings = get_settings()
    configure_logging(settings.LOG_LEVEL)

    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description="Legal case management backend with document RAG",
        lifespan=lifespan,
    )
    app.state.services = services

    # ── CORS ─────────────────────────────────────────────
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    # ── Register Feature Routers ─────────────────────────
    app.include_router(projects_router, prefix="/api/projects", tags=["Projects"])
    app.include_router(files_router, prefix="/api/files", tags=["Files"])
    app.include_router(notes_router, prefix="/api/notes", tags=["Notes"])
    app.include_router(collaborators_router, prefix="/api/collaborators", tags=["Collaborators"])
    app.include_router(documents_router, prefix="/api/documents", tags=["Documents"])

    # ── Health Check ─────────────────────────────────────
    @app.get("/health", tags=["System"])
    async def health_check():
        return {
            "status": "healthy",
            "app": settings.APP_NAME,
            "version": settings.APP_VERSION,
        }

    return app


app = create_app()
