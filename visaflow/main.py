"""
Visa Application Tracker - Main FastAPI Application

This is the entry point for the FastAPI application.
It configures middleware, routes, and lifecycle handlers.
"""

from contextlib import asynccontextmanager
from typing import Optional
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from . import __version__
from .config.settings import settings
from .config.workflow_template import load_workflow_template
from .api.routes import api_router
from .api.middleware import CorrelationIdMiddleware, register_error_handlers
from .domain.errors import StorageUnavailableError
from .domain.models import WorkflowTemplate
from .repositories.mongo_client import MongoConnection
from .services.artifact_storage import ArtifactStorage
from .utils.logger import setup_logging, get_logger

# Setup logging first
setup_logging()
logger = get_logger(__name__)


# =============================================================================
# Application Lifecycle
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Startup:
        - Opens the MongoDB connection and creates indexes

    Shutdown:
        - Closes the MongoDB connection
    """
    logger.info("Starting Visa Application Tracker...")

    connection: MongoConnection = app.state.mongo
    connection.open()

    try:
        connection.create_indexes()
    except StorageUnavailableError as e:
        logger.error(f"Failed to create indexes: {e.message}")

    logger.info(
        f"Application started with template '{app.state.workflow_template.name}'"
    )

    yield

    logger.info("Shutting down...")
    connection.close()
    logger.info("Application shutdown complete")


# =============================================================================
# Application Factory
# =============================================================================

def create_app(
    connection: Optional[MongoConnection] = None,
    artifact_storage: Optional[ArtifactStorage] = None,
    workflow_template: Optional[WorkflowTemplate] = None
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Collaborators default to ones built from settings; tests inject their own.
    The template is loaded eagerly so a malformed template file fails startup.

    Returns:
        Configured FastAPI application instance
    """
    application = FastAPI(
        title="Visa Application Tracker",
        description="Sequential, artifact-gated visa application workflows",
        version=__version__,
        lifespan=lifespan,
        docs_url="/api/docs" if settings.debug else None,
        redoc_url="/api/redoc" if settings.debug else None,
        openapi_url="/api/openapi.json" if settings.debug else None,
    )

    application.state.mongo = connection or MongoConnection(settings.mongo_uri, settings.mongo_db)
    application.state.artifact_storage = artifact_storage or ArtifactStorage()
    application.state.workflow_template = (
        workflow_template or load_workflow_template(settings.workflow_template_path)
    )

    _configure_middleware(application)
    register_error_handlers(application)
    _configure_routes(application)

    return application


def _configure_middleware(app: FastAPI) -> None:
    """Configure application middleware."""
    # allow_credentials must be False when allowing all origins
    allow_all = settings.cors_origins.strip() == "*"

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if allow_all else settings.cors_origins_list,
        allow_credentials=not allow_all,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Correlation-Id"],
    )

    app.add_middleware(CorrelationIdMiddleware)


def _configure_routes(app: FastAPI) -> None:
    """Configure application routes."""
    app.include_router(api_router, prefix="/api/v1")

    @app.get("/health", tags=["Health"])
    async def health():
        """
        Health check endpoint.

        Returns application health status including database connectivity.
        """
        mongo_health = app.state.mongo.health_check()
        return {
            "status": "healthy" if mongo_health.get("status") == "healthy" else "degraded",
            "version": __version__,
            "environment": settings.environment,
            "mongo": mongo_health
        }

    @app.get("/", tags=["Health"])
    async def root():
        """Root endpoint with API information."""
        return {
            "name": "Visa Application Tracker",
            "version": __version__,
            "docs": "/api/docs" if settings.debug else None
        }
