"""API Dependencies - Common dependencies for routes"""
from fastapi import Depends, Request

from ..config.settings import settings
from ..engine.engine import WorkflowEngine
from ..engine.audit_writer import AuditWriter
from ..repositories.workflow_repo import WorkflowRepository
from ..repositories.audit_repo import AuditRepository
from ..services.workflow_service import WorkflowService


def get_workflow_engine(request: Request) -> WorkflowEngine:
    """Build an engine bound to the application's storage connection"""
    state = request.app.state
    connection = state.mongo
    return WorkflowEngine(
        workflow_repo=WorkflowRepository(connection),
        audit_writer=AuditWriter(AuditRepository(connection)),
        template=state.workflow_template,
        conflict_retries=settings.workflow_conflict_retries
    )


def get_workflow_service(
    request: Request,
    engine: WorkflowEngine = Depends(get_workflow_engine)
) -> WorkflowService:
    """Workflow service with the application's artifact storage"""
    return WorkflowService(engine=engine, storage=request.app.state.artifact_storage)
