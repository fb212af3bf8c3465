"""Workflow API Routes - Step tracking endpoints"""
from typing import Annotated, Any, Dict, List, Optional
from fastapi import APIRouter, Depends, File, Path, Query, UploadFile
from pydantic import BaseModel, Field

from ..deps import get_workflow_service
from ...domain.models import ArtifactRequirement, AuditEvent, WorkflowInstance, WorkflowTemplate
from ...domain.enums import StepStatus, AuditEventType
from ...services.workflow_service import WorkflowService
from ...utils.time import format_iso
from ...utils.logger import get_logger

logger = get_logger(__name__)
router = APIRouter()
template_router = APIRouter()

OwnerId = Annotated[str, Path(min_length=1, max_length=128, description="Tracked owner (client) ID")]
StepSequence = Annotated[int, Path(description="1-based step sequence")]


# ============================================================================
# Response Models
# ============================================================================

class StepResponse(BaseModel):
    """Step state with its artifact requirement"""
    sequence: int
    title: str
    status: StepStatus
    attachments: List[str]
    requirement: ArtifactRequirement


class WorkflowProgress(BaseModel):
    """Completed share of the checklist"""
    completed_steps: int
    total_steps: int
    percentage: int = Field(..., ge=0, le=100)


class WorkflowResponse(BaseModel):
    """Workflow instance"""
    workflow_id: str
    owner_id: str
    steps: List[StepResponse]
    current_step: Optional[int] = Field(None, description="Frontier sequence, null when complete")
    is_complete: bool
    progress: WorkflowProgress
    created_at: str
    updated_at: str
    version: int


class WorkflowListResponse(BaseModel):
    """Paged workflow list"""
    items: List[WorkflowResponse]
    page: int
    page_size: int
    total: int


class AuditEventResponse(BaseModel):
    """Audit trail entry"""
    audit_event_id: str
    event_type: AuditEventType
    step_sequence: Optional[int]
    details: Dict[str, Any]
    correlation_id: Optional[str]
    timestamp: str


class WorkflowHistoryResponse(BaseModel):
    """Audit trail for one owner"""
    owner_id: str
    events: List[AuditEventResponse]


def _progress(instance: WorkflowInstance) -> WorkflowProgress:
    completed = sum(1 for step in instance.steps if step.status == StepStatus.COMPLETED)
    total = len(instance.steps)
    return WorkflowProgress(
        completed_steps=completed,
        total_steps=total,
        percentage=round(completed * 100 / total)
    )


def _workflow_response(instance: WorkflowInstance, template: WorkflowTemplate) -> WorkflowResponse:
    frontier = instance.current_step
    return WorkflowResponse(
        workflow_id=instance.workflow_id,
        owner_id=instance.owner_id,
        steps=[
            StepResponse(
                sequence=step.sequence,
                title=step.title,
                status=step.status,
                attachments=step.attachments,
                requirement=template.requirement_for(step.sequence)
            )
            for step in instance.steps
        ],
        current_step=frontier.sequence if frontier else None,
        is_complete=instance.is_complete,
        progress=_progress(instance),
        created_at=format_iso(instance.created_at),
        updated_at=format_iso(instance.updated_at),
        version=instance.version
    )


def _audit_event_response(event: AuditEvent) -> AuditEventResponse:
    return AuditEventResponse(
        audit_event_id=event.audit_event_id,
        event_type=event.event_type,
        step_sequence=event.step_sequence,
        details=event.details,
        correlation_id=event.correlation_id,
        timestamp=format_iso(event.timestamp)
    )


# ============================================================================
# Routes
# ============================================================================

@router.get("", response_model=WorkflowListResponse)
async def list_workflows(
    completed: Optional[bool] = Query(None, description="Filter by terminal state"),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    service: WorkflowService = Depends(get_workflow_service)
):
    """
    List workflows

    Newest first. `completed=true` returns finished workflows only,
    `completed=false` those still in progress.
    """
    result = service.list_workflows(completed=completed, page=page, page_size=page_size)
    return WorkflowListResponse(
        items=[_workflow_response(item, service.template) for item in result["items"]],
        page=result["page"],
        page_size=result["page_size"],
        total=result["total"]
    )


@router.get("/{owner_id}", response_model=WorkflowResponse)
async def get_workflow(
    owner_id: OwnerId,
    service: WorkflowService = Depends(get_workflow_service)
):
    """
    Get workflow for an owner

    Creates the workflow from the step template on first access.
    """
    instance = service.get_or_create_workflow(owner_id)
    return _workflow_response(instance, service.template)


@router.get("/{owner_id}/history", response_model=WorkflowHistoryResponse)
async def get_workflow_history(
    owner_id: OwnerId,
    limit: int = Query(100, ge=1, le=500),
    service: WorkflowService = Depends(get_workflow_service)
):
    """Get the audit trail of an existing workflow, newest first"""
    events = service.get_history(owner_id, limit=limit)
    return WorkflowHistoryResponse(
        owner_id=owner_id,
        events=[_audit_event_response(event) for event in events]
    )


@router.post("/{owner_id}/steps/{sequence}/artifacts", response_model=WorkflowResponse)
async def upload_step_artifacts(
    owner_id: OwnerId,
    sequence: StepSequence,
    files: List[UploadFile] = File(..., description="Artifacts for the step"),
    service: WorkflowService = Depends(get_workflow_service)
):
    """
    Upload artifacts for the current step

    Completes the step and activates the next one once the step's
    artifact requirement is met.
    """
    instance = await service.upload_artifacts(owner_id, sequence, files)

    logger.info(
        f"Uploaded {len(files)} artifacts to step {sequence}",
        extra={"owner_id": owner_id, "step_sequence": sequence, "artifact_count": len(files)}
    )
    return _workflow_response(instance, service.template)


@router.patch("/{owner_id}/steps/{sequence}/advance", response_model=WorkflowResponse)
async def advance_step(
    owner_id: OwnerId,
    sequence: StepSequence,
    service: WorkflowService = Depends(get_workflow_service)
):
    """
    Complete the current step

    Only the step currently IN_PROGRESS can be advanced.
    """
    instance = service.advance_step(owner_id, sequence)
    return _workflow_response(instance, service.template)


@template_router.get("", response_model=WorkflowTemplate)
async def get_workflow_template(
    service: WorkflowService = Depends(get_workflow_service)
):
    """Get the active step template"""
    return service.template
