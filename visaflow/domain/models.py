"""Domain Models - Pydantic schemas for all entities"""
from datetime import datetime
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field, ConfigDict, field_validator, model_validator

from .enums import StepStatus, ArtifactRequirementKind, AuditEventType
from ..utils.time import ensure_utc


# ============================================================================
# Step Templates (Workflow Definition)
# ============================================================================

class ArtifactRequirement(BaseModel):
    """Artifact gate for a single step"""
    model_config = ConfigDict(extra="forbid")

    kind: ArtifactRequirementKind = Field(default=ArtifactRequirementKind.NONE)
    count: Optional[int] = Field(None, ge=1, description="Required/minimum artifact count")

    @model_validator(mode="after")
    def _check_count(self) -> "ArtifactRequirement":
        if self.kind == ArtifactRequirementKind.NONE and self.count is not None:
            raise ValueError("count is not allowed when kind is NONE")
        if self.kind != ArtifactRequirementKind.NONE and self.count is None:
            raise ValueError(f"count is required when kind is {self.kind.value}")
        return self

    @classmethod
    def exact(cls, count: int) -> "ArtifactRequirement":
        return cls(kind=ArtifactRequirementKind.EXACT_COUNT, count=count)

    @classmethod
    def at_least(cls, count: int) -> "ArtifactRequirement":
        return cls(kind=ArtifactRequirementKind.MIN_COUNT, count=count)

    @property
    def gated(self) -> bool:
        """True when the step cannot complete without artifacts"""
        return self.kind != ArtifactRequirementKind.NONE


class StepTemplate(BaseModel):
    """Template entry for one checklist position"""
    model_config = ConfigDict(extra="forbid")

    title: str = Field(..., min_length=1, max_length=200)
    requirement: ArtifactRequirement = Field(default_factory=ArtifactRequirement)


class WorkflowTemplate(BaseModel):
    """Ordered checklist every workflow instance is seeded from"""
    model_config = ConfigDict(extra="forbid")

    name: str = Field(..., min_length=1, max_length=200)
    steps: List[StepTemplate] = Field(..., min_length=1)

    @property
    def step_count(self) -> int:
        return len(self.steps)

    def requirement_for(self, sequence: int) -> ArtifactRequirement:
        """
        Get the artifact requirement for a 1-based sequence

        Positions the template does not cover are ungated.
        """
        if 1 <= sequence <= len(self.steps):
            return self.steps[sequence - 1].requirement
        return ArtifactRequirement()


# ============================================================================
# Workflow Instance (Runtime)
# ============================================================================

class StepRecord(BaseModel):
    """Runtime state of one step"""
    model_config = ConfigDict(extra="forbid")

    sequence: int = Field(..., ge=1, description="1-based position")
    title: str = Field(..., description="Display title, fixed per position")
    status: StepStatus = Field(default=StepStatus.NOT_STARTED)
    attachments: List[str] = Field(default_factory=list, description="Stored artifact references")


class WorkflowInstance(BaseModel):
    """Per-owner progress through the checklist"""
    model_config = ConfigDict(extra="forbid")

    workflow_id: str = Field(..., description="Unique instance ID")
    owner_id: str = Field(..., min_length=1, description="Tracked entity (client) ID")
    steps: List[StepRecord] = Field(..., min_length=1)
    created_at: datetime
    updated_at: datetime
    version: int = Field(default=1, ge=1, description="Optimistic concurrency version")

    @field_validator("created_at", "updated_at")
    @classmethod
    def _as_utc(cls, value: datetime) -> datetime:
        return ensure_utc(value)

    @model_validator(mode="after")
    def _check_sequences(self) -> "WorkflowInstance":
        expected = list(range(1, len(self.steps) + 1))
        actual = [step.sequence for step in self.steps]
        if actual != expected:
            raise ValueError(f"step sequences must be contiguous from 1, got {actual}")
        in_progress = [s.sequence for s in self.steps if s.status == StepStatus.IN_PROGRESS]
        if len(in_progress) > 1:
            raise ValueError(f"more than one step in progress: {in_progress}")
        return self

    @property
    def current_step(self) -> Optional[StepRecord]:
        """The frontier step, or None when the workflow is complete"""
        for step in self.steps:
            if step.status == StepStatus.IN_PROGRESS:
                return step
        return None

    @property
    def is_complete(self) -> bool:
        return all(step.status == StepStatus.COMPLETED for step in self.steps)

    def get_step(self, sequence: int) -> Optional[StepRecord]:
        if 1 <= sequence <= len(self.steps):
            return self.steps[sequence - 1]
        return None

    def next_step(self, step: StepRecord) -> Optional[StepRecord]:
        return self.get_step(step.sequence + 1)

    def to_document(self) -> Dict[str, Any]:
        """Serialize for MongoDB (datetimes kept native for sorting)"""
        doc = self.model_dump()
        doc["steps"] = [step.model_dump(mode="json") for step in self.steps]
        return doc


# ============================================================================
# Audit
# ============================================================================

class AuditEvent(BaseModel):
    """Append-only record of a workflow change"""
    model_config = ConfigDict(extra="forbid")

    audit_event_id: str
    workflow_id: str
    owner_id: str
    event_type: AuditEventType
    step_sequence: Optional[int] = None
    details: Dict[str, Any] = Field(default_factory=dict)
    correlation_id: Optional[str] = None
    timestamp: datetime

    @field_validator("timestamp")
    @classmethod
    def _as_utc(cls, value: datetime) -> datetime:
        return ensure_utc(value)
