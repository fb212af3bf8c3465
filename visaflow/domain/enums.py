"""Domain Enumerations - Status and type definitions"""
from enum import Enum


class StepStatus(str, Enum):
    """Runtime status per workflow step"""
    NOT_STARTED = "NOT_STARTED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"


class ArtifactRequirementKind(str, Enum):
    """How many artifacts a step needs before it can complete"""
    NONE = "NONE"                # Completed explicitly via advance
    EXACT_COUNT = "EXACT_COUNT"  # Upload must contain exactly `count` files
    MIN_COUNT = "MIN_COUNT"      # Uploads accumulate until `count` is reached


class AuditEventType(str, Enum):
    """Audit event types"""
    WORKFLOW_CREATED = "WORKFLOW_CREATED"
    ARTIFACTS_ATTACHED = "ARTIFACTS_ATTACHED"
    STEP_COMPLETED = "STEP_COMPLETED"
    STEP_ACTIVATED = "STEP_ACTIVATED"
    WORKFLOW_COMPLETED = "WORKFLOW_COMPLETED"
