"""
Workflow Engine - Sequential, artifact-gated step progression

Every owner (a client) has exactly one workflow instance seeded from the
configured step template. Steps move NOT_STARTED -> IN_PROGRESS -> COMPLETED
strictly in order; the single IN_PROGRESS step is the frontier.

Transitions are read-modify-write cycles committed with one atomic,
version-guarded update. When a concurrent writer wins the race the engine
re-reads and re-evaluates the gate, so the loser fails on the new state
instead of advancing the frontier twice.
"""

from typing import Callable, List, Optional, Tuple

from ..domain.models import StepRecord, WorkflowInstance, WorkflowTemplate, AuditEvent
from ..domain.enums import StepStatus, AuditEventType
from ..domain.errors import (
    ValidationError, InvalidStepError, StepNotReadyError, ConcurrencyError
)
from ..repositories.workflow_repo import WorkflowRepository
from .artifact_gate import ArtifactGate
from .audit_writer import AuditWriter, PendingAuditEvent
from ..utils.idgen import generate_workflow_instance_id
from ..utils.time import utc_now
from ..utils.logger import get_logger

logger = get_logger(__name__)

TransitionFn = Callable[[WorkflowInstance], List[PendingAuditEvent]]


class WorkflowEngine:
    """
    Maintain and advance the step sequence for each owner

    Responsibilities:
    - Seed instances from the step template on first interaction
    - Enforce linear gating (only the frontier step may change)
    - Enforce per-step artifact requirements
    - Commit each transition atomically and write the audit trail
    """

    def __init__(
        self,
        workflow_repo: WorkflowRepository,
        audit_writer: AuditWriter,
        template: WorkflowTemplate,
        conflict_retries: int = 3
    ):
        self.workflow_repo = workflow_repo
        self.audit_writer = audit_writer
        self.template = template
        self.max_attempts = max(conflict_retries, 0) + 1
        self.artifact_gate = ArtifactGate()

    # =========================================================================
    # Instance Lifecycle
    # =========================================================================

    def get_or_create_workflow(self, owner_id: str) -> WorkflowInstance:
        """
        Fetch the owner's workflow, creating it from the template if absent

        Idempotent: once created, the stored instance is returned unchanged.
        """
        owner_id = self.normalize_owner_id(owner_id)

        existing = self.workflow_repo.get_by_owner(owner_id)
        if existing:
            return existing

        instance = self._seed_instance(owner_id)
        if not self.workflow_repo.create(instance):
            # Another request created it first
            return self.workflow_repo.get_by_owner_or_raise(owner_id)

        self.audit_writer.write_events(instance, [
            PendingAuditEvent(
                AuditEventType.WORKFLOW_CREATED,
                details={"template": self.template.name, "step_count": len(instance.steps)}
            ),
            PendingAuditEvent(AuditEventType.STEP_ACTIVATED, step_sequence=1),
        ])
        return instance

    def get_workflow(self, owner_id: str) -> WorkflowInstance:
        """Get an existing workflow without creating one"""
        return self.workflow_repo.get_by_owner_or_raise(self.normalize_owner_id(owner_id))

    def list_workflows(
        self,
        completed: Optional[bool] = None,
        skip: int = 0,
        limit: int = 50
    ) -> Tuple[List[WorkflowInstance], int]:
        """List workflows with total count"""
        items = self.workflow_repo.list_workflows(completed=completed, skip=skip, limit=limit)
        total = self.workflow_repo.count_workflows(completed=completed)
        return items, total

    def get_history(self, owner_id: str, skip: int = 0, limit: int = 100) -> List[AuditEvent]:
        """Audit events of an existing workflow, newest first"""
        instance = self.get_workflow(owner_id)
        return self.audit_writer.get_history(instance.owner_id, skip=skip, limit=limit)

    def _seed_instance(self, owner_id: str) -> WorkflowInstance:
        now = utc_now()
        steps = [
            StepRecord(
                sequence=index,
                title=step_template.title,
                status=StepStatus.IN_PROGRESS if index == 1 else StepStatus.NOT_STARTED
            )
            for index, step_template in enumerate(self.template.steps, start=1)
        ]
        return WorkflowInstance(
            workflow_id=generate_workflow_instance_id(),
            owner_id=owner_id,
            steps=steps,
            created_at=now,
            updated_at=now,
            version=1
        )

    # =========================================================================
    # Transitions
    # =========================================================================

    def attach_artifacts(
        self,
        owner_id: str,
        sequence: int,
        artifacts: List[str]
    ) -> WorkflowInstance:
        """
        Record artifacts on the frontier step

        Completes the step (and activates the next) once its requirement
        is satisfied.

        Raises:
            ValidationError: If no artifacts were given
            InvalidStepError: If sequence does not exist
            StepNotReadyError: If the step is not IN_PROGRESS
            ArtifactCountMismatchError: If an exact count is not matched
        """
        refs = self._normalize_artifacts(artifacts)

        def apply(instance: WorkflowInstance) -> List[PendingAuditEvent]:
            step = self._require_frontier(instance, sequence)
            requirement = self.template.requirement_for(sequence)

            self.artifact_gate.check_submission(step, requirement, refs)
            step.attachments = self.artifact_gate.merge(requirement, step.attachments, refs)

            pending = [PendingAuditEvent(
                AuditEventType.ARTIFACTS_ATTACHED,
                step_sequence=step.sequence,
                details={"artifacts": refs, "total_attachments": len(step.attachments)}
            )]
            if self.artifact_gate.completes_on_attach(requirement, step.attachments):
                pending.extend(self._complete_step(instance, step))
            return pending

        return self._apply_transition(owner_id, sequence, "attach_artifacts", apply)

    def advance_step(self, owner_id: str, sequence: int) -> WorkflowInstance:
        """
        Complete the frontier step explicitly

        Raises:
            InvalidStepError: If sequence does not exist
            StepNotReadyError: If the step is not IN_PROGRESS
            ArtifactCountMismatchError: If the step still lacks required artifacts
        """
        def apply(instance: WorkflowInstance) -> List[PendingAuditEvent]:
            step = self._require_frontier(instance, sequence)
            self.artifact_gate.ensure_advanceable(step, self.template.requirement_for(sequence))
            return self._complete_step(instance, step)

        return self._apply_transition(owner_id, sequence, "advance_step", apply)

    def _apply_transition(
        self,
        owner_id: str,
        sequence: int,
        action: str,
        apply: TransitionFn
    ) -> WorkflowInstance:
        """
        Run one read-modify-write cycle, re-reading on version conflicts

        `apply` mutates a private copy; nothing is stored unless it returns.
        """
        for attempt in range(1, self.max_attempts + 1):
            current = self.get_or_create_workflow(owner_id)
            working = current.model_copy(deep=True)
            pending = apply(working)

            try:
                saved = self.workflow_repo.save(working, expected_version=current.version)
            except ConcurrencyError:
                logger.warning(
                    f"Version conflict on {action} for owner {current.owner_id}, re-reading",
                    extra={
                        "owner_id": current.owner_id,
                        "step_sequence": sequence,
                        "action": action,
                        "attempt": attempt
                    }
                )
                continue

            self.audit_writer.write_events(saved, pending)
            frontier = saved.current_step
            logger.info(
                f"Applied {action} on step {sequence} for owner {saved.owner_id}",
                extra={
                    "owner_id": saved.owner_id,
                    "workflow_id": saved.workflow_id,
                    "step_sequence": sequence,
                    "action": action,
                    "status": frontier.status.value if frontier else "WORKFLOW_COMPLETED"
                }
            )
            return saved

        raise ConcurrencyError(
            f"Workflow for owner {owner_id} kept changing; please retry",
            details={"owner_id": owner_id, "action": action, "attempts": self.max_attempts}
        )

    def _complete_step(
        self,
        instance: WorkflowInstance,
        step: StepRecord
    ) -> List[PendingAuditEvent]:
        """Mark step COMPLETED and move the frontier forward"""
        step.status = StepStatus.COMPLETED
        pending = [PendingAuditEvent(AuditEventType.STEP_COMPLETED, step_sequence=step.sequence)]

        next_step = instance.next_step(step)
        if next_step is not None:
            next_step.status = StepStatus.IN_PROGRESS
            pending.append(PendingAuditEvent(AuditEventType.STEP_ACTIVATED, step_sequence=next_step.sequence))
        else:
            pending.append(PendingAuditEvent(AuditEventType.WORKFLOW_COMPLETED))
        return pending

    # =========================================================================
    # Guards
    # =========================================================================

    def _require_frontier(self, instance: WorkflowInstance, sequence: int) -> StepRecord:
        """Resolve the step and ensure it is the current frontier"""
        step = instance.get_step(sequence)
        if step is None:
            raise InvalidStepError(
                f"Step {sequence} does not exist; valid steps are 1-{len(instance.steps)}",
                details={"sequence": sequence, "step_count": len(instance.steps)}
            )

        if step.status != StepStatus.IN_PROGRESS:
            frontier = instance.current_step
            if frontier is None:
                message = f"Workflow for owner {instance.owner_id} is already complete"
            else:
                message = (
                    f"Step {sequence} is {step.status.value}; "
                    f"current step is {frontier.sequence} ({frontier.title})"
                )
            raise StepNotReadyError(
                message,
                details={
                    "sequence": sequence,
                    "status": step.status.value,
                    "current_step": frontier.sequence if frontier else None
                }
            )
        return step

    def normalize_owner_id(self, owner_id: str) -> str:
        """Strip an owner ID, rejecting blank ones"""
        owner_id = (owner_id or "").strip()
        if not owner_id:
            raise ValidationError("owner_id must not be empty")
        return owner_id

    def _normalize_artifacts(self, artifacts: List[str]) -> List[str]:
        if not artifacts:
            raise ValidationError("At least one artifact is required")

        refs = [(ref or "").strip() for ref in artifacts]
        if any(not ref for ref in refs):
            raise ValidationError(
                "Artifact references must not be empty",
                details={"artifacts": list(artifacts)}
            )
        return refs
