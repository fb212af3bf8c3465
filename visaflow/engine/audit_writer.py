"""Audit Writer - Append-only audit events"""
from typing import Any, Dict, List, NamedTuple, Optional
from pymongo.errors import PyMongoError

from ..domain.models import AuditEvent, WorkflowInstance
from ..domain.enums import AuditEventType
from ..domain.errors import StorageUnavailableError
from ..repositories.audit_repo import AuditRepository
from ..utils.idgen import generate_audit_event_id
from ..utils.time import utc_now
from ..utils.logger import get_logger, get_correlation_id

logger = get_logger(__name__)


class PendingAuditEvent(NamedTuple):
    """Event collected during a transition, written after it commits"""
    event_type: AuditEventType
    step_sequence: Optional[int] = None
    details: Optional[Dict[str, Any]] = None


class AuditWriter:
    """
    Write audit events (append-only)
    
    Events are written only after the workflow change has committed.
    A failed audit write is logged and does not undo the transition.
    """
    
    def __init__(self, repo: AuditRepository):
        self.repo = repo
    
    def write_events(
        self,
        instance: WorkflowInstance,
        pending: List[PendingAuditEvent]
    ) -> List[AuditEvent]:
        """Write all events of one transition with a shared timestamp"""
        if not pending:
            return []
        
        now = utc_now()
        correlation_id = get_correlation_id()
        events = [
            AuditEvent(
                audit_event_id=generate_audit_event_id(),
                workflow_id=instance.workflow_id,
                owner_id=instance.owner_id,
                event_type=item.event_type,
                step_sequence=item.step_sequence,
                details=dict(item.details or {}),
                correlation_id=correlation_id,
                timestamp=now
            )
            for item in pending
        ]
        
        try:
            return self.repo.create_events_bulk(events)
        except (StorageUnavailableError, PyMongoError) as e:
            logger.warning(
                f"Could not write audit events for workflow {instance.workflow_id}: {e}",
                extra={"workflow_id": instance.workflow_id, "owner_id": instance.owner_id}
            )
            return []
    
    def get_history(self, owner_id: str, skip: int = 0, limit: int = 100) -> List[AuditEvent]:
        """Get audit events for an owner, newest first"""
        return self.repo.get_events_for_owner(owner_id, skip=skip, limit=limit)
