"""Workflow Service - Coordinates uploads, engine transitions and queries"""
from typing import Any, Dict, List, Optional
from fastapi import UploadFile

from ..domain.models import AuditEvent, WorkflowInstance, WorkflowTemplate
from ..domain.errors import DomainError, StorageUnavailableError
from ..engine.engine import WorkflowEngine
from .artifact_storage import ArtifactStorage
from ..utils.logger import get_logger

logger = get_logger(__name__)


class WorkflowService:
    """Service for workflow operations exposed over HTTP"""
    
    def __init__(self, engine: WorkflowEngine, storage: ArtifactStorage):
        self.engine = engine
        self.storage = storage
    
    @property
    def template(self) -> WorkflowTemplate:
        return self.engine.template
    
    def get_or_create_workflow(self, owner_id: str) -> WorkflowInstance:
        return self.engine.get_or_create_workflow(owner_id)
    
    async def upload_artifacts(
        self,
        owner_id: str,
        sequence: int,
        files: List[UploadFile]
    ) -> WorkflowInstance:
        """
        Store uploaded files and attach their paths to a step
        
        Files are removed again if the engine rejects the submission.
        Errors that may follow a commit keep the files, since the stored
        workflow can already reference them.
        """
        owner_id = self.engine.normalize_owner_id(owner_id)
        stored = await self.storage.store_files(owner_id, sequence, files)
        
        try:
            return self.engine.attach_artifacts(
                owner_id,
                sequence,
                [artifact.storage_path for artifact in stored]
            )
        except StorageUnavailableError:
            logger.warning(
                f"Storage failed while attaching to step {sequence} for owner {owner_id}; keeping files",
                extra={"owner_id": owner_id, "step_sequence": sequence}
            )
            raise
        except DomainError as e:
            logger.info(
                f"Attach rejected for owner {owner_id}, step {sequence}: {e}",
                extra={"owner_id": owner_id, "step_sequence": sequence}
            )
            self.storage.discard(stored)
            raise
    
    def advance_step(self, owner_id: str, sequence: int) -> WorkflowInstance:
        return self.engine.advance_step(owner_id, sequence)
    
    def list_workflows(
        self,
        completed: Optional[bool] = None,
        page: int = 1,
        page_size: int = 20
    ) -> Dict[str, Any]:
        """List workflows with pagination"""
        skip = (page - 1) * page_size
        items, total = self.engine.list_workflows(completed=completed, skip=skip, limit=page_size)
        return {
            "items": items,
            "page": page,
            "page_size": page_size,
            "total": total
        }
    
    def get_history(self, owner_id: str, limit: int = 100) -> List[AuditEvent]:
        return self.engine.get_history(owner_id, limit=limit)
