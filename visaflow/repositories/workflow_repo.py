"""Workflow Repository - Data access for workflow instances"""
from typing import Any, Dict, List, Optional
from pymongo import DESCENDING, ReturnDocument
from pymongo.collection import Collection
from pymongo.errors import DuplicateKeyError

from .mongo_client import MongoConnection, WORKFLOW_INSTANCES, storage_guard
from ..domain.models import WorkflowInstance
from ..domain.enums import StepStatus
from ..domain.errors import WorkflowNotFoundError, ConcurrencyError
from ..utils.time import utc_now
from ..utils.logger import get_logger

logger = get_logger(__name__)


class WorkflowRepository:
    """Repository for workflow instance operations"""
    
    def __init__(self, connection: MongoConnection):
        self._instances: Collection = connection.get_collection(WORKFLOW_INSTANCES)
    
    @staticmethod
    def _to_model(doc: Dict[str, Any]) -> WorkflowInstance:
        doc.pop("_id", None)
        return WorkflowInstance.model_validate(doc)
    
    def get_by_owner(self, owner_id: str) -> Optional[WorkflowInstance]:
        """Get workflow instance for an owner"""
        with storage_guard("get_workflow"):
            doc = self._instances.find_one({"owner_id": owner_id})
        if doc:
            return self._to_model(doc)
        return None
    
    def get_by_owner_or_raise(self, owner_id: str) -> WorkflowInstance:
        """Get workflow instance for an owner or raise error"""
        instance = self.get_by_owner(owner_id)
        if not instance:
            raise WorkflowNotFoundError(
                f"No workflow found for owner {owner_id}",
                details={"owner_id": owner_id}
            )
        return instance
    
    def create(self, instance: WorkflowInstance) -> bool:
        """
        Insert a new instance
        
        Returns:
            False if another instance already exists for the owner
        """
        doc = instance.to_document()
        doc["_id"] = instance.workflow_id
        
        try:
            with storage_guard("create_workflow"):
                self._instances.insert_one(doc)
        except DuplicateKeyError:
            logger.info(
                f"Workflow already exists for owner {instance.owner_id}",
                extra={"owner_id": instance.owner_id}
            )
            return False
        
        logger.info(
            f"Created workflow: {instance.workflow_id}",
            extra={"workflow_id": instance.workflow_id, "owner_id": instance.owner_id}
        )
        return True
    
    def save(self, instance: WorkflowInstance, expected_version: int) -> WorkflowInstance:
        """
        Persist step changes with optimistic concurrency
        
        The whole step list is replaced in one atomic update guarded by
        the version that was read.
        
        Raises:
            ConcurrencyError: If the stored version moved on
            WorkflowNotFoundError: If the instance no longer exists
        """
        updates = {
            "steps": [step.model_dump(mode="json") for step in instance.steps],
            "updated_at": utc_now(),
            "version": expected_version + 1,
        }
        
        with storage_guard("save_workflow"):
            result = self._instances.find_one_and_update(
                {"owner_id": instance.owner_id, "version": expected_version},
                {"$set": updates},
                return_document=ReturnDocument.AFTER
            )
            
            if result is None:
                exists = self._instances.find_one({"owner_id": instance.owner_id})
                if exists:
                    raise ConcurrencyError(
                        f"Workflow for owner {instance.owner_id} was modified concurrently",
                        details={
                            "owner_id": instance.owner_id,
                            "expected_version": expected_version
                        }
                    )
                raise WorkflowNotFoundError(
                    f"No workflow found for owner {instance.owner_id}",
                    details={"owner_id": instance.owner_id}
                )
        
        logger.info(
            f"Updated workflow: {instance.workflow_id}",
            extra={"workflow_id": instance.workflow_id, "owner_id": instance.owner_id}
        )
        return self._to_model(result)
    
    @staticmethod
    def _list_query(completed: Optional[bool]) -> Dict[str, Any]:
        # An unfinished workflow always has exactly one IN_PROGRESS step
        if completed is None:
            return {}
        if completed:
            return {"steps.status": {"$ne": StepStatus.IN_PROGRESS.value}}
        return {"steps.status": StepStatus.IN_PROGRESS.value}
    
    def list_workflows(
        self,
        completed: Optional[bool] = None,
        skip: int = 0,
        limit: int = 50
    ) -> List[WorkflowInstance]:
        """List workflow instances, newest first"""
        with storage_guard("list_workflows"):
            cursor = (
                self._instances.find(self._list_query(completed))
                .sort("created_at", DESCENDING)
                .skip(skip)
                .limit(limit)
            )
            return [self._to_model(doc) for doc in cursor]
    
    def count_workflows(self, completed: Optional[bool] = None) -> int:
        """Count workflow instances"""
        with storage_guard("count_workflows"):
            return self._instances.count_documents(self._list_query(completed))
