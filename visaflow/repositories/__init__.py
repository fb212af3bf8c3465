"""Repository modules - Data access layer"""
from .mongo_client import MongoConnection, storage_guard
from .workflow_repo import WorkflowRepository
from .audit_repo import AuditRepository

__all__ = [
    "MongoConnection",
    "storage_guard",
    "WorkflowRepository",
    "AuditRepository",
]
