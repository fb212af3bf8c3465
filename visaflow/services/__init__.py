"""Service modules - Business logic layer"""
from .artifact_storage import ArtifactStorage, StoredArtifact
from .workflow_service import WorkflowService

__all__ = [
    "ArtifactStorage",
    "StoredArtifact",
    "WorkflowService",
]
