"""Workflow Engine - step gating and transitions"""
from .engine import WorkflowEngine
from .artifact_gate import ArtifactGate
from .audit_writer import AuditWriter

__all__ = [
    "WorkflowEngine",
    "ArtifactGate",
    "AuditWriter",
]
