"""API module - Routes and dependencies"""
from .deps import get_workflow_engine, get_workflow_service

__all__ = ["get_workflow_engine", "get_workflow_service"]
