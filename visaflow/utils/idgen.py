"""ID Generation Utilities"""
import uuid
from typing import Optional

from .time import utc_now


def generate_id(prefix: Optional[str] = None) -> str:
    """
    Generate a unique ID with optional prefix
    
    Args:
        prefix: Optional prefix for the ID (e.g., 'WFI', 'ART', 'AUD')
        
    Returns:
        Unique ID string
        
    Examples:
        >>> generate_id('WFI')
        'WFI-a1b2c3d4e5f6'
        >>> generate_id()
        'a1b2c3d4e5f6'
    """
    unique_part = uuid.uuid4().hex[:12]
    
    if prefix:
        return f"{prefix}-{unique_part}"
    return unique_part


def generate_workflow_instance_id() -> str:
    """Generate workflow instance ID"""
    return generate_id("WFI")


def generate_artifact_id() -> str:
    """Generate stored artifact ID"""
    return generate_id("ART")


def generate_audit_event_id() -> str:
    """Generate audit event ID"""
    return generate_id("AUD")


def generate_correlation_id() -> str:
    """
    Generate a correlation ID for request tracing
    
    Returns:
        Correlation ID string with timestamp prefix
    """
    timestamp = utc_now().strftime("%Y%m%d%H%M%S")
    unique_part = uuid.uuid4().hex[:8]
    return f"COR-{timestamp}-{unique_part}"
