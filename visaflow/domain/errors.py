"""Domain Errors - Centralized Exception Hierarchy"""
from typing import Any, Dict, Optional


class DomainError(Exception):
    """Base domain error - all errors extend this"""
    
    error_code: str = "DOMAIN_ERROR"
    http_status: int = 400
    retryable: bool = False
    
    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        error_code: Optional[str] = None
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        if error_code:
            self.error_code = error_code
    
    def to_dict(self) -> Dict[str, Any]:
        """Convert error to API response dict"""
        return {
            "error": {
                "code": self.error_code,
                "message": self.message,
                "details": self.details,
                "retryable": self.retryable
            }
        }


# Validation Errors
class ValidationError(DomainError):
    """Input validation failed"""
    error_code = "VALIDATION_ERROR"
    http_status = 400


class InvalidStepError(ValidationError):
    """Step sequence does not exist in the workflow"""
    error_code = "INVALID_STEP"


class ArtifactCountMismatchError(ValidationError):
    """Artifact count does not satisfy the step requirement"""
    error_code = "ARTIFACT_COUNT_MISMATCH"


# Not Found Errors
class NotFoundError(DomainError):
    """Resource not found"""
    error_code = "NOT_FOUND"
    http_status = 404


class WorkflowNotFoundError(NotFoundError):
    """No workflow exists for the owner"""
    error_code = "WORKFLOW_NOT_FOUND"


# Conflict Errors
class ConflictError(DomainError):
    """Resource conflict"""
    error_code = "CONFLICT"
    http_status = 409


class StepNotReadyError(ConflictError):
    """Step is not the current frontier"""
    error_code = "STEP_NOT_READY"


class ConcurrencyError(ConflictError):
    """Optimistic concurrency conflict"""
    error_code = "CONCURRENCY_CONFLICT"
    retryable = True


# Configuration Errors
class WorkflowTemplateError(DomainError):
    """Workflow step template is malformed"""
    error_code = "WORKFLOW_TEMPLATE_ERROR"
    http_status = 500


# Storage Errors
class StorageUnavailableError(DomainError):
    """Persistence layer could not be reached; nothing was committed"""
    error_code = "STORAGE_UNAVAILABLE"
    http_status = 503
    retryable = True


# Artifact Upload Errors
class ArtifactError(DomainError):
    """Artifact upload related error"""
    error_code = "ARTIFACT_ERROR"


class ArtifactTooLargeError(ArtifactError):
    """Artifact exceeds max size"""
    error_code = "ARTIFACT_TOO_LARGE"
    http_status = 413


class InvalidMimeTypeError(ArtifactError):
    """File type not allowed"""
    error_code = "INVALID_MIME_TYPE"
    http_status = 400
