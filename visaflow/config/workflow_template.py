"""Workflow Template - Step checklist configuration"""
import json
from typing import Any, Dict, Optional

from pydantic import ValidationError as PydanticValidationError

from ..domain.models import ArtifactRequirement, StepTemplate, WorkflowTemplate
from ..domain.errors import WorkflowTemplateError
from ..utils.logger import get_logger

logger = get_logger(__name__)


# Visa application checklist used when no template file is configured
DEFAULT_VISA_TEMPLATE = WorkflowTemplate(
    name="Visa Application",
    steps=[
        StepTemplate(title="Send Agreement", requirement=ArtifactRequirement.exact(2)),
        StepTemplate(title="Schedule Meeting"),
        StepTemplate(title="Upload Documents", requirement=ArtifactRequirement.at_least(1)),
        StepTemplate(title="Payment Collection"),
        StepTemplate(title="Appointment Booking"),
        StepTemplate(title="Final Submission"),
    ],
)


def parse_workflow_template(data: Dict[str, Any]) -> WorkflowTemplate:
    """
    Build a template from its JSON representation

    Raises:
        WorkflowTemplateError: If the structure is invalid
    """
    try:
        return WorkflowTemplate.model_validate(data)
    except PydanticValidationError as e:
        raise WorkflowTemplateError(
            "Workflow template is invalid",
            details={"errors": e.errors(include_url=False, include_context=False)}
        )


def load_workflow_template(path: Optional[str] = None) -> WorkflowTemplate:
    """
    Load the step template from a JSON file

    Args:
        path: File path; empty or None returns the built-in visa checklist

    Returns:
        Validated workflow template
    """
    if not path:
        return DEFAULT_VISA_TEMPLATE

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError:
        raise WorkflowTemplateError(
            f"Workflow template file not found: {path}",
            details={"path": path}
        )
    except json.JSONDecodeError as e:
        raise WorkflowTemplateError(
            f"Workflow template is not valid JSON: {e.msg}",
            details={"path": path, "line": e.lineno}
        )

    template = parse_workflow_template(data)
    logger.info(f"Loaded workflow template '{template.name}' with {template.step_count} steps")
    return template
