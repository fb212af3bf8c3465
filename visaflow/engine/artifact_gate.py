"""Artifact Gate - Evaluate per-step artifact requirements"""
from typing import List

from ..domain.models import ArtifactRequirement, StepRecord
from ..domain.enums import ArtifactRequirementKind
from ..domain.errors import ArtifactCountMismatchError


class ArtifactGate:
    """
    Decide whether a step's artifacts allow it to complete
    
    EXACT_COUNT: each submission must carry exactly `count` artifacts and
                 replaces what was recorded before
    MIN_COUNT:   submissions accumulate until `count` is reached
    NONE:        artifacts are recorded but never complete the step
    """
    
    def check_submission(
        self,
        step: StepRecord,
        requirement: ArtifactRequirement,
        artifacts: List[str]
    ) -> None:
        """
        Reject a submission that can never satisfy an exact requirement
        
        Raises:
            ArtifactCountMismatchError: If the count is wrong for EXACT_COUNT
        """
        if requirement.kind == ArtifactRequirementKind.EXACT_COUNT and len(artifacts) != requirement.count:
            raise ArtifactCountMismatchError(
                f"Step {step.sequence} ({step.title}) requires exactly "
                f"{requirement.count} artifacts, got {len(artifacts)}",
                details={
                    "sequence": step.sequence,
                    "required_count": requirement.count,
                    "received_count": len(artifacts)
                }
            )
    
    def merge(
        self,
        requirement: ArtifactRequirement,
        existing: List[str],
        artifacts: List[str]
    ) -> List[str]:
        """Combine recorded and submitted artifacts"""
        if requirement.kind == ArtifactRequirementKind.EXACT_COUNT:
            return list(artifacts)
        return list(existing) + list(artifacts)
    
    def is_satisfied(self, requirement: ArtifactRequirement, attachments: List[str]) -> bool:
        """Check whether recorded attachments meet the requirement"""
        if requirement.kind == ArtifactRequirementKind.EXACT_COUNT:
            return len(attachments) == requirement.count
        if requirement.kind == ArtifactRequirementKind.MIN_COUNT:
            return len(attachments) >= requirement.count
        return True
    
    def completes_on_attach(self, requirement: ArtifactRequirement, attachments: List[str]) -> bool:
        """Uploads only complete steps that are gated on artifacts"""
        return requirement.gated and self.is_satisfied(requirement, attachments)
    
    def ensure_advanceable(self, step: StepRecord, requirement: ArtifactRequirement) -> None:
        """
        Guard explicit advancement of a step
        
        Raises:
            ArtifactCountMismatchError: If the step still lacks artifacts
        """
        if not self.is_satisfied(requirement, step.attachments):
            raise ArtifactCountMismatchError(
                f"Step {step.sequence} ({step.title}) cannot be advanced until its "
                f"artifacts are uploaded",
                details={
                    "sequence": step.sequence,
                    "requirement": requirement.kind.value,
                    "required_count": requirement.count,
                    "received_count": len(step.attachments)
                }
            )
