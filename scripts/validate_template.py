"""Script to validate a workflow step template"""
import argparse
import json
import sys

from visaflow.config.workflow_template import load_workflow_template
from visaflow.domain.enums import ArtifactRequirementKind
from visaflow.domain.errors import WorkflowTemplateError
from visaflow.domain.models import WorkflowTemplate


def describe_template(template: WorkflowTemplate) -> None:
    print(f"✅ Template: {template.name}")
    print(f"   Steps: {template.step_count}")
    
    print("\n" + "=" * 60)
    print("STEP CHECKLIST")
    print("=" * 60)
    
    for sequence, step in enumerate(template.steps, start=1):
        requirement = step.requirement
        if requirement.kind == ArtifactRequirementKind.EXACT_COUNT:
            gate = f"📎 exactly {requirement.count} artifact(s)"
        elif requirement.kind == ArtifactRequirementKind.MIN_COUNT:
            gate = f"📎 at least {requirement.count} artifact(s)"
        else:
            gate = "➡️  advanced manually"
        start = " ⭐ START" if sequence == 1 else ""
        print(f"{sequence}. {step.title}{start}")
        print(f"   {gate}")


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Validate a workflow step template")
    parser.add_argument(
        "path",
        nargs="?",
        default="",
        help="Template JSON file (omit to show the built-in visa template)"
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the normalized template as JSON"
    )
    args = parser.parse_args(argv)
    
    try:
        template = load_workflow_template(args.path)
    except WorkflowTemplateError as e:
        print(f"❌ {e.message}")
        for key, value in e.details.items():
            print(f"   • {key}: {value}")
        return 1
    
    describe_template(template)
    
    if args.json:
        print("\n" + "=" * 60)
        print(json.dumps(template.model_dump(mode="json"), indent=2))
    
    print("\n🎉 TEMPLATE IS VALID!")
    return 0


if __name__ == "__main__":
    sys.exit(main())
