"""Tests for the workflow engine: seeding, gating and transitions."""

import pytest

from visaflow.domain.enums import StepStatus, AuditEventType
from visaflow.domain.errors import (
    ArtifactCountMismatchError,
    ConcurrencyError,
    InvalidStepError,
    StepNotReadyError,
    ValidationError,
    WorkflowNotFoundError,
)


def statuses(instance):
    return [step.status for step in instance.steps]


NS, IP, DONE = StepStatus.NOT_STARTED, StepStatus.IN_PROGRESS, StepStatus.COMPLETED


def complete_visa_workflow(engine, owner_id):
    engine.attach_artifacts(owner_id, 1, ["a.pdf", "b.pdf"])
    engine.advance_step(owner_id, 2)
    engine.attach_artifacts(owner_id, 3, ["passport.pdf"])
    engine.advance_step(owner_id, 4)
    engine.advance_step(owner_id, 5)
    return engine.advance_step(owner_id, 6)


class TestGetOrCreateWorkflow:

    def test_fresh_owner_starts_at_step_one(self, engine):
        instance = engine.get_or_create_workflow("c1")

        assert instance.owner_id == "c1"
        assert instance.workflow_id.startswith("WFI-")
        assert statuses(instance) == [IP, NS, NS, NS, NS, NS]
        assert [s.title for s in instance.steps] == [
            "Send Agreement",
            "Schedule Meeting",
            "Upload Documents",
            "Payment Collection",
            "Appointment Booking",
            "Final Submission",
        ]
        assert all(step.attachments == [] for step in instance.steps)
        assert instance.version == 1

    def test_second_call_returns_existing_instance(self, engine, workflow_repo):
        first = engine.get_or_create_workflow("c1")
        engine.attach_artifacts("c1", 1, ["a.pdf", "b.pdf"])

        again = engine.get_or_create_workflow("c1")

        assert again.workflow_id == first.workflow_id
        assert again.steps[0].status == DONE
        assert workflow_repo.count_workflows() == 1

    def test_owner_id_is_trimmed(self, engine):
        instance = engine.get_or_create_workflow("  c1  ")
        assert instance.owner_id == "c1"

    def test_blank_owner_rejected(self, engine):
        with pytest.raises(ValidationError):
            engine.get_or_create_workflow("   ")

    def test_template_drives_step_list(self, make_engine, short_template):
        engine = make_engine(template=short_template)

        instance = engine.get_or_create_workflow("c1")

        assert [s.title for s in instance.steps] == ["Intake", "Review", "Evidence"]
        assert statuses(instance) == [IP, NS, NS]

    def test_creation_race_yields_single_instance(self, make_engine, workflow_repo, monkeypatch):
        winner = make_engine().get_or_create_workflow("c1")

        # The loser read "no instance" before the winner's insert landed
        original_get = workflow_repo.get_by_owner
        reads = []

        def stale_get(owner_id):
            reads.append(owner_id)
            if len(reads) == 1:
                return None
            return original_get(owner_id)

        monkeypatch.setattr(workflow_repo, "get_by_owner", stale_get)
        loser = make_engine(workflow_repo=workflow_repo).get_or_create_workflow("c1")

        assert loser.workflow_id == winner.workflow_id
        assert workflow_repo.count_workflows() == 1

    def test_creation_is_audited(self, engine, audit_repo):
        engine.get_or_create_workflow("c1")

        event_types = {e.event_type for e in audit_repo.get_events_for_owner("c1")}

        assert event_types == {AuditEventType.WORKFLOW_CREATED, AuditEventType.STEP_ACTIVATED}


class TestAttachArtifacts:

    def test_exact_count_completes_step_and_activates_next(self, engine):
        instance = engine.attach_artifacts("c1", 1, ["a.pdf", "b.pdf"])

        assert statuses(instance) == [DONE, IP, NS, NS, NS, NS]
        assert instance.steps[0].attachments == ["a.pdf", "b.pdf"]
        assert instance.version == 2

    def test_wrong_count_raises_and_leaves_state_unchanged(self, engine, workflow_repo):
        engine.get_or_create_workflow("c1")

        with pytest.raises(ArtifactCountMismatchError) as exc_info:
            engine.attach_artifacts("c1", 1, ["a.pdf"])

        assert exc_info.value.details["required_count"] == 2
        assert exc_info.value.details["received_count"] == 1
        stored = workflow_repo.get_by_owner("c1")
        assert statuses(stored) == [IP, NS, NS, NS, NS, NS]
        assert stored.steps[0].attachments == []
        assert stored.version == 1

    def test_too_many_artifacts_also_mismatch(self, engine):
        with pytest.raises(ArtifactCountMismatchError):
            engine.attach_artifacts("c1", 1, ["a.pdf", "b.pdf", "c.pdf"])

    def test_first_upload_creates_workflow(self, engine, workflow_repo):
        assert workflow_repo.get_by_owner("new-client") is None

        instance = engine.attach_artifacts("new-client", 1, ["a.pdf", "b.pdf"])

        assert instance.steps[0].status == DONE
        assert workflow_repo.get_by_owner("new-client") is not None

    def test_min_count_accumulates_until_satisfied(self, make_engine, short_template):
        engine = make_engine(template=short_template)
        engine.advance_step("c1", 1)
        engine.advance_step("c1", 2)

        partial = engine.attach_artifacts("c1", 3, ["one.pdf"])
        assert partial.steps[2].status == IP
        assert partial.steps[2].attachments == ["one.pdf"]

        done = engine.attach_artifacts("c1", 3, ["two.pdf"])
        assert done.steps[2].status == DONE
        assert done.steps[2].attachments == ["one.pdf", "two.pdf"]
        assert done.is_complete

    def test_ungated_step_records_without_completing(self, engine):
        engine.attach_artifacts("c1", 1, ["a.pdf", "b.pdf"])

        instance = engine.attach_artifacts("c1", 2, ["meeting-notes.pdf"])

        assert instance.steps[1].status == IP
        assert instance.steps[1].attachments == ["meeting-notes.pdf"]

    def test_not_started_step_is_not_ready(self, engine):
        engine.get_or_create_workflow("c1")

        with pytest.raises(StepNotReadyError) as exc_info:
            engine.attach_artifacts("c1", 3, ["doc.pdf"])

        assert exc_info.value.details["current_step"] == 1

    def test_completed_step_is_not_ready(self, engine):
        engine.attach_artifacts("c1", 1, ["a.pdf", "b.pdf"])

        with pytest.raises(StepNotReadyError):
            engine.attach_artifacts("c1", 1, ["c.pdf", "d.pdf"])

    @pytest.mark.parametrize("sequence", [0, 7, -1])
    def test_unknown_sequence_is_invalid(self, engine, sequence):
        with pytest.raises(InvalidStepError) as exc_info:
            engine.attach_artifacts("c1", sequence, ["a.pdf", "b.pdf"])

        assert exc_info.value.details["step_count"] == 6

    @pytest.mark.parametrize("artifacts", [[], ["a.pdf", "  "]])
    def test_empty_artifacts_rejected(self, engine, artifacts):
        with pytest.raises(ValidationError):
            engine.attach_artifacts("c1", 1, artifacts)

    def test_transition_is_audited(self, engine, audit_repo):
        engine.attach_artifacts("c1", 1, ["a.pdf", "b.pdf"])

        events = [
            (e.event_type, e.step_sequence)
            for e in audit_repo.get_events_for_owner("c1")
            if e.event_type != AuditEventType.WORKFLOW_CREATED
        ]

        assert (AuditEventType.ARTIFACTS_ATTACHED, 1) in events
        assert (AuditEventType.STEP_COMPLETED, 1) in events
        assert (AuditEventType.STEP_ACTIVATED, 2) in events


class TestAdvanceStep:

    def test_advances_ungated_frontier(self, engine):
        engine.attach_artifacts("c1", 1, ["a.pdf", "b.pdf"])

        instance = engine.advance_step("c1", 2)

        assert statuses(instance) == [DONE, DONE, IP, NS, NS, NS]

    def test_cannot_skip_ahead(self, engine, workflow_repo):
        engine.attach_artifacts("c1", 1, ["a.pdf", "b.pdf"])
        before = workflow_repo.get_by_owner("c1")

        with pytest.raises(StepNotReadyError):
            engine.advance_step("c1", 3)

        after = workflow_repo.get_by_owner("c1")
        assert statuses(after) == statuses(before)
        assert after.version == before.version

    def test_cannot_advance_completed_step(self, engine):
        engine.attach_artifacts("c1", 1, ["a.pdf", "b.pdf"])

        with pytest.raises(StepNotReadyError):
            engine.advance_step("c1", 1)

    def test_gated_step_requires_artifacts(self, engine, workflow_repo):
        engine.get_or_create_workflow("c1")

        with pytest.raises(ArtifactCountMismatchError):
            engine.advance_step("c1", 1)

        assert workflow_repo.get_by_owner("c1").steps[0].status == IP

    def test_unknown_sequence_is_invalid(self, engine):
        with pytest.raises(InvalidStepError):
            engine.advance_step("c1", 99)


class TestTerminalState:

    def test_full_run_completes_workflow(self, engine, audit_repo):
        instance = complete_visa_workflow(engine, "c1")

        assert instance.is_complete
        assert instance.current_step is None
        event_types = [e.event_type for e in audit_repo.get_events_for_owner("c1")]
        assert AuditEventType.WORKFLOW_COMPLETED in event_types

    @pytest.mark.parametrize("sequence", range(1, 7))
    def test_terminal_state_is_stable(self, engine, workflow_repo, sequence):
        complete_visa_workflow(engine, "c1")
        before = workflow_repo.get_by_owner("c1")

        with pytest.raises(StepNotReadyError):
            engine.advance_step("c1", sequence)
        with pytest.raises(StepNotReadyError):
            engine.attach_artifacts("c1", sequence, ["a.pdf", "b.pdf"])

        after = workflow_repo.get_by_owner("c1")
        assert after.model_dump() == before.model_dump()


class TestConcreteScenario:

    def test_visa_scenario(self, engine):
        created = engine.get_or_create_workflow("c1")
        assert created.steps[0].status == IP

        with pytest.raises(ArtifactCountMismatchError):
            engine.attach_artifacts("c1", 1, ["a.pdf"])
        assert statuses(engine.get_workflow("c1")) == [IP, NS, NS, NS, NS, NS]

        updated = engine.attach_artifacts("c1", 1, ["a.pdf", "b.pdf"])
        assert updated.steps[0].status == DONE
        assert updated.steps[1].status == IP

        with pytest.raises(StepNotReadyError):
            engine.advance_step("c1", 3)


class TestConcurrency:

    def _interleave(self, monkeypatch, workflow_repo, concurrent_call):
        """Run `concurrent_call` right after the first read of the patched repository."""
        original_get = workflow_repo.get_by_owner
        reads = []

        def interleaved_get(owner_id):
            snapshot = original_get(owner_id)
            reads.append(owner_id)
            if len(reads) == 1:
                concurrent_call()
            return snapshot

        monkeypatch.setattr(workflow_repo, "get_by_owner", interleaved_get)

    def test_interleaved_attach_cannot_pass_gate_twice(
        self, engine, make_engine, workflow_repo, monkeypatch
    ):
        engine.get_or_create_workflow("c1")
        other = make_engine()
        self._interleave(
            monkeypatch, workflow_repo,
            lambda: other.attach_artifacts("c1", 1, ["b1.pdf", "b2.pdf"])
        )

        with pytest.raises(StepNotReadyError):
            engine.attach_artifacts("c1", 1, ["a1.pdf", "a2.pdf"])

        monkeypatch.undo()
        final = workflow_repo.get_by_owner("c1")
        assert statuses(final) == [DONE, IP, NS, NS, NS, NS]
        assert final.steps[0].attachments == ["b1.pdf", "b2.pdf"]
        assert final.version == 2

    def test_interleaved_advance_cannot_pass_gate_twice(
        self, make_engine, workflow_repo, short_template, monkeypatch
    ):
        engine = make_engine(template=short_template, workflow_repo=workflow_repo)
        other = make_engine(template=short_template)
        engine.get_or_create_workflow("c1")
        self._interleave(monkeypatch, workflow_repo, lambda: other.advance_step("c1", 1))

        with pytest.raises(StepNotReadyError):
            engine.advance_step("c1", 1)

        monkeypatch.undo()
        final = workflow_repo.get_by_owner("c1")
        assert statuses(final) == [DONE, IP, NS]

    def test_conflict_without_retries_reports_concurrency_error(
        self, make_engine, workflow_repo, monkeypatch
    ):
        engine = make_engine(conflict_retries=0, workflow_repo=workflow_repo)
        other = make_engine()
        engine.get_or_create_workflow("c1")
        self._interleave(
            monkeypatch, workflow_repo,
            lambda: other.attach_artifacts("c1", 1, ["b1.pdf", "b2.pdf"])
        )

        with pytest.raises(ConcurrencyError) as exc_info:
            engine.attach_artifacts("c1", 1, ["a1.pdf", "a2.pdf"])

        assert exc_info.value.retryable
        monkeypatch.undo()
        assert workflow_repo.get_by_owner("c1").steps[0].attachments == ["b1.pdf", "b2.pdf"]

    def test_different_owners_are_independent(self, engine):
        engine.attach_artifacts("c1", 1, ["a.pdf", "b.pdf"])

        other = engine.get_or_create_workflow("c2")

        assert statuses(other) == [IP, NS, NS, NS, NS, NS]


class TestQueries:

    def test_get_workflow_does_not_create(self, engine, workflow_repo):
        with pytest.raises(WorkflowNotFoundError):
            engine.get_workflow("missing")
        assert workflow_repo.get_by_owner("missing") is None

    def test_history_requires_existing_workflow(self, engine):
        with pytest.raises(WorkflowNotFoundError):
            engine.get_history("missing")

    def test_list_workflows_filters_by_completion(self, engine):
        complete_visa_workflow(engine, "done-1")
        engine.get_or_create_workflow("open-1")
        engine.get_or_create_workflow("open-2")

        everything, total = engine.list_workflows()
        finished, finished_total = engine.list_workflows(completed=True)
        unfinished, unfinished_total = engine.list_workflows(completed=False)

        assert total == 3 and len(everything) == 3
        assert finished_total == 1
        assert [w.owner_id for w in finished] == ["done-1"]
        assert unfinished_total == 2
        assert {w.owner_id for w in unfinished} == {"open-1", "open-2"}
