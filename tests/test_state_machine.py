# ============================================================================
# STATE MACHINE TESTS
# ============================================================================
# EPOCH: 1 - WORKFLOW ORCHESTRATION
# STATUS: Tests - Transition legality, authorization and dependency gate
# PURPOSE: Verify the pure planning functions behind every transition
# CREATED: 19 OCT 2026
# ============================================================================
"""
State Machine Tests

Covers:
1. Legal advance targets per stage
2. Advance planning (new stage, reassignment role, debit service)
3. Handover completes without reassignment or debit
4. Dependency gate (predecessor must be completed or delivered)
5. complete: assignee only, non-chained only
6. set_status bypasses stage rules and the gate (admins and coordinators only)
7. Authorization of create, delete and comment

Run with:
    pytest tests/test_state_machine.py -v
"""

import pytest
from datetime import datetime, timezone

from core.contracts import (
    Actor,
    AdvanceTarget,
    JobStatus,
    ServiceType,
    UserRole,
    WorkflowStage,
)
from core.errors import AuthorizationError, DependencyNotSatisfiedError, ValidationError
from core.models import EventType, Job, NotificationKind
from orchestrator.engine import state_machine
from orchestrator.engine.state_machine import (
    legal_targets,
    plan_advance,
    plan_complete,
    plan_status,
)


ADMIN = Actor(actor_id="admin-1", role=UserRole.ADMIN)
COORDINATOR = Actor(actor_id="coord-1", role=UserRole.COORDINATOR)
PHOTOGRAPHER = Actor(actor_id="photo-1", role=UserRole.PHOTOGRAPHER)
EDITOR = Actor(actor_id="editor-1", role=UserRole.EDITOR)
CLIENT = Actor(actor_id="client-1", role=UserRole.CLIENT)

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


def _make_job(**overrides) -> Job:
    fields = dict(
        job_id="job-1",
        client_id="client-1",
        title="Wedding shoot",
        created_by="admin-1",
        assigned_to="photo-1",
        status=JobStatus.IN_PROGRESS,
        workflow_stage=WorkflowStage.CAPTURE,
        workflow_order=1,
        chain_id="chain-1",
    )
    fields.update(overrides)
    return Job(**fields)


# ============================================================================
# TRANSITION TABLE
# ============================================================================


class TestLegalTargets:
    def test_capture(self):
        assert legal_targets(WorkflowStage.CAPTURE) == {
            AdvanceTarget.POST_PRODUCTION,
            AdvanceTarget.FINISHING,
            AdvanceTarget.HANDOVER,
        }

    def test_post_production(self):
        assert legal_targets(WorkflowStage.POST_PRODUCTION) == {
            AdvanceTarget.FINISHING,
            AdvanceTarget.HANDOVER,
        }

    def test_finishing_only_hands_over(self):
        assert legal_targets(WorkflowStage.FINISHING) == {AdvanceTarget.HANDOVER}


# ============================================================================
# ADVANCE
# ============================================================================


class TestPlanAdvance:
    def test_capture_to_post_production(self):
        job = _make_job()
        plan = plan_advance(job, AdvanceTarget.POST_PRODUCTION, PHOTOGRAPHER, now=NOW)

        assert plan.job.workflow_stage == WorkflowStage.POST_PRODUCTION
        assert plan.job.status == JobStatus.IN_PROGRESS
        assert plan.reassign_role == UserRole.EDITOR
        assert plan.debit_service == ServiceType.POST_PRODUCTION
        assert plan.kind == NotificationKind.STAGE_ADVANCE
        assert plan.event_type == EventType.JOB_ADVANCED

    def test_history_entry_appended(self):
        job = _make_job()
        plan = plan_advance(job, AdvanceTarget.FINISHING, ADMIN, note="skip retouch", now=NOW)

        assert len(plan.job.history) == 1
        entry = plan.job.history[0]
        assert entry.previous_stage == WorkflowStage.CAPTURE
        assert entry.new_stage == "finishing"
        assert entry.previous_status == JobStatus.IN_PROGRESS
        assert entry.new_status == JobStatus.IN_PROGRESS
        assert entry.transitioned_by == "admin-1"
        assert entry.transitioned_at == NOW
        assert entry.notes == "skip retouch"

    def test_loaded_job_is_not_mutated(self):
        job = _make_job()
        plan_advance(job, AdvanceTarget.POST_PRODUCTION, PHOTOGRAPHER, now=NOW)
        assert job.workflow_stage == WorkflowStage.CAPTURE
        assert job.history == ()

    def test_version_kept_for_precondition(self):
        job = _make_job(version=4)
        plan = plan_advance(job, AdvanceTarget.POST_PRODUCTION, PHOTOGRAPHER, now=NOW)
        assert plan.job.version == 4

    def test_handover_completes_without_reassignment(self):
        job = _make_job(workflow_stage=WorkflowStage.FINISHING, assigned_to="designer-1")
        plan = plan_advance(job, AdvanceTarget.HANDOVER, ADMIN, now=NOW)

        assert plan.job.status == JobStatus.COMPLETED
        assert plan.job.workflow_stage == WorkflowStage.FINISHING
        assert plan.job.assigned_to == "designer-1"
        assert plan.reassign_role is None
        assert plan.debit_service is None
        assert plan.job.history[0].new_stage == "handover"

    def test_illegal_target(self):
        job = _make_job(workflow_stage=WorkflowStage.FINISHING)
        with pytest.raises(ValidationError, match="Cannot advance from finishing"):
            plan_advance(job, AdvanceTarget.POST_PRODUCTION, ADMIN)

    def test_backwards_move_rejected(self):
        job = _make_job(workflow_stage=WorkflowStage.POST_PRODUCTION)
        with pytest.raises(ValidationError):
            plan_advance(job, AdvanceTarget.POST_PRODUCTION, ADMIN)

    def test_unchained_job_rejected(self):
        job = _make_job(workflow_stage=None, workflow_order=None, chain_id=None)
        with pytest.raises(ValidationError, match="not part of a workflow chain"):
            plan_advance(job, AdvanceTarget.FINISHING, ADMIN)

    def test_finished_job_rejected(self):
        job = _make_job(status=JobStatus.DELIVERED)
        with pytest.raises(ValidationError, match="already delivered"):
            plan_advance(job, AdvanceTarget.HANDOVER, ADMIN)

    def test_coordinator_may_advance_any_job(self):
        plan = plan_advance(_make_job(), AdvanceTarget.HANDOVER, COORDINATOR, now=NOW)
        assert plan.job.status == JobStatus.COMPLETED

    def test_other_worker_rejected(self):
        with pytest.raises(AuthorizationError):
            plan_advance(_make_job(), AdvanceTarget.POST_PRODUCTION, EDITOR)

    def test_client_rejected_even_on_own_job(self):
        with pytest.raises(AuthorizationError, match="Clients may not"):
            plan_advance(_make_job(), AdvanceTarget.HANDOVER, CLIENT)


# ============================================================================
# DEPENDENCY GATE
# ============================================================================


class TestDependencyGate:
    def _successor(self):
        return _make_job(
            job_id="job-2",
            workflow_stage=WorkflowStage.POST_PRODUCTION,
            workflow_order=2,
            depends_on="job-1",
            assigned_to="editor-1",
            status=JobStatus.PENDING,
        )

    def test_blocked_while_predecessor_in_progress(self):
        predecessor = _make_job(status=JobStatus.IN_PROGRESS)
        with pytest.raises(DependencyNotSatisfiedError) as exc_info:
            plan_advance(self._successor(), AdvanceTarget.FINISHING, EDITOR, predecessor)
        assert exc_info.value.depends_on == "job-1"

    @pytest.mark.parametrize("status", [JobStatus.COMPLETED, JobStatus.DELIVERED])
    def test_released_by_finished_predecessor(self, status):
        predecessor = _make_job(status=status)
        plan = plan_advance(self._successor(), AdvanceTarget.FINISHING, EDITOR, predecessor, now=NOW)
        assert plan.job.workflow_stage == WorkflowStage.FINISHING

    def test_deleted_predecessor_blocks(self):
        with pytest.raises(DependencyNotSatisfiedError):
            plan_advance(self._successor(), AdvanceTarget.HANDOVER, ADMIN, predecessor=None)

    def test_gate_is_a_validation_error(self):
        with pytest.raises(ValidationError):
            state_machine.check_dependency(self._successor(), None)

    def test_no_dependency_passes(self):
        state_machine.check_dependency(_make_job(), None)


# ============================================================================
# COMPLETE
# ============================================================================


class TestPlanComplete:
    def _single(self, **overrides):
        fields = dict(workflow_stage=None, workflow_order=None, chain_id=None)
        fields.update(overrides)
        return _make_job(**fields)

    def test_assignee_completes(self):
        plan = plan_complete(self._single(), PHOTOGRAPHER, now=NOW)
        assert plan.job.status == JobStatus.COMPLETED
        assert plan.kind == NotificationKind.COMPLETION
        assert plan.event_type == EventType.JOB_COMPLETED
        assert plan.reassign_role is None
        assert plan.debit_service is None

    def test_admin_who_is_not_assignee_rejected(self):
        with pytest.raises(AuthorizationError, match="current assignee"):
            plan_complete(self._single(), ADMIN)

    def test_unassigned_job_cannot_be_completed(self):
        with pytest.raises(AuthorizationError):
            plan_complete(self._single(assigned_to=None), PHOTOGRAPHER)

    def test_chained_job_rejected(self):
        with pytest.raises(ValidationError, match="advance it to handover"):
            plan_complete(_make_job(), PHOTOGRAPHER)

    def test_already_completed_rejected(self):
        with pytest.raises(ValidationError, match="cannot be completed"):
            plan_complete(self._single(status=JobStatus.COMPLETED), PHOTOGRAPHER)


# ============================================================================
# STATUS OVERRIDE
# ============================================================================


class TestPlanStatus:
    def test_admin_sets_any_status(self):
        job = _make_job(status=JobStatus.COMPLETED)
        plan = plan_status(job, JobStatus.IN_PROGRESS, ADMIN, now=NOW)
        assert plan.job.status == JobStatus.IN_PROGRESS
        assert plan.job.workflow_stage == WorkflowStage.CAPTURE
        assert plan.kind == NotificationKind.STATUS_CHANGE
        assert plan.event_type == EventType.JOB_STATUS_SET

    def test_bypasses_dependency_gate(self):
        job = _make_job(depends_on="job-0", status=JobStatus.PENDING)
        plan = plan_status(job, JobStatus.REVIEW, COORDINATOR, now=NOW)
        assert plan.job.status == JobStatus.REVIEW

    @pytest.mark.parametrize("status", [JobStatus.COMPLETED, JobStatus.DELIVERED, JobStatus.REVIEW])
    def test_assignee_cannot_override_blocked_job(self, status):
        job = _make_job(depends_on="job-0", status=JobStatus.PENDING)
        with pytest.raises(AuthorizationError):
            plan_status(job, status, PHOTOGRAPHER, now=NOW)

    def test_assignee_cannot_override_own_job(self):
        with pytest.raises(AuthorizationError):
            plan_status(_make_job(), JobStatus.DELIVERED, PHOTOGRAPHER)

    def test_client_rejected(self):
        with pytest.raises(AuthorizationError):
            plan_status(_make_job(), JobStatus.DELIVERED, CLIENT)


# ============================================================================
# OTHER AUTHORIZATION
# ============================================================================


class TestAuthorization:
    def test_create_requires_administrative_role(self):
        state_machine.authorize_create(COORDINATOR)
        with pytest.raises(AuthorizationError):
            state_machine.authorize_create(PHOTOGRAPHER)

    def test_delete_is_admin_only(self):
        job = _make_job(status=JobStatus.DELIVERED)
        state_machine.authorize_delete(job, ADMIN)
        with pytest.raises(AuthorizationError):
            state_machine.authorize_delete(job, COORDINATOR)

    def test_client_comments_on_own_job_only(self):
        state_machine.authorize_comment(_make_job(), CLIENT)
        other = Actor(actor_id="client-9", role=UserRole.CLIENT)
        with pytest.raises(AuthorizationError):
            state_machine.authorize_comment(_make_job(), other)

    def test_staff_comment_anywhere(self):
        state_machine.authorize_comment(_make_job(), EDITOR)
