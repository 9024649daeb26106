# ============================================================================
# DOMAIN MODEL TESTS
# ============================================================================
# EPOCH: 1 - WORKFLOW ORCHESTRATION
# STATUS: Tests - Domain model unit tests
# PURPOSE: Verify enums, models, results and schema generation
# CREATED: 19 OCT 2026
# ============================================================================
"""
Domain Model Tests

Unit tests for the domain layer:
- Enums: JobStatus, WorkflowStage, AdvanceTarget, JobType, UserRole
- Models: Job, JobSpec, ClientPackageAssignment, ServiceUsage
- OperationResult error mapping
- Schema generator output

Run with:
    pytest tests/test_domain_models.py -v
"""

import pytest
from datetime import date, datetime, timezone
from decimal import Decimal

from pydantic import ValidationError as PydanticValidationError

from core.contracts import (
    Actor,
    AdvanceTarget,
    JobStatus,
    JobType,
    UserRole,
    WorkflowStage,
)
from core.errors import (
    AuthorizationError,
    ConflictError,
    DependencyNotSatisfiedError,
    EntitlementError,
    NotFoundError,
    StoreUnavailableError,
    ValidationError,
)
from core.models import (
    ClientPackageAssignment,
    DebitOutcome,
    Job,
    JobSpec,
    NotificationKind,
    OperationResult,
    ResultStatus,
    ServiceUsage,
    TransitionEvent,
    WorkflowHistoryEntry,
)


def _make_job(**overrides) -> Job:
    fields = dict(
        job_id="job-1",
        client_id="client-1",
        title="Portrait session",
        created_by="admin-1",
    )
    fields.update(overrides)
    return Job(**fields)


# ============================================================================
# ENUM TESTS
# ============================================================================


class TestJobStatus:
    def test_values(self):
        assert JobStatus.PENDING.value == "pending"
        assert JobStatus.IN_PROGRESS.value == "in_progress"
        assert JobStatus.REVIEW.value == "review"
        assert JobStatus.COMPLETED.value == "completed"
        assert JobStatus.DELIVERED.value == "delivered"

    def test_terminal_states(self):
        assert JobStatus.COMPLETED.is_terminal()
        assert JobStatus.DELIVERED.is_terminal()
        assert not JobStatus.REVIEW.is_terminal()

    def test_completable_states(self):
        assert JobStatus.PENDING.is_completable()
        assert JobStatus.REVIEW.is_completable()
        assert not JobStatus.COMPLETED.is_completable()
        assert not JobStatus.DELIVERED.is_completable()


class TestWorkflowStage:
    def test_order(self):
        assert WorkflowStage.CAPTURE.order < WorkflowStage.POST_PRODUCTION.order
        assert WorkflowStage.POST_PRODUCTION.order < WorkflowStage.FINISHING.order

    def test_advance_target_to_stage(self):
        assert AdvanceTarget.FINISHING.to_stage() == WorkflowStage.FINISHING
        assert AdvanceTarget.HANDOVER.to_stage() is None

    def test_job_type_default_stage(self):
        assert JobType.CAPTURE.default_stage() == WorkflowStage.CAPTURE
        assert JobType.CONSULTATION.default_stage() is None
        assert JobType.OTHER.default_stage() is None


class TestUserRole:
    def test_administrative(self):
        assert UserRole.ADMIN.is_administrative()
        assert UserRole.COORDINATOR.is_administrative()
        assert not UserRole.EDITOR.is_administrative()
        assert not UserRole.CLIENT.is_administrative()

    def test_actor_is_frozen(self):
        actor = Actor(actor_id="u-1", role=UserRole.EDITOR)
        with pytest.raises(PydanticValidationError):
            actor.actor_id = "u-2"


# ============================================================================
# JOB MODEL TESTS
# ============================================================================


class TestJob:
    def test_defaults(self):
        job = _make_job()
        assert job.status == JobStatus.PENDING
        assert job.version == 1
        assert job.history == ()
        assert job.is_chained is False
        assert job.counts_against_package is False

    def test_title_required(self):
        with pytest.raises(PydanticValidationError):
            _make_job(title="")

    def test_negative_price_rejected(self):
        with pytest.raises(PydanticValidationError):
            _make_job(price=Decimal("-1"))

    def test_with_transition_leaves_original_untouched(self):
        job = _make_job(workflow_stage=WorkflowStage.CAPTURE)
        entry = WorkflowHistoryEntry(
            previous_stage=WorkflowStage.CAPTURE,
            new_stage="finishing",
            previous_status=JobStatus.PENDING,
            new_status=JobStatus.IN_PROGRESS,
            transitioned_by="admin-1",
        )

        moved = job.with_transition(
            entry,
            status=JobStatus.IN_PROGRESS,
            workflow_stage=WorkflowStage.FINISHING,
        )

        assert job.status == JobStatus.PENDING
        assert job.history == ()
        assert moved.workflow_stage == WorkflowStage.FINISHING
        assert moved.history == (entry,)
        assert moved.version == job.version
        assert moved.updated_at == entry.transitioned_at

    def test_snapshot(self):
        job = _make_job(assigned_to="w-1", workflow_stage=WorkflowStage.CAPTURE)
        assert job.snapshot() == {
            "job_id": "job-1",
            "status": "pending",
            "workflow_stage": "capture",
            "assigned_to": "w-1",
        }


class TestJobSpec:
    def test_stage_defaults_to_job_type(self):
        spec = JobSpec(title="Retouch", job_type=JobType.POST_PRODUCTION)
        assert spec.stage() == WorkflowStage.POST_PRODUCTION

    def test_explicit_stage_wins(self):
        spec = JobSpec(title="Album", job_type=JobType.OTHER, workflow_stage=WorkflowStage.FINISHING)
        assert spec.stage() == WorkflowStage.FINISHING

    def test_single_shot_has_no_stage(self):
        assert JobSpec(title="Call", job_type=JobType.CONSULTATION).stage() is None


# ============================================================================
# PACKAGE MODEL TESTS
# ============================================================================


class TestClientPackageAssignment:
    def _make(self, **overrides):
        fields = dict(
            assignment_id="a-1",
            client_id="client-1",
            package_id="p-1",
            start_date=date(2026, 1, 1),
            end_date=date(2026, 12, 31),
        )
        fields.update(overrides)
        return ClientPackageAssignment(**fields)

    def test_window_must_be_forward(self):
        with pytest.raises(PydanticValidationError):
            self._make(end_date=date(2025, 12, 31))

    def test_covers(self):
        assignment = self._make()
        assert assignment.covers(date(2026, 6, 1))
        assert assignment.covers(date(2026, 12, 31))
        assert not assignment.covers(date(2027, 1, 1))

    def test_inactive_covers_nothing(self):
        assert not self._make(is_active=False).covers(date(2026, 6, 1))


class TestServiceUsage:
    def test_remaining(self):
        assert ServiceUsage(granted=5, consumed=2).remaining == 3

    def test_remaining_never_negative(self):
        assert ServiceUsage(granted=1, consumed=3).remaining == 0

    def test_dump_includes_remaining(self):
        assert ServiceUsage(granted=2, consumed=1).model_dump() == {
            "granted": 2, "consumed": 1, "remaining": 1,
        }


# ============================================================================
# TRANSITION EVENT TESTS
# ============================================================================


class TestTransitionEvent:
    def test_assignee_changed(self):
        before = _make_job(assigned_to="w-1")
        after = before.model_copy(update={"assigned_to": "w-2"})
        event = TransitionEvent(
            kind=NotificationKind.STAGE_ADVANCE,
            job=after,
            previous=before,
            actor=Actor(actor_id="admin-1", role=UserRole.ADMIN),
        )
        assert event.assignee_changed
        assert event.previous_assignee == "w-1"

    def test_new_job_with_assignee_counts_as_changed(self):
        event = TransitionEvent(
            kind=NotificationKind.ASSIGNMENT,
            job=_make_job(assigned_to="w-1"),
            actor=Actor(actor_id="admin-1", role=UserRole.ADMIN),
        )
        assert event.assignee_changed
        assert event.previous_assignee is None


# ============================================================================
# OPERATION RESULT TESTS
# ============================================================================


class TestOperationResult:
    @pytest.mark.parametrize("error, status", [
        (ValidationError("bad"), ResultStatus.VALIDATION_ERROR),
        (DependencyNotSatisfiedError("j-2", "j-1", "in_progress"), ResultStatus.VALIDATION_ERROR),
        (AuthorizationError("no"), ResultStatus.AUTHORIZATION_ERROR),
        (NotFoundError("Job", "j-1"), ResultStatus.NOT_FOUND),
        (ConflictError("j-1", 3), ResultStatus.CONFLICT),
        (StoreUnavailableError("down"), ResultStatus.UNAVAILABLE),
    ])
    def test_error_mapping(self, error, status):
        result = OperationResult.from_error(error)
        assert result.status == status
        assert not result.ok

    def test_conflict_is_retryable(self):
        assert OperationResult.from_error(ConflictError("j-1", 3)).retryable

    def test_entitlement_carries_outcome(self):
        error = EntitlementError(DebitOutcome.INSUFFICIENT_ENTITLEMENT, "client-1", "capture")
        result = OperationResult.from_error(error)
        assert result.status == ResultStatus.ENTITLEMENT_ERROR
        assert result.data == {"outcome": "insufficient_entitlement"}

    def test_success_with_warnings(self):
        result = OperationResult.success(job=_make_job(), warnings=["No active editor available"])
        assert result.ok
        assert result.warnings == ["No active editor available"]


# ============================================================================
# SCHEMA GENERATION SMOKE TEST
# ============================================================================


class TestSchemaGeneration:
    def test_generate_all_includes_studio_tables(self):
        """Verify the schema generator produces DDL for every table."""
        from core.schema.sql_generator import PydanticToSQL

        generator = PydanticToSQL(schema_name="studio")
        statements = generator.generate_all()

        ddl_text = " ".join(str(s) for s in statements)

        for table in (
            "workers", "packages", "package_services", "client_packages",
            "jobs", "package_usage", "notifications", "job_comments", "job_events",
        ):
            assert table in ddl_text, f"DDL should include {table} table"

        for enum_type in ("job_status", "workflow_stage", "user_role", "service_type"):
            assert enum_type in ddl_text, f"DDL should include {enum_type} enum"

    def test_usage_is_unique_per_job_and_service(self):
        from core.schema.sql_generator import PydanticToSQL

        ddl_text = " ".join(str(s) for s in PydanticToSQL().generate_all())
        assert "uq_package_usage_job_id_service_type" in ddl_text
