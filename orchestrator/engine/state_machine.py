# ============================================================================
# WORKFLOW STATE MACHINE
# ============================================================================
# EPOCH: 1 - WORKFLOW ORCHESTRATION
# STATUS: Core - Transition legality and authorization rules
# PURPOSE: Decide whether a transition is allowed and what it produces
# CREATED: 19 OCT 2026
# ============================================================================
"""
Workflow State Machine

Pure rules: every function takes the loaded job (and predecessor) plus
the actor, and either raises a WorkflowError or returns a
TransitionPlan describing the new job value. Nothing here touches the
store, the resolver or the ledger; the orchestrator applies the plan.

Stage transitions (chained jobs only):

    capture          -> post_production | finishing | handover
    post_production  -> finishing | handover
    finishing        -> handover

handover completes the job and keeps its last stage. Any other target
sets status in_progress, moves the stage, and asks for reassignment
and (if the job counts against a package) a debit for the new stage.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, FrozenSet, Optional

from core.config import get_defaults
from core.contracts import Actor, AdvanceTarget, JobStatus, ServiceType, UserRole, WorkflowStage
from core.errors import AuthorizationError, DependencyNotSatisfiedError, ValidationError
from core.models import EventType, Job, NotificationKind, WorkflowHistoryEntry

logger = logging.getLogger(__name__)


# ============================================================================
# TRANSITION TABLE
# ============================================================================

LEGAL_TARGETS: Dict[WorkflowStage, FrozenSet[AdvanceTarget]] = {
    WorkflowStage.CAPTURE: frozenset({
        AdvanceTarget.POST_PRODUCTION,
        AdvanceTarget.FINISHING,
        AdvanceTarget.HANDOVER,
    }),
    WorkflowStage.POST_PRODUCTION: frozenset({
        AdvanceTarget.FINISHING,
        AdvanceTarget.HANDOVER,
    }),
    WorkflowStage.FINISHING: frozenset({
        AdvanceTarget.HANDOVER,
    }),
}


def legal_targets(stage: WorkflowStage) -> FrozenSet[AdvanceTarget]:
    """Targets reachable from a stage."""
    return LEGAL_TARGETS[stage]


# ============================================================================
# PLAN
# ============================================================================

@dataclass
class TransitionPlan:
    """What an accepted transition changes."""
    # New job value (history appended, version still the loaded one)
    job: Job

    # Fan-out kind and timeline event type
    kind: NotificationKind
    event_type: EventType

    # Role to hand the job to, None when no reassignment is needed
    reassign_role: Optional[UserRole] = None

    # Service type to debit before commit, None when nothing is consumed
    debit_service: Optional[ServiceType] = None

    # Set by the orchestrator when reassign_role had no active worker
    unavailable_role: Optional[UserRole] = None


def _now() -> datetime:
    return datetime.now(timezone.utc)


# ============================================================================
# AUTHORIZATION
# ============================================================================

def _reject_client(actor: Actor, operation: str) -> None:
    if actor.role == UserRole.CLIENT:
        raise AuthorizationError(
            f"Clients may not {operation} jobs",
            actor_id=actor.actor_id,
            role=actor.role.value,
        )


def authorize_worker_or_admin(job: Job, actor: Actor, operation: str) -> None:
    """Current assignee, or an admin/coordinator. Never a client."""
    _reject_client(actor, operation)
    if actor.role.is_administrative():
        return
    if job.assigned_to is not None and job.assigned_to == actor.actor_id:
        return
    raise AuthorizationError(
        f"Only the assignee or an administrator may {operation} job {job.job_id}",
        actor_id=actor.actor_id,
        role=actor.role.value,
    )


def authorize_assignee(job: Job, actor: Actor, operation: str) -> None:
    """Current assignee only. Never a client."""
    _reject_client(actor, operation)
    if job.assigned_to is None or job.assigned_to != actor.actor_id:
        raise AuthorizationError(
            f"Only the current assignee may {operation} job {job.job_id}",
            actor_id=actor.actor_id,
            role=actor.role.value,
        )


def authorize_admin(job: Job, actor: Actor, operation: str) -> None:
    """Admins and coordinators only."""
    if not actor.role.is_administrative():
        raise AuthorizationError(
            f"Only administrators and coordinators may {operation} job {job.job_id}",
            actor_id=actor.actor_id,
            role=actor.role.value,
        )


def authorize_create(actor: Actor) -> None:
    """Jobs are opened by admins and coordinators."""
    if not actor.role.is_administrative():
        raise AuthorizationError(
            "Only administrators and coordinators may create jobs",
            actor_id=actor.actor_id,
            role=actor.role.value,
        )


def authorize_delete(job: Job, actor: Actor) -> None:
    """Hard delete is admin only and otherwise unconditional."""
    if actor.role != UserRole.ADMIN:
        raise AuthorizationError(
            f"Only administrators may delete job {job.job_id}",
            actor_id=actor.actor_id,
            role=actor.role.value,
        )


def authorize_comment(job: Job, actor: Actor) -> None:
    """Staff may comment on any job; a client only on their own."""
    if actor.role == UserRole.CLIENT and actor.actor_id != job.client_id:
        raise AuthorizationError(
            f"Client may not comment on job {job.job_id}",
            actor_id=actor.actor_id,
            role=actor.role.value,
        )


# ============================================================================
# DEPENDENCY GATE
# ============================================================================

def check_dependency(job: Job, predecessor: Optional[Job]) -> None:
    """
    A job with depends_on cannot move until its predecessor is finished.

    A missing predecessor (deleted) never satisfies the gate.
    """
    if job.depends_on is None:
        return
    if predecessor is not None and predecessor.status.is_terminal():
        return
    raise DependencyNotSatisfiedError(
        job.job_id,
        job.depends_on,
        predecessor.status.value if predecessor is not None else None,
    )


# ============================================================================
# TRANSITIONS
# ============================================================================

def plan_advance(
    job: Job,
    target: AdvanceTarget,
    actor: Actor,
    predecessor: Optional[Job] = None,
    note: Optional[str] = None,
    now: Optional[datetime] = None,
) -> TransitionPlan:
    """
    Validate and plan a stage advance.

    Raises:
        AuthorizationError: Wrong actor
        ValidationError: Unchained job, finished job, or illegal target
        DependencyNotSatisfiedError: Predecessor not finished
    """
    authorize_worker_or_admin(job, actor, "advance")

    if job.workflow_stage is None:
        raise ValidationError(
            f"Job {job.job_id} is not part of a workflow chain; use complete instead",
            field="workflow_stage",
        )

    if job.status.is_terminal():
        raise ValidationError(
            f"Job {job.job_id} is already {job.status.value}",
            field="status",
            value=job.status.value,
        )

    allowed = legal_targets(job.workflow_stage)
    if target not in allowed:
        raise ValidationError(
            f"Cannot advance from {job.workflow_stage.value} to {target.value}; "
            f"allowed: {sorted(t.value for t in allowed)}",
            field="target",
            value=target.value,
        )

    check_dependency(job, predecessor)

    entry = WorkflowHistoryEntry(
        previous_stage=job.workflow_stage,
        new_stage=target.value,
        previous_status=job.status,
        new_status=JobStatus.COMPLETED if target == AdvanceTarget.HANDOVER else JobStatus.IN_PROGRESS,
        transitioned_at=now or _now(),
        transitioned_by=actor.actor_id,
        notes=note,
    )

    new_stage = target.to_stage()
    if new_stage is None:
        return TransitionPlan(
            job=job.with_transition(entry, status=JobStatus.COMPLETED),
            kind=NotificationKind.STAGE_ADVANCE,
            event_type=EventType.JOB_ADVANCED,
        )

    workflow = get_defaults().workflow
    return TransitionPlan(
        job=job.with_transition(entry, status=JobStatus.IN_PROGRESS, workflow_stage=new_stage),
        kind=NotificationKind.STAGE_ADVANCE,
        event_type=EventType.JOB_ADVANCED,
        reassign_role=workflow.role_for(new_stage),
        debit_service=workflow.service_for(new_stage),
    )


def plan_complete(
    job: Job,
    actor: Actor,
    predecessor: Optional[Job] = None,
    note: Optional[str] = None,
    now: Optional[datetime] = None,
) -> TransitionPlan:
    """
    Validate and plan completion of a non-chained job.

    Raises:
        AuthorizationError: Actor is not the assignee
        ValidationError: Chained job, or status not completable
        DependencyNotSatisfiedError: Predecessor not finished
    """
    authorize_assignee(job, actor, "complete")

    if job.workflow_stage is not None:
        raise ValidationError(
            f"Job {job.job_id} is part of a workflow chain; advance it to handover instead",
            field="workflow_stage",
            value=job.workflow_stage.value,
        )

    if not job.status.is_completable():
        raise ValidationError(
            f"Job {job.job_id} cannot be completed from {job.status.value}",
            field="status",
            value=job.status.value,
        )

    check_dependency(job, predecessor)

    entry = WorkflowHistoryEntry(
        previous_status=job.status,
        new_status=JobStatus.COMPLETED,
        transitioned_at=now or _now(),
        transitioned_by=actor.actor_id,
        notes=note,
    )
    return TransitionPlan(
        job=job.with_transition(entry, status=JobStatus.COMPLETED),
        kind=NotificationKind.COMPLETION,
        event_type=EventType.JOB_COMPLETED,
    )


def plan_status(
    job: Job,
    status: JobStatus,
    actor: Actor,
    note: Optional[str] = None,
    now: Optional[datetime] = None,
) -> TransitionPlan:
    """
    Plan an administrative lifecycle override.

    Bypasses stage rules and the dependency gate, so only admins and
    coordinators may use it.
    """
    authorize_admin(job, actor, "change the status of")

    entry = WorkflowHistoryEntry(
        previous_status=job.status,
        new_status=status,
        transitioned_at=now or _now(),
        transitioned_by=actor.actor_id,
        notes=note,
    )
    return TransitionPlan(
        job=job.with_transition(entry, status=status),
        kind=NotificationKind.STATUS_CHANGE,
        event_type=EventType.JOB_STATUS_SET,
    )


__all__ = [
    "LEGAL_TARGETS",
    "legal_targets",
    "TransitionPlan",
    "authorize_worker_or_admin",
    "authorize_assignee",
    "authorize_admin",
    "authorize_create",
    "authorize_delete",
    "authorize_comment",
    "check_dependency",
    "plan_advance",
    "plan_complete",
    "plan_status",
]
