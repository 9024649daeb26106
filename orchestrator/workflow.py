# ============================================================================
# WORKFLOW ORCHESTRATOR
# ============================================================================
# EPOCH: 1 - WORKFLOW ORCHESTRATION
# STATUS: Core - Public façade of the workflow core
# PURPOSE: Load, validate, debit, reassign, commit and fan out transitions
# CREATED: 19 OCT 2026
# ============================================================================
"""
Workflow Orchestrator

Every public operation follows the same path:

    1. load the job (and its predecessor)
    2. ask the state machine for a TransitionPlan (raises on illegal,
       unauthorized or dependency-blocked requests)
    3. resolve a new assignee if the plan asks for one; no eligible
       worker keeps the current assignee and adds a warning
    4. in ONE transaction: debit the package for the entered stage (if
       the job counts against one) and write the job with its version
       precondition
    5. after commit: record the timeline event and run the fan-out once

No WorkflowError leaves this class; callers get an OperationResult.
The actor is always an explicit argument.
"""

from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from pydantic import ValidationError as PydanticValidationError
from psycopg import AsyncConnection
from psycopg_pool import AsyncConnectionPool

from core.config import get_defaults
from core.contracts import Actor, AdvanceTarget, JobStatus, ServiceType, UserRole
from core.errors import (
    ConflictError,
    EntitlementError,
    NotFoundError,
    ValidationError,
    WorkflowError,
)
from core.logging import get_logger, log_checkpoint, log_context, ComponentType
from core.models import (
    DebitOutcome,
    Job,
    JobComment,
    JobSpec,
    NotificationKind,
    OperationResult,
    TransitionEvent,
    UsageRecord,
)
from orchestrator.engine import state_machine
from orchestrator.engine.state_machine import TransitionPlan
from repositories import NotificationRepository, transaction
from services import (
    AssignmentResolver,
    EntitlementLedger,
    EventService,
    JobService,
    NotificationFanout,
)

logger = get_logger("orchestrator.workflow", ComponentType.ORCHESTRATOR)


def _coerce(enum_cls, value, field: str):
    """Parse a raw value into a closed enum or raise ValidationError."""
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        raise ValidationError(
            f"Invalid {field} '{value}'; expected one of {[m.value for m in enum_cls]}",
            field=field,
            value=value,
        ) from None


class WorkflowOrchestrator:
    """Façade over the state machine, resolver, ledger and fan-out."""

    def __init__(
        self,
        pool: AsyncConnectionPool,
        publisher=None,
        job_service: Optional[JobService] = None,
        resolver: Optional[AssignmentResolver] = None,
        ledger: Optional[EntitlementLedger] = None,
        fanout: Optional[NotificationFanout] = None,
        event_service: Optional[EventService] = None,
        notification_repo: Optional[NotificationRepository] = None,
    ):
        """
        Args:
            pool: Database connection pool
            publisher: Optional NotificationPublisher for real-time pushes
        """
        self.pool = pool
        self.jobs = job_service or JobService(pool)
        self.resolver = resolver or AssignmentResolver(pool)
        self.ledger = ledger or EntitlementLedger(pool)
        self.fanout = fanout or NotificationFanout(pool, publisher=publisher)
        self.events = event_service or EventService(pool)
        self._comments = notification_repo or NotificationRepository(pool)

    # =========================================================================
    # SHARED STEPS
    # =========================================================================

    async def _rejected(
        self,
        operation: str,
        error: WorkflowError,
        actor: Actor,
        job_id: Optional[str] = None,
    ) -> OperationResult:
        """Log, record and fold a rejection into a result."""
        logger.warning(f"{operation} rejected: {type(error).__name__}: {error}")
        if job_id is not None and not isinstance(error, NotFoundError):
            if isinstance(error, EntitlementError):
                await self.events.emit_package_debit(
                    job_id, ServiceType(error.service_type), error.outcome, actor
                )
            await self.events.emit_rejected(
                job_id, actor, operation, error,
                conflict=isinstance(error, ConflictError),
            )
        return OperationResult.from_error(error)

    async def _debit(
        self,
        job: Job,
        service_type: Optional[ServiceType],
        conn: AsyncConnection,
    ) -> Optional[UsageRecord]:
        """
        Debit one stage entry for a job inside the caller's transaction.

        Raises:
            EntitlementError: Debit refused; the transaction must roll back
        """
        if not job.counts_against_package or service_type is None:
            return None

        result = await self.ledger.debit(
            job.client_id,
            service_type,
            get_defaults().workflow.units_per_stage,
            job.job_id,
            conn=conn,
        )
        if not result.ok:
            raise EntitlementError(result.outcome, job.client_id, service_type.value)
        return result.record

    async def _resolve_assignee(self, plan: TransitionPlan, warnings: List[str]) -> None:
        """Point the plan at the resolved worker, or record a warning."""
        if plan.reassign_role is None:
            return
        worker_id = await self.resolver.resolve(plan.reassign_role)
        if worker_id is None:
            warnings.append(
                f"No active {plan.reassign_role.value} available; "
                f"job {plan.job.job_id} keeps its current assignee"
            )
            plan.unavailable_role = plan.reassign_role
            return
        plan.job = plan.job.model_copy(update={"assigned_to": worker_id})

    async def _commit(self, plan: TransitionPlan) -> Tuple[Job, Optional[UsageRecord]]:
        """Debit (if needed) and write the job in one transaction."""
        async with transaction(self.pool) as conn:
            record = await self._debit(plan.job, plan.debit_service, conn)
            updated = await self.jobs.job_repo.update(plan.job, conn=conn)
        return updated, record

    async def _after_commit(
        self,
        before: Job,
        after: Job,
        plan: TransitionPlan,
        actor: Actor,
        note: Optional[str],
        record: Optional[UsageRecord],
    ) -> None:
        if record is not None:
            await self.events.emit_package_debit(
                after.job_id, record.service_type, DebitOutcome.OK, actor,
                assignment_id=record.assignment_id,
            )
        if plan.unavailable_role is not None:
            await self.events.emit_assignment_unavailable(
                after.job_id, plan.unavailable_role.value, actor
            )
        await self.events.emit_transition(plan.event_type, before, after, actor, note)
        await self.fanout.notify(
            TransitionEvent(kind=plan.kind, job=after, previous=before, actor=actor)
        )

    async def _transition(
        self,
        operation: str,
        job_id: str,
        actor: Actor,
        planner,
        note: Optional[str] = None,
    ) -> OperationResult:
        """Run one planned transition end to end."""
        with log_context(job_id=job_id, actor_id=actor.actor_id, operation=operation):
            warnings: List[str] = []
            try:
                before = await self.jobs.get_job(job_id)
                predecessor = await self.jobs.get_predecessor(before)
                plan = planner(before, predecessor)
                await self._resolve_assignee(plan, warnings)
                after, record = await self._commit(plan)
            except PydanticValidationError as e:
                return await self._rejected(operation, ValidationError(str(e)), actor, job_id)
            except WorkflowError as e:
                return await self._rejected(operation, e, actor, job_id)

            log_checkpoint(f"{operation}_committed", {
                "status": after.status.value,
                "stage": after.workflow_stage.value if after.workflow_stage else None,
                "assigned_to": after.assigned_to,
                "version": after.version,
            })
            await self._after_commit(before, after, plan, actor, note, record)
            return OperationResult.success(job=after, warnings=warnings)

    # =========================================================================
    # TRANSITIONS
    # =========================================================================

    async def advance_workflow(
        self,
        job_id: str,
        target: Union[AdvanceTarget, str],
        actor: Actor,
        note: Optional[str] = None,
    ) -> OperationResult:
        """Move a chained job to its next stage or hand it over."""
        try:
            target = _coerce(AdvanceTarget, target, "target")
        except ValidationError as e:
            return await self._rejected("advance", e, actor, job_id)

        def planner(job: Job, predecessor: Optional[Job]) -> TransitionPlan:
            return state_machine.plan_advance(job, target, actor, predecessor, note)

        return await self._transition("advance", job_id, actor, planner, note)

    async def complete_job(
        self,
        job_id: str,
        actor: Actor,
        note: Optional[str] = None,
    ) -> OperationResult:
        """Complete a non-chained job (assignee only)."""
        def planner(job: Job, predecessor: Optional[Job]) -> TransitionPlan:
            return state_machine.plan_complete(job, actor, predecessor, note)

        return await self._transition("complete", job_id, actor, planner, note)

    async def set_job_status(
        self,
        job_id: str,
        status: Union[JobStatus, str],
        actor: Actor,
        note: Optional[str] = None,
    ) -> OperationResult:
        """Administrative lifecycle override."""
        try:
            status = _coerce(JobStatus, status, "status")
        except ValidationError as e:
            return await self._rejected("set_status", e, actor, job_id)

        def planner(job: Job, predecessor: Optional[Job]) -> TransitionPlan:
            return state_machine.plan_status(job, status, actor, note)

        return await self._transition("set_status", job_id, actor, planner, note)

    async def delete_job(self, job_id: str, actor: Actor) -> OperationResult:
        """Hard-delete a job (admin only, any state)."""
        with log_context(job_id=job_id, actor_id=actor.actor_id, operation="delete"):
            try:
                job = await self.jobs.get_job(job_id)
                state_machine.authorize_delete(job, actor)
                if not await self.jobs.job_repo.delete(job_id):
                    raise NotFoundError("Job", job_id)
            except WorkflowError as e:
                return await self._rejected("delete", e, actor, job_id)

            logger.warning(f"Job {job_id} deleted in status {job.status.value}")
            await self.events.emit_job_deleted(job, actor)
            return OperationResult.success(job=job, message=f"Job {job_id} deleted")

    # =========================================================================
    # CREATION
    # =========================================================================

    async def _initial_assignee(self, job: Job, actor: Actor, warnings: List[str]) -> Job:
        """Resolve an assignee for a new job that names none."""
        stage = job.workflow_stage or job.job_type.default_stage()
        if job.assigned_to is not None or stage is None:
            return job
        worker_id = await self.resolver.resolve_for_stage(stage)
        if worker_id is None:
            role = get_defaults().workflow.role_for(stage)
            warnings.append(f"No active {role.value} available; job {job.job_id} is unassigned")
            return job
        return job.model_copy(update={"assigned_to": worker_id})

    async def _insert_with_debits(self, jobs: Sequence[Job]) -> List[UsageRecord]:
        """Insert new jobs and debit each one's entry stage, all or nothing."""
        workflow = get_defaults().workflow
        records: List[UsageRecord] = []
        async with transaction(self.pool) as conn:
            await self.jobs.job_repo.create_many(jobs, conn=conn)
            for job in jobs:
                stage = job.workflow_stage or job.job_type.default_stage()
                record = await self._debit(job, workflow.service_for(stage), conn)
                if record is not None:
                    records.append(record)
        return records

    async def _announce_created(self, jobs: Sequence[Job], actor: Actor, records: List[UsageRecord]) -> None:
        for record in records:
            await self.events.emit_package_debit(
                record.job_id, record.service_type, DebitOutcome.OK, actor,
                assignment_id=record.assignment_id,
            )
        for job in jobs:
            await self.events.emit_job_created(job, actor)
            await self.fanout.notify(
                TransitionEvent(kind=NotificationKind.ASSIGNMENT, job=job, previous=None, actor=actor)
            )

    async def create_job(self, spec: JobSpec, actor: Actor) -> OperationResult:
        """Create one unchained job."""
        with log_context(client_id=spec.client_id, actor_id=actor.actor_id, operation="create_job"):
            warnings: List[str] = []
            try:
                state_machine.authorize_create(actor)
                job = self.jobs.build_job(spec, actor)
                job = await self._initial_assignee(job, actor, warnings)
                records = await self._insert_with_debits([job])
            except PydanticValidationError as e:
                return await self._rejected("create_job", ValidationError(str(e)), actor)
            except WorkflowError as e:
                return await self._rejected("create_job", e, actor)

            log_checkpoint("job_created", {"job_id": job.job_id})
            await self._announce_created([job], actor, records)
            return OperationResult.success(job=job, warnings=warnings)

    async def create_workflow_chain(
        self,
        specs: Sequence[JobSpec],
        client_id: str,
        actor: Actor,
    ) -> OperationResult:
        """Create 1-3 linked jobs, one per stage, all or nothing."""
        with log_context(client_id=client_id, actor_id=actor.actor_id, operation="create_chain"):
            warnings: List[str] = []
            try:
                state_machine.authorize_create(actor)
                jobs = self.jobs.build_chain(specs, client_id, actor)
                jobs = [await self._initial_assignee(job, actor, warnings) for job in jobs]
                records = await self._insert_with_debits(jobs)
            except PydanticValidationError as e:
                return await self._rejected("create_chain", ValidationError(str(e)), actor)
            except WorkflowError as e:
                return await self._rejected("create_chain", e, actor)

            chain_id = jobs[0].chain_id
            with log_context(chain_id=chain_id):
                log_checkpoint("chain_created", {"job_ids": [job.job_id for job in jobs]})
            await self.events.emit_chain_created(jobs, actor)
            await self._announce_created(jobs, actor, records)
            return OperationResult.success(
                jobs=jobs,
                warnings=warnings,
                data={"chain_id": chain_id},
            )

    # =========================================================================
    # COMMENTS
    # =========================================================================

    async def comment_on_job(self, job_id: str, content: str, actor: Actor) -> OperationResult:
        """Add a comment and fan it out."""
        with log_context(job_id=job_id, actor_id=actor.actor_id, operation="comment"):
            try:
                if not content or not content.strip():
                    raise ValidationError("Comment content is required", field="content")
                job = await self.jobs.get_job(job_id)
                state_machine.authorize_comment(job, actor)
                comment = await self._comments.add_comment(
                    JobComment(job_id=job_id, author_id=actor.actor_id, content=content.strip())
                )
            except PydanticValidationError as e:
                return await self._rejected("comment", ValidationError(str(e)), actor, job_id)
            except WorkflowError as e:
                return await self._rejected("comment", e, actor, job_id)

            await self.events.emit_job_commented(job_id, actor, comment.comment_id)
            await self.fanout.notify(
                TransitionEvent(
                    kind=NotificationKind.COMMENT,
                    job=job,
                    previous=job,
                    actor=actor,
                    comment=comment.content,
                )
            )
            return OperationResult.success(
                job=job,
                data={"comment": comment.model_dump(mode="json")},
            )

    # =========================================================================
    # QUERIES
    # =========================================================================

    async def get_job(self, job_id: str) -> OperationResult:
        try:
            return OperationResult.success(job=await self.jobs.get_job(job_id))
        except WorkflowError as e:
            return OperationResult.from_error(e)

    async def get_chain(self, chain_id: str) -> OperationResult:
        try:
            jobs = await self.jobs.get_chain(chain_id)
        except WorkflowError as e:
            return OperationResult.from_error(e)
        return OperationResult.success(jobs=jobs, data={"chain_id": chain_id})

    async def job_timeline(self, job_id: str, limit: int = 100) -> OperationResult:
        """Activity timeline of a job, oldest first (survives deletion)."""
        try:
            events = await self.events.get_job_timeline(job_id, limit)
        except WorkflowError as e:
            return OperationResult.from_error(e)
        return OperationResult.success(
            data={"events": [event.model_dump(mode="json") for event in events]}
        )

    async def list_candidates(self, role: Union[UserRole, str]) -> OperationResult:
        """Active workers for a role, in resolution order."""
        try:
            role = _coerce(UserRole, role, "role")
            workers = await self.resolver.list_candidates(role)
        except WorkflowError as e:
            return OperationResult.from_error(e)
        return OperationResult.success(
            data={"candidates": [worker.model_dump(mode="json") for worker in workers]}
        )

    async def usage_summary(self, assignment_id: str) -> OperationResult:
        """Granted / consumed / remaining units for one assignment."""
        try:
            summary = await self.ledger.usage_summary(assignment_id)
        except WorkflowError as e:
            return OperationResult.from_error(e)
        return OperationResult.success(
            data={"assignment_id": assignment_id, "services": _usage_payload(summary)}
        )

    async def client_usage(self, client_id: str) -> OperationResult:
        """Usage summaries for each active assignment of a client."""
        try:
            by_assignment = await self.ledger.client_usage(client_id)
        except WorkflowError as e:
            return OperationResult.from_error(e)
        return OperationResult.success(
            data={
                "client_id": client_id,
                "assignments": {
                    assignment_id: _usage_payload(summary)
                    for assignment_id, summary in by_assignment.items()
                },
            }
        )


def _usage_payload(summary) -> Dict[str, Dict[str, Any]]:
    return {
        service_type.value: usage.model_dump()
        for service_type, usage in summary.items()
    }


__all__ = ["WorkflowOrchestrator"]
