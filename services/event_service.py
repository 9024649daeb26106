# ============================================================================
# EVENT SERVICE
# ============================================================================
# EPOCH: 1 - WORKFLOW ORCHESTRATION
# STATUS: Core - Event emission and retrieval
# PURPOSE: Record job activity for auditing and the job timeline
# CREATED: 19 OCT 2026
# ============================================================================
"""
Event Service

Provides methods to emit events at key workflow points.
Events are fire-and-forget - failures are logged but don't propagate.

This enables:
- Audit trail ("who deleted this delivered job?")
- Debugging rejected transitions and package debits
- The job activity timeline shown to staff
"""

import logging
from typing import Any, Dict, List, Optional

from psycopg_pool import AsyncConnectionPool

from core.contracts import Actor, ServiceType
from core.models import Job, JobEvent, DebitOutcome
from core.models.events import EventType, EventStatus
from repositories import EventRepository

logger = logging.getLogger(__name__)


class EventService:
    """Service for emitting and retrieving job events."""

    def __init__(self, pool: AsyncConnectionPool, repo: Optional[EventRepository] = None):
        self.pool = pool
        self._repo = repo or EventRepository(pool)

    # =========================================================================
    # CORE EMIT METHOD
    # =========================================================================

    async def emit(
        self,
        event_type: EventType,
        job_id: str,
        actor_id: Optional[str] = None,
        status: EventStatus = EventStatus.INFO,
        data: Optional[Dict[str, Any]] = None,
        error_message: Optional[str] = None,
    ) -> Optional[JobEvent]:
        """
        Emit an event. Fire-and-forget - logs errors but doesn't raise.

        Returns:
            Created JobEvent or None if emission failed
        """
        try:
            event = JobEvent.job_event(
                job_id=job_id,
                event_type=event_type,
                status=status,
                actor_id=actor_id,
                event_data=data,
                error_message=error_message,
            )

            created = await self._repo.create(event)
            logger.debug(f"Event emitted: {event_type.value} for job={job_id}")
            return created

        except Exception as e:
            # Fire-and-forget - log but don't raise
            logger.warning(
                f"Failed to emit event {event_type.value} for job {job_id}: {e}"
            )
            return None

    # =========================================================================
    # JOB LIFECYCLE EVENTS
    # =========================================================================

    async def emit_job_created(self, job: Job, actor: Actor) -> None:
        await self.emit(
            event_type=EventType.JOB_CREATED,
            job_id=job.job_id,
            actor_id=actor.actor_id,
            status=EventStatus.SUCCESS,
            data={
                "client_id": job.client_id,
                "job_type": job.job_type.value,
                "chain_id": job.chain_id,
                **job.snapshot(),
            },
        )

    async def emit_chain_created(self, jobs: List[Job], actor: Actor) -> None:
        """Emit CHAIN_CREATED on the first job of the chain."""
        if not jobs:
            return
        await self.emit(
            event_type=EventType.CHAIN_CREATED,
            job_id=jobs[0].job_id,
            actor_id=actor.actor_id,
            status=EventStatus.SUCCESS,
            data={
                "chain_id": jobs[0].chain_id,
                "job_ids": [job.job_id for job in jobs],
            },
        )

    async def emit_transition(
        self,
        event_type: EventType,
        before: Job,
        after: Job,
        actor: Actor,
        note: Optional[str] = None,
    ) -> None:
        """Emit an accepted transition with before/after snapshots."""
        await self.emit(
            event_type=event_type,
            job_id=after.job_id,
            actor_id=actor.actor_id,
            status=EventStatus.SUCCESS,
            data={
                "before": before.snapshot(),
                "after": after.snapshot(),
                "note": note,
            },
        )

    async def emit_job_deleted(self, job: Job, actor: Actor) -> None:
        await self.emit(
            event_type=EventType.JOB_DELETED,
            job_id=job.job_id,
            actor_id=actor.actor_id,
            status=EventStatus.WARNING,
            data=job.snapshot(),
        )

    async def emit_job_commented(self, job_id: str, actor: Actor, comment_id: Optional[int]) -> None:
        await self.emit(
            event_type=EventType.JOB_COMMENTED,
            job_id=job_id,
            actor_id=actor.actor_id,
            status=EventStatus.INFO,
            data={"comment_id": comment_id},
        )

    # =========================================================================
    # SIDE EFFECT / REJECTION EVENTS
    # =========================================================================

    async def emit_package_debit(
        self,
        job_id: str,
        service_type: ServiceType,
        outcome: DebitOutcome,
        actor: Actor,
        assignment_id: Optional[str] = None,
    ) -> None:
        """Emit PACKAGE_DEBITED or PACKAGE_DEBIT_REJECTED."""
        ok = outcome == DebitOutcome.OK
        await self.emit(
            event_type=EventType.PACKAGE_DEBITED if ok else EventType.PACKAGE_DEBIT_REJECTED,
            job_id=job_id,
            actor_id=actor.actor_id,
            status=EventStatus.SUCCESS if ok else EventStatus.FAILURE,
            data={
                "service_type": service_type.value,
                "outcome": outcome.value,
                "assignment_id": assignment_id,
            },
        )

    async def emit_assignment_unavailable(self, job_id: str, role: str, actor: Actor) -> None:
        await self.emit(
            event_type=EventType.ASSIGNMENT_UNAVAILABLE,
            job_id=job_id,
            actor_id=actor.actor_id,
            status=EventStatus.WARNING,
            data={"required_role": role},
        )

    async def emit_rejected(
        self,
        job_id: str,
        actor: Actor,
        operation: str,
        error: Exception,
        conflict: bool = False,
    ) -> None:
        """Emit TRANSITION_REJECTED (or TRANSITION_CONFLICT) for a refused operation."""
        await self.emit(
            event_type=EventType.TRANSITION_CONFLICT if conflict else EventType.TRANSITION_REJECTED,
            job_id=job_id,
            actor_id=actor.actor_id,
            status=EventStatus.FAILURE,
            data={"operation": operation, "error_type": type(error).__name__},
            error_message=str(error),
        )

    # =========================================================================
    # RETRIEVAL METHODS
    # =========================================================================

    async def get_job_timeline(
        self,
        job_id: str,
        limit: int = 100,
        event_types: Optional[List[EventType]] = None,
    ) -> List[JobEvent]:
        """
        Get chronological event timeline for a job.

        Returns:
            Events in chronological order (oldest first)
        """
        return await self._repo.get_timeline(job_id, limit, event_types)
