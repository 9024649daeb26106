# ============================================================================
# NOTIFICATION SERVICE
# ============================================================================
# EPOCH: 1 - WORKFLOW ORCHESTRATION
# STATUS: Service - Centralized notification fan-out
# PURPOSE: Compute recipients once per transition, persist and push
# CREATED: 19 OCT 2026
# ============================================================================
"""
Notification Fan-out

Invoked exactly once per committed transition (or comment) with a
TransitionEvent. Recipients, in order, without duplicates and never the
actor:

    1. the new assignee, if the assignee changed
       (for comments: the current assignee)
    2. the previous assignee, if the assignee changed (whoever handed
       the job off)
    3. the job's creator
    4. every active admin / coordinator

Delivery is best-effort: each recipient's notification is written and
pushed independently, and a failure is logged without touching the
others or the transition that triggered it.
"""

import logging
from typing import Iterable, List, Optional, Tuple

from psycopg_pool import AsyncConnectionPool

from core.config import get_defaults
from core.models import Notification, NotificationKind, TransitionEvent
from core.logging import log_context
from repositories import NotificationRepository, WorkerRepository

logger = logging.getLogger(__name__)


def compute_recipients(event: TransitionEvent, broadcast_ids: Iterable[str]) -> List[str]:
    """
    Ordered, duplicate-free recipient ids for an event.

    Args:
        event: The transition or comment
        broadcast_ids: Active admin / coordinator ids
    """
    actor_id = event.actor.actor_id
    job = event.job
    recipients: List[str] = []

    def add(worker_id: Optional[str]) -> None:
        if worker_id and worker_id != actor_id and worker_id not in recipients:
            recipients.append(worker_id)

    if event.kind == NotificationKind.COMMENT or event.assignee_changed:
        add(job.assigned_to)
    if event.assignee_changed:
        add(event.previous_assignee)
    add(job.created_by)
    for worker_id in broadcast_ids:
        add(worker_id)

    return recipients


def _label(value: Optional[str]) -> str:
    return value.replace("_", " ") if value else "none"


def render(event: TransitionEvent) -> Tuple[str, str]:
    """Title and body for an event; text depends only on its kind."""
    job = event.job
    previous = event.previous
    who = event.actor.actor_id

    if event.kind == NotificationKind.ASSIGNMENT:
        return (
            "New job assigned",
            f"'{job.title}' is assigned to {job.assigned_to or 'nobody yet'} (by {who}).",
        )

    if event.kind == NotificationKind.STAGE_ADVANCE:
        before = previous.workflow_stage.value if previous and previous.workflow_stage else None
        after = job.workflow_stage.value if job.workflow_stage else None
        if job.status.is_terminal() and before == after:
            return (
                "Job handed over",
                f"'{job.title}' finished at {_label(after)} and was handed over by {who}.",
            )
        return (
            f"Job moved to {_label(after)}",
            f"'{job.title}' moved from {_label(before)} to {_label(after)} by {who}.",
        )

    if event.kind == NotificationKind.COMPLETION:
        return ("Job completed", f"'{job.title}' was completed by {who}.")

    if event.kind == NotificationKind.STATUS_CHANGE:
        before = previous.status.value if previous else None
        return (
            "Job status changed",
            f"'{job.title}' changed from {_label(before)} to {_label(job.status.value)} by {who}.",
        )

    text = (event.comment or "").strip()
    if len(text) > 200:
        text = text[:197] + "..."
    return (f"New comment on '{job.title}'", f"{who}: {text}")


class NotificationFanout:
    """Centralized notification fan-out."""

    def __init__(
        self,
        pool: AsyncConnectionPool,
        publisher=None,
        repo: Optional[NotificationRepository] = None,
        worker_repo: Optional[WorkerRepository] = None,
    ):
        """
        Args:
            pool: Database connection pool
            publisher: Optional NotificationPublisher for real-time pushes
        """
        self.pool = pool
        self.publisher = publisher
        self._repo = repo or NotificationRepository(pool)
        self._workers = worker_repo or WorkerRepository(pool)

    async def _broadcast_ids(self) -> List[str]:
        roles = get_defaults().notifications.broadcast_roles
        try:
            workers = await self._workers.list_active_by_roles(roles)
        except Exception as e:
            logger.error(f"Could not load broadcast recipients: {e}")
            return []
        return [worker.worker_id for worker in workers]

    async def compute_recipients(self, event: TransitionEvent) -> List[str]:
        return compute_recipients(event, await self._broadcast_ids())

    async def notify(self, event: TransitionEvent) -> List[Notification]:
        """
        Fan an event out to its recipients.

        Returns:
            The notifications that were persisted. Never raises.
        """
        with log_context(job_id=event.job.job_id, operation=f"notify_{event.kind.value}"):
            recipients = await self.compute_recipients(event)
            if not recipients:
                logger.debug("No notification recipients")
                return []

            title, body = render(event)
            sent: List[Notification] = []
            for recipient_id in recipients:
                notification = await self._deliver(
                    Notification(
                        recipient_id=recipient_id,
                        kind=event.kind,
                        title=title[:200],
                        body=body[:2000],
                        related_job_id=event.job.job_id,
                    )
                )
                if notification is not None:
                    sent.append(notification)

            logger.info(
                f"Notified {len(sent)}/{len(recipients)} recipient(s) "
                f"of {event.kind.value} on job {event.job.job_id}"
            )
            return sent

    async def _deliver(self, notification: Notification) -> Optional[Notification]:
        try:
            stored = await self._repo.create(notification)
        except Exception as e:
            logger.error(
                f"Failed to store notification for {notification.recipient_id}: {e}"
            )
            return None

        defaults = get_defaults().notifications
        if self.publisher is not None and defaults.push_enabled:
            await self.publisher.publish(stored, defaults.user_channel(stored.recipient_id))

        return stored

    async def list_for(self, recipient_id: str, limit: int = 50) -> List[Notification]:
        """A recipient's newest notifications."""
        return await self._repo.list_for_recipient(recipient_id, limit)
