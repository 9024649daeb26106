# ============================================================================
# EVENT REPOSITORY
# ============================================================================
# EPOCH: 1 - WORKFLOW ORCHESTRATION
# STATUS: Core - JobEvent persistence
# PURPOSE: Database access for the studio.job_events table
# CREATED: 19 OCT 2026
# ============================================================================
"""
Event Repository

Append and read the per-job activity timeline.
"""

import logging
from typing import List, Optional

from psycopg import sql
from psycopg.rows import dict_row
from psycopg.types.json import Json
from psycopg_pool import AsyncConnectionPool

from core.models import JobEvent
from core.models.events import EventType, EventStatus
from .database import TABLE_JOB_EVENTS, use_connection

logger = logging.getLogger(__name__)


class EventRepository:
    """Repository for JobEvent entities."""

    def __init__(self, pool: AsyncConnectionPool):
        self.pool = pool

    async def create(self, event: JobEvent) -> JobEvent:
        """
        Append an event.

        Returns:
            Copy of the event with event_id populated
        """
        async with use_connection(self.pool) as conn:
            async with conn.cursor(row_factory=dict_row) as cur:
                await cur.execute(
                    sql.SQL("""
                        INSERT INTO {} (
                            job_id, actor_id, event_type, event_status,
                            event_data, error_message, created_at
                        ) VALUES (
                            %(job_id)s, %(actor_id)s, %(event_type)s,
                            %(event_status)s, %(event_data)s, %(error_message)s,
                            %(created_at)s
                        )
                        RETURNING event_id
                    """).format(TABLE_JOB_EVENTS),
                    {
                        "job_id": event.job_id,
                        "actor_id": event.actor_id,
                        "event_type": event.event_type.value,
                        "event_status": event.event_status.value,
                        "event_data": Json(event.event_data),
                        "error_message": event.error_message,
                        "created_at": event.created_at,
                    },
                )
                row = await cur.fetchone()

        return event.model_copy(update={"event_id": row["event_id"]})

    async def get_timeline(
        self,
        job_id: str,
        limit: int = 100,
        event_types: Optional[List[EventType]] = None,
    ) -> List[JobEvent]:
        """
        Chronological timeline for a job (oldest first).

        Args:
            job_id: Job identifier
            limit: Maximum events
            event_types: Optional filter by event types
        """
        type_values = [t.value for t in event_types] if event_types else None

        async with use_connection(self.pool) as conn:
            async with conn.cursor(row_factory=dict_row) as cur:
                await cur.execute(
                    sql.SQL("""
                        SELECT * FROM {}
                        WHERE job_id = %s
                          AND (%s::text[] IS NULL OR event_type::text = ANY(%s::text[]))
                        ORDER BY created_at ASC, event_id ASC
                        LIMIT %s
                    """).format(TABLE_JOB_EVENTS),
                    (job_id, type_values, type_values, limit),
                )
                rows = await cur.fetchall()

        return [self._row_to_event(row) for row in rows]

    def _row_to_event(self, row: dict) -> JobEvent:
        """Convert database row to JobEvent model."""
        return JobEvent(
            event_id=row["event_id"],
            job_id=row["job_id"],
            actor_id=row.get("actor_id"),
            event_type=EventType(row["event_type"]),
            event_status=EventStatus(row["event_status"]),
            event_data=row.get("event_data") or {},
            error_message=row.get("error_message"),
            created_at=row["created_at"],
        )
