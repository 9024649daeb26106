# ============================================================================
# NOTIFICATION REPOSITORY
# ============================================================================
# EPOCH: 1 - WORKFLOW ORCHESTRATION
# STATUS: Core - Notification and comment persistence
# PURPOSE: Database access for studio.notifications and studio.job_comments
# CREATED: 19 OCT 2026
# ============================================================================
"""
Notification Repository

Notifications are insert-only from this core. Comments live here too
since their only consumer is the fan-out path.
"""

import logging
from typing import List

from psycopg import sql
from psycopg.rows import dict_row
from psycopg_pool import AsyncConnectionPool

from core.models import JobComment, Notification
from .database import TABLE_JOB_COMMENTS, TABLE_NOTIFICATIONS, use_connection

logger = logging.getLogger(__name__)


class NotificationRepository:
    """Repository for Notification and JobComment entities."""

    def __init__(self, pool: AsyncConnectionPool):
        self.pool = pool

    async def create(self, notification: Notification) -> Notification:
        """Insert one notification and return it with its id."""
        async with use_connection(self.pool) as conn:
            async with conn.cursor(row_factory=dict_row) as cur:
                await cur.execute(
                    sql.SQL("""
                        INSERT INTO {} (
                            recipient_id, kind, title, body, related_job_id, created_at
                        ) VALUES (
                            %(recipient_id)s, %(kind)s, %(title)s, %(body)s,
                            %(related_job_id)s, %(created_at)s
                        )
                        RETURNING notification_id
                    """).format(TABLE_NOTIFICATIONS),
                    {
                        "recipient_id": notification.recipient_id,
                        "kind": notification.kind.value,
                        "title": notification.title,
                        "body": notification.body,
                        "related_job_id": notification.related_job_id,
                        "created_at": notification.created_at,
                    },
                )
                row = await cur.fetchone()

        return notification.model_copy(update={"notification_id": row["notification_id"]})

    async def list_for_recipient(self, recipient_id: str, limit: int = 50) -> List[Notification]:
        async with use_connection(self.pool) as conn:
            async with conn.cursor(row_factory=dict_row) as cur:
                await cur.execute(
                    sql.SQL("""
                        SELECT * FROM {}
                        WHERE recipient_id = %s
                        ORDER BY created_at DESC
                        LIMIT %s
                    """).format(TABLE_NOTIFICATIONS),
                    (recipient_id, limit),
                )
                rows = await cur.fetchall()

        return [
            Notification(
                notification_id=row["notification_id"],
                recipient_id=row["recipient_id"],
                kind=row["kind"],
                title=row["title"],
                body=row["body"],
                related_job_id=row.get("related_job_id"),
                created_at=row["created_at"],
            )
            for row in rows
        ]

    # =========================================================================
    # COMMENTS
    # =========================================================================

    async def add_comment(self, comment: JobComment) -> JobComment:
        async with use_connection(self.pool) as conn:
            async with conn.cursor(row_factory=dict_row) as cur:
                await cur.execute(
                    sql.SQL("""
                        INSERT INTO {} (job_id, author_id, content, created_at)
                        VALUES (%(job_id)s, %(author_id)s, %(content)s, %(created_at)s)
                        RETURNING comment_id
                    """).format(TABLE_JOB_COMMENTS),
                    comment.model_dump(include={"job_id", "author_id", "content", "created_at"}),
                )
                row = await cur.fetchone()

        logger.info(f"Comment {row['comment_id']} added to job {comment.job_id}")
        return comment.model_copy(update={"comment_id": row["comment_id"]})
