# ============================================================================
# WORKER REPOSITORY
# ============================================================================
# EPOCH: 1 - WORKFLOW ORCHESTRATION
# STATUS: Core - Read access to people and roles
# PURPOSE: Database access for the studio.workers table
# CREATED: 19 OCT 2026
# ============================================================================
"""
Worker Repository

Read-only queries used by the assignment resolver and notification
fan-out. Ordering is deterministic (name, then worker_id) so the same
store state always resolves to the same worker.
"""

import logging
from typing import Any, Dict, List, Sequence

from psycopg import sql
from psycopg.rows import dict_row
from psycopg_pool import AsyncConnectionPool

from core.contracts import UserRole
from core.models import Worker
from .database import TABLE_WORKERS, use_connection

logger = logging.getLogger(__name__)


class WorkerRepository:
    """Repository for Worker entities."""

    def __init__(self, pool: AsyncConnectionPool):
        self.pool = pool

    async def list_active_by_role(self, role: UserRole) -> List[Worker]:
        """Active workers holding a role, ordered by name then id."""
        return await self.list_active_by_roles([role])

    async def list_active_by_roles(self, roles: Sequence[UserRole]) -> List[Worker]:
        """Active workers holding any of the roles, ordered by name then id."""
        if not roles:
            return []

        async with use_connection(self.pool) as conn:
            async with conn.cursor(row_factory=dict_row) as cur:
                await cur.execute(
                    sql.SQL("""
                        SELECT * FROM {}
                        WHERE is_active = true
                          AND role::text = ANY(%s)
                        ORDER BY name, worker_id
                    """).format(TABLE_WORKERS),
                    ([role.value for role in roles],),
                )
                rows = await cur.fetchall()

        return [self._row_to_worker(row) for row in rows]

    def _row_to_worker(self, row: Dict[str, Any]) -> Worker:
        return Worker(
            worker_id=row["worker_id"],
            name=row["name"],
            email=row.get("email"),
            role=row["role"],
            is_active=row["is_active"],
            created_at=row["created_at"],
        )
