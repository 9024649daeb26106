# ============================================================================
# JOB REPOSITORY
# ============================================================================
# EPOCH: 1 - WORKFLOW ORCHESTRATION
# STATUS: Core - Job CRUD operations
# PURPOSE: Database access for the studio.jobs table
# CREATED: 19 OCT 2026
# ============================================================================
"""
Job Repository

CRUD operations for production jobs.

Every write accepts an optional connection so the orchestrator can run
it inside a wider transaction (see repositories.database.transaction).
"""

import logging
from typing import Any, Dict, List, Optional, Sequence

from psycopg import AsyncConnection, sql
from psycopg.rows import dict_row
from psycopg.types.json import Json
from psycopg_pool import AsyncConnectionPool

from core.errors import ConflictError, NotFoundError
from core.models import Job
from .database import TABLE_JOBS, use_connection

logger = logging.getLogger(__name__)


_INSERT_JOB = sql.SQL("""
    INSERT INTO {} (
        job_id, client_id, title, job_type, description, status,
        workflow_stage, workflow_order, chain_id, depends_on,
        assigned_to, created_by, price, extra_cost, extra_cost_reason,
        counts_against_package, due_date, history,
        created_at, updated_at, version
    ) VALUES (
        %(job_id)s, %(client_id)s, %(title)s, %(job_type)s, %(description)s,
        %(status)s, %(workflow_stage)s, %(workflow_order)s, %(chain_id)s,
        %(depends_on)s, %(assigned_to)s, %(created_by)s, %(price)s,
        %(extra_cost)s, %(extra_cost_reason)s, %(counts_against_package)s,
        %(due_date)s, %(history)s, %(created_at)s, %(updated_at)s, %(version)s
    )
""").format(TABLE_JOBS)


class JobRepository:
    """Repository for Job entities."""

    def __init__(self, pool: AsyncConnectionPool):
        self.pool = pool

    @staticmethod
    def _params(job: Job) -> Dict[str, Any]:
        return {
            "job_id": job.job_id,
            "client_id": job.client_id,
            "title": job.title,
            "job_type": job.job_type.value,
            "description": job.description,
            "status": job.status.value,
            "workflow_stage": job.workflow_stage.value if job.workflow_stage else None,
            "workflow_order": job.workflow_order,
            "chain_id": job.chain_id,
            "depends_on": job.depends_on,
            "assigned_to": job.assigned_to,
            "created_by": job.created_by,
            "price": job.price,
            "extra_cost": job.extra_cost,
            "extra_cost_reason": job.extra_cost_reason,
            "counts_against_package": job.counts_against_package,
            "due_date": job.due_date,
            "history": Json([entry.model_dump(mode="json") for entry in job.history]),
            "created_at": job.created_at,
            "updated_at": job.updated_at,
            "version": job.version,
        }

    async def create_many(
        self,
        jobs: Sequence[Job],
        conn: Optional[AsyncConnection] = None,
    ) -> List[Job]:
        """Insert several jobs (callers pass a transaction for all-or-nothing)."""
        async with use_connection(self.pool, conn) as c:
            async with c.cursor() as cur:
                await cur.executemany(_INSERT_JOB, [self._params(job) for job in jobs])
        logger.info(f"Created {len(jobs)} jobs")
        return list(jobs)

    async def get(
        self,
        job_id: str,
        conn: Optional[AsyncConnection] = None,
    ) -> Optional[Job]:
        """
        Get a job by ID.

        Returns:
            Job instance or None if not found
        """
        async with use_connection(self.pool, conn) as c:
            async with c.cursor(row_factory=dict_row) as cur:
                await cur.execute(
                    sql.SQL("SELECT * FROM {} WHERE job_id = %s").format(TABLE_JOBS),
                    (job_id,),
                )
                row = await cur.fetchone()

        if row is None:
            return None
        return self._row_to_job(row)

    async def get_chain(self, chain_id: str) -> List[Job]:
        """Get every job of a chain in workflow order."""
        async with use_connection(self.pool) as c:
            async with c.cursor(row_factory=dict_row) as cur:
                await cur.execute(
                    sql.SQL("""
                        SELECT * FROM {}
                        WHERE chain_id = %s
                        ORDER BY workflow_order
                    """).format(TABLE_JOBS),
                    (chain_id,),
                )
                rows = await cur.fetchall()

        return [self._row_to_job(row) for row in rows]

    async def update(self, job: Job, conn: Optional[AsyncConnection] = None) -> Job:
        """
        Replace a job row with optimistic locking.

        job.version must be the version that was loaded. The row is only
        written when the stored version still matches; otherwise another
        transition won the race.

        Returns:
            The job with its version incremented

        Raises:
            ConflictError: If the stored version has moved on
            NotFoundError: If the job was deleted since it was loaded
        """
        params = self._params(job)
        async with use_connection(self.pool, conn) as c:
            result = await c.execute(
                sql.SQL("""
                    UPDATE {} SET
                        title = %(title)s,
                        description = %(description)s,
                        status = %(status)s,
                        workflow_stage = %(workflow_stage)s,
                        assigned_to = %(assigned_to)s,
                        extra_cost = %(extra_cost)s,
                        extra_cost_reason = %(extra_cost_reason)s,
                        due_date = %(due_date)s,
                        history = %(history)s,
                        updated_at = %(updated_at)s,
                        version = version + 1
                    WHERE job_id = %(job_id)s
                      AND version = %(version)s
                """).format(TABLE_JOBS),
                params,
            )

            if result.rowcount == 0:
                exists = await c.execute(
                    sql.SQL("SELECT 1 FROM {} WHERE job_id = %s").format(TABLE_JOBS),
                    (job.job_id,),
                )
                if await exists.fetchone() is None:
                    raise NotFoundError("Job", job.job_id)
                logger.warning(
                    f"Version conflict updating job {job.job_id} "
                    f"(expected version {job.version})"
                )
                raise ConflictError(job.job_id, job.version)

        return job.model_copy(update={"version": job.version + 1})

    async def delete(self, job_id: str, conn: Optional[AsyncConnection] = None) -> bool:
        """
        Hard-delete a job.

        Returns:
            True if a row was removed
        """
        async with use_connection(self.pool, conn) as c:
            result = await c.execute(
                sql.SQL("DELETE FROM {} WHERE job_id = %s").format(TABLE_JOBS),
                (job_id,),
            )
            deleted = result.rowcount > 0

        if deleted:
            logger.info(f"Deleted job {job_id}")
        return deleted

    def _row_to_job(self, row: Dict[str, Any]) -> Job:
        """Convert database row to Job model."""
        return Job(
            job_id=row["job_id"],
            client_id=row["client_id"],
            title=row["title"],
            job_type=row["job_type"],
            description=row.get("description"),
            status=row["status"],
            workflow_stage=row.get("workflow_stage"),
            workflow_order=row.get("workflow_order"),
            chain_id=row.get("chain_id"),
            depends_on=row.get("depends_on"),
            assigned_to=row.get("assigned_to"),
            created_by=row["created_by"],
            price=row["price"],
            extra_cost=row.get("extra_cost"),
            extra_cost_reason=row.get("extra_cost_reason"),
            counts_against_package=row["counts_against_package"],
            due_date=row.get("due_date"),
            history=tuple(row.get("history") or ()),
            created_at=row["created_at"],
            updated_at=row["updated_at"],
            version=row["version"],
        )
