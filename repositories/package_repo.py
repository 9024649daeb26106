# ============================================================================
# PACKAGE REPOSITORY
# ============================================================================
# EPOCH: 1 - WORKFLOW ORCHESTRATION
# STATUS: Core - Package assignments and usage ledger
# PURPOSE: Database access for client_packages, package_services, package_usage
# CREATED: 19 OCT 2026
# ============================================================================
"""
Package Repository

Primitives for the entitlement ledger. The debit path is two statements
inside one transaction:

1. lock_eligible_assignments - SELECT ... FOR UPDATE on the client's
   eligible assignment rows, soonest end_date first. A second debit for
   the same client blocks here until the first commits.
2. insert_usage_within_grant - INSERT ... SELECT ... WHERE that re-reads
   the consumed sum with a fresh snapshot and only writes when the
   grant still covers the quantity.

Neither statement is safe alone; callers must pass the same connection
inside an open transaction.
"""

import logging
from datetime import date
from typing import Any, Dict, List, Optional

from psycopg import AsyncConnection, sql
from psycopg.rows import dict_row
from psycopg_pool import AsyncConnectionPool

from core.contracts import ServiceType
from core.models import ClientPackageAssignment, ServiceUsage, UsageRecord
from .database import (
    SCHEMA,
    TABLE_CLIENT_PACKAGES,
    TABLE_PACKAGE_SERVICES,
    TABLE_PACKAGE_USAGE,
    use_connection,
)

logger = logging.getLogger(__name__)

SERVICE_TYPE = sql.Identifier(SCHEMA, "service_type")


class PackageRepository:
    """Repository for package assignments and usage records."""

    def __init__(self, pool: AsyncConnectionPool):
        self.pool = pool

    # =========================================================================
    # ASSIGNMENTS
    # =========================================================================

    async def get_assignment(self, assignment_id: str) -> Optional[ClientPackageAssignment]:
        async with use_connection(self.pool) as conn:
            async with conn.cursor(row_factory=dict_row) as cur:
                await cur.execute(
                    sql.SQL("SELECT * FROM {} WHERE assignment_id = %s").format(
                        TABLE_CLIENT_PACKAGES
                    ),
                    (assignment_id,),
                )
                row = await cur.fetchone()

        return self._row_to_assignment(row) if row else None

    async def assignments_for_client(
        self,
        client_id: str,
        active_only: bool = True,
    ) -> List[ClientPackageAssignment]:
        """A client's assignments, soonest end_date first."""
        query = sql.SQL("""
            SELECT * FROM {}
            WHERE client_id = %s
              AND (%s = false OR is_active = true)
            ORDER BY end_date, assignment_id
        """).format(TABLE_CLIENT_PACKAGES)

        async with use_connection(self.pool) as conn:
            async with conn.cursor(row_factory=dict_row) as cur:
                await cur.execute(query, (client_id, active_only))
                rows = await cur.fetchall()

        return [self._row_to_assignment(row) for row in rows]

    # =========================================================================
    # DEBIT PRIMITIVES (same transaction)
    # =========================================================================

    async def find_usage(
        self,
        job_id: str,
        service_type: ServiceType,
        conn: Optional[AsyncConnection] = None,
    ) -> Optional[UsageRecord]:
        """The usage record a job already wrote for a service type, if any."""
        async with use_connection(self.pool, conn) as c:
            async with c.cursor(row_factory=dict_row) as cur:
                await cur.execute(
                    sql.SQL("""
                        SELECT * FROM {}
                        WHERE job_id = %s AND service_type = %s::{}
                    """).format(TABLE_PACKAGE_USAGE, SERVICE_TYPE),
                    (job_id, service_type.value),
                )
                row = await cur.fetchone()

        return self._row_to_usage(row) if row else None

    async def lock_eligible_assignments(
        self,
        client_id: str,
        service_type: ServiceType,
        today: date,
        conn: AsyncConnection,
    ) -> List[Dict[str, Any]]:
        """
        Lock and return the client's assignments that can pay for a service.

        Eligible means active, today within [start_date, end_date], and the
        template grants the service type. Rows carry assignment_id,
        end_date, granted and consumed.
        """
        async with conn.cursor(row_factory=dict_row) as cur:
            await cur.execute(
                sql.SQL("""
                    SELECT cp.assignment_id,
                           cp.end_date,
                           ps.quantity_included AS granted,
                           COALESCE((
                               SELECT SUM(u.quantity)
                               FROM {usage} u
                               WHERE u.assignment_id = cp.assignment_id
                                 AND u.service_type = ps.service_type
                           ), 0) AS consumed
                    FROM {assignments} cp
                    JOIN {grants} ps
                      ON ps.package_id = cp.package_id
                     AND ps.service_type = %(service_type)s::{service_type}
                    WHERE cp.client_id = %(client_id)s
                      AND cp.is_active = true
                      AND %(today)s BETWEEN cp.start_date AND cp.end_date
                    ORDER BY cp.end_date, cp.assignment_id
                    FOR UPDATE OF cp
                """).format(
                    usage=TABLE_PACKAGE_USAGE,
                    assignments=TABLE_CLIENT_PACKAGES,
                    grants=TABLE_PACKAGE_SERVICES,
                    service_type=SERVICE_TYPE,
                ),
                {
                    "client_id": client_id,
                    "service_type": service_type.value,
                    "today": today,
                },
            )
            rows = await cur.fetchall()

        return [
            {
                "assignment_id": row["assignment_id"],
                "end_date": row["end_date"],
                "granted": int(row["granted"]),
                "consumed": int(row["consumed"]),
            }
            for row in rows
        ]

    async def insert_usage_within_grant(
        self,
        assignment_id: str,
        service_type: ServiceType,
        quantity: int,
        job_id: str,
        conn: AsyncConnection,
    ) -> Optional[UsageRecord]:
        """
        Write a usage record only if the grant still covers it.

        Returns None when the re-checked sum would overspend the grant, or
        when the job already holds a record for this service type.
        """
        async with conn.cursor(row_factory=dict_row) as cur:
            await cur.execute(
                sql.SQL("""
                    INSERT INTO {usage} (assignment_id, service_type, quantity, job_id, created_at)
                    SELECT %(assignment_id)s, %(service_type)s::{service_type},
                           %(quantity)s, %(job_id)s, NOW()
                    WHERE (
                        SELECT COALESCE(SUM(u.quantity), 0)
                        FROM {usage} u
                        WHERE u.assignment_id = %(assignment_id)s
                          AND u.service_type = %(service_type)s::{service_type}
                    ) + %(quantity)s <= (
                        SELECT ps.quantity_included
                        FROM {assignments} cp
                        JOIN {grants} ps ON ps.package_id = cp.package_id
                        WHERE cp.assignment_id = %(assignment_id)s
                          AND ps.service_type = %(service_type)s::{service_type}
                    )
                    ON CONFLICT (job_id, service_type) DO NOTHING
                    RETURNING *
                """).format(
                    usage=TABLE_PACKAGE_USAGE,
                    assignments=TABLE_CLIENT_PACKAGES,
                    grants=TABLE_PACKAGE_SERVICES,
                    service_type=SERVICE_TYPE,
                ),
                {
                    "assignment_id": assignment_id,
                    "service_type": service_type.value,
                    "quantity": quantity,
                    "job_id": job_id,
                },
            )
            row = await cur.fetchone()

        if row is None:
            return None

        record = self._row_to_usage(row)
        logger.info(
            f"Debited {quantity} {service_type.value} from assignment "
            f"{assignment_id} for job {job_id}"
        )
        return record

    # =========================================================================
    # SUMMARIES
    # =========================================================================

    async def usage_by_service(self, assignment_id: str) -> Dict[ServiceType, ServiceUsage]:
        """Granted and consumed units per service type for one assignment."""
        async with use_connection(self.pool) as conn:
            async with conn.cursor(row_factory=dict_row) as cur:
                await cur.execute(
                    sql.SQL("""
                        SELECT ps.service_type,
                               ps.quantity_included AS granted,
                               COALESCE(SUM(u.quantity), 0) AS consumed
                        FROM {assignments} cp
                        JOIN {grants} ps ON ps.package_id = cp.package_id
                        LEFT JOIN {usage} u
                          ON u.assignment_id = cp.assignment_id
                         AND u.service_type = ps.service_type
                        WHERE cp.assignment_id = %s
                        GROUP BY ps.service_type, ps.quantity_included
                        ORDER BY ps.service_type
                    """).format(
                        assignments=TABLE_CLIENT_PACKAGES,
                        grants=TABLE_PACKAGE_SERVICES,
                        usage=TABLE_PACKAGE_USAGE,
                    ),
                    (assignment_id,),
                )
                rows = await cur.fetchall()

        return {
            ServiceType(row["service_type"]): ServiceUsage(
                granted=int(row["granted"]),
                consumed=int(row["consumed"]),
            )
            for row in rows
        }

    # =========================================================================
    # ROW CONVERSION
    # =========================================================================

    def _row_to_assignment(self, row: Dict[str, Any]) -> ClientPackageAssignment:
        return ClientPackageAssignment(
            assignment_id=row["assignment_id"],
            client_id=row["client_id"],
            package_id=row["package_id"],
            start_date=row["start_date"],
            end_date=row["end_date"],
            is_active=row["is_active"],
            created_at=row["created_at"],
        )

    def _row_to_usage(self, row: Dict[str, Any]) -> UsageRecord:
        return UsageRecord(
            usage_id=row["usage_id"],
            assignment_id=row["assignment_id"],
            service_type=row["service_type"],
            quantity=row["quantity"],
            job_id=row["job_id"],
            created_at=row["created_at"],
        )
