# ============================================================================
# ENTITLEMENT SERVICE
# ============================================================================
# EPOCH: 1 - WORKFLOW ORCHESTRATION
# STATUS: Service - Package entitlement ledger
# PURPOSE: Debit client packages without overspending, report usage
# CREATED: 19 OCT 2026
# ============================================================================
"""
Entitlement Ledger

debit(client_id, service_type, quantity, job_id) spends package units.

Algorithm (one transaction):
    1. Job already debited for this service type -> OK (idempotent)
    2. Lock eligible assignments, soonest end_date first
    3. None eligible -> NO_ACTIVE_ASSIGNMENT
    4. First assignment whose own remaining >= quantity gets the record,
       written with a conditional insert that re-checks the sum
    5. Otherwise -> INSUFFICIENT_ENTITLEMENT

Correctness under concurrency comes from the row locks and the
conditional insert, never from in-process state, so several server
processes can debit the same client safely.

Callers that need the debit to commit with other writes (the
orchestrator's job update) pass their transaction's connection.
"""

import logging
from datetime import date, datetime, timezone
from typing import Dict, Optional

from psycopg import AsyncConnection
from psycopg_pool import AsyncConnectionPool

from core.contracts import ServiceType
from core.errors import NotFoundError, ValidationError
from core.models import DebitOutcome, DebitResult, ServiceUsage
from repositories import PackageRepository, transaction

logger = logging.getLogger(__name__)


def _today() -> date:
    return datetime.now(timezone.utc).date()


class EntitlementLedger:
    """Atomic debits against client package assignments."""

    def __init__(
        self,
        pool: AsyncConnectionPool,
        repo: Optional[PackageRepository] = None,
    ):
        self.pool = pool
        self._repo = repo or PackageRepository(pool)

    async def debit(
        self,
        client_id: str,
        service_type: ServiceType,
        quantity: int,
        job_id: str,
        conn: Optional[AsyncConnection] = None,
        today: Optional[date] = None,
    ) -> DebitResult:
        """
        Spend units of a service type for a job.

        Args:
            client_id: Client whose packages pay
            service_type: Service type consumed
            quantity: Units (> 0)
            job_id: Originating job
            conn: Connection of an open transaction; one is opened if None
            today: Override for the eligibility date

        Returns:
            DebitResult with the outcome and, on OK, the usage record
        """
        if quantity <= 0:
            raise ValidationError("Debit quantity must be positive", field="quantity", value=quantity)

        if conn is None:
            async with transaction(self.pool) as tx:
                return await self._debit(client_id, service_type, quantity, job_id, tx, today)
        return await self._debit(client_id, service_type, quantity, job_id, conn, today)

    async def _debit(
        self,
        client_id: str,
        service_type: ServiceType,
        quantity: int,
        job_id: str,
        conn: AsyncConnection,
        today: Optional[date],
    ) -> DebitResult:
        existing = await self._repo.find_usage(job_id, service_type, conn=conn)
        if existing is not None:
            logger.info(f"Job {job_id} already debited for {service_type.value}")
            return DebitResult(outcome=DebitOutcome.OK, record=existing, already_debited=True)

        eligible = await self._repo.lock_eligible_assignments(
            client_id, service_type, today or _today(), conn
        )
        if not eligible:
            logger.info(
                f"No active assignment for client {client_id} grants {service_type.value}"
            )
            return DebitResult(outcome=DebitOutcome.NO_ACTIVE_ASSIGNMENT)

        for assignment in eligible:
            if assignment["granted"] - assignment["consumed"] < quantity:
                continue

            record = await self._repo.insert_usage_within_grant(
                assignment["assignment_id"], service_type, quantity, job_id, conn
            )
            if record is not None:
                return DebitResult(outcome=DebitOutcome.OK, record=record)

            # Lost an idempotency race for the same job
            existing = await self._repo.find_usage(job_id, service_type, conn=conn)
            if existing is not None:
                return DebitResult(outcome=DebitOutcome.OK, record=existing, already_debited=True)

        total_remaining = sum(max(a["granted"] - a["consumed"], 0) for a in eligible)
        logger.info(
            f"Insufficient {service_type.value} for client {client_id}: "
            f"need {quantity}, {total_remaining} left across {len(eligible)} assignment(s)"
        )
        return DebitResult(outcome=DebitOutcome.INSUFFICIENT_ENTITLEMENT)

    async def usage_summary(self, assignment_id: str) -> Dict[ServiceType, ServiceUsage]:
        """
        Granted / consumed / remaining units per service type.

        Raises:
            NotFoundError: Unknown assignment
        """
        assignment = await self._repo.get_assignment(assignment_id)
        if assignment is None:
            raise NotFoundError("Package assignment", assignment_id)
        return await self._repo.usage_by_service(assignment_id)

    async def client_usage(self, client_id: str) -> Dict[str, Dict[ServiceType, ServiceUsage]]:
        """Usage summaries for every active assignment of a client."""
        assignments = await self._repo.assignments_for_client(client_id, active_only=True)
        return {
            assignment.assignment_id: await self._repo.usage_by_service(assignment.assignment_id)
            for assignment in assignments
        }
