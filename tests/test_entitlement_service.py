# ============================================================================
# ENTITLEMENT LEDGER TESTS
# ============================================================================
# EPOCH: 1 - WORKFLOW ORCHESTRATION
# STATUS: Tests - Package debit rules
# PURPOSE: Verify debit outcomes, assignment choice, idempotency and races
# CREATED: 19 OCT 2026
# ============================================================================
"""
Entitlement Ledger Tests

Uses an in-memory PackageRepository fake. The patched transaction()
takes a lock for the whole debit, standing in for the row locks taken
by lock_eligible_assignments (SELECT ... FOR UPDATE).

Covers:
1. OK debit writes one usage record
2. NO_ACTIVE_ASSIGNMENT / INSUFFICIENT_ENTITLEMENT outcomes
3. Earliest-expiring assignment with enough units is chosen
4. Expired and inactive assignments are ignored
5. Same (job, service_type) debited twice -> one record
6. Two concurrent debits for the last unit -> exactly one succeeds
7. Usage summaries

Run with:
    pytest tests/test_entitlement_service.py -v
"""

import asyncio
import pytest
from contextlib import asynccontextmanager
from datetime import date
from typing import Dict, List, Optional
from unittest.mock import MagicMock, patch

from core.contracts import ServiceType
from core.errors import NotFoundError, ValidationError
from core.models import ClientPackageAssignment, DebitOutcome, ServiceUsage, UsageRecord
from services.entitlement_service import EntitlementLedger


TODAY = date(2026, 10, 19)


# ============================================================================
# FAKES
# ============================================================================

class FakePackageRepository:
    """In-memory stand-in for PackageRepository."""

    def __init__(self):
        self.assignments: Dict[str, ClientPackageAssignment] = {}
        self.grants: Dict[str, Dict[ServiceType, int]] = {}
        self.usage: List[UsageRecord] = []
        self._next_id = 1

    def add_assignment(self, assignment_id, client_id="client-1", grants=None,
                       start=date(2026, 1, 1), end=date(2026, 12, 31), is_active=True):
        self.assignments[assignment_id] = ClientPackageAssignment(
            assignment_id=assignment_id,
            client_id=client_id,
            package_id=f"pkg-{assignment_id}",
            start_date=start,
            end_date=end,
            is_active=is_active,
        )
        self.grants[assignment_id] = dict(grants or {})

    def consumed(self, assignment_id, service_type) -> int:
        return sum(
            u.quantity for u in self.usage
            if u.assignment_id == assignment_id and u.service_type == service_type
        )

    async def get_assignment(self, assignment_id):
        return self.assignments.get(assignment_id)

    async def assignments_for_client(self, client_id, active_only=True):
        return [
            a for a in self.assignments.values()
            if a.client_id == client_id and (a.is_active or not active_only)
        ]

    async def find_usage(self, job_id, service_type, conn=None):
        for record in self.usage:
            if record.job_id == job_id and record.service_type == service_type:
                return record
        return None

    async def lock_eligible_assignments(self, client_id, service_type, today, conn):
        await asyncio.sleep(0)
        rows = [
            {
                "assignment_id": a.assignment_id,
                "end_date": a.end_date,
                "granted": self.grants[a.assignment_id].get(service_type, 0),
                "consumed": self.consumed(a.assignment_id, service_type),
            }
            for a in self.assignments.values()
            if a.client_id == client_id
            and a.covers(today)
            and self.grants[a.assignment_id].get(service_type, 0) > 0
        ]
        return sorted(rows, key=lambda r: (r["end_date"], r["assignment_id"]))

    async def insert_usage_within_grant(self, assignment_id, service_type, quantity, job_id, conn):
        await asyncio.sleep(0)
        if await self.find_usage(job_id, service_type) is not None:
            return None
        granted = self.grants[assignment_id].get(service_type, 0)
        if self.consumed(assignment_id, service_type) + quantity > granted:
            return None
        record = UsageRecord(
            usage_id=self._next_id,
            assignment_id=assignment_id,
            service_type=service_type,
            quantity=quantity,
            job_id=job_id,
        )
        self._next_id += 1
        self.usage.append(record)
        return record

    async def usage_by_service(self, assignment_id):
        return {
            service_type: ServiceUsage(
                granted=granted,
                consumed=self.consumed(assignment_id, service_type),
            )
            for service_type, granted in self.grants[assignment_id].items()
        }


def _serialized_transaction():
    lock = asyncio.Lock()

    @asynccontextmanager
    async def fake_transaction(pool):
        async with lock:
            yield MagicMock(name="conn")

    return fake_transaction


@pytest.fixture
def repo():
    return FakePackageRepository()


@pytest.fixture
def ledger(repo):
    return EntitlementLedger(pool=MagicMock(), repo=repo)


def _debit(ledger, job_id="job-1", service_type=ServiceType.CAPTURE, quantity=1, client_id="client-1"):
    async def _run():
        with patch("services.entitlement_service.transaction", _serialized_transaction()):
            return await ledger.debit(client_id, service_type, quantity, job_id, today=TODAY)
    return asyncio.run(_run())


# ============================================================================
# OUTCOMES
# ============================================================================


class TestDebitOutcomes:
    def test_ok_records_usage(self, repo, ledger):
        repo.add_assignment("a-1", grants={ServiceType.CAPTURE: 2})

        result = _debit(ledger)

        assert result.ok
        assert result.outcome == DebitOutcome.OK
        assert result.already_debited is False
        assert result.record.assignment_id == "a-1"
        assert repo.consumed("a-1", ServiceType.CAPTURE) == 1

    def test_no_active_assignment(self, repo, ledger):
        result = _debit(ledger)
        assert result.outcome == DebitOutcome.NO_ACTIVE_ASSIGNMENT
        assert repo.usage == []

    def test_assignment_without_that_service(self, repo, ledger):
        repo.add_assignment("a-1", grants={ServiceType.FINISHING: 3})
        result = _debit(ledger, service_type=ServiceType.CAPTURE)
        assert result.outcome == DebitOutcome.NO_ACTIVE_ASSIGNMENT

    def test_insufficient_entitlement(self, repo, ledger):
        repo.add_assignment("a-1", grants={ServiceType.CAPTURE: 1})
        assert _debit(ledger, job_id="job-1").ok

        result = _debit(ledger, job_id="job-2")

        assert result.outcome == DebitOutcome.INSUFFICIENT_ENTITLEMENT
        assert result.record is None
        assert len(repo.usage) == 1

    def test_two_unit_package_scenario(self, repo, ledger):
        repo.add_assignment("a-1", grants={ServiceType.POST_PRODUCTION: 2})

        outcomes = [
            _debit(ledger, job_id=f"job-{n}", service_type=ServiceType.POST_PRODUCTION).outcome
            for n in range(1, 4)
        ]

        assert outcomes == [
            DebitOutcome.OK,
            DebitOutcome.OK,
            DebitOutcome.INSUFFICIENT_ENTITLEMENT,
        ]
        assert repo.consumed("a-1", ServiceType.POST_PRODUCTION) == 2

    def test_quantity_must_be_positive(self, repo, ledger):
        repo.add_assignment("a-1", grants={ServiceType.CAPTURE: 2})
        with pytest.raises(ValidationError):
            _debit(ledger, quantity=0)


# ============================================================================
# ASSIGNMENT CHOICE
# ============================================================================


class TestAssignmentChoice:
    def test_earliest_expiring_first(self, repo, ledger):
        repo.add_assignment("late", grants={ServiceType.CAPTURE: 5}, end=date(2026, 12, 31))
        repo.add_assignment("soon", grants={ServiceType.CAPTURE: 5}, end=date(2026, 11, 30))

        assert _debit(ledger).record.assignment_id == "soon"

    def test_falls_through_to_next_with_room(self, repo, ledger):
        repo.add_assignment("soon", grants={ServiceType.CAPTURE: 1}, end=date(2026, 11, 30))
        repo.add_assignment("late", grants={ServiceType.CAPTURE: 5}, end=date(2026, 12, 31))

        assert _debit(ledger, job_id="job-1").record.assignment_id == "soon"
        assert _debit(ledger, job_id="job-2").record.assignment_id == "late"

    def test_never_splits_across_assignments(self, repo, ledger):
        repo.add_assignment("a-1", grants={ServiceType.CAPTURE: 1}, end=date(2026, 11, 30))
        repo.add_assignment("a-2", grants={ServiceType.CAPTURE: 1}, end=date(2026, 12, 31))

        result = _debit(ledger, quantity=2)

        assert result.outcome == DebitOutcome.INSUFFICIENT_ENTITLEMENT
        assert repo.usage == []

    def test_expired_assignment_ignored(self, repo, ledger):
        repo.add_assignment(
            "old", grants={ServiceType.CAPTURE: 5},
            start=date(2025, 1, 1), end=date(2025, 12, 31),
        )
        assert _debit(ledger).outcome == DebitOutcome.NO_ACTIVE_ASSIGNMENT

    def test_inactive_assignment_ignored(self, repo, ledger):
        repo.add_assignment("off", grants={ServiceType.CAPTURE: 5}, is_active=False)
        assert _debit(ledger).outcome == DebitOutcome.NO_ACTIVE_ASSIGNMENT

    def test_other_clients_assignment_ignored(self, repo, ledger):
        repo.add_assignment("a-1", client_id="client-2", grants={ServiceType.CAPTURE: 5})
        assert _debit(ledger).outcome == DebitOutcome.NO_ACTIVE_ASSIGNMENT


# ============================================================================
# IDEMPOTENCY AND CONCURRENCY
# ============================================================================


class TestIdempotencyAndRaces:
    def test_same_job_and_service_debited_once(self, repo, ledger):
        repo.add_assignment("a-1", grants={ServiceType.CAPTURE: 3})

        first = _debit(ledger)
        second = _debit(ledger)

        assert first.ok and second.ok
        assert second.already_debited is True
        assert second.record.usage_id == first.record.usage_id
        assert repo.consumed("a-1", ServiceType.CAPTURE) == 1

    def test_same_job_other_service_is_separate(self, repo, ledger):
        repo.add_assignment("a-1", grants={ServiceType.CAPTURE: 1, ServiceType.FINISHING: 1})

        assert _debit(ledger, service_type=ServiceType.CAPTURE).ok
        assert _debit(ledger, service_type=ServiceType.FINISHING).ok
        assert len(repo.usage) == 2

    def test_concurrent_debits_for_last_unit(self, repo, ledger):
        """Two debits race for one remaining unit: exactly one wins."""
        repo.add_assignment("a-1", grants={ServiceType.CAPTURE: 1})

        async def _run():
            with patch("services.entitlement_service.transaction", _serialized_transaction()):
                return await asyncio.gather(
                    ledger.debit("client-1", ServiceType.CAPTURE, 1, "job-a", today=TODAY),
                    ledger.debit("client-1", ServiceType.CAPTURE, 1, "job-b", today=TODAY),
                )

        results = asyncio.run(_run())

        outcomes = sorted(r.outcome.value for r in results)
        assert outcomes == ["insufficient_entitlement", "ok"]
        assert repo.consumed("a-1", ServiceType.CAPTURE) == 1

    def test_conditional_insert_guards_without_lock(self, repo, ledger):
        """Even with no serialization, the insert never exceeds the grant."""
        repo.add_assignment("a-1", grants={ServiceType.CAPTURE: 1})

        @asynccontextmanager
        async def unlocked(pool):
            yield MagicMock(name="conn")

        async def _run():
            with patch("services.entitlement_service.transaction", unlocked):
                return await asyncio.gather(*[
                    ledger.debit("client-1", ServiceType.CAPTURE, 1, f"job-{n}", today=TODAY)
                    for n in range(5)
                ])

        results = asyncio.run(_run())

        assert sum(1 for r in results if r.ok) == 1
        assert repo.consumed("a-1", ServiceType.CAPTURE) == 1

    def test_caller_connection_is_used_without_new_transaction(self, repo, ledger):
        repo.add_assignment("a-1", grants={ServiceType.CAPTURE: 1})

        def _fail(pool):
            raise AssertionError("transaction() must not be opened when conn is given")

        async def _run():
            with patch("services.entitlement_service.transaction", _fail):
                return await ledger.debit(
                    "client-1", ServiceType.CAPTURE, 1, "job-1",
                    conn=MagicMock(name="conn"), today=TODAY,
                )

        assert asyncio.run(_run()).ok


# ============================================================================
# SUMMARIES
# ============================================================================


class TestUsageSummary:
    def test_summary(self, repo, ledger):
        repo.add_assignment("a-1", grants={ServiceType.CAPTURE: 3, ServiceType.FINISHING: 1})
        _debit(ledger)

        summary = asyncio.run(ledger.usage_summary("a-1"))

        assert summary[ServiceType.CAPTURE].remaining == 2
        assert summary[ServiceType.FINISHING].consumed == 0

    def test_unknown_assignment(self, ledger):
        with pytest.raises(NotFoundError):
            asyncio.run(ledger.usage_summary("missing"))

    def test_client_usage_lists_active_assignments(self, repo, ledger):
        repo.add_assignment("a-1", grants={ServiceType.CAPTURE: 1})
        repo.add_assignment("a-2", grants={ServiceType.CAPTURE: 1}, is_active=False)

        usage = asyncio.run(ledger.client_usage("client-1"))

        assert list(usage) == ["a-1"]
