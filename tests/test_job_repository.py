# ============================================================================
# JOB REPOSITORY TESTS
# ============================================================================
# EPOCH: 1 - WORKFLOW ORCHESTRATION
# STATUS: Tests - Optimistic locking on job writes
# PURPOSE: Verify version-checked updates tell conflicts from deleted rows
# CREATED: 19 OCT 2026
# ============================================================================
"""
Job Repository Tests

No database; the caller's connection is a mock, which use_connection
passes straight through.

Run with:
    pytest tests/test_job_repository.py -v
"""

import asyncio
import pytest
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

from core.contracts import JobStatus, WorkflowStage
from core.errors import ConflictError, NotFoundError
from core.models import Job
from repositories import JobRepository


def _make_job(**overrides) -> Job:
    fields = dict(
        job_id="job-1",
        client_id="client-1",
        title="Brand shoot",
        created_by="coord-1",
        assigned_to="photo-1",
        status=JobStatus.IN_PROGRESS,
        workflow_stage=WorkflowStage.CAPTURE,
        workflow_order=1,
        chain_id="chain-1",
        version=3,
    )
    fields.update(overrides)
    return Job(**fields)


def _cursor(row):
    return SimpleNamespace(rowcount=1 if row else 0, fetchone=AsyncMock(return_value=row))


def _conn(*results):
    conn = MagicMock()
    conn.execute = AsyncMock(side_effect=list(results))
    return conn


class TestUpdate:
    def test_matching_version_bumps(self):
        conn = _conn(SimpleNamespace(rowcount=1))
        repo = JobRepository(MagicMock())

        updated = asyncio.run(repo.update(_make_job(), conn=conn))

        assert updated.version == 4
        assert conn.execute.await_count == 1
        params = conn.execute.await_args.args[1]
        assert params["version"] == 3

    def test_stale_version_is_conflict(self):
        conn = _conn(SimpleNamespace(rowcount=0), _cursor((1,)))
        repo = JobRepository(MagicMock())

        with pytest.raises(ConflictError):
            asyncio.run(repo.update(_make_job(), conn=conn))

    def test_deleted_row_is_not_found(self):
        conn = _conn(SimpleNamespace(rowcount=0), _cursor(None))
        repo = JobRepository(MagicMock())

        with pytest.raises(NotFoundError):
            asyncio.run(repo.update(_make_job(), conn=conn))
