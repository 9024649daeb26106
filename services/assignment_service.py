# ============================================================================
# ASSIGNMENT SERVICE
# ============================================================================
# EPOCH: 1 - WORKFLOW ORCHESTRATION
# STATUS: Service - Stage hand-off target resolution
# PURPOSE: Pick the worker a stage is handed to
# CREATED: 19 OCT 2026
# ============================================================================
"""
Assignment Resolver

resolve(role) returns the first active worker holding the role, ordered
by name then worker_id, or None. It never retries and never writes;
the caller decides the fallback (the orchestrator leaves the job
unassigned and reports a warning).
"""

import logging
from typing import List, Optional

from psycopg_pool import AsyncConnectionPool

from core.contracts import UserRole, WorkflowStage
from core.config import get_defaults
from core.models import Worker
from repositories import WorkerRepository

logger = logging.getLogger(__name__)


class AssignmentResolver:
    """Resolves stage assignees from the active worker roster."""

    def __init__(self, pool: AsyncConnectionPool, repo: Optional[WorkerRepository] = None):
        self.pool = pool
        self._repo = repo or WorkerRepository(pool)

    async def list_candidates(self, required_role: UserRole) -> List[Worker]:
        """All active workers of a role in resolution order."""
        return await self._repo.list_active_by_role(required_role)

    async def resolve(self, required_role: UserRole) -> Optional[str]:
        """
        First eligible worker id for a role.

        Returns:
            worker_id, or None when nobody active holds the role
        """
        candidates = await self.list_candidates(required_role)
        if not candidates:
            logger.warning(f"No active worker with role {required_role.value}")
            return None

        worker_id = candidates[0].worker_id
        logger.debug(f"Resolved {required_role.value} -> {worker_id}")
        return worker_id

    async def resolve_for_stage(self, stage: WorkflowStage) -> Optional[str]:
        """Resolve the worker for a stage via the stage -> role table."""
        return await self.resolve(get_defaults().workflow.role_for(stage))
