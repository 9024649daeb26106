# ============================================================================
# JOB SERVICE
# ============================================================================
# EPOCH: 1 - WORKFLOW ORCHESTRATION
# STATUS: Core - Job construction and lookup
# PURPOSE: Build validated jobs and chains, load jobs and predecessors
# CREATED: 19 OCT 2026
# ============================================================================
"""
Job Service

Manages job construction:
- Validate a single job request
- Validate a chain request (1-3 steps, one per stage, in stage order)
  and link the steps through depends_on
- Load jobs, chains and predecessors for the orchestrator

Persistence of new jobs (and the package debits that go with them)
happens in the orchestrator's transaction, not here.
"""

import logging
import uuid
from typing import List, Optional, Sequence

from psycopg_pool import AsyncConnectionPool

from core.config import get_defaults
from core.contracts import Actor, JobStatus, WorkflowStage
from core.errors import NotFoundError, ValidationError
from core.models import Job, JobSpec
from repositories import JobRepository

logger = logging.getLogger(__name__)


def new_id() -> str:
    return uuid.uuid4().hex


class JobService:
    """Service for job construction and lookup."""

    def __init__(
        self,
        pool: AsyncConnectionPool,
        job_repo: Optional[JobRepository] = None,
    ):
        """
        Initialize job service.

        Args:
            pool: Database connection pool
            job_repo: Optional repository override
        """
        self.pool = pool
        self.job_repo = job_repo or JobRepository(pool)

    # =========================================================================
    # CONSTRUCTION
    # =========================================================================

    def build_job(self, spec: JobSpec, actor: Actor) -> Job:
        """
        Build a single (unchained) job from a request.

        Raises:
            ValidationError: Missing client or inconsistent cost fields
        """
        if not spec.client_id:
            raise ValidationError("client_id is required", field="client_id")
        self._check_costs(spec)

        return Job(
            job_id=new_id(),
            client_id=spec.client_id,
            title=spec.title,
            job_type=spec.job_type,
            description=spec.description,
            status=JobStatus.PENDING,
            assigned_to=spec.assigned_to,
            created_by=actor.actor_id,
            price=spec.price,
            extra_cost=spec.extra_cost,
            extra_cost_reason=spec.extra_cost_reason,
            counts_against_package=spec.counts_against_package,
            due_date=spec.due_date,
        )

    def build_chain(
        self,
        specs: Sequence[JobSpec],
        client_id: str,
        actor: Actor,
    ) -> List[Job]:
        """
        Build a linked workflow chain.

        Steps must name distinct stages in increasing stage order. Step n
        depends on step n-1 and gets workflow_order n.

        Raises:
            ValidationError: Empty/oversized chain, missing or repeated
                stage, out-of-order stages, or a step for another client
        """
        max_length = get_defaults().workflow.max_chain_length
        if not specs:
            raise ValidationError("A workflow chain needs at least one job", field="jobs")
        if len(specs) > max_length:
            raise ValidationError(
                f"A workflow chain has at most {max_length} jobs, got {len(specs)}",
                field="jobs",
                value=len(specs),
            )
        if not client_id:
            raise ValidationError("client_id is required", field="client_id")

        stages: List[WorkflowStage] = []
        for index, spec in enumerate(specs):
            stage = spec.stage()
            if stage is None:
                raise ValidationError(
                    f"Chain step {index + 1} ({spec.job_type.value}) has no production stage",
                    field="workflow_stage",
                    value=spec.job_type.value,
                )
            if stages and stage.order <= stages[-1].order:
                raise ValidationError(
                    f"Chain stages must be distinct and in order; "
                    f"{stage.value} cannot follow {stages[-1].value}",
                    field="workflow_stage",
                    value=stage.value,
                )
            if spec.client_id and spec.client_id != client_id:
                raise ValidationError(
                    f"Chain step {index + 1} belongs to client {spec.client_id}, "
                    f"not {client_id}",
                    field="client_id",
                    value=spec.client_id,
                )
            self._check_costs(spec)
            stages.append(stage)

        chain_id = new_id()
        jobs: List[Job] = []
        for order, (spec, stage) in enumerate(zip(specs, stages), start=1):
            jobs.append(Job(
                job_id=new_id(),
                client_id=client_id,
                title=spec.title,
                job_type=spec.job_type,
                description=spec.description,
                status=JobStatus.PENDING,
                workflow_stage=stage,
                workflow_order=order,
                chain_id=chain_id,
                depends_on=jobs[-1].job_id if jobs else None,
                assigned_to=spec.assigned_to,
                created_by=actor.actor_id,
                price=spec.price,
                extra_cost=spec.extra_cost,
                extra_cost_reason=spec.extra_cost_reason,
                counts_against_package=spec.counts_against_package,
                due_date=spec.due_date,
            ))

        logger.debug(
            f"Built chain {chain_id}: " + " -> ".join(s.value for s in stages)
        )
        return jobs

    @staticmethod
    def _check_costs(spec: JobSpec) -> None:
        if spec.extra_cost and not spec.extra_cost_reason:
            raise ValidationError(
                "extra_cost_reason is required when extra_cost is set",
                field="extra_cost_reason",
            )

    # =========================================================================
    # LOOKUP
    # =========================================================================

    async def get_job(self, job_id: str) -> Job:
        """
        Raises:
            NotFoundError: Unknown job
        """
        job = await self.job_repo.get(job_id)
        if job is None:
            raise NotFoundError("Job", job_id)
        return job

    async def get_chain(self, chain_id: str) -> List[Job]:
        jobs = await self.job_repo.get_chain(chain_id)
        if not jobs:
            raise NotFoundError("Workflow chain", chain_id)
        return jobs

    async def get_predecessor(self, job: Job) -> Optional[Job]:
        """The job this one depends on, or None (also when it was deleted)."""
        if job.depends_on is None:
            return None
        return await self.job_repo.get(job.depends_on)
