# ============================================================================
# CLAUDE CONTEXT - JOB MODEL
# ============================================================================
# EPOCH: 1 - WORKFLOW ORCHESTRATION
# STATUS: Core model - Job instance (one unit of production work)
# PURPOSE: Track one job, its chain position and its transition history
# LAST_REVIEWED: 19 OCT 2026
# EXPORTS: Job, JobSpec, WorkflowHistoryEntry
# DEPENDENCIES: pydantic
# ============================================================================
"""
Job Model

A Job is one unit of billable production work.

Two independent axes:
- status: the job's own progress (pending ... delivered)
- workflow_stage: position in a chain (capture/post_production/finishing),
  None for single-shot jobs

Chained jobs share a chain_id and point at their predecessor through
depends_on. History is an immutable tuple; each transition builds a new
Job with one more entry instead of appending in place, so the commit is a
single row replace guarded by the version column.
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple, ClassVar
from pydantic import BaseModel, Field, computed_field

from core.contracts import JobData, JobStatus, JobType, WorkflowStage


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class WorkflowHistoryEntry(BaseModel):
    """
    One recorded transition of a job.

    Stage fields are None when the transition only touched lifecycle
    status (complete / status override). new_stage holds the advance
    target value, so a handover is recorded as "handover".
    """
    previous_stage: Optional[WorkflowStage] = None
    new_stage: Optional[str] = Field(default=None, max_length=32)
    previous_status: JobStatus
    new_status: JobStatus
    transitioned_at: datetime = Field(default_factory=_utcnow)
    transitioned_by: str = Field(..., max_length=64)
    notes: Optional[str] = Field(default=None, max_length=2000)

    model_config = {"frozen": True}


class Job(JobData):
    """
    A production job.

    Maps to: studio.jobs table

    Lifecycle:
        1. Created PENDING (single job, or one of 1-3 chain-linked jobs)
        2. Mutated only through the workflow state machine
        3. Never soft-deleted by the core; delete is an admin hard removal
    """

    # =========================================================================
    # SQL DDL METADATA (Used by PydanticToSQL generator)
    # =========================================================================
    __sql_table__: ClassVar[str] = "jobs"
    __sql_schema__: ClassVar[str] = "studio"
    __sql_primary_key__: ClassVar[List[str]] = ["job_id"]
    __sql_foreign_keys__: ClassVar[Dict[str, str]] = {}
    __sql_indexes__: ClassVar[List[tuple]] = [
        ("idx_jobs_status", ["status"]),
        ("idx_jobs_client", ["client_id"]),
        ("idx_jobs_assignee", ["assigned_to"], "assigned_to IS NOT NULL"),
        ("idx_jobs_chain", ["chain_id", "workflow_order"], "chain_id IS NOT NULL"),
        ("idx_jobs_depends_on", ["depends_on"], "depends_on IS NOT NULL"),
    ]
    __sql_unique__: ClassVar[List[List[str]]] = [["chain_id", "workflow_order"]]

    title: str = Field(..., min_length=1, max_length=200)
    job_type: JobType = Field(default=JobType.OTHER)
    description: Optional[str] = Field(default=None, max_length=4000)

    # Lifecycle
    status: JobStatus = Field(default=JobStatus.PENDING)

    # Chain position
    workflow_stage: Optional[WorkflowStage] = Field(
        default=None,
        description="Stage within the chain, None for single-shot jobs"
    )
    workflow_order: Optional[int] = Field(
        default=None,
        ge=1,
        description="Rank within the chain, unique per chain"
    )
    chain_id: Optional[str] = Field(
        default=None,
        max_length=64,
        description="Shared id of the originating request for chained jobs"
    )
    depends_on: Optional[str] = Field(
        default=None,
        max_length=64,
        description="Predecessor job that must complete first"
    )

    # People
    assigned_to: Optional[str] = Field(default=None, max_length=64)
    created_by: str = Field(..., max_length=64)

    # Money
    price: Decimal = Field(default=Decimal("0"), ge=0)
    extra_cost: Optional[Decimal] = Field(default=None, ge=0)
    extra_cost_reason: Optional[str] = Field(default=None, max_length=500)
    counts_against_package: bool = Field(
        default=False,
        description="Debit the client's package when entering a stage"
    )

    due_date: Optional[datetime] = None

    # Append-only transition history (rebuilt per transition)
    history: Tuple[WorkflowHistoryEntry, ...] = Field(default_factory=tuple)

    # Timestamps
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    # Optimistic locking
    version: int = Field(
        default=1,
        ge=1,
        description="Version for optimistic locking - incremented on each update"
    )

    @computed_field
    @property
    def is_chained(self) -> bool:
        """Check if the job sits in a workflow chain."""
        return self.workflow_stage is not None

    @computed_field
    @property
    def is_terminal(self) -> bool:
        """Check if the job is completed or delivered."""
        return self.status.is_terminal()

    def with_transition(
        self,
        entry: WorkflowHistoryEntry,
        **changes: Any,
    ) -> "Job":
        """
        Return a new Job with the changes applied and one history entry added.

        The receiver is left untouched; version stays at the loaded value so
        the repository can use it as the update precondition.
        """
        return self.model_copy(
            update={
                **changes,
                "history": self.history + (entry,),
                "updated_at": entry.transitioned_at,
            },
            deep=True,
        )

    def snapshot(self) -> Dict[str, Any]:
        """Compact state used for notifications and event data."""
        return {
            "job_id": self.job_id,
            "status": self.status.value,
            "workflow_stage": self.workflow_stage.value if self.workflow_stage else None,
            "assigned_to": self.assigned_to,
        }


class JobSpec(BaseModel):
    """
    Caller-supplied description of a job to create.

    For chain steps, workflow_stage defaults to the stage implied by
    job_type; client_id comes from the chain request.
    """
    title: str = Field(..., min_length=1, max_length=200)
    job_type: JobType = Field(default=JobType.OTHER)
    description: Optional[str] = Field(default=None, max_length=4000)
    client_id: Optional[str] = Field(default=None, max_length=64)
    assigned_to: Optional[str] = Field(default=None, max_length=64)
    workflow_stage: Optional[WorkflowStage] = None
    price: Decimal = Field(default=Decimal("0"), ge=0)
    extra_cost: Optional[Decimal] = Field(default=None, ge=0)
    extra_cost_reason: Optional[str] = Field(default=None, max_length=500)
    counts_against_package: bool = False
    due_date: Optional[datetime] = None

    def stage(self) -> Optional[WorkflowStage]:
        """Explicit stage, else the one implied by the job type."""
        return self.workflow_stage or self.job_type.default_stage()


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = ["Job", "JobSpec", "WorkflowHistoryEntry"]
