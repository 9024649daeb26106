# ============================================================================
# CLAUDE CONTEXT - BASE CONTRACTS & ENUMS
# ============================================================================
# EPOCH: 1 - WORKFLOW ORCHESTRATION
# STATUS: Foundation - Core enums and base contracts
# PURPOSE: Closed enums for lifecycle, stage, roles and service types
# LAST_REVIEWED: 19 OCT 2026
# EXPORTS: JobStatus, WorkflowStage, AdvanceTarget, JobType, UserRole,
#          ServiceType, Actor, JobData
# DEPENDENCIES: enum, pydantic
# ============================================================================
"""
Base contracts for the studio workflow core.

Lifecycle status and workflow stage are independent axes:
- JobStatus describes the job's own progress
- WorkflowStage describes its position in a multi-job chain

Every value that used to be a free string is a closed enum here, and the
transition tables elsewhere are keyed exhaustively on these members.
"""

from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field


# ============================================================================
# LIFECYCLE / STAGE ENUMS
# ============================================================================

class JobStatus(str, Enum):
    """
    Job lifecycle states.

    State transitions (worker driven):
        PENDING -> IN_PROGRESS -> REVIEW -> COMPLETED -> DELIVERED
    Administrators may set any value via the status override.
    """
    PENDING = "pending"            # Created, work not started
    IN_PROGRESS = "in_progress"    # Assignee working on it
    REVIEW = "review"              # Waiting for internal review
    COMPLETED = "completed"        # Work finished
    DELIVERED = "delivered"        # Handed to the client

    def is_terminal(self) -> bool:
        """Check if the job is finished from the production side."""
        return self in (JobStatus.COMPLETED, JobStatus.DELIVERED)

    def is_completable(self) -> bool:
        """Check if a non-chained job may be completed from this state."""
        return self in (JobStatus.PENDING, JobStatus.IN_PROGRESS, JobStatus.REVIEW)


class WorkflowStage(str, Enum):
    """
    Position of a job within its workflow chain.

    State transitions:
        CAPTURE -> POST_PRODUCTION -> FINISHING
                -> FINISHING
    """
    CAPTURE = "capture"
    POST_PRODUCTION = "post_production"
    FINISHING = "finishing"

    @property
    def order(self) -> int:
        """Rank of the stage within a chain (1-based)."""
        return _STAGE_ORDER[self]


_STAGE_ORDER = {
    WorkflowStage.CAPTURE: 1,
    WorkflowStage.POST_PRODUCTION: 2,
    WorkflowStage.FINISHING: 3,
}


class AdvanceTarget(str, Enum):
    """
    Requested next step for a chained job.

    HANDOVER is terminal: the job completes and keeps its last stage.
    """
    POST_PRODUCTION = "post_production"
    FINISHING = "finishing"
    HANDOVER = "handover"

    def to_stage(self) -> Optional[WorkflowStage]:
        """Stage the job enters, or None for handover."""
        if self == AdvanceTarget.HANDOVER:
            return None
        return WorkflowStage(self.value)


class JobType(str, Enum):
    """Kind of production work a job represents."""
    CAPTURE = "capture"
    POST_PRODUCTION = "post_production"
    FINISHING = "finishing"
    CONSULTATION = "consultation"   # Single-shot, no production stage
    OTHER = "other"

    def default_stage(self) -> Optional[WorkflowStage]:
        """Stage implied by the type, None for single-shot types."""
        try:
            return WorkflowStage(self.value)
        except ValueError:
            return None


# ============================================================================
# PEOPLE / PACKAGES
# ============================================================================

class UserRole(str, Enum):
    """Exactly one role per person."""
    ADMIN = "admin"
    COORDINATOR = "coordinator"      # Front desk / scheduling
    PHOTOGRAPHER = "photographer"    # Capture specialist
    EDITOR = "editor"                # Post-production specialist
    DESIGNER = "designer"            # Finishing specialist
    CLIENT = "client"

    def is_administrative(self) -> bool:
        """Admins and coordinators may run administrative transitions."""
        return self in (UserRole.ADMIN, UserRole.COORDINATOR)


class ServiceType(str, Enum):
    """Unit types a package template can grant."""
    CAPTURE = "capture"
    POST_PRODUCTION = "post_production"
    FINISHING = "finishing"


# ============================================================================
# BASE DATA CONTRACTS
# ============================================================================

class Actor(BaseModel):
    """
    Identity of the caller, supplied by the session service on every request.

    Passed explicitly into every orchestrator call; the core never reads
    an ambient "current user".
    """
    actor_id: str = Field(..., max_length=64)
    role: UserRole

    model_config = {"frozen": True}


class JobData(BaseModel):
    """
    Essential job identity - the minimum fields that define a job.
    """
    job_id: str = Field(..., max_length=64, description="Opaque unique id")
    client_id: str = Field(..., max_length=64)

    model_config = {"frozen": False}


__all__ = [
    "JobStatus",
    "WorkflowStage",
    "AdvanceTarget",
    "JobType",
    "UserRole",
    "ServiceType",
    "Actor",
    "JobData",
]
