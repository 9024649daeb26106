# ============================================================================
# CLAUDE CONTEXT - JOB ACTIVITY EVENT MODEL
# ============================================================================
# EPOCH: 1 - WORKFLOW ORCHESTRATION
# STATUS: Core model - Job activity timeline
# PURPOSE: Record every accepted or rejected operation on a job for auditing
# LAST_REVIEWED: 19 OCT 2026
# EXPORTS: JobEvent, EventType, EventStatus
# DEPENDENCIES: pydantic, enum
# ============================================================================
"""
Job Activity Event Model

JobEvent records workflow milestones for auditing and debugging
("who moved this job to finishing, and was the package debited?").

The table has no foreign key to jobs, so the timeline survives
an administrative hard delete.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, ClassVar
from pydantic import BaseModel, Field


class EventType(str, Enum):
    """Types of events recorded on a job timeline."""

    # Job lifecycle
    JOB_CREATED = "job_created"
    JOB_ADVANCED = "job_advanced"
    JOB_COMPLETED = "job_completed"
    JOB_STATUS_SET = "job_status_set"
    JOB_DELETED = "job_deleted"
    JOB_COMMENTED = "job_commented"

    # Chain
    CHAIN_CREATED = "chain_created"

    # Side effects
    PACKAGE_DEBITED = "package_debited"
    PACKAGE_DEBIT_REJECTED = "package_debit_rejected"
    ASSIGNMENT_UNAVAILABLE = "assignment_unavailable"

    # Rejections
    TRANSITION_REJECTED = "transition_rejected"
    TRANSITION_CONFLICT = "transition_conflict"


class EventStatus(str, Enum):
    """Status/severity of an event."""
    SUCCESS = "success"
    FAILURE = "failure"
    WARNING = "warning"
    INFO = "info"


class JobEvent(BaseModel):
    """
    A single event in a job's activity timeline.

    Maps to: studio.job_events table
    """

    # =========================================================================
    # SQL DDL METADATA (Used by PydanticToSQL generator)
    # =========================================================================
    __sql_table__: ClassVar[str] = "job_events"
    __sql_schema__: ClassVar[str] = "studio"
    __sql_primary_key__: ClassVar[List[str]] = ["event_id"]
    __sql_serial_columns__: ClassVar[List[str]] = ["event_id"]
    __sql_foreign_keys__: ClassVar[Dict[str, str]] = {}
    __sql_indexes__: ClassVar[List[tuple]] = [
        ("idx_job_events_job_created", ["job_id", "created_at"]),
        ("idx_job_events_actor", ["actor_id"], "actor_id IS NOT NULL"),
        ("idx_job_events_type", ["event_type"]),
    ]

    # Identity
    event_id: Optional[int] = Field(
        default=None,
        description="Auto-increment primary key (SERIAL)"
    )
    job_id: str = Field(..., max_length=64)
    actor_id: Optional[str] = Field(
        default=None,
        max_length=64,
        description="Who triggered the event"
    )

    # Event details
    event_type: EventType
    event_status: EventStatus = Field(default=EventStatus.INFO)

    # Flexible data payload
    event_data: Dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data (JSONB)"
    )

    error_message: Optional[str] = Field(
        default=None,
        max_length=2000
    )

    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def job_event(
        cls,
        job_id: str,
        event_type: EventType,
        status: EventStatus = EventStatus.INFO,
        actor_id: Optional[str] = None,
        event_data: Optional[Dict[str, Any]] = None,
        error_message: Optional[str] = None,
    ) -> "JobEvent":
        """Create a job-level event."""
        return cls(
            job_id=job_id,
            actor_id=actor_id,
            event_type=event_type,
            event_status=status,
            event_data=event_data or {},
            error_message=error_message,
        )


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = ["JobEvent", "EventType", "EventStatus"]
