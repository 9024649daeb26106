# ============================================================================
# CLAUDE CONTEXT - NOTIFICATION MODELS
# ============================================================================
# EPOCH: 1 - WORKFLOW ORCHESTRATION
# STATUS: Core model - Recipient messages and transition events
# PURPOSE: One-way notifications and the event that triggers fan-out
# LAST_REVIEWED: 19 OCT 2026
# EXPORTS: Notification, NotificationKind, TransitionEvent, JobComment
# DEPENDENCIES: pydantic
# ============================================================================
"""
Notification Models

Notification      - one message to exactly one recipient, never mutated here
TransitionEvent   - before/after snapshot handed to the fan-out once per change
JobComment        - free-text remark on a job; also triggers fan-out
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional, ClassVar
from pydantic import BaseModel, Field

from core.contracts import Actor
from core.models.job import Job


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class NotificationKind(str, Enum):
    """What happened to the job; drives the message text."""
    ASSIGNMENT = "assignment"
    STAGE_ADVANCE = "stage_advance"
    COMPLETION = "completion"
    STATUS_CHANGE = "status_change"
    COMMENT = "comment"


class Notification(BaseModel):
    """
    A message for one recipient.

    Maps to: studio.notifications table

    Read/unread is tracked by the recipient-facing system, not here.
    """

    __sql_table__: ClassVar[str] = "notifications"
    __sql_schema__: ClassVar[str] = "studio"
    __sql_primary_key__: ClassVar[List[str]] = ["notification_id"]
    __sql_serial_columns__: ClassVar[List[str]] = ["notification_id"]
    __sql_foreign_keys__: ClassVar[Dict[str, str]] = {}
    __sql_indexes__: ClassVar[List[tuple]] = [
        ("idx_notifications_recipient", ["recipient_id", "created_at"]),
    ]

    notification_id: Optional[int] = None
    recipient_id: str = Field(..., max_length=64)
    kind: NotificationKind
    title: str = Field(..., max_length=200)
    body: str = Field(..., max_length=2000)
    related_job_id: Optional[str] = Field(default=None, max_length=64)
    created_at: datetime = Field(default_factory=_utcnow)

    model_config = {"frozen": True}


class JobComment(BaseModel):
    """
    A remark left on a job.

    Maps to: studio.job_comments table
    """

    __sql_table__: ClassVar[str] = "job_comments"
    __sql_schema__: ClassVar[str] = "studio"
    __sql_primary_key__: ClassVar[List[str]] = ["comment_id"]
    __sql_serial_columns__: ClassVar[List[str]] = ["comment_id"]
    __sql_foreign_keys__: ClassVar[Dict[str, str]] = {
        "job_id": "studio.jobs(job_id)"
    }
    __sql_indexes__: ClassVar[List[tuple]] = [
        ("idx_job_comments_job", ["job_id", "created_at"]),
    ]

    comment_id: Optional[int] = None
    job_id: str = Field(..., max_length=64)
    author_id: str = Field(..., max_length=64)
    content: str = Field(..., min_length=1, max_length=4000)
    created_at: datetime = Field(default_factory=_utcnow)


class TransitionEvent(BaseModel):
    """
    Input to the notification fan-out.

    previous is None for newly created jobs.
    """
    kind: NotificationKind
    job: Job
    previous: Optional[Job] = None
    actor: Actor
    comment: Optional[str] = None

    @property
    def assignee_changed(self) -> bool:
        if self.previous is None:
            return self.job.assigned_to is not None
        return self.job.assigned_to != self.previous.assigned_to

    @property
    def previous_assignee(self) -> Optional[str]:
        return self.previous.assigned_to if self.previous else None


__all__ = ["Notification", "NotificationKind", "TransitionEvent", "JobComment"]
