# ============================================================================
# CLAUDE CONTEXT - MODELS MODULE
# ============================================================================
# EPOCH: 1 - WORKFLOW ORCHESTRATION
# STATUS: Model exports
# PURPOSE: Central export point for all Pydantic models
# LAST_REVIEWED: 19 OCT 2026
# ============================================================================
"""
Models Module - Central Export Point

All Pydantic models for the studio workflow core.
Models define SQL metadata via __sql_* ClassVar attributes for DDL generation.

Single Source of Truth Pattern:
    - Pydantic models define structure
    - PydanticToSQL reads __sql_* metadata
    - PostgreSQL schema generated from models
"""

from core.models.job import Job, JobSpec, WorkflowHistoryEntry
from core.models.worker import Worker
from core.models.package import PackageTemplate, PackageService, ClientPackageAssignment
from core.models.usage import UsageRecord, DebitOutcome, DebitResult, ServiceUsage
from core.models.notification import (
    Notification,
    NotificationKind,
    TransitionEvent,
    JobComment,
)
from core.models.events import JobEvent, EventType, EventStatus
from core.models.results import OperationResult, ResultStatus

__all__ = [
    # Job
    "Job",
    "JobSpec",
    "WorkflowHistoryEntry",
    # People
    "Worker",
    # Packages
    "PackageTemplate",
    "PackageService",
    "ClientPackageAssignment",
    "UsageRecord",
    "DebitOutcome",
    "DebitResult",
    "ServiceUsage",
    # Notifications
    "Notification",
    "NotificationKind",
    "TransitionEvent",
    "JobComment",
    # Events
    "JobEvent",
    "EventType",
    "EventStatus",
    # Results
    "OperationResult",
    "ResultStatus",
]
