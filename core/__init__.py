# ============================================================================
# CLAUDE CONTEXT - CORE MODULE
# ============================================================================
# EPOCH: 1 - WORKFLOW ORCHESTRATION
# STATUS: Core module initialization
# PURPOSE: Export core contracts, errors, models, and schema utilities
# LAST_REVIEWED: 19 OCT 2026
# ============================================================================

from core.contracts import (
    JobStatus,
    WorkflowStage,
    AdvanceTarget,
    JobType,
    UserRole,
    ServiceType,
    Actor,
)
from core.errors import (
    WorkflowError,
    ValidationError,
    DependencyNotSatisfiedError,
    AuthorizationError,
    NotFoundError,
    ConflictError,
    EntitlementError,
    StoreUnavailableError,
)
from core.models import (
    Job,
    WorkflowHistoryEntry,
    Worker,
    UsageRecord,
    DebitOutcome,
    Notification,
    NotificationKind,
    TransitionEvent,
    JobEvent,
    EventType,
    EventStatus,
    OperationResult,
    ResultStatus,
)
from core.schema import PydanticToSQL

__all__ = [
    # Enums
    "JobStatus",
    "WorkflowStage",
    "AdvanceTarget",
    "JobType",
    "UserRole",
    "ServiceType",
    "NotificationKind",
    "DebitOutcome",
    "EventType",
    "EventStatus",
    "ResultStatus",
    # Contracts
    "Actor",
    # Errors
    "WorkflowError",
    "ValidationError",
    "DependencyNotSatisfiedError",
    "AuthorizationError",
    "NotFoundError",
    "ConflictError",
    "EntitlementError",
    "StoreUnavailableError",
    # Models
    "Job",
    "WorkflowHistoryEntry",
    "Worker",
    "UsageRecord",
    "Notification",
    "TransitionEvent",
    "JobEvent",
    "OperationResult",
    # Schema
    "PydanticToSQL",
]
