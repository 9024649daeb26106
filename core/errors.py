# ============================================================================
# CLAUDE CONTEXT - WORKFLOW ERRORS
# ============================================================================
# EPOCH: 1 - WORKFLOW ORCHESTRATION
# STATUS: Foundation - Error taxonomy
# PURPOSE: Typed failures raised by the state machine, ledger and repositories
# LAST_REVIEWED: 19 OCT 2026
# EXPORTS: WorkflowError, ValidationError, DependencyNotSatisfiedError,
#          AuthorizationError, NotFoundError, ConflictError, EntitlementError,
#          StoreUnavailableError
# ============================================================================
"""
Workflow Errors

Every failure the core can report carries a message plus structured
attributes the API layer turns into a typed result.

    ValidationError       -> malformed input / illegal target (400)
    AuthorizationError    -> wrong actor or role (403)
    NotFoundError         -> unknown job / assignment (404)
    ConflictError         -> stale version, reload and retry (409)
    EntitlementError      -> package grant missing or exhausted (422)
    StoreUnavailableError -> database unreachable, retryable (503)
"""

from typing import Any, Optional


class WorkflowError(Exception):
    """Base exception for workflow operations."""

    retryable: bool = False

    def __init__(self, message: str, operation: str = None, entity_id: str = None):
        self.operation = operation
        self.entity_id = entity_id
        super().__init__(message)


class ValidationError(WorkflowError):
    """Raised for malformed input or an illegal transition target."""

    def __init__(self, message: str, field: str = None, value: Any = None):
        self.field = field
        self.value = value
        super().__init__(message)


class DependencyNotSatisfiedError(ValidationError):
    """Raised when a job's predecessor has not reached COMPLETED."""

    def __init__(self, job_id: str, depends_on: str, predecessor_status: Optional[str]):
        self.job_id = job_id
        self.depends_on = depends_on
        self.predecessor_status = predecessor_status
        super().__init__(
            f"Job {job_id} depends on {depends_on} "
            f"(status={predecessor_status}); predecessor must be completed first",
            field="depends_on",
            value=depends_on,
        )


class AuthorizationError(WorkflowError):
    """Raised when the actor may not perform the operation."""

    def __init__(self, message: str, actor_id: str = None, role: str = None):
        self.actor_id = actor_id
        self.role = role
        super().__init__(message)


class NotFoundError(WorkflowError):
    """Raised when a referenced entity does not exist."""

    def __init__(self, entity: str, entity_id: str):
        self.entity = entity
        super().__init__(f"{entity} '{entity_id}' not found", entity_id=entity_id)


class ConflictError(WorkflowError):
    """Raised when an update's version precondition no longer holds."""

    retryable = True

    def __init__(self, job_id: str, expected_version: int):
        self.expected_version = expected_version
        super().__init__(
            f"Job {job_id} was modified concurrently "
            f"(expected version {expected_version}); reload and retry",
            entity_id=job_id,
        )


class EntitlementError(WorkflowError):
    """Raised when a package debit fails; the whole transition is aborted."""

    def __init__(self, outcome: "DebitOutcome", client_id: str, service_type: str):
        self.outcome = outcome
        self.client_id = client_id
        self.service_type = service_type
        super().__init__(
            f"Package debit failed for client {client_id} "
            f"({service_type}): {outcome.value}"
        )


class StoreUnavailableError(WorkflowError):
    """Raised when the persistent store cannot be reached."""

    retryable = True


__all__ = [
    "WorkflowError",
    "ValidationError",
    "DependencyNotSatisfiedError",
    "AuthorizationError",
    "NotFoundError",
    "ConflictError",
    "EntitlementError",
    "StoreUnavailableError",
]
