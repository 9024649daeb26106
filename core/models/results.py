# ============================================================================
# CLAUDE CONTEXT - OPERATION RESULT MODEL
# ============================================================================
# EPOCH: 1 - WORKFLOW ORCHESTRATION
# STATUS: Core model - Typed outcome of every orchestrator call
# PURPOSE: Distinguish success, validation, authorization, conflict, entitlement
# LAST_REVIEWED: 19 OCT 2026
# EXPORTS: OperationResult, ResultStatus
# DEPENDENCIES: pydantic, core.errors
# ============================================================================
"""
Operation Result

The façade never lets a WorkflowError escape to callers; it folds it into
an OperationResult. Success may still carry warnings (e.g. no eligible
worker was found, the job proceeds unassigned).
"""

from enum import Enum
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field

from core.errors import (
    WorkflowError,
    ValidationError,
    AuthorizationError,
    NotFoundError,
    ConflictError,
    EntitlementError,
    StoreUnavailableError,
)
from core.models.job import Job


class ResultStatus(str, Enum):
    SUCCESS = "success"
    VALIDATION_ERROR = "validation_error"
    AUTHORIZATION_ERROR = "authorization_error"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    ENTITLEMENT_ERROR = "entitlement_error"
    UNAVAILABLE = "unavailable"


# Most specific class first; ValidationError subclasses share its status.
_ERROR_STATUS = (
    (EntitlementError, ResultStatus.ENTITLEMENT_ERROR),
    (ConflictError, ResultStatus.CONFLICT),
    (NotFoundError, ResultStatus.NOT_FOUND),
    (AuthorizationError, ResultStatus.AUTHORIZATION_ERROR),
    (ValidationError, ResultStatus.VALIDATION_ERROR),
    (StoreUnavailableError, ResultStatus.UNAVAILABLE),
)


class OperationResult(BaseModel):
    """Outcome of one orchestrator operation."""
    status: ResultStatus
    message: Optional[str] = None
    warnings: List[str] = Field(default_factory=list)
    retryable: bool = False
    job: Optional[Job] = None
    jobs: List[Job] = Field(default_factory=list)
    data: Dict[str, Any] = Field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.status == ResultStatus.SUCCESS

    @classmethod
    def success(
        cls,
        job: Optional[Job] = None,
        jobs: Optional[List[Job]] = None,
        warnings: Optional[List[str]] = None,
        message: Optional[str] = None,
        data: Optional[Dict[str, Any]] = None,
    ) -> "OperationResult":
        return cls(
            status=ResultStatus.SUCCESS,
            job=job,
            jobs=jobs or [],
            warnings=warnings or [],
            message=message,
            data=data or {},
        )

    @classmethod
    def from_error(cls, error: WorkflowError) -> "OperationResult":
        """Map a WorkflowError onto its result status."""
        status = ResultStatus.VALIDATION_ERROR
        for error_cls, mapped in _ERROR_STATUS:
            if isinstance(error, error_cls):
                status = mapped
                break
        data: Dict[str, Any] = {}
        if isinstance(error, EntitlementError):
            data["outcome"] = error.outcome.value
        return cls(
            status=status,
            message=str(error),
            retryable=error.retryable,
            data=data,
        )


__all__ = ["OperationResult", "ResultStatus"]
