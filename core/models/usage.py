# ============================================================================
# CLAUDE CONTEXT - ENTITLEMENT USAGE MODELS
# ============================================================================
# EPOCH: 1 - WORKFLOW ORCHESTRATION
# STATUS: Core model - Package consumption ledger
# PURPOSE: Usage records, debit outcomes and per-service summaries
# LAST_REVIEWED: 19 OCT 2026
# EXPORTS: UsageRecord, DebitOutcome, DebitResult, ServiceUsage
# DEPENDENCIES: pydantic, enum
# ============================================================================
"""
Entitlement Usage Models

UsageRecord is one consumption event against a client package assignment.
For every (assignment_id, service_type) pair the sum of quantities never
exceeds the template's grant, and a job contributes at most one record
per service type (unique on job_id + service_type).
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional, ClassVar
from pydantic import BaseModel, Field, computed_field

from core.contracts import ServiceType


class DebitOutcome(str, Enum):
    """Result of a ledger debit."""
    OK = "ok"
    INSUFFICIENT_ENTITLEMENT = "insufficient_entitlement"
    NO_ACTIVE_ASSIGNMENT = "no_active_assignment"


class UsageRecord(BaseModel):
    """
    One debit against a client package assignment.

    Maps to: studio.package_usage table
    """

    __sql_table__: ClassVar[str] = "package_usage"
    __sql_schema__: ClassVar[str] = "studio"
    __sql_primary_key__: ClassVar[List[str]] = ["usage_id"]
    __sql_serial_columns__: ClassVar[List[str]] = ["usage_id"]
    __sql_foreign_keys__: ClassVar[Dict[str, str]] = {
        "assignment_id": "studio.client_packages(assignment_id)"
    }
    __sql_indexes__: ClassVar[List[tuple]] = [
        ("idx_package_usage_assignment", ["assignment_id", "service_type"]),
    ]
    __sql_unique__: ClassVar[List[List[str]]] = [["job_id", "service_type"]]

    usage_id: Optional[int] = None
    assignment_id: str = Field(..., max_length=64)
    service_type: ServiceType
    quantity: int = Field(..., gt=0)
    job_id: str = Field(..., max_length=64)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class DebitResult(BaseModel):
    """Outcome of a debit plus the record written on success."""
    outcome: DebitOutcome
    record: Optional[UsageRecord] = None
    already_debited: bool = False

    @computed_field
    @property
    def ok(self) -> bool:
        return self.outcome == DebitOutcome.OK


class ServiceUsage(BaseModel):
    """Granted / consumed / remaining units of one service type."""
    granted: int = Field(..., ge=0)
    consumed: int = Field(..., ge=0)

    @computed_field
    @property
    def remaining(self) -> int:
        return max(self.granted - self.consumed, 0)


__all__ = ["UsageRecord", "DebitOutcome", "DebitResult", "ServiceUsage"]
