# ============================================================================
# CLAUDE CONTEXT - PACKAGE MODELS
# ============================================================================
# EPOCH: 1 - WORKFLOW ORCHESTRATION
# STATUS: Core model - Pre-purchased service bundles
# PURPOSE: Package templates, their grants, and client assignments
# LAST_REVIEWED: 19 OCT 2026
# EXPORTS: PackageTemplate, PackageService, ClientPackageAssignment
# DEPENDENCIES: pydantic
# ============================================================================
"""
Package Models

PackageTemplate  = what is sold (name, price, N units per service type)
PackageService   = one (template, service_type, quantity) grant row
ClientPackageAssignment = a template granted to one client for a window

A client may hold several concurrent assignments; the ledger spends the
soonest-to-lapse one first.
"""

from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Dict, List, Optional, ClassVar
from pydantic import BaseModel, Field, model_validator

from core.contracts import ServiceType


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PackageTemplate(BaseModel):
    """
    A sellable bundle of service-type quotas.

    Maps to: studio.packages table
    """

    __sql_table__: ClassVar[str] = "packages"
    __sql_schema__: ClassVar[str] = "studio"
    __sql_primary_key__: ClassVar[List[str]] = ["package_id"]
    __sql_foreign_keys__: ClassVar[Dict[str, str]] = {}
    __sql_indexes__: ClassVar[List[tuple]] = []

    package_id: str = Field(..., max_length=64)
    name: str = Field(..., min_length=1, max_length=200)
    price: Decimal = Field(default=Decimal("0"), ge=0)
    duration_months: int = Field(default=1, ge=1)
    is_active: bool = Field(default=True)
    created_at: datetime = Field(default_factory=_utcnow)


class PackageService(BaseModel):
    """
    Quantity of one service type granted by a template.

    Maps to: studio.package_services table
    """

    __sql_table__: ClassVar[str] = "package_services"
    __sql_schema__: ClassVar[str] = "studio"
    __sql_primary_key__: ClassVar[List[str]] = ["package_id", "service_type"]
    __sql_foreign_keys__: ClassVar[Dict[str, str]] = {
        "package_id": "studio.packages(package_id)"
    }
    __sql_indexes__: ClassVar[List[tuple]] = []

    package_id: str = Field(..., max_length=64)
    service_type: ServiceType
    quantity_included: int = Field(..., ge=1)
    description: Optional[str] = Field(default=None, max_length=500)


class ClientPackageAssignment(BaseModel):
    """
    A package template granted to a client for a bounded window.

    Maps to: studio.client_packages table
    """

    __sql_table__: ClassVar[str] = "client_packages"
    __sql_schema__: ClassVar[str] = "studio"
    __sql_primary_key__: ClassVar[List[str]] = ["assignment_id"]
    __sql_foreign_keys__: ClassVar[Dict[str, str]] = {
        "package_id": "studio.packages(package_id)"
    }
    __sql_indexes__: ClassVar[List[tuple]] = [
        ("idx_client_packages_client", ["client_id", "is_active"]),
        ("idx_client_packages_end", ["end_date"]),
    ]

    assignment_id: str = Field(..., max_length=64)
    client_id: str = Field(..., max_length=64)
    package_id: str = Field(..., max_length=64)
    start_date: date
    end_date: date
    is_active: bool = Field(default=True)
    created_at: datetime = Field(default_factory=_utcnow)

    @model_validator(mode="after")
    def _check_window(self) -> "ClientPackageAssignment":
        if self.end_date <= self.start_date:
            raise ValueError(
                f"end_date {self.end_date} must be after start_date {self.start_date}"
            )
        return self

    def covers(self, day: date) -> bool:
        """Check if the assignment is usable on the given day."""
        return self.is_active and self.start_date <= day <= self.end_date


__all__ = ["PackageTemplate", "PackageService", "ClientPackageAssignment"]
