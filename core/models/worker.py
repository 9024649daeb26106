# ============================================================================
# CLAUDE CONTEXT - WORKER MODEL
# ============================================================================
# EPOCH: 1 - WORKFLOW ORCHESTRATION
# STATUS: Core model - Staff and client accounts
# PURPOSE: People that can be assigned jobs or receive notifications
# LAST_REVIEWED: 19 OCT 2026
# EXPORTS: Worker
# DEPENDENCIES: pydantic
# ============================================================================
"""
Worker Model

A person with exactly one role and an active flag. Only active workers
are eligible assignment targets or notification recipients.
"""

from datetime import datetime, timezone
from typing import Dict, List, Optional, ClassVar
from pydantic import BaseModel, Field

from core.contracts import Actor, UserRole


class Worker(BaseModel):
    """
    A staff member or client account.

    Maps to: studio.workers table
    """

    __sql_table__: ClassVar[str] = "workers"
    __sql_schema__: ClassVar[str] = "studio"
    __sql_primary_key__: ClassVar[List[str]] = ["worker_id"]
    __sql_foreign_keys__: ClassVar[Dict[str, str]] = {}
    __sql_indexes__: ClassVar[List[tuple]] = [
        ("idx_workers_role_active", ["role", "is_active"]),
    ]

    worker_id: str = Field(..., max_length=64)
    name: str = Field(..., min_length=1, max_length=200)
    email: Optional[str] = Field(default=None, max_length=320)
    role: UserRole
    is_active: bool = Field(default=True)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def as_actor(self) -> Actor:
        """Identity used when this worker calls the orchestrator."""
        return Actor(actor_id=self.worker_id, role=self.role)


__all__ = ["Worker"]
