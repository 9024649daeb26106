# ============================================================================
# CONFIGURATION DEFAULTS
# ============================================================================
# EPOCH: 1 - WORKFLOW ORCHESTRATION
# STATUS: Core - Default configuration values
# PURPOSE: Centralized defaults for database, workflow routing, notifications
# CREATED: 19 OCT 2026
# ============================================================================
"""
Configuration Defaults

Provides sensible defaults for the workflow core.
These can be overridden via environment variables.

Design:
- Immutable dataclasses for defaults
- Environment variable overrides
- Type-safe access
"""

import os
from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

from core.contracts import ServiceType, UserRole, WorkflowStage


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.lower() in ("1", "true", "yes")


@dataclass(frozen=True)
class DatabaseDefaults:
    """
    Defaults for the PostgreSQL connection pool and schema.
    """
    schema: str = "studio"
    pool_min_size: int = 2
    pool_max_size: int = 10
    # Seconds to wait for a pooled connection before failing fast
    pool_timeout: float = 5.0

    @classmethod
    def from_env(cls) -> "DatabaseDefaults":
        """Create from environment variables."""
        return cls(
            schema=os.getenv("STUDIO_DB_SCHEMA", "studio"),
            pool_min_size=int(os.getenv("DB_POOL_MIN_SIZE", 2)),
            pool_max_size=int(os.getenv("DB_POOL_MAX_SIZE", 10)),
            pool_timeout=float(os.getenv("DB_POOL_TIMEOUT", 5.0)),
        )


@dataclass(frozen=True)
class WorkflowDefaults:
    """
    Fixed routing tables for the production pipeline.

    Which role performs each stage, and which package service type a
    stage consumes.
    """
    stage_roles: Dict[WorkflowStage, UserRole] = field(default_factory=lambda: {
        WorkflowStage.CAPTURE: UserRole.PHOTOGRAPHER,
        WorkflowStage.POST_PRODUCTION: UserRole.EDITOR,
        WorkflowStage.FINISHING: UserRole.DESIGNER,
    })
    stage_services: Dict[WorkflowStage, ServiceType] = field(default_factory=lambda: {
        WorkflowStage.CAPTURE: ServiceType.CAPTURE,
        WorkflowStage.POST_PRODUCTION: ServiceType.POST_PRODUCTION,
        WorkflowStage.FINISHING: ServiceType.FINISHING,
    })

    # Units debited per stage entry
    units_per_stage: int = 1

    # Longest chain a single request may create
    max_chain_length: int = 3

    def role_for(self, stage: WorkflowStage) -> UserRole:
        """Role that performs a stage."""
        return self.stage_roles[stage]

    def service_for(self, stage: Optional[WorkflowStage]) -> Optional[ServiceType]:
        """Package service type consumed by entering a stage."""
        if stage is None:
            return None
        return self.stage_services.get(stage)

    @classmethod
    def from_env(cls) -> "WorkflowDefaults":
        """Create from environment variables."""
        return cls(
            units_per_stage=int(os.getenv("WORKFLOW_UNITS_PER_STAGE", 1)),
        )


@dataclass(frozen=True)
class NotificationDefaults:
    """
    Defaults for notification fan-out and real-time push.
    """
    # Roles that receive every workflow notification
    broadcast_roles: Tuple[UserRole, ...] = (UserRole.ADMIN, UserRole.COORDINATOR)

    # Real-time push (Service Bus topic, one subject per recipient)
    push_enabled: bool = False
    push_topic: str = "studio-notifications"
    user_channel_prefix: str = "user_"

    def user_channel(self, worker_id: str) -> str:
        return f"{self.user_channel_prefix}{worker_id}"

    @classmethod
    def from_env(cls) -> "NotificationDefaults":
        """Create from environment variables."""
        return cls(
            push_enabled=_env_bool("NOTIFICATION_PUSH_ENABLED", False),
            push_topic=os.getenv("NOTIFICATION_PUSH_TOPIC", "studio-notifications"),
        )


# ============================================================================
# GLOBAL DEFAULTS INSTANCE
# ============================================================================

@dataclass
class Defaults:
    """Container for all default configurations."""
    database: DatabaseDefaults = field(default_factory=DatabaseDefaults)
    workflow: WorkflowDefaults = field(default_factory=WorkflowDefaults)
    notifications: NotificationDefaults = field(default_factory=NotificationDefaults)

    @classmethod
    def from_env(cls) -> "Defaults":
        """Create all defaults from environment variables."""
        return cls(
            database=DatabaseDefaults.from_env(),
            workflow=WorkflowDefaults.from_env(),
            notifications=NotificationDefaults.from_env(),
        )


_defaults: Optional[Defaults] = None


def get_defaults() -> Defaults:
    """Get global defaults instance."""
    global _defaults
    if _defaults is None:
        _defaults = Defaults.from_env()
    return _defaults


def reset_defaults() -> None:
    """Reset defaults (for testing)."""
    global _defaults
    _defaults = None


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = [
    "DatabaseDefaults",
    "WorkflowDefaults",
    "NotificationDefaults",
    "Defaults",
    "get_defaults",
    "reset_defaults",
]
