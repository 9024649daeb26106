# ============================================================================
# CONFIGURATION MODULE
# ============================================================================
# EPOCH: 1 - WORKFLOW ORCHESTRATION
# STATUS: Core - Configuration and defaults
# PURPOSE: Centralized configuration management
# CREATED: 19 OCT 2026
# ============================================================================
"""
Configuration Module

Provides centralized configuration and defaults for the workflow core.
"""

from core.config.defaults import (
    DatabaseDefaults,
    WorkflowDefaults,
    NotificationDefaults,
    Defaults,
    get_defaults,
    reset_defaults,
)

__all__ = [
    "DatabaseDefaults",
    "WorkflowDefaults",
    "NotificationDefaults",
    "Defaults",
    "get_defaults",
    "reset_defaults",
]
