# ============================================================================
# ORCHESTRATOR ENGINE
# ============================================================================
# EPOCH: 1 - WORKFLOW ORCHESTRATION
# STATUS: Core - Engine components
# PURPOSE: Pure transition rules for the workflow façade
# CREATED: 19 OCT 2026
# ============================================================================
"""
Orchestrator Engine Components

- state_machine: transition legality, authorization and planning
"""

from orchestrator.engine.state_machine import (
    LEGAL_TARGETS,
    TransitionPlan,
    legal_targets,
    check_dependency,
    plan_advance,
    plan_complete,
    plan_status,
    authorize_create,
    authorize_delete,
    authorize_comment,
)

__all__ = [
    "LEGAL_TARGETS",
    "TransitionPlan",
    "legal_targets",
    "check_dependency",
    "plan_advance",
    "plan_complete",
    "plan_status",
    "authorize_create",
    "authorize_delete",
    "authorize_comment",
]
