# ============================================================================
# ORCHESTRATOR MODULE
# ============================================================================
# EPOCH: 1 - WORKFLOW ORCHESTRATION
# STATUS: Core - Workflow façade
# PURPOSE: Single entry point for job transitions and queries
# CREATED: 19 OCT 2026
# ============================================================================
"""
Orchestrator Module

The workflow façade that drives job transitions.

Usage:
    from orchestrator import WorkflowOrchestrator

    orchestrator = WorkflowOrchestrator(pool)
    result = await orchestrator.advance_workflow(job_id, "finishing", actor)
"""

from .workflow import WorkflowOrchestrator

__all__ = ["WorkflowOrchestrator"]
