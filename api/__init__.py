# ============================================================================
# API MODULE
# ============================================================================
# EPOCH: 1 - WORKFLOW ORCHESTRATION
# STATUS: Core - FastAPI routes
# PURPOSE: HTTP API over the workflow orchestrator
# CREATED: 19 OCT 2026
# ============================================================================
"""
API Module

FastAPI routes for the studio workflow core.
"""

from .routes import router, set_services
from .schemas import (
    JobCreate,
    ChainCreate,
    AdvanceRequest,
    StatusRequest,
    OperationResponse,
)

__all__ = [
    "router",
    "set_services",
    "JobCreate",
    "ChainCreate",
    "AdvanceRequest",
    "StatusRequest",
    "OperationResponse",
]
