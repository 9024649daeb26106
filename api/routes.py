# ============================================================================
# API ROUTES
# ============================================================================
# EPOCH: 1 - WORKFLOW ORCHESTRATION
# STATUS: Core - FastAPI route definitions
# PURPOSE: HTTP endpoints for jobs, chains, packages and notifications
# CREATED: 19 OCT 2026
# ============================================================================
"""
API Routes

FastAPI routes over the WorkflowOrchestrator.

The caller identifies itself with two headers:

    X-Actor-Id:   user id
    X-Actor-Role: admin | coordinator | photographer | editor | designer | client

Every mutation returns an OperationResponse; its status decides the HTTP
code (see _STATUS_CODES).
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Query
from fastapi.responses import JSONResponse

from core.contracts import Actor, UserRole
from core.models import OperationResult, ResultStatus
from .schemas import (
    AdvanceRequest,
    ChainCreate,
    CommentCreate,
    CompleteRequest,
    ErrorResponse,
    JobCreate,
    OperationResponse,
    StatusRequest,
)

logger = logging.getLogger(__name__)

router = APIRouter()


# ============================================================================
# DEPENDENCY INJECTION
# ============================================================================
# Set by the main app at startup

_orchestrator = None
_fanout = None


def set_services(orchestrator, fanout=None):
    """Set service instances for dependency injection."""
    global _orchestrator, _fanout
    _orchestrator = orchestrator
    _fanout = fanout


def get_orchestrator():
    if _orchestrator is None:
        raise HTTPException(500, "Orchestrator not initialized")
    return _orchestrator


def get_actor(
    x_actor_id: Optional[str] = Header(None),
    x_actor_role: Optional[str] = Header(None),
) -> Actor:
    """Build the acting user from request headers."""
    if not x_actor_id or not x_actor_role:
        raise HTTPException(401, "X-Actor-Id and X-Actor-Role headers are required")
    try:
        role = UserRole(x_actor_role)
    except ValueError:
        raise HTTPException(400, f"Unknown role: {x_actor_role}")
    return Actor(actor_id=x_actor_id, role=role)


_STATUS_CODES = {
    ResultStatus.VALIDATION_ERROR: 400,
    ResultStatus.AUTHORIZATION_ERROR: 403,
    ResultStatus.NOT_FOUND: 404,
    ResultStatus.CONFLICT: 409,
    ResultStatus.ENTITLEMENT_ERROR: 422,
    ResultStatus.UNAVAILABLE: 503,
}


def _respond(result: OperationResult, success_code: int = 200) -> JSONResponse:
    """Render an OperationResult with the HTTP code for its status."""
    code = success_code if result.ok else _STATUS_CODES.get(result.status, 500)
    return JSONResponse(status_code=code, content=result.model_dump(mode="json"))


_ERRORS = {
    400: {"model": ErrorResponse, "description": "Invalid request or illegal transition"},
    401: {"model": ErrorResponse, "description": "Missing actor headers"},
    403: {"model": ErrorResponse, "description": "Actor not allowed"},
    404: {"model": ErrorResponse, "description": "Job not found"},
    409: {"model": ErrorResponse, "description": "Concurrent modification"},
    422: {"model": ErrorResponse, "description": "Package entitlement exhausted"},
}


# ============================================================================
# JOBS
# ============================================================================

@router.post("/jobs", status_code=201, response_model=OperationResponse, tags=["Jobs"], responses=_ERRORS)
async def create_job(request: JobCreate, actor: Actor = Depends(get_actor)):
    """
    Create a single job.

    A job with no assignee is handed to the first active worker of the
    role its type calls for.
    """
    result = await get_orchestrator().create_job(request, actor)
    if result.ok:
        logger.info(f"Created job {result.job.job_id} for client {request.client_id}")
    return _respond(result, 201)


@router.get("/jobs/{job_id}", response_model=OperationResponse, tags=["Jobs"], responses={404: {"model": ErrorResponse}})
async def get_job(job_id: str):
    """Get a job with its workflow history."""
    return _respond(await get_orchestrator().get_job(job_id))


@router.post("/jobs/{job_id}/advance", response_model=OperationResponse, tags=["Jobs"], responses=_ERRORS)
async def advance_job(
    job_id: str,
    request: AdvanceRequest,
    actor: Actor = Depends(get_actor),
):
    """Advance a chained job to post_production, finishing or handover."""
    result = await get_orchestrator().advance_workflow(job_id, request.target, actor, request.note)
    return _respond(result)


@router.post("/jobs/{job_id}/complete", response_model=OperationResponse, tags=["Jobs"], responses=_ERRORS)
async def complete_job(
    job_id: str,
    request: Optional[CompleteRequest] = None,
    actor: Actor = Depends(get_actor),
):
    """Complete a non-chained job. Only the assignee may do this."""
    note = request.note if request else None
    return _respond(await get_orchestrator().complete_job(job_id, actor, note))


@router.patch("/jobs/{job_id}/status", response_model=OperationResponse, tags=["Jobs"], responses=_ERRORS)
async def set_job_status(
    job_id: str,
    request: StatusRequest,
    actor: Actor = Depends(get_actor),
):
    """Override a job's lifecycle status (no stage or dependency checks)."""
    result = await get_orchestrator().set_job_status(job_id, request.status, actor, request.note)
    return _respond(result)


@router.delete("/jobs/{job_id}", response_model=OperationResponse, tags=["Jobs"], responses=_ERRORS)
async def delete_job(
    job_id: str,
    actor: Actor = Depends(get_actor),
):
    """Hard-delete a job. Admin only."""
    return _respond(await get_orchestrator().delete_job(job_id, actor))


@router.post("/jobs/{job_id}/comments", status_code=201, response_model=OperationResponse, tags=["Jobs"], responses=_ERRORS)
async def comment_on_job(
    job_id: str,
    request: CommentCreate,
    actor: Actor = Depends(get_actor),
):
    return _respond(await get_orchestrator().comment_on_job(job_id, request.content, actor), 201)


@router.get("/jobs/{job_id}/events", response_model=OperationResponse, tags=["Jobs"])
async def get_job_events(job_id: str, limit: int = Query(100, ge=1, le=1000)):
    """
    Get the activity timeline of a job.

    Events outlive the job, so the timeline of a deleted job is still
    available.
    """
    return _respond(await get_orchestrator().job_timeline(job_id, limit))


# ============================================================================
# CHAINS
# ============================================================================

@router.post("/chains", status_code=201, response_model=OperationResponse, tags=["Chains"], responses=_ERRORS)
async def create_chain(
    request: ChainCreate,
    actor: Actor = Depends(get_actor),
):
    """
    Create a workflow chain.

    Steps run in stage order; each depends on the one before. All steps
    and their package debits are written together or not at all.
    """
    result = await get_orchestrator().create_workflow_chain(request.jobs, request.client_id, actor)
    if result.ok:
        logger.info(f"Created chain {result.data['chain_id']} with {len(result.jobs)} jobs")
    return _respond(result, 201)


@router.get("/chains/{chain_id}", response_model=OperationResponse, tags=["Chains"], responses={404: {"model": ErrorResponse}})
async def get_chain(chain_id: str):
    return _respond(await get_orchestrator().get_chain(chain_id))


# ============================================================================
# PACKAGES
# ============================================================================

@router.get("/packages/assignments/{assignment_id}/usage", response_model=OperationResponse, tags=["Packages"])
async def get_assignment_usage(assignment_id: str):
    """Granted, consumed and remaining units per service type."""
    return _respond(await get_orchestrator().usage_summary(assignment_id))


@router.get("/clients/{client_id}/usage", response_model=OperationResponse, tags=["Packages"])
async def get_client_usage(client_id: str):
    return _respond(await get_orchestrator().client_usage(client_id))


# ============================================================================
# WORKERS
# ============================================================================

@router.get("/workers/candidates", response_model=OperationResponse, tags=["Workers"])
async def list_candidates(role: str = Query(..., description="Required role")):
    """Active workers for a role, in the order the resolver picks them."""
    return _respond(await get_orchestrator().list_candidates(role))


# ============================================================================
# NOTIFICATIONS
# ============================================================================

@router.get("/notifications", tags=["Notifications"])
async def list_notifications(
    limit: int = Query(50, ge=1, le=500),
    actor: Actor = Depends(get_actor),
):
    """Notifications addressed to the calling user, newest first."""
    if _fanout is None:
        raise HTTPException(500, "Notification service not initialized")
    notifications = await _fanout.list_for(actor.actor_id, limit)
    return {
        "notifications": [n.model_dump(mode="json") for n in notifications],
        "total": len(notifications),
    }
