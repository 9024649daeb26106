# ============================================================================
# API SCHEMAS
# ============================================================================
# EPOCH: 1 - WORKFLOW ORCHESTRATION
# STATUS: Core - Request/Response schemas
# PURPOSE: Pydantic models for API validation
# CREATED: 19 OCT 2026
# ============================================================================
"""
API Schemas

Request and response models for the API. Job bodies reuse JobSpec so the
HTTP surface and the orchestrator validate the same fields.
"""

from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field

from core.contracts import AdvanceTarget, JobStatus
from core.models import Job, JobSpec, ResultStatus


# ============================================================================
# REQUEST SCHEMAS
# ============================================================================

class JobCreate(JobSpec):
    """Request to create a single (unchained) job."""

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "title": "Headshots - Alvarez & Co",
                    "job_type": "capture",
                    "client_id": "client-042",
                    "price": "350.00",
                    "counts_against_package": True,
                }
            ]
        }
    }


class ChainCreate(BaseModel):
    """Request to create a linked workflow chain (1-3 steps)."""
    client_id: str = Field(..., min_length=1, max_length=64)
    jobs: List[JobSpec] = Field(..., min_length=1)

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "client_id": "client-042",
                    "jobs": [
                        {"title": "Shoot", "workflow_stage": "capture", "counts_against_package": True},
                        {"title": "Retouch", "workflow_stage": "post_production", "counts_against_package": True},
                        {"title": "Album", "workflow_stage": "finishing"},
                    ],
                }
            ]
        }
    }


class AdvanceRequest(BaseModel):
    """Move a chained job to the next stage or hand it over."""
    target: AdvanceTarget
    note: Optional[str] = Field(None, max_length=2000)


class CompleteRequest(BaseModel):
    note: Optional[str] = Field(None, max_length=2000)


class StatusRequest(BaseModel):
    """Administrative status override."""
    status: JobStatus
    note: Optional[str] = Field(None, max_length=2000)


class CommentCreate(BaseModel):
    content: str = Field(..., min_length=1, max_length=4000)


# ============================================================================
# RESPONSE SCHEMAS
# ============================================================================

class OperationResponse(BaseModel):
    """Outcome of one workflow operation."""
    status: ResultStatus
    message: Optional[str] = None
    warnings: List[str] = []
    retryable: bool = False
    job: Optional[Job] = None
    jobs: List[Job] = []
    data: Dict[str, Any] = {}


class ErrorResponse(BaseModel):
    """Error response."""
    error: str
    detail: Optional[str] = None
    job_id: Optional[str] = None
