# ============================================================================
# REPOSITORIES MODULE
# ============================================================================
# EPOCH: 1 - WORKFLOW ORCHESTRATION
# STATUS: Core - Database access layer
# PURPOSE: CRUD operations for studio entities
# CREATED: 19 OCT 2026
# ============================================================================
"""
Repositories Module

Provides database access for the studio workflow entities.
Uses psycopg3 async with connection pooling.

Usage:
    from repositories import JobRepository, get_pool

    pool = await get_pool()
    job_repo = JobRepository(pool)
    job = await job_repo.get(job_id)
"""

from .database import (
    get_pool,
    init_pool,
    close_pool,
    transaction,
    use_connection,
)
from .job_repo import JobRepository
from .worker_repo import WorkerRepository
from .package_repo import PackageRepository
from .notification_repo import NotificationRepository
from .event_repo import EventRepository

__all__ = [
    "get_pool",
    "init_pool",
    "close_pool",
    "transaction",
    "use_connection",
    "JobRepository",
    "WorkerRepository",
    "PackageRepository",
    "NotificationRepository",
    "EventRepository",
]
