# ============================================================================
# SERVICES MODULE
# ============================================================================
# EPOCH: 1 - WORKFLOW ORCHESTRATION
# STATUS: Core - Business logic layer
# PURPOSE: Jobs, assignment, entitlement, notifications and events
# CREATED: 19 OCT 2026
# ============================================================================
"""
Services Module

Business logic for the studio workflow core.
Services coordinate between repositories and messaging.

Usage:
    from services import EntitlementLedger

    ledger = EntitlementLedger(pool)
    result = await ledger.debit(client_id, ServiceType.CAPTURE, 1, job_id)
"""

from .job_service import JobService
from .assignment_service import AssignmentResolver
from .entitlement_service import EntitlementLedger
from .notification_service import NotificationFanout, compute_recipients
from .event_service import EventService

__all__ = [
    "JobService",
    "AssignmentResolver",
    "EntitlementLedger",
    "NotificationFanout",
    "compute_recipients",
    "EventService",
]
