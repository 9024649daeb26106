# ============================================================================
# MESSAGING MODULE
# ============================================================================
# EPOCH: 1 - WORKFLOW ORCHESTRATION
# STATUS: Core - Azure Service Bus integration
# PURPOSE: Publish real-time notification pushes
# CREATED: 19 OCT 2026
# ============================================================================
"""
Messaging Module

Provides Azure Service Bus integration for notification pushes.

Usage:
    from messaging import get_publisher

    publisher = await get_publisher()
    await publisher.publish(notification, "user_u-7")
"""

from .publisher import NotificationPublisher, get_publisher, close_publisher
from .config import MessagingConfig

__all__ = [
    "NotificationPublisher",
    "get_publisher",
    "close_publisher",
    "MessagingConfig",
]
