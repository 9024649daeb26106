# ============================================================================
# NOTIFICATION PUBLISHER
# ============================================================================
# EPOCH: 1 - WORKFLOW ORCHESTRATION
# STATUS: Core - Service Bus push publication
# PURPOSE: Push persisted notifications onto per-user channels
# CREATED: 19 OCT 2026
# ============================================================================
"""
Notification Publisher

Sends one Service Bus message per notification to the notification
topic. The message subject is the push channel ("user_<id>"), which
subscribers filter on. Framing and delivery to browsers are handled by
the real-time gateway, not here.
"""

import json
import logging
from datetime import timedelta
from typing import Optional

from azure.servicebus.aio import ServiceBusClient, ServiceBusSender
from azure.servicebus import ServiceBusMessage

from core.models import Notification
from .config import MessagingConfig

logger = logging.getLogger(__name__)

# Global publisher instance
_publisher: Optional["NotificationPublisher"] = None


class NotificationPublisher:
    """Publisher for real-time notification pushes."""

    def __init__(self, config: MessagingConfig):
        self.config = config
        self._client: Optional[ServiceBusClient] = None
        self._sender: Optional[ServiceBusSender] = None

    async def connect(self) -> None:
        """Establish connection to Service Bus."""
        if self._client is not None:
            return

        if self.config.use_managed_identity:
            from azure.identity.aio import ManagedIdentityCredential

            if self.config.managed_identity_client_id:
                credential = ManagedIdentityCredential(
                    client_id=self.config.managed_identity_client_id
                )
            else:
                credential = ManagedIdentityCredential()

            self._client = ServiceBusClient(
                fully_qualified_namespace=self.config.fully_qualified_namespace,
                credential=credential,
            )
            logger.info(
                f"Connecting to Service Bus via managed identity: "
                f"{self.config.fully_qualified_namespace}"
            )
        else:
            self._client = ServiceBusClient.from_connection_string(
                self.config.connection_string
            )
            logger.info("Connecting to Service Bus via connection string")

        self._sender = self._client.get_topic_sender(
            topic_name=self.config.notification_topic
        )
        logger.info(f"Connected to Service Bus topic: {self.config.notification_topic}")

    async def close(self) -> None:
        """Close connection to Service Bus."""
        if self._sender:
            await self._sender.close()
            self._sender = None

        if self._client:
            await self._client.close()
            self._client = None

        logger.info("Service Bus connection closed")

    @staticmethod
    def build_message(notification: Notification, channel: str, ttl_seconds: int) -> ServiceBusMessage:
        """Wrap a notification in a Service Bus message for one channel."""
        message = ServiceBusMessage(
            body=json.dumps(notification.model_dump(mode="json")),
            message_id=(
                f"notification-{notification.notification_id}"
                if notification.notification_id is not None else None
            ),
            subject=channel,
            application_properties={
                "channel": channel,
                "kind": notification.kind.value,
                "related_job_id": notification.related_job_id or "",
            },
        )
        message.time_to_live = timedelta(seconds=ttl_seconds)
        return message

    async def publish(self, notification: Notification, channel: str) -> bool:
        """
        Push a notification to a channel.

        Returns:
            True if the send succeeded; failures are logged, not raised
        """
        if self._sender is None:
            await self.connect()

        try:
            await self._sender.send_messages(
                self.build_message(notification, channel, self.config.message_ttl_seconds)
            )
            logger.debug(f"Pushed {notification.kind.value} notification to {channel}")
            return True

        except Exception as e:
            logger.error(f"Failed to push notification to {channel}: {e}")
            return False

    async def __aenter__(self) -> "NotificationPublisher":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()


async def get_publisher() -> NotificationPublisher:
    """Get the global NotificationPublisher instance (connected)."""
    global _publisher

    if _publisher is None:
        config = MessagingConfig.from_env()
        _publisher = NotificationPublisher(config)
        await _publisher.connect()

    return _publisher


async def close_publisher() -> None:
    """Close the global NotificationPublisher instance."""
    global _publisher

    if _publisher is not None:
        await _publisher.close()
        _publisher = None
