# ============================================================================
# MESSAGING CONFIGURATION
# ============================================================================
# EPOCH: 1 - WORKFLOW ORCHESTRATION
# STATUS: Core - Service Bus configuration
# PURPOSE: Centralize push-channel configuration
# CREATED: 19 OCT 2026
# ============================================================================
"""
Messaging Configuration

Configuration for the Azure Service Bus topic that carries real-time
notification pushes. Supports both connection string and managed
identity authentication.
"""

import os
from dataclasses import dataclass
from typing import Optional

from core.config import get_defaults


@dataclass
class MessagingConfig:
    """
    Configuration for Azure Service Bus messaging.

    Loaded from environment variables.
    """
    # Connection - either connection_string OR fully_qualified_namespace
    connection_string: Optional[str] = None
    fully_qualified_namespace: Optional[str] = None

    # Managed identity settings
    use_managed_identity: bool = False
    managed_identity_client_id: Optional[str] = None

    # Topic carrying one message per notification; subject = push channel
    notification_topic: str = "studio-notifications"

    # Seconds an undelivered push stays on the topic
    message_ttl_seconds: int = 3600

    @classmethod
    def from_env(cls) -> "MessagingConfig":
        """
        Load configuration from environment variables.

        For connection string auth:
            STUDIO_SERVICEBUS_CONNECTION_STRING: Service Bus connection string

        For managed identity auth:
            USE_MANAGED_IDENTITY: Set to "true" to use managed identity
            STUDIO_SERVICEBUS_FQDN: Fully qualified namespace
            AZURE_CLIENT_ID: Optional client ID for user-assigned managed identity

        Common:
            NOTIFICATION_PUSH_TOPIC: Topic name (default from NotificationDefaults)
        """
        topic = get_defaults().notifications.push_topic
        use_mi = os.environ.get("USE_MANAGED_IDENTITY", "").lower() == "true"

        if use_mi:
            fqdn = os.environ.get("STUDIO_SERVICEBUS_FQDN")
            if not fqdn:
                raise ValueError(
                    "STUDIO_SERVICEBUS_FQDN required when USE_MANAGED_IDENTITY=true"
                )
            return cls(
                use_managed_identity=True,
                fully_qualified_namespace=fqdn,
                managed_identity_client_id=os.environ.get("AZURE_CLIENT_ID"),
                notification_topic=topic,
            )

        connection_string = os.environ.get("STUDIO_SERVICEBUS_CONNECTION_STRING")
        if not connection_string:
            raise ValueError(
                "STUDIO_SERVICEBUS_CONNECTION_STRING required (or set USE_MANAGED_IDENTITY=true)"
            )
        return cls(
            connection_string=connection_string,
            notification_topic=topic,
        )
