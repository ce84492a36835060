"""Data models and exceptions for the notification service.

This module defines result types and custom exceptions used throughout
the notification pipeline.
"""

from dataclasses import dataclass
from typing import Optional


class NotificationError(Exception):
    """Base exception for notification-related errors."""

    pass


class NotificationTemplateError(NotificationError):
    """Raised when template rendering fails due to configuration or missing variables."""

    pass


class SMTPDeliveryError(NotificationError):
    """Raised when the SMTP transport fails to deliver a message."""

    pass


class WebhookDeliveryError(NotificationError):
    """Raised when a webhook request cannot be completed (network, timeout)."""

    pass


class DispatchError(NotificationError):
    """Raised when a rule's notification could not be delivered.

    Attributes:
        channel: Channel type the dispatch targeted
        status_code: HTTP status returned by a webhook, if any
        body: Response body returned by a webhook, if any
    """

    def __init__(
        self,
        message: str,
        channel: Optional[str] = None,
        status_code: Optional[int] = None,
        body: Optional[str] = None,
    ):
        super().__init__(message)
        self.channel = channel
        self.status_code = status_code
        self.body = body


@dataclass(frozen=True)
class WebhookResponse:
    """Status and body returned by a webhook endpoint."""

    status_code: int
    body: str = ""


@dataclass
class DispatchResult:
    """Outcome of dispatching one rule's notification.

    Attributes:
        rule_name: Rule the notification belongs to
        channel: Channel type used
        row_count: Number of rows in the notification
        status: "sent" or "skipped" (no rows)
        status_code: Webhook HTTP status, None for email and skipped dispatches
    """

    rule_name: str
    channel: str
    row_count: int
    status: str  # "sent", "skipped"
    status_code: Optional[int] = None

    def is_success(self) -> bool:
        """Check if a notification was actually delivered.

        Returns:
            True if status is "sent", False otherwise
        """
        return self.status == "sent"
