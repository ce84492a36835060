"""HTTP client for posting JSON payloads to Slack and Discord webhooks."""

from typing import Any, Dict, Optional
from urllib.parse import urlsplit

import requests

from sheet_notifier.logging import get_logger

from .models import WebhookDeliveryError, WebhookResponse

logger = get_logger(__name__, component="notification")


def _redact(url: str) -> str:
    """Reduce a webhook URL to scheme and host; the path carries the secret."""
    parts = urlsplit(url)
    return f"{parts.scheme}://{parts.netloc}" if parts.netloc else "<invalid-url>"


class WebhookClient:
    """Thin wrapper around a requests.Session for webhook delivery.

    The client never interprets status codes: it returns whatever the
    endpoint answered and leaves success rules to the caller. Only
    failures to complete the request raise.
    """

    def __init__(
        self,
        timeout: int = 30,
        user_agent: str = "SheetNotifier/1.0",
        session: Optional[requests.Session] = None,
    ) -> None:
        """Initialize webhook client.

        Args:
            timeout: HTTP request timeout in seconds
            user_agent: User-Agent header for requests
            session: Optional pre-built session (for testing)
        """
        self.timeout = timeout
        self._session = session or requests.Session()
        self._session.headers.update({"User-Agent": user_agent})

    def post(self, url: str, payload: Dict[str, Any]) -> WebhookResponse:
        """POST a JSON payload.

        Args:
            url: Webhook URL
            payload: JSON-serializable body

        Returns:
            WebhookResponse with the status code and response text

        Raises:
            WebhookDeliveryError: On timeouts, connection errors or invalid URLs
        """
        target = _redact(url)
        logger.debug(
            f"HTTP POST to {target}",
            extra={"event": "notification.webhook.request", "target": target, "timeout": self.timeout},
        )

        try:
            response = self._session.post(url, json=payload, timeout=self.timeout)
        except requests.exceptions.Timeout as e:
            logger.warning(
                f"Webhook request to {target} timed out after {self.timeout}s",
                extra={"event": "notification.webhook.timeout", "target": target},
            )
            raise WebhookDeliveryError(f"Request timed out after {self.timeout}s: {e}") from e
        except requests.exceptions.RequestException as e:
            logger.warning(
                f"Webhook request to {target} failed: {type(e).__name__}",
                extra={"event": "notification.webhook.error", "target": target, "error_type": type(e).__name__},
            )
            raise WebhookDeliveryError(f"Webhook request failed: {e}") from e

        logger.debug(
            f"Webhook responded with HTTP {response.status_code}",
            extra={"event": "notification.webhook.response", "status_code": response.status_code},
        )
        return WebhookResponse(status_code=response.status_code, body=response.text or "")

    def close(self) -> None:
        """Close the underlying session."""
        self._session.close()
