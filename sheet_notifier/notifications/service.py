"""Notification dispatch for matched sheet rows.

This module provides the NotificationDispatcher that turns a rule's matching
rows into one notification on the rule's channel, and the ErrorReporter that
emails the operator when a rule run fails.
"""

import logging
import traceback
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict, FrozenSet, List, Optional, Sequence

from sheet_notifier.config.environment import EnvironmentConfig
from sheet_notifier.config.exceptions import ConfigurationError
from sheet_notifier.config.models import ChannelType, EmailConfig
from sheet_notifier.logging import get_logger
from sheet_notifier.logging.context import get_log_context, log_context
from sheet_notifier.matching.models import RowData, SheetInfo
from sheet_notifier.utils.dates import format_send_timestamp, utc_now

from .mentions import build_discord_mention_text, build_slack_mention_text, discord_allowed_mentions
from .models import (
    DispatchError,
    DispatchResult,
    WebhookDeliveryError,
)
from .renderers import RENDERERS, RenderContext, Renderer, render_email
from .smtp_client import SMTPClient, build_text_message, parse_recipients
from .templates import TemplateRenderer
from .webhook_client import WebhookClient

logger = get_logger(__name__, component="notification")

ERROR_REPORT_SUBJECT = "[sheet-notifier] ルール実行エラー: {rule}"


@dataclass(frozen=True)
class ChannelSpec:
    """Renderer and delivery rules for one channel type.

    Attributes:
        renderer: Payload renderer
        success_codes: Webhook status codes that count as delivered (empty for email)
    """

    renderer: Renderer
    success_codes: FrozenSet[int] = frozenset()

    @property
    def is_webhook(self) -> bool:
        return bool(self.success_codes)


WEBHOOK_SUCCESS_CODES: Dict[ChannelType, FrozenSet[int]] = {
    ChannelType.SLACK: frozenset({200}),
    ChannelType.DISCORD: frozenset({200, 204}),
}

CHANNELS: Dict[ChannelType, ChannelSpec] = {
    channel_type: ChannelSpec(renderer, WEBHOOK_SUCCESS_CODES.get(channel_type, frozenset()))
    for channel_type, renderer in RENDERERS.items()
}


def _channel_name(channel_type) -> str:
    return getattr(channel_type, "value", str(channel_type))


def build_render_context(
    rule,
    rows: Sequence[RowData],
    sheet_info: Optional[SheetInfo] = None,
    rule_title: Optional[str] = None,
    rendered_at: Optional[datetime] = None,
) -> RenderContext:
    """Assemble the RenderContext for a rule, including its mention tags.

    When sheet_info is missing the worksheet title falls back to the rule's
    sheet name and no header labels are used.
    """
    channel_type = rule.channel.type
    mention_text = ""
    allowed_mentions = None

    if channel_type == ChannelType.SLACK:
        mention_text = build_slack_mention_text(rule.mentions.slack)
    elif channel_type == ChannelType.DISCORD:
        mention_text = build_discord_mention_text(rule.mentions.discord)
        allowed_mentions = discord_allowed_mentions(rule.mentions.discord)

    return RenderContext(
        rule_title=rule_title or rule.notification_title,
        rows=list(rows),
        sheet_info=sheet_info or SheetInfo(title=rule.sheet_name),
        timezone=rule.timezone,
        mention_text=mention_text,
        allowed_mentions=allowed_mentions,
        rendered_at=rendered_at or utc_now(),
    )


class NotificationDispatcher:
    """Sends one notification per rule run on the rule's channel.

    Flow:
    1. Skip when there are no rows (transports are never touched)
    2. Look up the channel spec by the rule's channel type
    3. Render the payload
    4. Deliver via webhook or SMTP and check the outcome

    Delivery is attempted exactly once; every failure surfaces as DispatchError.
    """

    def __init__(
        self,
        webhook_client: Optional[WebhookClient] = None,
        smtp_client: Optional[SMTPClient] = None,
        env_config: Optional[EnvironmentConfig] = None,
        email_config: Optional[EmailConfig] = None,
        templates: Optional[TemplateRenderer] = None,
        clock: Optional[Callable[[], datetime]] = None,
        logger_instance: Optional[logging.Logger] = None,
    ):
        """Initialize dispatcher.

        Args:
            webhook_client: Webhook transport (creates default if None)
            smtp_client: SMTP transport (creates default if None)
            env_config: SMTP settings; email dispatch fails without them
            email_config: Email transport settings (TLS)
            templates: Template renderer for email bodies
            clock: Returns the render instant (defaults to UTC now)
            logger_instance: Logger instance (uses module logger if None)
        """
        self.webhook_client = webhook_client or WebhookClient()
        self.smtp_client = smtp_client or SMTPClient()
        self.env_config = env_config
        self.email_config = email_config or EmailConfig()
        self.templates = templates
        self.clock = clock or utc_now
        self.logger = logger_instance or logger

    def dispatch(
        self,
        rule,
        rows: Sequence[RowData],
        sheet_info: Optional[SheetInfo] = None,
        rule_title: Optional[str] = None,
    ) -> DispatchResult:
        """Send the notification for a rule's matching rows.

        Args:
            rule: Rule whose channel and mentions are used
            rows: Matching rows in sheet order
            sheet_info: Worksheet title, URL and header labels
            rule_title: Title override (defaults to the rule's notification title)

        Returns:
            DispatchResult with status "sent" or "skipped"

        Raises:
            ConfigurationError: If the channel type is not supported
            DispatchError: If delivery fails
        """
        channel_type = rule.channel.type
        channel = _channel_name(channel_type)

        with log_context(channel=channel):
            if not rows:
                self.logger.info(
                    "No rows to notify",
                    extra={"event": "notification.dispatch.skipped", "reason": "no_rows"},
                )
                return DispatchResult(rule_name=rule.name, channel=channel, row_count=0, status="skipped")

            spec = CHANNELS.get(channel_type)
            if spec is None:
                supported = ", ".join(_channel_name(c) for c in CHANNELS)
                raise ConfigurationError(
                    f"Unknown notification type: {channel}",
                    suggestions=[f"Use one of: {supported}"],
                )

            context = build_render_context(
                rule, rows, sheet_info, rule_title, rendered_at=self.clock()
            )

            if spec.is_webhook:
                status_code = self._send_webhook(rule, spec, context)
            else:
                self._send_email(rule, context)
                status_code = None

            self.logger.info(
                f"Successfully sent notification to {channel} ({len(rows)} rows)",
                extra={
                    "event": "notification.dispatch.success",
                    "row_count": len(rows),
                    "status_code": status_code,
                },
            )
            return DispatchResult(
                rule_name=rule.name,
                channel=channel,
                row_count=len(rows),
                status="sent",
                status_code=status_code,
            )

    def _send_webhook(self, rule, spec: ChannelSpec, context: RenderContext) -> int:
        channel = _channel_name(rule.channel.type)
        payload = spec.renderer(context)

        try:
            response = self.webhook_client.post(rule.channel.webhook_url, payload)
        except WebhookDeliveryError as e:
            self.logger.error(
                f"Failed to send notification: {e}",
                extra={"event": "notification.dispatch.failure", "error_type": type(e).__name__},
            )
            raise DispatchError(f"{channel} webhook request failed: {e}", channel=channel) from e

        if response.status_code not in spec.success_codes:
            self.logger.error(
                f"{channel} API error: HTTP {response.status_code}",
                extra={
                    "event": "notification.dispatch.failure",
                    "status_code": response.status_code,
                    "response_body": response.body[:500],
                },
            )
            raise DispatchError(
                f"{channel} API error: HTTP {response.status_code}: {response.body}",
                channel=channel,
                status_code=response.status_code,
                body=response.body,
            )

        return response.status_code

    def _send_email(self, rule, context: RenderContext) -> None:
        if self.env_config is None or not self.env_config.smtp_configured:
            raise DispatchError("Email send error: SMTP is not configured", channel="EMAIL")

        try:
            body = render_email(context, self.templates)
            recipients = parse_recipients(rule.channel.email_recipient)
            message = build_text_message(rule.email_subject, body, recipients, self.env_config)
            self.smtp_client.send(message, self.env_config, self.email_config.use_tls)
        except Exception as e:
            self.logger.error(
                f"Failed to send notification: {e}",
                extra={"event": "notification.dispatch.failure", "error_type": type(e).__name__},
            )
            raise DispatchError(f"Email send error: {e}", channel="EMAIL") from e


class ErrorReporter:
    """Emails the operator when a rule run fails.

    Reporting is a side channel: every failure here is logged and swallowed
    so the original error stays the one that is surfaced.
    """

    def __init__(
        self,
        env_config: Optional[EnvironmentConfig] = None,
        smtp_client: Optional[SMTPClient] = None,
        email_config: Optional[EmailConfig] = None,
        templates: Optional[TemplateRenderer] = None,
        timezone: str = "Asia/Tokyo",
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.env_config = env_config
        self.smtp_client = smtp_client or SMTPClient()
        self.email_config = email_config or EmailConfig()
        self.templates = templates
        self.timezone = timezone
        self.clock = clock or utc_now

    @property
    def enabled(self) -> bool:
        """Whether an operator address and SMTP server are configured."""
        return bool(
            self.env_config
            and self.env_config.error_notify_email
            and self.env_config.smtp_configured
        )

    def report(self, rule_name: str, error: BaseException) -> bool:
        """Email the operator about a failed rule run.

        Args:
            rule_name: Rule whose run failed
            error: The exception that ended the run

        Returns:
            True if the report was sent, False if disabled or delivery failed
        """
        if not self.enabled:
            logger.debug(
                "Error reporting disabled (ERROR_NOTIFY_EMAIL or SMTP_HOST not set)",
                extra={"event": "error_report.disabled"},
            )
            return False

        try:
            templates = self.templates or TemplateRenderer()
            body = templates.render_error_report(
                {
                    "rule_name": rule_name,
                    "run_id": get_log_context().get("run_id"),
                    "occurred_at": format_send_timestamp(self.clock(), self.timezone),
                    "error_type": type(error).__name__,
                    "error_message": str(error),
                    "traceback": "".join(
                        traceback.format_exception(type(error), error, error.__traceback__)
                    ),
                }
            )
            recipients: List[str] = parse_recipients(
                self.env_config.error_notify_email, source="ERROR_NOTIFY_EMAIL"
            )
            message = build_text_message(
                ERROR_REPORT_SUBJECT.format(rule=rule_name), body, recipients, self.env_config
            )
            self.smtp_client.send(message, self.env_config, self.email_config.use_tls)
        except Exception as e:
            logger.error(
                f"Failed to send error report for rule '{rule_name}': {e}",
                exc_info=True,
                extra={"event": "error_report.failure", "error_type": type(e).__name__},
            )
            return False

        logger.info(
            f"Error report sent for rule '{rule_name}'",
            extra={"event": "error_report.sent"},
        )
        return True
