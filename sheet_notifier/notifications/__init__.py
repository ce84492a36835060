"""Notification delivery for matched sheet rows.

This module provides the complete notification pipeline:
- NotificationDispatcher: Renders and sends one notification per rule run
- ErrorReporter: Emails the operator when a rule run fails
- Renderers: Slack blocks, Discord embeds and plain-text email bodies
- Mention helpers: Slack/Discord mention tags
- WebhookClient / SMTPClient: Transports
- TemplateRenderer: Jinja2-based email body rendering
"""

from .mentions import build_discord_mention_text, build_slack_mention_text, discord_allowed_mentions
from .models import (
    DispatchError,
    DispatchResult,
    NotificationError,
    NotificationTemplateError,
    SMTPDeliveryError,
    WebhookDeliveryError,
    WebhookResponse,
)
from .renderers import RENDERERS, RenderContext, render_discord, render_email, render_slack
from .service import CHANNELS, ErrorReporter, NotificationDispatcher, build_render_context
from .smtp_client import SMTPClient, build_sender_address, build_text_message, parse_recipients
from .templates import TemplateRenderer
from .webhook_client import WebhookClient

__all__ = [
    # Main services
    "NotificationDispatcher",
    "ErrorReporter",
    "CHANNELS",
    "build_render_context",
    # Renderers
    "RENDERERS",
    "RenderContext",
    "render_slack",
    "render_discord",
    "render_email",
    # Mentions
    "build_slack_mention_text",
    "build_discord_mention_text",
    "discord_allowed_mentions",
    # Models and results
    "DispatchResult",
    "WebhookResponse",
    # Exceptions
    "NotificationError",
    "DispatchError",
    "NotificationTemplateError",
    "SMTPDeliveryError",
    "WebhookDeliveryError",
    # Components
    "TemplateRenderer",
    "SMTPClient",
    "WebhookClient",
    # Utilities
    "build_sender_address",
    "build_text_message",
    "parse_recipients",
]
