"""Shared fixtures for Sheet Notifier tests."""

import logging

import pytest

from sheet_notifier.config.environment import EnvironmentConfig
from sheet_notifier.config.models import DateThresholdRule, StatusMatchRule
from sheet_notifier.logging.context import clear_log_context
from tests.helpers.constants import DISCORD_WEBHOOK, FIXED_NOW, SLACK_WEBHOOK


@pytest.fixture(autouse=True)
def clean_context():
    """Clear logging context before and after each test."""
    clear_log_context()
    yield
    clear_log_context()


@pytest.fixture
def fixed_now():
    return FIXED_NOW


@pytest.fixture
def clock():
    """Clock that always returns FIXED_NOW."""
    return lambda: FIXED_NOW


def _channel(channel_type: str) -> dict:
    if channel_type == "EMAIL":
        return {"type": "EMAIL", "email_recipient": "team@example.com"}
    if channel_type == "DISCORD":
        return {"type": "DISCORD", "webhook_url": DISCORD_WEBHOOK}
    return {"type": "SLACK", "webhook_url": SLACK_WEBHOOK}


@pytest.fixture
def make_date_rule():
    """Factory for date threshold rules with overridable fields."""

    def _make(channel_type: str = "SLACK", **overrides) -> DateThresholdRule:
        data = {
            "name": "date",
            "kind": "date_threshold",
            "date_column": "L",
            "days_before_notification": 1,
            "notification_columns": ["D"],
            "channel": _channel(channel_type),
        }
        data.update(overrides)
        return DateThresholdRule.model_validate(data)

    return _make


@pytest.fixture
def make_status_rule():
    """Factory for status match rules with overridable fields."""

    def _make(channel_type: str = "SLACK", **overrides) -> StatusMatchRule:
        data = {
            "name": "status",
            "kind": "status_match",
            "match_columns": ["F", "G"],
            "match_values": ["未対応", "要確認"],
            "notification_columns": ["D"],
            "channel": _channel(channel_type),
        }
        data.update(overrides)
        return StatusMatchRule.model_validate(data)

    return _make


@pytest.fixture
def smtp_env_config():
    """Environment config with SMTP and an operator address."""
    return EnvironmentConfig(
        smtp_host="smtp.example.com",
        smtp_port=587,
        smtp_user="bot@example.com",
        smtp_pass="secret123",
        smtp_sender_name="Sheet Notifier",
        error_notify_email="ops@example.com",
    )


@pytest.fixture(autouse=True)
def restore_root_logger():
    """Undo configure_logging() changes made by a test."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
