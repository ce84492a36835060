"""Additional validation utilities for configuration."""

import warnings
from typing import Any, Dict, List


def check_for_warnings(config_dict: Dict[str, Any]) -> List[str]:
    """
    Check configuration for potential issues and return warnings.

    Args:
        config_dict: Raw configuration dictionary

    Returns:
        List of warning messages
    """
    warning_messages = []

    rules = config_dict.get("rules", [])
    if not isinstance(rules, list):
        return warning_messages

    for rule in rules:
        if not isinstance(rule, dict):
            continue
        name = rule.get("name", "Unknown")

        # Chat rules without anyone to ping are easy to miss in a busy channel
        channel = rule.get("channel", {})
        channel_type = str(channel.get("type", "SLACK")).upper() if isinstance(channel, dict) else ""
        mentions = rule.get("mentions") or {}
        if channel_type in ("SLACK", "DISCORD") and isinstance(mentions, dict):
            channel_mentions = mentions.get(channel_type.lower()) or {}
            if isinstance(channel_mentions, dict) and not any(channel_mentions.values()):
                warning_messages.append(
                    f"Rule '{name}' posts to {channel_type} without any mentions"
                )

        days = rule.get("days_before_notification")
        if isinstance(days, int) and days > 365:
            warning_messages.append(
                f"Rule '{name}' has days_before_notification={days}, which is over a year ahead"
            )

        columns = rule.get("notification_columns")
        if isinstance(columns, list):
            normalized = [c.strip().upper() for c in columns if isinstance(c, str)]
            duplicates = sorted({c for c in normalized if normalized.count(c) > 1})
            if duplicates:
                warning_messages.append(
                    f"Rule '{name}' lists duplicate notification_columns: {', '.join(duplicates)}"
                )

    return warning_messages


def emit_warnings(warning_messages: List[str]) -> None:
    """
    Emit warning messages using Python's warnings module.

    Args:
        warning_messages: List of warning messages to emit
    """
    for message in warning_messages:
        warnings.warn(message, UserWarning, stacklevel=2)
