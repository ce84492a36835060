"""Test helper utilities for Sheet Notifier tests."""

from .constants import DISCORD_WEBHOOK, FIXED_NOW, SLACK_WEBHOOK
from .fixture_source import FixtureSource, load_fixture_sheets

__all__ = ["DISCORD_WEBHOOK", "FIXED_NOW", "SLACK_WEBHOOK", "FixtureSource", "load_fixture_sheets"]
