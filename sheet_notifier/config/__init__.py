"""Configuration management module for Sheet Notifier."""

from .environment import EnvironmentConfig, load_environment_config
from .exceptions import ConfigurationError
from .loader import load_config, load_config_from_properties, parse_app_config, validate_config_file
from .models import (
    AdvancedConfig,
    AppConfig,
    ChannelConfig,
    ChannelType,
    DateThresholdRule,
    DiscordMentions,
    EmailConfig,
    LogFormat,
    LoggingConfig,
    LogLevel,
    MentionConfig,
    Rule,
    RuleKind,
    ScheduleConfig,
    SlackMentions,
    SpreadsheetConfig,
    StatusMatchRule,
)
from .properties import build_config_dict_from_properties, parse_csv

__all__ = [
    # Main loader functions
    "load_config",
    "load_config_from_properties",
    "parse_app_config",
    "validate_config_file",
    "load_environment_config",
    "build_config_dict_from_properties",
    "parse_csv",
    # Configuration models
    "AppConfig",
    "SpreadsheetConfig",
    "ScheduleConfig",
    "EmailConfig",
    "LoggingConfig",
    "AdvancedConfig",
    "EnvironmentConfig",
    "ChannelConfig",
    "MentionConfig",
    "SlackMentions",
    "DiscordMentions",
    "Rule",
    "DateThresholdRule",
    "StatusMatchRule",
    # Enums
    "ChannelType",
    "RuleKind",
    "LogLevel",
    "LogFormat",
    # Exceptions
    "ConfigurationError",
]
