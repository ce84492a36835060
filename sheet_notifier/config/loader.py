"""Configuration loader for Sheet Notifier."""

import os
from pathlib import Path
from typing import Mapping, Optional, Tuple

import yaml
from pydantic import ValidationError

from .environment import EnvironmentConfig, load_environment_config
from .exceptions import ConfigurationError
from .models import AppConfig
from .properties import build_config_dict_from_properties
from .validators import check_for_warnings, emit_warnings


def load_config(config_path: Optional[Path] = None) -> Tuple[AppConfig, EnvironmentConfig]:
    """
    Load and validate configuration from YAML file and environment variables.

    Implements fallback logic for config file location:
    1. Use provided config_path if given
    2. Try config.yaml in current directory
    3. Try ./config/config.yaml
    4. Fail with helpful error message

    Args:
        config_path: Optional path to configuration file

    Returns:
        Tuple of (AppConfig, EnvironmentConfig) with validated configuration

    Raises:
        ConfigurationError: If configuration is invalid or file not found
    """
    config_file = _find_config_file(config_path)

    try:
        with open(config_file, "r", encoding="utf-8") as f:
            config_dict = yaml.safe_load(f)
    except FileNotFoundError:
        raise ConfigurationError(
            f"Configuration file not found: {config_file}",
            suggestions=[
                "Copy config.example.yaml to config.yaml",
                f"Ensure {config_file} exists and is readable",
            ],
        )
    except yaml.YAMLError as e:
        raise ConfigurationError(
            f"Failed to parse YAML configuration: {e}",
            suggestions=[
                "Check YAML syntax in your config file",
                "Ensure proper indentation (use spaces, not tabs)",
            ],
        )
    except OSError as e:
        raise ConfigurationError(
            f"Failed to read configuration file: {e}",
            suggestions=[
                f"Ensure {config_file} is readable",
                "Check file permissions",
            ],
        )

    if not config_dict:
        raise ConfigurationError(
            "Configuration file is empty",
            suggestions=[
                "Copy config.example.yaml to config.yaml",
                "Add at least one rule to your config file",
            ],
        )

    app_config = parse_app_config(config_dict)
    env_config = _load_environment(app_config)
    return app_config, env_config


def load_config_from_properties(
    properties: Optional[Mapping[str, str]] = None,
) -> Tuple[AppConfig, EnvironmentConfig]:
    """
    Load configuration from a flat key/value property store.

    Reads the process environment when no mapping is given, so a `.env`
    file loaded by python-dotenv can stand in for a config file.

    Args:
        properties: Property mapping (defaults to os.environ)

    Returns:
        Tuple of (AppConfig, EnvironmentConfig) with validated configuration

    Raises:
        ConfigurationError: If the properties are invalid
    """
    props = os.environ if properties is None else properties
    config_dict = build_config_dict_from_properties(props)
    app_config = parse_app_config(config_dict)
    env_config = _load_environment(app_config)
    return app_config, env_config


def parse_app_config(config_dict: dict) -> AppConfig:
    """
    Validate a raw configuration dictionary.

    Args:
        config_dict: Parsed YAML or property-derived dictionary

    Returns:
        Validated AppConfig

    Raises:
        ConfigurationError: If validation fails
    """
    if not isinstance(config_dict, dict):
        raise ConfigurationError(
            "Configuration must be a mapping at the top level",
            suggestions=["Review config.example.yaml for correct format"],
        )

    warnings = check_for_warnings(config_dict)
    if warnings:
        emit_warnings(warnings)

    try:
        return AppConfig.model_validate(config_dict)
    except ValidationError as e:
        raise ConfigurationError.from_validation_error(e)


def _load_environment(app_config: AppConfig) -> EnvironmentConfig:
    try:
        return load_environment_config(require_smtp=app_config.uses_email())
    except ConfigurationError:
        raise
    except Exception as e:
        raise ConfigurationError(
            f"Failed to load environment configuration: {e}",
            suggestions=[
                "Copy .env.example to .env and fill in your credentials",
            ],
        )


def _find_config_file(config_path: Optional[Path] = None) -> Path:
    """
    Find configuration file using fallback logic.

    Args:
        config_path: Optional explicit path to config file

    Returns:
        Path to configuration file

    Raises:
        ConfigurationError: If no config file is found
    """
    if config_path:
        if not config_path.exists():
            raise ConfigurationError(
                f"Specified configuration file not found: {config_path}",
                suggestions=[
                    f"Ensure {config_path} exists",
                    "Check the path and try again",
                ],
            )
        return config_path

    candidates = [
        Path("config.yaml"),
        Path("config") / "config.yaml",
    ]

    for candidate in candidates:
        if candidate.exists():
            return candidate

    raise ConfigurationError(
        "Configuration file not found",
        errors=[
            "Tried: config.yaml",
            "Tried: config/config.yaml",
        ],
        suggestions=[
            "Copy config.example.yaml to config.yaml",
            "Use --config flag to specify a custom location",
            "Use --from-env to read rule settings from environment variables",
        ],
    )


def validate_config_file(config_path: Optional[Path] = None) -> bool:
    """
    Validate a configuration file without loading environment variables.

    Args:
        config_path: Path to configuration file (searches default locations if None)

    Returns:
        True if valid, False otherwise (errors printed to stdout)
    """
    try:
        config_path = _find_config_file(config_path)
        with open(config_path, "r", encoding="utf-8") as f:
            config_dict = yaml.safe_load(f)

        parse_app_config(config_dict or {})
        print(f"✓ Configuration file {config_path} is valid")
        return True

    except ConfigurationError as e:
        print(f"✗ Configuration validation failed:\n{e}")
        return False
    except (OSError, yaml.YAMLError) as e:
        print(f"✗ Unexpected error: {e}")
        return False
