"""Environment variable loading and validation."""

import os
import re
from typing import Optional

from .exceptions import ConfigurationError

DEFAULT_CREDENTIALS_PATH = "credentials.json"

_VALID_LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class EnvironmentConfig:
    """Environment variable configuration holder."""

    def __init__(
        self,
        smtp_host: Optional[str] = None,
        smtp_port: Optional[int] = None,
        smtp_user: Optional[str] = None,
        smtp_pass: Optional[str] = None,
        smtp_sender_name: Optional[str] = None,
        error_notify_email: Optional[str] = None,
        log_level: Optional[str] = None,
        google_credentials_path: Optional[str] = None,
    ):
        """Initialize environment configuration."""
        self.smtp_host = smtp_host
        self.smtp_port = smtp_port or 587
        self.smtp_user = smtp_user
        self.smtp_pass = smtp_pass
        self.smtp_sender_name = smtp_sender_name or "Sheet Notifier"
        self.error_notify_email = error_notify_email
        self.log_level = log_level
        self.google_credentials_path = google_credentials_path or DEFAULT_CREDENTIALS_PATH

    @property
    def smtp_configured(self) -> bool:
        return bool(self.smtp_host)


def load_environment_config(require_smtp: bool = False) -> EnvironmentConfig:
    """
    Load and validate environment variables.

    Optional environment variables:
    - SMTP_HOST: SMTP server hostname (required when require_smtp is set)
    - SMTP_PORT: SMTP server port (1-65535, default 587)
    - SMTP_USER / SMTP_PASS: SMTP authentication credentials (set both or neither)
    - SMTP_SENDER_NAME: Display name for email sender
    - ERROR_NOTIFY_EMAIL: Operator address that receives run failure reports
    - LOG_LEVEL: Override log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    - GOOGLE_CREDENTIALS_PATH: Service account JSON key (default: credentials.json)

    Args:
        require_smtp: Whether SMTP settings must be present (email rules
            or an operator address are configured)

    Returns:
        EnvironmentConfig object with validated values

    Raises:
        ConfigurationError: If required variables are missing or invalid
    """
    errors = []

    smtp_host = os.getenv("SMTP_HOST")
    smtp_port_str = os.getenv("SMTP_PORT")
    smtp_user = os.getenv("SMTP_USER")
    smtp_pass = os.getenv("SMTP_PASS")
    smtp_sender_name = os.getenv("SMTP_SENDER_NAME")
    error_notify_email = os.getenv("ERROR_NOTIFY_EMAIL")
    log_level = os.getenv("LOG_LEVEL")
    google_credentials_path = os.getenv("GOOGLE_CREDENTIALS_PATH")

    if (require_smtp or error_notify_email) and not smtp_host:
        errors.append(
            "Missing required environment variable: SMTP_HOST "
            "(needed for EMAIL rules and ERROR_NOTIFY_EMAIL)"
        )

    smtp_port = None
    if smtp_port_str:
        try:
            smtp_port = int(smtp_port_str)
            if smtp_port < 1 or smtp_port > 65535:
                errors.append(
                    f"Invalid SMTP_PORT: {smtp_port}. Must be between 1 and 65535."
                )
        except ValueError:
            errors.append(
                f"Invalid SMTP_PORT: '{smtp_port_str}'. Must be a valid integer."
            )

    if error_notify_email:
        for email in [e.strip() for e in error_notify_email.split(",")]:
            if not _is_valid_email(email):
                errors.append(
                    f"Invalid email address format in ERROR_NOTIFY_EMAIL: '{email}'"
                )

    if log_level and log_level.upper() not in _VALID_LOG_LEVELS:
        errors.append(
            f"Invalid LOG_LEVEL: '{log_level}'. Must be one of: {', '.join(_VALID_LOG_LEVELS)}"
        )

    if smtp_user and not smtp_pass:
        errors.append(
            "SMTP_USER is set but SMTP_PASS is not. Both must be set for authentication."
        )
    elif smtp_pass and not smtp_user:
        errors.append(
            "SMTP_PASS is set but SMTP_USER is not. Both must be set for authentication."
        )

    if errors:
        raise ConfigurationError(
            "Environment variable validation failed",
            errors=errors,
            suggestions=[
                "Copy .env.example to .env and fill in your credentials",
                "Ensure SMTP_HOST is set when using EMAIL rules",
                "Verify SMTP_PORT is a number between 1 and 65535",
            ],
        )

    return EnvironmentConfig(
        smtp_host=smtp_host,
        smtp_port=smtp_port,
        smtp_user=smtp_user,
        smtp_pass=smtp_pass,
        smtp_sender_name=smtp_sender_name,
        error_notify_email=error_notify_email,
        log_level=log_level.upper() if log_level else None,
        google_credentials_path=google_credentials_path,
    )


def _is_valid_email(email: str) -> bool:
    # Full validation happens in notifications.smtp_client.parse_recipients
    pattern = r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$"
    return bool(re.match(pattern, email))
