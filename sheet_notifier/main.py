"""Main entry point for the Sheet Notifier service."""

from dotenv import load_dotenv
load_dotenv()

import argparse
import json
import os
import signal
import sys
import threading
import time
from pathlib import Path
from typing import List, Optional, Tuple

from sheet_notifier.config.environment import EnvironmentConfig
from sheet_notifier.config.exceptions import ConfigurationError
from sheet_notifier.config.loader import load_config, load_config_from_properties, validate_config_file
from sheet_notifier.config.models import AppConfig
from sheet_notifier.logging import get_logger
from sheet_notifier.logging.config import configure_logging
from sheet_notifier.matching.models import rows_to_dicts
from sheet_notifier.notifications.service import ErrorReporter, NotificationDispatcher
from sheet_notifier.notifications.webhook_client import WebhookClient
from sheet_notifier.pipeline import RuleRunner
from sheet_notifier.scheduler import SchedulerService
from sheet_notifier.sources.gsheets import GoogleSheetsSource

logger = get_logger(__name__, component="cli")


def load_runtime_config(
    config_path: Optional[Path], from_env: bool, log_level_override: Optional[str]
) -> Tuple[AppConfig, EnvironmentConfig]:
    """
    Load and prepare runtime configuration.

    Args:
        config_path: Path to configuration file (ignored with from_env)
        from_env: Read rule settings from environment variables instead of YAML
        log_level_override: Log level from CLI (takes precedence)

    Returns:
        Tuple of (AppConfig, EnvironmentConfig) with the effective log level set

    Raises:
        ConfigurationError: If configuration is invalid
    """
    if from_env:
        app_config, env_config = load_config_from_properties()
    else:
        app_config, env_config = load_config(config_path)

    # Log level priority: CLI > Environment > Config
    if log_level_override:
        env_config.log_level = log_level_override
    elif not env_config.log_level:
        env_config.log_level = app_config.logging.level or "INFO"

    return app_config, env_config


def build_runner(app_config: AppConfig, env_config: EnvironmentConfig) -> RuleRunner:
    """Wire the Google Sheets source, transports, dispatcher and error reporter."""
    source = GoogleSheetsSource.from_service_account(
        env_config.google_credentials_path,
        spreadsheet_id=app_config.spreadsheet.id,
        spreadsheet_url=app_config.spreadsheet.url,
    )
    webhook_client = WebhookClient(
        timeout=app_config.advanced.http_request_timeout,
        user_agent=app_config.advanced.user_agent,
    )
    dispatcher = NotificationDispatcher(
        webhook_client=webhook_client,
        env_config=env_config,
        email_config=app_config.email,
    )
    error_reporter = ErrorReporter(
        env_config=env_config,
        email_config=app_config.email,
        timezone=app_config.schedule.timezone,
    )
    return RuleRunner(app_config, source, dispatcher, error_reporter=error_reporter)


def run_preview(runner: RuleRunner, rule_names: Optional[List[str]]) -> int:
    """Print the rows each rule would notify about as JSON; nothing is sent."""
    preview = {}
    for rule in runner.select_rules(rule_names):
        preview[rule.name] = rows_to_dicts(runner.preview_rule(rule))

    print(json.dumps(preview, ensure_ascii=False, indent=2))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Sheet Notifier - Scan a Google Sheet and notify Slack, Discord or email about matching rows"
    )
    source_group = parser.add_mutually_exclusive_group()
    source_group.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to configuration file (default: config.yaml, then config/config.yaml)",
    )
    source_group.add_argument(
        "--from-env",
        action="store_true",
        help="Read rule settings from environment variables (SHEET_NAME, DATE_COLUMN, ...)",
    )
    parser.add_argument(
        "--manual-run",
        action="store_true",
        help="Run the rules once immediately and exit",
    )
    parser.add_argument(
        "--preview",
        action="store_true",
        help="Print matching rows as JSON without sending notifications",
    )
    parser.add_argument(
        "--check-config",
        action="store_true",
        help="Validate the configuration file and exit",
    )
    parser.add_argument(
        "--rule",
        action="append",
        dest="rules",
        metavar="NAME",
        help="Only run the named rule (repeatable)",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Log level (overrides config and environment)",
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main entry point for the Sheet Notifier.

    Returns:
        Exit code (0 for success, non-zero for failure).
    """
    start_time = time.time()
    args = build_parser().parse_args(argv)

    if args.check_config:
        return 0 if validate_config_file(args.config) else 1

    try:
        app_config, env_config = load_runtime_config(args.config, args.from_env, args.log_level)

        environment = os.environ.get("ENVIRONMENT", "local")
        configure_logging(
            level=env_config.log_level,
            format_type=app_config.logging.format,
            environment=environment,
        )

        logger.info(
            "Sheet Notifier starting",
            extra={
                "event": "service.starting",
                "config_source": "environment" if args.from_env else str(args.config or "default"),
                "log_level": env_config.log_level,
                "manual_run": args.manual_run,
                "preview": args.preview,
            },
        )
        logger.info(
            "Configuration loaded",
            extra={
                "event": "config.loaded",
                "rule_count": len(app_config.rules),
                "rules": [rule.name for rule in app_config.rules],
                "log_format": app_config.logging.format,
            },
        )

        runner = build_runner(app_config, env_config)

        if args.preview:
            return run_preview(runner, args.rules)

        if args.manual_run:
            logger.info("Executing manual run", extra={"event": "service.manual_run.starting"})
            result = runner.run_all(args.rules)

            logger.info(
                f"Manual run completed: {result.total_matched} rows matched, "
                f"{result.total_dispatched} notifications sent, {result.total_errors} failed rules",
                extra={
                    "event": "service.manual_run.completed",
                    "duration_seconds": result.total_duration_seconds,
                    "had_errors": result.had_errors,
                    "total_matched": result.total_matched,
                    "total_dispatched": result.total_dispatched,
                },
            )
            logger.info(
                "Sheet Notifier stopped",
                extra={"event": "service.stopping", "uptime_seconds": round(time.time() - start_time, 2)},
            )
            return 1 if result.had_errors else 0

        # Daemon mode: reject unknown --rule names before scheduling
        if args.rules:
            runner.select_rules(args.rules)

        shutdown_event = threading.Event()
        scheduler_service = SchedulerService(
            run_callable=lambda: runner.run_all(args.rules),
            schedule=app_config.schedule,
            shutdown_event=shutdown_event,
        )

        def signal_handler(signum, frame):
            logger.info(
                f"Received signal {signum}, shutting down",
                extra={"event": "service.signal_received", "signal": signum},
            )
            scheduler_service.shutdown(wait=False)

        signal.signal(signal.SIGINT, signal_handler)
        signal.signal(signal.SIGTERM, signal_handler)

        scheduler_service.start()
        logger.info(
            "Scheduler started. Press Ctrl+C to stop",
            extra={"event": "service.daemon_mode.started"},
        )

        try:
            shutdown_event.wait()
        except KeyboardInterrupt:
            logger.info(
                "Keyboard interrupt received, shutting down",
                extra={"event": "service.keyboard_interrupt"},
            )
            scheduler_service.shutdown(wait=False)

        logger.info(
            "Sheet Notifier stopped",
            extra={"event": "service.stopping", "uptime_seconds": round(time.time() - start_time, 2)},
        )
        return 0

    except ConfigurationError as e:
        print(f"Configuration Error: {e}", file=sys.stderr)
        logger.error(
            f"Configuration error: {e.message}",
            extra={"event": "config.error", "error_type": "ConfigurationError"},
        )
        return 1
    except KeyboardInterrupt:
        print("\nShutdown requested by user", file=sys.stderr)
        return 0
    except Exception as e:
        print(f"Fatal error: {e}", file=sys.stderr)
        logger.critical(
            "Fatal error during startup",
            extra={
                "event": "service.startup.failed",
                "error_type": type(e).__name__,
                "error": str(e),
            },
            exc_info=True,
        )
        return 1


if __name__ == "__main__":
    sys.exit(main())
