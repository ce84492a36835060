"""Rule run orchestration: read sheet, match rows, dispatch one notification."""

import threading
import time
from datetime import datetime
from typing import Callable, Iterable, List, Optional, Tuple
from uuid import uuid4

from sheet_notifier.config.exceptions import ConfigurationError
from sheet_notifier.config.models import AppConfig
from sheet_notifier.logging import get_logger
from sheet_notifier.logging.context import log_context
from sheet_notifier.matching.engine import get_matcher
from sheet_notifier.matching.models import RowData, RowMatch, SheetInfo
from sheet_notifier.matching.records import build_rows
from sheet_notifier.notifications.service import ErrorReporter, NotificationDispatcher
from sheet_notifier.sources.base import TabularSource
from sheet_notifier.utils.dates import utc_now

from .models import PipelineRunResult, RuleRunResult

logger = get_logger(__name__, component="pipeline")


class RuleRunner:
    """
    Runs configured rules against one spreadsheet.

    Each rule run is strictly sequential: read the columns the rule needs,
    match rows, assemble RowData records, and hand them to the dispatcher.
    A failed rule run is logged, recorded in its result and reported to the
    operator; it never stops the other rules.
    """

    def __init__(
        self,
        app_config: AppConfig,
        source: TabularSource,
        dispatcher: NotificationDispatcher,
        error_reporter: Optional[ErrorReporter] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """
        Initialize the rule runner.

        Args:
            app_config: Application configuration
            source: Tabular source for the configured spreadsheet
            dispatcher: Notification dispatcher
            error_reporter: Operator error side channel (disabled if None)
            clock: Returns the current instant, used for "today" (defaults to UTC now)
        """
        self.app_config = app_config
        self.source = source
        self.dispatcher = dispatcher
        self.error_reporter = error_reporter
        self.clock = clock or utc_now
        self._lock = threading.Lock()

    def _match(self, rule) -> Tuple[object, List[RowMatch]]:
        matcher = get_matcher(rule, clock=self.clock)
        last_row = self.source.get_last_row_index(rule.sheet_name)

        if last_row < rule.start_row:
            logger.info(
                "No data rows found in sheet",
                extra={"event": "rule.match.no_data", "last_row": last_row, "start_row": rule.start_row},
            )
            return matcher, []

        vectors = self.source.fetch_columns(
            rule.sheet_name,
            matcher.required_columns(),
            rule.start_row,
            last_row,
            date_columns=matcher.date_columns(),
        )
        matches = matcher.match(vectors, rule.start_row, last_row)

        logger.info(
            f"Matched {len(matches)} rows",
            extra={
                "event": "rule.match.completed",
                "matched": len(matches),
                "rows_scanned": last_row - rule.start_row + 1,
            },
        )
        return matcher, matches

    def _collect_rows(self, rule) -> Tuple[List[RowData], Optional[SheetInfo]]:
        """Match rows and assemble records; sheet info is resolved only for matches."""
        matcher, matches = self._match(rule)
        if not matches:
            return [], None

        sheet_info = self.source.resolve_sheet_info(rule.sheet_name, rule.start_row)
        rows = build_rows(matches, matcher.anchor_column, sheet_info.sheet_url, rule.timezone)
        return rows, sheet_info

    def preview_rule(self, rule) -> List[RowData]:
        """
        Match a rule without sending anything.

        Errors propagate to the caller.

        Returns:
            RowData records that a real run would notify about
        """
        with log_context(rule=rule.name, sheet=rule.sheet_name):
            rows, _ = self._collect_rows(rule)
            logger.info(
                f"Preview found {len(rows)} rows",
                extra={"event": "rule.preview.completed", "matched": len(rows)},
            )
            return rows

    def run_rule(self, rule) -> RuleRunResult:
        """
        Run a single rule end to end.

        Returns:
            RuleRunResult; failures are captured in it rather than raised
        """
        channel = getattr(rule.channel.type, "value", str(rule.channel.type))
        result = RuleRunResult(rule_name=rule.name, kind=rule.kind, channel=channel)
        rule_start = time.time()

        with log_context(rule=rule.name, sheet=rule.sheet_name, channel=channel):
            logger.info(
                f"Running rule: {rule.name}",
                extra={"event": "rule.run.started", "kind": rule.kind},
            )

            try:
                rows, sheet_info = self._collect_rows(rule)
                result.matched_count = len(rows)

                dispatch_result = self.dispatcher.dispatch(rule, rows, sheet_info=sheet_info)
                result.dispatched = dispatch_result.is_success()

            except Exception as e:
                result.error = str(e)
                result.error_type = type(e).__name__
                logger.error(
                    f"Rule run failed for {rule.name}: {e}",
                    extra={"event": "rule.run.failed", "error_type": type(e).__name__},
                    exc_info=True,
                )
                if self.error_reporter is not None:
                    self.error_reporter.report(rule.name, e)

            finally:
                result.duration_seconds = time.time() - rule_start
                logger.info(
                    f"Rule run finished: {rule.name}",
                    extra={
                        "event": "rule.run.completed",
                        "matched": result.matched_count,
                        "dispatched": result.dispatched,
                        "had_error": result.had_error,
                        "duration_ms": int(result.duration_seconds * 1000),
                    },
                )

        return result

    def select_rules(self, rule_names: Optional[Iterable[str]]) -> list:
        if rule_names is None:
            return list(self.app_config.rules)

        selected = []
        for name in rule_names:
            rule = self.app_config.get_rule(name)
            if rule is None:
                available = ", ".join(r.name for r in self.app_config.rules)
                raise ConfigurationError(
                    f"Unknown rule: {name}",
                    suggestions=[f"Available rules: {available}"],
                )
            selected.append(rule)
        return selected

    def run_all(self, rule_names: Optional[Iterable[str]] = None) -> PipelineRunResult:
        """
        Run every configured rule (or the named subset) in configuration order.

        This method:
        1. Acquires a lock to prevent overlapping runs
        2. Runs each rule sequentially under a shared run_id
        3. Aggregates per-rule results

        Raises:
            ConfigurationError: If rule_names names an unknown rule
        """
        rules = self.select_rules(rule_names)
        run_started_at = utc_now()
        run_id = uuid4().hex

        if not self._lock.acquire(blocking=False):
            with log_context(run_id=run_id):
                logger.warning(
                    "Run skipped: previous run still in progress",
                    extra={"event": "pipeline.run.skipped", "reason": "lock_held"},
                )
            return PipelineRunResult(
                run_started_at=run_started_at,
                run_finished_at=utc_now(),
                skipped=True,
            )

        try:
            with log_context(run_id=run_id):
                self.source.reset()
                logger.info(
                    f"Run started for {len(rules)} rules",
                    extra={"event": "pipeline.run.started", "rule_count": len(rules)},
                )

                rule_results = [self.run_rule(rule) for rule in rules]

                result = PipelineRunResult(
                    run_started_at=run_started_at,
                    run_finished_at=utc_now(),
                    rule_results=rule_results,
                )

                logger.info(
                    "Run completed",
                    extra={
                        "event": "pipeline.run.completed",
                        "duration_ms": int(result.total_duration_seconds * 1000),
                        "total_matched": result.total_matched,
                        "total_dispatched": result.total_dispatched,
                        "total_errors": result.total_errors,
                        "had_errors": result.had_errors,
                    },
                )
                return result
        finally:
            self._lock.release()
