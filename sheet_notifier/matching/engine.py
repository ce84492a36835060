"""Row matching engine for evaluating sheet rows against rule predicates.

This module implements the two predicate families:
1. DateThresholdMatcher: the date column is exactly N days from today
2. StatusMatchMatcher: every configured column equals its expected value

Both share one contract: given column vectors for the matcher's required
columns and an inclusive row range, return the matching rows together with
the notification column values read at the same row. Invalid and
non-matching cells are skipped, never raised.
"""

import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

from sheet_notifier.config.exceptions import ConfigurationError
from sheet_notifier.config.models import DateThresholdRule, RuleKind, StatusMatchRule
from sheet_notifier.utils.dates import (
    days_between,
    format_date,
    parse_date,
    to_local_date,
    today_in_timezone,
    utc_now,
)

from .models import ColumnVector, RowMatch

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]
ColumnVectors = Mapping[str, ColumnVector]


def cell_to_text(value: Any) -> str:
    """Stringify a raw cell value for comparison and display.

    Example:
        >>> cell_to_text(3.0), cell_to_text(None), cell_to_text(True)
        ('3', '', 'true')
    """
    if value is None:
        return ""
    if isinstance(value, bool):
        return str(value).lower()
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _unique(columns: List[str]) -> List[str]:
    return list(dict.fromkeys(columns))


class _ColumnReader:
    """Shared row access for matchers."""

    def __init__(self, notification_columns: List[str]):
        self.notification_columns = list(notification_columns)

    @staticmethod
    def _vector(column_vectors: ColumnVectors, column: str) -> ColumnVector:
        try:
            return column_vectors[column]
        except KeyError:
            raise ValueError(f"No data was fetched for column {column}") from None

    def _cell(self, column_vectors: ColumnVectors, column: str, row_number: int) -> Any:
        vector = self._vector(column_vectors, column)
        return vector.value_at(row_number - vector.start_row)

    def _extract_columns(self, column_vectors: ColumnVectors, row_number: int) -> Dict[str, str]:
        """Read every notification column at row_number, "" for empty cells."""
        extracted: Dict[str, str] = {}
        for column in self.notification_columns:
            value = self._cell(column_vectors, column, row_number)
            extracted[column] = cell_to_text(value) if value else ""
        return extracted


class DateThresholdMatcher(_ColumnReader):
    """Matches rows whose date column is exactly N days from today."""

    kind = RuleKind.DATE_THRESHOLD

    def __init__(
        self,
        rule: DateThresholdRule,
        clock: Optional[Clock] = None,
        logger_instance: Optional[logging.Logger] = None,
    ):
        """Initialize DateThresholdMatcher.

        Args:
            rule: Date threshold rule
            clock: Returns the current instant (defaults to UTC now)
            logger_instance: Optional logger instance (defaults to module logger)
        """
        super().__init__(rule.notification_columns)
        self.rule = rule
        self.clock = clock or utc_now
        self.logger = logger_instance or logger

    @property
    def anchor_column(self) -> str:
        """Column used for row deep links."""
        return self.rule.date_column

    def required_columns(self) -> List[str]:
        """Columns that must be fetched before calling match()."""
        return _unique([self.rule.date_column, *self.notification_columns])

    def date_columns(self) -> List[str]:
        """Columns to read as dates rather than display text."""
        return [self.rule.date_column]

    def match(self, column_vectors: ColumnVectors, start_row: int, end_row: int) -> List[RowMatch]:
        """Evaluate rows start_row..end_row (inclusive).

        Args:
            column_vectors: Column letter -> ColumnVector for required_columns()
            start_row: First row to evaluate
            end_row: Last row to evaluate

        Returns:
            RowMatch per matching row, in row order
        """
        if end_row < start_row:
            return []

        today = today_in_timezone(self.rule.timezone, self.clock())
        matches: List[RowMatch] = []
        invalid_count = 0

        for row_number in range(start_row, end_row + 1):
            raw_value = self._cell(column_vectors, self.rule.date_column, row_number)
            target = parse_date(raw_value)
            if target is None:
                invalid_count += 1
                continue

            diff_days = days_between(today, to_local_date(target, self.rule.timezone))
            if diff_days != self.rule.days_before_notification:
                continue

            columns = self._extract_columns(column_vectors, row_number)
            if self.rule.date_column in columns:
                columns[self.rule.date_column] = format_date(target, self.rule.timezone)

            matches.append(RowMatch(row_number=row_number, columns=columns, matched_date=target))

        self.logger.debug(
            f"Date rule '{self.rule.name}' evaluated {end_row - start_row + 1} rows",
            extra={
                "event": "rule.match.evaluated",
                "today": today.isoformat(),
                "matched": len(matches),
                "invalid_dates": invalid_count,
                "days_before_notification": self.rule.days_before_notification,
            },
        )
        return matches


class StatusMatchMatcher(_ColumnReader):
    """Matches rows where every configured column equals its expected value."""

    kind = RuleKind.STATUS_MATCH

    def __init__(
        self,
        rule: StatusMatchRule,
        clock: Optional[Clock] = None,
        logger_instance: Optional[logging.Logger] = None,
    ):
        super().__init__(rule.notification_columns)
        self.rule = rule
        self.conditions = list(zip(rule.match_columns, rule.match_values))
        self.logger = logger_instance or logger

    @property
    def anchor_column(self) -> str:
        """Column used for row deep links (the first match column)."""
        return self.rule.match_columns[0]

    def required_columns(self) -> List[str]:
        """Columns that must be fetched before calling match()."""
        return _unique([*self.rule.match_columns, *self.notification_columns])

    def date_columns(self) -> List[str]:
        return []

    def match(self, column_vectors: ColumnVectors, start_row: int, end_row: int) -> List[RowMatch]:
        """Evaluate rows start_row..end_row (inclusive) with AND semantics."""
        if end_row < start_row:
            return []

        matches: List[RowMatch] = []
        for row_number in range(start_row, end_row + 1):
            all_match = all(
                cell_to_text(self._cell(column_vectors, column, row_number)) == expected
                for column, expected in self.conditions
            )
            if not all_match:
                continue

            matches.append(
                RowMatch(
                    row_number=row_number,
                    columns=self._extract_columns(column_vectors, row_number),
                )
            )

        self.logger.debug(
            f"Status rule '{self.rule.name}' evaluated {end_row - start_row + 1} rows",
            extra={
                "event": "rule.match.evaluated",
                "matched": len(matches),
                "conditions": len(self.conditions),
            },
        )
        return matches


RowMatcher = Union[DateThresholdMatcher, StatusMatchMatcher]

MATCHERS = {
    RuleKind.DATE_THRESHOLD.value: DateThresholdMatcher,
    RuleKind.STATUS_MATCH.value: StatusMatchMatcher,
}


def get_matcher(
    rule: Union[DateThresholdRule, StatusMatchRule], clock: Optional[Clock] = None
) -> RowMatcher:
    """Select the matcher for a rule by its kind tag.

    Args:
        rule: Validated rule
        clock: Optional clock passed to date-aware matchers

    Returns:
        Matcher instance bound to the rule

    Raises:
        ConfigurationError: If the rule kind is not supported
    """
    matcher_class = MATCHERS.get(getattr(rule, "kind", None))
    if matcher_class is None:
        supported = ", ".join(sorted(MATCHERS))
        raise ConfigurationError(
            f"Unknown rule kind: {getattr(rule, 'kind', None)}. Supported kinds: {supported}"
        )
    return matcher_class(rule, clock=clock)
