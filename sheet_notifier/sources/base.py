"""Base class for tabular sources.

This module provides the abstract interface the rule runner reads sheets
through, along with shared helpers that fetch several columns at once and
resolve display information for notifications.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, List, Tuple

from sheet_notifier.logging import get_logger
from sheet_notifier.matching.models import ColumnVector, SheetInfo
from sheet_notifier.utils.columns import build_column_labels, header_row_for

from .exceptions import SheetNotFoundError, SourceAccessError

logger = get_logger(__name__, component="source")


class TabularSource(ABC):
    """Read-only access to the worksheets of one spreadsheet.

    Implementations must raise SheetNotFoundError for unknown worksheets and
    SourceAccessError for any other read failure.
    """

    @property
    @abstractmethod
    def spreadsheet_url(self) -> str:
        """URL of the spreadsheet as a whole ("" when unknown)."""

    @abstractmethod
    def get_column_vector(
        self, sheet_name: str, column: str, start_row: int, end_row: int, as_dates: bool = False
    ) -> ColumnVector:
        """Read the raw values of column for rows start_row..end_row (inclusive).

        With as_dates, date cells are returned as spreadsheet serial day
        numbers instead of their display text.
        """

    @abstractmethod
    def get_header_row(self, sheet_name: str, row: int) -> List[Any]:
        """Read the display values of one row, starting at column A."""

    @abstractmethod
    def get_last_row_index(self, sheet_name: str) -> int:
        """Return the last row number holding any data (0 for an empty sheet)."""

    @abstractmethod
    def resolve_sheet(self, sheet_name: str) -> Tuple[str, str]:
        """Return (title, sheet_url) for a worksheet."""

    def reset(self) -> None:
        """Drop per-run lookups. Called before each run."""

    def fetch_columns(
        self,
        sheet_name: str,
        columns: Iterable[str],
        start_row: int,
        end_row: int,
        date_columns: Iterable[str] = (),
    ) -> Dict[str, ColumnVector]:
        """Read several columns over the same row range.

        Columns listed in date_columns are read as dates.

        Returns:
            Column letter -> ColumnVector, one read per distinct column
        """
        date_columns = set(date_columns)
        vectors: Dict[str, ColumnVector] = {}
        for column in columns:
            if column not in vectors:
                vectors[column] = self.get_column_vector(
                    sheet_name, column, start_row, end_row, as_dates=column in date_columns
                )
        return vectors

    def resolve_sheet_info(self, sheet_name: str, start_row: int) -> SheetInfo:
        """Build display information for notifications.

        Never raises: a missing worksheet falls back to the configured name
        and the spreadsheet URL, and an unreadable header row yields no
        labels so renderers apply their own fallbacks.
        """
        try:
            title, sheet_url = self.resolve_sheet(sheet_name)
        except SourceAccessError as e:
            logger.warning(
                f"Could not resolve sheet '{sheet_name}': {e}",
                extra={"event": "source.sheet.unresolved", "error_type": type(e).__name__},
            )
            return SheetInfo(title=sheet_name, sheet_url=self.spreadsheet_url)

        try:
            headers = self.get_header_row(sheet_name, header_row_for(start_row))
            labels = build_column_labels(headers)
        except SourceAccessError as e:
            logger.warning(
                f"Could not read header row of '{sheet_name}': {e}",
                extra={"event": "source.header.unreadable", "error_type": type(e).__name__},
            )
            labels = {}

        return SheetInfo(title=title, sheet_url=sheet_url, column_labels=labels)
