"""Data models for the matching engine.

This module defines the structures that flow from the tabular source through
the matchers into the notification renderers.
"""

from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Sequence


@dataclass(frozen=True)
class ColumnVector:
    """Raw cell values of one column over a contiguous row range.

    Index i of values corresponds to row number start_row + i. Reading past
    the end of values yields an empty cell, since sources trim trailing
    blanks.

    Attributes:
        column: Column letter
        start_row: Row number of values[0]
        values: Raw cell values
    """

    column: str
    start_row: int
    values: Sequence[Any] = field(default_factory=tuple)

    def value_at(self, index: int) -> Any:
        """Return the cell at vector index, or "" when out of range."""
        if 0 <= index < len(self.values):
            return self.values[index]
        return ""

    def row_number(self, index: int) -> int:
        """Return the sheet row number for a vector index."""
        return self.start_row + index


@dataclass(frozen=True)
class RowMatch:
    """A row that satisfied a rule predicate.

    Attributes:
        row_number: 1-based sheet row number
        columns: Notification column letter -> stringified value, in configured order
        matched_date: Parsed date for date threshold rules, None otherwise
    """

    row_number: int
    columns: Mapping[str, str]
    matched_date: Optional[datetime] = None


@dataclass(frozen=True)
class RowData:
    """Normalized, channel-agnostic record of one matching row.

    Built once per match and never mutated; the columns mapping is exposed
    read-only.

    Attributes:
        row_number: 1-based sheet row number
        date: Formatted matched date ("" for status rules)
        columns: Column letter -> value, in configured notification column order
        row_url: Deep link to the row ("" when unknown)
    """

    row_number: int
    date: str = ""
    columns: Mapping[str, str] = field(default_factory=dict)
    row_url: str = ""

    def __post_init__(self):
        object.__setattr__(self, "columns", MappingProxyType(dict(self.columns)))

    def to_dict(self) -> Dict[str, Any]:
        """Plain dict form for logging and previews."""
        return {
            "row_number": self.row_number,
            "date": self.date,
            "columns": dict(self.columns),
            "row_url": self.row_url,
        }


@dataclass(frozen=True)
class SheetInfo:
    """Display information about the worksheet a rule reads.

    Attributes:
        title: Worksheet title
        sheet_url: Link that opens the worksheet
        column_labels: Column letter -> header label (may be empty)
    """

    title: str
    sheet_url: str = ""
    column_labels: Mapping[str, str] = field(default_factory=dict)

    def label_for(self, column: str, fallback: str) -> str:
        """Return the header label for a column, or fallback when missing."""
        return self.column_labels.get(column) or fallback


def rows_to_dicts(rows: List[RowData]) -> List[Dict[str, Any]]:
    """Convert RowData records into plain dicts."""
    return [row.to_dict() for row in rows]
