"""Utility functions for column addressing and timezone-aware date handling."""

from .columns import (
    build_column_labels,
    build_row_url,
    build_sheet_url,
    column_to_index,
    header_row_for,
    index_to_column,
)
from .dates import (
    days_between,
    format_date,
    format_iso_timestamp,
    format_send_timestamp,
    is_valid_date,
    parse_date,
    to_local_date,
    today_in_timezone,
    utc_now,
)

__all__ = [
    # Columns
    "column_to_index",
    "index_to_column",
    "build_sheet_url",
    "build_row_url",
    "build_column_labels",
    "header_row_for",
    # Dates
    "utc_now",
    "today_in_timezone",
    "to_local_date",
    "days_between",
    "parse_date",
    "is_valid_date",
    "format_date",
    "format_send_timestamp",
    "format_iso_timestamp",
]
