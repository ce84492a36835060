"""Assembly of channel-agnostic RowData records from row matches."""

from typing import Iterable, List

from sheet_notifier.utils.columns import build_row_url
from sheet_notifier.utils.dates import format_date

from .models import RowData, RowMatch


def build_row_data(match: RowMatch, anchor_column: str, sheet_url: str, tz_name: str) -> RowData:
    """Build the RowData record for one match.

    Args:
        match: Row that satisfied the rule predicate
        anchor_column: Column the deep link points at
        sheet_url: Worksheet URL ("" when unknown)
        tz_name: Timezone used to format the matched date

    Returns:
        Immutable RowData; date is "" when the match carries no date
    """
    return RowData(
        row_number=match.row_number,
        date=format_date(match.matched_date, tz_name) if match.matched_date else "",
        columns=match.columns,
        row_url=build_row_url(sheet_url, anchor_column, match.row_number),
    )


def build_rows(
    matches: Iterable[RowMatch], anchor_column: str, sheet_url: str, tz_name: str
) -> List[RowData]:
    """Build RowData records for every match, preserving row order."""
    return [build_row_data(match, anchor_column, sheet_url, tz_name) for match in matches]
