"""Spreadsheet column addressing and link helpers.

This module provides utilities for working with A1-style sheet coordinates:
- Converting column letters to 1-based indices and back
- Building worksheet and per-row deep links
- Deriving column header labels from a header row
"""

from typing import Dict, Sequence


def column_to_index(column: str) -> int:
    """Convert a column label to its 1-based index.

    The label is read as a base-26 numeral whose digits run A=1..Z=26,
    most significant letter first. Callers pass upper-case ASCII letters.

    Args:
        column: Column label (e.g. "A", "L", "AA")

    Returns:
        1-based column index

    Example:
        >>> column_to_index("A")
        1
        >>> column_to_index("AA")
        27
    """
    index = 0
    for char in column:
        index = index * 26 + (ord(char) - ord("A") + 1)
    return index


def index_to_column(index: int) -> str:
    """Convert a 1-based column index to its column label.

    Args:
        index: 1-based column index

    Returns:
        Column label, or an empty string for indices below 1

    Example:
        >>> index_to_column(28)
        'AB'
    """
    letters = ""
    while index > 0:
        remainder = (index - 1) % 26
        letters = chr(ord("A") + remainder) + letters
        index = (index - 1) // 26
    return letters


def build_sheet_url(spreadsheet_url: str, gid: int) -> str:
    """Build a link that opens a specific worksheet tab.

    Args:
        spreadsheet_url: Base URL of the spreadsheet
        gid: Numeric worksheet id

    Returns:
        Spreadsheet URL with a ``#gid=`` fragment
    """
    return f"{spreadsheet_url}#gid={gid}"


def build_row_url(sheet_url: str, column: str, row_number: int) -> str:
    """Build a deep link that selects a single cell of a worksheet.

    Args:
        sheet_url: Worksheet URL (may already carry a fragment)
        column: Column letter of the cell to select
        row_number: 1-based row number of the cell to select

    Returns:
        Deep link URL, or an empty string if no sheet URL is known
    """
    if not sheet_url:
        return ""

    separator = "&" if "#" in sheet_url else "#"
    return f"{sheet_url}{separator}range={column}{row_number}"


def build_column_labels(headers: Sequence[str]) -> Dict[str, str]:
    """Map column letters to header labels.

    Empty header cells fall back to ``"<letter>列"``.

    Args:
        headers: Display values of the header row, starting at column A

    Returns:
        Dict of column letter to label
    """
    labels: Dict[str, str] = {}
    for position, header in enumerate(headers, start=1):
        letter = index_to_column(position)
        text = str(header).strip() if header is not None else ""
        labels[letter] = text or f"{letter}列"
    return labels


def header_row_for(start_row: int) -> int:
    """Return the header row number for a data range starting at start_row."""
    return max(1, start_row - 1)
