"""Row matching for sheet rules.

This module provides:
- DateThresholdMatcher / StatusMatchMatcher: rule predicates over column vectors
- get_matcher: matcher lookup by rule kind
- ColumnVector, RowMatch, RowData, SheetInfo: data passed between stages
- build_row_data / build_rows: match -> RowData assembly
"""

from .engine import MATCHERS, DateThresholdMatcher, StatusMatchMatcher, cell_to_text, get_matcher
from .models import ColumnVector, RowData, RowMatch, SheetInfo, rows_to_dicts
from .records import build_row_data, build_rows

__all__ = [
    "MATCHERS",
    "DateThresholdMatcher",
    "StatusMatchMatcher",
    "cell_to_text",
    "get_matcher",
    "ColumnVector",
    "RowData",
    "RowMatch",
    "SheetInfo",
    "rows_to_dicts",
    "build_row_data",
    "build_rows",
]
