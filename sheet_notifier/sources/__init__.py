"""Tabular sources that supply column data to the rule runner.

This module provides:
- TabularSource: Abstract read interface for one spreadsheet
- GoogleSheetsSource: gspread implementation authorized with a service account
- SourceAccessError / SheetNotFoundError: Read failures
"""

from .base import TabularSource
from .exceptions import SheetNotFoundError, SourceAccessError
from .gsheets import GoogleSheetsSource

__all__ = [
    "TabularSource",
    "GoogleSheetsSource",
    "SourceAccessError",
    "SheetNotFoundError",
]
