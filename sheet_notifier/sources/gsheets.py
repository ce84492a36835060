"""Google Sheets tabular source backed by gspread.

Cells are read with unformatted values so numbers stay numbers. Date
columns come back as serial day numbers, whatever their display format,
and other date cells as their formatted display strings.
"""

from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional, Tuple

import gspread
import requests
from google.oauth2.service_account import Credentials as ServiceCredentials
from gspread.utils import DateTimeOption, ValueRenderOption

from sheet_notifier.logging import get_logger
from sheet_notifier.matching.models import ColumnVector
from sheet_notifier.utils.columns import build_sheet_url

from .base import TabularSource
from .exceptions import SheetNotFoundError, SourceAccessError

logger = get_logger(__name__, component="source")

SCOPES = ["https://www.googleapis.com/auth/spreadsheets.readonly"]


@contextmanager
def _translate_errors(sheet_name: str) -> Iterator[None]:
    try:
        yield
    except gspread.exceptions.WorksheetNotFound as e:
        raise SheetNotFoundError(sheet_name) from e
    except gspread.exceptions.SpreadsheetNotFound as e:
        raise SourceAccessError("Spreadsheet not found or not shared with the service account") from e
    except gspread.exceptions.APIError as e:
        raise SourceAccessError(f"Google Sheets API error while reading '{sheet_name}': {e}") from e
    except (gspread.exceptions.GSpreadException, requests.exceptions.RequestException) as e:
        raise SourceAccessError(f"Failed to read '{sheet_name}': {e}") from e


class GoogleSheetsSource(TabularSource):
    """Reads one spreadsheet through an authorized gspread client."""

    def __init__(
        self,
        client: gspread.Client,
        spreadsheet_id: Optional[str] = None,
        spreadsheet_url: Optional[str] = None,
    ) -> None:
        """Initialize source.

        Args:
            client: Authorized gspread client
            spreadsheet_id: Spreadsheet key (takes precedence over the URL)
            spreadsheet_url: Full spreadsheet URL

        Raises:
            ValueError: If neither locator is given
        """
        if not (spreadsheet_id or spreadsheet_url):
            raise ValueError("GoogleSheetsSource requires spreadsheet_id or spreadsheet_url")

        self.client = client
        self.spreadsheet_id = spreadsheet_id
        self._spreadsheet_url = spreadsheet_url
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._worksheets: Dict[str, gspread.Worksheet] = {}

    @classmethod
    def from_service_account(
        cls,
        credentials_path: str,
        spreadsheet_id: Optional[str] = None,
        spreadsheet_url: Optional[str] = None,
    ) -> "GoogleSheetsSource":
        """Authorize with a service account JSON key file.

        Raises:
            SourceAccessError: If the key file cannot be loaded
        """
        try:
            creds = ServiceCredentials.from_service_account_file(credentials_path, scopes=SCOPES)
        except (OSError, ValueError) as e:
            raise SourceAccessError(
                f"Could not load Google service account credentials from {credentials_path}: {e}"
            ) from e

        return cls(gspread.authorize(creds), spreadsheet_id=spreadsheet_id, spreadsheet_url=spreadsheet_url)

    @property
    def spreadsheet(self) -> gspread.Spreadsheet:
        """Open the spreadsheet on first use."""
        if self._spreadsheet is None:
            with _translate_errors("<spreadsheet>"):
                if self.spreadsheet_id:
                    self._spreadsheet = self.client.open_by_key(self.spreadsheet_id)
                else:
                    self._spreadsheet = self.client.open_by_url(self._spreadsheet_url)
            logger.debug(
                f"Opened spreadsheet '{self._spreadsheet.title}'",
                extra={"event": "source.spreadsheet.opened"},
            )
        return self._spreadsheet

    @property
    def spreadsheet_url(self) -> str:
        if self._spreadsheet is not None:
            return self._spreadsheet.url
        if self._spreadsheet_url:
            return self._spreadsheet_url
        return f"https://docs.google.com/spreadsheets/d/{self.spreadsheet_id}"

    def reset(self) -> None:
        """Forget worksheets looked up during the previous run."""
        self._worksheets.clear()

    def _worksheet(self, sheet_name: str) -> gspread.Worksheet:
        worksheet = self._worksheets.get(sheet_name)
        if worksheet is None:
            with _translate_errors(sheet_name):
                worksheet = self.spreadsheet.worksheet(sheet_name)
            self._worksheets[sheet_name] = worksheet
        return worksheet

    def get_column_vector(
        self, sheet_name: str, column: str, start_row: int, end_row: int, as_dates: bool = False
    ) -> ColumnVector:
        if end_row < start_row:
            return ColumnVector(column=column, start_row=start_row, values=())

        worksheet = self._worksheet(sheet_name)
        range_name = f"{column}{start_row}:{column}{end_row}"

        with _translate_errors(sheet_name):
            rows = worksheet.get(
                range_name,
                value_render_option=ValueRenderOption.unformatted,
                date_time_render_option=(
                    DateTimeOption.serial_number if as_dates else DateTimeOption.formatted_string
                ),
            )

        # Empty cells inside the range come back as empty lists
        values: List[Any] = [row[0] if row else "" for row in rows]
        logger.debug(
            f"Read {len(values)} cells from {sheet_name}!{range_name}",
            extra={"event": "source.column.read", "range": range_name, "cells": len(values)},
        )
        return ColumnVector(column=column, start_row=start_row, values=tuple(values))

    def get_header_row(self, sheet_name: str, row: int) -> List[Any]:
        worksheet = self._worksheet(sheet_name)
        with _translate_errors(sheet_name):
            return worksheet.row_values(row)

    def get_last_row_index(self, sheet_name: str) -> int:
        worksheet = self._worksheet(sheet_name)
        with _translate_errors(sheet_name):
            return len(worksheet.get_all_values())

    def resolve_sheet(self, sheet_name: str) -> Tuple[str, str]:
        worksheet = self._worksheet(sheet_name)
        return worksheet.title, build_sheet_url(self.spreadsheet.url, worksheet.id)
