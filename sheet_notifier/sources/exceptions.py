"""Custom exceptions for tabular sources."""


class SourceAccessError(Exception):
    """Base exception for all source read failures.

    Catching this exception will catch any error that should end the current
    rule run (the sheet could not be read, credentials were rejected, the API
    answered with an error).
    """

    pass


class SheetNotFoundError(SourceAccessError):
    """The named worksheet does not exist in the spreadsheet."""

    def __init__(self, sheet_name: str) -> None:
        """Initialize with the missing worksheet name.

        Args:
            sheet_name: Worksheet that was looked up
        """
        super().__init__(f'Sheet "{sheet_name}" not found')
        self.sheet_name = sheet_name
