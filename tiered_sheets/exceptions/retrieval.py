"""
Retrieval exceptions

Not-found conditions and remote fetch failures are separate types so callers
can decide whether a retry is worthwhile without matching on messages.
"""

from typing import Optional

from .base import DomainException


class NotFoundError(DomainException):
    """Requested document or sheet does not exist"""


class SpreadsheetNotFoundError(NotFoundError):
    """Spreadsheet missing, or the remote response carried no sheets"""

    def __init__(self, spreadsheet_id: str, reason: str = "No sheets found in spreadsheet"):
        super().__init__(
            message=f"{reason}: {spreadsheet_id}",
            code="SPREADSHEET_NOT_FOUND",
            details={"spreadsheet_id": spreadsheet_id},
        )
        self.spreadsheet_id = spreadsheet_id


class SheetNotFoundError(NotFoundError):
    """Sheet id not present in the spreadsheet"""

    def __init__(self, spreadsheet_id: str, sheet_id: Optional[int]):
        super().__init__(
            message=f"Sheet not found: {sheet_id}",
            code="SHEET_NOT_FOUND",
            details={"spreadsheet_id": spreadsheet_id, "sheet_id": sheet_id},
        )
        self.spreadsheet_id = spreadsheet_id
        self.sheet_id = sheet_id


class RemoteFetchError(DomainException):
    """Remote document API call failed"""

    def __init__(self, message: str, status_code: Optional[int] = None,
                 details: Optional[dict] = None):
        super().__init__(
            message=f"Remote fetch failed: {message}",
            code="REMOTE_FETCH_FAILED",
            details={"status_code": status_code, **(details or {})},
        )
        self.status_code = status_code
