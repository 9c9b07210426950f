"""Spreadsheet mirror client.

`SheetsClient` is the small surface the sync code needs. `GoogleSheetsClient`
implements it on top of the Sheets v4 API using a service account.
"""
from __future__ import annotations

import json
from typing import Any, Protocol

from google.oauth2 import service_account
from googleapiclient.discovery import build

from mktdash.config import (
    GOOGLE_SERVICE_ACCOUNT_FILE,
    GOOGLE_SERVICE_ACCOUNT_KEY,
    GOOGLE_SHEETS_ID,
    SHEET_SETTINGS,
    SHEETS_SCOPES,
)
from mktdash.utils import get_logger

logger = get_logger(__name__)


class SheetsNotConfiguredError(RuntimeError):
    """No spreadsheet id or service account credentials were provided."""


class SheetsClient(Protocol):
    def append_row(self, range_name: str, values: list[Any]) -> str:
        """Append one row, returning the range that was written."""
        ...

    def get_values(self, range_name: str) -> list[list[Any]]:
        ...

    def update_values(self, range_name: str, values: list[list[Any]]) -> None:
        ...

    def format_header(self) -> None:
        ...


# Green background, bold white text
HEADER_FORMAT: dict[str, Any] = {
    "backgroundColor": {"red": 0.18, "green": 0.49, "blue": 0.18},
    "textFormat": {
        "bold": True,
        "foregroundColor": {"red": 1, "green": 1, "blue": 1},
    },
}


def load_credentials() -> service_account.Credentials:
    if GOOGLE_SERVICE_ACCOUNT_KEY:
        info = json.loads(GOOGLE_SERVICE_ACCOUNT_KEY)
        return service_account.Credentials.from_service_account_info(info, scopes=SHEETS_SCOPES)
    if GOOGLE_SERVICE_ACCOUNT_FILE:
        return service_account.Credentials.from_service_account_file(GOOGLE_SERVICE_ACCOUNT_FILE, scopes=SHEETS_SCOPES)
    raise SheetsNotConfiguredError("No Google service account credentials configured")


class GoogleSheetsClient:
    def __init__(self, spreadsheet_id: str, credentials: service_account.Credentials, sheet_gid: int | None = None):
        self.spreadsheet_id = spreadsheet_id
        self.sheet_gid = int(sheet_gid if sheet_gid is not None else SHEET_SETTINGS["sheet_gid"])
        self._service = build("sheets", "v4", credentials=credentials, cache_discovery=False)

    def append_row(self, range_name: str, values: list[Any]) -> str:
        response = self._service.spreadsheets().values().append(
            spreadsheetId=self.spreadsheet_id,
            range=range_name,
            valueInputOption="USER_ENTERED",
            body={"values": [values]},
        ).execute()
        updated_range = response.get("updates", {}).get("updatedRange", "")
        logger.debug("Row appended to spreadsheet", range=updated_range)
        return updated_range

    def get_values(self, range_name: str) -> list[list[Any]]:
        response = self._service.spreadsheets().values().get(
            spreadsheetId=self.spreadsheet_id,
            range=range_name,
        ).execute()
        return response.get("values", [])

    def update_values(self, range_name: str, values: list[list[Any]]) -> None:
        self._service.spreadsheets().values().update(
            spreadsheetId=self.spreadsheet_id,
            range=range_name,
            valueInputOption="RAW",
            body={"values": values},
        ).execute()

    def format_header(self) -> None:
        request = {
            "repeatCell": {
                "range": {"sheetId": self.sheet_gid, "startRowIndex": 0, "endRowIndex": 1},
                "cell": {"userEnteredFormat": HEADER_FORMAT},
                "fields": "userEnteredFormat(backgroundColor,textFormat)",
            }
        }
        self._service.spreadsheets().batchUpdate(
            spreadsheetId=self.spreadsheet_id,
            body={"requests": [request]},
        ).execute()


def build_sheets_client() -> GoogleSheetsClient | None:
    """Client from configuration, or None when the mirror is not configured."""
    if not GOOGLE_SHEETS_ID:
        logger.warning("GOOGLE_SHEETS_ID not set; spreadsheet mirror disabled")
        return None
    try:
        credentials = load_credentials()
    except SheetsNotConfiguredError as exc:
        logger.warning("Spreadsheet mirror disabled", reason=str(exc))
        return None
    return GoogleSheetsClient(GOOGLE_SHEETS_ID, credentials)


__all__ = [
    "SheetsNotConfiguredError",
    "SheetsClient",
    "HEADER_FORMAT",
    "load_credentials",
    "GoogleSheetsClient",
    "build_sheets_client",
]
