"""
Google Sheets Table Store

DESIGN DECISION: Google Sheets is the hosted table store because:
1. Users can look at their own data directly in Sheets
2. Nothing to provision besides a spreadsheet and a service account
3. Each table maps to one worksheet with a header row

TRADEOFFS:
- No transactions and no row locking: concurrent balance updates to
  the same debt are last-write-wins
- Selection is a full read of the worksheet filtered in Python
- Only the connection is retried; data operations fail fast and the
  state container decides what to do with the failure
"""

from typing import Optional
from uuid import uuid4

import gspread
import structlog
from google.oauth2.service_account import Credentials
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from finanzas.config import GoogleSheetsSettings, get_settings
from finanzas.models.audit import AUDIT_COLUMNS, AuditEvent
from finanzas.services.storage.interface import (
    AuditStorageInterface,
    StorageConnectionError,
    StorageError,
)
from finanzas.services.storage.records import TABLE_COLUMNS, Row
from finanzas.services.storage.tables import TableFinanceStorage


logger = structlog.get_logger(__name__)

SCOPES = [
    "https://www.googleapis.com/auth/spreadsheets",
    "https://www.googleapis.com/auth/drive",
]

# Failures we translate into StorageError
BACKEND_ERRORS = (gspread.exceptions.GSpreadException, OSError)


class GoogleSheetsClient:
    """
    Owns the gspread connection and the worksheet handles.

    Handles authentication and worksheet lookup. Worksheets are created
    with their header row on first use.
    """

    def __init__(self, settings: Optional[GoogleSheetsSettings] = None):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._worksheets: dict[str, gspread.Worksheet] = {}
        self._settings = settings or get_settings().google_sheets

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_exception_type(StorageConnectionError),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """
        Authorize with the service account key.

        Retried a few times; every later call reuses the client.
        """
        if self._client is None:
            try:
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=SCOPES,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise StorageConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except (ValueError, *BACKEND_ERRORS) as e:
                raise StorageConnectionError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound:
                raise StorageConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def _get_or_create(self, title: str, columns: list[str], rows: int) -> gspread.Worksheet:
        if title in self._worksheets:
            return self._worksheets[title]

        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=rows,
                cols=len(columns),
            )
            sheet.append_row(columns)
            logger.info("worksheet_created", title=title)

        self._worksheets[title] = sheet
        return sheet

    def get_table_sheet(self, table: str) -> gspread.Worksheet:
        """Get or create the worksheet backing one table."""
        title = self._settings.sheet_names()[table]
        return self._get_or_create(title, TABLE_COLUMNS[table], rows=1000)

    def get_audit_sheet(self) -> gspread.Worksheet:
        """Get or create the Audit worksheet."""
        return self._get_or_create(
            self._settings.audit_sheet_name,
            AUDIT_COLUMNS,
            rows=5000,  # More rows for audit log
        )


class GoogleSheetsFinanceStorage(TableFinanceStorage):
    """
    Google Sheets implementation of the persistence gateway.

    One worksheet per table, one record per row, every cell a string.
    The store assigns a UUID to each inserted row.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _read(self, table: str) -> tuple[gspread.Worksheet, list[str], list[list[str]]]:
        sheet = self._client.get_table_sheet(table)
        values = sheet.get_all_values()
        header = values[0] if values else TABLE_COLUMNS[table]
        return sheet, header, values[1:]

    @staticmethod
    def _as_row(header: list[str], cells: list[str]) -> Row:
        padded = cells + [""] * (len(header) - len(cells))
        return dict(zip(header, padded))

    def _find(self, table: str, record_id: str) -> tuple[gspread.Worksheet, list[str], Optional[int]]:
        """Locate a row by id. The index is 1-based and counts the header."""
        sheet, header, data = self._read(table)
        for idx, cells in enumerate(data, start=2):  # Start from 2 (row 1 is header)
            if cells and cells[0] == record_id:
                return sheet, header, idx
        return sheet, header, None

    def _select(self, table: str, **filters: str) -> list[Row]:
        try:
            _, header, data = self._read(table)
        except BACKEND_ERRORS as e:
            raise StorageError(f"Failed to read {table}: {e}")

        rows = []
        for cells in data:
            if not cells or not cells[0]:  # Skip empty rows
                continue
            row = self._as_row(header, cells)
            if all(row.get(column) == value for column, value in filters.items()):
                rows.append(row)
        return rows

    def _insert(self, table: str, row: Row) -> Row:
        stored = {**row, "id": str(uuid4())}
        try:
            sheet = self._client.get_table_sheet(table)
            sheet.append_row(
                [stored.get(column, "") for column in TABLE_COLUMNS[table]],
                value_input_option="RAW",
            )
        except BACKEND_ERRORS as e:
            raise StorageError(f"Failed to insert into {table}: {e}")
        return stored

    def _update(self, table: str, record_id: str, fields: Row) -> bool:
        try:
            sheet, header, idx = self._find(table, record_id)
            if idx is None:
                return False
            for column, value in fields.items():
                sheet.update_cell(idx, header.index(column) + 1, value)
            return True
        except BACKEND_ERRORS as e:
            raise StorageError(f"Failed to update {table}: {e}")

    def _delete(self, table: str, record_id: str) -> bool:
        try:
            sheet, _, idx = self._find(table, record_id)
            if idx is None:
                return False
            sheet.delete_rows(idx)
            return True
        except BACKEND_ERRORS as e:
            raise StorageError(f"Failed to delete from {table}: {e}")


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Audit trail kept in its own worksheet.

    Rows are only ever appended.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event."""
        try:
            sheet = self._client.get_audit_sheet()
            sheet.append_row(event.to_sheets_row(), value_input_option="RAW")
            return True
        except (StorageError, *BACKEND_ERRORS) as e:
            # Audit logging should not break the main flow
            logger.warning("audit_write_failed", error=str(e), event_id=str(event.event_id))
            return False

    async def get_recent_events(
        self,
        limit: int = 100,
        user_id: Optional[str] = None,
    ) -> list[AuditEvent]:
        """Get recent events."""
        try:
            sheet = self._client.get_audit_sheet()
            all_rows = sheet.get_all_values()[1:]
        except BACKEND_ERRORS as e:
            raise StorageError(f"Failed to get audit events: {e}")

        events = []
        for row in all_rows:
            if not row or not row[0]:
                continue
            try:
                event = AuditEvent.from_sheets_row(row)
            except ValueError:
                continue
            if user_id is None or event.user_id == user_id:
                events.append(event)

        # Sort newest first
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
