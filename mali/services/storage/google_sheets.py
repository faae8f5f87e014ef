"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is offered as a persistent backend because:
1. Non-technical users can view their ledger directly in Sheets
2. No database setup required
3. Built-in backup (Google's infrastructure)

TRADEOFFS:
- Not suitable for high-volume data (we're fine for personal use)
- No transactions (the ledger engine serializes writes per account)
- Limited query capabilities (we filter in Python)

Each collection is one worksheet with three columns: the record key,
the record as JSON, and the time of the last write.
"""

import json
from datetime import datetime, timezone
from typing import Optional

import gspread
from google.oauth2.service_account import Credentials
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from mali.config import GoogleSheetsSettings, get_settings
from mali.models.audit import AuditEvent, AuditEventType, AuditSeverity
from mali.services.storage.interface import (
    AuditStorageInterface,
    Collection,
    RecordStoreInterface,
    StorageConnectionError,
    StorageError,
)


RECORD_COLUMNS = [
    "key",
    "record_json",
    "updated_at",
]

AUDIT_COLUMNS = [
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "entity_type",
    "entity_id",
    "account_id",
    "description",
    "details_json",
    "error_message",
    "is_user_action",
]

# Only gspread API errors (quota, 5xx) are retried
_retry_api_errors = retry(
    retry=retry_if_exception_type(gspread.exceptions.APIError),
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=2, max=10),
    reraise=True,
)


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for API calls.
    """

    def __init__(self, settings: Optional[GoogleSheetsSettings] = None):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = settings or get_settings().google_sheets

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        """
        if self._client is None:
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise StorageConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
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

    def sheet_name_for(self, collection: Collection) -> str:
        return {
            Collection.ACCOUNTS: self._settings.accounts_sheet_name,
            Collection.SESSIONS: self._settings.sessions_sheet_name,
            Collection.ENTRIES: self._settings.entries_sheet_name,
        }[Collection(collection)]

    def get_worksheet(
        self,
        title: str,
        columns: list[str],
        rows: int = 1000,
    ) -> gspread.Worksheet:
        """Get or create a worksheet, writing the header row on creation."""
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
        return sheet

    def get_collection_sheet(self, collection: Collection) -> gspread.Worksheet:
        return self.get_worksheet(self.sheet_name_for(collection), RECORD_COLUMNS)

    def get_audit_sheet(self) -> gspread.Worksheet:
        return self.get_worksheet(
            self._settings.audit_sheet_name,
            AUDIT_COLUMNS,
            rows=5000,  # More rows for audit log
        )


class GoogleSheetsRecordStore(RecordStoreInterface):
    """
    Google Sheets implementation of the record store.

    One row per record; the record itself is JSON-serialized into a
    single cell so the sheet layout never changes with the model.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    @staticmethod
    def _find_row(all_rows: list[list], key: str) -> Optional[int]:
        """1-based sheet row index of ``key`` (row 1 is the header)."""
        for idx, row in enumerate(all_rows[1:], start=2):
            if row and row[0] == key:
                return idx
        return None

    @staticmethod
    def _to_row(key: str, record: dict) -> list:
        return [
            key,
            json.dumps(record, default=str),
            datetime.now(timezone.utc).isoformat(),
        ]

    def get(self, collection: Collection, key: str) -> Optional[dict]:
        try:
            sheet = self._client.get_collection_sheet(collection)
            for row in sheet.get_all_values()[1:]:
                if row and row[0] == key:
                    return json.loads(row[1])
            return None
        except Exception as e:
            raise StorageError(f"Failed to read {collection} record: {e}")

    @_retry_api_errors
    def _write_row(self, collection: Collection, key: str, record: dict) -> None:
        sheet = self._client.get_collection_sheet(collection)
        row = self._to_row(key, record)
        idx = self._find_row(sheet.get_all_values(), key)
        if idx is None:
            sheet.append_row(row, value_input_option="RAW")
        else:
            sheet.update(
                range_name=f"A{idx}:C{idx}",
                values=[row],
                value_input_option="RAW",
            )

    @_retry_api_errors
    def _delete_row(self, collection: Collection, key: str) -> bool:
        sheet = self._client.get_collection_sheet(collection)
        idx = self._find_row(sheet.get_all_values(), key)
        if idx is None:
            return False
        sheet.delete_rows(idx)
        return True

    def put(self, collection: Collection, key: str, record: dict) -> None:
        try:
            self._write_row(collection, key, record)
        except Exception as e:
            raise StorageError(f"Failed to write {collection} record: {e}")

    def delete(self, collection: Collection, key: str) -> bool:
        try:
            return self._delete_row(collection, key)
        except Exception as e:
            raise StorageError(f"Failed to delete {collection} record: {e}")

    def list(self, collection: Collection) -> list[dict]:
        try:
            sheet = self._client.get_collection_sheet(collection)
            records = []
            for row in sheet.get_all_values()[1:]:
                if not row or not row[0]:  # Skip empty rows
                    continue
                records.append(json.loads(row[1]))
            return records
        except Exception as e:
            raise StorageError(f"Failed to list {collection}: {e}")


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Google Sheets implementation of audit log storage.

    Audit events are append-only.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _row_to_event(self, row: list) -> AuditEvent:
        """Convert a spreadsheet row to an AuditEvent."""
        def safe_get(index: int, default: str = "") -> str:
            try:
                return row[index] if row[index] else default
            except IndexError:
                return default

        return AuditEvent(
            event_id=safe_get(0),
            timestamp=datetime.fromisoformat(safe_get(1)),
            event_type=AuditEventType(safe_get(2)),
            severity=AuditSeverity(safe_get(3)),
            entity_type=safe_get(4) or None,
            entity_id=safe_get(5) or None,
            account_id=safe_get(6) or None,
            description=safe_get(7),
            details=json.loads(safe_get(8)) if safe_get(8) else {},
            error_message=safe_get(9) or None,
            is_user_action=safe_get(10).lower() == "true",
        )

    def _all_events(self) -> list[AuditEvent]:
        sheet = self._client.get_audit_sheet()
        events = []
        for row in sheet.get_all_values()[1:]:
            if not row or not row[0]:
                continue
            try:
                events.append(self._row_to_event(row))
            except ValueError:
                continue  # Skip malformed rows
        return events

    @_retry_api_errors
    def _append_row(self, row: list) -> None:
        sheet = self._client.get_audit_sheet()
        sheet.append_row(row, value_input_option="RAW")

    def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event."""
        try:
            self._append_row(event.to_sheets_row())
            return True
        except Exception as e:
            raise StorageError(f"Failed to write audit event: {e}")

    def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: str,
    ) -> list[AuditEvent]:
        try:
            events = [
                e for e in self._all_events()
                if e.entity_type == entity_type and e.entity_id == entity_id
            ]
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")
        events.sort(key=lambda e: e.timestamp)
        return events

    def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        try:
            events = self._all_events()
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")
        # Sort newest first
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
