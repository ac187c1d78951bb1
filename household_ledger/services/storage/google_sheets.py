"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is used as the shared storage backend because:
1. Both partners can view the household data directly in Sheets
2. No database setup required
3. Built-in backup (Google's infrastructure)
4. Easy to export/migrate later

TRADEOFFS:
- Not suitable for high-volume data (we're fine for one household)
- No transactions (bulk inserts go out as a single append call)
- Limited query capabilities (we filter in Python)

One worksheet per collection. Several households may share a spreadsheet;
every row carries ``household_id`` and every call filters on it.
"""

import json
from datetime import datetime
from typing import Any, Optional
from uuid import UUID, uuid4

import gspread
from google.oauth2.service_account import Credentials
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from household_ledger.config import GoogleSheetsSettings, get_settings
from household_ledger.models.audit import AuditEvent, AuditEventType, AuditSeverity
from household_ledger.models.ledger import EntityKind
from household_ledger.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    HouseholdStorageInterface,
    NotFoundError,
    Row,
    StorageError,
)
from household_ledger.services.storage.payloads import IDENTITY_FIELDS, PAYLOAD_FIELDS


# Column layout per collection worksheet
COLLECTION_COLUMNS: dict[EntityKind, list[str]] = {
    kind: list(IDENTITY_FIELDS) + list(fields)
    for kind, fields in PAYLOAD_FIELDS.items()
}

# Column mappings for Audit sheet
AUDIT_COLUMNS = [
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "entity_type",
    "entity_id",
    "correlation_id",
    "description",
    "details_json",
    "error_message",
    "is_user_action",
]

# Transient API failures (quota, 5xx) are retried; anything else is not
remote_retry = retry(
    retry=retry_if_exception_type(gspread.exceptions.APIError),
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=2, max=10),
    reraise=True,
)


def _cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    return str(value)


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and worksheet lookup. A ready spreadsheet object
    can be passed in, which skips authentication entirely.
    """

    def __init__(
        self,
        settings: Optional[GoogleSheetsSettings] = None,
        spreadsheet: Optional[gspread.Spreadsheet] = None,
    ):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet = spreadsheet
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
                raise ConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise ConnectionError(f"Failed to connect to Google Sheets: {e}")

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
                raise ConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def sheet_name(self, kind: EntityKind) -> str:
        return {
            EntityKind.TRANSACTION: self._settings.transactions_sheet_name,
            EntityKind.BUDGET: self._settings.budgets_sheet_name,
            EntityKind.ASSET: self._settings.assets_sheet_name,
            EntityKind.LIABILITY: self._settings.liabilities_sheet_name,
            EntityKind.RECURRING_RULE: self._settings.recurring_rules_sheet_name,
        }[kind]

    def _get_or_create(self, title: str, columns: list[str], rows: int) -> gspread.Worksheet:
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            # Create the sheet with headers
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=rows,
                cols=len(columns),
            )
            sheet.append_row(columns)
        return sheet

    def get_collection_sheet(self, kind: EntityKind) -> gspread.Worksheet:
        """Get or create the worksheet of one collection."""
        return self._get_or_create(self.sheet_name(kind), COLLECTION_COLUMNS[kind], rows=1000)

    def get_audit_sheet(self) -> gspread.Worksheet:
        """Get or create the Audit worksheet."""
        return self._get_or_create(
            self._settings.audit_sheet_name,
            AUDIT_COLUMNS,
            rows=5000,  # More rows for audit log
        )


class GoogleSheetsHouseholdStorage(HouseholdStorageInterface):
    """
    Google Sheets implementation of household storage.

    Rows are read by header name, so reordering columns in the sheet by hand
    does not break loading.
    """

    def __init__(self, household_id: str, client: Optional[GoogleSheetsClient] = None):
        self._household_id = household_id
        self._client = client or GoogleSheetsClient()

    @property
    def household_id(self) -> str:
        return self._household_id

    @remote_retry
    def _read(self, kind: EntityKind) -> tuple[gspread.Worksheet, list[str], list[list[str]]]:
        sheet = self._client.get_collection_sheet(kind)
        values = sheet.get_all_values()
        if not values:
            return sheet, COLLECTION_COLUMNS[kind], []
        return sheet, values[0], values[1:]

    def _own_rows(self, header: list[str], rows: list[list[str]]) -> list[tuple[int, Row]]:
        """(sheet row number, row dict) for this household's rows."""
        owned = []
        for idx, values in enumerate(rows, start=2):  # Start from 2 (row 1 is header)
            record = dict(zip(header, values))
            if record.get("id") and record.get("household_id") == self._household_id:
                owned.append((idx, record))
        return owned

    def _new_record(self, payload: Row) -> Row:
        if payload.get("household_id") != self._household_id:
            raise StorageError("new row violates row-level security policy for household")
        record = {field: _cell(value) for field, value in payload.items()}
        record["id"] = str(uuid4())
        record["created_at"] = datetime.utcnow().isoformat()
        return record

    @staticmethod
    def _to_values(header: list[str], record: Row) -> list[str]:
        return [_cell(record.get(column)) for column in header]

    async def load(self, kind: EntityKind) -> list[Row]:
        try:
            _, header, rows = self._read(kind)
            return [record for _, record in self._own_rows(header, rows)]
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to load {kind.value}: {e}")

    async def insert(self, kind: EntityKind, payload: Row) -> Row:
        rows = await self.insert_many(kind, [payload])
        return rows[0]

    async def insert_many(self, kind: EntityKind, payloads: list[Row]) -> list[Row]:
        """Append every row in a single API call."""
        records = [self._new_record(payload) for payload in payloads]
        if not records:
            return []
        try:
            sheet, header, _ = self._read(kind)
            sheet.append_rows(
                [self._to_values(header, record) for record in records],
                value_input_option="RAW",
            )
            return records
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to insert {kind.value}: {e}")

    async def update(self, kind: EntityKind, entity_id: UUID, payload: Row) -> Row:
        try:
            sheet, header, rows = self._read(kind)
            for idx, record in self._own_rows(header, rows):
                if record["id"] == str(entity_id):
                    for field, value in payload.items():
                        if field not in IDENTITY_FIELDS:
                            record[field] = _cell(value)
                    sheet.update(
                        range_name=f"A{idx}",
                        values=[self._to_values(header, record)],
                        value_input_option="RAW",
                    )
                    return record

            raise NotFoundError(f"{kind.value} row not found: {entity_id}")
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to update {kind.value}: {e}")

    async def delete(self, kind: EntityKind, entity_id: UUID) -> bool:
        try:
            sheet, header, rows = self._read(kind)
            for idx, record in self._own_rows(header, rows):
                if record["id"] == str(entity_id):
                    sheet.delete_rows(idx)
                    return True
            return False
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to delete {kind.value}: {e}")

    async def clear_all(self) -> None:
        try:
            for kind in EntityKind:
                sheet, header, rows = self._read(kind)
                # Bottom-up so earlier row numbers stay valid
                for idx, _ in reversed(self._own_rows(header, rows)):
                    sheet.delete_rows(idx)
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to clear household data: {e}")


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
            event_id=UUID(safe_get(0)),
            timestamp=datetime.fromisoformat(safe_get(1)),
            event_type=AuditEventType(safe_get(2)),
            severity=AuditSeverity(safe_get(3)),
            entity_type=safe_get(4) or None,
            entity_id=UUID(safe_get(5)) if safe_get(5) else None,
            correlation_id=UUID(safe_get(6)) if safe_get(6) else None,
            description=safe_get(7),
            details=json.loads(safe_get(8)) if safe_get(8) else {},
            error_message=safe_get(9) or None,
            is_user_action=safe_get(10).lower() == "true",
        )

    @remote_retry
    def _read_events(self) -> list[AuditEvent]:
        all_rows = self._client.get_audit_sheet().get_all_values()[1:]
        events = []
        for row in all_rows:
            if not row or not row[0]:
                continue
            try:
                events.append(self._row_to_event(row))
            except (ValueError, json.JSONDecodeError):
                continue  # Skip malformed rows
        return events

    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event."""
        try:
            sheet = self._client.get_audit_sheet()
            sheet.append_row(event.to_sheets_row(), value_input_option="RAW")
            return True
        except Exception as e:
            raise StorageError(f"Failed to write audit event: {e}")

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """Get events by correlation ID."""
        try:
            events = [e for e in self._read_events() if e.correlation_id == correlation_id]
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")
        # Sort chronologically
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """Get recent events."""
        try:
            events = self._read_events()
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")
        # Sort newest first
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
