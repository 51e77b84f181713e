"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is offered as the shared storage backend because:
1. Class officers can view the ledger directly in Sheets
2. No database setup required
3. Built-in backup (Google's infrastructure)
4. Easy to export/migrate later

TRADEOFFS:
- Not suitable for high-volume data (a class ledger is small)
- No transactions (we handle this with careful ordering)
- Limited query capabilities (we filter in Python)
- The next id is derived from the highest id present, so an id freed by
  deleting the newest row can be handed out again

The implementation follows the abstract interface, so the service layer
never knows which backend it is talking to.
"""

import json
from datetime import date, datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

import gspread
from google.oauth2.service_account import Credentials
from tenacity import retry, stop_after_attempt, wait_exponential

from alumni_ledger.config import GoogleSheetsSettings, get_settings
from alumni_ledger.models.audit import AuditEvent, AuditEventType, AuditSeverity
from alumni_ledger.models.ledger import (
    LedgerEntry,
    LedgerEntryCandidate,
    PaymentCategory,
    PaymentType,
)
from alumni_ledger.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    LedgerStorageInterface,
    NotFoundError,
    StorageError,
)


# Column mappings for Transactions sheet
TRANSACTION_COLUMNS = [
    "id",
    "date",
    "description",
    "category",
    "amount",
    "classmate_name",
    "payment_type",
    "transaction_id",
    "attachment_url",
    "attachment_name",
]

# Column mappings for Audit sheet
AUDIT_COLUMNS = [
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "entity_type",
    "entity_id",
    "correlation_id",
    "actor",
    "description",
    "details_json",
    "error_message",
    "is_user_action",
]


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

    def _get_or_create_sheet(
        self,
        title: str,
        columns: list[str],
        rows: int,
    ) -> gspread.Worksheet:
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

    def get_transactions_sheet(self) -> gspread.Worksheet:
        """Get or create the Transactions worksheet."""
        return self._get_or_create_sheet(
            self._settings.transactions_sheet_name,
            TRANSACTION_COLUMNS,
            rows=1000,
        )

    def get_audit_sheet(self) -> gspread.Worksheet:
        """Get or create the Audit worksheet."""
        return self._get_or_create_sheet(
            self._settings.audit_sheet_name,
            AUDIT_COLUMNS,
            rows=5000,  # More rows for audit log
        )


def _safe_getter(row: list):
    """Build an accessor that tolerates short rows and blank cells."""
    def safe_get(index: int, default: str = "") -> str:
        try:
            return row[index] if row[index] else default
        except IndexError:
            return default
    return safe_get


class GoogleSheetsLedgerStorage(LedgerStorageInterface):
    """
    Google Sheets implementation of ledger storage.

    Entries are stored as rows in a worksheet with one entry per row.
    Amounts are written as plain decimal strings so no float rounding
    creeps in.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _entry_to_row(self, entry: LedgerEntry) -> list:
        """Convert a LedgerEntry to a spreadsheet row."""
        return [
            str(entry.id),
            entry.date.isoformat(),
            entry.description,
            entry.category.value,
            str(entry.amount),
            entry.classmate_name,
            entry.payment_type.value,
            entry.transaction_id or "",
            entry.attachment_url or "",
            entry.attachment_name or "",
        ]

    def _row_to_entry(self, row: list) -> LedgerEntry:
        """Convert a spreadsheet row to a LedgerEntry."""
        safe_get = _safe_getter(row)

        return LedgerEntry(
            id=int(safe_get(0)),
            date=date.fromisoformat(safe_get(1)),
            description=safe_get(2),
            category=PaymentCategory(safe_get(3)),
            amount=Decimal(safe_get(4)),
            classmate_name=safe_get(5),
            payment_type=PaymentType(safe_get(6)),
            transaction_id=safe_get(7) or None,
            attachment_url=safe_get(8) or None,
            attachment_name=safe_get(9) or None,
        )

    def _data_rows(self) -> list[tuple[int, list]]:
        """Return (sheet row number, row) for every non-empty data row."""
        sheet = self._client.get_transactions_sheet()
        all_rows = sheet.get_all_values()
        return [
            (idx, row)
            for idx, row in enumerate(all_rows[1:], start=2)  # Row 1 is header
            if row and row[0]
        ]

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def append(self, candidate: LedgerEntryCandidate) -> LedgerEntry:
        """Append an entry with the next free id."""
        try:
            highest = max(
                (int(row[0]) for _, row in self._data_rows() if row[0].isdigit()),
                default=0,
            )
            entry = LedgerEntry.from_candidate(highest + 1, candidate)
            sheet = self._client.get_transactions_sheet()
            sheet.append_row(self._entry_to_row(entry), value_input_option="RAW")
            return entry
        except Exception as e:
            raise StorageError(f"Failed to save entry: {e}")

    def get(self, entry_id: int) -> Optional[LedgerEntry]:
        try:
            for _, row in self._data_rows():
                if row[0] == str(entry_id):
                    return self._row_to_entry(row)
            return None
        except Exception as e:
            raise StorageError(f"Failed to get entry: {e}")

    def update(self, entry: LedgerEntry) -> LedgerEntry:
        """Update an existing entry."""
        try:
            sheet = self._client.get_transactions_sheet()
            for idx, row in self._data_rows():
                if row[0] == str(entry.id):
                    new_row = self._entry_to_row(entry)
                    for col_idx, value in enumerate(new_row, start=1):
                        sheet.update_cell(idx, col_idx, value)
                    return entry

            raise NotFoundError(f"Entry not found: {entry.id}")
        except NotFoundError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to update entry: {e}")

    def remove(self, entry_id: int) -> bool:
        """Delete an entry by id."""
        try:
            sheet = self._client.get_transactions_sheet()
            for idx, row in self._data_rows():
                if row[0] == str(entry_id):
                    sheet.delete_rows(idx)
                    return True
            return False
        except Exception as e:
            raise StorageError(f"Failed to delete entry: {e}")

    def list_entries(self) -> list[LedgerEntry]:
        """List entries in id order, skipping malformed rows."""
        try:
            entries = []
            for _, row in self._data_rows():
                try:
                    entries.append(self._row_to_entry(row))
                except (ValueError, ArithmeticError):
                    continue  # Skip malformed rows
            entries.sort(key=lambda e: e.id)
            return entries
        except Exception as e:
            raise StorageError(f"Failed to list entries: {e}")

    def clear(self) -> int:
        try:
            rows = self._data_rows()
            if rows:
                sheet = self._client.get_transactions_sheet()
                sheet.delete_rows(rows[0][0], rows[-1][0])
            return len(rows)
        except Exception as e:
            raise StorageError(f"Failed to clear entries: {e}")


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Google Sheets implementation of audit log storage.

    Audit events are append-only.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _row_to_event(self, row: list) -> AuditEvent:
        """Convert a spreadsheet row to an AuditEvent."""
        safe_get = _safe_getter(row)

        return AuditEvent(
            event_id=UUID(safe_get(0)),
            timestamp=datetime.fromisoformat(safe_get(1)),
            event_type=AuditEventType(safe_get(2)),
            severity=AuditSeverity(safe_get(3)),
            entity_type=safe_get(4) or None,
            entity_id=safe_get(5) or None,
            correlation_id=UUID(safe_get(6)) if safe_get(6) else None,
            actor=safe_get(7) or None,
            description=safe_get(8),
            details=json.loads(safe_get(9)) if safe_get(9) else {},
            error_message=safe_get(10) or None,
            is_user_action=safe_get(11).lower() == "true",
        )

    def _all_events(self) -> list[AuditEvent]:
        sheet = self._client.get_audit_sheet()
        events = []
        for row in sheet.get_all_values()[1:]:
            if not row or not row[0]:
                continue
            try:
                events.append(self._row_to_event(row))
            except (ValueError, KeyError):
                continue
        return events

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event. The AuditLogger absorbs the failure."""
        try:
            sheet = self._client.get_audit_sheet()
            sheet.append_row(event.to_sheets_row(), value_input_option="RAW")
            return True
        except Exception as e:
            raise StorageError(f"Failed to write audit event: {e}")

    def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """Get events by correlation ID."""
        try:
            events = [
                e for e in self._all_events()
                if e.correlation_id == correlation_id
            ]
            events.sort(key=lambda e: e.timestamp)
            return events
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")

    def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: str,
    ) -> list[AuditEvent]:
        """Get events by entity."""
        try:
            events = [
                e for e in self._all_events()
                if e.entity_type == entity_type and e.entity_id == str(entity_id)
            ]
            events.sort(key=lambda e: e.timestamp)
            return events
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")

    def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """Get recent events."""
        try:
            events = self._all_events()
            # Sort newest first
            events.sort(key=lambda e: e.timestamp, reverse=True)
            return events[:limit]
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")
