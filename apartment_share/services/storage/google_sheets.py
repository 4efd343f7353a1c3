"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is the storage backend because:
1. Committee members can view the ledger directly in Sheets
2. No database setup required
3. Built-in backup (Google's infrastructure)
4. Easy to export/migrate later

TRADEOFFS:
- Not suitable for high-volume data (a building is small)
- No transactions (partial updates touch only the changed cells)
- Limited query capabilities (we filter in Python)

Each record type lives in its own worksheet, one record per row.
List and map fields (owed_by_apartments, is_read, ballots, ...) are stored
as JSON in a single cell. An expense row with empty split cells is a
legacy record and is returned without those keys.
"""

import json
from datetime import datetime
from typing import Any, Optional
from uuid import UUID

import gspread
import structlog
from google.oauth2.service_account import Credentials
from pydantic_core import to_jsonable_python
from tenacity import (
    retry,
    retry_if_not_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from apartment_share.config import get_settings
from apartment_share.models.audit import AuditEvent, AuditEventType, AuditSeverity
from apartment_share.models.community import Notification, Poll
from apartment_share.models.expense import Expense
from apartment_share.models.registry import Apartment, Category
from apartment_share.models.settlement import Payment, PaymentStatus
from apartment_share.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    DuplicateError,
    ExpenseStorageInterface,
    NotFoundError,
    NotificationStorageInterface,
    PaymentStorageInterface,
    PollStorageInterface,
    RegistryStorageInterface,
    StorageError,
)


logger = structlog.get_logger(__name__)


# Column mappings for each sheet
EXPENSE_COLUMNS = [
    "id",
    "description",
    "amount",
    "date",
    "category_id",
    "paid_by_apartment",
    "owed_by_apartments",
    "per_apartment_share",
    "paid_by_apartments",
    "receipt",
    "schema_version",
]
EXPENSE_JSON_COLUMNS = {"owed_by_apartments", "paid_by_apartments", "schema_version"}

APARTMENT_COLUMNS = ["id", "name", "members"]
CATEGORY_COLUMNS = ["id", "name", "icon"]

NOTIFICATION_COLUMNS = [
    "id",
    "type",
    "title",
    "message",
    "amount",
    "currency",
    "from_apartment_id",
    "to_apartment_id",
    "related_expense_id",
    "created_by",
    "priority",
    "is_active",
    "is_read",
    "is_dismissed",
    "created_at",
    "expires_at",
    "due_date",
    "status",
    "category",
    "requested_by",
]

POLL_COLUMNS = [
    "id",
    "question",
    "options",
    "created_by",
    "created_at",
    "expires_at",
    "ballots",
    "is_active",
]

PAYMENT_COLUMNS = [
    "id",
    "payer_id",
    "payee_id",
    "amount",
    "expense_id",
    "status",
    "created_at",
    "month_year",
    "receipt_ref",
    "approved_by",
    "approved_by_name",
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
    "apartment_id",
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

    def __init__(self):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = get_settings().google_sheets

    @property
    def settings(self):
        return self._settings

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

    def get_worksheet(self, title: str, columns: list[str], rows: int = 1000) -> gspread.Worksheet:
        """Get or create a worksheet with the given header row."""
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


def _to_cell(value: Any, as_json: bool) -> str:
    """Render one field as a sheet cell."""
    if value is None:
        return ""
    if as_json:
        return json.dumps(to_jsonable_python(value))
    return str(to_jsonable_python(value))


def _from_cell(cell: str, as_json: bool) -> Any:
    """Parse one cell back; empty cells become missing fields."""
    if cell == "":
        return None
    if as_json:
        return json.loads(cell)
    return cell


class _SheetTable:
    """
    One worksheet holding one record per row, keyed by the first column.

    Shared by all record types: rows go in and out as plain dicts whose
    keys are the column names. Pydantic does the type coercion on the
    way back in.
    """

    def __init__(
        self,
        client: GoogleSheetsClient,
        title: str,
        columns: list[str],
        json_columns: set[str],
    ):
        self._client = client
        self._title = title
        self._columns = columns
        self._json_columns = json_columns

    def sheet(self) -> gspread.Worksheet:
        return self._client.get_worksheet(self._title, self._columns)

    def record_to_row(self, record: dict[str, Any]) -> list[str]:
        return [
            _to_cell(record.get(column), column in self._json_columns)
            for column in self._columns
        ]

    def row_to_record(self, row: list[str]) -> dict[str, Any]:
        record = {}
        for index, column in enumerate(self._columns):
            cell = row[index] if index < len(row) else ""
            value = _from_cell(cell, column in self._json_columns)
            if value is not None:
                record[column] = value
        return record

    def records(self) -> list[dict[str, Any]]:
        rows = self.sheet().get_all_values()[1:]  # Skip header
        return [self.row_to_record(row) for row in rows if row and row[0]]

    def find(self, record_id: str) -> Optional[dict[str, Any]]:
        for record in self.records():
            if record.get("id") == record_id:
                return record
        return None

    def append(self, record: dict[str, Any]) -> None:
        sheet = self.sheet()
        existing = sheet.col_values(1)[1:]
        if record["id"] in existing:
            raise DuplicateError(f"{self._title} row already exists: {record['id']}")
        sheet.append_row(self.record_to_row(record), value_input_option="RAW")

    def update_fields(self, record_id: str, fields: dict[str, Any]) -> None:
        """Rewrite only the cells of the given fields."""
        sheet = self.sheet()
        all_rows = sheet.get_all_values()

        for idx, row in enumerate(all_rows[1:], start=2):  # Row 1 is header
            if row and row[0] == record_id:
                cells = [
                    gspread.Cell(
                        idx,
                        self._columns.index(column) + 1,
                        _to_cell(value, column in self._json_columns),
                    )
                    for column, value in fields.items()
                ]
                # RAW keeps JSON cells like "true" from becoming sheet booleans
                sheet.update_cells(cells, value_input_option="RAW")
                return

        raise NotFoundError(f"{self._title} row not found: {record_id}")

    def delete(self, record_id: str) -> bool:
        sheet = self.sheet()
        all_rows = sheet.get_all_values()
        for idx, row in enumerate(all_rows[1:], start=2):
            if row and row[0] == record_id:
                sheet.delete_rows(idx)
                return True
        return False


class GoogleSheetsExpenseStorage(ExpenseStorageInterface):
    """
    Google Sheets implementation of expense storage.

    Expenses are stored as rows in a worksheet with one expense per row.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()
        self._table = _SheetTable(
            self._client,
            self._client.settings.expenses_sheet_name,
            EXPENSE_COLUMNS,
            EXPENSE_JSON_COLUMNS,
        )

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_not_exception_type((DuplicateError, NotFoundError)),
        reraise=True,
    )
    async def save_expense(self, expense: Expense) -> bool:
        """Save a new expense to Google Sheets."""
        try:
            self._table.append(expense.model_dump(mode="json"))
            return True
        except DuplicateError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to save expense: {e}")

    async def get_expense_record(self, expense_id: str) -> Optional[dict[str, Any]]:
        try:
            return self._table.find(expense_id)
        except Exception as e:
            raise StorageError(f"Failed to get expense: {e}")

    async def list_expense_records(self) -> list[dict[str, Any]]:
        try:
            return self._table.records()
        except Exception as e:
            raise StorageError(f"Failed to list expenses: {e}")

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_not_exception_type((DuplicateError, NotFoundError)),
        reraise=True,
    )
    async def update_expense_fields(
        self,
        expense_id: str,
        fields: dict[str, Any],
    ) -> bool:
        try:
            self._table.update_fields(expense_id, fields)
            return True
        except NotFoundError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to update expense: {e}")

    async def delete_expense(self, expense_id: str) -> bool:
        try:
            return self._table.delete(expense_id)
        except Exception as e:
            raise StorageError(f"Failed to delete expense: {e}")


class GoogleSheetsRegistryStorage(RegistryStorageInterface):
    """Apartments and categories, one sheet each."""

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()
        settings = self._client.settings
        self._apartments = _SheetTable(
            self._client, settings.apartments_sheet_name, APARTMENT_COLUMNS, {"members"}
        )
        self._categories = _SheetTable(
            self._client, settings.categories_sheet_name, CATEGORY_COLUMNS, set()
        )

    async def list_apartments(self) -> list[Apartment]:
        try:
            return [Apartment.model_validate(r) for r in self._apartments.records()]
        except Exception as e:
            raise StorageError(f"Failed to list apartments: {e}")

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_not_exception_type((DuplicateError, NotFoundError)),
        reraise=True,
    )
    async def save_apartment(self, apartment: Apartment) -> bool:
        try:
            self._apartments.append(apartment.model_dump(mode="json"))
            return True
        except DuplicateError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to save apartment: {e}")

    async def list_categories(self) -> list[Category]:
        try:
            return [Category.model_validate(r) for r in self._categories.records()]
        except Exception as e:
            raise StorageError(f"Failed to list categories: {e}")

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_not_exception_type((DuplicateError, NotFoundError)),
        reraise=True,
    )
    async def save_category(self, category: Category) -> bool:
        try:
            self._categories.append(category.model_dump(mode="json"))
            return True
        except DuplicateError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to save category: {e}")


class GoogleSheetsNotificationStorage(NotificationStorageInterface):
    """
    Notifications, one per row.

    to_apartment_id and is_read are JSON cells so a broadcast keeps its
    whole read map on one row.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()
        self._table = _SheetTable(
            self._client,
            self._client.settings.notifications_sheet_name,
            NOTIFICATION_COLUMNS,
            {"to_apartment_id", "is_read", "is_active", "is_dismissed"},
        )

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_not_exception_type((DuplicateError, NotFoundError)),
        reraise=True,
    )
    async def save_notification(self, notification: Notification) -> bool:
        try:
            self._table.append(notification.model_dump(mode="json"))
            return True
        except DuplicateError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to save notification: {e}")

    async def get_notification(self, notification_id: str) -> Optional[Notification]:
        try:
            record = self._table.find(notification_id)
        except Exception as e:
            raise StorageError(f"Failed to get notification: {e}")
        return Notification.model_validate(record) if record else None

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_not_exception_type((DuplicateError, NotFoundError)),
        reraise=True,
    )
    async def update_notification_fields(
        self,
        notification_id: str,
        fields: dict[str, Any],
    ) -> bool:
        try:
            self._table.update_fields(notification_id, fields)
            return True
        except NotFoundError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to update notification: {e}")

    async def list_notifications(
        self,
        apartment_id: Optional[str] = None,
    ) -> list[Notification]:
        try:
            notifications = [
                Notification.model_validate(r) for r in self._table.records()
            ]
        except Exception as e:
            raise StorageError(f"Failed to list notifications: {e}")

        if apartment_id is not None:
            notifications = [n for n in notifications if n.addresses(apartment_id)]
        notifications.sort(key=lambda n: n.created_at, reverse=True)
        return notifications


class GoogleSheetsPollStorage(PollStorageInterface):

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()
        self._table = _SheetTable(
            self._client,
            self._client.settings.polls_sheet_name,
            POLL_COLUMNS,
            {"options", "ballots", "is_active"},
        )

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_not_exception_type((DuplicateError, NotFoundError)),
        reraise=True,
    )
    async def save_poll(self, poll: Poll) -> bool:
        try:
            self._table.append(poll.model_dump(mode="json"))
            return True
        except DuplicateError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to save poll: {e}")

    async def get_poll(self, poll_id: str) -> Optional[Poll]:
        try:
            record = self._table.find(poll_id)
        except Exception as e:
            raise StorageError(f"Failed to get poll: {e}")
        return Poll.model_validate(record) if record else None

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_not_exception_type((DuplicateError, NotFoundError)),
        reraise=True,
    )
    async def update_poll_fields(self, poll_id: str, fields: dict[str, Any]) -> bool:
        try:
            self._table.update_fields(poll_id, fields)
            return True
        except NotFoundError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to update poll: {e}")

    async def list_polls(self, active_only: bool = False) -> list[Poll]:
        try:
            polls = [Poll.model_validate(r) for r in self._table.records()]
        except Exception as e:
            raise StorageError(f"Failed to list polls: {e}")
        if active_only:
            polls = [p for p in polls if p.is_active]
        polls.sort(key=lambda p: p.created_at, reverse=True)
        return polls


class GoogleSheetsPaymentStorage(PaymentStorageInterface):

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()
        self._table = _SheetTable(
            self._client,
            self._client.settings.payments_sheet_name,
            PAYMENT_COLUMNS,
            set(),
        )

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_not_exception_type((DuplicateError, NotFoundError)),
        reraise=True,
    )
    async def save_payment(self, payment: Payment) -> bool:
        try:
            self._table.append(payment.model_dump(mode="json"))
            return True
        except DuplicateError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to save payment: {e}")

    async def get_payment(self, payment_id: str) -> Optional[Payment]:
        try:
            record = self._table.find(payment_id)
        except Exception as e:
            raise StorageError(f"Failed to get payment: {e}")
        return Payment.model_validate(record) if record else None

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_not_exception_type((DuplicateError, NotFoundError)),
        reraise=True,
    )
    async def update_payment_fields(self, payment_id: str, fields: dict[str, Any]) -> bool:
        try:
            self._table.update_fields(payment_id, fields)
            return True
        except NotFoundError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to update payment: {e}")

    async def list_payments(
        self,
        month_year: Optional[str] = None,
        status: Optional[PaymentStatus] = None,
    ) -> list[Payment]:
        try:
            payments = [Payment.model_validate(r) for r in self._table.records()]
        except Exception as e:
            raise StorageError(f"Failed to list payments: {e}")
        return [
            p for p in payments
            if (month_year is None or p.month_year == month_year)
            and (status is None or p.status == status)
        ]


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Google Sheets implementation of audit log storage.

    Audit events are append-only.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _sheet(self) -> gspread.Worksheet:
        return self._client.get_worksheet(
            self._client.settings.audit_sheet_name,
            AUDIT_COLUMNS,
            rows=5000,  # More rows for audit log
        )

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
            entity_id=safe_get(5) or None,
            correlation_id=UUID(safe_get(6)) if safe_get(6) else None,
            apartment_id=safe_get(7) or None,
            description=safe_get(8),
            details=json.loads(safe_get(9)) if safe_get(9) else {},
            error_message=safe_get(10) or None,
            is_user_action=safe_get(11).lower() == "true",
        )

    def _read_events(self) -> list[AuditEvent]:
        events = []
        for row in self._sheet().get_all_values()[1:]:
            if not row or not row[0]:
                continue
            try:
                events.append(self._row_to_event(row))
            except ValueError as e:
                logger.warning("audit_row_unreadable", row_id=row[0], error=str(e))
        return events

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event."""
        try:
            self._sheet().append_row(event.to_sheets_row(), value_input_option="RAW")
            return True
        except gspread.exceptions.APIError as e:
            # Audit logging must not break the main flow
            logger.warning("audit_append_failed", event_id=str(event.event_id), error=str(e))
            return False

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """Get events by correlation ID."""
        try:
            events = [e for e in self._read_events() if e.correlation_id == correlation_id]
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: str,
    ) -> list[AuditEvent]:
        """Get events by entity."""
        try:
            events = [
                e for e in self._read_events()
                if e.entity_type == entity_type and e.entity_id == entity_id
            ]
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")
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
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
