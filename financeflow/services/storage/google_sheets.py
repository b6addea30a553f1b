"""
Ledger and audit storage on Google Sheets.

The hosted backend keeps the ledger in a spreadsheet the user can open
and edit by hand.

One worksheet per collection. Every row carries a `user_id` column, so
several users can share one spreadsheet; each GoogleSheetsLedgerStorage
instance only ever sees its own user's rows.

Sheets has no cross-sheet transactions, so a purge deletes sheet by
sheet and filtering happens in Python.
"""

import json
from datetime import datetime
from enum import Enum
from typing import Any, Optional, TypeVar
from uuid import UUID, uuid4

import gspread
from google.oauth2.service_account import Credentials
import structlog
from pydantic import BaseModel, ValidationError
from tenacity import retry, stop_after_attempt, wait_exponential

from financeflow.config import get_settings
from financeflow.models.audit import AuditEvent, AuditEventType, AuditSeverity
from financeflow.models.ledger import (
    Category,
    Transaction,
    UserPreferences,
    Wallet,
    default_categories,
)
from financeflow.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    LedgerStorageInterface,
    NotFoundError,
    StorageError,
)


logger = structlog.get_logger(__name__)

RecordT = TypeVar("RecordT", bound=BaseModel)

WALLET_COLUMNS = [
    "id",
    "user_id",
    "name",
    "type",
    "icon",
    "is_default",
    "created_at",
]

CATEGORY_COLUMNS = [
    "id",
    "user_id",
    "name",
    "type",
    "icon",
    "color",
    "budget",
    "is_default",
    "created_at",
]

TRANSACTION_COLUMNS = [
    "id",
    "user_id",
    "amount",
    "type",
    "wallet_id",
    "to_wallet_id",
    "category_id",
    "note",
    "transfer_reason",
    "date",
    "created_at",
]

PREFERENCE_COLUMNS = [
    "user_id",
    "onboarding_completed",
    "theme_mode",
    "dark_mode",
    "currency",
]

# Same order as AuditEvent.to_sheets_row()
AUDIT_COLUMNS = [
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "user_id",
    "entity_type",
    "entity_id",
    "correlation_id",
    "description",
    "details_json",
    "error_message",
    "is_user_action",
]

_IMMUTABLE_FIELDS = {"id", "user_id", "created_at"}


def _cell(value: Any) -> str:
    """Serialize one field into a sheet cell."""
    if value is None:
        return ""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


def _row_values(data: dict[str, Any], columns: list[str]) -> list[str]:
    return [_cell(data.get(column)) for column in columns]


def _row_dict(row: list[str], columns: list[str]) -> dict[str, str]:
    """Map a sheet row onto its columns, dropping blank cells."""
    data = {}
    for index, column in enumerate(columns):
        value = row[index] if index < len(row) else ""
        if value != "":
            data[column] = value
    return data


class GoogleSheetsClient:
    """
    Shared gspread handle for all ledger worksheets.

    Handles authentication and creates missing worksheets with their
    header row.
    """

    def __init__(self):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = get_settings().google_sheets

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """
        Authorize with the service account key from settings.
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
        """Open the ledger spreadsheet once and keep the handle."""
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

    def get_wallets_sheet(self) -> gspread.Worksheet:
        return self.get_worksheet(self._settings.wallets_sheet_name, WALLET_COLUMNS)

    def get_categories_sheet(self) -> gspread.Worksheet:
        return self.get_worksheet(self._settings.categories_sheet_name, CATEGORY_COLUMNS)

    def get_transactions_sheet(self) -> gspread.Worksheet:
        return self.get_worksheet(
            self._settings.transactions_sheet_name, TRANSACTION_COLUMNS, rows=5000
        )

    def get_preferences_sheet(self) -> gspread.Worksheet:
        return self.get_worksheet(self._settings.preferences_sheet_name, PREFERENCE_COLUMNS)

    def get_audit_sheet(self) -> gspread.Worksheet:
        return self.get_worksheet(self._settings.audit_sheet_name, AUDIT_COLUMNS, rows=5000)


class GoogleSheetsLedgerStorage(LedgerStorageInterface):
    """
    Google Sheets implementation of the ledger gateway.

    Ids are uuid4 hex strings generated here, since Sheets has no
    notion of a row key.
    """

    def __init__(self, user_id: str, client: Optional[GoogleSheetsClient] = None):
        self.user_id = user_id
        self._client = client or GoogleSheetsClient()

    # -------------------------------------------------------------------------
    # Row helpers
    # -------------------------------------------------------------------------

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def _user_rows(self, sheet: gspread.Worksheet, columns: list[str]) -> list[tuple[int, dict[str, str]]]:
        """
        (sheet row number, row dict) for every row owned by this user.

        Row numbers are 1-based and account for the header row.
        """
        user_col = columns.index("user_id")
        owned = []
        for number, row in enumerate(sheet.get_all_values()[1:], start=2):
            if len(row) > user_col and row[user_col] == self.user_id:
                owned.append((number, _row_dict(row, columns)))
        return owned

    def _list(self, sheet: gspread.Worksheet, columns: list[str], model: type[RecordT]) -> list[RecordT]:
        """Rows that no longer parse (hand edits, blank cells) are logged and skipped."""
        records = []
        for number, data in self._user_rows(sheet, columns):
            data.pop("user_id", None)
            try:
                records.append(model.model_validate(data))
            except ValidationError as e:
                logger.warning(
                    "skipped_invalid_row",
                    record_type=model.__name__,
                    user_id=self.user_id,
                    row=number,
                    error=str(e),
                )
        return records

    def _create(self, sheet: gspread.Worksheet, columns: list[str], record: BaseModel) -> str:
        record_id = uuid4().hex
        data = record.model_dump()
        data.update(id=record_id, user_id=self.user_id)
        sheet.append_row(_row_values(data, columns), value_input_option="RAW")
        return record_id

    def _update(
        self,
        sheet: gspread.Worksheet,
        columns: list[str],
        model: type[RecordT],
        record_id: str,
        changes: dict[str, Any],
    ) -> None:
        for number, data in self._user_rows(sheet, columns):
            if data.get("id") != record_id:
                continue
            data.pop("user_id", None)
            record = model.model_validate(data)
            merged = record.model_dump()
            merged.update({k: v for k, v in changes.items() if k not in _IMMUTABLE_FIELDS})
            merged = model.model_validate(merged).model_dump()
            merged["user_id"] = self.user_id
            sheet.update(range_name=f"A{number}", values=[_row_values(merged, columns)])
            return
        raise NotFoundError(f"{model.__name__} not found: {record_id}")

    def _delete(self, sheet: gspread.Worksheet, columns: list[str], record_id: str) -> None:
        for number, data in self._user_rows(sheet, columns):
            if data.get("id") == record_id:
                sheet.delete_rows(number)
                return

    def _delete_all(self, sheet: gspread.Worksheet, columns: list[str]) -> None:
        # Bottom-up so earlier row numbers stay valid
        numbers = [number for number, _ in self._user_rows(sheet, columns)]
        for number in sorted(numbers, reverse=True):
            sheet.delete_rows(number)

    # -------------------------------------------------------------------------
    # Wallets
    # -------------------------------------------------------------------------

    async def list_wallets(self) -> list[Wallet]:
        try:
            wallets = self._list(self._client.get_wallets_sheet(), WALLET_COLUMNS, Wallet)
        except Exception as e:
            raise StorageError(f"Failed to list wallets: {e}")
        wallets.sort(key=lambda w: w.created_at)
        return wallets

    async def create_wallet(self, wallet: Wallet) -> str:
        try:
            return self._create(self._client.get_wallets_sheet(), WALLET_COLUMNS, wallet)
        except Exception as e:
            raise StorageError(f"Failed to create wallet: {e}")

    async def update_wallet(self, wallet_id: str, changes: dict[str, Any]) -> None:
        try:
            self._update(self._client.get_wallets_sheet(), WALLET_COLUMNS, Wallet, wallet_id, changes)
        except NotFoundError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to update wallet: {e}")

    async def delete_wallet(self, wallet_id: str) -> None:
        try:
            self._delete(self._client.get_wallets_sheet(), WALLET_COLUMNS, wallet_id)
        except Exception as e:
            raise StorageError(f"Failed to delete wallet: {e}")

    # -------------------------------------------------------------------------
    # Categories
    # -------------------------------------------------------------------------

    async def list_categories(self) -> list[Category]:
        try:
            categories = self._list(
                self._client.get_categories_sheet(), CATEGORY_COLUMNS, Category
            )
        except Exception as e:
            raise StorageError(f"Failed to list categories: {e}")
        categories.sort(key=lambda c: c.name)
        return categories

    async def create_category(self, category: Category) -> str:
        try:
            return self._create(self._client.get_categories_sheet(), CATEGORY_COLUMNS, category)
        except Exception as e:
            raise StorageError(f"Failed to create category: {e}")

    async def update_category(self, category_id: str, changes: dict[str, Any]) -> None:
        try:
            self._update(
                self._client.get_categories_sheet(),
                CATEGORY_COLUMNS,
                Category,
                category_id,
                changes,
            )
        except NotFoundError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to update category: {e}")

    async def delete_category(self, category_id: str) -> None:
        try:
            self._delete(self._client.get_categories_sheet(), CATEGORY_COLUMNS, category_id)
        except Exception as e:
            raise StorageError(f"Failed to delete category: {e}")

    async def seed_default_categories(self) -> list[Category]:
        """Seed with a single batch append."""
        try:
            sheet = self._client.get_categories_sheet()
            created = []
            rows = []
            for category in default_categories():
                category = category.model_copy(update={"id": uuid4().hex})
                data = category.model_dump()
                data["user_id"] = self.user_id
                rows.append(_row_values(data, CATEGORY_COLUMNS))
                created.append(category)
            sheet.append_rows(rows, value_input_option="RAW")
            return created
        except Exception as e:
            raise StorageError(f"Failed to seed default categories: {e}")

    # -------------------------------------------------------------------------
    # Transactions
    # -------------------------------------------------------------------------

    async def list_transactions(self) -> list[Transaction]:
        try:
            transactions = self._list(
                self._client.get_transactions_sheet(), TRANSACTION_COLUMNS, Transaction
            )
        except Exception as e:
            raise StorageError(f"Failed to list transactions: {e}")
        transactions.sort(key=lambda t: t.date, reverse=True)
        return transactions

    async def create_transaction(self, transaction: Transaction) -> str:
        try:
            return self._create(
                self._client.get_transactions_sheet(), TRANSACTION_COLUMNS, transaction
            )
        except Exception as e:
            raise StorageError(f"Failed to create transaction: {e}")

    async def update_transaction(self, transaction_id: str, changes: dict[str, Any]) -> None:
        try:
            self._update(
                self._client.get_transactions_sheet(),
                TRANSACTION_COLUMNS,
                Transaction,
                transaction_id,
                changes,
            )
        except NotFoundError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to update transaction: {e}")

    async def delete_transaction(self, transaction_id: str) -> None:
        try:
            self._delete(self._client.get_transactions_sheet(), TRANSACTION_COLUMNS, transaction_id)
        except Exception as e:
            raise StorageError(f"Failed to delete transaction: {e}")

    # -------------------------------------------------------------------------
    # Preferences and account lifecycle
    # -------------------------------------------------------------------------

    async def get_preferences(self) -> Optional[dict[str, Any]]:
        try:
            rows = self._user_rows(self._client.get_preferences_sheet(), PREFERENCE_COLUMNS)
        except Exception as e:
            raise StorageError(f"Failed to read preferences: {e}")
        if not rows:
            return None
        _, data = rows[0]
        data.pop("user_id", None)
        return data

    def _write_preferences(self, data: dict[str, Any], must_exist: bool) -> None:
        sheet = self._client.get_preferences_sheet()
        rows = self._user_rows(sheet, PREFERENCE_COLUMNS)
        if not rows and must_exist:
            raise NotFoundError(f"Preferences not found for user: {self.user_id}")

        if rows:
            number, existing = rows[0]
            merged = {**existing, **data} if must_exist else dict(data)
        else:
            number, merged = None, dict(data)
        merged["user_id"] = self.user_id
        values = _row_values(merged, PREFERENCE_COLUMNS)

        if number is None:
            sheet.append_row(values, value_input_option="RAW")
        else:
            sheet.update(range_name=f"A{number}", values=[values])

    async def set_preferences(self, preferences: UserPreferences) -> None:
        try:
            self._write_preferences(preferences.model_dump(), must_exist=False)
        except Exception as e:
            raise StorageError(f"Failed to write preferences: {e}")

    async def update_preferences(self, changes: dict[str, Any]) -> None:
        try:
            self._write_preferences(changes, must_exist=True)
        except NotFoundError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to update preferences: {e}")

    async def purge_all_user_data(self) -> None:
        try:
            self._delete_all(self._client.get_transactions_sheet(), TRANSACTION_COLUMNS)
            self._delete_all(self._client.get_categories_sheet(), CATEGORY_COLUMNS)
            self._delete_all(self._client.get_wallets_sheet(), WALLET_COLUMNS)
            self._delete_all(self._client.get_preferences_sheet(), PREFERENCE_COLUMNS)
        except Exception as e:
            raise StorageError(f"Failed to purge user data: {e}")


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Audit trail kept in its own worksheet.

    Audit events are append-only.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _row_to_event(self, row: list) -> AuditEvent:
        """Rebuild an event; missing trailing cells read as blank."""
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
            user_id=safe_get(4) or None,
            entity_type=safe_get(5) or None,
            entity_id=safe_get(6) or None,
            correlation_id=UUID(safe_get(7)) if safe_get(7) else None,
            description=safe_get(8),
            details=json.loads(safe_get(9)) if safe_get(9) else {},
            error_message=safe_get(10) or None,
            is_user_action=safe_get(11).lower() == "true",
        )

    def _read_events(self) -> list[AuditEvent]:
        sheet = self._client.get_audit_sheet()
        events = []
        for row in sheet.get_all_values()[1:]:
            if not row or not row[0]:
                continue
            try:
                events.append(self._row_to_event(row))
            except (ValueError, json.JSONDecodeError):
                continue  # Skip malformed rows
        return events

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def append_event(self, event: AuditEvent) -> bool:
        """Append one row; returns True once the sheet accepted it."""
        sheet = self._client.get_audit_sheet()
        sheet.append_row(event.to_sheets_row(), value_input_option="RAW")
        return True

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        try:
            events = [e for e in self._read_events() if e.correlation_id == correlation_id]
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        try:
            events = self._read_events()
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
