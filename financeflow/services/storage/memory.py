"""
In-Memory Storage Implementation

Backs local runs and the test suite. Behaves like the hosted adapter:
store-assigned ids, the same list orderings, unconditional deletes and
NotFoundError on updates of missing records.

Records are copied on the way in and on the way out, so callers can
never mutate what the store holds.
"""

from typing import Any, Optional, TypeVar
from uuid import UUID, uuid4

from pydantic import BaseModel

from financeflow.models.audit import AuditEvent
from financeflow.models.ledger import (
    Category,
    Transaction,
    UserPreferences,
    Wallet,
    default_categories,
)
from financeflow.services.storage.interface import (
    AuditStorageInterface,
    LedgerStorageInterface,
    NotFoundError,
)


RecordT = TypeVar("RecordT", bound=BaseModel)

# Fields a partial update may never touch
_IMMUTABLE_FIELDS = {"id", "created_at"}


def _new_id() -> str:
    return uuid4().hex


def _apply_changes(record: RecordT, changes: dict[str, Any]) -> RecordT:
    data = record.model_dump()
    data.update({k: v for k, v in changes.items() if k not in _IMMUTABLE_FIELDS})
    return type(record).model_validate(data)


class InMemoryLedgerStorage(LedgerStorageInterface):
    """Ledger gateway holding one user's records in dictionaries."""

    def __init__(self, user_id: str = "local"):
        self.user_id = user_id
        self._wallets: dict[str, Wallet] = {}
        self._categories: dict[str, Category] = {}
        self._transactions: dict[str, Transaction] = {}
        self._preferences: Optional[dict[str, Any]] = None

    # -------------------------------------------------------------------------
    # Generic helpers
    # -------------------------------------------------------------------------

    @staticmethod
    def _insert(table: dict[str, RecordT], record: RecordT) -> str:
        record_id = _new_id()
        table[record_id] = record.model_copy(update={"id": record_id}, deep=True)
        return record_id

    @staticmethod
    def _update(table: dict[str, RecordT], record_id: str, changes: dict[str, Any], kind: str) -> None:
        existing = table.get(record_id)
        if existing is None:
            raise NotFoundError(f"{kind} not found: {record_id}")
        table[record_id] = _apply_changes(existing, changes)

    # -------------------------------------------------------------------------
    # Wallets
    # -------------------------------------------------------------------------

    async def list_wallets(self) -> list[Wallet]:
        wallets = [w.model_copy(deep=True) for w in self._wallets.values()]
        wallets.sort(key=lambda w: w.created_at)
        return wallets

    async def create_wallet(self, wallet: Wallet) -> str:
        return self._insert(self._wallets, wallet)

    async def update_wallet(self, wallet_id: str, changes: dict[str, Any]) -> None:
        self._update(self._wallets, wallet_id, changes, "Wallet")

    async def delete_wallet(self, wallet_id: str) -> None:
        self._wallets.pop(wallet_id, None)

    # -------------------------------------------------------------------------
    # Categories
    # -------------------------------------------------------------------------

    async def list_categories(self) -> list[Category]:
        categories = [c.model_copy(deep=True) for c in self._categories.values()]
        categories.sort(key=lambda c: c.name)
        return categories

    async def create_category(self, category: Category) -> str:
        return self._insert(self._categories, category)

    async def update_category(self, category_id: str, changes: dict[str, Any]) -> None:
        self._update(self._categories, category_id, changes, "Category")

    async def delete_category(self, category_id: str) -> None:
        self._categories.pop(category_id, None)

    async def seed_default_categories(self) -> list[Category]:
        created = []
        for category in default_categories():
            category_id = self._insert(self._categories, category)
            created.append(self._categories[category_id].model_copy(deep=True))
        return created

    # -------------------------------------------------------------------------
    # Transactions
    # -------------------------------------------------------------------------

    async def list_transactions(self) -> list[Transaction]:
        transactions = [t.model_copy(deep=True) for t in self._transactions.values()]
        transactions.sort(key=lambda t: t.date, reverse=True)
        return transactions

    async def create_transaction(self, transaction: Transaction) -> str:
        return self._insert(self._transactions, transaction)

    async def update_transaction(self, transaction_id: str, changes: dict[str, Any]) -> None:
        self._update(self._transactions, transaction_id, changes, "Transaction")

    async def delete_transaction(self, transaction_id: str) -> None:
        self._transactions.pop(transaction_id, None)

    # -------------------------------------------------------------------------
    # Preferences and account lifecycle
    # -------------------------------------------------------------------------

    async def get_preferences(self) -> Optional[dict[str, Any]]:
        return dict(self._preferences) if self._preferences is not None else None

    async def set_preferences(self, preferences: UserPreferences) -> None:
        self._preferences = preferences.model_dump(mode="json")

    async def update_preferences(self, changes: dict[str, Any]) -> None:
        if self._preferences is None:
            raise NotFoundError(f"Preferences not found for user: {self.user_id}")
        self._preferences.update(changes)

    async def purge_all_user_data(self) -> None:
        self._wallets.clear()
        self._categories.clear()
        self._transactions.clear()
        self._preferences = None


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only list of audit events."""

    def __init__(self):
        self.events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> bool:
        self.events.append(event)
        return True

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        events = [e for e in self.events if e.correlation_id == correlation_id]
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        events = sorted(self.events, key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
