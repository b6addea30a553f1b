"""
Abstract Storage Interface

DESIGN DECISION: The ledger talks to its durable store through an
abstract gateway. This allows us to:
1. Keep Google Sheets as the hosted backend
2. Use in-memory storage for tests and local runs
3. Keep the aggregation engine unaware of where records come from

The gateway is a thin CRUD pass-through scoped to one user. It does
not validate, join or aggregate; that happens above it.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional
from uuid import UUID

from financeflow.models.audit import AuditEvent
from financeflow.models.ledger import Category, Transaction, UserPreferences, Wallet


class LedgerStorageInterface(ABC):
    """
    Per-user persistence gateway for wallets, categories, transactions
    and preferences.

    Ids are assigned by the store. Updates take a partial dict of
    changed fields. Deletes are unconditional: they never cascade and
    never check references.
    """

    # -------------------------------------------------------------------------
    # Wallets
    # -------------------------------------------------------------------------

    @abstractmethod
    async def list_wallets(self) -> list[Wallet]:
        """All wallets, oldest first (created_at ascending)."""
        pass

    @abstractmethod
    async def create_wallet(self, wallet: Wallet) -> str:
        """
        Persist a new wallet.

        Returns:
            The store-assigned id

        Raises:
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def update_wallet(self, wallet_id: str, changes: dict[str, Any]) -> None:
        """
        Raises:
            NotFoundError: If the wallet doesn't exist
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def delete_wallet(self, wallet_id: str) -> None:
        pass

    # -------------------------------------------------------------------------
    # Categories
    # -------------------------------------------------------------------------

    @abstractmethod
    async def list_categories(self) -> list[Category]:
        """All categories, ordered by name."""
        pass

    @abstractmethod
    async def create_category(self, category: Category) -> str:
        pass

    @abstractmethod
    async def update_category(self, category_id: str, changes: dict[str, Any]) -> None:
        pass

    @abstractmethod
    async def delete_category(self, category_id: str) -> None:
        pass

    @abstractmethod
    async def seed_default_categories(self) -> list[Category]:
        """
        Write the default category set.

        Not idempotent: calling it twice creates duplicates. Callers
        (onboarding) invoke it once per account.

        Returns:
            The created categories, with ids
        """
        pass

    # -------------------------------------------------------------------------
    # Transactions
    # -------------------------------------------------------------------------

    @abstractmethod
    async def list_transactions(self) -> list[Transaction]:
        """All transactions, newest event date first."""
        pass

    @abstractmethod
    async def create_transaction(self, transaction: Transaction) -> str:
        pass

    @abstractmethod
    async def update_transaction(self, transaction_id: str, changes: dict[str, Any]) -> None:
        pass

    @abstractmethod
    async def delete_transaction(self, transaction_id: str) -> None:
        pass

    # -------------------------------------------------------------------------
    # Preferences and account lifecycle
    # -------------------------------------------------------------------------

    @abstractmethod
    async def get_preferences(self) -> Optional[dict[str, Any]]:
        """
        The raw stored preferences record, or None if there is none.

        Returned raw so the caller can migrate legacy shapes.
        """
        pass

    @abstractmethod
    async def set_preferences(self, preferences: UserPreferences) -> None:
        """Write the full preferences record, replacing any existing one."""
        pass

    @abstractmethod
    async def update_preferences(self, changes: dict[str, Any]) -> None:
        """
        Merge changes into the stored record.

        Raises:
            NotFoundError: If no preferences record exists
        """
        pass

    @abstractmethod
    async def purge_all_user_data(self) -> None:
        """Delete every wallet, category, transaction and the preferences record."""
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """Events of one flow (e.g. an onboarding), oldest first."""
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """The most recent audit events, newest first."""
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
