"""
Ledger Session

Holds one signed-in user's wallets, categories, transactions and
preferences in memory, and is the only place that writes them.

DESIGN DECISION: Local state is patched only AFTER the store
acknowledges a write. A failed write returns a failed OperationResult
and leaves the session exactly as it was, so every derived figure
(balances, totals, breakdowns) stays consistent with what is stored.

Every derived figure is recomputed from the current snapshot through
financeflow.ledger; nothing is cached here.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Optional
from uuid import UUID

import structlog

from financeflow.audit import AuditLogger
from financeflow.config import get_settings
from financeflow.ledger import analytics as derived, engine
from financeflow.models.analytics import AnalyticsSummary, HomeSummary
from financeflow.models.audit import AuditEventType
from financeflow.models.forms import CategoryDraft, TransactionDraft, WalletDraft
from financeflow.models.ledger import (
    Category,
    CategoryTotal,
    CategoryType,
    DateRange,
    Transaction,
    TransactionWithDetails,
    UserPreferences,
    Wallet,
    WalletType,
    migrate_preferences,
)
from financeflow.models.results import OperationResult, ValidationResult
from financeflow.services.storage import LedgerStorageInterface, NotFoundError, StorageError
from financeflow.validation import EntityValidator, TransactionValidator


logger = structlog.get_logger(__name__)


class SessionNotLoadedError(RuntimeError):
    """A write was attempted before load() bound the session to its data."""
    pass


def _issues_for_audit(result: ValidationResult) -> list[dict]:
    return [
        {"field": i.field, "type": i.issue_type, "message": i.message}
        for i in result.issues
    ]


class LedgerSession:
    """
    Session context for one user.

    Usage:
        session = LedgerSession(storage, user_id, audit_logger)
        await session.load()
        result = await session.add_transaction(draft)
        if result.success:
            summary = session.home_summary()
    """

    def __init__(
        self,
        storage: LedgerStorageInterface,
        user_id: str,
        audit_logger: Optional[AuditLogger] = None,
        transaction_validator: Optional[TransactionValidator] = None,
        entity_validator: Optional[EntityValidator] = None,
    ):
        self._storage = storage
        self.user_id = user_id
        self._audit_logger = audit_logger or AuditLogger()
        self._transaction_validator = transaction_validator or TransactionValidator()
        self._entity_validator = entity_validator or EntityValidator()
        self._settings = get_settings().app

        self._wallets: list[Wallet] = []
        self._categories: list[Category] = []
        self._transactions: list[Transaction] = []
        self._preferences = UserPreferences(currency=self._settings.default_currency)
        self._loaded = False

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    async def load(self) -> None:
        """
        Fetch every collection from the store.

        Stored preferences are migrated to the current shape here, once.
        Raises StorageError if any fetch fails; the session stays unloaded.
        """
        wallets = await self._storage.list_wallets()
        categories = await self._storage.list_categories()
        transactions = await self._storage.list_transactions()
        raw_preferences = await self._storage.get_preferences()

        self._wallets = wallets
        self._categories = categories
        self._transactions = transactions
        self._preferences = migrate_preferences(raw_preferences)
        self._loaded = True

        logger.info(
            "session_loaded",
            user_id=self.user_id,
            wallets=len(wallets),
            categories=len(categories),
            transactions=len(transactions),
        )

    def clear(self) -> None:
        """Drop all local state (sign out, account reset)."""
        self._wallets = []
        self._categories = []
        self._transactions = []
        self._preferences = UserPreferences(currency=self._settings.default_currency)
        self._loaded = False

    @property
    def is_loaded(self) -> bool:
        return self._loaded

    def _require_loaded(self) -> None:
        if not self._loaded:
            raise SessionNotLoadedError(
                f"Session for user {self.user_id} must be loaded before writing"
            )

    async def _storage_failed(
        self,
        operation: str,
        error: StorageError,
        correlation_id: Optional[UUID],
    ) -> OperationResult:
        await self._audit_logger.log_storage_error(
            user_id=self.user_id,
            operation=operation,
            error_message=str(error),
            correlation_id=correlation_id,
        )
        return OperationResult.failed(reason=str(error))

    async def _validation_failed(
        self,
        entity_type: str,
        result: ValidationResult,
        correlation_id: Optional[UUID],
    ) -> OperationResult:
        await self._audit_logger.log_validation_failed(
            user_id=self.user_id,
            entity_type=entity_type,
            issues=_issues_for_audit(result),
            correlation_id=correlation_id,
        )
        return OperationResult.invalid(result)

    # =========================================================================
    # STATE ACCESS
    # =========================================================================

    @property
    def wallets(self) -> list[Wallet]:
        return list(self._wallets)

    @property
    def categories(self) -> list[Category]:
        return list(self._categories)

    @property
    def transactions(self) -> list[Transaction]:
        return list(self._transactions)

    @property
    def preferences(self) -> UserPreferences:
        return self._preferences

    @property
    def personal_wallets(self) -> list[Wallet]:
        return engine.wallets_of_type(self._wallets, WalletType.PERSONAL)

    @property
    def custodial_wallets(self) -> list[Wallet]:
        return engine.wallets_of_type(self._wallets, WalletType.CUSTODIAL)

    def categories_of_type(self, category_type: CategoryType) -> list[Category]:
        return [c for c in self._categories if c.type == category_type]

    def get_wallet(self, wallet_id: str) -> Optional[Wallet]:
        return next((w for w in self._wallets if w.id == wallet_id), None)

    def get_category(self, category_id: str) -> Optional[Category]:
        return next((c for c in self._categories if c.id == category_id), None)

    def get_transaction(self, transaction_id: str) -> Optional[Transaction]:
        return next((t for t in self._transactions if t.id == transaction_id), None)

    # =========================================================================
    # DERIVED FIGURES
    # =========================================================================

    def wallet_balance(self, wallet_id: str) -> Decimal:
        return engine.wallet_balance(self._transactions, wallet_id)

    def wallet_balances(self) -> dict[str, Decimal]:
        return engine.wallet_balances(self._transactions, self._wallets)

    def total_balance(self) -> Decimal:
        """Sum of all Personal wallet balances."""
        balances = self.wallet_balances()
        return sum(
            (balances.get(w.id, engine.ZERO) for w in self.personal_wallets),
            engine.ZERO,
        )

    def total_income(self, start: datetime, end: datetime) -> Decimal:
        return engine.total_income(self._transactions, start, end, self._wallets)

    def total_expense(self, start: datetime, end: datetime) -> Decimal:
        return engine.total_expense(self._transactions, start, end, self._wallets)

    def expense_by_category(self, start: datetime, end: datetime) -> list[CategoryTotal]:
        return engine.expense_by_category(
            self._transactions, start, end, self._wallets, self._categories
        )

    def income_by_category(self, start: datetime, end: datetime) -> list[CategoryTotal]:
        return engine.income_by_category(
            self._transactions, start, end, self._wallets, self._categories
        )

    def transactions_with_details(self) -> list[TransactionWithDetails]:
        return engine.transactions_with_details(
            self._transactions, self._wallets, self._categories
        )

    def recent_transactions(self, limit: Optional[int] = None) -> list[TransactionWithDetails]:
        if limit is None:
            limit = self._settings.recent_transactions_limit
        return engine.recent_transactions(
            self._transactions, self._wallets, self._categories, limit
        )

    def transaction_groups(
        self,
        period: Optional[DateRange] = None,
        kind: Optional[str] = None,
    ) -> list[tuple[str, list[TransactionWithDetails]]]:
        """Filtered transaction list, grouped under day headings."""
        filtered = engine.filter_transactions(self.transactions_with_details(), period, kind)
        return engine.group_by_day(filtered)

    def category_usage(self, category_id: str) -> int:
        return engine.category_usage(self._transactions, category_id)

    def home_summary(self, now: Optional[datetime] = None) -> HomeSummary:
        return derived.build_home_summary(
            self._transactions,
            self._wallets,
            self._categories,
            now=now,
            recent_limit=self._settings.recent_transactions_limit,
            quick_add_limit=self._settings.quick_add_category_limit,
        )

    def analytics(self, now: Optional[datetime] = None) -> AnalyticsSummary:
        return derived.build_analytics(
            self._transactions,
            self._wallets,
            self._categories,
            now=now,
            top_n=self._settings.top_category_count,
        )

    # =========================================================================
    # WALLETS
    # =========================================================================

    async def add_wallet(
        self,
        draft: WalletDraft,
        correlation_id: Optional[UUID] = None,
    ) -> OperationResult:
        self._require_loaded()

        result = self._entity_validator.validate_wallet(draft)
        if not result.is_valid:
            return await self._validation_failed("wallet", result, correlation_id)

        wallet = self._entity_validator.build_wallet(draft)
        try:
            wallet_id = await self._storage.create_wallet(wallet)
        except StorageError as e:
            return await self._storage_failed("create_wallet", e, correlation_id)

        self._wallets.append(wallet.model_copy(update={"id": wallet_id}))
        self._wallets.sort(key=lambda w: w.created_at)

        await self._audit_logger.log_entity_changed(
            AuditEventType.WALLET_CREATED,
            user_id=self.user_id,
            entity_id=wallet_id,
            details={"name": wallet.name, "type": wallet.type.value},
            correlation_id=correlation_id,
        )
        return OperationResult.ok(wallet_id)

    async def update_wallet(self, wallet_id: str, draft: WalletDraft) -> OperationResult:
        """Fields left unset on the draft (e.g. is_default) keep their stored value."""
        self._require_loaded()

        existing = self.get_wallet(wallet_id)
        if existing is None:
            return OperationResult.failed(reason=f"Wallet not found: {wallet_id}")

        result = self._entity_validator.validate_wallet(draft)
        if not result.is_valid:
            return await self._validation_failed("wallet", result, None)

        changes = draft.model_dump(exclude_unset=True)
        try:
            await self._storage.update_wallet(wallet_id, changes)
        except StorageError as e:
            return await self._storage_failed("update_wallet", e, None)

        updated = existing.model_copy(update=changes)
        self._wallets = [updated if w.id == wallet_id else w for w in self._wallets]

        await self._audit_logger.log_entity_changed(
            AuditEventType.WALLET_UPDATED,
            user_id=self.user_id,
            entity_id=wallet_id,
            details={"name": updated.name},
        )
        return OperationResult.ok(wallet_id)

    async def delete_wallet(self, wallet_id: str) -> OperationResult:
        """
        Delete a wallet.

        Its transactions are kept; they show the wallet as "Unknown"
        and drop out of Personal totals.
        """
        self._require_loaded()

        try:
            await self._storage.delete_wallet(wallet_id)
        except StorageError as e:
            return await self._storage_failed("delete_wallet", e, None)

        self._wallets = [w for w in self._wallets if w.id != wallet_id]

        await self._audit_logger.log_entity_changed(
            AuditEventType.WALLET_DELETED,
            user_id=self.user_id,
            entity_id=wallet_id,
        )
        return OperationResult.ok(wallet_id)

    # =========================================================================
    # CATEGORIES
    # =========================================================================

    def _sort_categories(self) -> None:
        self._categories.sort(key=lambda c: c.name)

    async def add_category(
        self,
        draft: CategoryDraft,
        correlation_id: Optional[UUID] = None,
    ) -> OperationResult:
        self._require_loaded()

        result = self._entity_validator.validate_category(draft)
        if not result.is_valid:
            return await self._validation_failed("category", result, correlation_id)

        category = self._entity_validator.build_category(draft)
        try:
            category_id = await self._storage.create_category(category)
        except StorageError as e:
            return await self._storage_failed("create_category", e, correlation_id)

        self._categories.append(category.model_copy(update={"id": category_id}))
        self._sort_categories()

        await self._audit_logger.log_entity_changed(
            AuditEventType.CATEGORY_CREATED,
            user_id=self.user_id,
            entity_id=category_id,
            details={"name": category.name, "type": category.type.value},
            correlation_id=correlation_id,
        )
        return OperationResult.ok(category_id)

    async def update_category(self, category_id: str, draft: CategoryDraft) -> OperationResult:
        self._require_loaded()

        existing = self.get_category(category_id)
        if existing is None:
            return OperationResult.failed(reason=f"Category not found: {category_id}")

        result = self._entity_validator.validate_category(draft)
        if not result.is_valid:
            return await self._validation_failed("category", result, None)

        built = self._entity_validator.build_category(draft)
        changes = built.model_dump(include={"name", "type", "icon", "color", "budget"})
        try:
            await self._storage.update_category(category_id, changes)
        except StorageError as e:
            return await self._storage_failed("update_category", e, None)

        updated = existing.model_copy(update=changes)
        self._categories = [updated if c.id == category_id else c for c in self._categories]
        self._sort_categories()

        await self._audit_logger.log_entity_changed(
            AuditEventType.CATEGORY_UPDATED,
            user_id=self.user_id,
            entity_id=category_id,
            details={"name": updated.name},
        )
        return OperationResult.ok(category_id)

    async def delete_category(self, category_id: str) -> OperationResult:
        """
        Delete a category.

        Transactions that reference it keep the dangling id and drop out
        of the category breakdowns. Use category_usage() to warn first.
        """
        self._require_loaded()

        usage = self.category_usage(category_id)
        try:
            await self._storage.delete_category(category_id)
        except StorageError as e:
            return await self._storage_failed("delete_category", e, None)

        self._categories = [c for c in self._categories if c.id != category_id]

        await self._audit_logger.log_entity_changed(
            AuditEventType.CATEGORY_DELETED,
            user_id=self.user_id,
            entity_id=category_id,
            details={"referencing_transactions": usage},
        )
        return OperationResult.ok(category_id)

    async def seed_default_categories(
        self,
        correlation_id: Optional[UUID] = None,
    ) -> OperationResult:
        """Write the default category set. Not idempotent."""
        self._require_loaded()

        try:
            seeded = await self._storage.seed_default_categories()
        except StorageError as e:
            return await self._storage_failed("seed_default_categories", e, correlation_id)

        self._categories.extend(seeded)
        self._sort_categories()

        await self._audit_logger.log_categories_seeded(
            user_id=self.user_id,
            count=len(seeded),
            correlation_id=correlation_id,
        )
        return OperationResult.ok()

    # =========================================================================
    # TRANSACTIONS
    # =========================================================================

    def _sort_transactions(self) -> None:
        # Stable: a new record stays ahead of older ones with the same date
        self._transactions.sort(key=lambda t: t.date, reverse=True)

    def validate_transaction(
        self,
        draft: TransactionDraft,
        now: Optional[datetime] = None,
    ) -> ValidationResult:
        """Validate a draft against this session's wallets and categories."""
        return self._transaction_validator.validate(
            draft, self._wallets, self._categories, now=now
        )

    async def add_transaction(
        self,
        draft: TransactionDraft,
        correlation_id: Optional[UUID] = None,
    ) -> OperationResult:
        self._require_loaded()

        result = self.validate_transaction(draft)
        if not result.is_valid:
            return await self._validation_failed("transaction", result, correlation_id)

        transaction = self._transaction_validator.build(draft)
        try:
            transaction_id = await self._storage.create_transaction(transaction)
        except StorageError as e:
            return await self._storage_failed("create_transaction", e, correlation_id)

        self._transactions.insert(0, transaction.model_copy(update={"id": transaction_id}))
        self._sort_transactions()

        await self._audit_logger.log_entity_changed(
            AuditEventType.TRANSACTION_CREATED,
            user_id=self.user_id,
            entity_id=transaction_id,
            details={
                "type": transaction.type.value,
                "amount": str(transaction.amount),
                "wallet_id": transaction.wallet_id,
            },
            correlation_id=correlation_id,
        )
        return OperationResult(success=True, entity_id=transaction_id, validation=result)

    async def update_transaction(
        self,
        transaction_id: str,
        draft: TransactionDraft,
    ) -> OperationResult:
        """Replace a transaction's editable fields. created_at never changes."""
        self._require_loaded()

        existing = self.get_transaction(transaction_id)
        if existing is None:
            return OperationResult.failed(reason=f"Transaction not found: {transaction_id}")

        result = self.validate_transaction(draft)
        if not result.is_valid:
            return await self._validation_failed("transaction", result, None)

        built = self._transaction_validator.build(draft)
        changes = built.model_dump(exclude={"id", "created_at"})
        try:
            await self._storage.update_transaction(transaction_id, changes)
        except StorageError as e:
            return await self._storage_failed("update_transaction", e, None)

        updated = existing.model_copy(update=changes)
        self._transactions = [
            updated if t.id == transaction_id else t for t in self._transactions
        ]
        self._sort_transactions()

        await self._audit_logger.log_entity_changed(
            AuditEventType.TRANSACTION_UPDATED,
            user_id=self.user_id,
            entity_id=transaction_id,
            details={"type": updated.type.value, "amount": str(updated.amount)},
        )
        return OperationResult(success=True, entity_id=transaction_id, validation=result)

    async def delete_transaction(self, transaction_id: str) -> OperationResult:
        self._require_loaded()

        try:
            await self._storage.delete_transaction(transaction_id)
        except StorageError as e:
            return await self._storage_failed("delete_transaction", e, None)

        self._transactions = [t for t in self._transactions if t.id != transaction_id]

        await self._audit_logger.log_entity_changed(
            AuditEventType.TRANSACTION_DELETED,
            user_id=self.user_id,
            entity_id=transaction_id,
        )
        return OperationResult.ok(transaction_id)

    # =========================================================================
    # PREFERENCES
    # =========================================================================

    async def update_preferences(
        self,
        correlation_id: Optional[UUID] = None,
        **changes: Any,
    ) -> OperationResult:
        """
        Apply a partial preferences update.

        Writes the full record when none exists yet. The legacy
        dark_mode flag is always written alongside theme_mode.
        """
        self._require_loaded()

        try:
            updated = UserPreferences.model_validate(
                {**self._preferences.model_dump(), **changes}
            )
        except ValueError as e:
            return OperationResult.failed(reason=str(e))

        payload = updated.model_dump(mode="json", include=set(changes) | {"dark_mode"})
        try:
            try:
                await self._storage.update_preferences(payload)
            except NotFoundError:
                await self._storage.set_preferences(updated)
        except StorageError as e:
            return await self._storage_failed("update_preferences", e, correlation_id)

        self._preferences = updated

        await self._audit_logger.log_preferences_updated(
            user_id=self.user_id,
            changes=payload,
            correlation_id=correlation_id,
        )
        return OperationResult.ok()

    async def purge_all_data(self, correlation_id: Optional[UUID] = None) -> OperationResult:
        """
        Delete everything the user has in the store, then drop local state.

        Local state is kept if the purge fails.
        """
        try:
            await self._storage.purge_all_user_data()
        except StorageError as e:
            return await self._storage_failed("purge_all_user_data", e, correlation_id)

        self.clear()
        return OperationResult.ok()

    async def replace_preferences(self, preferences: UserPreferences) -> OperationResult:
        """Write a complete preferences record (sign-up, account reset)."""
        try:
            await self._storage.set_preferences(preferences)
        except StorageError as e:
            return await self._storage_failed("set_preferences", e, None)

        self._preferences = preferences
        return OperationResult.ok()
