"""
Tests for LedgerSession.

Writes go through the in-memory store. FailingLedgerStorage makes chosen
store calls raise StorageError so the "nothing changes on failure" rule
can be checked.
"""

from datetime import datetime
from decimal import Decimal

import pytest

from financeflow.audit import AuditLogger
from financeflow.ledger.periods import month_range
from financeflow.models.audit import AuditEventType
from financeflow.models.forms import CategoryDraft, TransactionDraft, WalletDraft
from financeflow.models.ledger import (
    CategoryType,
    ThemeMode,
    TransactionType,
    UserPreferences,
    WalletType,
)
from financeflow.services.storage import InMemoryAuditStorage, InMemoryLedgerStorage, StorageError
from financeflow.session import LedgerSession, SessionNotLoadedError
from tests.factories import NOW


JUNE = month_range(NOW)


class FailingLedgerStorage(InMemoryLedgerStorage):
    """In-memory store whose listed operations raise StorageError."""

    def __init__(self, fail_on=()):
        super().__init__("u1")
        self.fail_on = set(fail_on)

    def _check(self, operation):
        if operation in self.fail_on:
            raise StorageError(f"{operation} failed: quota exceeded")

    async def create_wallet(self, wallet):
        self._check("create_wallet")
        return await super().create_wallet(wallet)

    async def delete_wallet(self, wallet_id):
        self._check("delete_wallet")
        await super().delete_wallet(wallet_id)

    async def create_transaction(self, transaction):
        self._check("create_transaction")
        return await super().create_transaction(transaction)

    async def update_transaction(self, transaction_id, changes):
        self._check("update_transaction")
        await super().update_transaction(transaction_id, changes)

    async def update_preferences(self, changes):
        self._check("update_preferences")
        await super().update_preferences(changes)

    async def set_preferences(self, preferences):
        self._check("set_preferences")
        await super().set_preferences(preferences)

    async def purge_all_user_data(self):
        self._check("purge_all_user_data")
        await super().purge_all_user_data()


async def make_session(storage=None):
    """A loaded session with Bank, Cash, a custodial wallet and two categories."""
    storage = storage or FailingLedgerStorage()
    audit = InMemoryAuditStorage()
    session = LedgerSession(storage, "u1", AuditLogger(audit))
    await session.load()

    ids = {}
    for key, name, wallet_type in [
        ("bank", "My Bank/UPI", WalletType.PERSONAL),
        ("cash", "My Cash", WalletType.PERSONAL),
        ("held", "Mom's Savings", WalletType.CUSTODIAL),
    ]:
        ids[key] = (await session.add_wallet(WalletDraft(name=name, type=wallet_type))).entity_id
    ids["food"] = (await session.add_category(
        CategoryDraft(name="Food & Dining", color="#E57373", budget="1000")
    )).entity_id
    ids["salary"] = (await session.add_category(
        CategoryDraft(name="Salary", type=CategoryType.INCOME, color="#4CAF50")
    )).entity_id
    return session, ids, audit


def expense_draft(ids, amount="300", date=NOW, **kwargs):
    return TransactionDraft(
        type=TransactionType.EXPENSE,
        amount=amount,
        wallet_id=kwargs.pop("wallet_id", ids["cash"]),
        category_id=kwargs.pop("category_id", ids["food"]),
        date=date,
        **kwargs,
    )


def opening_draft(wallet_id, amount):
    return TransactionDraft(
        type=TransactionType.OPENING_BALANCE, amount=amount, wallet_id=wallet_id, date=NOW,
    )


class TestLifecycle:

    @pytest.mark.asyncio
    async def test_write_before_load_raises(self):
        session = LedgerSession(InMemoryLedgerStorage(), "u1")
        with pytest.raises(SessionNotLoadedError):
            await session.add_wallet(WalletDraft(name="Cash"))

    @pytest.mark.asyncio
    async def test_load_reads_store(self):
        storage = InMemoryLedgerStorage("u1")
        await storage.seed_default_categories()
        await storage.set_preferences(UserPreferences(onboarding_completed=True))

        session = LedgerSession(storage, "u1")
        await session.load()

        assert session.is_loaded
        assert len(session.categories) == 16
        assert len(session.categories_of_type(CategoryType.INCOME)) == 6
        assert session.preferences.onboarding_completed is True

    @pytest.mark.asyncio
    async def test_load_migrates_legacy_preferences(self):
        storage = InMemoryLedgerStorage("u1")
        storage._preferences = {"darkMode": False, "onboardingCompleted": "TRUE"}

        session = LedgerSession(storage, "u1")
        await session.load()

        assert session.preferences.theme_mode == ThemeMode.LIGHT
        assert session.preferences.onboarding_completed is True

    @pytest.mark.asyncio
    async def test_clear(self):
        session, _, _ = await make_session()
        session.clear()

        assert not session.is_loaded
        assert session.wallets == []
        assert session.total_balance() == Decimal("0")


class TestWallets:

    @pytest.mark.asyncio
    async def test_add_wallet(self):
        session, ids, audit = await make_session()

        assert [w.name for w in session.wallets] == ["My Bank/UPI", "My Cash", "Mom's Savings"]
        assert [w.id for w in session.personal_wallets] == [ids["bank"], ids["cash"]]
        assert [w.id for w in session.custodial_wallets] == [ids["held"]]
        assert audit.events[0].event_type == AuditEventType.WALLET_CREATED

    @pytest.mark.asyncio
    async def test_add_wallet_requires_name(self):
        session, _, audit = await make_session()
        result = await session.add_wallet(WalletDraft(name=""))

        assert not result.success
        assert result.reason == "Please enter a wallet name"
        assert len(session.wallets) == 3
        assert audit.events[-1].event_type == AuditEventType.VALIDATION_FAILED

    @pytest.mark.asyncio
    async def test_add_wallet_storage_failure(self):
        session, _, audit = await make_session()
        session._storage.fail_on.add("create_wallet")

        result = await session.add_wallet(WalletDraft(name="Travel"))

        assert not result.success
        assert "quota exceeded" in result.reason
        assert len(session.wallets) == 3
        assert audit.events[-1].event_type == AuditEventType.STORAGE_ERROR

    @pytest.mark.asyncio
    async def test_update_wallet(self):
        session, ids, _ = await make_session()
        result = await session.update_wallet(ids["cash"], WalletDraft(name="Pocket Money", icon="coins"))

        assert result.success
        assert session.get_wallet(ids["cash"]).name == "Pocket Money"
        [stored] = [w for w in await session._storage.list_wallets() if w.id == ids["cash"]]
        assert stored.icon == "coins"

    @pytest.mark.asyncio
    async def test_update_unknown_wallet(self):
        session, _, _ = await make_session()
        result = await session.update_wallet("ghost", WalletDraft(name="X"))
        assert not result.success

    @pytest.mark.asyncio
    async def test_rename_keeps_default_flag(self):
        session, _, _ = await make_session()
        created = await session.add_wallet(WalletDraft(name="My Bank/UPI", is_default=True))

        result = await session.update_wallet(created.entity_id, WalletDraft(name="Savings Bank"))

        assert result.success
        assert session.get_wallet(created.entity_id).is_default is True
        [stored] = [w for w in await session._storage.list_wallets() if w.id == created.entity_id]
        assert stored.is_default is True
        assert stored.name == "Savings Bank"

    @pytest.mark.asyncio
    async def test_edit_from_existing_wallet(self):
        session, ids, _ = await make_session()
        existing = session.get_wallet(ids["held"])
        draft = WalletDraft.from_wallet(existing).model_copy(update={"name": "Dad's Savings"})

        result = await session.update_wallet(ids["held"], draft)

        assert result.success
        edited = session.get_wallet(ids["held"])
        assert edited.name == "Dad's Savings"
        assert edited.type == WalletType.CUSTODIAL
        assert edited.created_at == existing.created_at

    @pytest.mark.asyncio
    async def test_delete_wallet_keeps_transactions(self):
        session, ids, _ = await make_session()
        await session.add_transaction(expense_draft(ids))

        result = await session.delete_wallet(ids["cash"])

        assert result.success
        assert session.get_wallet(ids["cash"]) is None
        [detail] = session.transactions_with_details()
        assert detail.wallet_name == "Unknown"
        assert session.total_expense(JUNE.start, JUNE.end) == Decimal("0")

    @pytest.mark.asyncio
    async def test_delete_wallet_failure_keeps_wallet(self):
        session, ids, _ = await make_session()
        session._storage.fail_on.add("delete_wallet")

        result = await session.delete_wallet(ids["cash"])

        assert not result.success
        assert session.get_wallet(ids["cash"]) is not None


class TestTransactions:

    @pytest.mark.asyncio
    async def test_add_transaction_updates_figures(self):
        session, ids, audit = await make_session()
        await session.add_transaction(opening_draft(ids["cash"], "5000"))

        result = await session.add_transaction(expense_draft(ids, amount="300"))

        assert result.success
        assert result.entity_id
        assert session.transactions[0].id == result.entity_id
        assert session.wallet_balance(ids["cash"]) == Decimal("4700")
        assert session.total_expense(JUNE.start, JUNE.end) == Decimal("300")
        assert session.total_income(JUNE.start, JUNE.end) == Decimal("0")
        assert audit.events[-1].event_type == AuditEventType.TRANSACTION_CREATED

    @pytest.mark.asyncio
    async def test_new_transaction_sorted_by_date(self):
        session, ids, _ = await make_session()
        await session.add_transaction(expense_draft(ids, date=datetime(2024, 6, 10)))
        await session.add_transaction(expense_draft(ids, date=datetime(2024, 6, 1)))
        await session.add_transaction(expense_draft(ids, date=datetime(2024, 6, 10)))

        dates = [t.date for t in session.transactions]
        assert dates == sorted(dates, reverse=True)

    @pytest.mark.asyncio
    async def test_invalid_transaction_changes_nothing(self):
        session, ids, audit = await make_session()
        result = await session.add_transaction(expense_draft(ids, category_id=None))

        assert not result.success
        assert result.reason == "Please select a category"
        assert result.validation is not None
        assert session.transactions == []
        assert await session._storage.list_transactions() == []
        assert audit.events[-1].event_type == AuditEventType.VALIDATION_FAILED

    @pytest.mark.asyncio
    async def test_storage_failure_changes_nothing(self):
        session, ids, audit = await make_session()
        await session.add_transaction(opening_draft(ids["cash"], "5000"))
        before = session.wallet_balance(ids["cash"])
        session._storage.fail_on.add("create_transaction")

        result = await session.add_transaction(expense_draft(ids))

        assert not result.success
        assert session.wallet_balance(ids["cash"]) == before
        assert len(session.transactions) == 1
        assert audit.events[-1].event_type == AuditEventType.STORAGE_ERROR

    @pytest.mark.asyncio
    async def test_warnings_do_not_block(self):
        session, ids, _ = await make_session()
        result = await session.add_transaction(expense_draft(ids, wallet_id="ghost"))

        assert result.success
        assert result.validation.warnings == ["The selected wallet no longer exists"]

    @pytest.mark.asyncio
    async def test_transfer_conserves_total(self):
        session, ids, _ = await make_session()
        await session.add_transaction(opening_draft(ids["bank"], "2000"))
        await session.add_transaction(opening_draft(ids["cash"], "5000"))
        total_before = session.total_balance()

        result = await session.add_transaction(TransactionDraft(
            type=TransactionType.TRANSFER,
            amount="1000",
            wallet_id=ids["bank"],
            to_wallet_id=ids["cash"],
            transfer_reason="ATM",
            date=NOW,
        ))

        assert result.success
        assert session.wallet_balance(ids["bank"]) == Decimal("1000")
        assert session.wallet_balance(ids["cash"]) == Decimal("6000")
        assert session.total_balance() == total_before

    @pytest.mark.asyncio
    async def test_custodial_expense_excluded(self):
        session, ids, _ = await make_session()
        await session.add_transaction(expense_draft(ids, amount="100"))
        await session.add_transaction(expense_draft(ids, amount="100", wallet_id=ids["held"]))

        assert session.total_expense(JUNE.start, JUNE.end) == Decimal("100")
        assert session.wallet_balance(ids["held"]) == Decimal("-100")
        assert session.total_balance() == Decimal("-100")

    @pytest.mark.asyncio
    async def test_update_transaction_keeps_created_at(self):
        session, ids, _ = await make_session()
        created = await session.add_transaction(expense_draft(ids, amount="300"))
        original = session.get_transaction(created.entity_id)

        result = await session.update_transaction(
            created.entity_id, expense_draft(ids, amount="450", note="Dinner")
        )

        assert result.success
        updated = session.get_transaction(created.entity_id)
        assert updated.amount == Decimal("450")
        assert updated.note == "Dinner"
        assert updated.created_at == original.created_at
        [stored] = await session._storage.list_transactions()
        assert stored.amount == Decimal("450")

    @pytest.mark.asyncio
    async def test_edit_from_existing_transaction(self):
        session, ids, _ = await make_session()
        created = await session.add_transaction(expense_draft(ids, amount="300", note="Lunch"))
        existing = session.get_transaction(created.entity_id)
        draft = TransactionDraft.from_transaction(existing).model_copy(update={"note": "Team lunch"})

        result = await session.update_transaction(created.entity_id, draft)

        assert result.success
        edited = session.get_transaction(created.entity_id)
        assert edited.note == "Team lunch"
        assert edited.amount == Decimal("300")
        assert edited.category_id == ids["food"]
        assert edited.date == existing.date

    @pytest.mark.asyncio
    async def test_update_transaction_failure(self):
        session, ids, _ = await make_session()
        created = await session.add_transaction(expense_draft(ids, amount="300"))
        session._storage.fail_on.add("update_transaction")

        result = await session.update_transaction(created.entity_id, expense_draft(ids, amount="450"))

        assert not result.success
        assert session.get_transaction(created.entity_id).amount == Decimal("300")

    @pytest.mark.asyncio
    async def test_delete_transaction(self):
        session, ids, _ = await make_session()
        created = await session.add_transaction(expense_draft(ids))

        result = await session.delete_transaction(created.entity_id)

        assert result.success
        assert session.transactions == []
        assert session.wallet_balance(ids["cash"]) == Decimal("0")


class TestCategories:

    @pytest.mark.asyncio
    async def test_categories_sorted_by_name(self):
        session, _, _ = await make_session()
        await session.add_category(CategoryDraft(name="Books", color="#123456"))

        assert [c.name for c in session.categories] == ["Books", "Food & Dining", "Salary"]

    @pytest.mark.asyncio
    async def test_invalid_category(self):
        session, _, _ = await make_session()
        result = await session.add_category(CategoryDraft(name="Pets", color="blue"))

        assert not result.success
        assert len(session.categories) == 2

    @pytest.mark.asyncio
    async def test_update_category(self):
        session, ids, _ = await make_session()
        result = await session.update_category(
            ids["food"], CategoryDraft(name="Eating Out", color="#ff0000", budget="2000")
        )

        assert result.success
        category = session.get_category(ids["food"])
        assert (category.name, category.color, category.budget) == ("Eating Out", "#FF0000", Decimal("2000"))

    @pytest.mark.asyncio
    async def test_edit_from_existing_category(self):
        session, ids, _ = await make_session()
        draft = CategoryDraft.from_category(session.get_category(ids["food"])).model_copy(
            update={"icon": "coffee"}
        )

        result = await session.update_category(ids["food"], draft)

        assert result.success
        category = session.get_category(ids["food"])
        assert category.icon == "coffee"
        assert category.budget == Decimal("1000")
        assert category.color == "#E57373"

    @pytest.mark.asyncio
    async def test_delete_category_keeps_total(self):
        """Deleting a category drops it from the breakdown only."""
        session, ids, audit = await make_session()
        await session.add_transaction(expense_draft(ids, amount="300"))
        assert session.category_usage(ids["food"]) == 1

        result = await session.delete_category(ids["food"])

        assert result.success
        assert session.expense_by_category(JUNE.start, JUNE.end) == []
        assert session.total_expense(JUNE.start, JUNE.end) == Decimal("300")
        assert session.transactions[0].category_id == ids["food"]
        assert audit.events[-1].details == {"referencing_transactions": 1}

    @pytest.mark.asyncio
    async def test_seed_default_categories(self):
        session = LedgerSession(InMemoryLedgerStorage(), "u1")
        await session.load()

        result = await session.seed_default_categories()

        assert result.success
        assert len(session.categories) == 16
        assert [c.name for c in session.categories] == sorted(c.name for c in session.categories)


class TestDerivedViews:

    @pytest.mark.asyncio
    async def test_home_summary_and_analytics(self):
        session, ids, _ = await make_session()
        await session.add_transaction(opening_draft(ids["bank"], "10000"))
        await session.add_transaction(TransactionDraft(
            type=TransactionType.INCOME, amount="30000", wallet_id=ids["bank"],
            category_id=ids["salary"], date=datetime(2024, 6, 1, 9),
        ))
        await session.add_transaction(expense_draft(ids, amount="1200", date=datetime(2024, 6, 11)))

        home = session.home_summary(now=NOW)
        assert home.total_balance == Decimal("38800")
        assert home.monthly_income == Decimal("30000")
        assert home.monthly_expense == Decimal("1200")

        report = session.analytics(now=NOW)
        assert report.burn_rate == Decimal("100")
        assert report.projected_monthly_spend == Decimal("3000")
        assert [c.name for c in report.top_expense_categories] == ["Food & Dining"]

    @pytest.mark.asyncio
    async def test_income_by_category(self):
        session, ids, _ = await make_session()
        await session.add_transaction(TransactionDraft(
            type=TransactionType.INCOME, amount="500", wallet_id=ids["cash"],
            category_id=ids["salary"], date=NOW,
        ))

        [salary] = session.income_by_category(JUNE.start, JUNE.end)
        assert salary.total == Decimal("500")

    @pytest.mark.asyncio
    async def test_recent_transactions_and_groups(self):
        session, ids, _ = await make_session()
        for day in (3, 5, 7, 9, 11, 12):
            await session.add_transaction(expense_draft(ids, amount=str(day), date=datetime(2024, 6, day)))

        assert len(session.recent_transactions()) == 5
        assert len(session.recent_transactions(limit=2)) == 2

        groups = session.transaction_groups(period=JUNE, kind="expense")
        assert [heading for heading, _ in groups][:2] == ["12 Jun 2024", "11 Jun 2024"]
        assert session.transaction_groups(kind="transfer") == []


class TestPreferences:

    @pytest.mark.asyncio
    async def test_update_creates_missing_record(self):
        session, _, audit = await make_session()

        result = await session.update_preferences(theme_mode=ThemeMode.LIGHT)

        assert result.success
        assert session.preferences.theme_mode == ThemeMode.LIGHT
        assert session.preferences.dark_mode is False
        stored = await session._storage.get_preferences()
        assert stored["theme_mode"] == "LIGHT"
        assert stored["dark_mode"] is False
        assert audit.events[-1].event_type == AuditEventType.PREFERENCES_UPDATED

    @pytest.mark.asyncio
    async def test_partial_update_writes_theme_pair(self):
        session, _, audit = await make_session()
        await session.update_preferences(currency="USD")
        await session.update_preferences(theme_mode=ThemeMode.SYSTEM)

        assert audit.events[-1].details["changes"] == {"theme_mode": "SYSTEM", "dark_mode": False}
        stored = await session._storage.get_preferences()
        assert stored["currency"] == "USD"

    @pytest.mark.asyncio
    async def test_invalid_value_rejected(self):
        session, _, _ = await make_session()
        result = await session.update_preferences(currency="RUPEES")

        assert not result.success
        assert session.preferences.currency == "INR"

    @pytest.mark.asyncio
    async def test_storage_failure_keeps_preferences(self):
        session, _, _ = await make_session()
        await session.update_preferences(currency="USD")
        session._storage.fail_on.add("update_preferences")

        result = await session.update_preferences(theme_mode=ThemeMode.LIGHT)

        assert not result.success
        assert session.preferences.theme_mode == ThemeMode.DARK


class TestPurge:

    @pytest.mark.asyncio
    async def test_purge_clears_store_and_session(self):
        session, ids, _ = await make_session()
        await session.add_transaction(expense_draft(ids))

        result = await session.purge_all_data()

        assert result.success
        assert not session.is_loaded
        assert session.transactions == []
        assert await session._storage.list_wallets() == []

    @pytest.mark.asyncio
    async def test_failed_purge_keeps_state(self):
        session, ids, _ = await make_session()
        await session.add_transaction(expense_draft(ids))
        session._storage.fail_on.add("purge_all_user_data")

        result = await session.purge_all_data()

        assert not result.success
        assert session.is_loaded
        assert len(session.transactions) == 1
