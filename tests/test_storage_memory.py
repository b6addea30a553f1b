"""Tests for the in-memory ledger store."""

from datetime import datetime

import pytest

from financeflow.models.ledger import Category, CategoryType, UserPreferences, Wallet
from financeflow.services.storage import InMemoryLedgerStorage, NotFoundError
from tests.factories import expense


class TestInMemoryLedgerStorage:

    @pytest.mark.asyncio
    async def test_create_assigns_id(self):
        store = InMemoryLedgerStorage()
        wallet = Wallet(name="Cash")

        wallet_id = await store.create_wallet(wallet)

        assert wallet_id
        assert wallet.id is None
        [saved] = await store.list_wallets()
        assert saved.id == wallet_id

    @pytest.mark.asyncio
    async def test_wallets_oldest_first(self):
        store = InMemoryLedgerStorage()
        await store.create_wallet(Wallet(name="Newer", created_at=datetime(2024, 3, 1)))
        await store.create_wallet(Wallet(name="Older", created_at=datetime(2024, 1, 1)))

        assert [w.name for w in await store.list_wallets()] == ["Older", "Newer"]

    @pytest.mark.asyncio
    async def test_categories_by_name(self):
        store = InMemoryLedgerStorage()
        await store.create_category(Category(name="Transport", type=CategoryType.EXPENSE))
        await store.create_category(Category(name="Food", type=CategoryType.EXPENSE))

        assert [c.name for c in await store.list_categories()] == ["Food", "Transport"]

    @pytest.mark.asyncio
    async def test_transactions_newest_first(self):
        store = InMemoryLedgerStorage()
        await store.create_transaction(expense(1, "cash", date=datetime(2024, 6, 1)))
        await store.create_transaction(expense(2, "cash", date=datetime(2024, 6, 9)))

        assert [t.date.day for t in await store.list_transactions()] == [9, 1]

    @pytest.mark.asyncio
    async def test_returned_records_are_copies(self):
        store = InMemoryLedgerStorage()
        await store.create_wallet(Wallet(name="Cash"))

        [listed] = await store.list_wallets()
        listed.name = "Changed"

        [again] = await store.list_wallets()
        assert again.name == "Cash"

    @pytest.mark.asyncio
    async def test_update_keeps_id_and_created_at(self):
        store = InMemoryLedgerStorage()
        created = datetime(2024, 1, 1)
        wallet_id = await store.create_wallet(Wallet(name="Cash", created_at=created))

        await store.update_wallet(wallet_id, {"name": "Pocket", "id": "hijack", "created_at": datetime(2030, 1, 1)})

        [saved] = await store.list_wallets()
        assert (saved.id, saved.name, saved.created_at) == (wallet_id, "Pocket", created)

    @pytest.mark.asyncio
    async def test_update_missing_raises(self):
        store = InMemoryLedgerStorage()
        with pytest.raises(NotFoundError):
            await store.update_transaction("nope", {"note": "x"})

    @pytest.mark.asyncio
    async def test_delete_is_unconditional(self):
        store = InMemoryLedgerStorage()
        category_id = await store.create_category(Category(name="Food", type=CategoryType.EXPENSE))
        await store.create_transaction(expense(5, "cash", category_id=category_id))

        await store.delete_category(category_id)
        await store.delete_category("never-existed")

        assert await store.list_categories() == []
        assert len(await store.list_transactions()) == 1

    @pytest.mark.asyncio
    async def test_seed_default_categories(self):
        store = InMemoryLedgerStorage()
        seeded = await store.seed_default_categories()

        assert len(seeded) == 16
        assert all(c.id for c in seeded)
        assert len(await store.list_categories()) == 16

    @pytest.mark.asyncio
    async def test_preferences(self):
        store = InMemoryLedgerStorage("u1")
        assert await store.get_preferences() is None

        with pytest.raises(NotFoundError):
            await store.update_preferences({"currency": "USD"})

        await store.set_preferences(UserPreferences(currency="eur"))
        await store.update_preferences({"onboarding_completed": True})

        raw = await store.get_preferences()
        assert raw["currency"] == "EUR"
        assert raw["onboarding_completed"] is True
        assert raw["theme_mode"] == "DARK"

    @pytest.mark.asyncio
    async def test_purge(self):
        store = InMemoryLedgerStorage()
        await store.create_wallet(Wallet(name="Cash"))
        await store.seed_default_categories()
        await store.create_transaction(expense(5, "cash"))
        await store.set_preferences(UserPreferences())

        await store.purge_all_user_data()

        assert await store.list_wallets() == []
        assert await store.list_categories() == []
        assert await store.list_transactions() == []
        assert await store.get_preferences() is None
