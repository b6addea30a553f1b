"""Shared fixtures."""

from decimal import Decimal

import pytest

from financeflow.models.ledger import Category, CategoryType, Wallet, WalletType
from tests.factories import category, wallet


@pytest.fixture
def wallets() -> list[Wallet]:
    return [
        wallet("bank", "My Bank/UPI"),
        wallet("cash", "My Cash"),
        wallet("held", "Mom's Savings", WalletType.CUSTODIAL),
    ]


@pytest.fixture
def categories() -> list[Category]:
    return [
        category("food", "Food & Dining", color="#E57373", budget=Decimal("1000")),
        category("transport", "Transport", color="#64B5F6"),
        category("salary", "Salary", CategoryType.INCOME, color="#4CAF50"),
        category("gift", "Gift", CategoryType.INCOME, color="#F06292"),
    ]
