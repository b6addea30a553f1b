"""
Derived Analytics

Builds the home and analytics screen snapshots on top of the engine.
Like the engine, nothing here touches storage or the clock unless
`now` is omitted.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional, Sequence

from financeflow.ledger import engine, periods
from financeflow.models.analytics import AnalyticsSummary, HomeSummary, WalletBalance
from financeflow.models.ledger import (
    Category,
    CategoryTotal,
    CategoryType,
    Transaction,
    Wallet,
    WalletType,
)


# A Personal wallet whose name contains one of these counts as "bank"
BANK_KEYWORDS = ("bank", "upi", "card")


def monthly_savings(monthly_income: Decimal, monthly_expense: Decimal) -> Decimal:
    return monthly_income - monthly_expense


def burn_rate(monthly_expense: Decimal, day_of_month: int) -> Decimal:
    """
    Month-to-date expense per elapsed day.

    Calendars never produce day 0, but a non-positive day is treated
    as "no burn rate" rather than dividing by it.
    """
    if day_of_month <= 0:
        return engine.ZERO
    return monthly_expense / Decimal(day_of_month)


def projected_monthly_spend(rate: Decimal, days_in_month: int) -> Decimal:
    return rate * Decimal(days_in_month)


def top_categories(breakdown: Sequence[CategoryTotal], n: int = 3) -> list[CategoryTotal]:
    return list(breakdown[:max(n, 0)])


def is_bank_wallet(wallet: Wallet) -> bool:
    name = wallet.name.lower()
    return any(keyword in name for keyword in BANK_KEYWORDS)


def build_analytics(
    transactions: Sequence[Transaction],
    wallets: Sequence[Wallet],
    categories: Sequence[Category],
    now: Optional[datetime] = None,
    top_n: int = 3,
) -> AnalyticsSummary:
    """Weekly and monthly figures, burn rate and category breakdowns."""
    now = now or datetime.now()
    week = periods.week_range(now)
    month = periods.month_range(now)
    day = periods.day_of_month(now)
    days = periods.days_in_month(now)

    weekly_income, weekly_expense = engine.totals_for_range(transactions, week, wallets)
    monthly_income, monthly_expense = engine.totals_for_range(transactions, month, wallets)

    rate = burn_rate(monthly_expense, day)

    expense_breakdown = engine.category_breakdown(
        transactions, month.start, month.end, wallets, categories, CategoryType.EXPENSE
    )
    income_breakdown = engine.category_breakdown(
        transactions, month.start, month.end, wallets, categories, CategoryType.INCOME
    )

    return AnalyticsSummary(
        generated_at=now,
        week=week,
        month=month,
        day_of_month=day,
        days_in_month=days,
        weekly_income=weekly_income,
        weekly_expense=weekly_expense,
        monthly_income=monthly_income,
        monthly_expense=monthly_expense,
        monthly_savings=monthly_savings(monthly_income, monthly_expense),
        burn_rate=rate,
        projected_monthly_spend=projected_monthly_spend(rate, days),
        expense_by_category=expense_breakdown,
        income_by_category=income_breakdown,
        top_expense_categories=top_categories(expense_breakdown, top_n),
    )


def build_home_summary(
    transactions: Sequence[Transaction],
    wallets: Sequence[Wallet],
    categories: Sequence[Category],
    now: Optional[datetime] = None,
    recent_limit: int = 5,
    quick_add_limit: int = 8,
) -> HomeSummary:
    """Balances, this month's flows and the recent activity list."""
    now = now or datetime.now()
    month = periods.month_range(now)
    balances = engine.wallet_balances(transactions, wallets)

    personal = []
    custodial = []
    bank_balance = cash_balance = engine.ZERO
    for wallet in wallets:
        entry = WalletBalance(wallet=wallet, balance=balances.get(wallet.id, engine.ZERO))
        if wallet.type == WalletType.PERSONAL:
            personal.append(entry)
            if is_bank_wallet(wallet):
                bank_balance += entry.balance
            else:
                cash_balance += entry.balance
        else:
            custodial.append(entry)

    monthly_income, monthly_expense = engine.totals_for_range(transactions, month, wallets)

    quick_add = [c for c in categories if c.type == CategoryType.EXPENSE][:quick_add_limit]

    return HomeSummary(
        generated_at=now,
        month=month,
        total_balance=bank_balance + cash_balance,
        bank_balance=bank_balance,
        cash_balance=cash_balance,
        custodial_balance=sum((entry.balance for entry in custodial), engine.ZERO),
        custodial_wallets=custodial,
        personal_wallets=personal,
        monthly_income=monthly_income,
        monthly_expense=monthly_expense,
        recent_transactions=engine.recent_transactions(
            transactions, wallets, categories, recent_limit
        ),
        quick_add_categories=quick_add,
    )
