"""
Analytics Models

Snapshots computed by financeflow.ledger.analytics for the home and
analytics screens. They are recomputed from the in-memory ledger on
every change and never stored.
"""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from financeflow.models.ledger import (
    Category,
    CategoryTotal,
    DateRange,
    TransactionWithDetails,
    Wallet,
)


class WalletBalance(BaseModel):
    """A wallet with its derived balance."""

    wallet: Wallet
    balance: Decimal


class HomeSummary(BaseModel):
    """Figures for the home screen."""

    generated_at: datetime
    month: DateRange

    total_balance: Decimal = Field(
        ...,
        description="Sum of Personal wallet balances"
    )
    bank_balance: Decimal
    cash_balance: Decimal
    custodial_balance: Decimal
    custodial_wallets: list[WalletBalance] = Field(default_factory=list)
    personal_wallets: list[WalletBalance] = Field(default_factory=list)

    monthly_income: Decimal
    monthly_expense: Decimal

    recent_transactions: list[TransactionWithDetails] = Field(default_factory=list)
    quick_add_categories: list[Category] = Field(default_factory=list)


class AnalyticsSummary(BaseModel):
    """Figures for the analytics screen."""

    generated_at: datetime
    week: DateRange
    month: DateRange
    day_of_month: int
    days_in_month: int

    weekly_income: Decimal
    weekly_expense: Decimal
    monthly_income: Decimal
    monthly_expense: Decimal
    monthly_savings: Decimal = Field(
        ...,
        description="Monthly income minus monthly expense (may be negative)"
    )
    burn_rate: Decimal = Field(
        ...,
        description="Month-to-date expense per elapsed day"
    )
    projected_monthly_spend: Decimal

    expense_by_category: list[CategoryTotal] = Field(default_factory=list)
    income_by_category: list[CategoryTotal] = Field(default_factory=list)
    top_expense_categories: list[CategoryTotal] = Field(default_factory=list)

    @property
    def savings_rate(self) -> float:
        """Share of income kept this month (0 when there is no income)."""
        if self.monthly_income <= 0:
            return 0.0
        return float(self.monthly_savings / self.monthly_income)
