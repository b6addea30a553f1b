"""Ledger aggregation package."""

from financeflow.ledger.analytics import (
    build_analytics,
    build_home_summary,
    burn_rate,
    monthly_savings,
    projected_monthly_spend,
    top_categories,
)
from financeflow.ledger.engine import (
    category_breakdown,
    category_usage,
    expense_by_category,
    filter_transactions,
    group_by_day,
    income_by_category,
    personal_wallet_ids,
    recent_transactions,
    total_expense,
    total_income,
    transactions_with_details,
    wallet_balance,
    wallet_balances,
)
from financeflow.ledger.periods import (
    day_of_month,
    days_in_month,
    month_range,
    week_range,
    year_range,
)

__all__ = [
    # Engine
    "category_breakdown",
    "category_usage",
    "expense_by_category",
    "filter_transactions",
    "group_by_day",
    "income_by_category",
    "personal_wallet_ids",
    "recent_transactions",
    "total_expense",
    "total_income",
    "transactions_with_details",
    "wallet_balance",
    "wallet_balances",
    # Analytics
    "build_analytics",
    "build_home_summary",
    "burn_rate",
    "monthly_savings",
    "projected_monthly_spend",
    "top_categories",
    # Periods
    "day_of_month",
    "days_in_month",
    "month_range",
    "week_range",
    "year_range",
]
