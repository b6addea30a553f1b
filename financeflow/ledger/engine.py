"""
Ledger Aggregation Engine

DESIGN DECISION: Every figure the app shows (balances, period totals,
category breakdowns) is DERIVED from the transaction list on demand.
Nothing here is stored, cached or mutated.

All functions are pure. They take the transaction, wallet and category
collections as arguments and return new values, so they can be called
from any number of screens at once and re-run after every write.

GUARANTEES:
- Never raises for data anomalies. A transaction pointing at a deleted
  wallet or category degrades to "Unknown" / absent, or is dropped from
  the breakdown that needs the join.
- An inverted period (end < start) matches nothing. It is logged as a
  warning, not raised.
"""

from datetime import datetime
from decimal import Decimal
from typing import Iterable, Iterator, Optional, Sequence, Union

import structlog

from financeflow.ledger.periods import format_full_date
from financeflow.models.ledger import (
    INFLOW_TYPES,
    Category,
    CategoryTotal,
    CategoryType,
    DateRange,
    Transaction,
    TransactionType,
    TransactionWithDetails,
    Wallet,
    WalletType,
)


logger = structlog.get_logger(__name__)

ZERO = Decimal("0")
UNKNOWN_WALLET = "Unknown"

_TRANSACTION_FIELDS = set(Transaction.model_fields)

# Transaction list filter -> matching kinds
_KIND_FILTERS = {
    "income": {TransactionType.INCOME, TransactionType.OPENING_BALANCE},
    "expense": {TransactionType.EXPENSE},
    "transfer": {TransactionType.TRANSFER},
}


# =============================================================================
# BALANCES
# =============================================================================

def signed_contributions(transaction: Transaction) -> list[tuple[str, Decimal]]:
    """
    The (wallet_id, signed amount) pairs a transaction applies.

    A transaction touches at most two wallets: its source and, for a
    transfer, its destination.
    """
    t = transaction
    if t.type in INFLOW_TYPES:
        return [(t.wallet_id, t.amount)]
    if t.type == TransactionType.EXPENSE:
        return [(t.wallet_id, -t.amount)]
    if t.type == TransactionType.TRANSFER:
        moves = [(t.wallet_id, -t.amount)]
        if t.to_wallet_id:
            moves.append((t.to_wallet_id, t.amount))
        return moves
    return []


def wallet_balance(transactions: Iterable[Transaction], wallet_id: Optional[str]) -> Decimal:
    """
    Balance of one wallet, folded over every transaction.

    Unknown wallet ids (or wallets with no activity) yield 0.
    """
    balance = ZERO
    for transaction in transactions:
        for target, amount in signed_contributions(transaction):
            if target == wallet_id:
                balance += amount
    return balance


def wallet_balances(
    transactions: Iterable[Transaction],
    wallets: Iterable[Wallet],
) -> dict[str, Decimal]:
    """Balances for every wallet in a single pass."""
    balances = {w.id: ZERO for w in wallets if w.id}
    for transaction in transactions:
        for target, amount in signed_contributions(transaction):
            if target in balances:
                balances[target] += amount
    return balances


def personal_wallet_ids(wallets: Iterable[Wallet]) -> set[str]:
    return {w.id for w in wallets if w.id and w.type == WalletType.PERSONAL}


def wallets_of_type(wallets: Iterable[Wallet], wallet_type: WalletType) -> list[Wallet]:
    return [w for w in wallets if w.type == wallet_type]


# =============================================================================
# PERIOD TOTALS
# =============================================================================

def _range_is_valid(start: datetime, end: datetime) -> bool:
    if end < start:
        logger.warning(
            "inverted_period_range",
            start=start.isoformat(),
            end=end.isoformat(),
        )
        return False
    return True


def _period_flows(
    transactions: Iterable[Transaction],
    start: datetime,
    end: datetime,
    wallets: Iterable[Wallet],
    transaction_type: TransactionType,
) -> Iterator[Transaction]:
    """Transactions of one type, in Personal wallets, dated within [start, end]."""
    if not _range_is_valid(start, end):
        return
    personal = personal_wallet_ids(wallets)
    for t in transactions:
        if (
            t.type == transaction_type
            and t.wallet_id in personal
            and start <= t.date <= end
        ):
            yield t


def total_income(
    transactions: Iterable[Transaction],
    start: datetime,
    end: datetime,
    wallets: Iterable[Wallet],
) -> Decimal:
    """
    Income received into Personal wallets within the period.

    Opening balances are not a flow within a period and are excluded,
    as are transfers.
    """
    flows = _period_flows(transactions, start, end, wallets, TransactionType.INCOME)
    return sum((t.amount for t in flows), ZERO)


def total_expense(
    transactions: Iterable[Transaction],
    start: datetime,
    end: datetime,
    wallets: Iterable[Wallet],
) -> Decimal:
    """Expenses paid from Personal wallets within the period."""
    flows = _period_flows(transactions, start, end, wallets, TransactionType.EXPENSE)
    return sum((t.amount for t in flows), ZERO)


def totals_for_range(
    transactions: Sequence[Transaction],
    period: DateRange,
    wallets: Sequence[Wallet],
) -> tuple[Decimal, Decimal]:
    """(income, expense) for a DateRange."""
    return (
        total_income(transactions, period.start, period.end, wallets),
        total_expense(transactions, period.start, period.end, wallets),
    )


# =============================================================================
# CATEGORY BREAKDOWN
# =============================================================================

def category_breakdown(
    transactions: Iterable[Transaction],
    start: datetime,
    end: datetime,
    wallets: Iterable[Wallet],
    categories: Iterable[Category],
    kind: Union[CategoryType, TransactionType],
) -> list[CategoryTotal]:
    """
    Period totals grouped by category, largest first.

    Groups whose category no longer exists are dropped silently.
    Ties are ordered by category id so the output is deterministic.
    """
    transaction_type = TransactionType(kind.value)

    totals: dict[str, Decimal] = {}
    for t in _period_flows(transactions, start, end, wallets, transaction_type):
        if not t.category_id:
            continue
        totals[t.category_id] = totals.get(t.category_id, ZERO) + t.amount

    by_id = {c.id: c for c in categories if c.id}

    result = []
    for category_id, total in totals.items():
        category = by_id.get(category_id)
        if category is None:
            continue
        result.append(CategoryTotal(
            category_id=category_id,
            name=category.name,
            color=category.color,
            icon=category.icon,
            total=total,
            budget=category.budget,
        ))

    result.sort(key=lambda ct: (-ct.total, ct.category_id))
    return result


def expense_by_category(
    transactions: Iterable[Transaction],
    start: datetime,
    end: datetime,
    wallets: Iterable[Wallet],
    categories: Iterable[Category],
) -> list[CategoryTotal]:
    return category_breakdown(
        transactions, start, end, wallets, categories, CategoryType.EXPENSE
    )


def income_by_category(
    transactions: Iterable[Transaction],
    start: datetime,
    end: datetime,
    wallets: Iterable[Wallet],
    categories: Iterable[Category],
) -> list[CategoryTotal]:
    return category_breakdown(
        transactions, start, end, wallets, categories, CategoryType.INCOME
    )


def category_usage(transactions: Iterable[Transaction], category_id: str) -> int:
    """How many transactions reference a category (used to warn before deleting it)."""
    return sum(1 for t in transactions if t.category_id == category_id)


# =============================================================================
# JOINED VIEWS
# =============================================================================

def transactions_with_details(
    transactions: Iterable[Transaction],
    wallets: Iterable[Wallet],
    categories: Iterable[Category],
) -> list[TransactionWithDetails]:
    """
    Join every transaction with its wallet and category display data.

    The input order is preserved.
    """
    wallet_names = {w.id: w.name for w in wallets if w.id}
    by_id = {c.id: c for c in categories if c.id}

    details = []
    for t in transactions:
        category = by_id.get(t.category_id) if t.category_id else None
        details.append(TransactionWithDetails(
            **t.model_dump(include=_TRANSACTION_FIELDS),
            wallet_name=wallet_names.get(t.wallet_id, UNKNOWN_WALLET),
            to_wallet_name=wallet_names.get(t.to_wallet_id) if t.to_wallet_id else None,
            category_name=category.name if category else None,
            category_icon=category.icon if category else None,
            category_color=category.color if category else None,
        ))
    return details


def recent_transactions(
    transactions: Sequence[Transaction],
    wallets: Iterable[Wallet],
    categories: Iterable[Category],
    limit: int = 10,
) -> list[TransactionWithDetails]:
    """
    The first `limit` joined transactions.

    The store returns transactions newest-by-date first, so this is
    "most recent by event date", not by creation time.
    """
    if limit <= 0:
        return []
    return transactions_with_details(list(transactions)[:limit], wallets, categories)


def filter_transactions(
    details: Iterable[TransactionWithDetails],
    period: Optional[DateRange] = None,
    kind: Optional[str] = None,
) -> list[TransactionWithDetails]:
    """
    Filter the transaction list by period and kind.

    kind: 'income' (includes opening balances), 'expense', 'transfer',
    or None / 'all'.
    """
    allowed = _KIND_FILTERS.get(kind or "all")
    result = []
    for t in details:
        if period is not None and not period.contains(t.date):
            continue
        if allowed is not None and t.type not in allowed:
            continue
        result.append(t)
    return result


def group_by_day(
    details: Iterable[TransactionWithDetails],
) -> list[tuple[str, list[TransactionWithDetails]]]:
    """
    Group transactions under 'dd Mon YYYY' headings, newest day first.

    Within a day the incoming order is kept.
    """
    ordered = sorted(details, key=lambda t: t.date.date(), reverse=True)

    groups: dict[str, list[TransactionWithDetails]] = {}
    for t in ordered:
        groups.setdefault(format_full_date(t.date), []).append(t)
    return list(groups.items())
