"""
Write-Path Validation

Every new or edited record is checked here BEFORE it reaches the
persistence gateway.

Two kinds of findings:
- ERRORS block the write (non-positive amount, missing category,
  transfer into the same wallet).
- WARNINGS are shown to the user but do not block (future date,
  unusually large amount, category of the wrong kind).

IMPORTANT: Validation NEVER silently fixes issues and never raises.
It reports them so the form can show them.
"""

import math
import re
from datetime import datetime, timedelta
from decimal import Decimal, InvalidOperation
from typing import Optional, Sequence

from financeflow.config import get_settings
from financeflow.models.forms import AmountInput, CategoryDraft, TransactionDraft, WalletDraft
from financeflow.models.ledger import (
    CATEGORIZED_TYPES,
    Category,
    Transaction,
    TransactionType,
    Wallet,
)
from financeflow.models.results import ValidationIssue, ValidationResult


HEX_COLOR = re.compile(r"^#[0-9A-Fa-f]{6}$")


def parse_amount(value: AmountInput) -> Optional[Decimal]:
    """
    Parse user input into a finite Decimal.

    Returns None for blanks, garbage, NaN and infinities.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, float) and not math.isfinite(value):
        return None
    try:
        amount = Decimal(str(value).strip().replace(",", ""))
    except (InvalidOperation, ValueError):
        return None
    if not amount.is_finite():
        return None
    return amount


def _error(field: str, issue_type: str, message: str, fix: Optional[str] = None) -> ValidationIssue:
    return ValidationIssue(
        field=field,
        issue_type=issue_type,
        message=message,
        severity="error",
        suggested_fix=fix,
    )


def _warning(field: str, issue_type: str, message: str, fix: Optional[str] = None) -> ValidationIssue:
    return ValidationIssue(
        field=field,
        issue_type=issue_type,
        message=message,
        severity="warning",
        suggested_fix=fix,
    )


class TransactionValidator:
    """
    Validates transaction drafts and turns valid ones into Transactions.

    Wallets and categories are optional context. When supplied they
    enable the reference checks (which only ever warn, since the store
    does not enforce referential integrity).
    """

    def __init__(self, max_amount: Optional[float] = None, future_tolerance_days: Optional[int] = None):
        settings = get_settings().app
        self._max_amount = Decimal(str(
            max_amount if max_amount is not None else settings.max_transaction_amount
        ))
        self._future_tolerance = timedelta(days=(
            future_tolerance_days
            if future_tolerance_days is not None
            else settings.future_date_tolerance_days
        ))

    def validate(
        self,
        draft: TransactionDraft,
        wallets: Optional[Sequence[Wallet]] = None,
        categories: Optional[Sequence[Category]] = None,
        now: Optional[datetime] = None,
    ) -> ValidationResult:
        issues = []
        issues.extend(self._check_amount(draft))
        issues.extend(self._check_structure(draft))
        issues.extend(self._check_references(draft, wallets, categories))
        issues.extend(self._check_date(draft, now or datetime.now()))
        return ValidationResult(issues=issues)

    def _check_amount(self, draft: TransactionDraft) -> list[ValidationIssue]:
        amount = parse_amount(draft.amount)
        if amount is None:
            return [_error(
                "amount", "invalid_format",
                "Please enter a valid amount",
                "Use digits only, e.g. 250 or 99.50",
            )]
        if amount <= 0:
            return [_error(
                "amount", "invalid_value",
                "Please enter a valid amount",
                "The amount must be greater than zero",
            )]
        if amount > self._max_amount:
            return [_warning(
                "amount", "suspicious_value",
                f"Amount ({amount:,.2f}) seems unusually high",
                "Please verify this amount is correct",
            )]
        return []

    def _check_structure(self, draft: TransactionDraft) -> list[ValidationIssue]:
        issues = []

        if not draft.wallet_id:
            issues.append(_error("wallet_id", "missing", "Please select a wallet"))

        if draft.type in CATEGORIZED_TYPES and not draft.category_id:
            issues.append(_error("category_id", "missing", "Please select a category"))

        if draft.type == TransactionType.TRANSFER:
            if not draft.to_wallet_id:
                issues.append(_error(
                    "to_wallet_id", "missing", "Please select a destination wallet"
                ))
            elif draft.to_wallet_id == draft.wallet_id:
                issues.append(_error(
                    "to_wallet_id", "invalid_value",
                    "Please select different wallets for transfer",
                ))
        elif draft.to_wallet_id:
            issues.append(_error(
                "to_wallet_id", "not_applicable",
                "Only transfers can have a destination wallet",
            ))

        if draft.type not in CATEGORIZED_TYPES and draft.category_id:
            issues.append(_error(
                "category_id", "not_applicable",
                "Transfers and opening balances do not take a category",
            ))

        if draft.transfer_reason and draft.type != TransactionType.TRANSFER:
            issues.append(_error(
                "transfer_reason", "not_applicable",
                "Only transfers can have a transfer reason",
            ))

        return issues

    def _check_references(
        self,
        draft: TransactionDraft,
        wallets: Optional[Sequence[Wallet]],
        categories: Optional[Sequence[Category]],
    ) -> list[ValidationIssue]:
        issues = []

        if wallets is not None:
            known = {w.id for w in wallets}
            for field in ("wallet_id", "to_wallet_id"):
                wallet_id = getattr(draft, field)
                if wallet_id and wallet_id not in known:
                    issues.append(_warning(
                        field, "unknown_reference",
                        "The selected wallet no longer exists",
                        "Pick another wallet",
                    ))

        if categories is not None and draft.category_id:
            category = next((c for c in categories if c.id == draft.category_id), None)
            if category is None:
                issues.append(_warning(
                    "category_id", "unknown_reference",
                    "The selected category no longer exists",
                    "Pick another category",
                ))
            elif category.type.value != draft.type.value:
                issues.append(_warning(
                    "category_id", "inconsistent",
                    f"'{category.name}' is an {category.type.value.lower()} category",
                    "Check that the transaction type is right",
                ))

        return issues

    def _check_date(self, draft: TransactionDraft, now: datetime) -> list[ValidationIssue]:
        if draft.date > now + self._future_tolerance:
            return [_warning(
                "date", "future_date",
                f"Date ({draft.date:%d %b %Y}) is in the future",
                "Please verify the date is correct",
            )]
        return []

    def build(
        self,
        draft: TransactionDraft,
        created_at: Optional[datetime] = None,
    ) -> Transaction:
        """
        Turn a validated draft into a Transaction record.

        Raises ValueError when called with a draft that has errors;
        callers are expected to validate first.
        """
        amount = parse_amount(draft.amount)
        if amount is None or amount <= 0:
            raise ValueError("Cannot build a transaction from an invalid draft")

        return Transaction(
            amount=amount,
            type=draft.type,
            wallet_id=draft.wallet_id,
            to_wallet_id=draft.to_wallet_id,
            category_id=draft.category_id,
            note=draft.note,
            transfer_reason=draft.transfer_reason,
            date=draft.date,
            created_at=created_at or datetime.now(),
        )


class EntityValidator:
    """Validates wallet and category drafts."""

    def validate_wallet(self, draft: WalletDraft) -> ValidationResult:
        issues = []
        if not draft.name:
            issues.append(_error("name", "missing", "Please enter a wallet name"))
        return ValidationResult(issues=issues)

    def validate_category(self, draft: CategoryDraft) -> ValidationResult:
        issues = []

        if not draft.name:
            issues.append(_error("name", "missing", "Please enter a category name"))

        if not HEX_COLOR.match(draft.color or ""):
            issues.append(_error(
                "color", "invalid_format",
                "Color must be a hex value like #E57373",
            ))

        if draft.budget not in (None, ""):
            budget = parse_amount(draft.budget)
            if budget is None or budget <= 0:
                issues.append(_error(
                    "budget", "invalid_value",
                    "Budget must be a positive number",
                    "Leave it empty for no budget",
                ))

        return ValidationResult(issues=issues)

    def build_wallet(self, draft: WalletDraft, created_at: Optional[datetime] = None) -> Wallet:
        return Wallet(
            name=draft.name,
            type=draft.type,
            icon=draft.icon,
            is_default=draft.is_default,
            created_at=created_at or datetime.now(),
        )

    def build_category(self, draft: CategoryDraft, created_at: Optional[datetime] = None) -> Category:
        budget = parse_amount(draft.budget) if draft.budget not in (None, "") else None
        return Category(
            name=draft.name,
            type=draft.type,
            icon=draft.icon,
            color=draft.color.upper(),
            budget=budget,
            created_at=created_at or datetime.now(),
        )


def get_user_friendly_summary(result: ValidationResult) -> str:
    """
    Summarize a validation result for display under a form.
    """
    if result.is_valid and not result.warnings:
        return "✅ All checks passed."

    lines = []

    if result.has_errors:
        lines.append("❌ Please fix the following:")
        for issue in result.errors:
            lines.append(f"   • {issue.message}")
            if issue.suggested_fix:
                lines.append(f"     💡 {issue.suggested_fix}")

    if result.warnings:
        if lines:
            lines.append("")
        lines.append("⚠️ Please verify the following:")
        for warning in result.warnings:
            lines.append(f"   • {warning}")

    return "\n".join(lines)
