"""
Tests for FinanceFlow models

Test strategy:
1. Unit tests for the pydantic records and their normalization
2. Ledger figures are covered in test_engine / test_analytics
3. No external services (storage is the in-memory adapter)
"""

import json
from datetime import datetime, timezone
from decimal import Decimal
from uuid import uuid4

import pytest

from financeflow.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)
from financeflow.models.ledger import (
    CategoryTotal,
    CategoryType,
    DateRange,
    ThemeMode,
    Transaction,
    TransactionType,
    UserPreferences,
    Wallet,
    WalletType,
    default_categories,
    default_wallets,
    migrate_preferences,
)
from financeflow.models.results import OperationResult, ValidationIssue, ValidationResult


class TestLedgerModels:
    """Tests for wallet, category and transaction records."""

    def test_wallet_defaults(self):
        """Test Wallet defaults to an unsaved Personal wallet."""
        wallet = Wallet(name="  Savings  ")
        assert wallet.id is None
        assert wallet.name == "Savings"
        assert wallet.type == WalletType.PERSONAL
        assert wallet.icon == "wallet"
        assert wallet.is_personal

    def test_custodial_wallet_is_not_personal(self):
        wallet = Wallet(name="Held for Mom", type="CUSTODIAL")
        assert not wallet.is_personal

    def test_transaction_blank_references_become_none(self):
        """Test that empty strings from the store mean 'no reference'."""
        t = Transaction(
            amount="100",
            type=TransactionType.EXPENSE,
            wallet_id="cash",
            to_wallet_id="",
            category_id="   ",
            transfer_reason="",
            date=datetime(2024, 6, 1),
        )
        assert t.to_wallet_id is None
        assert t.category_id is None
        assert t.transfer_reason is None
        assert t.amount == Decimal("100")

    def test_transaction_accepts_store_strings(self):
        """Test that a row read back as text parses into a Transaction."""
        t = Transaction(
            amount="2500.50",
            type="OPENING_BALANCE",
            wallet_id="bank",
            date="2024-06-01T10:00:00",
        )
        assert t.type == TransactionType.OPENING_BALANCE
        assert t.date == datetime(2024, 6, 1, 10)

    def test_transaction_rejects_unknown_type(self):
        with pytest.raises(ValueError):
            Transaction(amount=1, type="REFUND", wallet_id="cash", date=datetime(2024, 6, 1))

    def test_offset_timestamps_become_naive_local_time(self):
        """Test that times with a UTC offset are converted, not compared raw."""
        aware = datetime(2024, 6, 10, 8, tzinfo=timezone.utc)
        local = aware.astimezone().replace(tzinfo=None)

        t = Transaction(
            amount="100",
            type=TransactionType.EXPENSE,
            wallet_id="cash",
            date="2024-06-10T08:00:00Z",
            created_at=aware,
        )
        wallet = Wallet(name="Cash", created_at=aware)

        assert t.date == local
        assert t.date.tzinfo is None
        assert t.created_at == local
        assert wallet.created_at == local


class TestUserPreferences:
    """Tests for preferences and the legacy dark_mode flag."""

    def test_defaults(self):
        prefs = UserPreferences()
        assert prefs.onboarding_completed is False
        assert prefs.theme_mode == ThemeMode.DARK
        assert prefs.dark_mode is True
        assert prefs.currency == "INR"

    def test_dark_mode_follows_theme(self):
        assert UserPreferences(theme_mode=ThemeMode.LIGHT).dark_mode is False
        assert UserPreferences(theme_mode=ThemeMode.SYSTEM).dark_mode is False
        assert UserPreferences(theme_mode=ThemeMode.DARK, dark_mode=False).dark_mode is True

    def test_currency_upper_cased(self):
        assert UserPreferences(currency="usd").currency == "USD"

    def test_currency_must_be_three_letters(self):
        with pytest.raises(ValueError):
            UserPreferences(currency="RUPEE")


class TestMigratePreferences:
    """Tests for normalizing stored preference records."""

    def test_missing_record_gives_defaults(self):
        assert migrate_preferences(None) == UserPreferences()
        assert migrate_preferences({}) == UserPreferences()

    def test_legacy_dark_mode_only(self):
        """Test a record written before theme_mode existed."""
        assert migrate_preferences({"dark_mode": False}).theme_mode == ThemeMode.LIGHT
        assert migrate_preferences({"dark_mode": True}).theme_mode == ThemeMode.DARK

    def test_camel_case_keys(self):
        prefs = migrate_preferences({
            "onboardingCompleted": True,
            "themeMode": "system",
            "currency": "eur",
        })
        assert prefs.onboarding_completed is True
        assert prefs.theme_mode == ThemeMode.SYSTEM
        assert prefs.dark_mode is False
        assert prefs.currency == "EUR"

    def test_spreadsheet_strings(self):
        """Test booleans that come back from a sheet as text."""
        prefs = migrate_preferences({
            "user_id": "u1",
            "onboarding_completed": "TRUE",
            "dark_mode": "FALSE",
            "theme_mode": "",
            "currency": "",
        })
        assert prefs.onboarding_completed is True
        assert prefs.theme_mode == ThemeMode.LIGHT
        assert prefs.currency == "INR"

    def test_theme_mode_wins_over_legacy_flag(self):
        prefs = migrate_preferences({"theme_mode": "LIGHT", "dark_mode": True})
        assert prefs.theme_mode == ThemeMode.LIGHT
        assert prefs.dark_mode is False


class TestDerivedModels:
    """Tests for CategoryTotal and DateRange."""

    def test_category_total_without_budget(self):
        total = CategoryTotal(
            category_id="food", name="Food", color="#E57373", icon="utensils",
            total=Decimal("500"),
        )
        assert total.budget_used is None
        assert not total.over_budget

    def test_category_total_under_budget(self):
        total = CategoryTotal(
            category_id="food", name="Food", color="#E57373", icon="utensils",
            total=Decimal("250"), budget=Decimal("1000"),
        )
        assert total.budget_used == 0.25
        assert not total.over_budget

    def test_date_range_contains_is_inclusive(self):
        period = DateRange(start=datetime(2024, 6, 1), end=datetime(2024, 6, 30, 23, 59))
        assert period.is_valid
        assert period.contains(datetime(2024, 6, 1))
        assert period.contains(datetime(2024, 6, 30, 23, 59))
        assert not period.contains(datetime(2024, 7, 1))

    def test_inverted_date_range_matches_nothing(self):
        period = DateRange(start=datetime(2024, 6, 30), end=datetime(2024, 6, 1))
        assert not period.is_valid
        assert not period.contains(datetime(2024, 6, 15))


class TestSeedData:
    """Tests for the default categories and wallets."""

    def test_default_categories(self):
        created = datetime(2024, 1, 1)
        seeds = default_categories(created)

        expense = [c for c in seeds if c.type == CategoryType.EXPENSE]
        income = [c for c in seeds if c.type == CategoryType.INCOME]
        assert len(expense) == 10
        assert len(income) == 6
        assert all(c.is_default and c.id is None for c in seeds)
        assert all(c.created_at == created for c in seeds)
        assert expense[0].name == "Food & Dining"
        assert income[0].name == "Salary"

    def test_default_wallets(self):
        wallets = default_wallets()
        assert [w.name for w in wallets] == ["My Bank/UPI", "My Cash"]
        assert all(w.type == WalletType.PERSONAL and w.is_default for w in wallets)


class TestResultModels:
    """Tests for ValidationResult and OperationResult."""

    def test_validation_result_counts(self):
        result = ValidationResult(issues=[
            ValidationIssue(field="amount", issue_type="missing", message="Amount missing", severity="error"),
            ValidationIssue(field="date", issue_type="future_date", message="In the future", severity="warning"),
        ])
        assert result.has_errors
        assert not result.is_valid
        assert result.error_count == 1
        assert result.first_error == "Amount missing"
        assert result.warnings == ["In the future"]

    def test_issue_severity_is_restricted(self):
        with pytest.raises(ValueError):
            ValidationIssue(field="x", issue_type="y", message="z", severity="fatal")

    def test_operation_result_invalid_uses_first_error(self):
        result = ValidationResult(issues=[
            ValidationIssue(field="wallet_id", issue_type="missing", message="Please select a wallet", severity="error"),
        ])
        outcome = OperationResult.invalid(result)
        assert not outcome.success
        assert outcome.reason == "Please select a wallet"
        assert outcome.validation is result

    def test_operation_result_ok(self):
        outcome = OperationResult.ok("abc")
        assert outcome.success
        assert outcome.entity_id == "abc"
        assert outcome.reason is None


class TestAuditModels:
    """Tests for audit-related models."""

    def test_audit_event_creation(self):
        """Test AuditEvent model creation."""
        event = AuditEvent(
            event_type=AuditEventType.WALLET_CREATED,
            description="Wallet created",
        )
        assert event.event_type == AuditEventType.WALLET_CREATED
        assert event.event_id is not None
        assert event.timestamp is not None
        assert event.severity == AuditSeverity.INFO

    def test_audit_event_to_log_dict(self):
        """Test AuditEvent conversion to log dict."""
        correlation_id = uuid4()
        event = AuditEvent(
            event_type=AuditEventType.TRANSACTION_CREATED,
            description="Transaction created",
            user_id="u1",
            correlation_id=correlation_id,
        )
        log_dict = event.to_log_dict()

        assert log_dict["event_type"] == "transaction_created"
        assert log_dict["user_id"] == "u1"
        assert log_dict["correlation_id"] == str(correlation_id)

    def test_audit_event_to_sheets_row(self):
        """Test AuditEvent conversion to a spreadsheet row."""
        event = AuditEvent(
            event_type=AuditEventType.STORAGE_ERROR,
            severity=AuditSeverity.ERROR,
            description="Storage error during create_wallet",
            details={"operation": "create_wallet"},
            error_message="quota exceeded",
        )
        row = event.to_sheets_row()

        assert len(row) == 12
        assert row[2] == "storage_error"
        assert row[3] == "error"
        assert row[4] == ""
        assert json.loads(row[9]) == {"operation": "create_wallet"}
        assert row[10] == "quota exceeded"
        assert row[11] == "False"

    def test_entity_changed_builder(self):
        event = AuditEventBuilder.entity_changed(
            AuditEventType.CATEGORY_DELETED, user_id="u1", entity_id="c9",
        )
        assert event.entity_type == "category"
        assert event.entity_id == "c9"
        assert event.description == "Category deleted: c9"
        assert event.is_user_action

    def test_entity_changed_rejects_non_entity_events(self):
        with pytest.raises(KeyError):
            AuditEventBuilder.entity_changed(AuditEventType.ACCOUNT_RESET, user_id="u1", entity_id="x")

    def test_validation_failed_builder(self):
        """Test validation failed event builder."""
        issues = [{"field": "amount", "message": "Please enter a valid amount"}]
        event = AuditEventBuilder.validation_failed("u1", "transaction", issues)

        assert event.event_type == AuditEventType.VALIDATION_FAILED
        assert event.severity == AuditSeverity.WARNING
        assert "1 issues" in event.description

    def test_auth_failed_builder(self):
        event = AuditEventBuilder.auth_failed("a@b.com", "wrong-password")
        assert event.error_code == "wrong-password"
        assert event.user_id is None
        assert event.details == {"email": "a@b.com"}

    def test_preferences_updated_builder_lists_changed_keys(self):
        event = AuditEventBuilder.preferences_updated("u1", {"theme_mode": "LIGHT", "currency": "USD"})
        assert event.description == "Preferences updated: currency, theme_mode"
