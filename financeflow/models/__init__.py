"""
Data Models Package

This package contains all Pydantic models used in FinanceFlow.
All data flowing through the system must conform to these schemas.
"""

from financeflow.models.ledger import (
    Category,
    CategoryTotal,
    CategoryType,
    DateRange,
    ThemeMode,
    Transaction,
    TransactionType,
    TransactionWithDetails,
    UserPreferences,
    Wallet,
    WalletType,
    default_categories,
    default_wallets,
    migrate_preferences,
)
from financeflow.models.analytics import (
    AnalyticsSummary,
    HomeSummary,
    WalletBalance,
)
from financeflow.models.forms import (
    CategoryDraft,
    TransactionDraft,
    WalletDraft,
)
from financeflow.models.results import (
    OperationResult,
    ValidationIssue,
    ValidationResult,
)
from financeflow.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Ledger entities
    "Category",
    "CategoryTotal",
    "CategoryType",
    "DateRange",
    "ThemeMode",
    "Transaction",
    "TransactionType",
    "TransactionWithDetails",
    "UserPreferences",
    "Wallet",
    "WalletType",
    "default_categories",
    "default_wallets",
    "migrate_preferences",
    # Analytics
    "AnalyticsSummary",
    "HomeSummary",
    "WalletBalance",
    # Drafts
    "CategoryDraft",
    "TransactionDraft",
    "WalletDraft",
    # Results
    "OperationResult",
    "ValidationIssue",
    "ValidationResult",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
