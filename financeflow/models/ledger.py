"""
Core Ledger Models for FinanceFlow

These models define the records the ledger works with:
wallets, categories, transactions and user preferences.

DESIGN DECISION: Stored records are deliberately permissive.
A transaction loaded from the store may reference a wallet or category
that no longer exists, or predate a validation rule. The aggregation
engine has to tolerate that, so the business rules for NEW writes live
in financeflow.validation, not in these models.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class WalletType(str, Enum):
    """
    Wallet kinds.

    PERSONAL wallets count toward balances and analytics.
    CUSTODIAL wallets hold money on behalf of others; they are tracked
    but never included in income/expense totals.
    """
    PERSONAL = "PERSONAL"
    CUSTODIAL = "CUSTODIAL"


class CategoryType(str, Enum):
    """Category kinds."""
    INCOME = "INCOME"
    EXPENSE = "EXPENSE"


class TransactionType(str, Enum):
    """
    Transaction kinds.

    OPENING_BALANCE behaves like INCOME for balances but is never
    counted as a flow within a period.
    """
    INCOME = "INCOME"
    EXPENSE = "EXPENSE"
    TRANSFER = "TRANSFER"
    OPENING_BALANCE = "OPENING_BALANCE"


class ThemeMode(str, Enum):
    """Display theme preference."""
    LIGHT = "LIGHT"
    DARK = "DARK"
    SYSTEM = "SYSTEM"


# Types that add to the source wallet's balance
INFLOW_TYPES = frozenset({TransactionType.INCOME, TransactionType.OPENING_BALANCE})

# Types that require a category on the write path
CATEGORIZED_TYPES = frozenset({TransactionType.INCOME, TransactionType.EXPENSE})


# =============================================================================
# ENTITIES
# =============================================================================

def _naive_local(v: datetime) -> datetime:
    """All ledger times are naive local time; aware values are converted."""
    if v.tzinfo is not None:
        return v.astimezone().replace(tzinfo=None)
    return v


class Wallet(BaseModel):
    """
    A named money container.

    `id` is assigned by the store and is None until the wallet is saved.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: Optional[str] = None
    name: str = Field(
        ...,
        max_length=100,
        description="Display name"
    )
    type: WalletType = WalletType.PERSONAL
    icon: str = Field(
        default="wallet",
        description="Icon identifier"
    )
    is_default: bool = False
    created_at: datetime = Field(default_factory=datetime.now)

    @field_validator("created_at")
    @classmethod
    def local_created_at(cls, v: datetime) -> datetime:
        return _naive_local(v)

    @property
    def is_personal(self) -> bool:
        return self.type == WalletType.PERSONAL


class Category(BaseModel):
    """
    A tag used to classify income and expense transactions.

    System-seeded categories carry is_default=True. Deleting them is
    always allowed at the data layer.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: Optional[str] = None
    name: str = Field(
        ...,
        max_length=100,
        description="Display name"
    )
    type: CategoryType
    icon: str = "more-horizontal"
    color: str = Field(
        default="#78909C",
        description="Hex color (#RRGGBB)"
    )
    budget: Optional[Decimal] = Field(
        default=None,
        description="Optional monthly budget"
    )
    is_default: bool = False
    created_at: datetime = Field(default_factory=datetime.now)

    @field_validator("created_at")
    @classmethod
    def local_created_at(cls, v: datetime) -> datetime:
        return _naive_local(v)


class Transaction(BaseModel):
    """
    A single dated monetary event.

    `date` is the economic event time (user editable).
    `created_at` is when the record was created and never changes.

    Write-path rules (positive amount, category presence, distinct
    transfer wallets) are enforced by TransactionValidator.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: Optional[str] = None
    amount: Decimal
    type: TransactionType
    wallet_id: str
    to_wallet_id: Optional[str] = None
    category_id: Optional[str] = None
    note: str = ""
    transfer_reason: Optional[str] = None
    date: datetime
    created_at: datetime = Field(default_factory=datetime.now)

    @field_validator("date", "created_at")
    @classmethod
    def local_times(cls, v: datetime) -> datetime:
        """Hand-edited sheets can carry offsets (e.g. a trailing Z)."""
        return _naive_local(v)

    @field_validator("to_wallet_id", "category_id", "transfer_reason", mode="before")
    @classmethod
    def blank_to_none(cls, v: Any) -> Any:
        """Stores often hand back empty strings for missing references."""
        if isinstance(v, str) and not v.strip():
            return None
        return v


class UserPreferences(BaseModel):
    """
    Per-user preferences.

    `dark_mode` is the legacy boolean. It is kept in sync with
    `theme_mode` so that older readers of the record keep working.
    """

    onboarding_completed: bool = False
    theme_mode: ThemeMode = ThemeMode.DARK
    dark_mode: bool = True
    currency: str = Field(
        default="INR",
        min_length=3,
        max_length=3,
        description="ISO 4217 currency code"
    )

    @field_validator("currency")
    @classmethod
    def upper_currency(cls, v: str) -> str:
        return v.upper()

    @model_validator(mode="after")
    def sync_dark_mode(self) -> "UserPreferences":
        """The legacy flag always follows the theme mode."""
        self.dark_mode = self.theme_mode == ThemeMode.DARK
        return self


# Legacy camelCase keys written by the earlier client
_LEGACY_PREFERENCE_KEYS = {
    "onboardingCompleted": "onboarding_completed",
    "darkMode": "dark_mode",
    "themeMode": "theme_mode",
}


def migrate_preferences(raw: Optional[dict[str, Any]]) -> UserPreferences:
    """
    Normalize a stored preferences record into the current shape.

    Applied once at load time. Handles:
    - camelCase keys from the earlier client
    - records that only carry the legacy `dark_mode` boolean
    - string booleans ("TRUE"/"false") coming back from spreadsheets
    - missing records (returns defaults)
    """
    if not raw:
        return UserPreferences()

    data: dict[str, Any] = {}
    for key, value in raw.items():
        data[_LEGACY_PREFERENCE_KEYS.get(key, key)] = value

    for flag in ("onboarding_completed", "dark_mode"):
        if isinstance(data.get(flag), str):
            data[flag] = data[flag].strip().lower() == "true"

    theme = data.get("theme_mode")
    if not theme:
        legacy_dark = data.get("dark_mode")
        if legacy_dark is None:
            data["theme_mode"] = ThemeMode.DARK
        else:
            data["theme_mode"] = ThemeMode.DARK if legacy_dark else ThemeMode.LIGHT
    elif isinstance(theme, str):
        data["theme_mode"] = theme.upper()

    if not data.get("currency"):
        data.pop("currency", None)

    known = set(UserPreferences.model_fields)
    return UserPreferences(**{k: v for k, v in data.items() if k in known})


# =============================================================================
# DERIVED VIEWS - produced by the aggregation engine, never persisted
# =============================================================================

class TransactionWithDetails(Transaction):
    """A transaction joined with its wallet and category display data."""

    wallet_name: str = "Unknown"
    to_wallet_name: Optional[str] = None
    category_name: Optional[str] = None
    category_icon: Optional[str] = None
    category_color: Optional[str] = None


class CategoryTotal(BaseModel):
    """Total for one category over a period."""

    category_id: str
    name: str
    color: str
    icon: str
    total: Decimal
    budget: Optional[Decimal] = None

    @property
    def budget_used(self) -> Optional[float]:
        """Fraction of the budget spent, or None when there is no budget."""
        if not self.budget:
            return None
        return float(self.total / self.budget)

    @property
    def over_budget(self) -> bool:
        return self.budget is not None and self.total > self.budget


class DateRange(BaseModel):
    """
    An inclusive [start, end] window.

    Produced by financeflow.ledger.periods. The engine also accepts raw
    start/end values, so an inverted window is representable here and
    simply matches nothing.
    """
    model_config = ConfigDict(frozen=True)

    start: datetime
    end: datetime

    @property
    def is_valid(self) -> bool:
        return self.start <= self.end

    def contains(self, moment: datetime) -> bool:
        return self.start <= moment <= self.end


# =============================================================================
# SEED DATA
# =============================================================================

DEFAULT_EXPENSE_CATEGORIES: list[dict[str, str]] = [
    {"name": "Food & Dining", "icon": "utensils", "color": "#E57373"},
    {"name": "Transport", "icon": "car", "color": "#64B5F6"},
    {"name": "Shopping", "icon": "shopping-bag", "color": "#BA68C8"},
    {"name": "Entertainment", "icon": "film", "color": "#FFB74D"},
    {"name": "Health", "icon": "heart-pulse", "color": "#81C784"},
    {"name": "Bills & Utilities", "icon": "receipt", "color": "#90A4AE"},
    {"name": "Education", "icon": "graduation-cap", "color": "#4DB6AC"},
    {"name": "Groceries", "icon": "shopping-cart", "color": "#E57373"},
    {"name": "Personal Care", "icon": "sparkles", "color": "#81C784"},
    {"name": "Other", "icon": "more-horizontal", "color": "#78909C"},
]

DEFAULT_INCOME_CATEGORIES: list[dict[str, str]] = [
    {"name": "Salary", "icon": "briefcase", "color": "#4CAF50"},
    {"name": "Freelance", "icon": "laptop", "color": "#7986CB"},
    {"name": "Gift", "icon": "gift", "color": "#F06292"},
    {"name": "Investment", "icon": "trending-up", "color": "#9575CD"},
    {"name": "Refund", "icon": "rotate-ccw", "color": "#78909C"},
    {"name": "Other", "icon": "more-horizontal", "color": "#78909C"},
]

DEFAULT_WALLETS: list[dict[str, str]] = [
    {"name": "My Bank/UPI", "icon": "credit-card"},
    {"name": "My Cash", "icon": "banknote"},
]


def default_categories(created_at: Optional[datetime] = None) -> list[Category]:
    """Build the seed category set (10 expense, 6 income)."""
    created_at = created_at or datetime.now()
    seeds = [
        (CategoryType.EXPENSE, DEFAULT_EXPENSE_CATEGORIES),
        (CategoryType.INCOME, DEFAULT_INCOME_CATEGORIES),
    ]
    return [
        Category(type=category_type, is_default=True, created_at=created_at, **fields)
        for category_type, entries in seeds
        for fields in entries
    ]


def default_wallets(created_at: Optional[datetime] = None) -> list[Wallet]:
    """Build the two Personal wallets created during onboarding."""
    created_at = created_at or datetime.now()
    return [
        Wallet(
            type=WalletType.PERSONAL,
            is_default=True,
            created_at=created_at,
            **fields,
        )
        for fields in DEFAULT_WALLETS
    ]
