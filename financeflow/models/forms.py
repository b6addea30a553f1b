"""
Draft Models - user input before validation.

These mirror what the entry forms collect. Amounts arrive as raw text
or numbers and are only turned into Decimal by the validator, so an
unparseable amount becomes a validation issue instead of a crash.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from financeflow.models.ledger import (
    Category,
    CategoryType,
    Transaction,
    TransactionType,
    Wallet,
    WalletType,
)


AmountInput = Union[str, int, float, Decimal, None]


class TransactionDraft(BaseModel):
    """Transaction as entered, prior to validation."""
    model_config = ConfigDict(str_strip_whitespace=True)

    amount: AmountInput = None
    type: TransactionType
    wallet_id: str
    to_wallet_id: Optional[str] = None
    category_id: Optional[str] = None
    note: str = ""
    transfer_reason: Optional[str] = None
    date: datetime = Field(default_factory=datetime.now)

    @classmethod
    def from_transaction(cls, transaction: Transaction) -> "TransactionDraft":
        """Pre-filled draft for the edit form."""
        return cls(
            amount=transaction.amount,
            type=transaction.type,
            wallet_id=transaction.wallet_id,
            to_wallet_id=transaction.to_wallet_id,
            category_id=transaction.category_id,
            note=transaction.note,
            transfer_reason=transaction.transfer_reason,
            date=transaction.date,
        )


class WalletDraft(BaseModel):
    """Wallet as entered."""
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = ""
    type: WalletType = WalletType.PERSONAL
    icon: str = "wallet"
    is_default: bool = False

    @classmethod
    def from_wallet(cls, wallet: Wallet) -> "WalletDraft":
        return cls(name=wallet.name, type=wallet.type, icon=wallet.icon, is_default=wallet.is_default)


class CategoryDraft(BaseModel):
    """Category as entered."""
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = ""
    type: CategoryType = CategoryType.EXPENSE
    icon: str = "more-horizontal"
    color: str = "#78909C"
    budget: AmountInput = None

    @classmethod
    def from_category(cls, category: Category) -> "CategoryDraft":
        return cls(
            name=category.name,
            type=category.type,
            icon=category.icon,
            color=category.color,
            budget=category.budget,
        )
