"""Write-path validation package."""

from financeflow.validation.validator import (
    EntityValidator,
    TransactionValidator,
    get_user_friendly_summary,
    parse_amount,
)

__all__ = [
    "EntityValidator",
    "TransactionValidator",
    "get_user_friendly_summary",
    "parse_amount",
]
