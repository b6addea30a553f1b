"""Identity provider package."""

from financeflow.services.identity.interface import (
    AuthErrorCode,
    Identity,
    IdentityError,
    IdentityProvider,
    auth_error_message,
)
from financeflow.services.identity.memory import InMemoryIdentityProvider

__all__ = [
    "AuthErrorCode",
    "Identity",
    "IdentityError",
    "IdentityProvider",
    "InMemoryIdentityProvider",
    "auth_error_message",
]
