"""Services package."""

from financeflow.services.identity import (
    AuthErrorCode,
    Identity,
    IdentityError,
    IdentityProvider,
    InMemoryIdentityProvider,
    auth_error_message,
)
from financeflow.services.storage import (
    AuditStorageInterface,
    ConnectionError,
    DuplicateError,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsLedgerStorage,
    InMemoryAuditStorage,
    InMemoryLedgerStorage,
    LedgerStorageInterface,
    NotFoundError,
    StorageError,
)

__all__ = [
    # Identity
    "AuthErrorCode",
    "Identity",
    "IdentityError",
    "IdentityProvider",
    "InMemoryIdentityProvider",
    "auth_error_message",
    # Storage services
    "AuditStorageInterface",
    "ConnectionError",
    "DuplicateError",
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsLedgerStorage",
    "InMemoryAuditStorage",
    "InMemoryLedgerStorage",
    "LedgerStorageInterface",
    "NotFoundError",
    "StorageError",
]
