"""
Audit Models for FinanceFlow

Every write to the ledger and every account-level action is recorded
as an AuditEvent. This gives:
1. A history of what changed and when
2. Debugging information when a write fails
3. A way to reconstruct how a balance came to be

DESIGN DECISION: Audit logs are append-only. We never delete or modify them,
not even during an account reset.
"""

import json
from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Wallets
    WALLET_CREATED = "wallet_created"
    WALLET_UPDATED = "wallet_updated"
    WALLET_DELETED = "wallet_deleted"

    # Categories
    CATEGORY_CREATED = "category_created"
    CATEGORY_UPDATED = "category_updated"
    CATEGORY_DELETED = "category_deleted"
    DEFAULT_CATEGORIES_SEEDED = "default_categories_seeded"

    # Transactions
    TRANSACTION_CREATED = "transaction_created"
    TRANSACTION_UPDATED = "transaction_updated"
    TRANSACTION_DELETED = "transaction_deleted"

    # Validation
    VALIDATION_FAILED = "validation_failed"

    # Preferences and account lifecycle
    PREFERENCES_UPDATED = "preferences_updated"
    ONBOARDING_COMPLETED = "onboarding_completed"
    ACCOUNT_RESET = "account_reset"

    # Identity
    USER_SIGNED_UP = "user_signed_up"
    USER_SIGNED_IN = "user_signed_in"
    USER_SIGNED_OUT = "user_signed_out"
    AUTH_FAILED = "auth_failed"

    # System events
    STORAGE_ERROR = "storage_error"
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """How loudly an event is logged."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    One recorded ledger write or account action.

    Onboarding and reset share a correlation_id across their events.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Event id, also the first audit worksheet column"
    )
    timestamp: datetime = Field(
        default_factory=datetime.utcnow,
        description="UTC time the write or action happened"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Which user and which record
    user_id: Optional[str] = Field(
        default=None,
        description="Owner of the ledger the event belongs to"
    )
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'wallet', 'transaction')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="Store id of the entity this event relates to"
    )

    # Groups the events of one multi-step flow
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., all writes of one onboarding)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="One-line summary shown when browsing the audit tab"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    # Set on failure events only
    error_code: Optional[str] = None
    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="False for system-initiated events such as load failures"
    )

    def to_log_dict(self) -> dict:
        """Convert to a dictionary suitable for structured logging."""
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "user_id": self.user_id,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_code": self.error_code,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }

    def to_sheets_row(self) -> list:
        """
        Flatten for the audit worksheet, in AUDIT_COLUMNS order:
        [event_id, timestamp, event_type, severity, user_id, entity_type,
         entity_id, correlation_id, description, details_json,
         error_message, is_user_action]
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            self.user_id or "",
            self.entity_type or "",
            self.entity_id or "",
            str(self.correlation_id) if self.correlation_id else "",
            self.description,
            json.dumps(self.details, default=str) if self.details else "",
            self.error_message or "",
            str(self.is_user_action),
        ]


class AuditEventBuilder:
    """
    Constructors for the events the session and workflows emit.

    Usage:
        event = AuditEventBuilder.entity_changed(AuditEventType.WALLET_CREATED, ...)
        event = AuditEventBuilder.validation_failed("transaction", issues, ...)
    """

    _ENTITY_VERBS = {
        AuditEventType.WALLET_CREATED: ("wallet", "created"),
        AuditEventType.WALLET_UPDATED: ("wallet", "updated"),
        AuditEventType.WALLET_DELETED: ("wallet", "deleted"),
        AuditEventType.CATEGORY_CREATED: ("category", "created"),
        AuditEventType.CATEGORY_UPDATED: ("category", "updated"),
        AuditEventType.CATEGORY_DELETED: ("category", "deleted"),
        AuditEventType.TRANSACTION_CREATED: ("transaction", "created"),
        AuditEventType.TRANSACTION_UPDATED: ("transaction", "updated"),
        AuditEventType.TRANSACTION_DELETED: ("transaction", "deleted"),
    }

    @staticmethod
    def entity_changed(
        event_type: AuditEventType,
        user_id: str,
        entity_id: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        entity_type, verb = AuditEventBuilder._ENTITY_VERBS[event_type]
        return AuditEvent(
            event_type=event_type,
            user_id=user_id,
            entity_type=entity_type,
            entity_id=entity_id,
            correlation_id=correlation_id,
            description=f"{entity_type.capitalize()} {verb}: {entity_id}",
            details=details or {},
            is_user_action=True,
        )

    @staticmethod
    def categories_seeded(
        user_id: str,
        count: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DEFAULT_CATEGORIES_SEEDED,
            user_id=user_id,
            entity_type="category",
            correlation_id=correlation_id,
            description=f"Seeded {count} default categories",
            details={"count": count},
        )

    @staticmethod
    def validation_failed(
        user_id: Optional[str],
        entity_type: str,
        issues: list[dict],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.VALIDATION_FAILED,
            severity=AuditSeverity.WARNING,
            user_id=user_id,
            entity_type=entity_type,
            correlation_id=correlation_id,
            description=f"{entity_type.capitalize()} validation failed with {len(issues)} issues",
            details={"issues": issues},
            is_user_action=True,
        )

    @staticmethod
    def preferences_updated(
        user_id: str,
        changes: dict[str, Any],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PREFERENCES_UPDATED,
            user_id=user_id,
            entity_type="preferences",
            correlation_id=correlation_id,
            description=f"Preferences updated: {', '.join(sorted(changes))}",
            details={"changes": changes},
            is_user_action=True,
        )

    @staticmethod
    def onboarding_completed(
        user_id: str,
        wallet_ids: list[str],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ONBOARDING_COMPLETED,
            user_id=user_id,
            correlation_id=correlation_id,
            description="Onboarding completed",
            details={"wallet_ids": wallet_ids},
            is_user_action=True,
        )

    @staticmethod
    def account_reset(
        user_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ACCOUNT_RESET,
            severity=AuditSeverity.WARNING,
            user_id=user_id,
            correlation_id=correlation_id,
            description="All ledger data purged by account reset",
            is_user_action=True,
        )

    @staticmethod
    def identity_event(
        event_type: AuditEventType,
        user_id: Optional[str],
        email: Optional[str],
    ) -> AuditEvent:
        labels = {
            AuditEventType.USER_SIGNED_UP: "signed up",
            AuditEventType.USER_SIGNED_IN: "signed in",
            AuditEventType.USER_SIGNED_OUT: "signed out",
        }
        return AuditEvent(
            event_type=event_type,
            user_id=user_id,
            entity_type="identity",
            description=f"User {labels.get(event_type, event_type.value)}",
            details={"email": email} if email else {},
            is_user_action=True,
        )

    @staticmethod
    def auth_failed(
        email: Optional[str],
        error_code: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.AUTH_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="identity",
            description="Authentication failed",
            details={"email": email} if email else {},
            error_code=error_code,
            is_user_action=True,
        )

    @staticmethod
    def storage_error(
        user_id: Optional[str],
        operation: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STORAGE_ERROR,
            severity=AuditSeverity.ERROR,
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"Storage error during {operation}",
            error_message=error_message,
            details={"operation": operation},
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )
