"""
Audit Logger

DESIGN DECISION: Every write to the ledger and every account action is
logged. This provides:
1. A history of how each balance came to be
2. Debugging capability when a store write fails
3. Traceability across multi-step flows (onboarding, reset)

The audit logger:
- Is async so it can sit on the same path as the store calls
- Never breaks the main flow (a failing audit store is logged and ignored)
- Supports correlation IDs to tie together the writes of one flow
"""

from typing import Any, Optional
from uuid import UUID, uuid4

import structlog

from financeflow.models.audit import AuditEvent, AuditEventBuilder, AuditEventType
from financeflow.services.storage import AuditStorageInterface


# JSON lines with ISO timestamps, shared by every financeflow logger
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Records ledger events.

    Every event goes to the structlog output. When an audit store is
    attached the event is appended there too; a failing store is logged
    and reported as False, never raised into the ledger write.
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Args:
            storage: Audit store to append to; None keeps events in the log only.
        """
        self._storage = storage
        self._logger = structlog.get_logger("financeflow.audit")

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Returns True if the storage write succeeded (or no storage is configured).
        """
        log_dict = event.to_log_dict()

        if event.severity.value in ("error", "critical"):
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_entity_changed(
        self,
        event_type: AuditEventType,
        user_id: str,
        entity_id: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a wallet, category or transaction write."""
        event = AuditEventBuilder.entity_changed(
            event_type=event_type,
            user_id=user_id,
            entity_id=entity_id,
            details=details,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_categories_seeded(
        self,
        user_id: str,
        count: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.categories_seeded(
            user_id=user_id,
            count=count,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_validation_failed(
        self,
        user_id: Optional[str],
        entity_type: str,
        issues: list[dict],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a write rejected by validation."""
        event = AuditEventBuilder.validation_failed(
            user_id=user_id,
            entity_type=entity_type,
            issues=issues,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_preferences_updated(
        self,
        user_id: str,
        changes: dict[str, Any],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.preferences_updated(
            user_id=user_id,
            changes=changes,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_onboarding_completed(
        self,
        user_id: str,
        wallet_ids: list[str],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.onboarding_completed(
            user_id=user_id,
            wallet_ids=wallet_ids,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_account_reset(
        self,
        user_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.account_reset(
            user_id=user_id,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_identity_event(
        self,
        event_type: AuditEventType,
        user_id: Optional[str],
        email: Optional[str] = None,
    ) -> None:
        """Log sign up, sign in or sign out."""
        event = AuditEventBuilder.identity_event(
            event_type=event_type,
            user_id=user_id,
            email=email,
        )
        await self.log(event)

    async def log_auth_failed(
        self,
        email: Optional[str],
        error_code: str,
    ) -> None:
        event = AuditEventBuilder.auth_failed(email=email, error_code=error_code)
        await self.log(event)

    async def log_storage_error(
        self,
        user_id: Optional[str],
        operation: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a failed store call."""
        event = AuditEventBuilder.storage_error(
            user_id=user_id,
            operation=operation,
            error_message=error_message,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an unexpected error."""
        event = AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        )
        await self.log(event)


def create_correlation_id() -> UUID:
    """
    New id shared by the events of one multi-step flow.

    Use this at the start of a multi-step flow (e.g., onboarding) and
    pass it to every write the flow makes.
    """
    return uuid4()
