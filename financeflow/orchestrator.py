"""
Main Orchestrator for FinanceFlow

This module ties the components together and defines the multi-step
flows that span identity, storage and the ledger session:
1. Account (sign up -> default preferences -> load; sign in -> load;
   sign out; reset)
2. Onboarding (seed categories -> default wallets -> opening balances
   -> mark complete)

DESIGN DECISION: Each flow step goes through LedgerSession, so
validation, write ordering and auditing are identical to a write made
from any screen. A flow stops at the first failed step and reports it;
steps already written stay written.
"""

from datetime import datetime
from typing import Callable, Optional

import structlog

from financeflow.audit import AuditLogger, create_correlation_id
from financeflow.config import get_settings, validate_all_settings
from financeflow.models.audit import AuditEventType
from financeflow.models.forms import AmountInput, TransactionDraft, WalletDraft
from financeflow.models.ledger import (
    DEFAULT_WALLETS,
    TransactionType,
    UserPreferences,
    WalletType,
)
from financeflow.models.results import OperationResult
from financeflow.services.identity import (
    IdentityError,
    IdentityProvider,
    InMemoryIdentityProvider,
)
from financeflow.services.storage import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsLedgerStorage,
    InMemoryLedgerStorage,
    LedgerStorageInterface,
    StorageError,
)
from financeflow.session import LedgerSession
from financeflow.validation import parse_amount


logger = structlog.get_logger(__name__)

OPENING_BALANCE_NOTE = "Opening Balance"
LOAD_FAILED_MESSAGE = "Could not load your data. Please try again."

StorageFactory = Callable[[str], LedgerStorageInterface]


class AccountFlow:
    """
    Orchestrates the account lifecycle.

    Sign-up and sign-in return (session, error_message): exactly one of
    the two is None. Identity errors are mapped to user-facing text here
    and are never retried.
    """

    def __init__(
        self,
        identity_provider: IdentityProvider,
        storage_factory: StorageFactory,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._identity = identity_provider
        self._storage_factory = storage_factory
        self._audit_logger = audit_logger or AuditLogger()
        self.session: Optional[LedgerSession] = None

    def _new_session(self, user_id: str) -> LedgerSession:
        return LedgerSession(
            storage=self._storage_factory(user_id),
            user_id=user_id,
            audit_logger=self._audit_logger,
        )

    async def _load(self, session: LedgerSession) -> Optional[str]:
        try:
            await session.load()
        except StorageError as e:
            await self._audit_logger.log_storage_error(
                user_id=session.user_id,
                operation="load",
                error_message=str(e),
            )
            return LOAD_FAILED_MESSAGE
        self.session = session
        return None

    async def sign_up(
        self,
        email: str,
        password: str,
    ) -> tuple[Optional[LedgerSession], Optional[str]]:
        """Create an account, write default preferences and load the session."""
        try:
            identity = await self._identity.sign_up(email, password)
        except IdentityError as e:
            await self._audit_logger.log_auth_failed(email=email, error_code=e.code.value)
            return None, e.user_message

        await self._audit_logger.log_identity_event(
            AuditEventType.USER_SIGNED_UP,
            user_id=identity.user_id,
            email=identity.email,
        )

        session = self._new_session(identity.user_id)
        defaults = UserPreferences(currency=get_settings().app.default_currency)
        result = await session.replace_preferences(defaults)
        if not result.success:
            return None, LOAD_FAILED_MESSAGE

        error = await self._load(session)
        if error:
            return None, error
        return session, None

    async def sign_in(
        self,
        email: str,
        password: str,
    ) -> tuple[Optional[LedgerSession], Optional[str]]:
        try:
            identity = await self._identity.sign_in(email, password)
        except IdentityError as e:
            await self._audit_logger.log_auth_failed(email=email, error_code=e.code.value)
            return None, e.user_message

        await self._audit_logger.log_identity_event(
            AuditEventType.USER_SIGNED_IN,
            user_id=identity.user_id,
            email=identity.email,
        )

        session = self._new_session(identity.user_id)
        error = await self._load(session)
        if error:
            return None, error
        return session, None

    async def sign_out(self) -> None:
        identity = self._identity.current_identity()
        await self._identity.sign_out()

        if self.session:
            self.session.clear()
            self.session = None

        await self._audit_logger.log_identity_event(
            AuditEventType.USER_SIGNED_OUT,
            user_id=identity.user_id if identity else None,
        )

    async def reset_account(self, session: LedgerSession) -> OperationResult:
        """
        Erase all of the user's ledger data and send them back to onboarding.

        Currency and theme survive the reset. The preferences record is
        rewritten in full, since the purge removed it.
        """
        correlation_id = create_correlation_id()
        kept = session.preferences

        result = await session.purge_all_data(correlation_id=correlation_id)
        if not result.success:
            return result

        await self._audit_logger.log_account_reset(
            user_id=session.user_id,
            correlation_id=correlation_id,
        )

        preferences = UserPreferences(
            onboarding_completed=False,
            theme_mode=kept.theme_mode,
            currency=kept.currency,
        )
        result = await session.replace_preferences(preferences)
        if not result.success:
            return result

        error = await self._load(session)
        if error:
            return OperationResult.failed(reason=error)
        return OperationResult.ok()


class OnboardingFlow:
    """
    Orchestrates first-run setup.

    Flow:
    1. Seed the default categories
    2. Create "My Bank/UPI" and "My Cash" (Personal, default)
    3. Add an OpeningBalance to each wallet whose opening amount is > 0
    4. Mark onboarding complete
    """

    def __init__(
        self,
        session: LedgerSession,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._session = session
        self._audit_logger = audit_logger or AuditLogger()

    async def complete(
        self,
        bank_opening: AmountInput = None,
        cash_opening: AmountInput = None,
        now: Optional[datetime] = None,
    ) -> OperationResult:
        """
        Run onboarding.

        Opening amounts that are blank, unparseable or not positive are
        skipped, matching an untouched input field.
        """
        correlation_id = create_correlation_id()
        now = now or datetime.now()

        result = await self._session.seed_default_categories(correlation_id=correlation_id)
        if not result.success:
            return result

        wallet_ids = []
        for fields, opening in zip(DEFAULT_WALLETS, (bank_opening, cash_opening)):
            result = await self._session.add_wallet(
                WalletDraft(
                    name=fields["name"],
                    icon=fields["icon"],
                    type=WalletType.PERSONAL,
                    is_default=True,
                ),
                correlation_id=correlation_id,
            )
            if not result.success:
                return result
            wallet_ids.append(result.entity_id)

            amount = parse_amount(opening)
            if amount is None or amount <= 0:
                continue

            result = await self._session.add_transaction(
                TransactionDraft(
                    amount=amount,
                    type=TransactionType.OPENING_BALANCE,
                    wallet_id=result.entity_id,
                    note=OPENING_BALANCE_NOTE,
                    date=now,
                ),
                correlation_id=correlation_id,
            )
            if not result.success:
                return result

        result = await self._session.update_preferences(
            correlation_id=correlation_id,
            onboarding_completed=True,
        )
        if not result.success:
            return result

        await self._audit_logger.log_onboarding_completed(
            user_id=self._session.user_id,
            wallet_ids=wallet_ids,
            correlation_id=correlation_id,
        )
        return OperationResult.ok()


def memory_storage_factory() -> StorageFactory:
    """
    Factory handing out one InMemoryLedgerStorage per user.

    The same user gets the same store back, so data survives a sign out
    and sign in within one process.
    """
    stores: dict[str, InMemoryLedgerStorage] = {}

    def factory(user_id: str) -> LedgerStorageInterface:
        if user_id not in stores:
            stores[user_id] = InMemoryLedgerStorage(user_id)
        return stores[user_id]

    return factory


def create_app_components(
    use_storage: Optional[bool] = None,
    identity_provider: Optional[IdentityProvider] = None,
) -> tuple[AccountFlow, Optional[GoogleSheetsClient]]:
    """
    Factory function to create all application components.

    Args:
        use_storage: Whether to use Google Sheets storage.
                    None follows the storage_backend setting.
                    Falls back to in-memory storage if Sheets is not configured.
        identity_provider: Defaults to the in-memory provider.

    Returns:
        (account_flow, sheets_client)
    """
    if use_storage is None:
        use_storage = get_settings().app.storage_backend == "google_sheets"

    sheets_client = None
    storage_factory = None
    audit_logger = None

    if use_storage:
        checks = validate_all_settings()
        if not checks["google_sheets"]:
            # Storage not configured - continue in memory
            logger.warning("storage_not_configured", error=checks.get("google_sheets_error"))
        else:
            sheets_client = GoogleSheetsClient()
            client = sheets_client

            def storage_factory(user_id: str) -> LedgerStorageInterface:
                return GoogleSheetsLedgerStorage(user_id, client)

            audit_logger = AuditLogger(GoogleSheetsAuditStorage(sheets_client))

    if storage_factory is None:
        storage_factory = memory_storage_factory()
        audit_logger = AuditLogger()  # Local-only logging

    account_flow = AccountFlow(
        identity_provider=identity_provider or InMemoryIdentityProvider(),
        storage_factory=storage_factory,
        audit_logger=audit_logger,
    )

    return account_flow, sheets_client
