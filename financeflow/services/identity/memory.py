"""
In-Memory Identity Provider

Accounts live in a dict keyed by normalized email. Passwords are stored
as bcrypt hashes, never in clear.

Repeated wrong passwords for one email lock that email out after
MAX_FAILED_ATTEMPTS; a successful sign-in resets the counter.
"""

import re
from typing import Callable, Optional
from uuid import uuid4

import bcrypt
import structlog
from pydantic import BaseModel

from financeflow.services.identity.interface import (
    AuthErrorCode,
    Identity,
    IdentityError,
    IdentityListener,
    IdentityProvider,
)


logger = structlog.get_logger(__name__)

MIN_PASSWORD_LENGTH = 6
MAX_FAILED_ATTEMPTS = 5
# bcrypt only looks at the first 72 bytes and rejects longer input.
MAX_PASSWORD_BYTES = 72

_EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class _Account(BaseModel):
    identity: Identity
    password_hash: bytes


class InMemoryIdentityProvider(IdentityProvider):

    def __init__(self, rounds: int = 12):
        self._rounds = rounds
        self._accounts: dict[str, _Account] = {}
        self._failed_attempts: dict[str, int] = {}
        self._current: Optional[Identity] = None
        self._listeners: list[IdentityListener] = []

    def _hash(self, password: str) -> bytes:
        return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=self._rounds))

    @staticmethod
    def _normalize(email: str) -> str:
        return (email or "").strip().lower()

    def _set_current(self, identity: Optional[Identity]) -> None:
        self._current = identity
        for listener in list(self._listeners):
            listener(identity)

    async def sign_up(self, email: str, password: str) -> Identity:
        key = self._normalize(email)
        if not _EMAIL_PATTERN.match(key):
            raise IdentityError(AuthErrorCode.INVALID_EMAIL)
        if len(password or "") < MIN_PASSWORD_LENGTH or len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
            raise IdentityError(AuthErrorCode.WEAK_PASSWORD)
        if key in self._accounts:
            raise IdentityError(AuthErrorCode.EMAIL_ALREADY_IN_USE)

        identity = Identity(user_id=uuid4().hex, email=key)
        self._accounts[key] = _Account(
            identity=identity,
            password_hash=self._hash(password),
        )
        logger.info("account_created", user_id=identity.user_id)

        self._set_current(identity)
        return identity

    async def sign_in(self, email: str, password: str) -> Identity:
        key = self._normalize(email)
        if not _EMAIL_PATTERN.match(key):
            raise IdentityError(AuthErrorCode.INVALID_EMAIL)
        if self._failed_attempts.get(key, 0) >= MAX_FAILED_ATTEMPTS:
            raise IdentityError(AuthErrorCode.TOO_MANY_REQUESTS)

        account = self._accounts.get(key)
        if account is None:
            raise IdentityError(AuthErrorCode.USER_NOT_FOUND)

        candidate = (password or "").encode("utf-8")
        if len(candidate) > MAX_PASSWORD_BYTES or not bcrypt.checkpw(candidate, account.password_hash):
            self._failed_attempts[key] = self._failed_attempts.get(key, 0) + 1
            logger.warning(
                "sign_in_rejected",
                user_id=account.identity.user_id,
                failed_attempts=self._failed_attempts[key],
            )
            raise IdentityError(AuthErrorCode.WRONG_PASSWORD)

        self._failed_attempts.pop(key, None)
        self._set_current(account.identity)
        return account.identity

    async def sign_out(self) -> None:
        self._set_current(None)

    def current_identity(self) -> Optional[Identity]:
        return self._current

    def on_identity_change(self, listener: IdentityListener) -> Callable[[], None]:
        self._listeners.append(listener)
        listener(self._current)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe
