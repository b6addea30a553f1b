"""
Identity Provider Interface

Sign-up, sign-in and the "who is signed in" signal. The ledger only
ever needs the opaque user id that comes out of here.

Failures are raised as IdentityError carrying an AuthErrorCode. The
workflow layer turns the code into user-facing text with
auth_error_message(); it never retries automatically.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from enum import Enum
from typing import Callable, Optional

from pydantic import BaseModel, Field


class Identity(BaseModel):
    """A signed-in user."""

    user_id: str
    email: str
    created_at: datetime = Field(default_factory=datetime.now)


class AuthErrorCode(str, Enum):
    """Failure codes an identity provider can report."""
    INVALID_CREDENTIAL = "invalid-credential"
    USER_NOT_FOUND = "user-not-found"
    WRONG_PASSWORD = "wrong-password"
    INVALID_EMAIL = "invalid-email"
    EMAIL_ALREADY_IN_USE = "email-already-in-use"
    WEAK_PASSWORD = "weak-password"
    TOO_MANY_REQUESTS = "too-many-requests"
    NETWORK_REQUEST_FAILED = "network-request-failed"
    UNKNOWN = "unknown"


_AUTH_MESSAGES = {
    AuthErrorCode.INVALID_CREDENTIAL: "No account found with this email. Please sign up first.",
    AuthErrorCode.USER_NOT_FOUND: "No account found with this email. Please sign up first.",
    AuthErrorCode.WRONG_PASSWORD: "Incorrect password. Please try again.",
    AuthErrorCode.INVALID_EMAIL: "Please enter a valid email address.",
    AuthErrorCode.EMAIL_ALREADY_IN_USE: "This email is already registered. Please sign in instead.",
    AuthErrorCode.WEAK_PASSWORD: "Password is too weak. Please use at least 6 characters.",
    AuthErrorCode.TOO_MANY_REQUESTS: "Too many failed attempts. Please try again later.",
    AuthErrorCode.NETWORK_REQUEST_FAILED: "Network error. Please check your connection.",
}

DEFAULT_AUTH_MESSAGE = "An error occurred. Please try again."


def auth_error_message(code: Optional[AuthErrorCode]) -> str:
    """User-facing text for an identity failure."""
    return _AUTH_MESSAGES.get(code, DEFAULT_AUTH_MESSAGE)


class IdentityError(Exception):
    """Raised by identity providers. Always carries a code."""

    def __init__(self, code: AuthErrorCode, detail: Optional[str] = None):
        self.code = code
        self.detail = detail
        super().__init__(detail or code.value)

    @property
    def user_message(self) -> str:
        return auth_error_message(self.code)


IdentityListener = Callable[[Optional[Identity]], None]


class IdentityProvider(ABC):
    """Abstract identity provider."""

    @abstractmethod
    async def sign_up(self, email: str, password: str) -> Identity:
        """
        Create an account and sign it in.

        Raises:
            IdentityError: INVALID_EMAIL, WEAK_PASSWORD, EMAIL_ALREADY_IN_USE
        """
        pass

    @abstractmethod
    async def sign_in(self, email: str, password: str) -> Identity:
        """
        Raises:
            IdentityError: USER_NOT_FOUND, WRONG_PASSWORD, TOO_MANY_REQUESTS
        """
        pass

    @abstractmethod
    async def sign_out(self) -> None:
        pass

    @abstractmethod
    def current_identity(self) -> Optional[Identity]:
        pass

    @abstractmethod
    def on_identity_change(self, listener: IdentityListener) -> Callable[[], None]:
        """
        Subscribe to sign-in / sign-out changes.

        The listener is called once immediately with the current
        identity, then on every change.

        Returns:
            A function that removes the subscription
        """
        pass
