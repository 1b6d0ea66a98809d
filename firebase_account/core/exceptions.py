"""Custom exception hierarchy for firebase-account.

Identity provider adapters raise :class:`IdentityProviderError` carrying an
:class:`AuthErrorCode`. Everything that crosses the dispatcher boundary is an
:class:`AccountError` subclass so callers can map it to a user-facing message.
"""
from __future__ import annotations

from enum import Enum
from typing import Optional, Union


class AuthErrorCode(str, Enum):
    """Error codes reported by the identity provider."""

    INVALID_EMAIL = "auth/invalid-email"
    INVALID_RECIPIENT_EMAIL = "auth/invalid-recipient-email"
    MISSING_EMAIL = "auth/missing-email"
    EMAIL_ALREADY_IN_USE = "auth/email-already-in-use"
    WEAK_PASSWORD = "auth/weak-password"
    USER_DISABLED = "auth/user-disabled"
    WRONG_PASSWORD = "auth/wrong-password"
    USER_NOT_FOUND = "auth/user-not-found"
    USER_MISMATCH = "auth/user-mismatch"
    INVALID_CREDENTIAL = "auth/invalid-credential"
    INVALID_SENDER = "auth/invalid-sender"
    INVALID_MESSAGE_PAYLOAD = "auth/invalid-message-payload"
    OPERATION_NOT_ALLOWED = "auth/operation-not-allowed"
    INVALID_API_KEY = "auth/invalid-api-key"
    APP_NOT_AUTHORIZED = "auth/app-not-authorized"
    KEYCHAIN_ERROR = "auth/keychain-error"
    INTERNAL_ERROR = "auth/internal-error"
    REQUIRES_RECENT_LOGIN = "auth/requires-recent-login"
    PROVIDER_ALREADY_LINKED = "auth/provider-already-linked"
    CREDENTIAL_ALREADY_IN_USE = "auth/credential-already-in-use"
    USER_TOKEN_EXPIRED = "auth/user-token-expired"
    INVALID_USER_TOKEN = "auth/invalid-user-token"
    TOO_MANY_REQUESTS = "auth/too-many-requests"
    NETWORK_ERROR = "auth/network-request-failed"
    NO_SUCH_PROVIDER = "auth/no-such-provider"


class IdentityProviderError(Exception):
    """Raised by identity provider adapters with the provider's error code."""

    def __init__(self, code: Union[AuthErrorCode, str], message: str = "") -> None:
        self.code = code
        self.message = message or str(code)
        super().__init__(self.message)

    @property
    def code_value(self) -> str:
        return self.code.value if isinstance(self.code, AuthErrorCode) else str(self.code)


class AccountError(Exception):
    """Base exception for all account errors surfaced to callers."""

    code = "unknown"
    default_message = "An unknown error occurred while performing the account operation."
    recovery_suggestion = "Please try again later."

    def __init__(self, message: Optional[str] = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidEmailError(AccountError):
    code = "invalid-email"
    default_message = "The email address is invalid."
    recovery_suggestion = "Please check the email address and try again."


class AccountAlreadyInUseError(AccountError):
    code = "account-already-in-use"
    default_message = "An account with this email address already exists."
    recovery_suggestion = "Sign in with the existing account or use a different email address."


class WeakPasswordError(AccountError):
    code = "weak-password"
    default_message = "The password is too weak."
    recovery_suggestion = "Choose a password with at least six characters."


class InvalidCredentialsError(AccountError):
    code = "invalid-credentials"
    default_message = "The provided credentials are invalid."
    recovery_suggestion = "Check your email address and password and try again."


class InternalPasswordResetError(AccountError):
    code = "internal-password-reset"
    default_message = "The password reset could not be processed."
    recovery_suggestion = "Please try again later."


class SetupError(AccountError):
    code = "setup-error"
    default_message = "The account service is not configured correctly."
    recovery_suggestion = "Please contact the application developer."


class NotSignedInError(AccountError):
    code = "not-signed-in"
    default_message = "The operation requires a signed in account."
    recovery_suggestion = "Please sign in and try again."


class RequireRecentLoginError(AccountError):
    code = "requires-recent-login"
    default_message = "This operation requires a recent sign in."
    recovery_suggestion = "Please sign out, sign in again and retry."


class SingleSignOnFailedError(AccountError):
    code = "sso-failed"
    default_message = "The single sign-on request failed."
    recovery_suggestion = "Please try again or use a different sign in method."


class LinkFailedDuplicateError(AccountError):
    code = "link-failed-duplicate"
    default_message = "The account is already linked with this type of sign in method."
    recovery_suggestion = "Sign in with the already linked method."


class LinkFailedAlreadyInUseError(AccountError):
    code = "link-failed-already-in-use"
    default_message = "These credentials are already associated with a different account."
    recovery_suggestion = "Sign in with the account that owns these credentials."


class UnsupportedProviderError(AccountError):
    code = "unsupported-provider"
    default_message = "The sign in method of this account is not supported."
    recovery_suggestion = "Please contact the application developer."


class UnknownAccountError(AccountError):
    """Passthrough for provider codes without a dedicated error type."""

    def __init__(self, code: Union[AuthErrorCode, str] = AuthErrorCode.INTERNAL_ERROR) -> None:
        self.provider_code = code.value if isinstance(code, AuthErrorCode) else str(code)
        super().__init__(f"{self.default_message} ({self.provider_code})")


_CODE_TO_ERROR: dict[str, type[AccountError]] = {
    AuthErrorCode.INVALID_EMAIL.value: InvalidEmailError,
    AuthErrorCode.INVALID_RECIPIENT_EMAIL.value: InvalidEmailError,
    AuthErrorCode.EMAIL_ALREADY_IN_USE.value: AccountAlreadyInUseError,
    AuthErrorCode.WEAK_PASSWORD.value: WeakPasswordError,
    AuthErrorCode.USER_DISABLED.value: InvalidCredentialsError,
    AuthErrorCode.WRONG_PASSWORD.value: InvalidCredentialsError,
    AuthErrorCode.USER_NOT_FOUND.value: InvalidCredentialsError,
    AuthErrorCode.USER_MISMATCH.value: InvalidCredentialsError,
    AuthErrorCode.INVALID_SENDER.value: InternalPasswordResetError,
    AuthErrorCode.INVALID_MESSAGE_PAYLOAD.value: InternalPasswordResetError,
    AuthErrorCode.OPERATION_NOT_ALLOWED.value: SetupError,
    AuthErrorCode.INVALID_API_KEY.value: SetupError,
    AuthErrorCode.APP_NOT_AUTHORIZED.value: SetupError,
    AuthErrorCode.KEYCHAIN_ERROR.value: SetupError,
    AuthErrorCode.INTERNAL_ERROR.value: SetupError,
    AuthErrorCode.REQUIRES_RECENT_LOGIN.value: RequireRecentLoginError,
    AuthErrorCode.PROVIDER_ALREADY_LINKED.value: LinkFailedDuplicateError,
    AuthErrorCode.CREDENTIAL_ALREADY_IN_USE.value: LinkFailedAlreadyInUseError,
}


def account_error_from_provider(error: IdentityProviderError) -> AccountError:
    """Translate a provider error into exactly one domain error."""
    code = error.code_value
    error_type = _CODE_TO_ERROR.get(code)
    if error_type is None:
        return UnknownAccountError(code)
    return error_type()
