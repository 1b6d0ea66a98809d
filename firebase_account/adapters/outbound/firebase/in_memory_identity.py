"""In-memory identity provider for development mode and tests.

Behaves like Firebase Auth for the operations the account service uses so the
application runs without a Firebase project.
"""
from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from itertools import count
from typing import Optional

from firebase_account.core.entities.identity import AuthResult, Identity
from firebase_account.core.exceptions import AuthErrorCode, IdentityProviderError
from firebase_account.core.value_objects.credentials import (
    AuthCredential,
    EmailPasswordCredential,
    OAuthCredential,
)
from firebase_account.ports.outbound.identity_provider_port import StateChangeListener

logger = logging.getLogger(__name__)

MINIMUM_PASSWORD_LENGTH = 6


def _utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


@dataclass
class _Account:
    uid: str
    email: Optional[str] = None
    password: Optional[str] = None
    display_name: Optional[str] = None
    is_email_verified: bool = False
    provider_ids: list[str] = field(default_factory=list)
    creation_date: datetime = field(default_factory=_utcnow)
    last_sign_in_date: Optional[datetime] = None

    @property
    def is_anonymous(self) -> bool:
        return not self.provider_ids

    def to_identity(self) -> Identity:
        return Identity(
            uid=self.uid,
            email=self.email,
            display_name=self.display_name,
            is_email_verified=self.is_email_verified,
            is_anonymous=self.is_anonymous,
            provider_ids=list(self.provider_ids),
            creation_date=self.creation_date,
            last_sign_in_date=self.last_sign_in_date,
        )


class InMemoryIdentityProvider:
    """Implements :class:`IdentityProviderPort` without any network access.

    Listener delivery is synchronous by default; with ``deliver_async`` the
    callbacks are scheduled on the running loop instead, like a client that
    reports state changes on its own schedule. ``fail_next`` injects an
    error into the next call of an operation.
    """

    def __init__(
        self,
        latency: float = 0.0,
        deliver_async: bool = False,
        notify_on_register: bool = True,
    ) -> None:
        self._latency = latency
        self._deliver_async = deliver_async
        self._notify_on_register = notify_on_register

        self._accounts: dict[str, _Account] = {}
        self._federated: dict[tuple[str, str], str] = {}
        self._federated_emails: dict[tuple[str, str], str] = {}
        self._current: Optional[str] = None
        self._recent_login = False

        self._listeners: dict[int, StateChangeListener] = {}
        self._handles = count(1)
        self._failures: dict[str, IdentityProviderError] = {}

        self.sent_password_resets: list[str] = []
        self.sent_verifications: list[str] = []
        self.revoked_tokens: list[tuple[str, str]] = []
        self.calls: list[str] = []

    # -- test helpers ----------------------------------------------------------

    def register_account(
        self,
        email: str,
        password: str,
        display_name: Optional[str] = None,
        uid: Optional[str] = None,
    ) -> str:
        account = _Account(
            uid=uid or uuid.uuid4().hex,
            email=email.lower(),
            password=password,
            display_name=display_name,
            provider_ids=[EmailPasswordCredential.provider_id],
        )
        self._accounts[account.uid] = account
        return account.uid

    def register_federated(self, provider_id: str, id_token: str, email: Optional[str]) -> None:
        """Associate a federated token subject with the email the provider would share."""
        if email:
            self._federated_emails[(provider_id, id_token)] = email

    def fail_next(self, operation: str, code: AuthErrorCode, message: str = "") -> None:
        self._failures[operation] = IdentityProviderError(code, message)

    def expire_login(self) -> None:
        """Make security sensitive operations require a recent login."""
        self._recent_login = False

    def restore(self, uid: str) -> None:
        """Act as if *uid* was signed in by a previous process (no notification)."""
        self._current = uid
        self._recent_login = False

    def account(self, uid: str) -> Optional[Identity]:
        account = self._accounts.get(uid)
        return account.to_identity() if account else None

    def password_of(self, uid: str) -> Optional[str]:
        account = self._accounts.get(uid)
        return account.password if account else None

    # -- internals -------------------------------------------------------------

    async def _enter(self, operation: str) -> None:
        self.calls.append(operation)
        if self._latency:
            await asyncio.sleep(self._latency)
        error = self._failures.pop(operation, None)
        if error is not None:
            logger.debug("InMemoryIdentity: failing %s with %s", operation, error.code_value)
            raise error

    def _account_by_email(self, email: str) -> Optional[_Account]:
        for account in self._accounts.values():
            if account.email is not None and account.email == email.lower():
                return account
        return None

    def _require_current(self) -> _Account:
        account = self._accounts.get(self._current) if self._current else None
        if account is None:
            raise IdentityProviderError(AuthErrorCode.INVALID_USER_TOKEN, "No user is signed in")
        return account

    def _require_recent_login(self) -> None:
        if not self._recent_login:
            raise IdentityProviderError(AuthErrorCode.REQUIRES_RECENT_LOGIN)

    @staticmethod
    def _validate_email(email: str) -> None:
        if not email:
            raise IdentityProviderError(AuthErrorCode.MISSING_EMAIL)
        if "@" not in email:
            raise IdentityProviderError(AuthErrorCode.INVALID_EMAIL)

    @staticmethod
    def _validate_password(password: str) -> None:
        if len(password) < MINIMUM_PASSWORD_LENGTH:
            raise IdentityProviderError(AuthErrorCode.WEAK_PASSWORD)

    def _sign_in(self, account: _Account) -> None:
        account.last_sign_in_date = _utcnow()
        self._current = account.uid
        self._recent_login = True
        self._notify()

    def _notify(self) -> None:
        identity = self.current_identity
        listeners = list(self._listeners.values())
        if self._deliver_async:
            loop = asyncio.get_running_loop()
            for listener in listeners:
                loop.call_soon(listener, identity)
        else:
            for listener in listeners:
                listener(identity)

    def _match_password(self, credential: EmailPasswordCredential) -> _Account:
        account = self._account_by_email(credential.email)
        if account is None:
            raise IdentityProviderError(AuthErrorCode.USER_NOT_FOUND)
        if account.password != credential.password:
            raise IdentityProviderError(AuthErrorCode.WRONG_PASSWORD)
        return account

    def _federated_account(self, credential: OAuthCredential) -> Optional[_Account]:
        uid = self._federated.get((credential.provider_id, credential.id_token))
        return self._accounts.get(uid) if uid else None

    # -- IdentityProviderPort implementation -----------------------------------

    @property
    def current_identity(self) -> Optional[Identity]:
        account = self._accounts.get(self._current) if self._current else None
        return account.to_identity() if account else None

    async def sign_in_with_password(self, email: str, password: str) -> AuthResult:
        await self._enter("sign_in_with_password")
        self._validate_email(email)
        account = self._match_password(EmailPasswordCredential(email, password))
        self._sign_in(account)
        return AuthResult(account.to_identity(), is_new_user=False, provider_id=EmailPasswordCredential.provider_id)

    async def create_user(self, email: str, password: str) -> AuthResult:
        await self._enter("create_user")
        self._validate_email(email)
        if self._account_by_email(email) is not None:
            raise IdentityProviderError(AuthErrorCode.EMAIL_ALREADY_IN_USE)
        self._validate_password(password)
        uid = self.register_account(email, password)
        account = self._accounts[uid]
        self._sign_in(account)
        return AuthResult(account.to_identity(), is_new_user=True, provider_id=EmailPasswordCredential.provider_id)

    async def sign_in_anonymously(self) -> AuthResult:
        await self._enter("sign_in_anonymously")
        account = _Account(uid=uuid.uuid4().hex)
        self._accounts[account.uid] = account
        self._sign_in(account)
        return AuthResult(account.to_identity(), is_new_user=True)

    async def sign_in_with_credential(self, credential: AuthCredential) -> AuthResult:
        if isinstance(credential, EmailPasswordCredential):
            return await self.sign_in_with_password(credential.email, credential.password)
        await self._enter("sign_in_with_credential")
        account = self._federated_account(credential)
        is_new_user = account is None
        if account is None:
            account = _Account(
                uid=uuid.uuid4().hex,
                email=self._federated_emails.get((credential.provider_id, credential.id_token)),
                is_email_verified=True,
                provider_ids=[credential.provider_id],
            )
            self._accounts[account.uid] = account
            self._federated[(credential.provider_id, credential.id_token)] = account.uid
        self._sign_in(account)
        return AuthResult(account.to_identity(), is_new_user=is_new_user, provider_id=credential.provider_id)

    def sign_out(self) -> None:
        self.calls.append("sign_out")
        self._current = None
        self._recent_login = False
        self._notify()

    async def send_password_reset(self, email: str) -> None:
        await self._enter("send_password_reset")
        self._validate_email(email)
        if self._account_by_email(email) is None:
            raise IdentityProviderError(AuthErrorCode.USER_NOT_FOUND)
        self.sent_password_resets.append(email)

    async def send_email_verification(self) -> None:
        await self._enter("send_email_verification")
        account = self._require_current()
        self.sent_verifications.append(account.email or account.uid)

    async def update_email(self, email: str) -> None:
        await self._enter("update_email")
        account = self._require_current()
        self._require_recent_login()
        self._validate_email(email)
        existing = self._account_by_email(email)
        if existing is not None and existing.uid != account.uid:
            raise IdentityProviderError(AuthErrorCode.EMAIL_ALREADY_IN_USE)
        account.email = email.lower()
        account.is_email_verified = False

    async def update_password(self, password: str) -> None:
        await self._enter("update_password")
        account = self._require_current()
        self._require_recent_login()
        self._validate_password(password)
        account.password = password

    async def update_display_name(self, display_name: str) -> None:
        await self._enter("update_display_name")
        account = self._require_current()
        account.display_name = display_name

    async def delete(self) -> None:
        await self._enter("delete")
        account = self._require_current()
        self._require_recent_login()
        del self._accounts[account.uid]
        self._federated = {key: uid for key, uid in self._federated.items() if uid != account.uid}
        self._current = None
        self._recent_login = False
        self._notify()

    async def reauthenticate(self, credential: AuthCredential) -> AuthResult:
        await self._enter("reauthenticate")
        current = self._require_current()
        if isinstance(credential, EmailPasswordCredential):
            account = self._match_password(credential)
        else:
            account = self._federated_account(credential)
            if account is None:
                raise IdentityProviderError(AuthErrorCode.USER_NOT_FOUND)
        if account.uid != current.uid:
            raise IdentityProviderError(AuthErrorCode.USER_MISMATCH)
        self._recent_login = True
        return AuthResult(current.to_identity(), is_new_user=False, provider_id=credential.provider_id)

    async def link(self, credential: AuthCredential) -> AuthResult:
        await self._enter("link")
        account = self._require_current()
        if credential.provider_id in account.provider_ids:
            raise IdentityProviderError(AuthErrorCode.PROVIDER_ALREADY_LINKED)

        if isinstance(credential, EmailPasswordCredential):
            self._validate_email(credential.email)
            if self._account_by_email(credential.email) is not None:
                raise IdentityProviderError(AuthErrorCode.EMAIL_ALREADY_IN_USE)
            self._validate_password(credential.password)
            account.email = credential.email.lower()
            account.password = credential.password
        else:
            key = (credential.provider_id, credential.id_token)
            if key in self._federated:
                raise IdentityProviderError(AuthErrorCode.CREDENTIAL_ALREADY_IN_USE)
            self._federated[key] = account.uid
            account.email = account.email or self._federated_emails.get(key)
        account.provider_ids.append(credential.provider_id)
        # linking keeps the user, so listeners are not notified
        return AuthResult(account.to_identity(), is_new_user=False, provider_id=credential.provider_id)

    async def revoke_token(self, provider_id: str, authorization_code: str) -> None:
        await self._enter("revoke_token")
        self._require_current()
        self.revoked_tokens.append((provider_id, authorization_code))

    async def refresh_token(self, force: bool = False) -> str:
        await self._enter("refresh_token")
        account = self._require_current()
        return f"token-{account.uid}-{uuid.uuid4().hex[:8]}"

    def add_state_change_listener(self, listener: StateChangeListener) -> object:
        handle = next(self._handles)
        self._listeners[handle] = listener
        if self._notify_on_register:
            listener(self.current_identity)
        return handle

    def remove_state_change_listener(self, handle: object) -> None:
        self._listeners.pop(handle, None)
