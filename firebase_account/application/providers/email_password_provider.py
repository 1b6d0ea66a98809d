"""
Email and password sign in method.
"""
from __future__ import annotations

import logging
import re
from typing import Optional

from firebase_account.application.providers.base_provider import AccountProvider
from firebase_account.application.reconciliation_service import EMAIL_PASSWORD_CREDENTIALS
from firebase_account.core.entities.account_details import AccountDetails
from firebase_account.core.entities.identity import AuthResult, Identity
from firebase_account.core.entities.signup import AccountModifications, SignupDetails
from firebase_account.core.exceptions import (
    IdentityProviderError,
    InvalidCredentialsError,
    WeakPasswordError,
    account_error_from_provider,
)
from firebase_account.core.value_objects.credentials import (
    EmailPasswordCredential,
    ReauthenticationOperation,
)

logger = logging.getLogger(__name__)

# Firebase Auth rejects passwords shorter than six characters
DEFAULT_MINIMUM_PASSWORD_LENGTH = 6


class EmailPasswordProvider(AccountProvider):
    """Signs in with an email address and password.

    Successful logins cache the credential in the credential store so
    security sensitive operations can re-authenticate without prompting.
    """

    def __init__(
        self,
        identity_provider,
        dispatcher,
        reconciliation,
        notifier=None,
        prompt=None,
        credential_namespace: str = EMAIL_PASSWORD_CREDENTIALS,
        minimum_password_length: int = DEFAULT_MINIMUM_PASSWORD_LENGTH,
    ):
        super().__init__(identity_provider, dispatcher, reconciliation, notifier)
        self._prompt = prompt
        self._namespace = credential_namespace
        self._password_rule = re.compile(rf"(?=.*[0-9a-zA-Z]).{{{minimum_password_length},}}")

    @property
    def id(self) -> str:
        return "email-password"

    @property
    def provider_ids(self) -> tuple[str, ...]:
        return (EmailPasswordCredential.provider_id,)

    def validate_password(self, password: str) -> None:
        if not self._password_rule.fullmatch(password):
            raise WeakPasswordError()

    async def login(self, user_id: str, password: str) -> Optional[AccountDetails]:
        details = await self._dispatcher.perform_guarded(
            self,
            lambda: self._identity_provider.sign_in_with_password(user_id, password),
        )
        logger.debug("Successfully returned from email-password login")
        self._reconciliation.persist_credentials(self._signed_in_email(details, user_id), password, self._namespace)
        return details

    async def signup(self, details: SignupDetails) -> Optional[AccountDetails]:
        if not details.password:
            logger.error("Tried to sign up without a password.")
            raise InvalidCredentialsError()
        self.validate_password(details.password)

        current = self._identity_provider.current_identity
        if current is not None and current.is_anonymous:
            logger.debug("Linking email-password credentials with current anonymous user account ...")
            account = await self._dispatcher.perform_guarded(
                self,
                lambda: self._link_anonymous(current, details),
                reconcile_current=True,
            )
        else:
            account = await self._dispatcher.perform_guarded(self, lambda: self._create_user(details))

        self._reconciliation.persist_credentials(
            self._signed_in_email(account, details.user_id), details.password, self._namespace,
        )
        return account

    async def reset_password(self, user_id: str) -> None:
        try:
            await self._identity_provider.send_password_reset(user_id)
        except IdentityProviderError as e:
            error = account_error_from_provider(e)
            if isinstance(error, InvalidCredentialsError):
                # unknown accounts must not be distinguishable from known ones
                logger.debug("Suppressing error for password reset: %s", e.code_value)
                return
            logger.error("Received error on password reset: %s", e)
            raise error from e

    async def reauthenticate(self, identity: Identity) -> ReauthenticationOperation:
        if not identity.email:
            logger.error("Tried to re-authenticate a user without an email address.")
            return ReauthenticationOperation.cancelled()

        password = self._reconciliation.retrieve_password(identity.email, self._namespace)
        if password is None and self._prompt is not None:
            password = await self._prompt.request_password(identity.email)
        if password is None:
            logger.debug("No password available to re-authenticate %s", identity.uid)
            return ReauthenticationOperation.cancelled()

        try:
            await self._identity_provider.reauthenticate(EmailPasswordCredential(identity.email, password))
        except IdentityProviderError as e:
            logger.error("Received error on re-authentication: %s", e)
            raise account_error_from_provider(e) from e
        return ReauthenticationOperation.success()

    async def handle_account_removal(self, user_id: Optional[str]) -> None:
        if user_id is None:
            return
        self._reconciliation.remove_credentials(user_id, self._namespace)

    # -- internals ---------------------------------------------------

    def _signed_in_email(self, details: Optional[AccountDetails], typed: str) -> str:
        # Firebase normalizes addresses, so key the cache the way removal reads it
        if details is not None and details.user_id:
            return details.user_id
        current = self._identity_provider.current_identity
        if current is not None and current.email:
            return current.email
        return typed

    async def _create_user(self, details: SignupDetails) -> AuthResult:
        result = await self._identity_provider.create_user(details.user_id, details.password)
        logger.debug("Account creation was successful, sending email verification")
        await self._identity_provider.send_email_verification()
        if details.name is not None:
            await self._identity_provider.update_display_name(details.name.formatted("medium"))
        return result

    async def _link_anonymous(self, anonymous: Identity, details: SignupDetails) -> AuthResult:
        result = await self._identity_provider.link(EmailPasswordCredential(details.user_id, details.password))
        logger.debug("Linked email-password credentials with anonymous account %s", anonymous.uid)
        if details.name is not None:
            await self._identity_provider.update_display_name(details.name.formatted("medium"))
        return AuthResult(result.identity, is_new_user=True, provider_id=EmailPasswordCredential.provider_id)

    def _account_details_updated(self, identity: Identity, modifications: AccountModifications) -> None:
        user_id = modifications.user_id or identity.email
        if user_id is None:
            return

        password = modifications.password
        if password is None and identity.email and modifications.user_id is not None:
            # move the cached credential to the new email address
            password = self._reconciliation.retrieve_password(identity.email, self._namespace)
        if password is None:
            return

        if identity.email and identity.email != user_id:
            self._reconciliation.remove_credentials(identity.email, self._namespace)
        self._reconciliation.persist_credentials(user_id, password, self._namespace)
