"""
Single sign-on sign in method (e.g. Sign in with Apple).
"""
from __future__ import annotations

import logging
from typing import Optional

from firebase_account.application.providers.base_provider import AccountProvider
from firebase_account.core.entities.account_details import AccountDetails
from firebase_account.core.entities.identity import AuthResult, Identity
from firebase_account.core.entities.signup import SignupDetails
from firebase_account.core.events.account_events import AccountEvent
from firebase_account.core.exceptions import (
    AccountError,
    IdentityProviderError,
    InvalidCredentialsError,
    RequireRecentLoginError,
    SetupError,
    SingleSignOnFailedError,
    account_error_from_provider,
)
from firebase_account.core.value_objects.credentials import OAuthCredential, ReauthenticationOperation

logger = logging.getLogger(__name__)

DEFAULT_SSO_PROVIDER = "apple.com"


class SingleSignOnProvider(AccountProvider):
    """Signs in with a credential issued by a federated identity provider.

    The interactive challenge is owned by the host UI and reached through the
    SSO credential port.
    """

    federated = True

    def __init__(
        self,
        identity_provider,
        dispatcher,
        reconciliation,
        notifier=None,
        credential_source=None,
        provider_id: str = DEFAULT_SSO_PROVIDER,
    ):
        super().__init__(identity_provider, dispatcher, reconciliation, notifier)
        self._credential_source = credential_source
        self._provider_marker = provider_id

    @property
    def id(self) -> str:
        return f"sso.{self._provider_marker}"

    @property
    def provider_ids(self) -> tuple[str, ...]:
        return (self._provider_marker,)

    async def login(self, credential: OAuthCredential) -> Optional[AccountDetails]:
        return await self._dispatcher.perform_guarded(self, lambda: self._sign_in(credential))

    async def sign_in_interactively(self) -> Optional[AccountDetails]:
        """Run the interactive challenge and sign in. Returns ``None`` if cancelled."""
        credential = await self._request_credential()
        if credential is None:
            logger.debug("Single sign-on challenge was cancelled by the user.")
            return None
        return await self.login(credential)

    async def signup(self, details: SignupDetails) -> Optional[AccountDetails]:
        credential = details.oauth_credential
        if credential is None:
            logger.error("Tried to sign up with %s without a credential.", self._provider_marker)
            raise InvalidCredentialsError()

        current = self._identity_provider.current_identity
        if current is not None and current.is_anonymous:
            logger.debug("Linking %s credential with current anonymous user account ...", self._provider_marker)
            return await self._dispatcher.perform_guarded(
                self,
                lambda: self._link_anonymous(credential),
                reconcile_current=True,
            )
        return await self.login(credential)

    async def reauthenticate(self, identity: Identity) -> ReauthenticationOperation:
        credential = await self._request_credential()
        if credential is None:
            return ReauthenticationOperation.cancelled()

        try:
            await self._identity_provider.reauthenticate(credential)
        except IdentityProviderError as e:
            logger.error("Received error on re-authentication: %s", e)
            raise account_error_from_provider(e) from e
        return ReauthenticationOperation.success(credential)

    async def delete(self) -> None:
        identity = await self._require_identity()

        operation = await self.reauthenticate(identity)
        if not operation.succeeded:
            logger.debug("Re-authentication was cancelled. Not deleting the account.")
            raise RequireRecentLoginError()

        authorization_code = operation.credential.authorization_code if operation.credential else None
        if not authorization_code:
            logger.error("Unable to fetch authorization code for account deletion.")
            raise SetupError()

        await self._report(AccountEvent.DELETING_ACCOUNT, identity.uid)

        async def revoke_and_delete():
            await self._identity_provider.revoke_token(self._provider_marker, authorization_code)
            logger.debug("Revoked %s token of %s", self._provider_marker, identity.uid)
            await self._identity_provider.delete()

        await self._dispatcher.perform_guarded(self, revoke_and_delete)

    async def handle_account_removal(self, user_id: Optional[str]) -> None:
        logger.debug("No %s state to clean up for %s", self._provider_marker, user_id)

    # -- internals ---------------------------------------------------

    async def _request_credential(self) -> Optional[OAuthCredential]:
        if self._credential_source is None:
            logger.error("No credential source configured for %s.", self._provider_marker)
            raise SetupError()
        try:
            return await self._credential_source.request_credential(self._provider_marker)
        except AccountError:
            raise
        except Exception as e:
            logger.error("Single sign-on challenge failed: %s", e)
            raise SingleSignOnFailedError() from e

    async def _sign_in(self, credential: OAuthCredential) -> AuthResult:
        result = await self._identity_provider.sign_in_with_credential(credential)
        # the federated provider only shares the full name on the very first sign in
        if result.is_new_user and credential.full_name is not None:
            await self._identity_provider.update_display_name(credential.full_name.formatted("medium"))
        return result

    async def _link_anonymous(self, credential: OAuthCredential) -> AuthResult:
        result = await self._identity_provider.link(credential)
        if credential.full_name is not None:
            await self._identity_provider.update_display_name(credential.full_name.formatted("medium"))
        return AuthResult(result.identity, is_new_user=True, provider_id=self._provider_marker)
