"""
Account management use case.

Entry point for the host application: routes account operations to the
provider adapter of the sign in method in use and keeps the account store in
sync with the identity provider across restarts.
"""
from __future__ import annotations

import logging
from typing import Optional

from firebase_account.application.dispatcher import AccountOperationDispatcher
from firebase_account.application.providers.base_provider import AccountProvider
from firebase_account.application.providers.email_password_provider import EmailPasswordProvider
from firebase_account.application.providers.registry import ProviderRegistry
from firebase_account.application.providers.single_sign_on_provider import SingleSignOnProvider
from firebase_account.application.reconciliation_service import AccountReconciliationService
from firebase_account.core.entities.account_details import AccountDetails
from firebase_account.core.entities.identity import Identity
from firebase_account.core.entities.signup import AccountModifications, SignupDetails
from firebase_account.core.exceptions import (
    AuthErrorCode,
    IdentityProviderError,
    NotSignedInError,
    SetupError,
)
from firebase_account.core.value_objects.credentials import OAuthCredential, ReauthenticationOperation

logger = logging.getLogger(__name__)


class AccountService:
    """Manages the account lifecycle: sign in, sign up, update, sign out, delete."""

    def __init__(
        self,
        identity_provider,
        registry: ProviderRegistry,
        dispatcher: AccountOperationDispatcher,
        reconciliation: AccountReconciliationService,
        allow_anonymous: bool = True,
    ):
        self._identity_provider = identity_provider
        self._registry = registry
        self._dispatcher = dispatcher
        self._reconciliation = reconciliation
        self._allow_anonymous = allow_anonymous
        self._configured = False

    @property
    def registry(self) -> ProviderRegistry:
        return self._registry

    @property
    def dispatcher(self) -> AccountOperationDispatcher:
        return self._dispatcher

    @property
    def account_store(self):
        return self._reconciliation.account_store

    @property
    def current_identity(self) -> Optional[Identity]:
        return self._identity_provider.current_identity

    @property
    def active_provider(self) -> Optional[AccountProvider]:
        return self._dispatcher.active_provider

    # ── Lifecycle ─────────────────────────────────────────────────

    async def configure(self) -> None:
        """Restore the last session and start listening for state changes."""
        if self._configured:
            return
        self._dispatcher.restore_active_provider(self._reconciliation.load_active_provider())
        self._dispatcher.attach(self._identity_provider)
        self._configured = True

        identity = self._identity_provider.current_identity
        if identity is None:
            return

        logger.debug("Found cached identity %s, refreshing token", identity.uid)
        try:
            await self._identity_provider.refresh_token(force=True)
        except IdentityProviderError as e:
            if e.code_value == AuthErrorCode.NETWORK_ERROR.value:
                logger.debug("Unable to refresh token due to network error: %s", e)
                return
            logger.warning("Cached identity %s is no longer valid (%s), removing local user", identity.uid, e.code_value)
            self._identity_provider.sign_out()
            await self._dispatcher.drain()
            if self.account_store.signed_in:
                await self._dispatcher.reconcile_removal(self._dispatcher.active_provider)

    async def shutdown(self) -> None:
        self._dispatcher.detach()
        await self._dispatcher.drain()
        self._configured = False
        logger.debug("Account service shut down")

    # ── Sign in & sign up ─────────────────────────────────────────

    async def login(self, user_id: str, password: str) -> Optional[AccountDetails]:
        return await self._email_password().login(user_id, password)

    async def login_with_credential(self, credential: OAuthCredential) -> Optional[AccountDetails]:
        return await self._single_sign_on(credential.provider_id).login(credential)

    async def sign_in_with_sso(self, provider_id: Optional[str] = None) -> Optional[AccountDetails]:
        return await self._single_sign_on(provider_id).sign_in_interactively()

    async def signup(self, details: SignupDetails) -> Optional[AccountDetails]:
        if details.oauth_credential is not None:
            return await self._single_sign_on(details.oauth_credential.provider_id).signup(details)
        return await self._email_password().signup(details)

    async def sign_in_anonymously(self) -> None:
        if not self._allow_anonymous:
            logger.error("Anonymous authentication is not enabled.")
            raise SetupError()
        provider = self._registry.default() or self._any_provider()
        await self._dispatcher.perform_guarded(provider, self._identity_provider.sign_in_anonymously)

    async def reset_password(self, user_id: str) -> None:
        await self._email_password().reset_password(user_id)

    # ── Signed in operations ──────────────────────────────────────

    async def logout(self) -> None:
        await self._current_provider().logout()

    async def delete(self) -> None:
        await self._current_provider().delete()

    async def update_account_details(self, modifications: AccountModifications) -> Optional[AccountDetails]:
        return await self._current_provider().update_account_details(modifications)

    async def reauthenticate(self, identity: Optional[Identity] = None) -> ReauthenticationOperation:
        """Re-authenticate *identity* (default: the current one) with its own sign in method."""
        identity = identity or self._identity_provider.current_identity
        if identity is None:
            raise NotSignedInError()
        return await self._registry.select_for(identity).reauthenticate(identity)

    # -- routing -----------------------------------------------------

    def _current_provider(self) -> AccountProvider:
        identity = self._identity_provider.current_identity
        if identity is not None and not identity.is_anonymous:
            return self._registry.select_for(identity)
        return self._dispatcher.active_provider or self._registry.default() or self._any_provider()

    def _email_password(self) -> EmailPasswordProvider:
        for provider in self._registry:
            if isinstance(provider, EmailPasswordProvider):
                return provider
        logger.error("Email and password authentication is not enabled.")
        raise SetupError()

    def _single_sign_on(self, provider_id: Optional[str] = None) -> SingleSignOnProvider:
        for provider in self._registry:
            if isinstance(provider, SingleSignOnProvider) and (provider_id is None or provider_id in provider.provider_ids):
                return provider
        logger.error("Single sign-on with %s is not enabled.", provider_id or "any provider")
        raise SetupError()

    def _any_provider(self) -> AccountProvider:
        for provider in self._registry:
            return provider
        logger.error("No account provider is registered.")
        raise SetupError()
