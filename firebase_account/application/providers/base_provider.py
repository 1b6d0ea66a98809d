"""
Base account provider defining the interface for sign-in-method-specific flows.
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Optional

from firebase_account.core.entities.account_details import AccountDetails
from firebase_account.core.entities.identity import Identity
from firebase_account.core.entities.signup import AccountModifications, SignupDetails
from firebase_account.core.events.account_events import AccountEvent
from firebase_account.core.exceptions import NotSignedInError, RequireRecentLoginError
from firebase_account.core.value_objects.credentials import ReauthenticationOperation

if TYPE_CHECKING:
    from firebase_account.application.dispatcher import AccountOperationDispatcher
    from firebase_account.application.reconciliation_service import AccountReconciliationService

logger = logging.getLogger(__name__)


class AccountProvider(ABC):
    """Base class for provider adapters.

    Each adapter implements the sign in flows of one sign in method (email and
    password, a single sign-on provider, ...) on top of the shared identity
    provider client. Every state-mutating call goes through the dispatcher so
    the resulting state change is applied on behalf of the caller.
    """

    #: Whether the adapter signs in through a federated identity provider.
    federated: bool = False

    def __init__(
        self,
        identity_provider,
        dispatcher: AccountOperationDispatcher,
        reconciliation: AccountReconciliationService,
        notifier=None,
    ):
        self._identity_provider = identity_provider
        self._dispatcher = dispatcher
        self._reconciliation = reconciliation
        self._notifier = notifier

    @property
    @abstractmethod
    def id(self) -> str:
        """Unique adapter identifier, persisted as the active provider."""
        ...

    @property
    @abstractmethod
    def provider_ids(self) -> tuple[str, ...]:
        """Identity provider markers (e.g. ``password``) owned by this adapter."""
        ...

    @abstractmethod
    async def signup(self, details: SignupDetails) -> Optional[AccountDetails]:
        ...

    @abstractmethod
    async def reauthenticate(self, identity: Identity) -> ReauthenticationOperation:
        """Confirm the user's identity again for security sensitive operations."""
        ...

    @abstractmethod
    async def handle_account_removal(self, user_id: Optional[str]) -> None:
        """Clean up adapter-owned state after the account was removed."""
        ...

    # ── Shared operations ─────────────────────────────────────────

    async def logout(self) -> None:
        if self._identity_provider.current_identity is None:
            if await self._repair_signed_out_state():
                return
            logger.error("Tried to remove local user but there was no user signed in.")
            raise NotSignedInError()

        await self._dispatcher.perform_guarded(self, self._sign_out)

    async def delete(self) -> None:
        identity = await self._require_identity()
        await self._report(AccountEvent.DELETING_ACCOUNT, identity.uid)

        try:
            await self._dispatcher.perform_guarded(self, self._identity_provider.delete)
        except RequireRecentLoginError:
            logger.debug("Deleting the account requires a recent login. Re-authenticating...")
            operation = await self.reauthenticate(identity)
            if not operation.succeeded:
                logger.debug("Re-authentication was cancelled. Not deleting the account.")
                raise
            await self._dispatcher.perform_guarded(self, self._identity_provider.delete)

    async def update_account_details(self, modifications: AccountModifications) -> Optional[AccountDetails]:
        identity = await self._require_identity()
        if modifications.is_empty:
            return self._reconciliation.account_store.details

        if modifications.is_sensitive:
            operation = await self.reauthenticate(identity)
            if not operation.succeeded:
                logger.debug("Re-authentication was cancelled by user. Not updating account details.")
                return None

        async def apply():
            if modifications.user_id is not None:
                logger.debug("Updating email address of %s", identity.uid)
                await self._identity_provider.update_email(modifications.user_id)
            if modifications.password is not None:
                logger.debug("Updating password of %s", identity.uid)
                await self._identity_provider.update_password(modifications.password)
            if modifications.name is not None:
                await self._identity_provider.update_display_name(modifications.name.formatted("long"))

        details = await self._dispatcher.perform_guarded(self, apply, reconcile_current=True)
        self._account_details_updated(identity, modifications)
        return details

    # ── Hooks & helpers ───────────────────────────────────────────

    def _account_details_updated(self, identity: Identity, modifications: AccountModifications) -> None:
        """Called after modifications were applied at the identity provider."""

    async def _sign_out(self) -> None:
        self._identity_provider.sign_out()

    async def _require_identity(self) -> Identity:
        identity = self._identity_provider.current_identity
        if identity is None:
            await self._repair_signed_out_state()
            raise NotSignedInError()
        return identity

    async def _repair_signed_out_state(self) -> bool:
        """Retract a signed in account store when the provider has no identity."""
        if not self._reconciliation.account_store.signed_in:
            return False
        logger.warning("Account store is signed in without a provider identity. Removing local user.")
        await self._dispatcher.reconcile_removal(self)
        return True

    async def _report(self, event: AccountEvent, account_id: str) -> None:
        if self._notifier is not None:
            await self._notifier.report_event(event, account_id)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(id={self.id!r})"
