"""
Single-flight dispatch of identity provider operations.

The identity provider reports state changes through a listener that carries
no caller context. The dispatcher arms a pending marker before running a
state-mutating operation so the resulting notification is captured and
applied on behalf of that caller (errors included). Notifications arriving
while nothing is pending are applied anonymously and their errors are only
logged.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Optional

from firebase_account.core.entities.account_details import AccountDetails
from firebase_account.core.entities.identity import AuthResult, Identity
from firebase_account.core.events.account_events import IdentityStateChanged
from firebase_account.core.exceptions import (
    AccountError,
    AuthErrorCode,
    IdentityProviderError,
    SetupError,
    UnknownAccountError,
    account_error_from_provider,
)

if TYPE_CHECKING:
    from firebase_account.application.providers.base_provider import AccountProvider
    from firebase_account.application.providers.registry import ProviderRegistry
    from firebase_account.application.reconciliation_service import AccountReconciliationService

logger = logging.getLogger(__name__)

Operation = Callable[[], Awaitable[Any]]


@dataclass
class _PendingOperation:
    """Marker for the one in-flight operation and its queued notification."""

    arrived: asyncio.Event = field(default_factory=asyncio.Event)
    update: Optional[IdentityStateChanged] = None


class AccountOperationDispatcher:
    """Serializes account operations against provider state notifications.

    All mutations of the pending marker, the active provider and the account
    store go through one ``asyncio.Lock``. The dispatcher is single-flight:
    do not call :meth:`perform_guarded` from inside a guarded operation.
    """

    def __init__(
        self,
        reconciliation: AccountReconciliationService,
        registry: ProviderRegistry,
        notification_timeout: float = 0.0,
    ):
        self._reconciliation = reconciliation
        self._registry = registry
        self._notification_timeout = notification_timeout
        self._lock = asyncio.Lock()
        self._pending: Optional[_PendingOperation] = None
        self._active_provider: Optional[AccountProvider] = None
        self._sequence = 0
        self._identity_provider = None
        self._listener_handle: Optional[object] = None
        self._background: set[asyncio.Task] = set()

    @property
    def active_provider(self) -> Optional[AccountProvider]:
        return self._active_provider

    @property
    def is_armed(self) -> bool:
        return self._pending is not None

    # ── Listener lifecycle ────────────────────────────────────────

    def attach(self, identity_provider) -> None:
        """Register the shared state change listener on *identity_provider*."""
        if self._listener_handle is not None:
            self.detach()
        self._identity_provider = identity_provider
        self._listener_handle = identity_provider.add_state_change_listener(self._on_state_change)
        logger.debug("State change listener attached")

    def detach(self) -> None:
        if self._identity_provider is not None and self._listener_handle is not None:
            self._identity_provider.remove_state_change_listener(self._listener_handle)
            logger.debug("State change listener detached")
        self._listener_handle = None

    def restore_active_provider(self, provider_id: Optional[str]) -> None:
        """Restore the in-memory active provider from its persisted identifier."""
        if provider_id is None:
            return
        provider = self._registry.get(provider_id)
        if provider is None:
            logger.warning("Persisted active provider %s is not registered", provider_id)
            return
        self._active_provider = provider

    # ── Guarded operations ────────────────────────────────────────

    async def perform_guarded(
        self,
        provider: AccountProvider,
        operation: Operation,
        *,
        reconcile_current: bool = False,
    ) -> Optional[AccountDetails]:
        """Run *operation* and apply the state change it caused.

        Returns the account details published for the caller, or ``None`` if
        the operation resulted in a removal or nothing had to be applied.
        With ``reconcile_current`` the provider's current identity is applied
        when the operation produced no notification (profile updates, linking).
        """
        async with self._lock:
            self._set_active_provider(provider)
            pending = _PendingOperation()
            self._pending = pending

            try:
                try:
                    result = await operation()
                except AccountError:
                    raise
                except IdentityProviderError as e:
                    logger.error("Received identity provider error on dispatch: %s (%s)", e, e.code_value)
                    raise account_error_from_provider(e) from e
                except Exception as e:
                    logger.error("Received error on dispatch: %s (type=%s)", e, type(e).__name__)
                    raise UnknownAccountError(AuthErrorCode.INTERNAL_ERROR) from e

                update = await self._take_queued(pending)
                if update is None:
                    if not reconcile_current:
                        logger.debug("Didn't find anything to dispatch in the queue!")
                        return None
                    update = IdentityStateChanged(
                        self._current_identity(),
                        provider_id=provider.id,
                        sequence=self._sequence,
                    )

                if isinstance(result, AuthResult) and result.is_new_user is not None:
                    update = update.annotated(is_new_user=result.is_new_user)

                return await self._apply(update)
            finally:
                self._disarm(pending)

    async def reconcile_identity(
        self,
        identity: Identity,
        provider: Optional[AccountProvider] = None,
        is_new_user: bool = False,
    ) -> Optional[AccountDetails]:
        """Apply *identity* directly, outside of a guarded operation."""
        async with self._lock:
            update = IdentityStateChanged(
                identity,
                provider_id=provider.id if provider else None,
                is_new_user=is_new_user,
                sequence=self._sequence,
            )
            return await self._apply(update)

    async def reconcile_removal(self, provider: Optional[AccountProvider] = None) -> None:
        """Retract the account directly, e.g. to repair a desync with the provider."""
        async with self._lock:
            await self._apply_removed(provider or self._active_provider)

    async def drain(self) -> None:
        """Wait for all anonymously dispatched updates to finish."""
        while self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    # ── Internals ─────────────────────────────────────────────────

    def _set_active_provider(self, provider: AccountProvider) -> None:
        self._active_provider = provider
        self._reconciliation.record_active_provider(provider.id)

    def _current_identity(self) -> Optional[Identity]:
        if self._identity_provider is None:
            return None
        return self._identity_provider.current_identity

    def _on_state_change(self, identity: Optional[Identity]) -> None:
        # invoked by the identity provider, on its own schedule
        self._sequence += 1
        update = IdentityStateChanged(
            identity,
            provider_id=self._active_provider.id if self._active_provider else None,
            sequence=self._sequence,
        )

        pending = self._pending
        if pending is not None:
            if pending.update is not None:
                logger.debug("Replacing queued state change %d with %d", pending.update.sequence, update.sequence)
            else:
                logger.debug("Received state change that is queued to be dispatched in active call.")
            pending.update = update
            pending.arrived.set()
        else:
            logger.debug("Received state change that was triggered due to other reasons. Dispatching anonymously...")
            self._dispatch_anonymously(update)

    async def _take_queued(self, pending: _PendingOperation) -> Optional[IdentityStateChanged]:
        if not pending.arrived.is_set():
            # listeners scheduled by the provider get one loop iteration to run
            await asyncio.sleep(0)
        if not pending.arrived.is_set() and self._notification_timeout > 0:
            try:
                await asyncio.wait_for(pending.arrived.wait(), timeout=self._notification_timeout)
            except asyncio.TimeoutError:
                logger.warning("No state change arrived within %.2fs", self._notification_timeout)

        self._pending = None
        update = pending.update
        pending.update = None
        return update

    def _disarm(self, pending: _PendingOperation) -> None:
        if self._pending is pending:
            self._pending = None
        if pending.update is not None:
            update = pending.update
            pending.update = None
            self._dispatch_anonymously(update)

    def _dispatch_anonymously(self, update: IdentityStateChanged) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.error("Dropping state change %d: no running event loop", update.sequence)
            return
        task = loop.create_task(self._apply_anonymously(update), name=f"state-change-{update.sequence}")
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def _apply_anonymously(self, update: IdentityStateChanged) -> None:
        async with self._lock:
            if update.sequence != self._sequence:
                logger.debug("Skipping state change %d superseded by %d", update.sequence, self._sequence)
                return
            try:
                await self._apply(update)
            except Exception as e:
                # there is no caller to report to
                logger.error("Failed to anonymously dispatch user change due to %s", e)

    async def _apply(self, update: IdentityStateChanged) -> Optional[AccountDetails]:
        provider = self._registry.get(update.provider_id) if update.provider_id else None

        if update.removed:
            await self._apply_removed(provider)
            return None

        identity = update.identity
        current = self._current_identity()
        if current is not None and current.uid == identity.uid:
            identity = current

        if identity.is_anonymous:
            logger.debug("Ignoring state change of anonymous identity %s", identity.uid)
            return None

        if provider is None:
            provider = self._registry.find_for(identity)
        if provider is None:
            logger.error("Failed to dispatch user update due to missing account provider for %s", identity.uid)
            raise SetupError()

        return await self._reconciliation.apply_signed_in(identity, provider, is_new_user=update.is_new_user)

    async def _apply_removed(self, provider: Optional[AccountProvider]) -> None:
        await self._reconciliation.apply_removed(provider)
        self._active_provider = None
