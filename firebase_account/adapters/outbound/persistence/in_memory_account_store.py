"""In-memory implementation of AccountStorePort."""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Optional

from firebase_account.core.entities.account_details import AccountDetails

logger = logging.getLogger(__name__)

AccountObserver = Callable[[Optional[AccountDetails], bool], None]


class InMemoryAccountStore:
    """Holds the current account and notifies observers on every change.

    Observers are called with the new details (``None`` on removal) and the
    ``is_new_user`` flag of the change. The most recent changes are kept in
    ``history``, at most ``history_limit`` of them.
    """

    def __init__(self, history_limit: int = 50) -> None:
        self._details: Optional[AccountDetails] = None
        self._lock = asyncio.Lock()
        self._observers: list[AccountObserver] = []
        self.history: list[Optional[AccountDetails]] = []
        self._history_limit = history_limit

    # -- AccountStorePort implementation ---------------------------------------

    @property
    def details(self) -> Optional[AccountDetails]:
        return self._details

    @property
    def signed_in(self) -> bool:
        return self._details is not None

    async def supply_user_details(self, details: AccountDetails, is_new_user: bool = False) -> None:
        """Publish *details* as the current account."""
        async with self._lock:
            self._details = details
            self._record(details)
            logger.debug("Supplied account %s (new=%s)", details.account_id, is_new_user)
        self._notify(details, is_new_user)

    async def remove_user_details(self) -> None:
        """Retract the current account."""
        async with self._lock:
            if self._details is None:
                logger.debug("No account details to remove")
            self._details = None
            self._record(None)
        self._notify(None, False)

    # -- observers -------------------------------------------------------------

    def observe(self, observer: AccountObserver) -> None:
        self._observers.append(observer)

    def _record(self, details: Optional[AccountDetails]) -> None:
        self.history.append(details)
        while len(self.history) > self._history_limit:
            self.history.pop(0)

    def _notify(self, details: Optional[AccountDetails], is_new_user: bool) -> None:
        for observer in list(self._observers):
            observer(details, is_new_user)
