"""Account notification adapter that logs events and fans them out to subscribers."""
from __future__ import annotations

import logging
from typing import Awaitable, Callable

from firebase_account.core.events.account_events import AccountEvent

logger = logging.getLogger(__name__)

EventSubscriber = Callable[[AccountEvent, str], Awaitable[None]]


class LoggingAccountNotifier:
    """Implements :class:`AccountNotificationPort`.

    Subscribers are awaited in registration order; a failing subscriber does
    not prevent the others from running.
    """

    def __init__(self) -> None:
        self._subscribers: list[EventSubscriber] = []

    def subscribe(self, subscriber: EventSubscriber) -> None:
        self._subscribers.append(subscriber)

    def unsubscribe(self, subscriber: EventSubscriber) -> None:
        if subscriber in self._subscribers:
            self._subscribers.remove(subscriber)

    async def report_event(self, event: AccountEvent, account_id: str) -> None:
        logger.info("Account event %s for %s", event.value, account_id)
        for subscriber in list(self._subscribers):
            try:
                await subscriber(event, account_id)
            except Exception as e:
                logger.warning("Subscriber failed handling %s: %s", event.value, e)
