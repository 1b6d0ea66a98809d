"""Port for reporting account lifecycle events to interested modules."""
from __future__ import annotations
from typing import Protocol, runtime_checkable

from firebase_account.core.events.account_events import AccountEvent


@runtime_checkable
class AccountNotificationPort(Protocol):
    async def report_event(self, event: AccountEvent, account_id: str) -> None: ...
