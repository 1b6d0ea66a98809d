"""Port for the downstream account store consuming account details."""
from __future__ import annotations
from typing import Optional, Protocol, runtime_checkable

from firebase_account.core.entities.account_details import AccountDetails


@runtime_checkable
class AccountStorePort(Protocol):
    @property
    def details(self) -> Optional[AccountDetails]: ...
    @property
    def signed_in(self) -> bool: ...
    async def supply_user_details(self, details: AccountDetails, is_new_user: bool = False) -> None: ...
    async def remove_user_details(self) -> None: ...
