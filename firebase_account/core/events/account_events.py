"""Domain events related to account state."""
from __future__ import annotations
from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional

from firebase_account.core.entities.identity import Identity


@dataclass(frozen=True)
class IdentityStateChanged:
    """State change reported by the identity provider listener.

    ``identity`` is ``None`` when the account was signed out or removed.
    ``provider_id`` attributes the change to the provider adapter that was
    last active when the notification arrived.
    """

    identity: Optional[Identity]
    provider_id: Optional[str] = None
    is_new_user: bool = False
    sequence: int = 0

    @property
    def removed(self) -> bool:
        return self.identity is None

    def annotated(self, *, is_new_user: bool) -> IdentityStateChanged:
        return replace(self, is_new_user=is_new_user)


class AccountEvent(str, Enum):
    """Events reported to the account notification port."""

    DELETING_ACCOUNT = "deletingAccount"
