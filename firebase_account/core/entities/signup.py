"""Input entities for signup and account modification requests."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from firebase_account.core.value_objects.credentials import OAuthCredential
from firebase_account.core.value_objects.person_name import PersonName


@dataclass(frozen=True)
class SignupDetails:
    user_id: str = ""
    password: Optional[str] = None
    name: Optional[PersonName] = None
    oauth_credential: Optional[OAuthCredential] = None


@dataclass(frozen=True)
class AccountModifications:
    """Changes requested for the signed in account.

    Changing ``user_id`` (the email) or ``password`` is security sensitive and
    requires a recent sign in.
    """

    user_id: Optional[str] = None
    password: Optional[str] = None
    name: Optional[PersonName] = None

    @property
    def is_sensitive(self) -> bool:
        return self.user_id is not None or self.password is not None

    @property
    def is_empty(self) -> bool:
        return self.user_id is None and self.password is None and self.name is None
