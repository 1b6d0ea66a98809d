"""Credential value objects handed to the identity provider and credential store."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

from firebase_account.core.value_objects.person_name import PersonName


@dataclass(frozen=True)
class Credentials:
    """Username/password pair persisted in the credential store."""

    username: str
    password: str

    def __repr__(self) -> str:
        return f"Credentials(username={self.username!r}, password='***')"


@dataclass(frozen=True)
class EmailPasswordCredential:
    email: str
    password: str

    provider_id = "password"

    def __repr__(self) -> str:
        return f"EmailPasswordCredential(email={self.email!r}, password='***')"


@dataclass(frozen=True)
class OAuthCredential:
    """Credential issued by a federated identity provider (e.g. Sign in with Apple).

    ``authorization_code`` is only present on interactive challenges and is
    needed to revoke the provider token when the account gets deleted.
    """

    provider_id: str
    id_token: str
    raw_nonce: Optional[str] = None
    authorization_code: Optional[str] = None
    full_name: Optional[PersonName] = None


AuthCredential = Union[EmailPasswordCredential, OAuthCredential]


class ReauthenticationResult(str, Enum):
    SUCCESS = "success"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class ReauthenticationOperation:
    """Outcome of a re-authentication attempt."""

    result: ReauthenticationResult
    credential: Optional[OAuthCredential] = None

    @classmethod
    def cancelled(cls) -> ReauthenticationOperation:
        return cls(ReauthenticationResult.CANCELLED)

    @classmethod
    def success(cls, credential: Optional[OAuthCredential] = None) -> ReauthenticationOperation:
        return cls(ReauthenticationResult.SUCCESS, credential)

    @property
    def succeeded(self) -> bool:
        return self.result == ReauthenticationResult.SUCCESS
