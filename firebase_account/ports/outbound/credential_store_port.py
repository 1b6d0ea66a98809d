"""Port for secure credential persistence (keychain-like)."""
from __future__ import annotations
from typing import Optional, Protocol, runtime_checkable

from firebase_account.core.value_objects.credentials import Credentials


class CredentialStoreError(Exception):
    """Raised when the credential store cannot complete an operation."""


class CredentialNotFoundError(CredentialStoreError):
    """Raised when deleting credentials that do not exist."""


@runtime_checkable
class CredentialStorePort(Protocol):
    def store(self, credentials: Credentials, namespace: str) -> None: ...
    def retrieve(self, username: str, namespace: str) -> Optional[Credentials]: ...
    def delete(self, username: str, namespace: str) -> None: ...
