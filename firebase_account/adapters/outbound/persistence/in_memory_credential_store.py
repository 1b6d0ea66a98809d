"""In-memory implementation of CredentialStorePort."""

from __future__ import annotations

import logging
import threading
from typing import Optional

from firebase_account.core.value_objects.credentials import Credentials
from firebase_account.ports.outbound.credential_store_port import CredentialNotFoundError

logger = logging.getLogger(__name__)


class InMemoryCredentialStore:
    """Process-local credential store keyed by ``(namespace, username)``.

    Stands in for the platform keychain during development and tests.
    """

    def __init__(self) -> None:
        self._store: dict[tuple[str, str], Credentials] = {}
        self._lock = threading.Lock()

    def store(self, credentials: Credentials, namespace: str) -> None:
        with self._lock:
            self._store[(namespace, credentials.username)] = credentials
        logger.debug("Stored credentials for %s in %s", credentials.username, namespace)

    def retrieve(self, username: str, namespace: str) -> Optional[Credentials]:
        with self._lock:
            return self._store.get((namespace, username))

    def delete(self, username: str, namespace: str) -> None:
        with self._lock:
            removed = self._store.pop((namespace, username), None)
        if removed is None:
            raise CredentialNotFoundError(f"No credentials for {username} in {namespace}")
        logger.debug("Deleted credentials for %s in %s", username, namespace)
