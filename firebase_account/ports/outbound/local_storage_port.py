"""Port for small durable key/value records."""
from __future__ import annotations
from typing import Optional, Protocol, runtime_checkable


class LocalStorageError(Exception):
    """Raised when local storage cannot be read or written."""


@runtime_checkable
class LocalStoragePort(Protocol):
    def read(self, key: str) -> Optional[str]: ...
    def store(self, key: str, value: str) -> None: ...
    def delete(self, key: str) -> None: ...
