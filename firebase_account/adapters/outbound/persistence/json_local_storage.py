"""Local filesystem and in-memory implementations of LocalStoragePort."""

from __future__ import annotations

import json
import logging
import threading
from pathlib import Path
from typing import Optional

from firebase_account.ports.outbound.local_storage_port import LocalStorageError

logger = logging.getLogger(__name__)


class JsonFileLocalStorage:
    """Implements :class:`LocalStoragePort` with one JSON document on disk.

    The document is rewritten atomically (temp file + rename) on every change.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path).resolve()
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()
        logger.info("JsonFileLocalStorage initialised at %s", self._path)

    # -- helpers ---------------------------------------------------------------

    def _load(self) -> dict[str, str]:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            raise LocalStorageError(f"Failed to read {self._path}: {e}") from e
        if not isinstance(data, dict):
            raise LocalStorageError(f"Unexpected content in {self._path}")
        return data

    def _dump(self, data: dict[str, str]) -> None:
        tmp = self._path.with_suffix(self._path.suffix + ".tmp")
        try:
            tmp.write_text(json.dumps(data, indent=2, sort_keys=True), encoding="utf-8")
            tmp.replace(self._path)
        except OSError as e:
            raise LocalStorageError(f"Failed to write {self._path}: {e}") from e

    # -- LocalStoragePort implementation ---------------------------------------

    def read(self, key: str) -> Optional[str]:
        with self._lock:
            return self._load().get(key)

    def store(self, key: str, value: str) -> None:
        with self._lock:
            data = self._load()
            data[key] = value
            self._dump(data)
        logger.debug("Stored local record %s", key)

    def delete(self, key: str) -> None:
        with self._lock:
            data = self._load()
            if data.pop(key, None) is None:
                logger.debug("Local record %s does not exist", key)
                return
            self._dump(data)
        logger.debug("Deleted local record %s", key)


class InMemoryLocalStorage:
    """Non-durable :class:`LocalStoragePort` for development and tests."""

    def __init__(self) -> None:
        self._records: dict[str, str] = {}

    def read(self, key: str) -> Optional[str]:
        return self._records.get(key)

    def store(self, key: str, value: str) -> None:
        self._records[key] = value

    def delete(self, key: str) -> None:
        self._records.pop(key, None)
