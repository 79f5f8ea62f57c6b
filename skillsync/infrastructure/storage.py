"""Durable key/value storage used by the client-side notification queue."""

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Any, Callable, Optional, Protocol

logger = logging.getLogger(__name__)

ChangeListener = Callable[[str], None]


class StorageUnavailableError(RuntimeError):
    """Raised when the backing medium cannot be read or written."""


class KeyValueStorage(Protocol):
    """Synchronous string-keyed storage holding JSON-serializable values."""

    def get(self, key: str) -> Any | None: ...

    def set(self, key: str, value: Any) -> None: ...

    def remove(self, key: str) -> None: ...


class MemoryStorage:
    """Process-local storage; the values are round-tripped through JSON."""

    def __init__(self, *, on_change: Optional[ChangeListener] = None) -> None:
        self._values: dict[str, str] = {}
        self._on_change = on_change

    def get(self, key: str) -> Any | None:
        raw = self._values.get(key)
        if raw is None:
            return None
        return json.loads(raw)

    def set(self, key: str, value: Any) -> None:
        self._values[key] = json.dumps(value)
        _notify(self._on_change, key)

    def remove(self, key: str) -> None:
        if self._values.pop(key, None) is not None:
            _notify(self._on_change, key)


class JsonFileStorage:
    """Storage persisted as a single JSON document on disk.

    Each write rewrites the whole document through a temporary file that
    replaces the original, so a crash never leaves a truncated file behind.
    """

    def __init__(
        self,
        path: str | os.PathLike[str],
        *,
        on_change: Optional[ChangeListener] = None,
    ) -> None:
        self._path = Path(path)
        self._on_change = on_change
        self._lock = threading.Lock()

    @property
    def path(self) -> Path:
        return self._path

    def get(self, key: str) -> Any | None:
        with self._lock:
            return self._read().get(key)

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            document = self._read()
            document[key] = value
            self._write(document)
        _notify(self._on_change, key)

    def remove(self, key: str) -> None:
        with self._lock:
            document = self._read()
            if key not in document:
                return
            del document[key]
            self._write(document)
        _notify(self._on_change, key)

    def _read(self) -> dict[str, Any]:
        try:
            raw = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        except OSError as exc:
            raise StorageUnavailableError(f"Cannot read {self._path}") from exc
        if not raw.strip():
            return {}
        try:
            document = json.loads(raw)
        except json.JSONDecodeError:
            logger.error("Storage file %s is corrupt; starting from an empty document", self._path)
            return {}
        if not isinstance(document, dict):
            logger.error("Storage file %s does not hold an object; ignoring it", self._path)
            return {}
        return document

    def _write(self, document: dict[str, Any]) -> None:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd, temp_name = tempfile.mkstemp(
                dir=self._path.parent, prefix=f".{self._path.name}.", suffix=".tmp"
            )
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(document, handle)
            os.replace(temp_name, self._path)
        except OSError as exc:
            raise StorageUnavailableError(f"Cannot write {self._path}") from exc


def _notify(listener: Optional[ChangeListener], key: str) -> None:
    if listener is None:
        return
    try:
        listener(key)
    except Exception:
        logger.exception("Storage change listener failed for key %s", key)


def build_storage(
    path: str | None, *, on_change: Optional[ChangeListener] = None
) -> KeyValueStorage:
    """Return file-backed storage for ``path`` or memory storage when unset."""

    if path:
        return JsonFileStorage(path, on_change=on_change)
    return MemoryStorage(on_change=on_change)


__all__ = [
    "ChangeListener",
    "JsonFileStorage",
    "KeyValueStorage",
    "MemoryStorage",
    "StorageUnavailableError",
    "build_storage",
]
