"""
Persisted client state.

Small string key/value store holding the user's dashboard settings between
sessions, with the same keys the web client keeps in local storage.
"""

from __future__ import annotations

import json
import threading
from abc import ABC, abstractmethod
from pathlib import Path

import structlog

logger = structlog.get_logger()

CLOUD_MODE_KEY = "cloudMode"
S3_FOLDER_PATH_KEY = "s3FolderPath"
S3_DATA_KEY = "s3Data"
RECOMMENDATION_UPDATES_KEY = "recommendationUpdates"
CURRENCY_KEY = "currency"


class ClientStateStore(ABC):
    """String key/value store with local-storage semantics."""

    @abstractmethod
    def get_item(self, key: str) -> str | None: ...

    @abstractmethod
    def set_item(self, key: str, value: str) -> None: ...

    @abstractmethod
    def remove_item(self, key: str) -> None: ...


class InMemoryStateStore(ClientStateStore):
    def __init__(self, initial: dict[str, str] | None = None):
        self._items: dict[str, str] = dict(initial or {})

    def get_item(self, key: str) -> str | None:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = str(value)

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)

    def snapshot(self) -> dict[str, str]:
        return dict(self._items)


class JsonFileStateStore(ClientStateStore):
    """
    Durable store backed by a single JSON object on disk.

    The file is read once and served from memory after that; it is rewritten
    atomically (temp file + rename) only when a value actually changes. A
    missing or corrupt file reads as empty.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self._lock = threading.Lock()
        self._items: dict[str, str] | None = None

    def _read(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            payload = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("state_file_unreadable", path=str(self.path), error=str(e))
            return {}
        if not isinstance(payload, dict):
            return {}
        return {str(k): str(v) for k, v in payload.items()}

    def _write(self, items: dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp_path.write_text(json.dumps(items, indent=2, sort_keys=True), encoding="utf-8")
        tmp_path.replace(self.path)

    def _loaded(self) -> dict[str, str]:
        if self._items is None:
            self._items = self._read()
        return self._items

    def get_item(self, key: str) -> str | None:
        with self._lock:
            return self._loaded().get(key)

    def set_item(self, key: str, value: str) -> None:
        with self._lock:
            items = self._loaded()
            if items.get(key) == str(value):
                return
            updated = {**items, key: str(value)}
            self._write(updated)
            self._items = updated

    def remove_item(self, key: str) -> None:
        with self._lock:
            items = self._loaded()
            if key in items:
                updated = {k: v for k, v in items.items() if k != key}
                self._write(updated)
                self._items = updated
