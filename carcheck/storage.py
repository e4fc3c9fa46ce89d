"""
Local key-value persistence for the device-side auth cache.

Values are JSON-serializable dicts. Storage is a fallback cache only, so
read/write failures are logged and reported as missing values.
"""

from __future__ import annotations

import json
import logging
import threading
from pathlib import Path
from typing import Any, Optional, Protocol

logger = logging.getLogger(__name__)

SESSION_KEY = "supabase_auth_session"
USER_KEY = "supabase_auth_user"
PROFILE_KEY = "supabase_auth_profile"
AUTH_KEYS = (SESSION_KEY, USER_KEY, PROFILE_KEY)


class KeyValueStorage(Protocol):
    def get_item(self, key: str) -> Optional[dict[str, Any]]: ...

    def set_item(self, key: str, value: dict[str, Any]) -> None: ...

    def multi_remove(self, keys: tuple[str, ...] | list[str]) -> None: ...


class InMemoryStorage:
    """Dict-backed storage for tests and processes without a cache path."""

    def __init__(self):
        self.items: dict[str, str] = {}

    def get_item(self, key: str) -> Optional[dict[str, Any]]:
        raw = self.items.get(key)
        return json.loads(raw) if raw else None

    def set_item(self, key: str, value: dict[str, Any]) -> None:
        self.items[key] = json.dumps(value, default=str)

    def multi_remove(self, keys) -> None:
        for key in keys:
            self.items.pop(key, None)


class JsonFileStorage:
    """Stores all keys in one JSON document on disk."""

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self._lock = threading.Lock()

    def _read(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            return json.loads(self.path.read_text(encoding="utf-8")) or {}
        except (OSError, ValueError) as exc:
            logger.error("Error reading auth cache %s: %s", self.path, exc)
            return {}

    def _write(self, data: dict[str, Any]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp = self.path.with_suffix(self.path.suffix + ".tmp")
            tmp.write_text(json.dumps(data, default=str), encoding="utf-8")
            tmp.replace(self.path)
        except OSError as exc:
            logger.error("Error writing auth cache %s: %s", self.path, exc)

    def get_item(self, key: str) -> Optional[dict[str, Any]]:
        with self._lock:
            value = self._read().get(key)
        return value if isinstance(value, dict) else None

    def set_item(self, key: str, value: dict[str, Any]) -> None:
        with self._lock:
            data = self._read()
            data[key] = value
            self._write(data)

    def multi_remove(self, keys) -> None:
        with self._lock:
            data = self._read()
            for key in keys:
                data.pop(key, None)
            self._write(data)


def create_storage(path: str | None) -> KeyValueStorage:
    if path:
        return JsonFileStorage(path)
    return InMemoryStorage()
