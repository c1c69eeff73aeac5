"""JSON-file key-value store used for demo mode.

Mirrors a browser's local storage: string keys, JSON values, optionally
namespaced by a user id. With no path the store lives in memory only.
"""

from __future__ import annotations

import copy
import json
import logging
import os
from pathlib import Path
from typing import Any

from prospector.core.config import LocalStoreConfig

logger = logging.getLogger(__name__)

GUEST_NAMESPACE = "guest"


def ns_key(user_id: str | None, key: str) -> str:
    """Namespace ``key`` by user, falling back to the device-wide guest key."""
    return f"{key}::{user_id}" if user_id else f"{key}::{GUEST_NAMESPACE}"


class LocalStore:
    """Key-value store persisted as one JSON document."""

    def __init__(self, config: LocalStoreConfig | None = None) -> None:
        config = config or LocalStoreConfig(path=None)
        self._path = Path(config.path) if config.path else None
        self._data: dict[str, Any] = {}
        self._load()

    @property
    def path(self) -> Path | None:
        return self._path

    def _load(self) -> None:
        if self._path is None or not self._path.exists():
            return
        try:
            raw = self._path.read_text(encoding="utf-8")
            loaded = json.loads(raw) if raw.strip() else {}
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("Ignoring unreadable local store %s: %s", self._path, exc)
            return
        if isinstance(loaded, dict):
            self._data = loaded

    def _save(self) -> None:
        if self._path is None:
            return
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self._path.with_suffix(self._path.suffix + ".tmp")
        tmp.write_text(json.dumps(self._data, indent=2), encoding="utf-8")
        os.replace(tmp, self._path)

    def read(self, key: str, default: Any = None) -> Any:
        """Return a deep copy of the stored value, or ``default``."""
        if key not in self._data:
            return default
        return copy.deepcopy(self._data[key])

    def write(self, key: str, value: Any) -> None:
        """Store ``value`` (must be JSON-serialisable) and persist.

        Raises ``TypeError``/``ValueError`` for unserialisable values and
        ``OSError`` when the file cannot be written; the in-memory state is
        left unchanged in both cases.
        """
        encoded = json.loads(json.dumps(value))
        previous = self._data.get(key, _MISSING)
        self._data[key] = encoded
        try:
            self._save()
        except OSError:
            if previous is _MISSING:
                self._data.pop(key, None)
            else:
                self._data[key] = previous
            logger.error("Failed to persist local store key %r", key)
            raise

    def remove(self, key: str) -> None:
        if self._data.pop(key, _MISSING) is not _MISSING:
            self._save()

    def keys(self) -> list[str]:
        return list(self._data)


_MISSING = object()
