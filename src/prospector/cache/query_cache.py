"""Client-side query cache keyed by tuples."""

from __future__ import annotations

from typing import Any, Callable

CacheKey = tuple[Any, ...]

PROSPECTS_KEY: CacheKey = ("prospects",)
LISTINGS_KEY: CacheKey = ("listings",)


def listing_prospects_key(listing_id: str) -> CacheKey:
    return ("listings", listing_id, "prospects")


class QueryCache:
    """In-memory store of fetched query results.

    Values are replaced, never mutated in place, so consumers can detect a
    change by identity. ``version(key)`` counts replacements of a key.
    """

    def __init__(self) -> None:
        self._entries: dict[CacheKey, Any] = {}
        self._versions: dict[CacheKey, int] = {}

    def get(self, key: CacheKey) -> Any | None:
        return self._entries.get(key)

    def has(self, key: CacheKey) -> bool:
        return key in self._entries

    def set(self, key: CacheKey, value: Any) -> None:
        self._entries[key] = value
        self._versions[key] = self._versions.get(key, 0) + 1

    def update(self, key: CacheKey, fn: Callable[[Any], Any]) -> Any | None:
        """Replace the value at ``key`` with ``fn(current)``.

        Missing keys are left missing. Returning the same object from
        ``fn`` is treated as "no change".
        """
        if key not in self._entries:
            return None
        current = self._entries[key]
        updated = fn(current)
        if updated is not current:
            self.set(key, updated)
        return updated

    def invalidate(self, prefix: CacheKey) -> list[CacheKey]:
        """Drop every key starting with ``prefix``; returns the dropped keys."""
        dropped = [k for k in self._entries if k[: len(prefix)] == prefix]
        for key in dropped:
            del self._entries[key]
        return dropped

    def keys(self) -> list[CacheKey]:
        return list(self._entries)

    def version(self, key: CacheKey) -> int:
        return self._versions.get(key, 0)
