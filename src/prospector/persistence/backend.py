"""Backend protocol and factory.

Exactly one backend is chosen when the application is composed, from
``Settings.mode``. Call sites never branch on demo vs remote.
"""

from __future__ import annotations

from typing import Any, Awaitable, Protocol, TypeVar, runtime_checkable

from prospector.core.config import Settings
from prospector.core.types import Prospect, ProspectCreate

T = TypeVar("T")
MaybeAwaitable = T | Awaitable[T]


@runtime_checkable
class PersistenceBackend(Protocol):
    """Protocol for prospect persistence.

    Methods may return values directly (local) or awaitables (remote);
    callers wrap every call in :func:`prospector.persistence.resolve`.
    """

    def fetch_one(self, entity_id: str) -> MaybeAwaitable[Prospect]: ...

    def fetch_many(self, listing_id: str | None = None) -> MaybeAwaitable[list[Prospect]]: ...

    def create(
        self, payload: ProspectCreate, listing_id: str | None = None
    ) -> MaybeAwaitable[Prospect]: ...

    def update(self, entity_id: str, patch: dict[str, Any]) -> MaybeAwaitable[Prospect]: ...

    def delete(self, entity_id: str) -> MaybeAwaitable[None]: ...


def create_backend(settings: Settings, **kwargs: Any) -> PersistenceBackend:
    """Factory: select and instantiate a backend based on settings.mode."""

    from prospector.persistence.local import LocalBackend
    from prospector.persistence.remote import RemoteBackend

    registry: dict[str, Any] = {
        "demo": LocalBackend.from_settings,
        "remote": RemoteBackend.from_settings,
    }
    mode = settings.mode.lower()
    if mode not in registry:
        available = ", ".join(sorted(registry))
        raise ValueError(f"Unknown backend mode {settings.mode!r}. Available: {available}")
    return registry[mode](settings, **kwargs)
