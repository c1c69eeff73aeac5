"""Shared test fixtures and helpers."""

from __future__ import annotations

import asyncio
from typing import Any

import pytest

from prospector.cache.query_cache import QueryCache
from prospector.cache.reconciler import CacheReconciler, MembershipIndex
from prospector.core.config import SyncConfig
from prospector.core.types import Geometry, Prospect, ProspectCreate
from prospector.persistence.local import LocalBackend
from prospector.storage.local import LocalStore
from prospector.sync.synchronizer import EntityEditSynchronizer

# ~0.001 degree square near Austin, TX, open ring.
SQUARE = [(-97.750, 30.270), (-97.749, 30.270), (-97.749, 30.271), (-97.750, 30.271)]

FAST = SyncConfig(debounce_ms=30, geometry_debounce_ms=30)


def make_prospect(prospect_id: str = "p1", name: str = "123 Main St", **overrides: Any) -> Prospect:
    data: dict[str, Any] = {
        "id": prospect_id,
        "name": name,
        "geometry": Geometry.point(-97.7431, 30.2672),
    }
    data.update(overrides)
    return Prospect(**data)


def make_polygon_prospect(prospect_id: str = "poly1", ring=None) -> Prospect:
    return make_prospect(prospect_id, name="Oak Ave Yard", geometry=Geometry.polygon(ring or SQUARE))


class RecordingBackend:
    """Demo backend that records updates and can be made to fail or stall.

    Set ``gate`` to an unset ``asyncio.Event`` to hold updates in flight,
    and ``fail_with`` to make them raise.
    """

    def __init__(self, store: LocalStore | None = None) -> None:
        self.inner = LocalBackend(store or LocalStore())
        self.updates: list[tuple[str, dict[str, Any]]] = []
        self.fail_with: Exception | None = None
        self.gate: asyncio.Event | None = None
        self.active = 0
        self.max_active = 0

    def seed(self, *prospects: Prospect) -> None:
        self.inner._persist(list(prospects))

    def fetch_one(self, entity_id: str) -> Prospect:
        return self.inner.fetch_one(entity_id)

    def fetch_many(self, listing_id: str | None = None) -> list[Prospect]:
        return self.inner.fetch_many(listing_id)

    def create(self, payload: ProspectCreate, listing_id: str | None = None) -> Prospect:
        return self.inner.create(payload, listing_id)

    async def update(self, entity_id: str, patch: dict[str, Any]) -> Prospect:
        self.updates.append((entity_id, dict(patch)))
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            if self.gate is not None:
                await self.gate.wait()
            if self.fail_with is not None:
                raise self.fail_with
            return self.inner.update(entity_id, patch)
        finally:
            self.active -= 1

    def delete(self, entity_id: str) -> None:
        self.inner.delete(entity_id)


@pytest.fixture
def backend() -> RecordingBackend:
    backend = RecordingBackend()
    backend.seed(
        make_prospect("p1", "123 Main St"),
        make_prospect("p2", "456 Oak Ave"),
        make_polygon_prospect("poly1"),
    )
    return backend


@pytest.fixture
def cache() -> QueryCache:
    return QueryCache()


@pytest.fixture
def reconciler(cache) -> CacheReconciler:
    return CacheReconciler(cache, MembershipIndex())


@pytest.fixture
def sync(backend, reconciler) -> EntityEditSynchronizer:
    return EntityEditSynchronizer(backend, reconciler, FAST)


async def settle(sync: EntityEditSynchronizer, seconds: float = 0.1) -> None:
    """Let debounce timers fire, then wait for every in-flight flush."""
    await asyncio.sleep(seconds)
    await sync.drain()
