"""Keeps every prospect cache consistent after a create, update or delete.

All cache writes go through :meth:`CacheReconciler.apply`, fed one of the
tagged events below. The reconciler knows which cache keys can hold a
prospect: the collection-wide list and one list per listing (workspace).
Grouped lists are backed by a :class:`MembershipIndex` that is updated in
lockstep and persisted when a :class:`LocalStore` is available.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from prospector.cache.query_cache import (
    LISTINGS_KEY,
    PROSPECTS_KEY,
    CacheKey,
    QueryCache,
    listing_prospects_key,
)
from prospector.core.types import Listing, Prospect
from prospector.storage.local import LocalStore, ns_key

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Created:
    entity: Prospect
    group_ids: tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class Updated:
    entity: Prospect


@dataclass(frozen=True)
class Deleted:
    entity_id: str


CacheEvent = Created | Updated | Deleted


def _membership_key(listing_id: str) -> str:
    return f"workspace:{listing_id}:prospectIds"


class MembershipIndex:
    """Listing id -> ordered, unique prospect ids.

    When backed by a store, ids are written under both the user-scoped and
    the device-wide key, and reads merge the two.
    """

    def __init__(self, store: LocalStore | None = None, user_id: str | None = None) -> None:
        self._store = store
        self._user_id = user_id
        self._ids: dict[str, list[str]] = {}

    def ids(self, listing_id: str) -> list[str]:
        if self._store is None:
            return list(self._ids.get(listing_id, []))
        key = _membership_key(listing_id)
        shared = self._store.read(ns_key(None, key), []) or []
        scoped = self._store.read(ns_key(self._user_id, key), []) or []
        return list(dict.fromkeys([*shared, *scoped]))

    def set(self, listing_id: str, ids: list[str]) -> None:
        unique = list(dict.fromkeys(ids))
        if self._store is None:
            self._ids[listing_id] = unique
            return
        key = _membership_key(listing_id)
        self._store.write(ns_key(self._user_id, key), unique)
        self._store.write(ns_key(None, key), unique)

    def add(self, listing_id: str, prospect_id: str) -> bool:
        ids = self.ids(listing_id)
        if prospect_id in ids:
            return False
        self.set(listing_id, [*ids, prospect_id])
        return True

    def remove(self, listing_id: str, prospect_id: str) -> bool:
        ids = self.ids(listing_id)
        if prospect_id not in ids:
            return False
        self.set(listing_id, [i for i in ids if i != prospect_id])
        return True

    def listings(self) -> list[str]:
        if self._store is None:
            return list(self._ids)
        found: list[str] = []
        for key in self._store.keys():
            base = key.split("::", 1)[0]
            if base.startswith("workspace:") and base.endswith(":prospectIds"):
                listing_id = base[len("workspace:"):-len(":prospectIds")]
                if listing_id not in found:
                    found.append(listing_id)
        return found

    def remove_everywhere(self, prospect_id: str) -> list[str]:
        """Drop ``prospect_id`` from every listing; returns affected listings."""
        return [lid for lid in self.listings() if self.remove(lid, prospect_id)]


class CacheReconciler:
    """Applies create/update/delete events to every relevant cache."""

    def __init__(self, cache: QueryCache, membership: MembershipIndex | None = None) -> None:
        self.cache = cache
        self.membership = membership or MembershipIndex()

    def apply(self, event: CacheEvent) -> None:
        if isinstance(event, Updated):
            self._apply_updated(event.entity)
        elif isinstance(event, Created):
            self._apply_created(event.entity, event.group_ids)
        elif isinstance(event, Deleted):
            self._apply_deleted(event.entity_id)
        else:
            raise TypeError(f"Unsupported cache event {event!r}")

    # -- queries -------------------------------------------------------------

    def prospect_keys(self) -> list[CacheKey]:
        """Every populated cache key holding a list of prospects."""
        return [
            key for key in self.cache.keys()
            if key == PROSPECTS_KEY
            or (len(key) == 3 and key[0] == "listings" and key[2] == "prospects")
        ]

    def copies_of(self, entity_id: str) -> list[Prospect]:
        """All cached copies of one prospect, across every list."""
        return [
            p
            for key in self.prospect_keys()
            for p in self.cache.get(key) or []
            if p.id == entity_id
        ]

    # -- event handlers ------------------------------------------------------

    def _apply_updated(self, entity: Prospect) -> None:
        def replace(items: list[Prospect]) -> list[Prospect]:
            if not any(p.id == entity.id for p in items):
                return items
            return [entity if p.id == entity.id else p for p in items]

        for key in self.prospect_keys():
            self.cache.update(key, replace)

    def _apply_created(self, entity: Prospect, group_ids: tuple[str, ...]) -> None:
        def append(items: list[Prospect]) -> list[Prospect]:
            if any(p.id == entity.id for p in items):
                return [entity if p.id == entity.id else p for p in items]
            return [*items, entity]

        self.cache.update(PROSPECTS_KEY, append)
        for listing_id in group_ids:
            added = self.membership.add(listing_id, entity.id)
            self.cache.update(listing_prospects_key(listing_id), append)
            if added:
                self._adjust_count(listing_id, +1)

    def _apply_deleted(self, entity_id: str) -> None:
        def drop(items: list[Prospect]) -> list[Prospect]:
            if not any(p.id == entity_id for p in items):
                return items
            return [p for p in items if p.id != entity_id]

        affected = set(self.membership.remove_everywhere(entity_id))
        for key in self.prospect_keys():
            before = self.cache.get(key)
            after = self.cache.update(key, drop)
            if key != PROSPECTS_KEY and after is not before:
                affected.add(key[1])
        for listing_id in affected:
            self._adjust_count(listing_id, -1)

    def _adjust_count(self, listing_id: str, delta: int) -> None:
        def bump(listings: list[Listing]) -> list[Listing]:
            if not any(item.id == listing_id for item in listings):
                return listings
            return [
                item.model_copy(
                    update={"prospect_count": max(0, item.prospect_count + delta)}
                )
                if item.id == listing_id else item
                for item in listings
            ]

        self.cache.update(LISTINGS_KEY, bump)
        logger.debug("Listing %s prospect_count adjusted by %+d", listing_id, delta)
