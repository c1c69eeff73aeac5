"""Demo-mode backend writing prospects to the local key-value store."""

from __future__ import annotations

import logging
import uuid
from typing import Any

from prospector.cache.reconciler import MembershipIndex
from prospector.core.config import Settings
from prospector.core.types import Prospect, ProspectCreate
from prospector.storage.local import LocalStore, ns_key

logger = logging.getLogger(__name__)

MAP_DATA_KEY = "mapData"


class LocalBackend:
    """Synchronous backend over :class:`LocalStore`.

    The full prospect collection is written as one document under
    ``mapData::<user>`` (or ``mapData::guest``), keeping any sibling keys
    of that document intact. Listing membership is owned by the cache
    reconciler; this backend only reads it to answer grouped fetches.
    """

    def __init__(self, store: LocalStore, user_id: str | None = None) -> None:
        self.store = store
        self.user_id = user_id
        self._membership = MembershipIndex(store, user_id)

    @classmethod
    def from_settings(cls, settings: Settings, store: LocalStore | None = None) -> LocalBackend:
        return cls(store or LocalStore(settings.local), user_id=settings.user_id)

    @property
    def key(self) -> str:
        return ns_key(self.user_id, MAP_DATA_KEY)

    # -- storage -------------------------------------------------------------

    def _load(self) -> list[Prospect]:
        doc = self.store.read(self.key, None) or {}
        return [Prospect.model_validate(item) for item in doc.get("prospects", [])]

    def _persist(self, prospects: list[Prospect]) -> None:
        doc = self.store.read(self.key, None) or {}
        doc["prospects"] = [p.to_wire() for p in prospects]
        doc.setdefault("submarkets", [])
        doc.setdefault("touches", [])
        self.store.write(self.key, doc)

    # -- backend API ---------------------------------------------------------

    def fetch_one(self, entity_id: str) -> Prospect:
        for prospect in self._load():
            if prospect.id == entity_id:
                return prospect
        raise KeyError(f"Prospect {entity_id!r} not found")

    def fetch_many(self, listing_id: str | None = None) -> list[Prospect]:
        prospects = self._load()
        if listing_id is None:
            return prospects
        linked = set(self._membership.ids(listing_id))
        return [p for p in prospects if p.id in linked]

    def create(self, payload: ProspectCreate, listing_id: str | None = None) -> Prospect:
        prospect = Prospect(id=str(uuid.uuid4()), **payload.model_dump())
        self._persist([*self._load(), prospect])
        logger.debug("Created local prospect %s", prospect.id)
        return prospect

    def update(self, entity_id: str, patch: dict[str, Any]) -> Prospect:
        prospects = self._load()
        for index, prospect in enumerate(prospects):
            if prospect.id == entity_id:
                updated = prospect.apply_patch(patch)
                self._persist([*prospects[:index], updated, *prospects[index + 1:]])
                return updated
        raise KeyError(f"Prospect {entity_id!r} not found")

    def delete(self, entity_id: str) -> None:
        prospects = self._load()
        remaining = [p for p in prospects if p.id != entity_id]
        if len(remaining) == len(prospects):
            raise KeyError(f"Prospect {entity_id!r} not found")
        self._persist(remaining)
