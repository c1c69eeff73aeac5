"""Server-side prospect and listing store.

In-memory dicts, optionally persisted to a JSON file (written atomically
via a temp file) and seeded from a YAML fixtures file.
"""

from __future__ import annotations

import json
import logging
import os
import uuid
from pathlib import Path
from typing import Any

import yaml

from prospector.core.types import Listing, Prospect, ProspectCreate

logger = logging.getLogger(__name__)


class ProspectStore:
    """Prospects, listings and listing -> prospect links."""

    def __init__(self, data_path: str | Path | None = None) -> None:
        self._path = Path(data_path) if data_path else None
        self._prospects: dict[str, Prospect] = {}
        self._listings: dict[str, Listing] = {}
        self._links: dict[str, list[str]] = {}
        self._load()

    # -- persistence ---------------------------------------------------------

    def _load(self) -> None:
        if self._path is None or not self._path.exists():
            return
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("Starting empty; could not read %s: %s", self._path, exc)
            return
        for item in raw.get("prospects", []):
            prospect = Prospect.model_validate(item)
            self._prospects[prospect.id] = prospect
        for item in raw.get("listings", []):
            listing = Listing.model_validate(item)
            self._listings[listing.id] = listing
        self._links = {k: list(v) for k, v in raw.get("listingLinks", {}).items()}

    def _save(self) -> None:
        if self._path is None:
            return
        doc = {
            "prospects": [p.to_wire() for p in self._prospects.values()],
            "listings": [
                listing.model_dump(mode="json", by_alias=True)
                for listing in self._listings.values()
            ],
            "listingLinks": self._links,
        }
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self._path.with_suffix(self._path.suffix + ".tmp")
        tmp.write_text(json.dumps(doc, indent=2), encoding="utf-8")
        os.replace(tmp, self._path)

    def load_fixtures(self, path: str | Path) -> int:
        """Seed from YAML with ``prospects`` and ``listings`` lists.

        A listing entry may name its members under ``prospects`` (ids).
        Returns the number of prospects loaded.
        """
        data: dict[str, Any] = yaml.safe_load(Path(path).read_text(encoding="utf-8")) or {}
        for item in data.get("prospects", []):
            prospect = Prospect.model_validate(item)
            self._prospects[prospect.id] = prospect
        for item in data.get("listings", []):
            members = item.pop("prospects", [])
            listing = Listing.model_validate(item)
            self._listings[listing.id] = listing
            for prospect_id in members:
                self._link(listing.id, prospect_id)
        self._save()
        return len(data.get("prospects", []))

    # -- prospects -----------------------------------------------------------

    def create_prospect(self, payload: ProspectCreate) -> Prospect:
        prospect = Prospect(id=str(uuid.uuid4()), **payload.model_dump())
        self._prospects[prospect.id] = prospect
        self._save()
        return prospect

    def get_prospect(self, prospect_id: str) -> Prospect | None:
        return self._prospects.get(prospect_id)

    def list_prospects(self) -> list[Prospect]:
        return list(self._prospects.values())

    def update_prospect(self, prospect_id: str, patch: dict[str, Any]) -> Prospect:
        current = self._prospects.get(prospect_id)
        if current is None:
            raise KeyError(f"Prospect {prospect_id!r} not found")
        updated = current.apply_patch(patch)
        self._prospects[prospect_id] = updated
        self._save()
        return updated

    def delete_prospect(self, prospect_id: str) -> None:
        if self._prospects.pop(prospect_id, None) is None:
            raise KeyError(f"Prospect {prospect_id!r} not found")
        for listing_id in list(self._links):
            self._unlink(listing_id, prospect_id)
        self._save()

    # -- listings ------------------------------------------------------------

    def create_listing(self, name: str) -> Listing:
        listing = Listing(name=name)
        self._listings[listing.id] = listing
        self._save()
        return listing

    def get_listing(self, listing_id: str) -> Listing | None:
        return self._listings.get(listing_id)

    def list_listings(self) -> list[Listing]:
        return list(self._listings.values())

    def listing_prospects(self, listing_id: str) -> list[Prospect]:
        if listing_id not in self._listings:
            raise KeyError(f"Listing {listing_id!r} not found")
        return [
            self._prospects[pid] for pid in self._links.get(listing_id, [])
            if pid in self._prospects
        ]

    def link(self, listing_id: str, prospect_id: str) -> Listing:
        if listing_id not in self._listings:
            raise KeyError(f"Listing {listing_id!r} not found")
        if prospect_id not in self._prospects:
            raise KeyError(f"Prospect {prospect_id!r} not found")
        self._link(listing_id, prospect_id)
        self._save()
        return self._listings[listing_id]

    def unlink(self, listing_id: str, prospect_id: str) -> Listing:
        if listing_id not in self._listings:
            raise KeyError(f"Listing {listing_id!r} not found")
        self._unlink(listing_id, prospect_id)
        self._save()
        return self._listings[listing_id]

    def _link(self, listing_id: str, prospect_id: str) -> None:
        ids = self._links.get(listing_id, [])
        if prospect_id in ids:
            return
        self._links[listing_id] = [*ids, prospect_id]
        self._recount(listing_id)

    def _unlink(self, listing_id: str, prospect_id: str) -> None:
        ids = self._links.get(listing_id, [])
        if prospect_id not in ids:
            return
        self._links[listing_id] = [i for i in ids if i != prospect_id]
        self._recount(listing_id)

    def _recount(self, listing_id: str) -> None:
        listing = self._listings.get(listing_id)
        if listing is not None:
            self._listings[listing_id] = listing.model_copy(
                update={"prospect_count": len(self._links.get(listing_id, []))}
            )

    @property
    def prospect_count(self) -> int:
        return len(self._prospects)
