"""Core type definitions shared across all prospector modules."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel
from pydantic_core import to_jsonable_python

Coordinate = tuple[float, float]


class ProspectStatus(str, Enum):
    """Pipeline stage of a prospect."""

    PROSPECT = "prospect"
    CONTACTED = "contacted"
    LISTING = "listing"
    CLIENT = "client"
    NO_GO = "no_go"


class FollowUpTimeframe(str, Enum):
    """How long after the last touch a prospect is due for follow-up."""

    ONE_MONTH = "1_month"
    THREE_MONTH = "3_month"
    SIX_MONTH = "6_month"
    ONE_YEAR = "1_year"


class _WireModel(BaseModel):
    """Base for models exchanged as camelCase JSON."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Geometry(_WireModel):
    """GeoJSON-style Point or Polygon in ``[lng, lat]`` order.

    Polygons are stored as a list of rings, each closed (first == last).
    A bare ring (legacy payloads) is wrapped into a single-ring polygon.
    """

    type: Literal["Point", "Polygon"]
    coordinates: Any

    @model_validator(mode="before")
    @classmethod
    def _normalise(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        kind = data.get("type")
        coords = data.get("coordinates")
        if kind == "Point":
            if not isinstance(coords, (list, tuple)) or len(coords) != 2:
                raise ValueError("Point coordinates must be [lng, lat]")
            return {"type": kind, "coordinates": [float(coords[0]), float(coords[1])]}
        if kind == "Polygon":
            if not isinstance(coords, (list, tuple)):
                raise ValueError("Polygon coordinates must be a list of rings")
            rings = coords
            if rings and _is_pair(rings[0]):
                rings = [rings]
            return {"type": kind, "coordinates": [close_ring(r) for r in rings]}
        return data

    @classmethod
    def point(cls, lng: float, lat: float) -> Geometry:
        return cls(type="Point", coordinates=[lng, lat])

    @classmethod
    def polygon(cls, ring: list[Coordinate]) -> Geometry:
        return cls(type="Polygon", coordinates=[list(ring)])

    @property
    def outer_ring(self) -> list[Coordinate]:
        """Closed outer ring of a polygon; empty for points."""
        if self.type != "Polygon" or not self.coordinates:
            return []
        return [(p[0], p[1]) for p in self.coordinates[0]]


def _is_pair(value: Any) -> bool:
    return (
        isinstance(value, (list, tuple))
        and len(value) == 2
        and all(isinstance(v, (int, float)) for v in value)
    )


def close_ring(ring: list[Any]) -> list[list[float]]:
    """Return ``ring`` as ``[[lng, lat], ...]`` with the first point repeated last."""
    points = [[float(p[0]), float(p[1])] for p in ring]
    if points and points[0] != points[-1]:
        points.append(list(points[0]))
    return points


class Prospect(_WireModel):
    """A map-attached record tracked by a broker."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    name: str
    status: ProspectStatus = ProspectStatus.PROSPECT
    notes: str = ""
    geometry: Geometry
    created_date: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    submarket_id: str | None = None
    last_contact_date: datetime | None = None
    follow_up_timeframe: FollowUpTimeframe | None = None
    follow_up_due_date: datetime | None = None
    contact_name: str | None = None
    contact_email: str | None = None
    contact_phone: str | None = None
    contact_company: str | None = None
    size: str | None = None
    acres: float | None = None
    business_name: str | None = None
    website_url: str | None = None

    def apply_patch(self, patch: dict[str, Any]) -> Prospect:
        """Return a validated copy with ``patch`` (python field names) merged in."""
        data = self.model_dump()
        data.update(patch)
        return Prospect.model_validate(data)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


# Fields a client may change after creation.
EDITABLE_FIELDS: frozenset[str] = frozenset(
    name for name in Prospect.model_fields if name not in {"id", "created_date"}
)


def patch_to_wire(patch: dict[str, Any]) -> dict[str, Any]:
    """Convert a python-keyed partial update into a camelCase JSON body."""
    body: dict[str, Any] = {}
    for name, value in patch.items():
        field = Prospect.model_fields.get(name)
        key = field.alias if field is not None and field.alias else name
        body[key] = to_jsonable_python(value, by_alias=True)
    return body


def patch_from_wire(body: dict[str, Any]) -> dict[str, Any]:
    """Inverse of :func:`patch_to_wire`; unknown keys raise ``ValueError``."""
    by_alias = {
        (f.alias or name): name for name, f in Prospect.model_fields.items()
    }
    patch: dict[str, Any] = {}
    for key, value in body.items():
        name = by_alias.get(key, key)
        if name not in EDITABLE_FIELDS:
            raise ValueError(f"Field {key!r} cannot be updated")
        patch[name] = value
    return patch


class ProspectCreate(_WireModel):
    """Payload for creating a prospect; the id is assigned by the backend."""

    name: str
    status: ProspectStatus = ProspectStatus.PROSPECT
    notes: str = ""
    geometry: Geometry
    submarket_id: str | None = None
    last_contact_date: datetime | None = None
    follow_up_timeframe: FollowUpTimeframe | None = None
    follow_up_due_date: datetime | None = None
    contact_name: str | None = None
    contact_email: str | None = None
    contact_phone: str | None = None
    contact_company: str | None = None
    size: str | None = None
    acres: float | None = None
    business_name: str | None = None
    website_url: str | None = None


class Listing(_WireModel):
    """A workspace grouping prospects for one listing."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    name: str
    prospect_count: int = 0
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
