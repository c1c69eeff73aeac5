"""Polygon area helpers.

Area is computed on a sphere of the WGS84 equatorial radius, the same
model web map SDKs use for ``computeArea``. Degenerate rings yield
``None`` rather than ``0`` so callers can omit the derived field.
"""

from __future__ import annotations

import math

from prospector.core.types import Coordinate, Geometry

EARTH_RADIUS_M = 6378137.0
SQ_METERS_PER_ACRE = 4046.8564224


def distinct_vertices(ring: list[Coordinate]) -> list[Coordinate]:
    """Drop the closing point and consecutive duplicates from ``ring``."""
    out: list[Coordinate] = []
    for lng, lat in ring:
        point = (float(lng), float(lat))
        if not out or out[-1] != point:
            out.append(point)
    if len(out) > 1 and out[0] == out[-1]:
        out.pop()
    return out


def ring_area_sq_meters(ring: list[Coordinate]) -> float | None:
    """Spherical area of a ``[lng, lat]`` ring, or ``None`` if degenerate."""
    vertices = distinct_vertices(ring)
    if len(vertices) < 3:
        return None

    total = 0.0
    count = len(vertices)
    for i in range(count):
        lng1, lat1 = vertices[i]
        lng2, lat2 = vertices[(i + 1) % count]
        total += math.radians(lng2 - lng1) * (
            2 + math.sin(math.radians(lat1)) + math.sin(math.radians(lat2))
        )
    area = abs(total * EARTH_RADIUS_M * EARTH_RADIUS_M / 2.0)

    if not math.isfinite(area) or area == 0.0:
        return None
    return area


def polygon_acres(geometry: Geometry | None) -> float | None:
    """Acreage of a polygon's outer ring; ``None`` for points and bad rings."""
    if geometry is None or geometry.type != "Polygon":
        return None
    area = ring_area_sq_meters(geometry.outer_ring)
    if area is None:
        return None
    return area / SQ_METERS_PER_ACRE
