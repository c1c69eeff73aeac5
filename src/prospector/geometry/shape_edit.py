"""Polygon vertex editing with debounced autosave.

State machine per controller::

    idle -> editing -> saved
                    -> discarded

Entering ``editing`` snapshots the original ring. Every vertex insert,
move or removal restarts a timer; when it fires, ``{geometry, acres}`` is
sent through the synchronizer. Only one prospect is edited at a time:
beginning a second edit saves the first one.

A ring counts as persisted only once its flush succeeds, so a failed
autosave is resent by the next save. A failed save or discard leaves the
controller in ``editing``.
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from functools import partial
from typing import Any

from prospector.core.config import SyncConfig
from prospector.core.types import Coordinate, Geometry, Prospect
from prospector.geometry.area import distinct_vertices, polygon_acres
from prospector.sync.debounce import Debouncer
from prospector.sync.session import FlushResult
from prospector.sync.synchronizer import EntityEditSynchronizer

logger = logging.getLogger(__name__)


class ShapeEditState(str, Enum):
    IDLE = "idle"
    EDITING = "editing"
    SAVED = "saved"
    DISCARDED = "discarded"


def geometry_patch(ring: list[Coordinate]) -> dict[str, Any]:
    """Build the ``{geometry, acres}`` patch; ``acres`` is omitted for degenerate rings."""
    geometry = Geometry.polygon(ring)
    patch: dict[str, Any] = {"geometry": geometry}
    acres = polygon_acres(geometry)
    if acres is not None:
        patch["acres"] = acres
    return patch


class ShapeEditController:
    """Vertex editing for one prospect polygon at a time."""

    def __init__(
        self, synchronizer: EntityEditSynchronizer, config: SyncConfig | None = None
    ) -> None:
        config = config or SyncConfig()
        self._sync = synchronizer
        self._debouncer = Debouncer(self._autosave, config.geometry_debounce_seconds)
        self.state = ShapeEditState.IDLE
        self.entity_id: str | None = None
        self._ring: list[Coordinate] = []
        self._snapshot: list[Coordinate] | None = None
        self._persisted: list[Coordinate] = []
        self._confirmed: list[Coordinate] = []
        self._last_task: asyncio.Task | None = None

    @property
    def editable(self) -> bool:
        return self.state == ShapeEditState.EDITING

    @property
    def ring(self) -> list[Coordinate]:
        return list(self._ring)

    @property
    def snapshot(self) -> list[Coordinate] | None:
        return list(self._snapshot) if self._snapshot is not None else None

    async def begin(self, prospect: Prospect) -> None:
        if prospect.geometry.type != "Polygon":
            raise ValueError(f"Prospect {prospect.id!r} has no polygon to edit")
        if self.editable:
            if self.entity_id == prospect.id:
                return
            logger.info(
                "Saving shape edit for %s before editing %s", self.entity_id, prospect.id
            )
            await self.save()

        ring = distinct_vertices(prospect.geometry.outer_ring)
        self.entity_id = prospect.id
        self._ring = list(ring)
        self._snapshot = list(ring)
        self._persisted = list(ring)
        self._confirmed = list(ring)
        self._last_task = None
        self.state = ShapeEditState.EDITING

    # -- vertex events -------------------------------------------------------

    def insert_vertex(self, index: int, point: Coordinate) -> None:
        self._require_editing()
        self._ring = [*self._ring[:index], tuple(point), *self._ring[index:]]
        self._debouncer.schedule()

    def move_vertex(self, index: int, point: Coordinate) -> None:
        self._require_editing()
        if not 0 <= index < len(self._ring):
            raise IndexError(f"Vertex {index} out of range")
        self._ring = [tuple(point) if i == index else p for i, p in enumerate(self._ring)]
        self._debouncer.schedule()

    def remove_vertex(self, index: int) -> None:
        self._require_editing()
        if not 0 <= index < len(self._ring):
            raise IndexError(f"Vertex {index} out of range")
        self._ring = [p for i, p in enumerate(self._ring) if i != index]
        self._debouncer.schedule()

    def set_ring(self, ring: list[Coordinate]) -> None:
        self._require_editing()
        self._ring = distinct_vertices(ring)
        self._debouncer.schedule()

    # -- terminal transitions ------------------------------------------------

    async def save(self) -> FlushResult | None:
        """Persist the current ring now and leave editing."""
        self._require_editing()
        self._debouncer.cancel()
        result = await self._persist(self._ring)
        if result is not None and not result.ok:
            logger.warning("Shape save for %s failed: %s", self.entity_id, result.error)
            return result
        self._finish(ShapeEditState.SAVED)
        return result

    async def discard(self) -> FlushResult | None:
        """Restore the snapshot; undo any autosave that already went out."""
        self._require_editing()
        self._debouncer.cancel()
        original = list(self._snapshot or [])
        self._ring = original
        result = await self._persist(original)
        if result is not None and not result.ok:
            logger.warning("Shape discard for %s failed: %s", self.entity_id, result.error)
            return result
        self._finish(ShapeEditState.DISCARDED)
        return result

    # -- internal ------------------------------------------------------------

    def _require_editing(self) -> None:
        if not self.editable:
            raise ValueError(f"No shape edit in progress (state={self.state.value})")

    def _finish(self, state: ShapeEditState) -> None:
        self.state = state
        self._snapshot = None

    def _autosave(self) -> None:
        if self.editable:
            self._submit(self._ring)

    async def _persist(self, ring: list[Coordinate]) -> FlushResult | None:
        # An autosave still in flight must settle first so a failure is seen.
        if self._last_task is not None and not self._last_task.done():
            await asyncio.wait([self._last_task])
        task = self._submit(ring)
        return await task if task else None

    def _submit(self, ring: list[Coordinate]) -> asyncio.Task | None:
        if self.entity_id is None or ring == self._persisted:
            return None
        self._persisted = list(ring)
        task = self._sync.submit(self.entity_id, geometry_patch(ring))
        task.add_done_callback(partial(self._on_flushed, self.entity_id, list(ring)))
        self._last_task = task
        return task

    def _on_flushed(self, entity_id: str, ring: list[Coordinate], task: asyncio.Task) -> None:
        if entity_id != self.entity_id:
            return
        if not task.cancelled() and task.result().ok:
            self._confirmed = ring
        elif self._persisted == ring:
            self._persisted = list(self._confirmed)
