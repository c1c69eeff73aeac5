"""Tests for polygon vertex editing and autosave."""

from __future__ import annotations

import pytest

from prospector.geometry.area import polygon_acres
from prospector.geometry.shape_edit import ShapeEditController, ShapeEditState, geometry_patch

from tests.conftest import FAST, SQUARE, make_polygon_prospect, make_prospect, settle

MOVED = (-97.7485, 30.2712)


@pytest.fixture
def editor(sync) -> ShapeEditController:
    return ShapeEditController(sync, FAST)


class TestGeometryPatch:
    def test_includes_acres_for_valid_ring(self):
        patch = geometry_patch(SQUARE)
        assert patch["geometry"].type == "Polygon"
        assert patch["acres"] == pytest.approx(polygon_acres(patch["geometry"]))

    def test_omits_acres_for_degenerate_ring(self):
        patch = geometry_patch(SQUARE[:2])
        assert "acres" not in patch
        assert patch["geometry"].type == "Polygon"


class TestBegin:
    @pytest.mark.asyncio
    async def test_begin_snapshots_ring(self, editor):
        await editor.begin(make_polygon_prospect())
        assert editor.state == ShapeEditState.EDITING
        assert editor.editable is True
        assert editor.entity_id == "poly1"
        assert editor.ring == SQUARE
        assert editor.snapshot == SQUARE

    @pytest.mark.asyncio
    async def test_point_prospect_cannot_be_shape_edited(self, editor):
        with pytest.raises(ValueError, match="no polygon"):
            await editor.begin(make_prospect("p1"))

    def test_vertex_events_require_editing(self, editor):
        with pytest.raises(ValueError, match="No shape edit"):
            editor.move_vertex(0, MOVED)

    @pytest.mark.asyncio
    async def test_beginning_second_edit_saves_first(self, editor, backend, sync):
        backend.seed(make_polygon_prospect("poly1"), make_polygon_prospect("poly2"))
        await editor.begin(make_polygon_prospect("poly1"))
        editor.move_vertex(2, MOVED)

        await editor.begin(make_polygon_prospect("poly2"))
        await settle(sync)

        assert [u[0] for u in backend.updates] == ["poly1"]
        assert editor.entity_id == "poly2"
        assert editor.state == ShapeEditState.EDITING


class TestAutosave:
    @pytest.mark.asyncio
    async def test_rapid_moves_coalesce_into_one_patch(self, editor, backend, sync):
        await editor.begin(make_polygon_prospect())
        for step in range(5):
            editor.move_vertex(2, (MOVED[0] + step * 1e-5, MOVED[1]))
        assert backend.updates == []

        await settle(sync)

        assert len(backend.updates) == 1
        entity_id, patch = backend.updates[0]
        assert entity_id == "poly1"
        assert patch["geometry"].outer_ring[2] == (MOVED[0] + 4e-5, MOVED[1])
        assert patch["acres"] == pytest.approx(polygon_acres(patch["geometry"]))

    @pytest.mark.asyncio
    async def test_insert_and_remove_vertex(self, editor, backend, sync):
        await editor.begin(make_polygon_prospect())
        editor.insert_vertex(1, (-97.7495, 30.2695))
        assert len(editor.ring) == 5
        editor.remove_vertex(1)
        assert editor.ring == SQUARE

        await settle(sync)
        assert backend.updates == []

    @pytest.mark.asyncio
    async def test_move_out_of_range_rejected(self, editor):
        await editor.begin(make_polygon_prospect())
        with pytest.raises(IndexError):
            editor.move_vertex(10, MOVED)

    @pytest.mark.asyncio
    async def test_degenerate_ring_saved_without_acres(self, editor, backend, sync):
        await editor.begin(make_polygon_prospect())
        editor.set_ring(SQUARE[:2])
        await settle(sync)

        assert "acres" not in backend.updates[0][1]
        assert backend.fetch_one("poly1").acres is None


class TestSaveDiscard:
    @pytest.mark.asyncio
    async def test_save_persists_immediately(self, editor, backend):
        await editor.begin(make_polygon_prospect())
        editor.move_vertex(2, MOVED)
        result = await editor.save()

        assert result.ok is True
        assert result.entity.acres is not None
        assert editor.state == ShapeEditState.SAVED
        assert editor.snapshot is None
        assert len(backend.updates) == 1

    @pytest.mark.asyncio
    async def test_save_without_changes_makes_no_call(self, editor, backend):
        await editor.begin(make_polygon_prospect())
        assert await editor.save() is None
        assert backend.updates == []

    @pytest.mark.asyncio
    async def test_discard_before_autosave_makes_no_call(self, editor, backend, sync):
        await editor.begin(make_polygon_prospect())
        editor.move_vertex(2, MOVED)
        assert await editor.discard() is None

        await settle(sync)
        assert backend.updates == []
        assert editor.ring == SQUARE
        assert editor.state == ShapeEditState.DISCARDED

    @pytest.mark.asyncio
    async def test_discard_after_autosave_restores_original(self, editor, backend, sync):
        await editor.begin(make_polygon_prospect())
        editor.move_vertex(2, MOVED)
        await settle(sync)
        assert len(backend.updates) == 1

        result = await editor.discard()

        assert result.ok is True
        assert result.entity.geometry.outer_ring[:-1] == SQUARE
        assert backend.fetch_one("poly1").geometry.outer_ring[:-1] == SQUARE

    @pytest.mark.asyncio
    async def test_save_resends_ring_whose_autosave_failed(self, editor, backend, sync):
        await editor.begin(make_polygon_prospect())
        backend.fail_with = RuntimeError("offline")
        editor.move_vertex(2, MOVED)
        await settle(sync)
        backend.fail_with = None

        result = await editor.save()

        assert result is not None
        assert result.ok is True
        assert editor.state == ShapeEditState.SAVED
        assert len(backend.updates) == 2
        assert backend.fetch_one("poly1").geometry.outer_ring[2] == MOVED

    @pytest.mark.asyncio
    async def test_failed_save_stays_editing_and_can_retry(self, editor, backend):
        await editor.begin(make_polygon_prospect())
        editor.move_vertex(2, MOVED)
        backend.fail_with = RuntimeError("offline")

        failed = await editor.save()

        assert failed.ok is False
        assert editor.state == ShapeEditState.EDITING
        assert editor.snapshot == SQUARE

        backend.fail_with = None
        retried = await editor.save()
        assert retried.ok is True
        assert editor.state == ShapeEditState.SAVED
        assert backend.fetch_one("poly1").geometry.outer_ring[2] == MOVED

    @pytest.mark.asyncio
    async def test_terminal_state_rejects_further_edits(self, editor):
        await editor.begin(make_polygon_prospect())
        await editor.save()
        with pytest.raises(ValueError):
            editor.insert_vertex(0, MOVED)
