"""Tests for the REST persistence backend."""

from __future__ import annotations

import json

import httpx
import pytest

from prospector.cache.query_cache import PROSPECTS_KEY, QueryCache
from prospector.cache.reconciler import CacheReconciler
from prospector.core.config import RemoteConfig, Settings, SyncConfig
from prospector.core.types import Geometry, Prospect, ProspectCreate
from prospector.persistence.backend import create_backend
from prospector.persistence.remote import RemoteBackend
from prospector.prospects.store import ProspectStore
from prospector.sync.synchronizer import EntityEditSynchronizer
from prospector.web.app import create_app

BASE = "http://api.test"


def _config(**overrides) -> RemoteConfig:
    defaults = {"base_url": BASE, "max_retries": 1}
    defaults.update(overrides)
    return RemoteConfig(**defaults)


def _wire(prospect_id: str = "p1", **fields) -> dict:
    body = {
        "id": prospect_id,
        "name": "123 Main St",
        "status": "prospect",
        "notes": "",
        "geometry": {"type": "Point", "coordinates": [-97.74, 30.27]},
        "createdDate": "2026-01-05T12:00:00Z",
    }
    body.update(fields)
    return body


class TestFactory:
    def test_remote_mode_builds_remote_backend(self):
        backend = create_backend(Settings(mode="remote"))
        assert isinstance(backend, RemoteBackend)


class TestEndpoints:
    @pytest.mark.asyncio
    async def test_fetch_one(self, httpx_mock):
        httpx_mock.add_response(url=f"{BASE}/api/prospects/p1", method="GET", json=_wire())
        backend = RemoteBackend(_config())
        try:
            prospect = await backend.fetch_one("p1")
            assert prospect.id == "p1"
            assert prospect.geometry.type == "Point"
        finally:
            await backend.close()

    @pytest.mark.asyncio
    async def test_fetch_many_for_listing(self, httpx_mock):
        httpx_mock.add_response(
            url=f"{BASE}/api/listings/l1/prospects", method="GET", json=[_wire("p1"), _wire("p2")]
        )
        backend = RemoteBackend(_config())
        try:
            prospects = await backend.fetch_many("l1")
            assert [p.id for p in prospects] == ["p1", "p2"]
        finally:
            await backend.close()

    @pytest.mark.asyncio
    async def test_update_sends_camel_case_patch(self, httpx_mock):
        httpx_mock.add_response(
            url=f"{BASE}/api/prospects/p1",
            method="PATCH",
            json=_wire(contactName="Dana Ruiz", followUpTimeframe="3_month"),
        )
        backend = RemoteBackend(_config())
        try:
            saved = await backend.update(
                "p1", {"contact_name": "Dana Ruiz", "follow_up_timeframe": "3_month"}
            )
            body = json.loads(httpx_mock.get_request().content)
            assert body == {"contactName": "Dana Ruiz", "followUpTimeframe": "3_month"}
            assert saved.contact_name == "Dana Ruiz"
        finally:
            await backend.close()

    @pytest.mark.asyncio
    async def test_create_with_listing_links_prospect(self, httpx_mock):
        httpx_mock.add_response(
            url=f"{BASE}/api/prospects", method="POST", status_code=201, json=_wire("p9")
        )
        httpx_mock.add_response(
            url=f"{BASE}/api/listings/l1/prospects",
            method="POST",
            json={"id": "l1", "name": "East", "prospectCount": 1},
        )
        backend = RemoteBackend(_config())
        try:
            created = await backend.create(
                ProspectCreate(name="123 Main St", geometry=Geometry.point(-97.74, 30.27)),
                listing_id="l1",
            )
            link = httpx_mock.get_request(url=f"{BASE}/api/listings/l1/prospects")
            assert created.id == "p9"
            assert json.loads(link.content) == {"prospectId": "p9"}
        finally:
            await backend.close()

    @pytest.mark.asyncio
    async def test_delete_no_content(self, httpx_mock):
        httpx_mock.add_response(url=f"{BASE}/api/prospects/p1", method="DELETE", status_code=204)
        backend = RemoteBackend(_config())
        try:
            assert await backend.delete("p1") is None
        finally:
            await backend.close()

    @pytest.mark.asyncio
    async def test_bearer_token_sent(self, httpx_mock):
        httpx_mock.add_response(url=f"{BASE}/api/prospects/p1", method="GET", json=_wire())
        backend = RemoteBackend(_config(api_token="secret"))
        try:
            await backend.fetch_one("p1")
            assert httpx_mock.get_request().headers["Authorization"] == "Bearer secret"
        finally:
            await backend.close()


class TestErrors:
    @pytest.mark.asyncio
    async def test_server_error_retried(self, httpx_mock):
        httpx_mock.add_response(url=f"{BASE}/api/prospects/p1", method="GET", status_code=503)
        httpx_mock.add_response(url=f"{BASE}/api/prospects/p1", method="GET", json=_wire())
        backend = RemoteBackend(_config())
        try:
            prospect = await backend.fetch_one("p1")
            assert prospect.id == "p1"
            assert len(httpx_mock.get_requests()) == 2
        finally:
            await backend.close()

    @pytest.mark.asyncio
    async def test_client_error_not_retried(self, httpx_mock):
        httpx_mock.add_response(url=f"{BASE}/api/prospects/nope", method="GET", status_code=404)
        backend = RemoteBackend(_config())
        try:
            with pytest.raises(httpx.HTTPStatusError):
                await backend.fetch_one("nope")
            assert len(httpx_mock.get_requests()) == 1
        finally:
            await backend.close()

    @pytest.mark.asyncio
    async def test_network_error_raises_after_retries(self, httpx_mock):
        httpx_mock.add_exception(httpx.ConnectError("refused"))
        httpx_mock.add_exception(httpx.ConnectError("refused"))
        backend = RemoteBackend(_config())
        try:
            with pytest.raises(httpx.ConnectError):
                await backend.fetch_one("p1")
        finally:
            await backend.close()

    @pytest.mark.asyncio
    async def test_is_available_false_on_error(self, httpx_mock):
        httpx_mock.add_exception(httpx.ConnectError("refused"))
        backend = RemoteBackend(_config(max_retries=0))
        try:
            assert await backend.is_available() is False
        finally:
            await backend.close()

    @pytest.mark.asyncio
    async def test_failed_flush_reports_and_rolls_back(self, httpx_mock):
        httpx_mock.add_response(url=f"{BASE}/api/prospects/p1", method="PATCH", status_code=422)
        backend = RemoteBackend(_config(max_retries=0))
        sync = EntityEditSynchronizer(
            backend, CacheReconciler(QueryCache()), SyncConfig(debounce_ms=30)
        )
        try:
            sync.select(Prospect.model_validate(_wire()))
            sync.queue_update("name", "Rejected")
            result = await sync.flush()

            assert result.ok is False
            assert "422" in result.error
            assert sync.draft.name == "123 Main St"
        finally:
            await backend.close()


class TestAgainstReferenceApp:
    """End to end: synchronizer -> RemoteBackend -> FastAPI app, in process."""

    @pytest.mark.asyncio
    async def test_edits_persist_through_api(self):
        store = ProspectStore()
        app = create_app(Settings(), store=store)
        client = httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test")
        backend = RemoteBackend(_config(base_url="http://test"), client=client)
        cache = QueryCache()
        sync = EntityEditSynchronizer(backend, CacheReconciler(cache), SyncConfig(debounce_ms=30))
        try:
            created = await sync.create(
                ProspectCreate(name="123 Main St", geometry=Geometry.point(-97.74, 30.27))
            )
            await sync.load()
            sync.select(created)
            sync.queue_update("status", "contacted")
            sync.queue_update("notes", "Left voicemail")
            result = await sync.flush()

            assert result.ok is True
            stored = store.get_prospect(created.id)
            assert stored.status.value == "contacted"
            assert stored.notes == "Left voicemail"
            assert cache.get(PROSPECTS_KEY)[0] == result.entity
            assert await backend.is_available() is True
        finally:
            await backend.close()
