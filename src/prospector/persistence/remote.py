"""REST backend talking to the prospects API over httpx."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx

from prospector.core.config import RemoteConfig, Settings
from prospector.core.types import Prospect, ProspectCreate, patch_to_wire

logger = logging.getLogger(__name__)


class RemoteBackend:
    """Async client for ``/api/prospects`` and ``/api/listings``."""

    def __init__(self, config: RemoteConfig, client: httpx.AsyncClient | None = None) -> None:
        self.config = config
        headers = {}
        if config.api_token:
            headers["Authorization"] = f"Bearer {config.api_token}"
        self._http = client or httpx.AsyncClient(
            base_url=config.base_url,
            timeout=httpx.Timeout(config.timeout_seconds),
            headers=headers,
        )
        self._max_retries = config.max_retries

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs: Any) -> RemoteBackend:
        return cls(settings.remote, **kwargs)

    # -- public API ----------------------------------------------------------

    async def fetch_one(self, entity_id: str) -> Prospect:
        data = await self._request("GET", f"/api/prospects/{entity_id}")
        return Prospect.model_validate(data)

    async def fetch_many(self, listing_id: str | None = None) -> list[Prospect]:
        path = f"/api/listings/{listing_id}/prospects" if listing_id else "/api/prospects"
        data = await self._request("GET", path)
        return [Prospect.model_validate(item) for item in data]

    async def create(self, payload: ProspectCreate, listing_id: str | None = None) -> Prospect:
        body = payload.model_dump(mode="json", by_alias=True, exclude_none=True)
        created = Prospect.model_validate(await self._request("POST", "/api/prospects", body))
        if listing_id:
            await self._request(
                "POST", f"/api/listings/{listing_id}/prospects", {"prospectId": created.id}
            )
        return created

    async def update(self, entity_id: str, patch: dict[str, Any]) -> Prospect:
        data = await self._request("PATCH", f"/api/prospects/{entity_id}", patch_to_wire(patch))
        return Prospect.model_validate(data)

    async def delete(self, entity_id: str) -> None:
        await self._request("DELETE", f"/api/prospects/{entity_id}")

    async def is_available(self) -> bool:
        try:
            r = await self._http.get("/api/health")
            return r.status_code == 200
        except httpx.HTTPError:
            return False

    async def close(self) -> None:
        await self._http.aclose()

    # -- internal ------------------------------------------------------------

    async def _request(self, method: str, path: str, payload: dict | None = None) -> Any:
        last_exc: Exception | None = None
        for attempt in range(self._max_retries + 1):
            try:
                resp = await self._http.request(method, path, json=payload)
                if resp.status_code >= 500 and attempt < self._max_retries:
                    last_exc = httpx.HTTPStatusError(
                        f"Server error {resp.status_code}",
                        request=resp.request,
                        response=resp,
                    )
                    logger.warning(
                        "%s %s returned %d (attempt %d/%d), retrying",
                        method, path, resp.status_code, attempt + 1, self._max_retries + 1,
                    )
                    await asyncio.sleep(2**attempt * 0.5)
                    continue
                resp.raise_for_status()
                if resp.status_code == 204 or not resp.content:
                    return None
                return resp.json()
            except httpx.TransportError as exc:
                last_exc = exc
                if attempt < self._max_retries:
                    logger.warning(
                        "%s %s failed (attempt %d/%d): %s",
                        method, path, attempt + 1, self._max_retries + 1, exc,
                    )
                    await asyncio.sleep(2**attempt * 0.5)
                    continue
                raise
        raise last_exc  # type: ignore[misc]
