"""FastAPI application serving the prospects REST API.

This is the reference backend the remote persistence backend talks to:

    uvicorn prospector.web.app:create_app --factory --port 8080
"""

from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from prospector.core.config import Settings
from prospector.prospects.store import ProspectStore
from prospector.web.listing_router import router as listing_router
from prospector.web.prospect_router import router as prospect_router

logger = logging.getLogger(__name__)


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    service: str
    version: str = "0.1.0"
    prospects: int = 0


def create_app(
    settings: Settings | None = None,
    store: ProspectStore | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Uses the factory pattern so tests can create isolated app instances
    with their own stores.

    Args:
        settings: Application settings. Defaults to Settings().
        store: Optional pre-built ProspectStore.

    Returns:
        A configured FastAPI instance.
    """
    if settings is None:
        settings = Settings()

    logging.getLogger("prospector").setLevel(settings.log_level.upper())

    app = FastAPI(
        title="Prospector",
        description="Prospect, listing and map geometry API",
        version="0.1.0",
    )

    # CORS for development
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    if store is None:
        store = ProspectStore(data_path=settings.server.data_path)
        if settings.server.fixtures_path:
            loaded = store.load_fixtures(settings.server.fixtures_path)
            logger.info("Seeded %d prospects from %s", loaded, settings.server.fixtures_path)

    app.state.settings = settings
    app.state.prospect_store = store

    app.include_router(prospect_router)
    app.include_router(listing_router)

    @app.get("/api/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse(
            status="ok",
            service="prospector",
            prospects=store.prospect_count,
        )

    return app
