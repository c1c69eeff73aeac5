"""FastAPI router for listing (workspace) endpoints."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel, Field

from prospector.prospects.store import ProspectStore

router = APIRouter()


class CreateListingRequest(BaseModel):
    name: str


class LinkProspectRequest(BaseModel):
    prospect_id: str = Field(alias="prospectId")


def _store(request: Request) -> ProspectStore:
    store = getattr(request.app.state, "prospect_store", None)
    if store is None:
        raise HTTPException(status_code=503, detail="Prospect store not available")
    return store


@router.get("/api/listings")
async def list_listings(request: Request) -> list[dict[str, Any]]:
    return [
        listing.model_dump(mode="json", by_alias=True)
        for listing in _store(request).list_listings()
    ]


@router.post("/api/listings", status_code=201)
async def create_listing(body: CreateListingRequest, request: Request) -> dict[str, Any]:
    listing = _store(request).create_listing(body.name)
    return listing.model_dump(mode="json", by_alias=True)


@router.get("/api/listings/{listing_id}/prospects")
async def list_listing_prospects(listing_id: str, request: Request) -> list[dict[str, Any]]:
    try:
        prospects = _store(request).listing_prospects(listing_id)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Listing {listing_id!r} not found")
    return [p.to_wire() for p in prospects]


@router.post("/api/listings/{listing_id}/prospects")
async def link_prospect(
    listing_id: str, body: LinkProspectRequest, request: Request
) -> dict[str, Any]:
    """Link an existing prospect to a listing."""
    try:
        listing = _store(request).link(listing_id, body.prospect_id)
    except KeyError as e:
        raise HTTPException(status_code=404, detail=e.args[0])
    return listing.model_dump(mode="json", by_alias=True)


@router.delete("/api/listings/{listing_id}/prospects/{prospect_id}")
async def unlink_prospect(listing_id: str, prospect_id: str, request: Request) -> dict[str, Any]:
    try:
        listing = _store(request).unlink(listing_id, prospect_id)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Listing {listing_id!r} not found")
    return listing.model_dump(mode="json", by_alias=True)
