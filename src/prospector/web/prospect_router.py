"""FastAPI router for prospect endpoints."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, HTTPException, Request, Response
from pydantic import ValidationError

from prospector.core.types import ProspectCreate, patch_from_wire
from prospector.prospects.store import ProspectStore

router = APIRouter()


def _store(request: Request) -> ProspectStore:
    store = getattr(request.app.state, "prospect_store", None)
    if store is None:
        raise HTTPException(status_code=503, detail="Prospect store not available")
    return store


@router.get("/api/prospects")
async def list_prospects(request: Request) -> list[dict[str, Any]]:
    """List all prospects."""
    return [p.to_wire() for p in _store(request).list_prospects()]


@router.post("/api/prospects", status_code=201)
async def create_prospect(body: ProspectCreate, request: Request) -> dict[str, Any]:
    """Create a prospect; the id is assigned here."""
    return _store(request).create_prospect(body).to_wire()


@router.get("/api/prospects/{prospect_id}")
async def get_prospect(prospect_id: str, request: Request) -> dict[str, Any]:
    prospect = _store(request).get_prospect(prospect_id)
    if prospect is None:
        raise HTTPException(status_code=404, detail=f"Prospect {prospect_id!r} not found")
    return prospect.to_wire()


@router.patch("/api/prospects/{prospect_id}")
async def update_prospect(
    prospect_id: str, body: dict[str, Any], request: Request
) -> dict[str, Any]:
    """Apply a partial update and return the full canonical prospect."""
    store = _store(request)
    try:
        patch = patch_from_wire(body)
        updated = store.update_prospect(prospect_id, patch)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Prospect {prospect_id!r} not found")
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=e.errors(include_url=False))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return updated.to_wire()


@router.delete("/api/prospects/{prospect_id}", status_code=204)
async def delete_prospect(prospect_id: str, request: Request) -> Response:
    try:
        _store(request).delete_prospect(prospect_id)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Prospect {prospect_id!r} not found")
    return Response(status_code=204)
