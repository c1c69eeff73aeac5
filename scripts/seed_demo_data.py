#!/usr/bin/env python3
"""Seed demo prospects into a running Prospector backend.

Usage:
    # Start the backend first:
    uvicorn prospector.web.app:create_app --factory --port 8080

    # Seed demo data:
    python3 scripts/seed_demo_data.py

    # Seed against a different host:
    python3 scripts/seed_demo_data.py --base-url http://localhost:9000

Data goes through the public API, so it is validated exactly like data a
broker would create from the map:
    - 5 prospects (points and polygons) across pipeline stages
    - 1 listing workspace with 3 linked prospects
    - a few follow-up edits sent as partial updates
"""

from __future__ import annotations

import argparse
import sys
from datetime import datetime, timezone

import httpx

DEFAULT_BASE_URL = "http://localhost:8080"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def api(
    client: httpx.Client,
    method: str,
    path: str,
    *,
    json: dict | None = None,
) -> dict | list | None:
    """Make an API call and return parsed JSON, or None on failure."""
    resp = client.request(method, path, json=json)
    if resp.status_code >= 400:
        print(f"  FAILED {method} {path} -> {resp.status_code}: {resp.text[:200]}")
        return None
    if resp.headers.get("content-type", "").startswith("application/json"):
        return resp.json()
    return None


def section(title: str) -> None:
    print(f"\n{'='*60}")
    print(f"  {title}")
    print(f"{'='*60}")


def square(lng: float, lat: float, size: float = 0.001) -> list[list[float]]:
    return [
        [lng, lat],
        [lng + size, lat],
        [lng + size, lat + size],
        [lng, lat + size],
        [lng, lat],
    ]


# ---------------------------------------------------------------------------
# Prospects
# ---------------------------------------------------------------------------

DEMO_PROSPECTS = [
    {
        "name": "123 Main St",
        "status": "prospect",
        "notes": "Two-story flex building, owner-occupied.",
        "geometry": {"type": "Point", "coordinates": [-97.7431, 30.2672]},
        "contactName": "Dana Ruiz",
        "contactCompany": "Ruiz Holdings",
        "followUpTimeframe": "3_month",
    },
    {
        "name": "Oak Ave Yard",
        "status": "contacted",
        "geometry": {"type": "Polygon", "coordinates": [square(-97.7500, 30.2700)]},
        "size": "10,000 - 25,000 SF",
    },
    {
        "name": "789 Industrial Blvd",
        "status": "listing",
        "geometry": {"type": "Point", "coordinates": [-97.7000, 30.2500]},
    },
    {
        "name": "Riverside Retail Pad",
        "status": "client",
        "geometry": {"type": "Polygon", "coordinates": [square(-97.7300, 30.2550, 0.002)]},
        "contactEmail": "leasing@riverside.example",
    },
    {
        "name": "Cedar Lot",
        "status": "no_go",
        "notes": "Owner not selling.",
        "geometry": {"type": "Point", "coordinates": [-97.7600, 30.2800]},
    },
]


def seed_prospects(client: httpx.Client) -> list[dict]:
    section("Prospects")
    created = []
    for payload in DEMO_PROSPECTS:
        result = api(client, "POST", "/api/prospects", json=payload)
        if result:
            created.append(result)
            print(f"  {result['id'][:8]}  {result['status']:<10} {result['name']}")
    return created


def seed_listing(client: httpx.Client, prospects: list[dict]) -> None:
    section("Listing workspace")
    listing = api(client, "POST", "/api/listings", json={"name": "East Side Industrial"})
    if not listing:
        return
    for prospect in prospects[1:4]:
        api(
            client,
            "POST",
            f"/api/listings/{listing['id']}/prospects",
            json={"prospectId": prospect["id"]},
        )
    linked = api(client, "GET", f"/api/listings/{listing['id']}/prospects") or []
    print(f"  {listing['name']}: {len(linked)} linked prospects")


def seed_edits(client: httpx.Client, prospects: list[dict]) -> None:
    section("Follow-up edits")
    now = datetime.now(timezone.utc).isoformat()
    for prospect in prospects[:2]:
        result = api(
            client,
            "PATCH",
            f"/api/prospects/{prospect['id']}",
            json={"lastContactDate": now, "notes": f"{prospect.get('notes', '')} Called owner.".strip()},
        )
        if result:
            print(f"  Updated {result['name']}")


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Seed demo prospects into a running Prospector backend"
    )
    parser.add_argument(
        "--base-url",
        default=DEFAULT_BASE_URL,
        help=f"Backend base URL (default: {DEFAULT_BASE_URL})",
    )
    parser.add_argument(
        "--skip-edits",
        action="store_true",
        help="Only create prospects and the listing",
    )
    args = parser.parse_args()

    print("Prospector Demo Data Seeder")
    print(f"Target: {args.base_url}")
    print(f"Time:   {datetime.now(timezone.utc).isoformat()}")

    with httpx.Client(base_url=args.base_url, timeout=30.0) as client:
        try:
            health = api(client, "GET", "/api/health")
        except httpx.ConnectError:
            health = None
        if not health:
            print(f"\nERROR: Cannot reach {args.base_url}. Start the backend first:")
            print("  uvicorn prospector.web.app:create_app --factory --port 8080")
            sys.exit(1)

        print(f"Backend: {health.get('status', 'unknown')} (v{health.get('version', '?')})")

        prospects = seed_prospects(client)
        seed_listing(client, prospects)
        if not args.skip_edits:
            seed_edits(client, prospects)

        section("Done")
        total = api(client, "GET", "/api/prospects") or []
        print(f"  Backend now holds {len(total)} prospects.")
        print()


if __name__ == "__main__":
    main()
