"""GTFS-RT relay.

Forwards the upstream trip-updates JSON untouched. One upstream call per
request, no cache and no retry: an upstream failure is that request's error.
"""

import logging

import httpx
from fastapi import APIRouter, HTTPException, Request

from core.config import settings
from core.rate_limiter import limiter, RateLimits

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Realtime"])


async def fetch_trip_updates(url: str) -> dict:
    async with httpx.AsyncClient(timeout=settings.HTTP_TIMEOUT_SECONDS, follow_redirects=True) as client:
        response = await client.get(url)
        response.raise_for_status()
        return response.json()


def count_route_entities(feed: dict, route_id: str) -> int:
    """Number of trip updates in a GTFS-RT JSON feed that belong to route_id."""
    return sum(
        1
        for entity in feed.get("entity") or []
        if ((entity.get("tripUpdate") or {}).get("trip") or {}).get("routeId") == route_id
    )


@router.get("/metro")
@limiter.limit(RateLimits.REALTIME_RELAY)
async def get_realtime_feed(request: Request):
    """Relay the realtime trip-updates feed."""
    try:
        feed = await fetch_trip_updates(settings.GTFS_RT_URL)
    except (httpx.HTTPError, ValueError) as e:
        logger.error(f"GTFS-RT upstream error: {e}")
        raise HTTPException(status_code=502, detail="Error fetching realtime data")

    logger.debug(
        f"GTFS-RT: {len(feed.get('entity') or [])} entities, "
        f"{count_route_entities(feed, settings.TARGET_ROUTE_ID)} on {settings.TARGET_ROUTE_ID}"
    )
    return feed
