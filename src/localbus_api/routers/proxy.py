"""Pass-through access to the provider's resources.

Endpoints
---------
GET /proxy/{resource}   – provider JSON, or the last polled vehicles
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, HTTPException

from localbus_api.config import get_settings
from localbus_api.logging import get_logger
from localbus_api.services.engine import get_transit_engine
from localbus_api.services.provider.client import (
    LIVE_RESOURCE,
    RESOURCES,
    ProviderClient,
    ProviderFetchError,
)

logger = get_logger(__name__)

router = APIRouter(tags=["proxy"])


@router.get(
    "/proxy/{resource}",
    summary="Proxy a provider resource",
    description=(
        "Return a provider resource unchanged. `vehicles` is served from the "
        "last successful poll cycle when that cycle returned any vehicles."
    ),
)
async def proxy_resource(resource: str) -> Any:
    if resource not in RESOURCES:
        raise HTTPException(status_code=404, detail=f"Unknown resource: {resource}")

    if resource == LIVE_RESOURCE:
        latest = get_transit_engine().latest_vehicles
        if latest is not None and latest.vehicles:
            return {
                "fetchedAt": latest.fetched_at.isoformat(),
                "vehicles": list(latest.vehicles),
            }

    client = ProviderClient.from_settings(get_settings())
    try:
        return await client.fetch_json(resource)
    except ProviderFetchError as exc:
        logger.warning("Proxy fetch failed", resource=resource, error=str(exc))
        raise HTTPException(status_code=502, detail=str(exc)) from exc
