"""Stop and route arrival analytics endpoints.

Endpoints
---------
GET /analytics/stop/{stop_id}    – 7-day observed runs plus today's predictions
GET /analytics/route/{route_id}  – first-seen-of-day percentiles
"""

from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Any, Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from localbus_api.config import get_settings
from localbus_api.database import get_session_context
from localbus_api.logging import get_logger
from localbus_api.services.analytics.route_stats import load_route_start_stats
from localbus_api.services.analytics.stop_history import load_stop_analytics
from localbus_api.services.engine import get_transit_engine

logger = get_logger(__name__)

router = APIRouter(prefix="/analytics", tags=["analytics"])

# Plain ASCII integers only; int() alone would accept "4_2" and " 42"
_ID_PATTERN = re.compile(r"-?\d+", re.ASCII)


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class StopDetail(CamelModel):
    stop_id: int
    stop_name: Optional[str] = None
    stop_lat: Optional[float] = None
    stop_lon: Optional[float] = None
    location_type: Optional[int] = None
    stop_code: Optional[str] = None


class RouteSummary(CamelModel):
    route_id: int
    route_short_name: Optional[str] = None
    route_long_name: Optional[str] = None
    route_color: Optional[str] = None


class DayPoint(CamelModel):
    route_id: int
    minutes: list[float]
    predicted: bool


class DayEntry(CamelModel):
    date: str
    is_today: bool
    points: list[DayPoint]


class StopAnalyticsResponse(CamelModel):
    stop: StopDetail
    routes: list[RouteSummary]
    days: list[DayEntry]


class RouteStats(CamelModel):
    samples: int
    p50: Optional[str] = None
    p90: Optional[str] = None
    p99: Optional[str] = None


class RouteAnalyticsResponse(CamelModel):
    route_id: int
    stats: Optional[RouteStats] = None


def _parse_id(raw: str, kind: str) -> int:
    """Path ids arrive as strings so a non-numeric id is a 400, not a 422."""
    if not _ID_PATTERN.fullmatch(raw):
        raise HTTPException(status_code=400, detail=f"Invalid {kind} id")
    return int(raw)


# ---------------------------------------------------------------------------
# GET /analytics/stop/{stop_id}
# ---------------------------------------------------------------------------


@router.get(
    "/stop/{stop_id}",
    response_model=StopAnalyticsResponse,
    summary="Observed and predicted arrivals at a stop",
)
async def get_stop_analytics(stop_id: str) -> dict[str, Any]:
    parsed_id = _parse_id(stop_id, "stop")
    settings = get_settings()
    engine = get_transit_engine()

    async with get_session_context() as session:
        analytics = await load_stop_analytics(
            session,
            parsed_id,
            engine.reference,
            now=datetime.now(timezone.utc),
            tz=settings.service_tz,
            window_days=settings.analytics_window_days,
        )

    if analytics is None:
        raise HTTPException(status_code=404, detail="Stop not found")

    return {
        "stop": analytics.stop,
        "routes": analytics.routes,
        "days": [
            {
                "date": day.date.isoformat(),
                "is_today": day.is_today,
                "points": [
                    {
                        "route_id": point.route_id,
                        "minutes": point.minutes,
                        "predicted": point.predicted,
                    }
                    for point in day.points
                ],
            }
            for day in analytics.days
        ],
    }


# ---------------------------------------------------------------------------
# GET /analytics/route/{route_id}
# ---------------------------------------------------------------------------


@router.get(
    "/route/{route_id}",
    response_model=RouteAnalyticsResponse,
    summary="First-seen-of-day percentiles for a route",
)
async def get_route_analytics(route_id: str) -> dict[str, Any]:
    parsed_id = _parse_id(route_id, "route")
    settings = get_settings()

    async with get_session_context() as session:
        stats = await load_route_start_stats(
            session,
            parsed_id,
            tz=settings.service_tz,
            max_samples=settings.route_stats_max_samples,
        )

    return {"route_id": parsed_id, "stats": stats.to_dict() if stats else None}
