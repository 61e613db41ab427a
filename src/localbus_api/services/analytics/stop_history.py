"""Rolling observed/predicted arrival view for a single stop."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone, tzinfo
from typing import TYPE_CHECKING, Any

from sqlalchemy import text

from localbus_api.logging import get_logger
from localbus_api.services.analytics.timeseries import (
    DaySeries,
    summarize_stop_visits,
    window_start,
)

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from localbus_api.services.reference.cache import ReferenceCache

logger = get_logger(__name__)


@dataclass(frozen=True)
class StopAnalytics:
    stop: dict[str, Any]
    routes: list[dict[str, Any]]
    days: list[DaySeries]


def describe_routes(route_ids: list[int], reference: ReferenceCache) -> list[dict[str, Any]]:
    """Route metadata for display, ordered by short name (or id when unnamed)."""
    routes: list[dict[str, Any]] = []
    for route_id in route_ids:
        info = reference.routes.get(route_id)
        if info is None:
            routes.append({"route_id": route_id})
            continue
        routes.append(
            {
                "route_id": route_id,
                "route_short_name": info.short_name or None,
                "route_long_name": info.long_name or None,
                "route_color": info.color or None,
            }
        )
    routes.sort(key=lambda r: r.get("route_short_name") or str(r["route_id"]))
    return routes


async def load_stop_analytics(
    session: AsyncSession,
    stop_id: int,
    reference: ReferenceCache,
    now: datetime | None = None,
    tz: tzinfo = timezone.utc,
    window_days: int = 7,
) -> StopAnalytics | None:
    """Build the stop's window of observed runs and today's predictions.

    Returns ``None`` when the stop does not exist. Visits whose route is no
    longer in ``reference`` are left out of both the days and the route list.
    """
    now = now or datetime.now(timezone.utc)

    stop_result = await session.execute(
        text(
            "SELECT stop_id, stop_name, stop_lat, stop_lon, location_type, stop_code "
            "FROM stops WHERE stop_id = :stop_id LIMIT 1"
        ),
        {"stop_id": stop_id},
    )
    stop_row = stop_result.mappings().first()
    if stop_row is None:
        return None

    cutoff = window_start(now, tz, window_days)
    visit_result = await session.execute(
        text("""
            SELECT route_id, observed_at
            FROM stop_visits
            WHERE stop_id = :stop_id
              AND observed_at >= :cutoff
              AND route_id IS NOT NULL
        """),
        {"stop_id": stop_id, "cutoff": cutoff},
    )
    visits = [(row[0], row[1]) for row in visit_result.fetchall()]

    days, route_ids = summarize_stop_visits(
        visits, reference.routes, now, tz, window_days=window_days
    )
    logger.debug(
        "Stop analytics computed",
        stop_id=stop_id,
        visits=len(visits),
        routes=len(route_ids),
    )
    return StopAnalytics(
        stop=dict(stop_row),
        routes=describe_routes(route_ids, reference),
        days=days,
    )
