"""First-departure-of-day statistics per route."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import asdict, dataclass
from datetime import datetime, timezone, tzinfo
from typing import TYPE_CHECKING, Any, Optional

from sqlalchemy import text

from localbus_api.services.analytics.timeseries import (
    minutes_to_clock,
    percentile,
    time_to_minutes,
)

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession


@dataclass(frozen=True)
class RouteStartStats:
    samples: int
    p50: Optional[str]
    p90: Optional[str]
    p99: Optional[str]

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def summarize_route_starts(
    first_seen: Iterable[Optional[datetime]], tz: tzinfo
) -> RouteStartStats | None:
    """Percentiles of the local time a route was first seen each day."""
    values = [time_to_minutes(ts, tz) for ts in first_seen if ts is not None]
    if not values:
        return None

    def clock(p: float) -> Optional[str]:
        value = percentile(values, p)
        return None if value is None else minutes_to_clock(value)

    return RouteStartStats(
        samples=len(values),
        p50=clock(0.5),
        p90=clock(0.9),
        p99=clock(0.99),
    )


async def load_route_start_stats(
    session: AsyncSession,
    route_id: int,
    tz: tzinfo = timezone.utc,
    max_samples: int = 60,
) -> RouteStartStats | None:
    """Summarize the route's most recent daily rows, newest first."""
    result = await session.execute(
        text("""
            SELECT first_seen_at
            FROM route_daily_stats
            WHERE route_id = :route_id
            ORDER BY day DESC
            LIMIT :lim
        """),
        {"route_id": route_id, "lim": max_samples},
    )
    return summarize_route_starts((row[0] for row in result.fetchall()), tz)
