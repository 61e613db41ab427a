"""Pure time-of-day helpers behind the stop and route analytics.

Nothing here touches the database or the settings object; callers pass the
service timezone and the current time explicitly.
"""

from __future__ import annotations

import math
from collections.abc import Container, Iterable, Sequence
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta, tzinfo
from typing import Optional

# ---------------------------------------------------------------------------
# Percentiles and clock conversion
# ---------------------------------------------------------------------------


def percentile(values: Sequence[float], p: float) -> Optional[float]:
    """Percentile ``p`` (0-1) with linear interpolation between order statistics.

    The rank is ``p * (n - 1)`` clamped to the list bounds. Returns ``None``
    for an empty sequence; a single value is returned unchanged.
    """
    if not values:
        return None
    ordered = sorted(values)
    idx = max(0.0, min(len(ordered) - 1, p * (len(ordered) - 1)))
    lower = math.floor(idx)
    upper = math.ceil(idx)
    if lower == upper:
        return ordered[lower]
    weight = idx - lower
    return ordered[lower] + (ordered[upper] - ordered[lower]) * weight


def time_to_minutes(value: datetime, tz: tzinfo) -> float:
    """Minutes since local midnight, seconds included as a fraction."""
    local = value.astimezone(tz)
    seconds = local.second + local.microsecond / 1_000_000
    return local.hour * 60 + local.minute + seconds / 60


def minutes_to_clock(value: float) -> str:
    """Render minutes since midnight as ``HH:MM``, rounding half up."""
    total = math.floor(value + 0.5)
    hours, minutes = divmod(total, 60)
    return f"{hours:02d}:{minutes:02d}"


# ---------------------------------------------------------------------------
# Rolling window
# ---------------------------------------------------------------------------


def local_today(now: datetime, tz: tzinfo) -> date:
    return now.astimezone(tz).date()


def window_day_keys(now: datetime, tz: tzinfo, window_days: int = 7) -> list[date]:
    """Local calendar days of the window, oldest first, ending with today."""
    today = local_today(now, tz)
    return [today - timedelta(days=offset) for offset in range(window_days - 1, -1, -1)]


def window_start(now: datetime, tz: tzinfo, window_days: int = 7) -> datetime:
    """Local midnight of the window's first day, as an aware datetime."""
    first_day = window_day_keys(now, tz, window_days)[0]
    return datetime.combine(first_day, time.min, tzinfo=tz)


# ---------------------------------------------------------------------------
# Run-order prediction
# ---------------------------------------------------------------------------


def build_predicted_times(day_values: Sequence[Sequence[float]]) -> list[float]:
    """Merge historical days positionally into one predicted run sequence.

    Run ``i`` of the prediction is the median of the ``i``-th time of every day
    that had at least ``i + 1`` runs. The result is as long as the deepest day.

    >>> build_predicted_times([[5, 20], [7, 18], [6, 22]])
    [6, 20]
    """
    if not day_values:
        return []
    sorted_days = [sorted(values) for values in day_values]
    depth = max(len(values) for values in sorted_days)

    predicted: list[float] = []
    for i in range(depth):
        samples = [values[i] for values in sorted_days if len(values) > i]
        p50 = percentile(samples, 0.5)
        if p50 is not None:
            predicted.append(p50)
    return predicted


# ---------------------------------------------------------------------------
# Day buckets
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RoutePoints:
    route_id: int
    minutes: list[float]
    predicted: bool = False


@dataclass(frozen=True)
class DaySeries:
    date: date
    is_today: bool
    points: list[RoutePoints] = field(default_factory=list)


def summarize_stop_visits(
    visits: Iterable[tuple[int, datetime]],
    known_route_ids: Container[int],
    now: datetime,
    tz: tzinfo,
    window_days: int = 7,
) -> tuple[list[DaySeries], list[int]]:
    """Bucket ``(route_id, observed_at)`` visits into the rolling window.

    Visits of routes not in ``known_route_ids`` and visits outside the window
    are ignored. Prior days contribute one sorted run sequence per route to
    that route's prediction. Today lists what was observed plus the predicted
    runs still ahead of ``now``; past predictions are dropped.

    Returns:
        The day series (empty when no visit survives the filters) and the
        route ids that appear in them, in ascending order.
    """
    day_keys = window_day_keys(now, tz, window_days)
    today = day_keys[-1]
    in_window = set(day_keys)

    by_day: dict[date, dict[int, list[float]]] = {}
    for route_id, observed_at in visits:
        if route_id not in known_route_ids:
            continue
        day = observed_at.astimezone(tz).date()
        if day not in in_window:
            continue
        by_day.setdefault(day, {}).setdefault(route_id, []).append(
            time_to_minutes(observed_at, tz)
        )

    if not by_day:
        return [], []

    history: dict[int, list[list[float]]] = {}
    for day in day_keys[:-1]:
        for route_id, minutes in by_day.get(day, {}).items():
            history.setdefault(route_id, []).append(sorted(minutes))
    predicted_by_route = {
        route_id: build_predicted_times(values) for route_id, values in history.items()
    }

    now_minutes = time_to_minutes(now, tz)
    days: list[DaySeries] = []
    for day in day_keys:
        observed = by_day.get(day, {})
        points = [
            RoutePoints(route_id=route_id, minutes=sorted(observed[route_id]))
            for route_id in sorted(observed)
        ]
        if day == today:
            for route_id in sorted(predicted_by_route):
                future = [m for m in predicted_by_route[route_id] if m > now_minutes]
                if future:
                    points.append(RoutePoints(route_id=route_id, minutes=future, predicted=True))
        days.append(DaySeries(date=day, is_today=day == today, points=points))

    route_ids = sorted({route_id for routes in by_day.values() for route_id in routes})
    return days, route_ids
