"""Stop and route arrival-time analytics."""

from localbus_api.services.analytics.route_stats import (
    RouteStartStats,
    load_route_start_stats,
    summarize_route_starts,
)
from localbus_api.services.analytics.stop_history import StopAnalytics, load_stop_analytics
from localbus_api.services.analytics.timeseries import (
    DaySeries,
    RoutePoints,
    build_predicted_times,
    minutes_to_clock,
    percentile,
    summarize_stop_visits,
    time_to_minutes,
    window_day_keys,
)

__all__ = [
    "DaySeries",
    "RoutePoints",
    "RouteStartStats",
    "StopAnalytics",
    "build_predicted_times",
    "load_route_start_stats",
    "load_stop_analytics",
    "minutes_to_clock",
    "percentile",
    "summarize_route_starts",
    "summarize_stop_visits",
    "time_to_minutes",
    "window_day_keys",
]
