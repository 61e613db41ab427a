"""Immutable in-memory snapshot of the provider's reference network.

A cache is built in one go from normalized rows and never mutated
afterwards. Refreshes build a new instance and swap it in, so a reader
holding a reference always sees a consistent route/trip/stop graph.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import Any, Optional


@dataclass(frozen=True)
class RouteInfo:
    route_id: int
    short_name: str
    long_name: str
    color: str
    agency_id: int = 0
    route_type: int = 0
    description: str = ""


@dataclass(frozen=True)
class TripInfo:
    trip_id: str
    route_id: int
    direction_id: int = 0
    headsign: str = ""
    block_id: int = 0
    shape_id: str = ""


@dataclass(frozen=True)
class StopInfo:
    stop_id: int
    name: str
    lat: float
    lon: float
    location_type: int = 0
    code: str = ""


def _empty() -> Mapping[Any, Any]:
    return MappingProxyType({})


@dataclass(frozen=True)
class ReferenceCache:
    """Route, trip and stop lookups plus the trip -> stop-id-set mapping."""

    routes: Mapping[int, RouteInfo] = field(default_factory=_empty)
    trips: Mapping[str, TripInfo] = field(default_factory=_empty)
    stops: Mapping[int, StopInfo] = field(default_factory=_empty)
    stop_ids_by_trip: Mapping[str, frozenset[int]] = field(default_factory=_empty)
    built_at: Optional[datetime] = None

    @classmethod
    def empty(cls) -> ReferenceCache:
        return cls()

    @property
    def is_empty(self) -> bool:
        return not self.stops

    def stops_for_trip(self, trip_id: str) -> frozenset[int]:
        return self.stop_ids_by_trip.get(trip_id, frozenset())

    def summary(self) -> dict[str, Any]:
        return {
            "routes": len(self.routes),
            "trips": len(self.trips),
            "stops": len(self.stops),
            "trips_with_stops": len(self.stop_ids_by_trip),
            "built_at": self.built_at.isoformat() if self.built_at else None,
        }


def build_reference_cache(
    routes: Iterable[Mapping[str, Any]],
    trips: Iterable[Mapping[str, Any]],
    stops: Iterable[Mapping[str, Any]],
    stop_times: Iterable[Mapping[str, Any]],
    built_at: Optional[datetime] = None,
) -> ReferenceCache:
    """Build a fresh cache from normalized rows (or database rows as mappings).

    Stop-time rows pointing at a stop that is not in ``stops`` are dropped, so
    the trip -> stop mapping never references an identifier the cache cannot
    resolve.
    """
    route_map = {
        int(r["route_id"]): RouteInfo(
            route_id=int(r["route_id"]),
            short_name=r.get("route_short_name") or "",
            long_name=r.get("route_long_name") or "",
            color=r.get("route_color") or "",
            agency_id=r.get("agency_id") or 0,
            route_type=r.get("route_type") or 0,
            description=r.get("route_desc") or "",
        )
        for r in routes
    }
    trip_map = {
        str(t["trip_id"]): TripInfo(
            trip_id=str(t["trip_id"]),
            route_id=int(t["route_id"]),
            direction_id=t.get("direction_id") or 0,
            headsign=t.get("trip_headsign") or "",
            block_id=t.get("block_id") or 0,
            shape_id=t.get("shape_id") or "",
        )
        for t in trips
    }
    stop_map = {
        int(s["stop_id"]): StopInfo(
            stop_id=int(s["stop_id"]),
            name=s.get("stop_name") or "",
            lat=float(s["stop_lat"]),
            lon=float(s["stop_lon"]),
            location_type=s.get("location_type") or 0,
            code=s.get("stop_code") or "",
        )
        for s in stops
    }

    stop_sets: dict[str, set[int]] = {}
    for st in stop_times:
        stop_id = int(st["stop_id"])
        if stop_id not in stop_map:
            continue
        stop_sets.setdefault(str(st["trip_id"]), set()).add(stop_id)

    return ReferenceCache(
        routes=MappingProxyType(route_map),
        trips=MappingProxyType(trip_map),
        stops=MappingProxyType(stop_map),
        stop_ids_by_trip=MappingProxyType(
            {trip_id: frozenset(ids) for trip_id, ids in stop_sets.items()}
        ),
        built_at=built_at,
    )
