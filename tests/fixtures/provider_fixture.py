"""Provider payload builders - a two-route network around a single corridor."""

from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import Any

from localbus_api.services.detection.geofence import EARTH_RADIUS_M
from localbus_api.services.provider.normalizer import VehiclePosition
from localbus_api.services.reference.cache import ReferenceCache, build_reference_cache

STOP_42 = (45.4215, -75.6972)
STOP_43 = (45.4300, -75.6972)

ROUTES = [
    {
        "route_id": 7,
        "agency_id": 1,
        "route_short_name": "7",
        "route_long_name": "Downtown / Airport",
        "route_color": "FF0000",
        "route_type": 3,
        "route_desc": "",
    },
    {
        "route_id": 12,
        "agency_id": 1,
        "route_short_name": "12",
        "route_long_name": "Crosstown",
        "route_color": "0000FF",
        "route_type": 3,
        "route_desc": "",
    },
]

TRIPS = [
    {
        "trip_id": "T7-1",
        "route_id": 7,
        "trip_headsign": "Airport",
        "direction_id": 0,
        "block_id": 701,
        "shape_id": "S7",
    },
    {
        "trip_id": "T12-1",
        "route_id": 12,
        "trip_headsign": "Crosstown",
        "direction_id": 1,
        "block_id": 1201,
        "shape_id": "S12",
    },
]

STOPS = [
    {
        "stop_id": 42,
        "stop_name": "Main & 1st",
        "stop_lat": STOP_42[0],
        "stop_lon": STOP_42[1],
        "location_type": 0,
        "stop_code": "0042",
    },
    {
        "stop_id": 43,
        "stop_name": "Main & 9th",
        "stop_lat": STOP_43[0],
        "stop_lon": STOP_43[1],
        "location_type": 0,
        "stop_code": "0043",
    },
]

STOP_TIMES = [
    {"trip_id": "T7-1", "stop_id": 42, "stop_sequence": 1, "arrival_time": "08:00:00"},
    {"trip_id": "T7-1", "stop_id": 43, "stop_sequence": 2, "arrival_time": "08:06:00"},
    {"trip_id": "T12-1", "stop_id": 43, "stop_sequence": 1, "arrival_time": "09:00:00"},
]

SHAPES = [
    {"shape_id": "S7", "shape_pt_sequence": 1, "shape_pt_lat": 45.42, "shape_pt_lon": -75.69},
    {"shape_id": "S7", "shape_pt_sequence": 2, "shape_pt_lat": 45.43, "shape_pt_lon": -75.69},
]


def build_reference() -> ReferenceCache:
    """Cache for the fixture network."""
    return build_reference_cache(ROUTES, TRIPS, STOPS, STOP_TIMES)


def north_of(point: tuple[float, float], meters: float) -> tuple[float, float]:
    """Point ``meters`` due north of ``point`` on the haversine sphere."""
    lat, lon = point
    return lat + math.degrees(meters / EARTH_RADIUS_M), lon


def vehicle_at(
    point: tuple[float, float],
    vehicle_id: int = 501,
    route_id: int | None = 7,
    trip_id: str | None = "T7-1",
    reported_at: datetime | None = None,
) -> VehiclePosition:
    """Normalized vehicle at ``point``."""
    return VehiclePosition(
        vehicle_id=vehicle_id,
        label=str(vehicle_id),
        latitude=point[0],
        longitude=point[1],
        reported_at=reported_at,
        speed=8.5,
        route_id=route_id,
        trip_id=trip_id,
    )


def raw_vehicle(
    point: tuple[float, float],
    vehicle_id: Any = 501,
    route_id: Any = 7,
    trip_id: Any = "T7-1",
    timestamp: str | None = "2026-10-17T12:00:00Z",
) -> dict[str, Any]:
    """Vehicle as the live endpoint returns it."""
    return {
        "id": vehicle_id,
        "label": str(vehicle_id),
        "latitude": point[0],
        "longitude": point[1],
        "timestamp": timestamp,
        "speed": 8.5,
        "route_id": route_id,
        "trip_id": trip_id,
        "vehicle_type": 3,
        "bike_accessible": "yes",
        "wheelchair_accessible": "yes",
    }


FETCHED_AT = datetime(2026, 10, 17, 12, 0, 5, tzinfo=timezone.utc)
