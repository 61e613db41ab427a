"""Geofence stop-visit detection with entry/exit hysteresis.

Each (vehicle, stop) pair is either outside or inside the stop's zone. A pair
goes inside when the vehicle comes within the entry radius and back outside
only once it is farther than the (larger) exit radius, so GPS jitter around a
single boundary cannot make it flap. A visit is recorded when the pair goes
back outside: the event's time and position describe the departure.

Only the stops of the vehicle's current trip are checked, and only when that
trip belongs to the route the vehicle reports.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Any, Iterable, Optional

from localbus_api.logging import get_logger

if TYPE_CHECKING:
    from localbus_api.services.engine import ContainmentState
    from localbus_api.services.provider.normalizer import VehiclePosition
    from localbus_api.services.reference.cache import ReferenceCache

logger = get_logger(__name__)

EARTH_RADIUS_M = 6_371_000.0
DEFAULT_ENTRY_RADIUS_M = 50.0
DEFAULT_EXIT_RADIUS_M = 60.0


def haversine_meters(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance in meters between two WGS84 points."""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_M * c


@dataclass(frozen=True)
class StopVisitEvent:
    """A vehicle leaving a stop's zone."""

    stop_id: int
    route_id: Optional[int]
    trip_id: Optional[str]
    vehicle_id: int
    observed_at: datetime
    fetched_at: datetime
    latitude: float
    longitude: float
    distance_meters: float

    def to_row(self) -> dict[str, Any]:
        return {
            "stop_id": self.stop_id,
            "route_id": self.route_id,
            "trip_id": self.trip_id,
            "vehicle_id": self.vehicle_id,
            "observed_at": self.observed_at,
            "fetched_at": self.fetched_at,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "distance_meters": self.distance_meters,
        }


@dataclass(frozen=True)
class DetectionResult:
    events: list[StopVisitEvent]
    containment: ContainmentState
    entered: int = 0
    vehicles_checked: int = 0


def detect_stop_visits(
    vehicles: Iterable[VehiclePosition],
    reference: ReferenceCache,
    containment: ContainmentState,
    fetched_at: datetime,
    entry_radius_m: float = DEFAULT_ENTRY_RADIUS_M,
    exit_radius_m: float = DEFAULT_EXIT_RADIUS_M,
) -> DetectionResult:
    """Run one poll cycle's positions through the geofence state machine.

    Pure: ``containment`` is not modified, the updated set is returned on the
    result. Pairs for vehicles absent from this cycle keep their state. A
    vehicle checked on a trip drops its pairs for stops that trip does not
    serve, without an event, so the set stays bounded by the stops of each
    vehicle's latest trip.
    """
    inside = set(containment)
    stops_inside_by_vehicle: dict[Any, set[int]] = {}
    for vehicle_id, stop_id in containment:
        stops_inside_by_vehicle.setdefault(vehicle_id, set()).add(stop_id)
    events: list[StopVisitEvent] = []
    entered = 0
    checked = 0

    for vehicle in vehicles:
        if not vehicle.has_position or vehicle.route_id is None or not vehicle.trip_id:
            continue
        trip = reference.trips.get(vehicle.trip_id)
        stop_ids = reference.stops_for_trip(vehicle.trip_id)
        if trip is None or not stop_ids:
            continue
        if trip.route_id != vehicle.route_id:
            continue

        checked += 1
        for stale_stop in stops_inside_by_vehicle.get(vehicle.vehicle_id, set()) - stop_ids:
            inside.discard((vehicle.vehicle_id, stale_stop))

        lat = vehicle.latitude
        lon = vehicle.longitude
        observed_at = vehicle.reported_at or fetched_at

        for stop_id in stop_ids:
            stop = reference.stops.get(stop_id)
            if stop is None:
                continue
            key = (vehicle.vehicle_id, stop_id)
            distance = haversine_meters(lat, lon, stop.lat, stop.lon)

            if key in inside:
                if distance > exit_radius_m:
                    inside.discard(key)
                    logger.debug(
                        "Vehicle exited stop",
                        vehicle_id=vehicle.vehicle_id,
                        route_id=vehicle.route_id,
                        stop_id=stop_id,
                        stop_name=stop.name,
                        distance_m=round(distance, 1),
                    )
                    events.append(
                        StopVisitEvent(
                            stop_id=stop_id,
                            route_id=vehicle.route_id,
                            trip_id=vehicle.trip_id,
                            vehicle_id=vehicle.vehicle_id,
                            observed_at=observed_at,
                            fetched_at=fetched_at,
                            latitude=lat,
                            longitude=lon,
                            distance_meters=distance,
                        )
                    )
            elif distance <= entry_radius_m:
                inside.add(key)
                entered += 1
                logger.debug(
                    "Vehicle entered stop",
                    vehicle_id=vehicle.vehicle_id,
                    route_id=vehicle.route_id,
                    stop_id=stop_id,
                    stop_name=stop.name,
                )

    return DetectionResult(
        events=events,
        containment=frozenset(inside),
        entered=entered,
        vehicles_checked=checked,
    )
