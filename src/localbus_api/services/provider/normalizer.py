"""Provider payload normalizer - cleans and converts raw JSON rows."""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional

from localbus_api.logging import get_logger

logger = get_logger(__name__)


class NormalizationError(Exception):
    """Raised when a row cannot be normalized."""


@dataclass(frozen=True)
class VehiclePosition:
    """One vehicle as reported by a single poll of the live endpoint."""

    vehicle_id: int
    label: Optional[str]
    latitude: Optional[float]
    longitude: Optional[float]
    reported_at: Optional[datetime]
    speed: Optional[float]
    route_id: Optional[int]
    trip_id: Optional[str]
    vehicle_type: Optional[int] = None
    bike_accessible: Optional[str] = None
    wheelchair_accessible: Optional[str] = None

    @property
    def has_position(self) -> bool:
        return self.latitude is not None and self.longitude is not None

    def to_snapshot_row(self, fetched_at: datetime) -> dict[str, Any]:
        return {
            "fetched_at": fetched_at,
            "vehicle_id": self.vehicle_id,
            "label": self.label,
            "route_id": self.route_id,
            "trip_id": self.trip_id,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "vehicle_timestamp": self.reported_at,
            "speed": self.speed,
            "vehicle_type": self.vehicle_type,
            "bike_accessible": self.bike_accessible,
            "wheelchair_accessible": self.wheelchair_accessible,
        }


class ProviderNormalizer:
    """Normalizes raw provider rows into typed values and database-ready dicts."""

    @staticmethod
    def normalize_vehicle(row: dict[str, Any]) -> VehiclePosition:
        """Normalize one element of the ``vehicles`` payload.

        Only the vehicle id is mandatory. Anything else that is missing or
        malformed becomes ``None`` and the detector decides what to skip.

        Raises:
            NormalizationError: If the vehicle id is missing or not an integer.
        """
        vehicle_id = _opt_int(row.get("id"))
        if vehicle_id is None:
            raise NormalizationError(f"Missing or invalid vehicle id: {row.get('id')!r}")

        return VehiclePosition(
            vehicle_id=vehicle_id,
            label=_opt_str(row.get("label")),
            latitude=_opt_float(row.get("latitude")),
            longitude=_opt_float(row.get("longitude")),
            reported_at=_opt_datetime(row.get("timestamp")),
            speed=_opt_float(row.get("speed")),
            route_id=_opt_int(row.get("route_id")),
            trip_id=_opt_str(row.get("trip_id")),
            vehicle_type=_opt_int(row.get("vehicle_type")),
            bike_accessible=_opt_str(row.get("bike_accessible")),
            wheelchair_accessible=_opt_str(row.get("wheelchair_accessible")),
        )

    @staticmethod
    def normalize_route(row: dict[str, Any]) -> dict[str, Any]:
        """Normalize a ``routes`` row.

        Raises:
            NormalizationError: If route_id is missing or not an integer.
        """
        route_id = _require_int(row, "route_id")
        return {
            "route_id": route_id,
            "agency_id": _opt_int(row.get("agency_id")) or 0,
            "route_short_name": _clean_str(row.get("route_short_name")),
            "route_long_name": _clean_str(row.get("route_long_name")),
            "route_color": _clean_str(row.get("route_color")),
            "route_type": _opt_int(row.get("route_type")) or 0,
            "route_desc": _clean_str(row.get("route_desc")),
        }

    @staticmethod
    def normalize_trip(row: dict[str, Any]) -> dict[str, Any]:
        """Normalize a ``trips`` row.

        Raises:
            NormalizationError: If trip_id or route_id is missing.
        """
        trip_id = _clean_str(row.get("trip_id"))
        if not trip_id:
            raise NormalizationError("Missing trip_id")
        return {
            "trip_id": trip_id,
            "route_id": _require_int(row, "route_id"),
            "trip_headsign": _clean_str(row.get("trip_headsign")),
            "direction_id": _opt_int(row.get("direction_id")) or 0,
            "block_id": _opt_int(row.get("block_id")) or 0,
            "shape_id": _clean_str(row.get("shape_id")),
        }

    @staticmethod
    def normalize_stop(row: dict[str, Any]) -> dict[str, Any]:
        """Normalize a ``stops`` row.

        Raises:
            NormalizationError: If stop_id or the coordinates are invalid.
        """
        stop_id = _require_int(row, "stop_id")
        lat = _opt_float(row.get("stop_lat"))
        lon = _opt_float(row.get("stop_lon"))
        if lat is None or lon is None:
            raise NormalizationError(
                f"Invalid lat/lon for stop_id={stop_id}: "
                f"lat={row.get('stop_lat')!r}, lon={row.get('stop_lon')!r}"
            )
        return {
            "stop_id": stop_id,
            "stop_name": _clean_str(row.get("stop_name")),
            "stop_lat": lat,
            "stop_lon": lon,
            "location_type": _opt_int(row.get("location_type")) or 0,
            "stop_code": _clean_str(row.get("stop_code")),
        }

    @staticmethod
    def normalize_stop_time(row: dict[str, Any]) -> dict[str, Any]:
        """Normalize a ``stop_times`` row.

        Raises:
            NormalizationError: If trip_id, stop_id or stop_sequence is invalid.
        """
        trip_id = _clean_str(row.get("trip_id"))
        if not trip_id:
            raise NormalizationError("Missing trip_id")
        return {
            "trip_id": trip_id,
            "stop_id": _require_int(row, "stop_id"),
            "stop_sequence": _require_int(row, "stop_sequence"),
            "arrival_time": _opt_str(row.get("arrival_time")),
            "departure_time": _opt_str(row.get("departure_time")),
            "stop_headsign": _opt_str(row.get("stop_headsign")),
            "pickup_type": _opt_int(row.get("pickup_type")),
            "drop_off_type": _opt_int(row.get("drop_off_type")),
            "shape_dist_traveled": _opt_float(row.get("shape_dist_traveled")),
            "timepoint": _opt_int(row.get("timepoint")),
        }

    @staticmethod
    def normalize_shape_point(row: dict[str, Any]) -> dict[str, Any]:
        """Normalize a ``shapes`` row.

        Raises:
            NormalizationError: If the shape id, sequence or coordinates are invalid.
        """
        shape_id = _clean_str(row.get("shape_id"))
        if not shape_id:
            raise NormalizationError("Missing shape_id")
        lat = _opt_float(row.get("shape_pt_lat"))
        lon = _opt_float(row.get("shape_pt_lon"))
        if lat is None or lon is None:
            raise NormalizationError(f"Invalid lat/lon for shape_id={shape_id}")
        return {
            "shape_id": shape_id,
            "shape_pt_sequence": _require_int(row, "shape_pt_sequence"),
            "shape_pt_lat": lat,
            "shape_pt_lon": lon,
            "shape_dist_traveled": _opt_float(row.get("shape_dist_traveled")),
        }


def _clean_str(value: Any) -> str:
    """Strip whitespace; None becomes empty string."""
    if value is None:
        return ""
    return str(value).strip()


def _opt_str(value: Any) -> Optional[str]:
    cleaned = _clean_str(value)
    return cleaned or None


def _opt_int(value: Any) -> Optional[int]:
    """Integer or numeric string to int; anything else to None."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return None
    return None


def _require_int(row: dict[str, Any], key: str) -> int:
    value = _opt_int(row.get(key))
    if value is None:
        raise NormalizationError(f"Missing or invalid {key}: {row.get(key)!r}")
    return value


def _opt_float(value: Any) -> Optional[float]:
    """Finite number or numeric string to float; anything else to None."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        result = float(value)
    elif isinstance(value, str):
        try:
            result = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    return result if math.isfinite(result) else None


def _opt_datetime(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp; naive values are taken as UTC."""
    if not isinstance(value, str) or not value.strip():
        return None
    try:
        parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError:
        logger.debug("Unparseable vehicle timestamp", value=value)
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
