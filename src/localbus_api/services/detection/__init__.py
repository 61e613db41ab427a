"""Geofence-based stop visit detection."""

from localbus_api.services.detection.geofence import (
    DetectionResult,
    StopVisitEvent,
    detect_stop_visits,
    haversine_meters,
)

__all__ = [
    "DetectionResult",
    "StopVisitEvent",
    "detect_stop_visits",
    "haversine_meters",
]
