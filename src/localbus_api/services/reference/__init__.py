"""Static reference network cache."""

from localbus_api.services.reference.cache import (
    ReferenceCache,
    RouteInfo,
    StopInfo,
    TripInfo,
    build_reference_cache,
)

__all__ = [
    "ReferenceCache",
    "RouteInfo",
    "StopInfo",
    "TripInfo",
    "build_reference_cache",
]
