"""Process-wide mutable state shared by the loops and the HTTP handlers.

Everything here is replaced by assignment, never mutated in place: the
reference cache on each static refresh, the containment set and the latest
vehicle snapshot on each poll cycle. With a single event loop that is enough
to keep readers from seeing a half-updated value across an ``await``.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from localbus_api.logging import get_logger
from localbus_api.services.reference.cache import ReferenceCache

logger = get_logger(__name__)

ContainmentState = frozenset[tuple[int, int]]


@dataclass(frozen=True)
class LatestVehicles:
    """Raw ``vehicles`` payload from the last successful poll."""

    fetched_at: datetime
    vehicles: tuple[dict[str, Any], ...]


class TransitEngine:
    """Owner of the reference cache, containment set and latest vehicles."""

    def __init__(self, reference: ReferenceCache | None = None) -> None:
        self.reference: ReferenceCache = reference or ReferenceCache.empty()
        self.containment: ContainmentState = frozenset()
        self.latest_vehicles: LatestVehicles | None = None

    def swap_reference(self, cache: ReferenceCache) -> None:
        self.reference = cache
        logger.info("Reference cache swapped", **cache.summary())

    def swap_containment(self, containment: ContainmentState) -> None:
        self.containment = containment

    def record_vehicles(self, fetched_at: datetime, vehicles: list[dict[str, Any]]) -> None:
        self.latest_vehicles = LatestVehicles(fetched_at=fetched_at, vehicles=tuple(vehicles))

    def status(self) -> dict[str, Any]:
        latest = self.latest_vehicles
        return {
            "reference": self.reference.summary(),
            "containment_pairs": len(self.containment),
            "latest_vehicles": len(latest.vehicles) if latest else 0,
            "latest_fetched_at": latest.fetched_at.isoformat() if latest else None,
        }


# Singleton instance for the app lifecycle
_engine_instance: TransitEngine | None = None


def get_transit_engine() -> TransitEngine:
    """Get or create the singleton engine state."""
    global _engine_instance
    if _engine_instance is None:
        _engine_instance = TransitEngine()
    return _engine_instance


def reset_transit_engine() -> None:
    """Reset the singleton (for testing)."""
    global _engine_instance
    _engine_instance = None
