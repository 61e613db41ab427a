"""SQLAlchemy models for the LocalBus stop analytics schema."""

from localbus_api.models.base import Base
from localbus_api.models.observations import RouteDailyStats, StopVisit, VehicleSnapshot
from localbus_api.models.reference import Route, ShapePoint, Stop, StopTime, Trip

__all__ = [
    "Base",
    "Route",
    "RouteDailyStats",
    "ShapePoint",
    "Stop",
    "StopTime",
    "StopVisit",
    "Trip",
    "VehicleSnapshot",
]
