"""Observation tables written by the vehicle poll loop."""

from __future__ import annotations

from datetime import date, datetime  # noqa: TC003 - SQLAlchemy needs these at runtime
from typing import Optional

from sqlalchemy import Date, DateTime, Float, Index, Integer, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from localbus_api.models.base import Base


class VehicleSnapshot(Base):
    """Every vehicle position seen by a poll cycle (append-only, retention-bounded)."""

    __tablename__ = "vehicle_snapshots"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    fetched_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    vehicle_id: Mapped[int] = mapped_column(Integer, nullable=False)
    label: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    route_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    trip_id: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    latitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    longitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    vehicle_timestamp: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    speed: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    vehicle_type: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    bike_accessible: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    wheelchair_accessible: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    __table_args__ = (
        Index("ix_vehicle_snapshots_vehicle_id", "vehicle_id"),
        Index("ix_vehicle_snapshots_route_id", "route_id"),
        Index("ix_vehicle_snapshots_fetched_at", "fetched_at"),
    )


class StopVisit(Base):
    """A vehicle leaving a stop's geofence (one row per containment episode)."""

    __tablename__ = "stop_visits"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    stop_id: Mapped[int] = mapped_column(Integer, nullable=False)
    route_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    trip_id: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    vehicle_id: Mapped[int] = mapped_column(Integer, nullable=False)
    observed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    fetched_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    latitude: Mapped[float] = mapped_column(Float, nullable=False)
    longitude: Mapped[float] = mapped_column(Float, nullable=False)
    distance_meters: Mapped[float] = mapped_column(Float, nullable=False)

    __table_args__ = (
        Index("ix_stop_visits_stop_id", "stop_id"),
        Index("ix_stop_visits_route_id", "route_id"),
        Index("ix_stop_visits_observed_at", "observed_at"),
    )


class RouteDailyStats(Base):
    """Earliest and latest sighting of a route per service day."""

    __tablename__ = "route_daily_stats"

    day: Mapped[date] = mapped_column(Date, primary_key=True)
    route_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    first_seen_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    last_seen_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (Index("ix_route_daily_stats_route_id", "route_id"),)
