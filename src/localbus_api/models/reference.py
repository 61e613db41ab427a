"""Reference (static) network tables, replaced on every provider refresh."""

from __future__ import annotations

from datetime import datetime  # noqa: TC003 - SQLAlchemy needs this at runtime for Mapped[datetime]
from typing import Optional

from sqlalchemy import DateTime, Float, Index, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from localbus_api.models.base import Base


class Route(Base):
    """Transit route as published by the provider."""

    __tablename__ = "routes"

    route_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    agency_id: Mapped[int] = mapped_column(Integer, nullable=False)
    route_short_name: Mapped[str] = mapped_column(Text, nullable=False)
    route_long_name: Mapped[str] = mapped_column(Text, nullable=False)
    route_color: Mapped[str] = mapped_column(Text, nullable=False)
    route_type: Mapped[int] = mapped_column(Integer, nullable=False)
    route_desc: Mapped[str] = mapped_column(Text, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )


class Trip(Base):
    """A single run of a route.

    There are no foreign keys into routes: trips are deleted and re-inserted
    on every refresh while routes are upserted.
    """

    __tablename__ = "trips"

    trip_id: Mapped[str] = mapped_column(Text, primary_key=True)
    route_id: Mapped[int] = mapped_column(Integer, nullable=False)
    trip_headsign: Mapped[str] = mapped_column(Text, nullable=False)
    direction_id: Mapped[int] = mapped_column(Integer, nullable=False)
    block_id: Mapped[int] = mapped_column(Integer, nullable=False)
    shape_id: Mapped[str] = mapped_column(Text, nullable=False)


class Stop(Base):
    """Transit stop."""

    __tablename__ = "stops"

    stop_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    stop_name: Mapped[str] = mapped_column(Text, nullable=False)
    stop_lat: Mapped[float] = mapped_column(Float, nullable=False)
    stop_lon: Mapped[float] = mapped_column(Float, nullable=False)
    location_type: Mapped[int] = mapped_column(Integer, nullable=False)
    stop_code: Mapped[str] = mapped_column(Text, nullable=False)


class StopTime(Base):
    """Position of a stop within a trip's stop sequence."""

    __tablename__ = "stop_times"

    trip_id: Mapped[str] = mapped_column(Text, primary_key=True)
    stop_sequence: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    stop_id: Mapped[int] = mapped_column(Integer, nullable=False)
    arrival_time: Mapped[Optional[str]] = mapped_column(String(8), nullable=True)
    departure_time: Mapped[Optional[str]] = mapped_column(String(8), nullable=True)
    stop_headsign: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    pickup_type: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    drop_off_type: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    shape_dist_traveled: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    timepoint: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    __table_args__ = (
        Index("ix_stop_times_stop_id", "stop_id"),
        Index("ix_stop_times_trip_id", "trip_id"),
    )


class ShapePoint(Base):
    """One vertex of a trip shape polyline."""

    __tablename__ = "shapes"

    shape_id: Mapped[str] = mapped_column(Text, primary_key=True)
    shape_pt_sequence: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=False
    )
    shape_pt_lat: Mapped[float] = mapped_column(Float, nullable=False)
    shape_pt_lon: Mapped[float] = mapped_column(Float, nullable=False)
    shape_dist_traveled: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    __table_args__ = (Index("ix_shapes_shape_id", "shape_id"),)
