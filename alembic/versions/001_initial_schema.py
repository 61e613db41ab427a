"""Initial schema: reference network, observations and route daily stats.

Revision ID: 001
Revises:
Create Date: 2026-10-17 00:00:00.000000

"""

from __future__ import annotations

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # Reference tables (routes upserted, the rest replaced on refresh)
    op.create_table(
        "routes",
        sa.Column("route_id", sa.Integer(), autoincrement=False, nullable=False),
        sa.Column("agency_id", sa.Integer(), nullable=False),
        sa.Column("route_short_name", sa.Text(), nullable=False),
        sa.Column("route_long_name", sa.Text(), nullable=False),
        sa.Column("route_color", sa.Text(), nullable=False),
        sa.Column("route_type", sa.Integer(), nullable=False),
        sa.Column("route_desc", sa.Text(), nullable=False),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("route_id"),
    )

    op.create_table(
        "trips",
        sa.Column("trip_id", sa.Text(), nullable=False),
        sa.Column("route_id", sa.Integer(), nullable=False),
        sa.Column("trip_headsign", sa.Text(), nullable=False),
        sa.Column("direction_id", sa.Integer(), nullable=False),
        sa.Column("block_id", sa.Integer(), nullable=False),
        sa.Column("shape_id", sa.Text(), nullable=False),
        sa.PrimaryKeyConstraint("trip_id"),
    )

    op.create_table(
        "stops",
        sa.Column("stop_id", sa.Integer(), autoincrement=False, nullable=False),
        sa.Column("stop_name", sa.Text(), nullable=False),
        sa.Column("stop_lat", sa.Float(), nullable=False),
        sa.Column("stop_lon", sa.Float(), nullable=False),
        sa.Column("location_type", sa.Integer(), nullable=False),
        sa.Column("stop_code", sa.Text(), nullable=False),
        sa.PrimaryKeyConstraint("stop_id"),
    )

    op.create_table(
        "stop_times",
        sa.Column("trip_id", sa.Text(), nullable=False),
        sa.Column("stop_sequence", sa.Integer(), autoincrement=False, nullable=False),
        sa.Column("stop_id", sa.Integer(), nullable=False),
        sa.Column("arrival_time", sa.String(8), nullable=True),
        sa.Column("departure_time", sa.String(8), nullable=True),
        sa.Column("stop_headsign", sa.Text(), nullable=True),
        sa.Column("pickup_type", sa.Integer(), nullable=True),
        sa.Column("drop_off_type", sa.Integer(), nullable=True),
        sa.Column("shape_dist_traveled", sa.Float(), nullable=True),
        sa.Column("timepoint", sa.Integer(), nullable=True),
        sa.PrimaryKeyConstraint("trip_id", "stop_sequence"),
    )
    op.create_index("ix_stop_times_stop_id", "stop_times", ["stop_id"])
    op.create_index("ix_stop_times_trip_id", "stop_times", ["trip_id"])

    op.create_table(
        "shapes",
        sa.Column("shape_id", sa.Text(), nullable=False),
        sa.Column("shape_pt_sequence", sa.Integer(), autoincrement=False, nullable=False),
        sa.Column("shape_pt_lat", sa.Float(), nullable=False),
        sa.Column("shape_pt_lon", sa.Float(), nullable=False),
        sa.Column("shape_dist_traveled", sa.Float(), nullable=True),
        sa.PrimaryKeyConstraint("shape_id", "shape_pt_sequence"),
    )
    op.create_index("ix_shapes_shape_id", "shapes", ["shape_id"])

    # Append-only observations, pruned by the retention sweep
    op.create_table(
        "vehicle_snapshots",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column(
            "fetched_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column("vehicle_id", sa.Integer(), nullable=False),
        sa.Column("label", sa.Text(), nullable=True),
        sa.Column("route_id", sa.Integer(), nullable=True),
        sa.Column("trip_id", sa.Text(), nullable=True),
        sa.Column("latitude", sa.Float(), nullable=True),
        sa.Column("longitude", sa.Float(), nullable=True),
        sa.Column("vehicle_timestamp", sa.DateTime(timezone=True), nullable=True),
        sa.Column("speed", sa.Float(), nullable=True),
        sa.Column("vehicle_type", sa.Integer(), nullable=True),
        sa.Column("bike_accessible", sa.Text(), nullable=True),
        sa.Column("wheelchair_accessible", sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_vehicle_snapshots_vehicle_id", "vehicle_snapshots", ["vehicle_id"])
    op.create_index("ix_vehicle_snapshots_route_id", "vehicle_snapshots", ["route_id"])
    op.create_index("ix_vehicle_snapshots_fetched_at", "vehicle_snapshots", ["fetched_at"])

    op.create_table(
        "stop_visits",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("stop_id", sa.Integer(), nullable=False),
        sa.Column("route_id", sa.Integer(), nullable=True),
        sa.Column("trip_id", sa.Text(), nullable=True),
        sa.Column("vehicle_id", sa.Integer(), nullable=False),
        sa.Column("observed_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("fetched_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("latitude", sa.Float(), nullable=False),
        sa.Column("longitude", sa.Float(), nullable=False),
        sa.Column("distance_meters", sa.Float(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_stop_visits_stop_id", "stop_visits", ["stop_id"])
    op.create_index("ix_stop_visits_route_id", "stop_visits", ["route_id"])
    op.create_index("ix_stop_visits_observed_at", "stop_visits", ["observed_at"])

    # First/last sighting per route and service day
    op.create_table(
        "route_daily_stats",
        sa.Column("day", sa.Date(), nullable=False),
        sa.Column("route_id", sa.Integer(), autoincrement=False, nullable=False),
        sa.Column("first_seen_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("last_seen_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("day", "route_id"),
    )
    op.create_index("ix_route_daily_stats_route_id", "route_daily_stats", ["route_id"])


def downgrade() -> None:
    op.drop_table("route_daily_stats")
    op.drop_table("stop_visits")
    op.drop_table("vehicle_snapshots")
    op.drop_table("shapes")
    op.drop_table("stop_times")
    op.drop_table("stops")
    op.drop_table("trips")
    op.drop_table("routes")
