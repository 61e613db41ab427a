"""Database writer with batched multi-row inserts."""

from __future__ import annotations

from datetime import date, datetime
from typing import TYPE_CHECKING, Any, Iterable, Sequence

from sqlalchemy import text

from localbus_api.logging import get_logger

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from localbus_api.services.detection.geofence import StopVisitEvent
    from localbus_api.services.provider.normalizer import VehiclePosition

logger = get_logger(__name__)

DEFAULT_BATCH_SIZE = 1000

# Column order used for batch inserts, per table
TABLE_COLUMNS: dict[str, tuple[str, ...]] = {
    "routes": (
        "route_id",
        "agency_id",
        "route_short_name",
        "route_long_name",
        "route_color",
        "route_type",
        "route_desc",
        "updated_at",
    ),
    "trips": (
        "trip_id",
        "route_id",
        "trip_headsign",
        "direction_id",
        "block_id",
        "shape_id",
    ),
    "stops": (
        "stop_id",
        "stop_name",
        "stop_lat",
        "stop_lon",
        "location_type",
        "stop_code",
    ),
    "stop_times": (
        "trip_id",
        "stop_id",
        "stop_sequence",
        "arrival_time",
        "departure_time",
        "stop_headsign",
        "pickup_type",
        "drop_off_type",
        "shape_dist_traveled",
        "timepoint",
    ),
    "shapes": (
        "shape_id",
        "shape_pt_sequence",
        "shape_pt_lat",
        "shape_pt_lon",
        "shape_dist_traveled",
    ),
    "vehicle_snapshots": (
        "fetched_at",
        "vehicle_id",
        "label",
        "route_id",
        "trip_id",
        "latitude",
        "longitude",
        "vehicle_timestamp",
        "speed",
        "vehicle_type",
        "bike_accessible",
        "wheelchair_accessible",
    ),
    "stop_visits": (
        "stop_id",
        "route_id",
        "trip_id",
        "vehicle_id",
        "observed_at",
        "fetched_at",
        "latitude",
        "longitude",
        "distance_meters",
    ),
    "route_daily_stats": ("day", "route_id", "first_seen_at", "last_seen_at"),
}

_ROUTES_ON_CONFLICT = """
    ON CONFLICT (route_id) DO UPDATE SET
        agency_id = EXCLUDED.agency_id,
        route_short_name = EXCLUDED.route_short_name,
        route_long_name = EXCLUDED.route_long_name,
        route_color = EXCLUDED.route_color,
        route_type = EXCLUDED.route_type,
        route_desc = EXCLUDED.route_desc,
        updated_at = EXCLUDED.updated_at
"""

# The stored window only ever widens.
_DAILY_STATS_ON_CONFLICT = """
    ON CONFLICT (day, route_id) DO UPDATE SET
        first_seen_at = LEAST(route_daily_stats.first_seen_at, EXCLUDED.first_seen_at),
        last_seen_at = GREATEST(route_daily_stats.last_seen_at, EXCLUDED.last_seen_at)
"""

# Timestamp column that the retention sweep filters on
RETENTION_COLUMNS: dict[str, str] = {
    "vehicle_snapshots": "fetched_at",
    "stop_visits": "observed_at",
}


class BatchWriter:
    """Batched INSERT helper shared by the poll, refresh and retention loops.

    No method commits. Each caller owns its unit of work.
    """

    def __init__(self, batch_size: int = DEFAULT_BATCH_SIZE) -> None:
        self.batch_size = batch_size

    async def insert_rows(
        self,
        session: AsyncSession,
        table: str,
        rows: Sequence[dict[str, Any]],
        on_conflict: str = "",
    ) -> int:
        """Insert rows in chunks of ``batch_size``. Does not commit.

        Returns the number of rows sent.
        """
        if not rows:
            return 0

        columns = TABLE_COLUMNS[table]
        column_list = ", ".join(columns)
        written = 0

        for batch_start in range(0, len(rows), self.batch_size):
            batch = rows[batch_start : batch_start + self.batch_size]

            values_sql = ", ".join(
                "(" + ", ".join(f":{col}_{i}" for col in columns) + ")"
                for i in range(len(batch))
            )
            params: dict[str, Any] = {}
            for i, row in enumerate(batch):
                for col in columns:
                    params[f"{col}_{i}"] = row.get(col)

            stmt = text(f"""
                INSERT INTO {table} ({column_list})
                VALUES {values_sql}
                {on_conflict}
            """)
            await session.execute(stmt, params)
            written += len(batch)

        return written

    async def replace_table(
        self, session: AsyncSession, table: str, rows: Sequence[dict[str, Any]]
    ) -> int:
        """Delete every row of ``table`` and bulk insert ``rows``. Does not commit."""
        await session.execute(text(f"DELETE FROM {table}"))
        written = await self.insert_rows(session, table, rows)
        logger.info("Replaced table", table=table, rows=written)
        return written

    async def upsert_routes(
        self, session: AsyncSession, rows: Sequence[dict[str, Any]], updated_at: datetime
    ) -> int:
        """Insert or update routes by route_id. Does not commit."""
        stamped = [{**row, "updated_at": updated_at} for row in rows]
        written = await self.insert_rows(
            session, "routes", stamped, on_conflict=_ROUTES_ON_CONFLICT
        )
        logger.info("Upserted table", table="routes", rows=written)
        return written

    async def write_vehicle_snapshots(
        self,
        session: AsyncSession,
        fetched_at: datetime,
        vehicles: Sequence[VehiclePosition],
    ) -> int:
        """Append one snapshot row per polled vehicle. Does not commit."""
        rows = [vehicle.to_snapshot_row(fetched_at) for vehicle in vehicles]
        return await self.insert_rows(session, "vehicle_snapshots", rows)

    async def write_stop_visits(
        self, session: AsyncSession, events: Sequence[StopVisitEvent]
    ) -> int:
        """Append stop visit events. Does not commit."""
        rows = [event.to_row() for event in events]
        return await self.insert_rows(session, "stop_visits", rows)

    async def upsert_route_daily_stats(
        self,
        session: AsyncSession,
        day: date,
        fetched_at: datetime,
        route_ids: Iterable[int],
    ) -> int:
        """Widen each route's first/last seen window for ``day``. Does not commit."""
        rows = [
            {
                "day": day,
                "route_id": route_id,
                "first_seen_at": fetched_at,
                "last_seen_at": fetched_at,
            }
            for route_id in sorted(set(route_ids))
        ]
        return await self.insert_rows(
            session, "route_daily_stats", rows, on_conflict=_DAILY_STATS_ON_CONFLICT
        )

    async def delete_older_than(
        self, session: AsyncSession, table: str, cutoff: datetime
    ) -> int:
        """Delete rows of a retention-bounded table older than ``cutoff``. Does not commit."""
        column = RETENTION_COLUMNS[table]
        result = await session.execute(
            text(f"DELETE FROM {table} WHERE {column} < :cutoff"),
            {"cutoff": cutoff},
        )
        return result.rowcount or 0
