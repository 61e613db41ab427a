"""Tests for SQLAlchemy models."""

from localbus_api.models import (
    Base,
    RouteDailyStats,
    StopVisit,
)


class TestModelsMetadata:
    """Tests for model metadata and table structure."""

    def test_all_tables_registered(self) -> None:
        """Verify all expected tables are in the metadata."""
        expected_tables = {
            "routes",
            "trips",
            "stops",
            "stop_times",
            "shapes",
            "vehicle_snapshots",
            "stop_visits",
            "route_daily_stats",
        }
        actual_tables = set(Base.metadata.tables.keys())
        assert expected_tables == actual_tables

    def test_routes_table_columns(self) -> None:
        table = Base.metadata.tables["routes"]
        columns = {c.name for c in table.columns}
        assert columns == {
            "route_id",
            "agency_id",
            "route_short_name",
            "route_long_name",
            "route_color",
            "route_type",
            "route_desc",
            "updated_at",
        }

    def test_trips_table_columns(self) -> None:
        table = Base.metadata.tables["trips"]
        columns = {c.name for c in table.columns}
        assert columns == {
            "trip_id",
            "route_id",
            "trip_headsign",
            "direction_id",
            "block_id",
            "shape_id",
        }

    def test_stops_table_columns(self) -> None:
        table = Base.metadata.tables["stops"]
        columns = {c.name for c in table.columns}
        assert columns == {
            "stop_id",
            "stop_name",
            "stop_lat",
            "stop_lon",
            "location_type",
            "stop_code",
        }

    def test_stop_times_primary_key(self) -> None:
        """Verify stop_times is keyed by trip and sequence."""
        table = Base.metadata.tables["stop_times"]
        pk_columns = {c.name for c in table.primary_key.columns}
        assert pk_columns == {"trip_id", "stop_sequence"}

    def test_shapes_primary_key(self) -> None:
        table = Base.metadata.tables["shapes"]
        pk_columns = {c.name for c in table.primary_key.columns}
        assert pk_columns == {"shape_id", "shape_pt_sequence"}

    def test_vehicle_snapshots_table_columns(self) -> None:
        table = Base.metadata.tables["vehicle_snapshots"]
        columns = {c.name for c in table.columns}
        assert columns == {
            "id",
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
        }

    def test_stop_visits_table_columns(self) -> None:
        table = Base.metadata.tables["stop_visits"]
        columns = {c.name for c in table.columns}
        assert columns == {
            "id",
            "stop_id",
            "route_id",
            "trip_id",
            "vehicle_id",
            "observed_at",
            "fetched_at",
            "latitude",
            "longitude",
            "distance_meters",
        }

    def test_stop_visits_indexes(self) -> None:
        """Verify stop_visits is indexed for per-stop window lookups."""
        index_names = {idx.name for idx in StopVisit.__table__.indexes}
        assert "ix_stop_visits_stop_id" in index_names
        assert "ix_stop_visits_observed_at" in index_names

    def test_route_daily_stats_primary_key(self) -> None:
        """Verify one row per service day and route."""
        pk_columns = {c.name for c in RouteDailyStats.__table__.primary_key.columns}
        assert pk_columns == {"day", "route_id"}


class TestModelTimestamps:
    """Tests for timestamp columns."""

    def test_observation_timestamps_are_timezone_aware(self) -> None:
        for table_name, column in [
            ("vehicle_snapshots", "fetched_at"),
            ("stop_visits", "observed_at"),
            ("stop_visits", "fetched_at"),
            ("route_daily_stats", "first_seen_at"),
            ("route_daily_stats", "last_seen_at"),
        ]:
            col = Base.metadata.tables[table_name].c[column]
            assert col.type.timezone is True, f"{table_name}.{column}"

    def test_routes_updated_at_has_server_default(self) -> None:
        col = Base.metadata.tables["routes"].c.updated_at
        assert col.server_default is not None
