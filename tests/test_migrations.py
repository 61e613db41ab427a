"""Tests for database migrations."""

import importlib.util
import sys
from pathlib import Path

import pytest

MIGRATION_PATH = Path(__file__).parent.parent / "alembic/versions/001_initial_schema.py"

TABLES = [
    "routes",
    "trips",
    "stops",
    "stop_times",
    "shapes",
    "vehicle_snapshots",
    "stop_visits",
    "route_daily_stats",
]


@pytest.fixture
def migration_source() -> str:
    """Load migration source code for inspection."""
    return MIGRATION_PATH.read_text()


class TestMigrationScript:
    """Tests for migration script structure."""

    @pytest.fixture
    def migration_module(self) -> object:
        """Load the initial migration module."""
        spec = importlib.util.spec_from_file_location("migration_001", MIGRATION_PATH)
        assert spec is not None
        assert spec.loader is not None
        module = importlib.util.module_from_spec(spec)
        sys.modules["migration_001"] = module
        spec.loader.exec_module(module)
        return module

    def test_migration_has_revision_id(self, migration_module: object) -> None:
        assert migration_module.revision == "001"  # type: ignore[attr-defined]

    def test_migration_has_down_revision(self, migration_module: object) -> None:
        assert migration_module.down_revision is None  # type: ignore[attr-defined]

    def test_migration_has_upgrade_and_downgrade(self, migration_module: object) -> None:
        assert callable(migration_module.upgrade)  # type: ignore[attr-defined]
        assert callable(migration_module.downgrade)  # type: ignore[attr-defined]


class TestMigrationUpgradeOperations:
    """Tests for verifying the upgrade creates correct structures."""

    @pytest.mark.parametrize("table", TABLES)
    def test_creates_table(self, migration_source: str, table: str) -> None:
        assert f'op.create_table(\n        "{table}"' in migration_source

    def test_creates_visit_window_indexes(self, migration_source: str) -> None:
        """Verify per-stop window lookups are indexed."""
        assert '"ix_stop_visits_stop_id"' in migration_source
        assert '"ix_stop_visits_observed_at"' in migration_source

    def test_creates_retention_indexes(self, migration_source: str) -> None:
        """Verify the retention sweep can range-scan snapshots."""
        assert '"ix_vehicle_snapshots_fetched_at"' in migration_source

    def test_route_daily_stats_keyed_by_day_and_route(self, migration_source: str) -> None:
        section = migration_source.split('"route_daily_stats"')[1]
        assert 'sa.PrimaryKeyConstraint("day", "route_id")' in section


class TestMigrationDowngradeOperations:
    """Tests for verifying the downgrade removes all structures."""

    def test_downgrade_drops_all_tables(self, migration_source: str) -> None:
        downgrade_section = migration_source.split("def downgrade")[1]
        for table in TABLES:
            assert f'op.drop_table("{table}")' in downgrade_section

    def test_downgrade_reverses_creation_order(self, migration_source: str) -> None:
        downgrade_section = migration_source.split("def downgrade")[1]
        positions = [downgrade_section.find(f'op.drop_table("{table}")') for table in TABLES]
        assert positions == sorted(positions, reverse=True)
