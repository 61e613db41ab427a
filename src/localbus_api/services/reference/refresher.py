"""Static reference refresh - fetch, normalize, replace tables, swap cache."""

from __future__ import annotations

import asyncio
import uuid
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Callable

from sqlalchemy import text

from localbus_api.database import get_session_context
from localbus_api.logging import get_logger
from localbus_api.services.ingest.writer import BatchWriter
from localbus_api.services.provider.client import REFERENCE_RESOURCES
from localbus_api.services.provider.normalizer import NormalizationError, ProviderNormalizer
from localbus_api.services.reference.cache import ReferenceCache, build_reference_cache

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from localbus_api.services.engine import TransitEngine
    from localbus_api.services.provider.client import ProviderClient

logger = get_logger(__name__)

# Tables that are deleted and re-inserted, in this order
REPLACED_TABLES = ("trips", "stops", "stop_times", "shapes")

_NORMALIZERS: dict[str, Callable[[dict[str, Any]], dict[str, Any]]] = {
    "routes": ProviderNormalizer.normalize_route,
    "trips": ProviderNormalizer.normalize_trip,
    "stops": ProviderNormalizer.normalize_stop,
    "stop_times": ProviderNormalizer.normalize_stop_time,
    "shapes": ProviderNormalizer.normalize_shape_point,
}

# Caps warnings kept on the report
_MAX_WARNINGS = 100


class RefreshReport:
    """Collects refresh metrics and warnings."""

    def __init__(self, refresh_id: str | None = None) -> None:
        self.refresh_id = refresh_id or str(uuid.uuid4())[:8]
        self.started_at = datetime.now(timezone.utc)
        self.ended_at: datetime | None = None
        self.duration_ms: int | None = None
        self.counts: dict[str, dict[str, int]] = {}
        self.warnings: list[str] = []

    def init_table(self, table: str) -> None:
        self.counts[table] = {"read": 0, "written": 0, "skipped": 0}

    def warn(self, message: str) -> None:
        if len(self.warnings) < _MAX_WARNINGS:
            self.warnings.append(message)

    def finish(self) -> None:
        self.ended_at = datetime.now(timezone.utc)
        self.duration_ms = int((self.ended_at - self.started_at).total_seconds() * 1000)

    def to_dict(self) -> dict[str, Any]:
        return {
            "refresh_id": self.refresh_id,
            "started_at": self.started_at.isoformat(),
            "ended_at": self.ended_at.isoformat() if self.ended_at else None,
            "duration_ms": self.duration_ms,
            "counts": self.counts,
            "warnings": self.warnings,
        }


class StaticRefresher:
    """Repopulates the reference tables and the engine's reference cache.

    Usage:
        refresher = StaticRefresher(client, engine)
        report = await refresher.run_once()
    """

    def __init__(
        self,
        client: ProviderClient,
        engine: TransitEngine,
        writer: BatchWriter | None = None,
    ) -> None:
        self._client = client
        self._engine = engine
        self._writer = writer or BatchWriter()

    async def run_once(self, session_override: AsyncSession | None = None) -> dict[str, Any]:
        """Fetch the full reference graph, persist it and swap the cache.

        Any exception propagates before the swap, leaving the previous cache
        in place.
        """
        report = RefreshReport()
        logger.info("Starting static refresh", refresh_id=report.refresh_id)

        payloads = await asyncio.gather(
            *(self._client.fetch_list(resource) for resource in REFERENCE_RESOURCES)
        )
        data = {
            resource: self._normalize(resource, rows, report)
            for resource, rows in zip(REFERENCE_RESOURCES, payloads)
        }

        if session_override is not None:
            await self._persist_all(session_override, data, report)
        else:
            async with get_session_context() as session:
                await self._persist_all(session, data, report)

        cache = build_reference_cache(
            data["routes"],
            data["trips"],
            data["stops"],
            data["stop_times"],
            built_at=datetime.now(timezone.utc),
        )
        self._engine.swap_reference(cache)

        report.finish()
        logger.info(
            "Static refresh complete",
            refresh_id=report.refresh_id,
            duration_ms=report.duration_ms,
            counts=report.counts,
            warnings_count=len(report.warnings),
        )
        return report.to_dict()

    async def load_from_database(
        self, session_override: AsyncSession | None = None
    ) -> ReferenceCache:
        """Hydrate the cache from the persisted reference tables.

        Used at startup so detection has a network to work with before the
        first provider refresh completes (or when it fails).
        """
        if session_override is not None:
            cache = await self._read_cache(session_override)
        else:
            async with get_session_context() as session:
                cache = await self._read_cache(session)

        self._engine.swap_reference(cache)
        return cache

    def _normalize(
        self,
        table: str,
        rows: list[dict[str, Any]],
        report: RefreshReport,
    ) -> list[dict[str, Any]]:
        """Normalize provider rows, skipping the malformed ones."""
        report.init_table(table)
        normalize = _NORMALIZERS[table]
        results: list[dict[str, Any]] = []

        for row in rows:
            report.counts[table]["read"] += 1
            try:
                results.append(normalize(row))
            except NormalizationError as exc:
                report.counts[table]["skipped"] += 1
                report.warn(f"{table} row skipped: {exc}")

        return results

    async def _persist_all(
        self,
        session: AsyncSession,
        data: dict[str, list[dict[str, Any]]],
        report: RefreshReport,
    ) -> None:
        """Upsert routes and replace every other reference table in one transaction."""
        try:
            report.counts["routes"]["written"] = await self._writer.upsert_routes(
                session, data["routes"], updated_at=datetime.now(timezone.utc)
            )
            for table in REPLACED_TABLES:
                report.counts[table]["written"] = await self._writer.replace_table(
                    session, table, data[table]
                )
            await session.commit()
        except Exception as exc:
            await session.rollback()
            logger.error(
                "Reference tables not replaced",
                refresh_id=report.refresh_id,
                error=str(exc),
            )
            raise

    @staticmethod
    async def _read_cache(session: AsyncSession) -> ReferenceCache:
        routes = await session.execute(
            text(
                "SELECT route_id, agency_id, route_short_name, route_long_name, "
                "route_color, route_type, route_desc FROM routes"
            )
        )
        trips = await session.execute(
            text(
                "SELECT trip_id, route_id, trip_headsign, direction_id, block_id, "
                "shape_id FROM trips"
            )
        )
        stops = await session.execute(
            text(
                "SELECT stop_id, stop_name, stop_lat, stop_lon, location_type, "
                "stop_code FROM stops"
            )
        )
        stop_times = await session.execute(text("SELECT trip_id, stop_id FROM stop_times"))

        return build_reference_cache(
            routes.mappings().all(),
            trips.mappings().all(),
            stops.mappings().all(),
            stop_times.mappings().all(),
            built_at=datetime.now(timezone.utc),
        )
