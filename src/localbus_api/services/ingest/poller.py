"""Vehicle poll cycle: fetch positions, detect stop visits, persist."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone, tzinfo
from typing import TYPE_CHECKING, Any

from localbus_api.database import get_session_context
from localbus_api.logging import get_logger
from localbus_api.services.detection.geofence import (
    DEFAULT_ENTRY_RADIUS_M,
    DEFAULT_EXIT_RADIUS_M,
    detect_stop_visits,
)
from localbus_api.services.ingest.writer import BatchWriter
from localbus_api.services.provider.client import LIVE_RESOURCE
from localbus_api.services.provider.normalizer import (
    NormalizationError,
    ProviderNormalizer,
    VehiclePosition,
)

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from localbus_api.config import Settings
    from localbus_api.services.engine import TransitEngine
    from localbus_api.services.provider.client import ProviderClient

logger = get_logger(__name__)


def poll_interval_seconds(now: datetime, settings: Settings) -> int:
    """Seconds to wait before the next poll, by local hour of ``now``.

    Hours in ``[poll_day_start_hour, poll_day_end_hour)`` use the short day
    interval, every other hour the long night interval.
    """
    local_hour = now.astimezone(settings.service_tz).hour
    if settings.poll_day_start_hour <= local_hour < settings.poll_day_end_hour:
        return settings.poll_day_interval_sec
    return settings.poll_night_interval_sec


def normalize_vehicles(rows: list[dict[str, Any]]) -> list[VehiclePosition]:
    """Normalize the live payload, dropping entries without a usable id."""
    vehicles: list[VehiclePosition] = []
    skipped = 0
    for row in rows:
        try:
            vehicles.append(ProviderNormalizer.normalize_vehicle(row))
        except NormalizationError:
            skipped += 1
    if skipped:
        logger.warning("Skipped malformed vehicles", skipped=skipped, total=len(rows))
    return vehicles


class VehiclePoller:
    """Runs one fetch-detect-persist cycle per call to ``run_once``.

    The engine's containment set is only replaced after the cycle's rows are
    committed. If persisting fails, the next cycle starts from the previous
    state and re-detects the same exits instead of losing them.
    """

    def __init__(
        self,
        client: ProviderClient,
        engine: TransitEngine,
        writer: BatchWriter | None = None,
        service_tz: tzinfo = timezone.utc,
        entry_radius_m: float = DEFAULT_ENTRY_RADIUS_M,
        exit_radius_m: float = DEFAULT_EXIT_RADIUS_M,
    ) -> None:
        self._client = client
        self._engine = engine
        self._writer = writer or BatchWriter()
        self._service_tz = service_tz
        self._entry_radius_m = entry_radius_m
        self._exit_radius_m = exit_radius_m

    async def run_once(self, session_override: AsyncSession | None = None) -> dict[str, Any]:
        """Execute a single poll cycle.

        Returns:
            Report dict with counts for this cycle.

        Raises:
            ProviderFetchError: If the live endpoint cannot be fetched. Nothing
                is written in that case.
        """
        poll_id = str(uuid.uuid4())[:8]
        fetched_at = datetime.now(timezone.utc)

        raw = await self._client.fetch_list(LIVE_RESOURCE)
        self._engine.record_vehicles(fetched_at, raw)

        vehicles = normalize_vehicles(raw)
        detection = detect_stop_visits(
            vehicles,
            self._engine.reference,
            self._engine.containment,
            fetched_at,
            entry_radius_m=self._entry_radius_m,
            exit_radius_m=self._exit_radius_m,
        )
        route_ids = {v.route_id for v in vehicles if v.route_id is not None}

        if session_override is not None:
            counts = await self._persist(session_override, fetched_at, vehicles, detection.events, route_ids)
        else:
            async with get_session_context() as session:
                counts = await self._persist(session, fetched_at, vehicles, detection.events, route_ids)

        self._engine.swap_containment(detection.containment)

        report = {
            "poll_id": poll_id,
            "fetched_at": fetched_at.isoformat(),
            "vehicles": len(vehicles),
            "vehicles_checked": detection.vehicles_checked,
            "stops_entered": detection.entered,
            "visits_recorded": counts["visits"],
            "snapshots_written": counts["snapshots"],
            "routes_seen": len(route_ids),
            "containment_pairs": len(detection.containment),
        }
        logger.info("Poll cycle complete", **report)
        return report

    async def _persist(
        self,
        session: AsyncSession,
        fetched_at: datetime,
        vehicles: list[VehiclePosition],
        events: list[Any],
        route_ids: set[int],
    ) -> dict[str, int]:
        snapshots = await self._writer.write_vehicle_snapshots(session, fetched_at, vehicles)
        await self._writer.upsert_route_daily_stats(
            session,
            fetched_at.astimezone(self._service_tz).date(),
            fetched_at,
            route_ids,
        )
        visits = await self._writer.write_stop_visits(session, events)
        await session.commit()
        if visits:
            logger.info("Stop visits saved", count=visits)
        return {"snapshots": snapshots, "visits": visits}
