"""Self-rescheduling background loops for polling, refresh and retention."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Iterable
from contextlib import suppress
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Any

from localbus_api.config import get_settings
from localbus_api.logging import bind_loop_context, clear_loop_context, get_logger
from localbus_api.services.engine import get_transit_engine
from localbus_api.services.ingest.poller import VehiclePoller, poll_interval_seconds
from localbus_api.services.ingest.retention import RetentionSweeper
from localbus_api.services.ingest.writer import BatchWriter
from localbus_api.services.provider.client import ProviderClient
from localbus_api.services.reference.refresher import StaticRefresher

if TYPE_CHECKING:
    from localbus_api.config import Settings
    from localbus_api.services.engine import TransitEngine

logger = get_logger(__name__)

LOOP_VEHICLE_POLL = "vehicle_poll"
LOOP_STATIC_REFRESH = "static_refresh"
LOOP_RETENTION_SWEEP = "retention_sweep"

Job = Callable[[], Awaitable[dict[str, Any]]]


class LoopBusyError(Exception):
    """Raised when a manual run is requested while a cycle is in flight."""


class RecurringLoop:
    """Runs ``job`` forever, sleeping ``interval_fn()`` seconds after each cycle.

    The delay is computed once the cycle has settled, so a slow cycle pushes
    the next one back instead of overlapping it. The lock is held for the whole
    cycle and also guards manual runs.

    Usage:
        loop = RecurringLoop("vehicle_poll", poller.run_once, lambda: 15)
        await loop.start()
        await loop.stop()
    """

    def __init__(self, name: str, job: Job, interval_fn: Callable[[], float]) -> None:
        self.name = name
        self._job = job
        self._interval_fn = interval_fn
        self._lock = asyncio.Lock()

        self._task: asyncio.Task[None] | None = None
        self._running = False
        self._cycle_count = 0
        self._failure_count = 0
        self._last_started_at: datetime | None = None
        self._last_finished_at: datetime | None = None
        self._next_run_at: datetime | None = None
        self._last_error: str | None = None
        self._last_report: dict[str, Any] | None = None

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def is_busy(self) -> bool:
        return self._lock.locked()

    @property
    def cycle_count(self) -> int:
        return self._cycle_count

    @property
    def failure_count(self) -> int:
        return self._failure_count

    @property
    def last_error(self) -> str | None:
        return self._last_error

    @property
    def last_report(self) -> dict[str, Any] | None:
        return self._last_report

    async def start(self) -> None:
        """Start the background loop. The first cycle runs immediately."""
        if self._running:
            logger.warning("Loop already running, ignoring start request", loop=self.name)
            return

        self._running = True
        self._task = asyncio.create_task(self._run_forever(), name=f"loop:{self.name}")
        logger.info("Loop started", loop=self.name)

    async def stop(self) -> None:
        """Cancel the background loop, including a cycle in flight."""
        if not self._running:
            return

        self._running = False
        if self._task and not self._task.done():
            self._task.cancel()
            with suppress(asyncio.CancelledError):
                await self._task
        self._task = None
        self._next_run_at = None
        logger.info("Loop stopped", loop=self.name)

    async def run_cycle(self) -> dict[str, Any] | None:
        """Run one cycle, logging and swallowing any failure."""
        return await self._execute(reraise=False)

    async def run_now(self) -> dict[str, Any]:
        """Run one cycle on demand and return its report.

        Raises:
            LoopBusyError: If a cycle of this loop is already in flight.
        """
        if self._lock.locked():
            msg = f"Loop {self.name} already has a cycle in flight"
            raise LoopBusyError(msg)
        report = await self._execute(reraise=True)
        return report or {}

    def status(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "running": self._running,
            "busy": self.is_busy,
            "cycle_count": self._cycle_count,
            "failure_count": self._failure_count,
            "last_started_at": _iso(self._last_started_at),
            "last_finished_at": _iso(self._last_finished_at),
            "next_run_at": _iso(self._next_run_at),
            "last_error": self._last_error,
        }

    async def _execute(self, reraise: bool) -> dict[str, Any] | None:
        async with self._lock:
            self._cycle_count += 1
            self._last_started_at = datetime.now(timezone.utc)
            bind_loop_context(self.name, self._cycle_count)
            try:
                report = await self._job()
            except Exception as exc:
                self._failure_count += 1
                self._last_error = str(exc) or type(exc).__name__
                logger.error("Loop cycle failed", exc_info=exc)
                if reraise:
                    raise
                return None
            finally:
                self._last_finished_at = datetime.now(timezone.utc)
                clear_loop_context()

            self._last_error = None
            self._last_report = report
            return report

    async def _run_forever(self) -> None:
        while self._running:
            await self.run_cycle()
            delay = self._interval_fn()
            self._next_run_at = datetime.now(timezone.utc) + timedelta(seconds=delay)
            await asyncio.sleep(delay)


class LoopScheduler:
    """Starts, stops and reports on a fixed set of named loops."""

    def __init__(self, loops: Iterable[RecurringLoop]) -> None:
        self._loops = {loop.name: loop for loop in loops}

    @property
    def names(self) -> list[str]:
        return list(self._loops)

    @property
    def is_running(self) -> bool:
        return any(loop.is_running for loop in self._loops.values())

    def get(self, name: str) -> RecurringLoop | None:
        return self._loops.get(name)

    async def start(self) -> None:
        for loop in self._loops.values():
            await loop.start()

    async def stop(self) -> None:
        for loop in self._loops.values():
            await loop.stop()

    def status(self) -> dict[str, dict[str, Any]]:
        return {name: loop.status() for name, loop in self._loops.items()}


def build_scheduler(
    settings: Settings,
    engine: TransitEngine,
    client: ProviderClient | None = None,
) -> LoopScheduler:
    """Wire the poll, refresh and retention cycles into their loops."""
    client = client or ProviderClient.from_settings(settings)
    writer = BatchWriter(batch_size=settings.insert_batch_size)

    poller = VehiclePoller(
        client,
        engine,
        writer=writer,
        service_tz=settings.service_tz,
        entry_radius_m=settings.stop_entry_radius_m,
        exit_radius_m=settings.stop_exit_radius_m,
    )
    refresher = StaticRefresher(client, engine, writer=writer)
    sweeper = RetentionSweeper(settings.retention_days, writer=writer)

    refresh_interval = settings.static_refresh_interval_hours * 3600
    sweep_interval = settings.retention_sweep_interval_hours * 3600

    return LoopScheduler(
        [
            RecurringLoop(
                LOOP_VEHICLE_POLL,
                poller.run_once,
                lambda: poll_interval_seconds(datetime.now(timezone.utc), settings),
            ),
            RecurringLoop(LOOP_STATIC_REFRESH, refresher.run_once, lambda: refresh_interval),
            RecurringLoop(LOOP_RETENTION_SWEEP, sweeper.run_once, lambda: sweep_interval),
        ]
    )


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


# Singleton instance for the app lifecycle
_scheduler_instance: LoopScheduler | None = None


def get_scheduler() -> LoopScheduler:
    """Get or create the singleton scheduler."""
    global _scheduler_instance
    if _scheduler_instance is None:
        _scheduler_instance = build_scheduler(get_settings(), get_transit_engine())
    return _scheduler_instance


def reset_scheduler() -> None:
    """Reset the singleton (for testing)."""
    global _scheduler_instance
    _scheduler_instance = None
