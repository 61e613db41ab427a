"""Retention sweep for the append-only observation tables."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Any

from localbus_api.database import get_session_context
from localbus_api.logging import get_logger
from localbus_api.services.ingest.writer import RETENTION_COLUMNS, BatchWriter

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)


class RetentionSweeper:
    """Deletes vehicle snapshots and stop visits older than the horizon.

    Reference tables and route daily stats are never touched; the engine's
    caches are not involved at all.
    """

    def __init__(self, retention_days: int, writer: BatchWriter | None = None) -> None:
        self._retention_days = retention_days
        self._writer = writer or BatchWriter()

    @property
    def retention_days(self) -> int:
        return self._retention_days

    def cutoff(self, now: datetime | None = None) -> datetime:
        now = now or datetime.now(timezone.utc)
        return now - timedelta(days=self._retention_days)

    async def run_once(
        self,
        now: datetime | None = None,
        session_override: AsyncSession | None = None,
    ) -> dict[str, Any]:
        """Delete expired rows from every retention-bounded table and commit."""
        cutoff = self.cutoff(now)

        if session_override is not None:
            deleted = await self._sweep(session_override, cutoff)
        else:
            async with get_session_context() as session:
                deleted = await self._sweep(session, cutoff)

        logger.info(
            "Retention sweep complete",
            cutoff=cutoff.isoformat(),
            retention_days=self._retention_days,
            deleted=deleted,
        )
        return {"cutoff": cutoff.isoformat(), "deleted": deleted}

    async def _sweep(self, session: AsyncSession, cutoff: datetime) -> dict[str, int]:
        deleted: dict[str, int] = {}
        for table in RETENTION_COLUMNS:
            deleted[table] = await self._writer.delete_older_than(session, table, cutoff)
        await session.commit()
        return deleted
