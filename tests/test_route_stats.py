"""Tests for route first-seen-of-day statistics."""

from __future__ import annotations

from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock
from zoneinfo import ZoneInfo

import pytest

from localbus_api.services.analytics.route_stats import (
    load_route_start_stats,
    summarize_route_starts,
)

UTC = timezone.utc


def _day(day: int, hour: int, minute: int) -> datetime:
    return datetime(2026, 10, day, hour, minute, tzinfo=UTC)


class TestSummarizeRouteStarts:
    def test_no_samples_returns_none(self) -> None:
        assert summarize_route_starts([], UTC) is None
        assert summarize_route_starts([None], UTC) is None

    def test_single_sample(self) -> None:
        stats = summarize_route_starts([_day(1, 5, 42)], UTC)

        assert stats is not None
        assert stats.to_dict() == {"samples": 1, "p50": "05:42", "p90": "05:42", "p99": "05:42"}

    def test_percentiles(self) -> None:
        values = [_day(d, 5, 30 + d) for d in range(1, 11)]  # 05:31 .. 05:40
        stats = summarize_route_starts(values, UTC)

        assert stats is not None
        assert stats.samples == 10
        assert stats.p50 == "05:36"  # 335.5 rounds up
        assert stats.p90 == "05:39"  # 339.1
        assert stats.p99 == "05:40"  # 339.91

    def test_local_timezone(self) -> None:
        stats = summarize_route_starts([_day(5, 10, 0)], ZoneInfo("America/Toronto"))
        assert stats is not None
        assert stats.p50 == "06:00"


class TestLoadRouteStartStats:
    @pytest.mark.asyncio
    async def test_queries_newest_first_with_limit(self) -> None:
        result = MagicMock()
        result.fetchall.return_value = [(_day(2, 6, 0),), (_day(1, 6, 10),)]
        session = AsyncMock()
        session.execute = AsyncMock(return_value=result)

        stats = await load_route_start_stats(session, 7, tz=UTC, max_samples=60)

        stmt, params = session.execute.call_args.args
        assert "ORDER BY day DESC" in str(stmt)
        assert params == {"route_id": 7, "lim": 60}
        assert stats is not None
        assert stats.samples == 2
        assert stats.p50 == "06:05"

    @pytest.mark.asyncio
    async def test_no_rows(self) -> None:
        result = MagicMock()
        result.fetchall.return_value = []
        session = AsyncMock()
        session.execute = AsyncMock(return_value=result)

        assert await load_route_start_stats(session, 7) is None
