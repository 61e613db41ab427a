"""Pytest configuration and fixtures."""

from collections.abc import AsyncGenerator, Generator
from typing import Any
from unittest.mock import AsyncMock, patch

import pytest
from httpx import ASGITransport, AsyncClient

from localbus_api.main import app
from localbus_api.services.engine import reset_transit_engine
from localbus_api.services.scheduler import reset_scheduler


@pytest.fixture(autouse=True)
def _reset_singletons() -> Generator[None, None, None]:
    """Fresh engine state and scheduler for every test."""
    reset_transit_engine()
    reset_scheduler()
    yield
    reset_transit_engine()
    reset_scheduler()


@pytest.fixture
def mock_db_connection() -> Any:
    """Mock database connection check."""
    with patch("localbus_api.main.check_database_connection", new_callable=AsyncMock) as mock:
        mock.return_value = True
        yield mock


@pytest.fixture
async def client(mock_db_connection: Any) -> AsyncGenerator[AsyncClient, None]:  # noqa: ARG001
    """Async HTTP client for testing."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
