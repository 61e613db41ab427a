"""Tests for the provider proxy endpoint."""

from __future__ import annotations

from unittest.mock import AsyncMock, patch

import pytest
from httpx import AsyncClient

from localbus_api.services.engine import get_transit_engine
from localbus_api.services.provider.client import ProviderClient, ProviderFetchError

from .fixtures.provider_fixture import FETCHED_AT, ROUTES, STOP_42, raw_vehicle


class TestProxy:
    @pytest.mark.asyncio
    async def test_unknown_resource_is_404(self, client: AsyncClient) -> None:
        response = await client.get("/proxy/agencies")
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_reference_resource_is_passed_through(self, client: AsyncClient) -> None:
        with patch.object(ProviderClient, "fetch_json", AsyncMock(return_value=ROUTES)) as fetch:
            response = await client.get("/proxy/routes")

        assert response.status_code == 200
        assert response.json() == ROUTES
        fetch.assert_awaited_once_with("routes")

    @pytest.mark.asyncio
    async def test_vehicles_served_from_last_poll(self, client: AsyncClient) -> None:
        vehicles = [raw_vehicle(STOP_42)]
        get_transit_engine().record_vehicles(FETCHED_AT, vehicles)

        with patch.object(ProviderClient, "fetch_json", AsyncMock()) as fetch:
            response = await client.get("/proxy/vehicles")

        assert response.status_code == 200
        assert response.json() == {"fetchedAt": FETCHED_AT.isoformat(), "vehicles": vehicles}
        fetch.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_vehicles_fetched_when_last_poll_was_empty(self, client: AsyncClient) -> None:
        get_transit_engine().record_vehicles(FETCHED_AT, [])
        fresh = [raw_vehicle(STOP_42, vehicle_id=777)]

        with patch.object(ProviderClient, "fetch_json", AsyncMock(return_value=fresh)) as fetch:
            response = await client.get("/proxy/vehicles")

        assert response.status_code == 200
        assert response.json() == fresh
        fetch.assert_awaited_once_with("vehicles")

    @pytest.mark.asyncio
    async def test_provider_failure_is_502(self, client: AsyncClient) -> None:
        error = ProviderFetchError("Provider error stops: 500")
        with patch.object(ProviderClient, "fetch_json", AsyncMock(side_effect=error)):
            response = await client.get("/proxy/stops")

        assert response.status_code == 502
        assert "500" in response.json()["detail"]
