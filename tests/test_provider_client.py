"""Tests for the provider HTTP client."""

from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from localbus_api.config import Settings
from localbus_api.services.provider.client import ProviderClient, ProviderFetchError


def _patched_client(response: MagicMock | None = None, error: Exception | None = None):
    """Patch httpx.AsyncClient with a context-managed mock instance."""
    patcher = patch("localbus_api.services.provider.client.httpx.AsyncClient")
    mock_client = patcher.start()
    instance = AsyncMock()
    if error is not None:
        instance.get = AsyncMock(side_effect=error)
    else:
        instance.get = AsyncMock(return_value=response)
    instance.__aenter__ = AsyncMock(return_value=instance)
    instance.__aexit__ = AsyncMock(return_value=False)
    mock_client.return_value = instance
    return patcher, instance


def _response(payload: object = None, json_error: Exception | None = None) -> MagicMock:
    response = MagicMock()
    response.raise_for_status = lambda: None
    if json_error is not None:
        response.json.side_effect = json_error
    else:
        response.json.return_value = payload
    return response


class TestProviderClient:
    """Unit tests for ProviderClient."""

    @pytest.mark.asyncio
    async def test_fetch_json_success(self) -> None:
        client = ProviderClient("https://api.example.com/v1/", {"X-API-KEY": "k"})
        patcher, instance = _patched_client(_response([{"route_id": 7}]))
        try:
            payload = await client.fetch_json("routes")
        finally:
            patcher.stop()

        assert payload == [{"route_id": 7}]
        instance.get.assert_awaited_once_with(
            "https://api.example.com/v1/routes", headers={"X-API-KEY": "k"}
        )

    @pytest.mark.asyncio
    async def test_non_2xx_raises(self) -> None:
        request = httpx.Request("GET", "https://api.example.com/routes")
        error_response = httpx.Response(503, request=request)
        response = MagicMock()
        response.raise_for_status.side_effect = httpx.HTTPStatusError(
            "unavailable", request=request, response=error_response
        )
        client = ProviderClient("https://api.example.com", {})
        patcher, _ = _patched_client(response)
        try:
            with pytest.raises(ProviderFetchError, match="503"):
                await client.fetch_json("routes")
        finally:
            patcher.stop()

    @pytest.mark.asyncio
    async def test_transport_error_raises(self) -> None:
        client = ProviderClient("https://api.example.com", {})
        patcher, _ = _patched_client(error=httpx.ConnectError("refused"))
        try:
            with pytest.raises(ProviderFetchError):
                await client.fetch_json("vehicles")
        finally:
            patcher.stop()

    @pytest.mark.asyncio
    async def test_invalid_json_raises(self) -> None:
        client = ProviderClient("https://api.example.com", {})
        patcher, _ = _patched_client(_response(json_error=ValueError("bad json")))
        try:
            with pytest.raises(ProviderFetchError, match="invalid JSON"):
                await client.fetch_json("stops")
        finally:
            patcher.stop()

    @pytest.mark.asyncio
    async def test_missing_base_url_raises(self) -> None:
        client = ProviderClient("", {})
        with pytest.raises(ProviderFetchError, match="not configured"):
            await client.fetch_json("routes")

    @pytest.mark.asyncio
    async def test_fetch_list_filters_non_objects(self) -> None:
        client = ProviderClient("https://api.example.com", {})
        with patch.object(
            client, "fetch_json", AsyncMock(return_value=[{"id": 1}, "junk", 3, {"id": 2}])
        ):
            rows = await client.fetch_list("vehicles")
        assert rows == [{"id": 1}, {"id": 2}]

    @pytest.mark.asyncio
    async def test_fetch_list_rejects_objects(self) -> None:
        client = ProviderClient("https://api.example.com", {})
        with patch.object(client, "fetch_json", AsyncMock(return_value={"error": "x"})):
            with pytest.raises(ProviderFetchError, match="not a list"):
                await client.fetch_list("vehicles")

    def test_from_settings_headers(self) -> None:
        settings = Settings(
            transit_api_key="secret",
            transit_agency_id="9",
            TRANSIT_API_BASE_URL="https://api.example.com",
            provider_timeout_sec=5,
        )
        client = ProviderClient.from_settings(settings)

        assert client.base_url == "https://api.example.com"
        assert client.timeout_sec == 5
        assert client.headers == {
            "X-Agency-Id": "9",
            "Accept": "application/json",
            "X-API-KEY": "secret",
        }
