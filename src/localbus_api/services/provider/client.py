"""HTTP client for the transit data provider's JSON endpoints."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import httpx

from localbus_api.logging import get_logger

if TYPE_CHECKING:
    from localbus_api.config import Settings

logger = get_logger(__name__)

DEFAULT_TIMEOUT_SEC = 30.0

REFERENCE_RESOURCES = ("routes", "trips", "stops", "stop_times", "shapes")
LIVE_RESOURCE = "vehicles"
RESOURCES = frozenset((LIVE_RESOURCE, *REFERENCE_RESOURCES))


class ProviderFetchError(Exception):
    """Raised when a provider resource cannot be fetched or decoded."""


class ProviderClient:
    """Fetches reference and live resources from the provider.

    A fetch is a single GET; there is no retry. Callers run on fixed
    schedules and simply try again on their next cycle.
    """

    def __init__(
        self,
        base_url: str,
        headers: dict[str, str],
        timeout_sec: float = DEFAULT_TIMEOUT_SEC,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.headers = headers
        self.timeout_sec = timeout_sec

    @classmethod
    def from_settings(cls, settings: Settings) -> ProviderClient:
        return cls(
            base_url=settings.transit_api_base_url,
            headers=settings.provider_headers,
            timeout_sec=settings.provider_timeout_sec,
        )

    async def fetch_json(self, resource: str) -> Any:
        """GET ``{base_url}/{resource}`` and return the decoded JSON body.

        Raises:
            ProviderFetchError: On a missing base URL, transport failure,
                non-2xx status or a body that is not JSON.
        """
        if not self.base_url:
            msg = "Provider base URL is not configured"
            raise ProviderFetchError(msg)

        url = f"{self.base_url}/{resource}"
        try:
            async with httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout_sec),
                follow_redirects=True,
            ) as client:
                response = await client.get(url, headers=self.headers)
                response.raise_for_status()
                payload = response.json()
        except httpx.HTTPStatusError as exc:
            msg = f"Provider error {resource}: {exc.response.status_code}"
            logger.warning(msg, resource=resource, status_code=exc.response.status_code)
            raise ProviderFetchError(msg) from exc
        except httpx.RequestError as exc:
            msg = f"Provider request failed for {resource}: {exc}"
            logger.warning(msg, resource=resource, error=str(exc))
            raise ProviderFetchError(msg) from exc
        except ValueError as exc:
            msg = f"Provider returned invalid JSON for {resource}"
            logger.warning(msg, resource=resource, error=str(exc))
            raise ProviderFetchError(msg) from exc

        logger.debug("Provider resource fetched", resource=resource)
        return payload

    async def fetch_list(self, resource: str) -> list[dict[str, Any]]:
        """Fetch a resource that must be a JSON array of objects."""
        payload = await self.fetch_json(resource)
        if not isinstance(payload, list):
            msg = f"Provider resource {resource} is not a list"
            raise ProviderFetchError(msg)
        return [row for row in payload if isinstance(row, dict)]
