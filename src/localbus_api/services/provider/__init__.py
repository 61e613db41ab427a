"""Transit data provider access: HTTP client and payload normalization."""

from localbus_api.services.provider.client import (
    LIVE_RESOURCE,
    REFERENCE_RESOURCES,
    RESOURCES,
    ProviderClient,
    ProviderFetchError,
)
from localbus_api.services.provider.normalizer import (
    NormalizationError,
    ProviderNormalizer,
    VehiclePosition,
)

__all__ = [
    "LIVE_RESOURCE",
    "REFERENCE_RESOURCES",
    "RESOURCES",
    "NormalizationError",
    "ProviderClient",
    "ProviderFetchError",
    "ProviderNormalizer",
    "VehiclePosition",
]
