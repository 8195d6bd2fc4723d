"""Upstream SMM provider integration."""

from .client import ProviderClient, SmmProviderClient
from .exceptions import (
    ProviderError,
    ProviderRejectedError,
    ProviderResponseError,
    ProviderTimeoutError,
    ProviderUnreachableError,
)
from .models import ProviderBalance, ProviderStatus, map_provider_status

__all__ = [
    "ProviderBalance",
    "ProviderClient",
    "ProviderError",
    "ProviderRejectedError",
    "ProviderResponseError",
    "ProviderStatus",
    "ProviderTimeoutError",
    "ProviderUnreachableError",
    "SmmProviderClient",
    "map_provider_status",
]
