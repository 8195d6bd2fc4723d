"""Repository protocol for persisted service rates."""

from __future__ import annotations

from typing import Protocol, Sequence

from boostshop.db.models import ServiceRate as ServiceRateModel

from .models import ProviderRate


class ServiceRateRepository(Protocol):
    async def list_rates(self) -> Sequence[ServiceRateModel]:
        ...

    async def upsert(
        self,
        *,
        service_key: str,
        provider_service_id: str,
        name: str,
        provider_rate: str,
        rate_per_thousand: str,
        min_quantity: int,
        max_quantity: int,
    ) -> ServiceRateModel:
        ...


class RateSource(Protocol):
    """Anything that can list provider prices, usually the provider client."""

    async def list_services(self) -> Sequence[ProviderRate]:
        ...
