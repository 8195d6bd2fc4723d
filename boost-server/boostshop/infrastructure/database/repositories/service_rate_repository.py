"""SQLAlchemy implementation for persisted service rates"""

from __future__ import annotations

from typing import Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from boostshop.db.models import ServiceRate


class SqlServiceRateRepository:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def list_rates(self) -> Sequence[ServiceRate]:
        result = await self.session.execute(select(ServiceRate))
        return result.scalars().all()

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
    ) -> ServiceRate:
        model = await self.session.get(ServiceRate, service_key)
        if model is None:
            model = ServiceRate(service_key=service_key)
            self.session.add(model)
        model.provider_service_id = provider_service_id
        model.name = name
        model.provider_rate = provider_rate
        model.rate_per_thousand = rate_per_thousand
        model.min_quantity = min_quantity
        model.max_quantity = max_quantity
        await self.session.flush()
        return model
