"""Dependency container wiring the long-lived application services."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from boostshop.core.config import Settings
from boostshop.infrastructure.database.repositories.service_rate_repository import SqlServiceRateRepository
from boostshop.infrastructure.database.session import get_session_factory
from boostshop.infrastructure.payments import PaymentGateway, PayPalGateway
from boostshop.infrastructure.provider import ProviderClient, SmmProviderClient
from boostshop.modules.catalog import CatalogService
from boostshop.modules.orchestrator import OrderOrchestrator
from boostshop.workers import ReconciliationWorker

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ApplicationContainer:
    settings: Settings
    session_factory: async_sessionmaker[AsyncSession]
    catalog: CatalogService
    provider: ProviderClient
    orchestrator: OrderOrchestrator
    worker: ReconciliationWorker
    gateway: Optional[PaymentGateway] = None

    @classmethod
    def build(
        cls,
        settings: Settings,
        *,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
        provider: ProviderClient | None = None,
        gateway: PaymentGateway | None = None,
    ) -> "ApplicationContainer":
        session_factory = session_factory or get_session_factory()
        catalog = CatalogService(settings.catalog)
        provider = provider or SmmProviderClient(settings.provider)
        if gateway is None and settings.payments.paypal_client_id:
            gateway = PayPalGateway(settings.payments)
        orchestrator = OrderOrchestrator(session_factory, catalog, provider, settings.reconciliation)
        worker = ReconciliationWorker(orchestrator, settings.reconciliation.interval_seconds)
        return cls(
            settings=settings,
            session_factory=session_factory,
            catalog=catalog,
            provider=provider,
            orchestrator=orchestrator,
            worker=worker,
            gateway=gateway,
        )

    async def startup(self) -> None:
        async with self.session_factory() as session:
            applied = await self.catalog.load_rates(SqlServiceRateRepository(session))
        if applied:
            logger.info("Loaded %d stored service rates", applied)
        if self.settings.reconciliation.enabled:
            self.worker.start()

    async def shutdown(self) -> None:
        await self.worker.stop()
        await self.provider.aclose()
        if self.gateway is not None:
            await self.gateway.aclose()


__all__ = ["ApplicationContainer"]
