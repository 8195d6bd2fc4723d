"""Providers for the container-owned services."""

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from boostshop.core.config import SecuritySettings
from boostshop.core.container import ApplicationContainer
from boostshop.modules.catalog import CatalogService
from boostshop.modules.deposits import DepositService
from boostshop.modules.orchestrator import OrderOrchestrator

from .database import get_db_session


def get_container(request: Request) -> ApplicationContainer:
    return request.app.state.container


def get_security_settings(container: ApplicationContainer = Depends(get_container)) -> SecuritySettings:
    return container.settings.security


def get_catalog(container: ApplicationContainer = Depends(get_container)) -> CatalogService:
    return container.catalog


def get_orchestrator(container: ApplicationContainer = Depends(get_container)) -> OrderOrchestrator:
    return container.orchestrator


def get_deposit_service(
    db: AsyncSession = Depends(get_db_session),
    container: ApplicationContainer = Depends(get_container),
) -> DepositService:
    return DepositService.with_session(
        db,
        container.settings.payments,
        gateway=container.gateway,
        currency=container.catalog.currency,
    )


__all__ = [
    "get_catalog",
    "get_container",
    "get_deposit_service",
    "get_orchestrator",
    "get_security_settings",
]
