"""Reusable FastAPI dependencies."""

from .account import get_account_service, get_wallet_service
from .database import get_db_session
from .services import (
    get_catalog,
    get_container,
    get_deposit_service,
    get_orchestrator,
    get_security_settings,
)

__all__ = [
    "get_account_service",
    "get_catalog",
    "get_container",
    "get_db_session",
    "get_deposit_service",
    "get_orchestrator",
    "get_security_settings",
    "get_wallet_service",
]
