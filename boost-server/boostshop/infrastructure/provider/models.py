"""Values exchanged with the upstream provider."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from boostshop.modules.orders.models import OrderStatus

_STATUS_MAP = {
    "pending": OrderStatus.PROCESSING,
    "in progress": OrderStatus.PROCESSING,
    "processing": OrderStatus.PROCESSING,
    "completed": OrderStatus.COMPLETED,
    "partial": OrderStatus.COMPLETED,
    "canceled": OrderStatus.FAILED,
    "cancelled": OrderStatus.FAILED,
    "refunded": OrderStatus.FAILED,
    "fail": OrderStatus.FAILED,
    "failed": OrderStatus.FAILED,
}


def map_provider_status(raw: str) -> Optional[str]:
    """Translate a provider status string; ``None`` for anything unrecognised."""
    return _STATUS_MAP.get((raw or "").strip().lower())


@dataclass(slots=True, frozen=True)
class ProviderStatus:
    ref: str
    raw_status: str
    charge: Optional[Decimal] = None
    start_count: Optional[int] = None
    remains: Optional[int] = None
    currency: Optional[str] = None

    @property
    def order_status(self) -> Optional[str]:
        return map_provider_status(self.raw_status)


@dataclass(slots=True, frozen=True)
class ProviderBalance:
    balance: Decimal
    currency: str
