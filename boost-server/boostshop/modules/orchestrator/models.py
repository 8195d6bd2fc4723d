"""Results returned by the order orchestrator."""

from __future__ import annotations

from dataclasses import dataclass, field

from boostshop.modules.orders.models import Order


@dataclass(slots=True)
class PlaceOrderResult:
    order: Order
    replayed: bool = False


@dataclass(slots=True)
class ReconciliationReport:
    examined: int = 0
    changed: int = 0
    failed: int = 0
    order_ids: list[str] = field(default_factory=list)
