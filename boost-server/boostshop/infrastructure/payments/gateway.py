"""Payment gateway contract used by the deposit flow."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional, Protocol


class PaymentGatewayError(Exception):
    """The gateway could not be reached or answered unexpectedly."""


@dataclass(slots=True, frozen=True)
class CreatedPayment:
    order_ref: str
    status: str
    approve_url: Optional[str] = None


@dataclass(slots=True, frozen=True)
class CaptureResult:
    order_ref: str
    status: str
    amount: Optional[Decimal] = None
    currency: Optional[str] = None
    capture_id: Optional[str] = None

    @property
    def completed(self) -> bool:
        return self.status == "COMPLETED"


class PaymentGateway(Protocol):
    async def create_order(self, amount: Decimal, currency: str) -> CreatedPayment:
        ...

    async def capture_order(self, order_ref: str) -> CaptureResult:
        ...

    async def aclose(self) -> None:
        ...
