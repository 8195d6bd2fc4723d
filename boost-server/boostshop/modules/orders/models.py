"""Domain representations for engagement orders."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional

from boostshop.core.money import from_cents


class OrderStatus:
    PENDING_PAYMENT = "PendingPayment"
    PROCESSING = "Processing"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"
    FAILED = "Failed"

    ALL = frozenset({PENDING_PAYMENT, PROCESSING, COMPLETED, CANCELLED, FAILED})
    TERMINAL = frozenset({COMPLETED, CANCELLED, FAILED})
    # the order price is debited from the wallet in these statuses
    CHARGED = frozenset({PROCESSING, COMPLETED})


# Forward-only edges of the order state machine.
ALLOWED_TRANSITIONS: dict[str, frozenset[str]] = {
    OrderStatus.PENDING_PAYMENT: frozenset(
        {OrderStatus.PROCESSING, OrderStatus.CANCELLED, OrderStatus.FAILED}
    ),
    OrderStatus.PROCESSING: frozenset({OrderStatus.COMPLETED, OrderStatus.FAILED}),
    OrderStatus.COMPLETED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
    OrderStatus.FAILED: frozenset(),
}


def can_transition(current: str, target: str) -> bool:
    return target in ALLOWED_TRANSITIONS.get(current, frozenset())


class SubmissionState:
    """Where the upstream submission of an order stands."""

    PENDING = "pending"
    NOT_SENT = "not_sent"
    UNCONFIRMED = "unconfirmed"
    MANUAL_REVIEW = "manual_review"
    ACCEPTED = "accepted"
    REJECTED = "rejected"

    # the provider may or may not hold this order
    AWAITING_CONFIRMATION = frozenset({NOT_SENT, UNCONFIRMED, MANUAL_REVIEW})


@dataclass(slots=True)
class NewOrder:
    id: str
    account_id: str
    service_key: str
    provider_service_id: str
    service_name: str
    link: str
    quantity: int
    price_cents: int
    currency: str
    cost_cents: int = 0

@dataclass(slots=True)
class Order:
    id: str
    account_id: str
    service_key: str
    provider_service_id: str
    service_name: str
    link: str
    quantity: int
    price_cents: int
    currency: str
    status: str
    submission_state: str
    upstream_ref: Optional[str]
    submit_attempts: int
    last_error: Optional[str]
    start_count: Optional[int]
    remains: Optional[int]
    created_at: Optional[datetime]
    updated_at: Optional[datetime]
    completed_at: Optional[datetime]
    cost_cents: int = 0

    @property
    def price(self) -> Decimal:
        return from_cents(self.price_cents)

    @property
    def is_terminal(self) -> bool:
        return self.status in OrderStatus.TERMINAL

    @property
    def awaiting_confirmation(self) -> bool:
        return (
            self.status == OrderStatus.PENDING_PAYMENT
            and self.submission_state in SubmissionState.AWAITING_CONFIRMATION
        )


@dataclass(slots=True)
class SalesTotals:
    """Order count and the money taken on charged orders."""

    order_count: int
    revenue_cents: int
    cost_cents: int

    @property
    def revenue(self) -> Decimal:
        return from_cents(self.revenue_cents)

    @property
    def profit(self) -> Decimal:
        return from_cents(self.revenue_cents - self.cost_cents)
