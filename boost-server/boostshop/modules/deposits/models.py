"""Domain model for wallet deposits."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional

from boostshop.core.money import from_cents


class DepositStatus:
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class DepositChannel:
    PAYPAL = "paypal"
    GCASH = "gcash"


@dataclass(slots=True)
class Deposit:
    id: str
    account_id: str
    amount_cents: int
    bonus_cents: int
    currency: str
    status: str
    channel: str
    external_ref: Optional[str]
    local_amount: Optional[Decimal]
    local_currency: Optional[str]
    created_at: Optional[datetime]
    confirmed_at: Optional[datetime]

    @property
    def amount(self) -> Decimal:
        return from_cents(self.amount_cents)

    @property
    def bonus(self) -> Decimal:
        return from_cents(self.bonus_cents)


@dataclass(slots=True)
class PayPalCheckout:
    """A pending PayPal deposit and where the buyer approves it."""

    deposit: Deposit
    approve_url: Optional[str]
