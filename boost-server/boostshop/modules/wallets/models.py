"""Domain models for ledger operations."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional

from boostshop.core.money import from_cents


class EntryType:
    HOLD = "hold"
    RELEASE = "release"
    DEBIT = "debit"
    CREDIT = "credit"
    REFUND = "refund"
    BONUS = "bonus"
    ADJUSTMENT = "adjustment"


@dataclass(slots=True)
class WalletSnapshot:
    account_id: str
    balance_cents: int
    held_cents: int
    currency: str
    updated_at: Optional[datetime] = None

    @property
    def available_cents(self) -> int:
        return self.balance_cents - self.held_cents

    @property
    def balance(self) -> Decimal:
        return from_cents(self.balance_cents)

    @property
    def held(self) -> Decimal:
        return from_cents(self.held_cents)

    @property
    def available(self) -> Decimal:
        return from_cents(self.available_cents)


@dataclass(slots=True)
class LedgerEntryRecord:
    id: str
    account_id: str
    order_id: Optional[str]
    deposit_id: Optional[str]
    type: str
    amount_cents: int
    balance_after_cents: int
    held_after_cents: int
    description: Optional[str]
    created_at: Optional[datetime]
