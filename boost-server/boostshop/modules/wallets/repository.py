"""Repository protocol for ledger operations."""

from __future__ import annotations

from typing import Protocol, Sequence

from boostshop.db.models import Account as AccountModel, LedgerEntry as LedgerEntryModel


class WalletRepository(Protocol):
    async def get_account(self, account_id: str) -> AccountModel | None:
        ...

    async def apply(
        self,
        account_id: str,
        *,
        balance_delta: int,
        held_delta: int,
        min_available: int | None = None,
        min_held: int | None = None,
    ) -> tuple[int, int] | None:
        ...

    async def add_entry(
        self,
        *,
        account_id: str,
        type: str,
        amount_cents: int,
        balance_after_cents: int,
        held_after_cents: int,
        order_id: str | None = None,
        deposit_id: str | None = None,
        description: str | None = None,
    ) -> LedgerEntryModel:
        ...

    async def list_entries(
        self,
        account_id: str,
        limit: int,
        offset: int,
        order_id: str | None = None,
    ) -> Sequence[LedgerEntryModel]:
        ...
