"""Deposit repository interface."""

from __future__ import annotations

from typing import Any, Protocol, Sequence

from boostshop.db.models import Deposit as DepositModel


class DepositRepository(Protocol):
    async def create(self, **values: Any) -> DepositModel:
        ...

    async def get(self, deposit_id: str) -> DepositModel | None:
        ...

    async def get_by_ref(self, channel: str, external_ref: str) -> DepositModel | None:
        ...

    async def update_status(
        self,
        deposit_id: str,
        *,
        expected_status: str,
        values: dict[str, Any],
    ) -> DepositModel | None:
        ...

    async def count_completed(self, account_id: str) -> int:
        ...

    async def list_for_account(
        self, account_id: str, limit: int, offset: int, status: str | None = None
    ) -> Sequence[DepositModel]:
        ...

    async def list_all(self, status: str | None, limit: int, offset: int) -> Sequence[DepositModel]:
        ...
