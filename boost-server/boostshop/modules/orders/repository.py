"""Repository protocol for orders."""

from __future__ import annotations

from typing import Any, Iterable, Protocol, Sequence

from boostshop.db.models import Order as OrderModel


class OrderRepository(Protocol):
    async def insert(self, **values: Any) -> OrderModel:
        ...

    async def get(self, order_id: str) -> OrderModel | None:
        ...

    async def compare_and_set(
        self,
        order_id: str,
        *,
        expected: dict[str, Any],
        values: dict[str, Any],
    ) -> OrderModel | None:
        ...

    async def list_for_account(self, account_id: str, limit: int, offset: int) -> Sequence[OrderModel]:
        ...

    async def list_all(self, status: str | None, limit: int, offset: int) -> Sequence[OrderModel]:
        ...

    async def list_by_state(
        self,
        *,
        statuses: Iterable[str],
        submission_states: Iterable[str],
        limit: int,
    ) -> Sequence[OrderModel]:
        ...

    async def totals(self, charged_statuses: Iterable[str]) -> tuple[int, int, int]:
        ...
