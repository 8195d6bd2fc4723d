"""SQLAlchemy implementation for the order record store"""

from __future__ import annotations

from typing import Any, Iterable, Sequence

from sqlalchemy import case, desc, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from boostshop.db.models import Order


class SqlOrderRepository:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def insert(self, **values: Any) -> Order:
        order = Order(**values)
        self.session.add(order)
        await self.session.flush()
        await self.session.refresh(order)
        return order

    async def get(self, order_id: str) -> Order | None:
        stmt = (
            select(Order)
            .where(Order.id == order_id)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def compare_and_set(
        self,
        order_id: str,
        *,
        expected: dict[str, Any],
        values: dict[str, Any],
    ) -> Order | None:
        stmt = update(Order).where(Order.id == order_id)
        for column, value in expected.items():
            attr = getattr(Order, column)
            stmt = stmt.where(attr.is_(None) if value is None else attr == value)
        stmt = (
            stmt.values(**values)
            .execution_options(synchronize_session="fetch")
            .returning(Order)
        )
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def list_for_account(self, account_id: str, limit: int, offset: int) -> Sequence[Order]:
        stmt = (
            select(Order)
            .where(Order.account_id == account_id)
            .order_by(desc(Order.created_at))
            .offset(offset)
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return result.scalars().all()

    async def list_all(self, status: str | None, limit: int, offset: int) -> Sequence[Order]:
        stmt = select(Order)
        if status and status != "all":
            stmt = stmt.where(Order.status == status)
        stmt = stmt.order_by(desc(Order.created_at)).offset(offset).limit(limit)
        result = await self.session.execute(stmt)
        return result.scalars().all()

    async def list_by_state(
        self,
        *,
        statuses: Iterable[str],
        submission_states: Iterable[str],
        limit: int,
    ) -> Sequence[Order]:
        stmt = (
            select(Order)
            .where(Order.status.in_(list(statuses)))
            .where(Order.submission_state.in_(list(submission_states)))
            .order_by(Order.created_at)
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return result.scalars().all()

    async def totals(self, charged_statuses: Iterable[str]) -> tuple[int, int, int]:
        """Return (all orders, revenue cents, provider cost cents) over charged orders."""
        charged = Order.status.in_(list(charged_statuses))
        stmt = select(
            func.count(Order.id),
            func.coalesce(func.sum(case((charged, Order.price_cents), else_=0)), 0),
            func.coalesce(func.sum(case((charged, Order.cost_cents), else_=0)), 0),
        )
        count, revenue, cost = (await self.session.execute(stmt)).one()
        return int(count), int(revenue), int(cost)
