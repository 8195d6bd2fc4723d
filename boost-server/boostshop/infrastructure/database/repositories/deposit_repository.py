"""SQLAlchemy implementation for the deposit repository"""

from __future__ import annotations

from typing import Any, Sequence

from sqlalchemy import desc, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from boostshop.db.models import Deposit


class SqlDepositRepository:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def create(self, **values: Any) -> Deposit:
        deposit = Deposit(**values)
        self.session.add(deposit)
        await self.session.flush()
        await self.session.refresh(deposit)
        return deposit

    async def get(self, deposit_id: str) -> Deposit | None:
        stmt = select(Deposit).where(Deposit.id == deposit_id).execution_options(populate_existing=True)
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def get_by_ref(self, channel: str, external_ref: str) -> Deposit | None:
        stmt = (
            select(Deposit)
            .where(Deposit.channel == channel, Deposit.external_ref == external_ref)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def update_status(
        self,
        deposit_id: str,
        *,
        expected_status: str,
        values: dict[str, Any],
    ) -> Deposit | None:
        stmt = (
            update(Deposit)
            .where(Deposit.id == deposit_id, Deposit.status == expected_status)
            .values(**values)
            .execution_options(synchronize_session="fetch")
            .returning(Deposit)
        )
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def count_completed(self, account_id: str) -> int:
        stmt = (
            select(func.count())
            .select_from(Deposit)
            .where(Deposit.account_id == account_id, Deposit.status == "completed")
        )
        result = await self.session.execute(stmt)
        return int(result.scalar_one())

    async def list_for_account(
        self,
        account_id: str,
        limit: int,
        offset: int,
        status: str | None = None,
    ) -> Sequence[Deposit]:
        stmt = select(Deposit).where(Deposit.account_id == account_id)
        if status and status != "all":
            stmt = stmt.where(Deposit.status == status)
        stmt = stmt.order_by(desc(Deposit.created_at)).offset(offset).limit(limit)
        result = await self.session.execute(stmt)
        return result.scalars().all()

    async def list_all(self, status: str | None, limit: int, offset: int) -> Sequence[Deposit]:
        stmt = select(Deposit)
        if status and status != "all":
            stmt = stmt.where(Deposit.status == status)
        stmt = stmt.order_by(desc(Deposit.created_at)).offset(offset).limit(limit)
        result = await self.session.execute(stmt)
        return result.scalars().all()
