"""SQLAlchemy implementation for the balance ledger"""

from __future__ import annotations

from typing import Sequence

from sqlalchemy import desc, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from boostshop.db.models import Account, LedgerEntry


class SqlWalletRepository:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_account(self, account_id: str) -> Account | None:
        stmt = (
            select(Account)
            .where(Account.id == account_id)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def apply(
        self,
        account_id: str,
        *,
        balance_delta: int,
        held_delta: int,
        min_available: int | None = None,
        min_held: int | None = None,
    ) -> tuple[int, int] | None:
        """Apply deltas only when the guards hold; ``None`` means nothing changed."""
        stmt = update(Account).where(Account.id == account_id)
        if min_available is not None:
            stmt = stmt.where(Account.balance_cents - Account.held_cents >= min_available)
        if min_held is not None:
            stmt = stmt.where(Account.held_cents >= min_held)
        if balance_delta < 0:
            stmt = stmt.where(Account.balance_cents + balance_delta >= 0)
        stmt = (
            stmt.values(
                balance_cents=Account.balance_cents + balance_delta,
                held_cents=Account.held_cents + held_delta,
            )
            .execution_options(synchronize_session=False)
            .returning(Account.balance_cents, Account.held_cents)
        )
        result = await self.session.execute(stmt)
        row = result.first()
        if row is None:
            return None
        return int(row[0]), int(row[1])

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
    ) -> LedgerEntry:
        entry = LedgerEntry(
            account_id=account_id,
            order_id=order_id,
            deposit_id=deposit_id,
            type=type,
            amount_cents=amount_cents,
            balance_after_cents=balance_after_cents,
            held_after_cents=held_after_cents,
            description=description,
        )
        self.session.add(entry)
        await self.session.flush()
        return entry

    async def list_entries(
        self,
        account_id: str,
        limit: int,
        offset: int,
        order_id: str | None = None,
    ) -> Sequence[LedgerEntry]:
        stmt = select(LedgerEntry).where(LedgerEntry.account_id == account_id)
        if order_id is not None:
            stmt = stmt.where(LedgerEntry.order_id == order_id)
        stmt = stmt.order_by(desc(LedgerEntry.created_at)).offset(offset).limit(limit)
        result = await self.session.execute(stmt)
        return result.scalars().all()
