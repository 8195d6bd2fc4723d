"""SQLAlchemy persistence for accounts."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional, Sequence

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from boostshop.db.models import Account as AccountModel
from boostshop.modules.accounts.models import Account


class SqlAccountRepository:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_id(self, account_id: str) -> Account | None:
        model = await self._session.get(AccountModel, account_id, populate_existing=True)
        return self._to_domain(model) if model else None

    async def get_by_email(self, email: str) -> Account | None:
        result = await self._session.execute(select(AccountModel).where(AccountModel.email == email))
        model = result.scalar_one_or_none()
        return self._to_domain(model) if model else None

    async def list_accounts(
        self, limit: int = 50, offset: int = 0, role: Optional[str] = None
    ) -> Sequence[Account]:
        stmt = select(AccountModel).order_by(AccountModel.created_at.desc(), AccountModel.email)
        if role is not None:
            stmt = stmt.where(AccountModel.role == role)
        result = await self._session.execute(stmt.limit(limit).offset(offset))
        return [self._to_domain(model) for model in result.scalars()]

    async def count_accounts(self) -> int:
        result = await self._session.execute(select(func.count(AccountModel.id)))
        return int(result.scalar_one())

    async def exists_with_roles(self, roles: frozenset[str]) -> bool:
        stmt = select(AccountModel.id).where(AccountModel.role.in_(sorted(roles))).limit(1)
        result = await self._session.execute(stmt)
        return result.first() is not None

    async def create_account(
        self,
        *,
        email: str,
        password_hash: str,
        role: str,
        first_name: str | None,
        last_name: str | None,
        is_active: bool,
    ) -> Account:
        # wallets always start empty; funds arrive through the ledger
        model = AccountModel(
            email=email,
            password_hash=password_hash,
            role=role,
            first_name=first_name,
            last_name=last_name,
            is_active=is_active,
            balance_cents=0,
            held_cents=0,
        )
        self._session.add(model)
        await self._session.flush()
        await self._session.refresh(model)
        return self._to_domain(model)

    async def update(self, account_id: str, **values: Any) -> Account | None:
        stmt = (
            update(AccountModel)
            .where(AccountModel.id == account_id)
            .values(**values)
            .returning(AccountModel)
            .execution_options(synchronize_session="fetch")
        )
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return self._to_domain(model) if model else None

    async def set_last_login(self, account_id: str, timestamp: datetime) -> None:
        await self._session.execute(
            update(AccountModel).where(AccountModel.id == account_id).values(last_login_at=timestamp)
        )

    @staticmethod
    def _to_domain(model: AccountModel) -> Account:
        return Account(
            id=model.id,
            email=model.email,
            role=model.role,
            is_active=bool(model.is_active),
            password_hash=model.password_hash,
            currency=model.currency,
            first_name=model.first_name,
            last_name=model.last_name,
            created_at=model.created_at,
            updated_at=model.updated_at,
            last_login_at=model.last_login_at,
        )
