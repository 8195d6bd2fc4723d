"""Balance ledger service.

Every mutation is one conditional ``UPDATE`` on the account row, so the
database serializes concurrent read-modify-write cycles per account and a
failed precondition leaves the row untouched. Each successful mutation is
followed by a ``ledger_entries`` row in the same transaction.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import NoReturn

from sqlalchemy.ext.asyncio import AsyncSession

from boostshop.db.models import Account as AccountModel, LedgerEntry as LedgerEntryModel
from boostshop.infrastructure.database.repositories.wallet_repository import SqlWalletRepository

from .exceptions import HoldMismatchError, InsufficientFundsError, WalletAccountNotFoundError
from .models import EntryType, LedgerEntryRecord, WalletSnapshot
from .repository import WalletRepository

logger = logging.getLogger(__name__)


def _require_positive(amount_cents: int) -> None:
    if amount_cents <= 0:
        raise ValueError(f"Ledger amounts must be positive, got {amount_cents}")


@dataclass(slots=True)
class WalletService:
    repository: WalletRepository

    @classmethod
    def with_session(cls, session: AsyncSession) -> "WalletService":
        return cls(SqlWalletRepository(session))

    async def snapshot(self, account_id: str) -> WalletSnapshot:
        account = await self.repository.get_account(account_id)
        if account is None:
            raise WalletAccountNotFoundError(account_id)
        return self._to_snapshot(account)

    async def credit(
        self,
        *,
        account_id: str,
        amount_cents: int,
        entry_type: str = EntryType.CREDIT,
        deposit_id: str | None = None,
        order_id: str | None = None,
        description: str | None = None,
    ) -> WalletSnapshot:
        _require_positive(amount_cents)
        state = await self.repository.apply(account_id, balance_delta=amount_cents, held_delta=0)
        if state is None:
            raise WalletAccountNotFoundError(account_id)
        return await self._record(
            account_id, state, entry_type, amount_cents,
            order_id=order_id, deposit_id=deposit_id, description=description,
        )

    async def debit(
        self,
        *,
        account_id: str,
        amount_cents: int,
        entry_type: str = EntryType.DEBIT,
        order_id: str | None = None,
        description: str | None = None,
    ) -> WalletSnapshot:
        """Take money out of the spendable balance; never partially applies."""
        _require_positive(amount_cents)
        state = await self.repository.apply(
            account_id,
            balance_delta=-amount_cents,
            held_delta=0,
            min_available=amount_cents,
        )
        if state is None:
            await self._raise_insufficient(account_id, amount_cents)
        return await self._record(
            account_id, state, entry_type, -amount_cents,
            order_id=order_id, description=description,
        )

    async def hold(self, *, account_id: str, amount_cents: int, order_id: str) -> WalletSnapshot:
        """Reserve spendable funds for an order that is not yet confirmed."""
        _require_positive(amount_cents)
        state = await self.repository.apply(
            account_id,
            balance_delta=0,
            held_delta=amount_cents,
            min_available=amount_cents,
        )
        if state is None:
            await self._raise_insufficient(account_id, amount_cents)
        return await self._record(
            account_id, state, EntryType.HOLD, 0, order_id=order_id,
            description=f"hold {amount_cents}",
        )

    async def release(self, *, account_id: str, amount_cents: int, order_id: str) -> WalletSnapshot:
        _require_positive(amount_cents)
        state = await self.repository.apply(
            account_id,
            balance_delta=0,
            held_delta=-amount_cents,
            min_held=amount_cents,
        )
        if state is None:
            raise HoldMismatchError(f"Cannot release {amount_cents} for order {order_id}")
        return await self._record(
            account_id, state, EntryType.RELEASE, 0, order_id=order_id,
            description=f"release {amount_cents}",
        )

    async def capture(
        self,
        *,
        account_id: str,
        amount_cents: int,
        order_id: str,
        description: str | None = None,
    ) -> WalletSnapshot:
        """Turn a hold into the order's single debit."""
        _require_positive(amount_cents)
        state = await self.repository.apply(
            account_id,
            balance_delta=-amount_cents,
            held_delta=-amount_cents,
            min_held=amount_cents,
        )
        if state is None:
            raise HoldMismatchError(f"Cannot capture {amount_cents} for order {order_id}")
        return await self._record(
            account_id, state, EntryType.DEBIT, -amount_cents,
            order_id=order_id, description=description,
        )

    async def refund(
        self,
        *,
        account_id: str,
        amount_cents: int,
        order_id: str,
        description: str | None = None,
    ) -> WalletSnapshot:
        return await self.credit(
            account_id=account_id,
            amount_cents=amount_cents,
            entry_type=EntryType.REFUND,
            order_id=order_id,
            description=description or f"refund for order {order_id}",
        )

    async def list_entries(
        self,
        account_id: str,
        limit: int = 50,
        offset: int = 0,
        order_id: str | None = None,
    ) -> list[LedgerEntryRecord]:
        rows = await self.repository.list_entries(account_id, limit, offset, order_id)
        return [self._to_entry(row) for row in rows]

    async def _raise_insufficient(self, account_id: str, amount_cents: int) -> NoReturn:
        account = await self.repository.get_account(account_id)
        if account is None:
            raise WalletAccountNotFoundError(account_id)
        available = account.balance_cents - account.held_cents
        logger.info(
            "Rejected ledger request on %s: requested=%s available=%s",
            account_id, amount_cents, available,
        )
        raise InsufficientFundsError(account_id, amount_cents, available)

    async def _record(
        self,
        account_id: str,
        state: tuple[int, int],
        entry_type: str,
        amount_cents: int,
        *,
        order_id: str | None = None,
        deposit_id: str | None = None,
        description: str | None = None,
    ) -> WalletSnapshot:
        balance_cents, held_cents = state
        await self.repository.add_entry(
            account_id=account_id,
            type=entry_type,
            amount_cents=amount_cents,
            balance_after_cents=balance_cents,
            held_after_cents=held_cents,
            order_id=order_id,
            deposit_id=deposit_id,
            description=description,
        )
        logger.debug(
            "Ledger %s on %s: amount=%s balance=%s held=%s",
            entry_type, account_id, amount_cents, balance_cents, held_cents,
        )
        account = await self.repository.get_account(account_id)
        currency = account.currency if account is not None else "USD"
        return WalletSnapshot(
            account_id=account_id,
            balance_cents=balance_cents,
            held_cents=held_cents,
            currency=currency,
        )

    @staticmethod
    def _to_snapshot(model: AccountModel) -> WalletSnapshot:
        return WalletSnapshot(
            account_id=model.id,
            balance_cents=model.balance_cents,
            held_cents=model.held_cents,
            currency=model.currency,
            updated_at=model.updated_at,
        )

    @staticmethod
    def _to_entry(model: LedgerEntryModel) -> LedgerEntryRecord:
        return LedgerEntryRecord(
            id=model.id,
            account_id=model.account_id,
            order_id=model.order_id,
            deposit_id=model.deposit_id,
            type=model.type,
            amount_cents=model.amount_cents,
            balance_after_cents=model.balance_after_cents,
            held_after_cents=model.held_after_cents,
            description=model.description,
            created_at=model.created_at,
        )
