"""Tests for the balance ledger."""

import asyncio

import pytest

from boostshop.modules.wallets import (
    EntryType,
    HoldMismatchError,
    InsufficientFundsError,
    WalletAccountNotFoundError,
    WalletService,
)


async def _apply(session_factory, operation, **kwargs):
    async with session_factory() as session:
        async with session.begin():
            return await getattr(WalletService.with_session(session), operation)(**kwargs)


class TestDebitCredit:
    @pytest.mark.asyncio()
    async def test_credit_then_debit(self, session_factory, make_account):
        account = await make_account()
        snapshot = await _apply(session_factory, "credit", account_id=account.id, amount_cents=1000)
        assert snapshot.balance_cents == 1000
        snapshot = await _apply(session_factory, "debit", account_id=account.id, amount_cents=750)
        assert snapshot.balance_cents == 250
        assert str(snapshot.balance) == "2.50"

    @pytest.mark.asyncio()
    async def test_debit_never_partially_applies(self, session_factory, make_account, wallet_of, entries_of):
        account = await make_account("5.00")
        with pytest.raises(InsufficientFundsError) as exc_info:
            await _apply(session_factory, "debit", account_id=account.id, amount_cents=750)
        assert exc_info.value.available_cents == 500
        assert (await wallet_of(account.id)).balance_cents == 500
        assert [entry.type for entry in await entries_of(account.id)] == [EntryType.ADJUSTMENT]

    @pytest.mark.asyncio()
    async def test_unknown_account(self, session_factory):
        with pytest.raises(WalletAccountNotFoundError):
            await _apply(session_factory, "credit", account_id="missing", amount_cents=100)

    @pytest.mark.asyncio()
    async def test_amounts_must_be_positive(self, session_factory, make_account):
        account = await make_account("1.00")
        with pytest.raises(ValueError):
            await _apply(session_factory, "debit", account_id=account.id, amount_cents=0)

    @pytest.mark.asyncio()
    async def test_concurrent_debits_never_overdraw(self, session_factory, make_account, wallet_of):
        """Ten racing $3.00 debits against $10.00: exactly three succeed."""
        account = await make_account("10.00")

        async def debit():
            try:
                await _apply(session_factory, "debit", account_id=account.id, amount_cents=300)
            except InsufficientFundsError:
                return False
            return True

        results = await asyncio.gather(*(debit() for _ in range(10)))
        assert results.count(True) == 3
        assert (await wallet_of(account.id)).balance_cents == 100


class TestHolds:
    @pytest.mark.asyncio()
    async def test_hold_reduces_available_not_balance(self, session_factory, make_account):
        account = await make_account("10.00")
        snapshot = await _apply(
            session_factory, "hold", account_id=account.id, amount_cents=750, order_id="o-1"
        )
        assert (snapshot.balance_cents, snapshot.held_cents, snapshot.available_cents) == (1000, 750, 250)

    @pytest.mark.asyncio()
    async def test_hold_rejects_more_than_available(self, session_factory, make_account):
        account = await make_account("10.00")
        await _apply(session_factory, "hold", account_id=account.id, amount_cents=600, order_id="o-1")
        with pytest.raises(InsufficientFundsError):
            await _apply(session_factory, "hold", account_id=account.id, amount_cents=600, order_id="o-2")

    @pytest.mark.asyncio()
    async def test_capture_turns_hold_into_single_debit(self, session_factory, make_account, entries_of):
        account = await make_account("10.00")
        await _apply(session_factory, "hold", account_id=account.id, amount_cents=750, order_id="o-1")
        snapshot = await _apply(
            session_factory, "capture", account_id=account.id, amount_cents=750, order_id="o-1"
        )
        assert (snapshot.balance_cents, snapshot.held_cents) == (250, 0)
        entries = await entries_of(account.id, order_id="o-1")
        assert sorted(entry.type for entry in entries) == [EntryType.DEBIT, EntryType.HOLD]
        assert [entry.amount_cents for entry in entries if entry.type == EntryType.DEBIT] == [-750]

    @pytest.mark.asyncio()
    async def test_release_restores_available(self, session_factory, make_account):
        account = await make_account("10.00")
        await _apply(session_factory, "hold", account_id=account.id, amount_cents=750, order_id="o-1")
        snapshot = await _apply(
            session_factory, "release", account_id=account.id, amount_cents=750, order_id="o-1"
        )
        assert (snapshot.balance_cents, snapshot.held_cents) == (1000, 0)

    @pytest.mark.asyncio()
    async def test_capture_without_hold_fails(self, session_factory, make_account, wallet_of):
        account = await make_account("10.00")
        with pytest.raises(HoldMismatchError):
            await _apply(session_factory, "capture", account_id=account.id, amount_cents=750, order_id="o-1")
        assert (await wallet_of(account.id)).balance_cents == 1000

    @pytest.mark.asyncio()
    async def test_held_funds_cannot_be_debited(self, session_factory, make_account):
        account = await make_account("10.00")
        await _apply(session_factory, "hold", account_id=account.id, amount_cents=800, order_id="o-1")
        with pytest.raises(InsufficientFundsError):
            await _apply(session_factory, "debit", account_id=account.id, amount_cents=300)

    @pytest.mark.asyncio()
    async def test_refund_is_a_credit_entry(self, session_factory, make_account, entries_of):
        account = await make_account("1.00")
        snapshot = await _apply(
            session_factory, "refund", account_id=account.id, amount_cents=250, order_id="o-9"
        )
        assert snapshot.balance_cents == 350
        [entry] = await entries_of(account.id, order_id="o-9")
        assert (entry.type, entry.amount_cents, entry.balance_after_cents) == (EntryType.REFUND, 250, 350)
