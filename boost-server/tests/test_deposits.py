"""Tests for PayPal and GCash deposits."""

from decimal import Decimal

import pytest

from boostshop.infrastructure.database.repositories.deposit_repository import SqlDepositRepository
from boostshop.infrastructure.payments import CaptureResult, CreatedPayment, PaymentGatewayError
from boostshop.modules.deposits import (
    DepositNotFoundError,
    DepositService,
    DepositStateError,
    DepositStatus,
    DuplicateDepositError,
    InvalidDepositError,
    PaymentUnavailableError,
)
from boostshop.modules.wallets import EntryType, WalletService


class FakeGateway:
    def __init__(self) -> None:
        self.created: list[tuple[Decimal, str]] = []
        self.captures: list[str] = []
        self.capture_status = "COMPLETED"
        self.capture_amount: Decimal | None = None
        self.error: Exception | None = None
        self._next = 0

    async def create_order(self, amount, currency):
        if self.error is not None:
            raise self.error
        self._next += 1
        self.created.append((amount, currency))
        ref = f"PAYPAL-{self._next}"
        return CreatedPayment(
            order_ref=ref,
            status="CREATED",
            approve_url=f"https://www.sandbox.paypal.com/checkoutnow?token={ref}",
        )

    async def capture_order(self, order_ref):
        if self.error is not None:
            raise self.error
        self.captures.append(order_ref)
        amount = self.capture_amount
        if amount is None:
            amount = self.created[int(order_ref.split("-")[1]) - 1][0]
        return CaptureResult(order_ref=order_ref, status=self.capture_status, amount=amount, currency="USD")

    async def aclose(self):
        pass


@pytest.fixture()
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture()
def deposits(session_factory, settings, gateway):
    """Run one DepositService call inside its own transaction."""

    async def _run(method: str, *args, with_gateway: bool = True, **kwargs):
        async with session_factory() as session:
            async with session.begin():
                service = DepositService.with_session(
                    session, settings.payments, gateway if with_gateway else None
                )
                return await getattr(service, method)(*args, **kwargs)

    return _run


class TestPayPalDeposits:
    @pytest.mark.asyncio()
    async def test_completed_capture_credits_with_first_deposit_bonus(
        self, deposits, gateway, make_account, wallet_of, entries_of
    ):
        account = await make_account()
        checkout = await deposits("start_paypal_deposit", account_id=account.id, amount=Decimal("10"))

        assert checkout.deposit.status == DepositStatus.PENDING
        assert checkout.approve_url.endswith("PAYPAL-1")
        assert str((await wallet_of(account.id)).balance) == "0.00"

        deposit = await deposits(
            "capture_paypal_deposit", account_id=account.id, order_ref=checkout.deposit.external_ref
        )

        assert deposit.status == DepositStatus.COMPLETED
        assert (str(deposit.amount), str(deposit.bonus)) == ("10.00", "2.50")
        assert str((await wallet_of(account.id)).balance) == "12.50"
        types = sorted(entry.type for entry in await entries_of(account.id))
        assert types == [EntryType.BONUS, EntryType.CREDIT]

    @pytest.mark.asyncio()
    async def test_capture_is_idempotent(self, deposits, gateway, make_account, wallet_of):
        account = await make_account()
        checkout = await deposits("start_paypal_deposit", account_id=account.id, amount=Decimal("20"))
        ref = checkout.deposit.external_ref

        await deposits("capture_paypal_deposit", account_id=account.id, order_ref=ref)
        again = await deposits("capture_paypal_deposit", account_id=account.id, order_ref=ref)

        assert again.status == DepositStatus.COMPLETED
        assert gateway.captures == [ref]
        assert str((await wallet_of(account.id)).balance) == "25.00"

    @pytest.mark.asyncio()
    async def test_bonus_only_on_first_deposit(self, deposits, make_account, wallet_of):
        account = await make_account()
        for amount in ("10", "10"):
            checkout = await deposits("start_paypal_deposit", account_id=account.id, amount=Decimal(amount))
            await deposits(
                "capture_paypal_deposit", account_id=account.id, order_ref=checkout.deposit.external_ref
            )
        assert str((await wallet_of(account.id)).balance) == "22.50"

    @pytest.mark.asyncio()
    async def test_bonus_is_recorded_with_completion(self, session_factory, settings, gateway, make_account):
        account = await make_account()
        writes: list[tuple[str, dict]] = []

        class RecordingRepository(SqlDepositRepository):
            async def update_status(self, deposit_id, *, expected_status, values):
                writes.append((expected_status, dict(values)))
                return await super().update_status(
                    deposit_id, expected_status=expected_status, values=values
                )

        async with session_factory() as session:
            async with session.begin():
                service = DepositService(
                    repository=RecordingRepository(session),
                    wallet=WalletService.with_session(session),
                    settings=settings.payments,
                    gateway=gateway,
                )
                checkout = await service.start_paypal_deposit(account_id=account.id, amount=Decimal("10"))
                deposit = await service.capture_paypal_deposit(
                    account_id=account.id, order_ref=checkout.deposit.external_ref
                )

        assert str(deposit.bonus) == "2.50"
        assert len(writes) == 1
        expected_status, values = writes[0]
        assert expected_status == DepositStatus.PENDING
        assert (values["status"], values["bonus_cents"]) == (DepositStatus.COMPLETED, 250)

    @pytest.mark.asyncio()
    async def test_declined_capture_fails_deposit(self, deposits, gateway, make_account, wallet_of):
        account = await make_account()
        checkout = await deposits("start_paypal_deposit", account_id=account.id, amount=Decimal("10"))
        gateway.capture_status = "DECLINED"

        deposit = await deposits(
            "capture_paypal_deposit", account_id=account.id, order_ref=checkout.deposit.external_ref
        )

        assert deposit.status == DepositStatus.FAILED
        assert str((await wallet_of(account.id)).balance) == "0.00"

    @pytest.mark.asyncio()
    async def test_unfinished_capture_stays_pending(self, deposits, gateway, make_account, wallet_of):
        account = await make_account()
        checkout = await deposits("start_paypal_deposit", account_id=account.id, amount=Decimal("10"))
        gateway.capture_status = "PENDING"

        deposit = await deposits(
            "capture_paypal_deposit", account_id=account.id, order_ref=checkout.deposit.external_ref
        )

        assert deposit.status == DepositStatus.PENDING
        assert str((await wallet_of(account.id)).balance) == "0.00"

    @pytest.mark.asyncio()
    async def test_captured_amount_wins(self, deposits, gateway, make_account, wallet_of):
        account = await make_account()
        checkout = await deposits("start_paypal_deposit", account_id=account.id, amount=Decimal("10"))
        gateway.capture_amount = Decimal("8.00")

        deposit = await deposits(
            "capture_paypal_deposit", account_id=account.id, order_ref=checkout.deposit.external_ref
        )

        assert deposit.amount_cents == 800
        assert str((await wallet_of(account.id)).balance) == "10.00"

    @pytest.mark.asyncio()
    async def test_capture_scoped_to_owner(self, deposits, make_account):
        owner = await make_account()
        other = await make_account()
        checkout = await deposits("start_paypal_deposit", account_id=owner.id, amount=Decimal("10"))
        with pytest.raises(DepositNotFoundError):
            await deposits(
                "capture_paypal_deposit", account_id=other.id, order_ref=checkout.deposit.external_ref
            )

    @pytest.mark.asyncio()
    async def test_gateway_unavailable(self, deposits, gateway, make_account):
        account = await make_account()
        with pytest.raises(PaymentUnavailableError):
            await deposits(
                "start_paypal_deposit", account_id=account.id, amount=Decimal("10"), with_gateway=False
            )
        gateway.error = PaymentGatewayError("boom")
        with pytest.raises(PaymentUnavailableError):
            await deposits("start_paypal_deposit", account_id=account.id, amount=Decimal("10"))

    @pytest.mark.asyncio()
    @pytest.mark.parametrize("amount", ["0.50", "1000.01"])
    async def test_amount_limits(self, deposits, gateway, make_account, amount):
        account = await make_account()
        with pytest.raises(InvalidDepositError):
            await deposits("start_paypal_deposit", account_id=account.id, amount=Decimal(amount))
        assert gateway.created == []


class TestGCashDeposits:
    @pytest.mark.asyncio()
    async def test_request_records_local_amount(self, deposits, make_account, wallet_of):
        account = await make_account()

        deposit = await deposits(
            "request_gcash_deposit", account_id=account.id, amount=Decimal("10"), reference_no="1234567890"
        )

        assert deposit.status == DepositStatus.PENDING
        assert (deposit.local_amount, deposit.local_currency) == (Decimal("600.00"), "PHP")
        assert str((await wallet_of(account.id)).balance) == "0.00"

    @pytest.mark.asyncio()
    async def test_approval_credits_once(self, deposits, make_account, wallet_of):
        account = await make_account()
        deposit = await deposits(
            "request_gcash_deposit", account_id=account.id, amount=Decimal("10"), reference_no="1234567890"
        )

        approved = await deposits("review_deposit", deposit.id, approve=True)

        assert approved.status == DepositStatus.COMPLETED
        assert str((await wallet_of(account.id)).balance) == "12.50"
        with pytest.raises(DepositStateError):
            await deposits("review_deposit", deposit.id, approve=True)

    @pytest.mark.asyncio()
    async def test_rejection_credits_nothing(self, deposits, make_account, wallet_of):
        account = await make_account()
        deposit = await deposits(
            "request_gcash_deposit", account_id=account.id, amount=Decimal("10"), reference_no="555"
        )

        rejected = await deposits("review_deposit", deposit.id, approve=False)

        assert rejected.status == DepositStatus.FAILED
        assert str((await wallet_of(account.id)).balance) == "0.00"

    @pytest.mark.asyncio()
    async def test_reference_must_be_unique(self, deposits, make_account):
        account = await make_account()
        await deposits("request_gcash_deposit", account_id=account.id, amount=Decimal("5"), reference_no="777")
        with pytest.raises(DuplicateDepositError):
            await deposits(
                "request_gcash_deposit", account_id=account.id, amount=Decimal("5"), reference_no=" 777 "
            )

    @pytest.mark.asyncio()
    async def test_listing(self, deposits, make_account):
        account = await make_account()
        await deposits("request_gcash_deposit", account_id=account.id, amount=Decimal("5"), reference_no="1")
        await deposits("request_gcash_deposit", account_id=account.id, amount=Decimal("6"), reference_no="2")

        mine = await deposits("list_for_account", account.id)
        pending = await deposits("list_all", DepositStatus.PENDING)

        assert len(mine) == 2
        assert {d.external_ref for d in pending} == {"1", "2"}
