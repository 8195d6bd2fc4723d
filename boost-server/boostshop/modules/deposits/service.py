"""Deposit domain service.

PayPal deposits are credited only after the gateway reports a ``COMPLETED``
capture; GCash transfers are recorded as pending and credited when an
administrator approves them. Completion is a conditional status update, so
a deposit credits the ledger at most once however often it is confirmed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from boostshop.core.config import PaymentSettings
from boostshop.core.money import quantize, to_cents
from boostshop.db.models import Deposit as DepositModel
from boostshop.infrastructure.database.repositories.deposit_repository import SqlDepositRepository
from boostshop.infrastructure.payments import PaymentGateway, PaymentGatewayError
from boostshop.modules.wallets import EntryType, WalletService

from .exceptions import (
    DepositNotFoundError,
    DepositStateError,
    DuplicateDepositError,
    InvalidDepositError,
    PaymentUnavailableError,
)
from .models import Deposit, DepositChannel, DepositStatus, PayPalCheckout
from .repository import DepositRepository

logger = logging.getLogger(__name__)

FAILED_CAPTURE_STATUSES = frozenset({"DECLINED", "VOIDED", "FAILED"})
GCASH_CURRENCY = "PHP"


@dataclass(slots=True)
class DepositService:
    repository: DepositRepository
    wallet: WalletService
    settings: PaymentSettings
    gateway: Optional[PaymentGateway] = None
    currency: str = "USD"

    @classmethod
    def with_session(
        cls,
        session: AsyncSession,
        settings: PaymentSettings,
        gateway: Optional[PaymentGateway] = None,
        currency: str = "USD",
    ) -> "DepositService":
        return cls(
            repository=SqlDepositRepository(session),
            wallet=WalletService.with_session(session),
            settings=settings,
            gateway=gateway,
            currency=currency,
        )

    async def start_paypal_deposit(self, *, account_id: str, amount: Decimal) -> PayPalCheckout:
        amount = self._validate_amount(amount)
        if self.gateway is None:
            raise PaymentUnavailableError("PayPal deposits are not configured")
        try:
            payment = await self.gateway.create_order(amount, self.currency)
        except PaymentGatewayError as exc:
            logger.error("PayPal order creation failed for %s: %s", account_id, exc)
            raise PaymentUnavailableError("PayPal is unavailable, please try again later") from exc
        model = await self.repository.create(
            account_id=account_id,
            amount_cents=to_cents(amount),
            bonus_cents=0,
            currency=self.currency,
            status=DepositStatus.PENDING,
            channel=DepositChannel.PAYPAL,
            external_ref=payment.order_ref,
        )
        logger.info("Started PayPal deposit %s of %s for %s", model.id, amount, account_id)
        return PayPalCheckout(deposit=self._to_domain(model), approve_url=payment.approve_url)

    async def capture_paypal_deposit(self, *, account_id: str, order_ref: str) -> Deposit:
        """Capture an approved PayPal order and credit the wallet.

        Only a ``COMPLETED`` capture credits; a declined or voided capture
        fails the deposit and any other status leaves it pending.
        """
        model = await self.repository.get_by_ref(DepositChannel.PAYPAL, order_ref)
        if model is None or model.account_id != account_id:
            raise DepositNotFoundError(order_ref)
        if model.status != DepositStatus.PENDING:
            return self._to_domain(model)
        if self.gateway is None:
            raise PaymentUnavailableError("PayPal deposits are not configured")

        try:
            capture = await self.gateway.capture_order(order_ref)
        except PaymentGatewayError as exc:
            logger.error("PayPal capture of %s failed: %s", order_ref, exc)
            raise PaymentUnavailableError("PayPal is unavailable, please try again later") from exc

        if capture.completed:
            amount_cents = model.amount_cents
            if capture.amount is not None and to_cents(capture.amount) != amount_cents:
                logger.warning(
                    "PayPal captured %s for deposit %s expecting %s; crediting the captured amount",
                    capture.amount, model.id, model.amount_cents,
                )
                amount_cents = to_cents(capture.amount)
            return await self._complete(model.id, amount_cents)
        if capture.status in FAILED_CAPTURE_STATUSES:
            failed = await self._fail(model.id)
            logger.info("PayPal deposit %s %s", model.id, capture.status)
            return failed
        logger.info("PayPal deposit %s left pending with capture status %s", model.id, capture.status)
        return self._to_domain(model)

    async def request_gcash_deposit(
        self,
        *,
        account_id: str,
        amount: Decimal,
        reference_no: str,
    ) -> Deposit:
        amount = self._validate_amount(amount)
        reference_no = (reference_no or "").strip()
        if not reference_no:
            raise InvalidDepositError("A GCash reference number is required")
        if await self.repository.get_by_ref(DepositChannel.GCASH, reference_no) is not None:
            raise DuplicateDepositError(reference_no)
        model = await self.repository.create(
            account_id=account_id,
            amount_cents=to_cents(amount),
            bonus_cents=0,
            currency=self.currency,
            status=DepositStatus.PENDING,
            channel=DepositChannel.GCASH,
            external_ref=reference_no,
            local_amount=str(self.gcash_amount(amount)),
            local_currency=GCASH_CURRENCY,
        )
        logger.info("GCash deposit %s of %s awaiting review for %s", model.id, amount, account_id)
        return self._to_domain(model)

    def gcash_amount(self, amount: Decimal) -> Decimal:
        return quantize(Decimal(amount) * self.settings.gcash_exchange_rate)

    async def review_deposit(self, deposit_id: str, *, approve: bool) -> Deposit:
        model = await self.repository.get(deposit_id)
        if model is None:
            raise DepositNotFoundError(deposit_id)
        if model.status != DepositStatus.PENDING:
            raise DepositStateError(f"Deposit {deposit_id} is already {model.status}")
        if approve:
            return await self._complete(deposit_id, model.amount_cents)
        return await self._fail(deposit_id)

    async def get(self, deposit_id: str) -> Deposit:
        model = await self.repository.get(deposit_id)
        if model is None:
            raise DepositNotFoundError(deposit_id)
        return self._to_domain(model)

    async def list_for_account(
        self, account_id: str, limit: int = 20, offset: int = 0, status: str | None = None
    ) -> list[Deposit]:
        rows = await self.repository.list_for_account(account_id, limit, offset, status)
        return [self._to_domain(row) for row in rows]

    async def list_all(self, status: str | None = None, limit: int = 20, offset: int = 0) -> list[Deposit]:
        rows = await self.repository.list_all(status, limit, offset)
        return [self._to_domain(row) for row in rows]

    def bonus_cents(self, amount_cents: int) -> int:
        bonus = Decimal(amount_cents) * self.settings.first_deposit_bonus_percent / 100
        return int(bonus.quantize(Decimal(1), rounding=ROUND_HALF_UP))

    async def _complete(self, deposit_id: str, amount_cents: int) -> Deposit:
        current = await self.repository.get(deposit_id)
        if current is None:
            raise DepositNotFoundError(deposit_id)
        bonus = 0
        if await self.repository.count_completed(current.account_id) == 0:
            bonus = self.bonus_cents(amount_cents)
        model = await self.repository.update_status(
            deposit_id,
            expected_status=DepositStatus.PENDING,
            values={
                "status": DepositStatus.COMPLETED,
                "amount_cents": amount_cents,
                "bonus_cents": bonus,
                "confirmed_at": datetime.now(timezone.utc),
            },
        )
        if model is None:
            # confirmed by a concurrent request
            return await self.get(deposit_id)

        await self.wallet.credit(
            account_id=model.account_id,
            amount_cents=amount_cents,
            deposit_id=model.id,
            description=f"{model.channel} deposit",
        )
        if bonus > 0:
            await self.wallet.credit(
                account_id=model.account_id,
                amount_cents=bonus,
                entry_type=EntryType.BONUS,
                deposit_id=model.id,
                description="first deposit bonus",
            )
        logger.info(
            "Deposit %s completed for %s: amount=%s bonus=%s",
            deposit_id, model.account_id, amount_cents, bonus,
        )
        return self._to_domain(model)

    async def _fail(self, deposit_id: str) -> Deposit:
        model = await self.repository.update_status(
            deposit_id,
            expected_status=DepositStatus.PENDING,
            values={"status": DepositStatus.FAILED, "confirmed_at": datetime.now(timezone.utc)},
        )
        if model is None:
            return await self.get(deposit_id)
        logger.info("Deposit %s marked failed", deposit_id)
        return self._to_domain(model)

    def _validate_amount(self, amount: Decimal) -> Decimal:
        try:
            amount = quantize(amount)
        except ValueError as exc:
            raise InvalidDepositError("Amount must be a number") from exc
        if amount < self.settings.min_deposit or amount > self.settings.max_deposit:
            raise InvalidDepositError(
                f"Deposit must be between {self.settings.min_deposit} and {self.settings.max_deposit}"
            )
        return amount

    @staticmethod
    def _to_domain(model: DepositModel) -> Deposit:
        return Deposit(
            id=model.id,
            account_id=model.account_id,
            amount_cents=model.amount_cents,
            bonus_cents=model.bonus_cents or 0,
            currency=model.currency,
            status=model.status,
            channel=model.channel,
            external_ref=model.external_ref,
            local_amount=Decimal(model.local_amount) if model.local_amount else None,
            local_currency=model.local_currency,
            created_at=model.created_at,
            confirmed_at=model.confirmed_at,
        )
