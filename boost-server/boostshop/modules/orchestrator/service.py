"""Order orchestration across the order store, the ledger and the provider.

Placing an order reserves its price in the same transaction that records
it, calls the provider with no transaction open, and turns the reservation
into the order's single debit only once the provider acknowledges it. Every
ledger side effect is applied together with a conditional status change on
the order, so none of them can run twice for one order.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from typing import Any, AsyncIterator, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from boostshop.core.config import ReconciliationSettings
from boostshop.core.money import to_cents
from boostshop.infrastructure.provider import (
    ProviderClient,
    ProviderError,
    ProviderRejectedError,
    ProviderResponseError,
    ProviderStatus,
    ProviderTimeoutError,
    ProviderUnreachableError,
)
from boostshop.modules.catalog import CatalogService, InvalidInputError
from boostshop.modules.orders import (
    DuplicateOrderIdError,
    InvalidTransitionError,
    NewOrder,
    Order,
    OrderError,
    OrderNotFoundError,
    OrderService,
    OrderStatus,
    SubmissionState,
    UpstreamRefConflictError,
)
from boostshop.modules.wallets import InsufficientFundsError, WalletError, WalletService

from .exceptions import OrchestratorError, OrderPendingConfirmationError
from .models import PlaceOrderResult, ReconciliationReport

logger = logging.getLogger(__name__)

MAX_ORDER_ID_LENGTH = 64


class OrderOrchestrator:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        catalog: CatalogService,
        provider: ProviderClient,
        settings: ReconciliationSettings,
    ) -> None:
        self._session_factory = session_factory
        self._catalog = catalog
        self._provider = provider
        self._settings = settings

    @asynccontextmanager
    async def _transaction(self) -> AsyncIterator[AsyncSession]:
        async with self._session_factory() as session:
            async with session.begin():
                yield session

    async def place_order(
        self,
        *,
        account_id: str,
        order_id: str,
        service_key: str,
        link: str,
        quantity: int,
    ) -> PlaceOrderResult:
        """Record, fund and submit an order.

        Repeating a call with the same ``order_id`` returns the stored order
        without contacting the provider or touching the ledger.

        Raises:
            InvalidInputError: bad order id, link or quantity.
            UnknownServiceError: the service is not offered.
            InsufficientFundsError: nothing was recorded.
            DuplicateOrderIdError: the id belongs to another account's order.
            ProviderRejectedError: the order is stored as ``Failed``.
            OrderPendingConfirmationError: the provider outcome is unknown.
        """
        order_id = (order_id or "").strip()
        if not order_id or len(order_id) > MAX_ORDER_ID_LENGTH:
            raise InvalidInputError(
                f"Order id must be 1 to {MAX_ORDER_ID_LENGTH} characters", field="order_id"
            )

        existing = await self._find(order_id)
        if existing is not None:
            return self._replay(existing, account_id)

        item = self._catalog.get(service_key)
        link = self._catalog.validate(item, link, quantity)
        price_cents = to_cents(self._catalog.quote(item, quantity))
        if price_cents <= 0:
            raise InvalidInputError("Quantity is too small to be priced", field="quantity")

        new_order = NewOrder(
            id=order_id,
            account_id=account_id,
            service_key=item.key,
            provider_service_id=item.provider_service_id,
            service_name=item.name,
            link=link,
            quantity=quantity,
            price_cents=price_cents,
            currency=self._catalog.currency,
            cost_cents=to_cents(self._catalog.estimate_cost(item, quantity)),
        )
        try:
            async with self._transaction() as session:
                order = await OrderService.with_session(session).create(new_order)
                await WalletService.with_session(session).hold(
                    account_id=account_id, amount_cents=price_cents, order_id=order_id
                )
        except DuplicateOrderIdError:
            # lost an insert race for the same id
            existing = await self._find(order_id)
            if existing is None:
                raise
            return self._replay(existing, account_id)
        except InsufficientFundsError as exc:
            logger.info("Order %s refused for %s: %s", order_id, account_id, exc)
            raise

        logger.info(
            "Order %s recorded for %s: %s x%s at %s",
            order_id, account_id, item.key, quantity, order.price,
        )
        order = await self._submit(order, attempts=1)
        return PlaceOrderResult(order=order)

    async def get_order(self, order_id: str, *, account_id: Optional[str] = None) -> Order:
        order = await self._find(order_id)
        if order is None or (account_id is not None and order.account_id != account_id):
            raise OrderNotFoundError(order_id)
        return order

    async def get_order_status(
        self,
        order_id: str,
        *,
        account_id: Optional[str] = None,
        refresh: bool = True,
    ) -> Order:
        """Return the order, re-polling the provider for orders in progress.

        Poll failures are logged and the stored state is returned.
        """
        order = await self.get_order(order_id, account_id=account_id)
        if refresh and order.status == OrderStatus.PROCESSING:
            return await self._refresh(order)
        return order

    async def cancel_order(self, *, account_id: str, order_id: str) -> Order:
        """Cancel an order the provider never received and release its hold."""
        order = await self.get_order(order_id, account_id=account_id)
        if order.status == OrderStatus.CANCELLED:
            return order
        if (
            order.status != OrderStatus.PENDING_PAYMENT
            or order.submission_state != SubmissionState.NOT_SENT
        ):
            raise InvalidTransitionError(order.id, order.status, OrderStatus.CANCELLED)

        async with self._transaction() as session:
            orders = OrderService.with_session(session)
            updated = await orders.transition(
                order.id,
                from_status=OrderStatus.PENDING_PAYMENT,
                to_status=OrderStatus.CANCELLED,
                from_submission=SubmissionState.NOT_SENT,
                last_error="cancelled by customer",
            )
            if updated is None:
                latest = await orders.get(order.id)
                if latest.status == OrderStatus.CANCELLED:
                    return latest
                raise InvalidTransitionError(order.id, latest.status, OrderStatus.CANCELLED)
            await WalletService.with_session(session).release(
                account_id=order.account_id, amount_cents=order.price_cents, order_id=order.id
            )
        return updated

    async def reconcile_order(self, order_id: str) -> Order:
        """Drive one order towards a settled state.

        Orders the provider never received are resubmitted; orders with an
        unknown outcome are looked up by client token where the provider
        supports it and otherwise parked for manual review; orders in
        progress are polled.
        """
        order = await self.get_order(order_id)
        if order.status == OrderStatus.PROCESSING:
            return await self._refresh(order)
        if order.status != OrderStatus.PENDING_PAYMENT:
            return order

        state = order.submission_state
        if state == SubmissionState.PENDING:
            if not self._is_stale(order):
                return order
            logger.warning("Order %s has no recorded submission outcome; treating it as unconfirmed", order.id)
            state = SubmissionState.UNCONFIRMED
        if state == SubmissionState.NOT_SENT:
            return await self._resubmit(order)
        if state == SubmissionState.UNCONFIRMED:
            return await self._confirm_unknown(order)
        return order

    async def resolve_manually(
        self,
        order_id: str,
        *,
        upstream_ref: Optional[str] = None,
        status: Optional[str] = None,
    ) -> Order:
        """Administrator resolution of an order.

        For an order awaiting confirmation, an upstream reference confirms
        acceptance and captures the hold; no reference fails (or cancels) it
        and releases the hold. ``status`` may also override any stored
        status, settling the ledger so that the order is charged exactly
        when it ends up ``Processing`` or ``Completed``.
        """
        if status is not None and status not in OrderStatus.ALL:
            raise InvalidInputError(f"Unknown order status {status!r}", field="status")
        upstream_ref = (upstream_ref or "").strip() or None
        order = await self.get_order(order_id)

        if order.status == OrderStatus.PENDING_PAYMENT:
            if upstream_ref is None:
                target = status or OrderStatus.FAILED
                if target not in (OrderStatus.FAILED, OrderStatus.CANCELLED):
                    raise InvalidInputError(
                        "An order without an upstream reference can only be failed or cancelled",
                        field="status",
                    )
                logger.warning("Order %s resolved manually as %s", order.id, target)
                return await self._fail_pending(order, "resolved manually", to_status=target)
            order = await self._accept(order, upstream_ref)
            if status is None or status == order.status:
                return order

        if status is None or status == order.status:
            if upstream_ref is not None:
                async with self._transaction() as session:
                    order = await OrderService.with_session(session).set_upstream_ref(order.id, upstream_ref)
            return order
        return await self._force_status(order.id, status, upstream_ref)

    async def sweep(self) -> ReconciliationReport:
        """Reconcile every order that is unconfirmed or still in progress."""
        report = ReconciliationReport()
        async with self._transaction() as session:
            candidates = await OrderService.with_session(session).list_needing_reconciliation(
                self._settings.batch_size
            )
        for order in candidates:
            report.examined += 1
            try:
                result = await self.reconcile_order(order.id)
            except (ProviderError, OrderError, OrchestratorError, WalletError, SQLAlchemyError) as exc:
                report.failed += 1
                logger.error("Reconciliation of order %s failed: %s", order.id, exc, exc_info=True)
                continue
            before = (order.status, order.submission_state, order.remains)
            if (result.status, result.submission_state, result.remains) != before:
                report.changed += 1
                report.order_ids.append(order.id)
        if report.examined:
            logger.info(
                "Reconciliation sweep: examined=%s changed=%s failed=%s",
                report.examined, report.changed, report.failed,
            )
        return report

    async def _find(self, order_id: str) -> Order | None:
        async with self._transaction() as session:
            return await OrderService.with_session(session).find(order_id)

    @staticmethod
    def _replay(order: Order, account_id: str) -> PlaceOrderResult:
        if order.account_id != account_id:
            logger.warning("Order id %s reused by account %s", order.id, account_id)
            raise DuplicateOrderIdError(order.id)
        return PlaceOrderResult(order=order, replayed=True)

    async def _submit(self, order: Order, attempts: int) -> Order:
        try:
            ref = await self._provider.submit(
                order.provider_service_id,
                order.link,
                order.quantity,
                idempotency_key=order.id,
            )
        except ProviderRejectedError as exc:
            await self._fail_pending(
                order,
                exc.reason,
                submission_state=SubmissionState.REJECTED,
                submit_attempts=attempts,
            )
            raise
        except ProviderUnreachableError as exc:
            pending = await self._await_confirmation(order, SubmissionState.NOT_SENT, str(exc), attempts)
            raise OrderPendingConfirmationError(pending) from exc
        except (ProviderTimeoutError, ProviderResponseError) as exc:
            pending = await self._await_confirmation(order, SubmissionState.UNCONFIRMED, str(exc), attempts)
            raise OrderPendingConfirmationError(pending) from exc
        return await self._accept(order, ref, submit_attempts=attempts)

    async def _resubmit(self, order: Order) -> Order:
        if order.submit_attempts >= self._settings.max_submit_attempts:
            return await self._fail_pending(
                order,
                f"Provider unreachable after {order.submit_attempts} attempts",
                from_submission=order.submission_state,
            )
        async with self._transaction() as session:
            orders = OrderService.with_session(session)
            claimed = await orders.claim_submission(
                order.id, from_state=order.submission_state, attempts=order.submit_attempts
            )
            if claimed is None:
                logger.info("Order %s is already being handled elsewhere; not resubmitting", order.id)
                return await orders.get(order.id)
        logger.info("Resubmitting order %s (attempt %s)", order.id, claimed.submit_attempts)
        try:
            return await self._submit(claimed, claimed.submit_attempts)
        except OrderPendingConfirmationError as exc:
            return exc.order
        except ProviderRejectedError:
            return await self.get_order(order.id)

    async def _confirm_unknown(self, order: Order) -> Order:
        if not self._provider.supports_idempotency_key:
            return await self._await_confirmation(
                order, SubmissionState.MANUAL_REVIEW, order.last_error, order.submit_attempts
            )
        try:
            found = await self._provider.lookup_by_key(order.id)
        except ProviderError as exc:
            logger.warning("Lookup of order %s by client token failed: %s", order.id, exc)
            return order
        if found is None:
            # the provider never saw the order, resending the same key is safe
            return await self._resubmit(order)
        accepted = await self._accept(order, found.ref)
        if accepted.status == OrderStatus.PROCESSING and found.order_status in OrderStatus.TERMINAL:
            return await self._apply_provider_status(accepted, found)
        return accepted

    async def _accept(self, order: Order, ref: str, **fields: Any) -> Order:
        async with self._transaction() as session:
            orders = OrderService.with_session(session)
            updated = await orders.transition(
                order.id,
                from_status=OrderStatus.PENDING_PAYMENT,
                to_status=OrderStatus.PROCESSING,
                upstream_ref=ref,
                submission_state=SubmissionState.ACCEPTED,
                last_error=None,
                **fields,
            )
            if updated is None:
                latest = await orders.get(order.id)
                if latest.upstream_ref != ref:
                    logger.error(
                        "Provider accepted order %s as %s but it is already %s (ref %s)",
                        order.id, ref, latest.status, latest.upstream_ref,
                    )
                return latest
            await WalletService.with_session(session).capture(
                account_id=order.account_id,
                amount_cents=order.price_cents,
                order_id=order.id,
                description=f"order {order.id} ({ref})",
            )
        logger.info("Order %s accepted upstream as %s; charged %s", order.id, ref, order.price)
        return updated

    async def _fail_pending(
        self,
        order: Order,
        reason: Optional[str],
        *,
        to_status: str = OrderStatus.FAILED,
        **fields: Any,
    ) -> Order:
        async with self._transaction() as session:
            orders = OrderService.with_session(session)
            updated = await orders.transition(
                order.id,
                from_status=OrderStatus.PENDING_PAYMENT,
                to_status=to_status,
                last_error=reason,
                **fields,
            )
            if updated is None:
                return await orders.get(order.id)
            await WalletService.with_session(session).release(
                account_id=order.account_id, amount_cents=order.price_cents, order_id=order.id
            )
        logger.info("Order %s %s and hold released: %s", order.id, to_status, reason)
        return updated

    async def _await_confirmation(
        self,
        order: Order,
        state: str,
        error: Optional[str],
        attempts: int,
    ) -> Order:
        async with self._transaction() as session:
            orders = OrderService.with_session(session)
            updated = await orders.transition(
                order.id,
                from_status=OrderStatus.PENDING_PAYMENT,
                to_status=OrderStatus.PENDING_PAYMENT,
                from_submission=order.submission_state,
                submission_state=state,
                submit_attempts=attempts,
                last_error=error,
            )
            if updated is None:
                updated = await orders.get(order.id)
        logger.warning("Order %s awaiting provider confirmation (%s): %s", order.id, state, error)
        return updated

    async def _refresh(self, order: Order) -> Order:
        if not order.upstream_ref:
            return order
        try:
            status = await self._provider.poll_status(order.upstream_ref)
        except ProviderError as exc:
            logger.warning("Status poll for order %s failed: %s", order.id, exc)
            return order
        return await self._apply_provider_status(order, status)

    async def _apply_provider_status(self, order: Order, status: ProviderStatus) -> Order:
        target = status.order_status
        if target is None:
            logger.warning("Order %s: unrecognised provider status %r", order.id, status.raw_status)
            return order
        progress = {"start_count": status.start_count, "remains": status.remains}
        if target == OrderStatus.PROCESSING and (order.start_count, order.remains) == (
            status.start_count,
            status.remains,
        ):
            return order

        async with self._transaction() as session:
            orders = OrderService.with_session(session)
            if target == OrderStatus.FAILED:
                progress["last_error"] = f"provider status {status.raw_status}"
            updated = await orders.transition(
                order.id,
                from_status=OrderStatus.PROCESSING,
                to_status=target,
                **progress,
            )
            if updated is None:
                return await orders.get(order.id)
            if target == OrderStatus.FAILED:
                await WalletService.with_session(session).refund(
                    account_id=order.account_id, amount_cents=order.price_cents, order_id=order.id
                )
        if target == OrderStatus.FAILED:
            logger.info("Order %s %s upstream; refunded %s", order.id, status.raw_status, order.price)
        return updated

    async def _force_status(self, order_id: str, status: str, upstream_ref: Optional[str]) -> Order:
        if status == OrderStatus.PENDING_PAYMENT:
            raise InvalidInputError("Orders cannot be moved back to PendingPayment", field="status")
        async with self._transaction() as session:
            orders = OrderService.with_session(session)
            wallet = WalletService.with_session(session)
            current = await orders.get(order_id)
            fields: dict[str, Any] = {}
            if upstream_ref is not None and upstream_ref != current.upstream_ref:
                if current.upstream_ref is not None:
                    raise UpstreamRefConflictError(
                        f"Order {order_id} already has upstream ref {current.upstream_ref}, got {upstream_ref}"
                    )
                fields["upstream_ref"] = upstream_ref
            if current.status == OrderStatus.PENDING_PAYMENT:
                raise InvalidTransitionError(order_id, current.status, status)
            updated = await orders.set_status(order_id, status, force=True, **fields)

            was_charged = current.status in OrderStatus.CHARGED
            now_charged = status in OrderStatus.CHARGED
            if was_charged and not now_charged:
                await wallet.refund(
                    account_id=current.account_id,
                    amount_cents=current.price_cents,
                    order_id=order_id,
                    description=f"manual resolution of order {order_id}",
                )
            elif now_charged and not was_charged:
                await wallet.debit(
                    account_id=current.account_id,
                    amount_cents=current.price_cents,
                    order_id=order_id,
                    description=f"manual resolution of order {order_id}",
                )
        logger.warning("Order %s forced from %s to %s by an administrator", order_id, current.status, status)
        return updated

    def _is_stale(self, order: Order) -> bool:
        touched = order.updated_at or order.created_at
        if touched is None:
            return True
        if touched.tzinfo is None:
            touched = touched.replace(tzinfo=timezone.utc)
        age = datetime.now(timezone.utc) - touched
        return age > timedelta(seconds=self._settings.stale_submission_seconds)
