"""Order record store."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from boostshop.db.models import Order as OrderModel
from boostshop.infrastructure.database.repositories.order_repository import SqlOrderRepository

from .exceptions import (
    DuplicateOrderIdError,
    InvalidTransitionError,
    OrderNotFoundError,
    UpstreamRefConflictError,
)
from .models import NewOrder, Order, OrderStatus, SalesTotals, SubmissionState, can_transition
from .repository import OrderRepository

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class OrderService:
    repository: OrderRepository

    @classmethod
    def with_session(cls, session: AsyncSession) -> "OrderService":
        return cls(SqlOrderRepository(session))

    async def create(self, order: NewOrder) -> Order:
        """Insert a ``PendingPayment`` order.

        Raises DuplicateOrderIdError when the id is taken. A unique-key
        violation poisons the surrounding transaction, so callers must
        start a fresh one before reading the existing order.
        """
        if await self.repository.get(order.id) is not None:
            raise DuplicateOrderIdError(order.id)
        try:
            model = await self.repository.insert(
                id=order.id,
                account_id=order.account_id,
                service_key=order.service_key,
                provider_service_id=order.provider_service_id,
                service_name=order.service_name,
                link=order.link,
                quantity=order.quantity,
                price_cents=order.price_cents,
                cost_cents=order.cost_cents,
                currency=order.currency,
                status=OrderStatus.PENDING_PAYMENT,
                submission_state=SubmissionState.PENDING,
                submit_attempts=0,
            )
        except IntegrityError as exc:
            raise DuplicateOrderIdError(order.id) from exc
        return self._to_domain(model)

    async def find(self, order_id: str) -> Order | None:
        model = await self.repository.get(order_id)
        return self._to_domain(model) if model else None

    async def get(self, order_id: str) -> Order:
        model = await self.repository.get(order_id)
        if model is None:
            raise OrderNotFoundError(order_id)
        return self._to_domain(model)

    async def set_status(
        self,
        order_id: str,
        status: str,
        *,
        force: bool = False,
        **fields: Any,
    ) -> Order:
        """Move the order forward; repeating the current status is a no-op.

        ``force`` is reserved for the reconciliation path and allows any
        change, including replacing a terminal status.
        """
        if status not in OrderStatus.ALL:
            raise ValueError(f"Unknown order status: {status}")
        current = await self.get(order_id)
        if current.status == status and not fields:
            return current
        if current.status != status and not force and not can_transition(current.status, status):
            raise InvalidTransitionError(order_id, current.status, status)

        values: dict[str, Any] = {"status": status, **fields}
        if status in OrderStatus.TERMINAL and current.completed_at is None:
            values.setdefault("completed_at", datetime.now(timezone.utc))
        model = await self.repository.compare_and_set(
            order_id,
            expected={"status": current.status},
            values=values,
        )
        if model is None:
            # a concurrent writer moved the order first
            latest = await self.get(order_id)
            if latest.status == status:
                return latest
            raise InvalidTransitionError(order_id, latest.status, status)
        if current.status != status:
            logger.info("Order %s: %s -> %s", order_id, current.status, status)
        return self._to_domain(model)

    async def transition(
        self,
        order_id: str,
        *,
        from_status: str,
        to_status: str,
        from_submission: str | None = None,
        **fields: Any,
    ) -> Order | None:
        """Conditional transition used to guard ledger side effects.

        Returns the updated order, or ``None`` when the order was not in the
        expected state (another caller already handled it).
        """
        if from_status != to_status and not can_transition(from_status, to_status):
            raise InvalidTransitionError(order_id, from_status, to_status)
        expected: dict[str, Any] = {"status": from_status}
        if from_submission is not None:
            expected["submission_state"] = from_submission
        values: dict[str, Any] = {"status": to_status, **fields}
        if to_status in OrderStatus.TERMINAL:
            values.setdefault("completed_at", datetime.now(timezone.utc))
        model = await self.repository.compare_and_set(order_id, expected=expected, values=values)
        if model is None:
            return None
        if from_status != to_status:
            logger.info("Order %s: %s -> %s", order_id, from_status, to_status)
        return self._to_domain(model)

    async def set_upstream_ref(self, order_id: str, ref: str) -> Order:
        current = await self.get(order_id)
        if current.upstream_ref == ref:
            return current
        if current.upstream_ref is not None:
            raise UpstreamRefConflictError(
                f"Order {order_id} already has upstream ref {current.upstream_ref}, got {ref}"
            )
        model = await self.repository.compare_and_set(
            order_id,
            expected={"upstream_ref": None},
            values={"upstream_ref": ref},
        )
        if model is None:
            latest = await self.get(order_id)
            if latest.upstream_ref == ref:
                return latest
            raise UpstreamRefConflictError(
                f"Order {order_id} already has upstream ref {latest.upstream_ref}, got {ref}"
            )
        return self._to_domain(model)

    async def claim_submission(self, order_id: str, *, from_state: str, attempts: int) -> Order | None:
        """Mark an unpaid order as being submitted and count the attempt.

        Only the caller whose claim succeeds may contact the provider;
        ``None`` means another caller changed the order first.
        """
        model = await self.repository.compare_and_set(
            order_id,
            expected={
                "status": OrderStatus.PENDING_PAYMENT,
                "submission_state": from_state,
                "submit_attempts": attempts,
            },
            values={
                "submission_state": SubmissionState.PENDING,
                "submit_attempts": attempts + 1,
                "updated_at": datetime.now(timezone.utc),
            },
        )
        return self._to_domain(model) if model else None

    async def list_for_account(self, account_id: str, limit: int = 50, offset: int = 0) -> list[Order]:
        rows = await self.repository.list_for_account(account_id, limit, offset)
        return [self._to_domain(row) for row in rows]

    async def list_all(self, status: str | None = None, limit: int = 50, offset: int = 0) -> list[Order]:
        rows = await self.repository.list_all(status, limit, offset)
        return [self._to_domain(row) for row in rows]

    async def list_needing_reconciliation(self, limit: int = 100) -> list[Order]:
        awaiting = await self.repository.list_by_state(
            statuses=[OrderStatus.PENDING_PAYMENT],
            submission_states=[
                SubmissionState.PENDING,
                SubmissionState.NOT_SENT,
                SubmissionState.UNCONFIRMED,
            ],
            limit=limit,
        )
        processing = await self.repository.list_by_state(
            statuses=[OrderStatus.PROCESSING],
            submission_states=[SubmissionState.ACCEPTED],
            limit=limit,
        )
        return [self._to_domain(row) for row in [*awaiting, *processing]]

    async def sales_totals(self) -> SalesTotals:
        count, revenue, cost = await self.repository.totals(OrderStatus.CHARGED)
        return SalesTotals(order_count=count, revenue_cents=revenue, cost_cents=cost)

    @staticmethod
    def _to_domain(model: OrderModel) -> Order:
        return Order(
            id=model.id,
            account_id=model.account_id,
            service_key=model.service_key,
            provider_service_id=model.provider_service_id,
            service_name=model.service_name,
            link=model.link,
            quantity=model.quantity,
            price_cents=model.price_cents,
            currency=model.currency,
            status=model.status,
            submission_state=model.submission_state,
            upstream_ref=model.upstream_ref,
            submit_attempts=model.submit_attempts or 0,
            last_error=model.last_error,
            start_count=model.start_count,
            remains=model.remains,
            created_at=model.created_at,
            updated_at=model.updated_at,
            completed_at=model.completed_at,
            cost_cents=model.cost_cents or 0,
        )
