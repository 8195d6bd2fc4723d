"""Order orchestration exceptions."""

from __future__ import annotations

from boostshop.modules.orders.models import Order


class OrchestratorError(Exception):
    """Base class for orchestration errors."""


class OrderPendingConfirmationError(OrchestratorError):
    """The provider outcome is unknown; the order waits for reconciliation.

    Funds stay on hold and no debit has been taken.
    """

    def __init__(self, order: Order) -> None:
        self.order = order
        super().__init__(f"Order {order.id} is awaiting provider confirmation")
