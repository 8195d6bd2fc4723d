"""Order store exceptions."""

from __future__ import annotations


class OrderError(Exception):
    """Base class for order store errors."""


class OrderNotFoundError(OrderError):
    """No order exists with the requested identifier."""


class DuplicateOrderIdError(OrderError):
    """An order with this identifier already exists."""

    def __init__(self, order_id: str) -> None:
        self.order_id = order_id
        super().__init__(f"Order id already used: {order_id}")


class InvalidTransitionError(OrderError):
    """The requested status change would move the order backwards."""

    def __init__(self, order_id: str, current: str, target: str) -> None:
        self.order_id = order_id
        self.current = current
        self.target = target
        super().__init__(f"Order {order_id} cannot move from {current} to {target}")


class UpstreamRefConflictError(OrderError):
    """The order already carries a different upstream reference."""
