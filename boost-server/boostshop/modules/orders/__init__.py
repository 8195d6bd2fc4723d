"""Order record store exports"""

from .exceptions import (
    DuplicateOrderIdError,
    InvalidTransitionError,
    OrderError,
    OrderNotFoundError,
    UpstreamRefConflictError,
)
from .models import (
    ALLOWED_TRANSITIONS,
    NewOrder,
    Order,
    OrderStatus,
    SalesTotals,
    SubmissionState,
    can_transition,
)
from .service import OrderService

__all__ = [
    "ALLOWED_TRANSITIONS",
    "DuplicateOrderIdError",
    "InvalidTransitionError",
    "NewOrder",
    "Order",
    "OrderError",
    "OrderNotFoundError",
    "OrderService",
    "OrderStatus",
    "SalesTotals",
    "SubmissionState",
    "UpstreamRefConflictError",
    "can_transition",
]
