"""Deposit exports"""

from .exceptions import (
    DepositError,
    DepositNotFoundError,
    DepositStateError,
    DuplicateDepositError,
    InvalidDepositError,
    PaymentUnavailableError,
)
from .models import Deposit, DepositChannel, DepositStatus, PayPalCheckout
from .service import DepositService

__all__ = [
    "Deposit",
    "DepositChannel",
    "DepositError",
    "DepositNotFoundError",
    "DepositService",
    "DepositStateError",
    "DepositStatus",
    "DuplicateDepositError",
    "InvalidDepositError",
    "PayPalCheckout",
    "PaymentUnavailableError",
]
