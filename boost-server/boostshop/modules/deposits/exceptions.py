"""Deposit flow exceptions."""


class DepositError(Exception):
    """Base class for deposit errors."""


class InvalidDepositError(DepositError):
    """Amount or reference is not acceptable."""


class DepositNotFoundError(DepositError):
    """No deposit matches the identifier for this account."""


class DuplicateDepositError(DepositError):
    """The payment reference was already submitted on this channel."""


class DepositStateError(DepositError):
    """The deposit is no longer pending and cannot change."""


class PaymentUnavailableError(DepositError):
    """The payment channel is not configured or the gateway failed."""
