"""Ledger specific exceptions."""

from __future__ import annotations

from boostshop.core.money import format_amount


class WalletError(Exception):
    """Base class for ledger errors."""


class InsufficientFundsError(WalletError):
    """Spendable balance is lower than the requested amount."""

    def __init__(self, account_id: str, requested_cents: int, available_cents: int) -> None:
        self.account_id = account_id
        self.requested_cents = requested_cents
        self.available_cents = available_cents
        super().__init__(
            f"Insufficient funds: requested {format_amount(requested_cents)}, "
            f"available {format_amount(available_cents)}"
        )


class HoldMismatchError(WalletError):
    """A release or capture asked for more than is currently held."""


class WalletAccountNotFoundError(WalletError):
    """The ledger has no account with this identifier."""
