"""Balance ledger exports"""

from .exceptions import HoldMismatchError, InsufficientFundsError, WalletAccountNotFoundError, WalletError
from .models import EntryType, LedgerEntryRecord, WalletSnapshot
from .service import WalletService

__all__ = [
    "EntryType",
    "HoldMismatchError",
    "InsufficientFundsError",
    "LedgerEntryRecord",
    "WalletAccountNotFoundError",
    "WalletError",
    "WalletSnapshot",
    "WalletService",
]
