"""Background workers."""

from .reconciliation import ReconciliationWorker

__all__ = ["ReconciliationWorker"]
