"""Periodic reconciliation of unconfirmed and in-progress orders."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError

from boostshop.infrastructure.provider import ProviderError
from boostshop.modules.orchestrator import OrderOrchestrator, ReconciliationReport

logger = logging.getLogger(__name__)


class ReconciliationWorker:
    def __init__(self, orchestrator: OrderOrchestrator, interval_seconds: float) -> None:
        self._orchestrator = orchestrator
        self.interval_seconds = interval_seconds
        self._stop_event = asyncio.Event()
        self._task: Optional[asyncio.Task[None]] = None
        self.last_report: Optional[ReconciliationReport] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._stop_event.clear()
        self._task = asyncio.create_task(self.run_periodic_loop(), name="order-reconciliation")
        logger.info("Reconciliation worker started (every %ss)", self.interval_seconds)

    async def stop(self) -> None:
        self._stop_event.set()
        if self._task is not None:
            await self._task
            self._task = None
        logger.info("Reconciliation worker stopped")

    async def run_once(self) -> ReconciliationReport:
        self.last_report = await self._orchestrator.sweep()
        return self.last_report

    async def run_periodic_loop(self) -> None:
        """Sweep until stopped; a failed sweep is logged and retried next tick."""
        while not self._stop_event.is_set():
            try:
                await self.run_once()
            except ProviderError as exc:
                logger.error("Periodic reconciliation failed: provider error: %s", exc, exc_info=True)
            except SQLAlchemyError as exc:
                logger.error("Periodic reconciliation failed: database error: %s", exc, exc_info=True)
            except Exception:
                logger.exception("Periodic reconciliation failed with an unexpected error")
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self.interval_seconds)
            except asyncio.TimeoutError:
                pass
