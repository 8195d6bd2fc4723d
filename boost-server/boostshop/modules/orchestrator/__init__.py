"""Order orchestration exports"""

from .exceptions import OrchestratorError, OrderPendingConfirmationError
from .models import PlaceOrderResult, ReconciliationReport
from .service import OrderOrchestrator

__all__ = [
    "OrchestratorError",
    "OrderOrchestrator",
    "OrderPendingConfirmationError",
    "PlaceOrderResult",
    "ReconciliationReport",
]
