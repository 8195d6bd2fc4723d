"""Payment gateways for wallet deposits."""

from .gateway import CaptureResult, CreatedPayment, PaymentGateway, PaymentGatewayError
from .paypal import PayPalGateway

__all__ = [
    "CaptureResult",
    "CreatedPayment",
    "PayPalGateway",
    "PaymentGateway",
    "PaymentGatewayError",
]
