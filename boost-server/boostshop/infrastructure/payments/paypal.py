"""PayPal REST v2 Orders API gateway."""

from __future__ import annotations

import logging
import time
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

import httpx

from boostshop.core.config import PaymentSettings
from boostshop.core.money import quantize

from .gateway import CaptureResult, CreatedPayment, PaymentGatewayError

logger = logging.getLogger(__name__)

TOKEN_PATH = "/v1/oauth2/token"
ORDERS_PATH = "/v2/checkout/orders"


class PayPalGateway:
    def __init__(
        self,
        settings: PaymentSettings,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._settings = settings
        self._client = httpx.AsyncClient(
            base_url=settings.paypal_base_url,
            timeout=httpx.Timeout(settings.paypal_timeout_seconds),
            transport=transport,
        )
        self._token: Optional[str] = None
        self._token_expires_at = 0.0

    async def aclose(self) -> None:
        await self._client.aclose()

    async def create_order(self, amount: Decimal, currency: str) -> CreatedPayment:
        body = {
            "intent": "CAPTURE",
            "purchase_units": [
                {"amount": {"currency_code": currency, "value": str(quantize(amount))}}
            ],
        }
        payload = await self._request("POST", ORDERS_PATH, json=body)
        order_ref = payload.get("id")
        if not order_ref:
            raise PaymentGatewayError("PayPal order response has no id")
        approve_url = next(
            (
                link.get("href")
                for link in payload.get("links", [])
                if link.get("rel") in ("approve", "payer-action")
            ),
            None,
        )
        logger.info("Created PayPal order %s for %s %s", order_ref, amount, currency)
        return CreatedPayment(order_ref=order_ref, status=payload.get("status", ""), approve_url=approve_url)

    async def capture_order(self, order_ref: str) -> CaptureResult:
        try:
            payload = await self._request("POST", f"{ORDERS_PATH}/{order_ref}/capture", json={})
        except _AlreadyCaptured:
            payload = await self._request("GET", f"{ORDERS_PATH}/{order_ref}")
        return self._to_capture(order_ref, payload)

    async def _access_token(self) -> str:
        if self._token and time.monotonic() < self._token_expires_at:
            return self._token
        try:
            response = await self._client.post(
                TOKEN_PATH,
                data={"grant_type": "client_credentials"},
                auth=(self._settings.paypal_client_id, self._settings.paypal_client_secret),
            )
        except httpx.RequestError as exc:
            raise PaymentGatewayError(f"PayPal unreachable: {type(exc).__name__}") from exc
        if response.status_code != 200:
            logger.error("PayPal token request failed with HTTP %s", response.status_code)
            raise PaymentGatewayError(f"PayPal authentication failed: HTTP {response.status_code}")
        data = response.json()
        self._token = data["access_token"]
        # refresh a minute early
        self._token_expires_at = time.monotonic() + max(int(data.get("expires_in", 0)) - 60, 0)
        return self._token

    async def _request(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        token = await self._access_token()
        try:
            response = await self._client.request(
                method, path, headers={"Authorization": f"Bearer {token}"}, **kwargs
            )
        except httpx.TimeoutException as exc:
            logger.error("PayPal %s %s timed out", method, path)
            raise PaymentGatewayError("PayPal request timed out") from exc
        except httpx.RequestError as exc:
            raise PaymentGatewayError(f"PayPal unreachable: {type(exc).__name__}") from exc

        if response.status_code == 422 and _issue(response) == "ORDER_ALREADY_CAPTURED":
            raise _AlreadyCaptured(path)
        if response.status_code >= 400:
            logger.error("PayPal %s %s failed with HTTP %s", method, path, response.status_code)
            raise PaymentGatewayError(f"PayPal request failed: HTTP {response.status_code}")
        try:
            return response.json()
        except ValueError as exc:
            raise PaymentGatewayError("PayPal returned a non-JSON body") from exc

    @staticmethod
    def _to_capture(order_ref: str, payload: dict[str, Any]) -> CaptureResult:
        captures = [
            capture
            for unit in payload.get("purchase_units", [])
            for capture in unit.get("payments", {}).get("captures", [])
        ]
        if not captures:
            return CaptureResult(order_ref=order_ref, status=payload.get("status", "UNKNOWN"))
        capture = captures[0]
        amount = capture.get("amount", {})
        try:
            value = Decimal(amount["value"]) if "value" in amount else None
        except InvalidOperation:
            value = None
        return CaptureResult(
            order_ref=order_ref,
            status=capture.get("status", payload.get("status", "UNKNOWN")),
            amount=value,
            currency=amount.get("currency_code"),
            capture_id=capture.get("id"),
        )


class _AlreadyCaptured(Exception):
    pass


def _issue(response: httpx.Response) -> Optional[str]:
    try:
        details = response.json().get("details") or []
    except ValueError:
        return None
    return details[0].get("issue") if details else None
