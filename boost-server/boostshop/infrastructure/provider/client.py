"""HTTP client for SMM panels speaking the common "API v2" protocol.

Every call is a form-encoded POST of ``key``, ``action`` and the action's
parameters to a single endpoint. Failures are classified by whether the
request could have reached the provider:

- connect errors never left this host and are safe to resend;
- read timeouts, dropped connections and 5xx answers are ambiguous;
- an ``error`` field in the payload is a definitive refusal.
"""

from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Optional, Protocol

import httpx
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from boostshop.core.config import ProviderSettings
from boostshop.modules.catalog.models import ProviderRate

from .exceptions import (
    ProviderRejectedError,
    ProviderResponseError,
    ProviderTimeoutError,
    ProviderUnreachableError,
)
from .models import ProviderBalance, ProviderStatus

logger = logging.getLogger(__name__)

_NOT_FOUND_MARKERS = ("incorrect order", "not found", "no order")


class ProviderClient(Protocol):
    supports_idempotency_key: bool

    async def submit(
        self,
        service_id: str,
        link: str,
        quantity: int,
        idempotency_key: Optional[str] = None,
    ) -> str:
        ...

    async def poll_status(self, ref: str) -> ProviderStatus:
        ...

    async def lookup_by_key(self, idempotency_key: str) -> Optional[ProviderStatus]:
        ...

    async def list_services(self) -> list[ProviderRate]:
        ...

    async def balance(self) -> ProviderBalance:
        ...

    async def aclose(self) -> None:
        ...


def _to_decimal(value: Any) -> Optional[Decimal]:
    if value in (None, ""):
        return None
    try:
        return Decimal(str(value))
    except InvalidOperation:
        return None


def _to_int(value: Any) -> Optional[int]:
    if value in (None, ""):
        return None
    try:
        return int(Decimal(str(value)))
    except (InvalidOperation, ValueError):
        return None


class SmmProviderClient:
    def __init__(
        self,
        settings: ProviderSettings,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._settings = settings
        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(settings.timeout_seconds),
            transport=transport,
        )

    @property
    def supports_idempotency_key(self) -> bool:
        return self._settings.supports_idempotency_key

    async def aclose(self) -> None:
        await self._client.aclose()

    async def submit(
        self,
        service_id: str,
        link: str,
        quantity: int,
        idempotency_key: Optional[str] = None,
    ) -> str:
        """Create an upstream order and return its reference.

        Only connect failures are retried here; once the request may have
        been delivered a resend could create a second upstream order.
        """
        params: dict[str, Any] = {"service": service_id, "link": link, "quantity": quantity}
        if idempotency_key and self.supports_idempotency_key:
            params["idempotency_key"] = idempotency_key
        payload = await self._retrying(
            self._settings.connect_retries, (ProviderUnreachableError,)
        )(self._call, "add", **params)
        ref = payload.get("order") if isinstance(payload, dict) else None
        if ref in (None, ""):
            raise ProviderResponseError(f"Provider accepted add without an order id: {payload!r}")
        logger.info("Provider accepted service %s x%s as %s", service_id, quantity, ref)
        return str(ref)

    async def poll_status(self, ref: str) -> ProviderStatus:
        payload = await self._retrying(
            self._settings.status_retries, (ProviderUnreachableError, ProviderTimeoutError)
        )(self._call, "status", order=ref)
        return self._to_status(ref, payload)

    async def lookup_by_key(self, idempotency_key: str) -> Optional[ProviderStatus]:
        """Find an order by the client token sent with ``submit``.

        Returns ``None`` when the provider has no order for the key.
        """
        if not self.supports_idempotency_key:
            raise NotImplementedError("Provider does not support idempotency keys")
        try:
            payload = await self._retrying(
                self._settings.status_retries, (ProviderUnreachableError, ProviderTimeoutError)
            )(self._call, "status", idempotency_key=idempotency_key)
        except ProviderRejectedError as exc:
            if any(marker in exc.reason.lower() for marker in _NOT_FOUND_MARKERS):
                return None
            raise
        ref = payload.get("order") if isinstance(payload, dict) else None
        if ref in (None, ""):
            return None
        return self._to_status(str(ref), payload)

    async def list_services(self) -> list[ProviderRate]:
        payload = await self._retrying(
            self._settings.status_retries, (ProviderUnreachableError, ProviderTimeoutError)
        )(self._call, "services")
        if not isinstance(payload, list):
            raise ProviderResponseError("Provider services payload is not a list")
        rates: list[ProviderRate] = []
        for entry in payload:
            if not isinstance(entry, dict):
                continue
            rate = _to_decimal(entry.get("rate"))
            service_id = entry.get("service")
            if rate is None or service_id is None:
                continue
            rates.append(
                ProviderRate(
                    provider_service_id=str(service_id),
                    rate=rate,
                    min_quantity=_to_int(entry.get("min")),
                    max_quantity=_to_int(entry.get("max")),
                )
            )
        return rates

    async def balance(self) -> ProviderBalance:
        payload = await self._retrying(
            self._settings.status_retries, (ProviderUnreachableError, ProviderTimeoutError)
        )(self._call, "balance")
        amount = _to_decimal(payload.get("balance")) if isinstance(payload, dict) else None
        if amount is None:
            raise ProviderResponseError("Provider balance payload has no balance")
        return ProviderBalance(balance=amount, currency=str(payload.get("currency") or "USD"))

    def _retrying(self, attempts: int, retry_on: tuple[type[Exception], ...]) -> AsyncRetrying:
        return AsyncRetrying(
            stop=stop_after_attempt(max(1, attempts)),
            wait=wait_exponential(multiplier=self._settings.retry_backoff_seconds, max=10),
            retry=retry_if_exception_type(retry_on),
            reraise=True,
        )

    async def _call(self, action: str, **params: Any) -> Any:
        data = {"key": self._settings.api_key, "action": action, **params}
        try:
            response = await self._client.post(self._settings.base_url, data=data)
        except (httpx.ConnectError, httpx.ConnectTimeout, httpx.PoolTimeout) as exc:
            logger.warning("Provider unreachable on %s: %s", action, type(exc).__name__)
            raise ProviderUnreachableError(f"Provider unreachable: {type(exc).__name__}") from exc
        except httpx.TimeoutException as exc:
            logger.warning("Provider timed out on %s: %s", action, type(exc).__name__)
            raise ProviderTimeoutError(f"Provider timed out: {type(exc).__name__}") from exc
        except httpx.TransportError as exc:
            logger.warning("Provider connection lost on %s: %s", action, type(exc).__name__)
            raise ProviderTimeoutError(f"Provider connection lost: {type(exc).__name__}") from exc

        if response.status_code >= 500:
            logger.warning("Provider returned HTTP %s on %s", response.status_code, action)
            raise ProviderTimeoutError(f"Provider returned HTTP {response.status_code}")
        if response.status_code == 408:
            logger.warning("Provider reported a request timeout on %s", action)
            raise ProviderTimeoutError("Provider returned HTTP 408")
        if response.status_code == 429:
            # refused before processing, so the request was not taken
            logger.warning("Provider rate limited %s", action)
            raise ProviderUnreachableError("Provider rate limited the request (HTTP 429)")

        try:
            payload = response.json()
        except ValueError as exc:
            if response.status_code >= 400:
                raise ProviderRejectedError(f"HTTP {response.status_code}") from exc
            raise ProviderResponseError(f"Provider returned non-JSON body for {action}") from exc

        if isinstance(payload, dict) and payload.get("error"):
            reason = str(payload["error"])
            logger.info("Provider rejected %s: %s", action, reason)
            raise ProviderRejectedError(reason)
        if response.status_code >= 400:
            raise ProviderRejectedError(f"HTTP {response.status_code}")
        return payload

    @staticmethod
    def _to_status(ref: str, payload: Any) -> ProviderStatus:
        if not isinstance(payload, dict) or not payload.get("status"):
            raise ProviderResponseError(f"Provider status payload for {ref} has no status")
        return ProviderStatus(
            ref=ref,
            raw_status=str(payload["status"]),
            charge=_to_decimal(payload.get("charge")),
            start_count=_to_int(payload.get("start_count")),
            remains=_to_int(payload.get("remains")),
            currency=payload.get("currency"),
        )
