"""Tests for the PayPal Orders API gateway against a mocked PayPal."""

import json
from decimal import Decimal

import httpx
import pytest

from boostshop.core.config import PaymentSettings
from boostshop.infrastructure.payments import PaymentGatewayError, PayPalGateway


class FakePayPal:
    def __init__(self) -> None:
        self.token_requests = 0
        self.requests: list[tuple[str, str]] = []
        self.capture_response = httpx.Response(
            201,
            json={
                "id": "5O190127TN364715T",
                "status": "COMPLETED",
                "purchase_units": [
                    {
                        "payments": {
                            "captures": [
                                {
                                    "id": "3C679366HH908993F",
                                    "status": "COMPLETED",
                                    "amount": {"currency_code": "USD", "value": "10.00"},
                                }
                            ]
                        }
                    }
                ],
            },
        )

    def __call__(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if path == "/v1/oauth2/token":
            self.token_requests += 1
            assert request.headers["authorization"].startswith("Basic ")
            return httpx.Response(200, json={"access_token": "A21AAF", "expires_in": 32400})
        assert request.headers["authorization"] == "Bearer A21AAF"
        self.requests.append((request.method, path))
        if request.method == "POST" and path == "/v2/checkout/orders":
            body = json.loads(request.content)
            assert body["intent"] == "CAPTURE"
            return httpx.Response(
                201,
                json={
                    "id": "5O190127TN364715T",
                    "status": "CREATED",
                    "links": [
                        {"href": "https://api.sandbox.paypal.com/v2/checkout/orders/5O1", "rel": "self"},
                        {"href": "https://www.sandbox.paypal.com/checkoutnow?token=5O1", "rel": "approve"},
                    ],
                    "amount": body["purchase_units"][0]["amount"],
                },
            )
        if path.endswith("/capture"):
            return self.capture_response
        if request.method == "GET":
            return httpx.Response(200, json={"id": "5O190127TN364715T", "status": "COMPLETED"})
        return httpx.Response(404, json={"name": "RESOURCE_NOT_FOUND"})


@pytest.fixture()
def paypal() -> FakePayPal:
    return FakePayPal()


@pytest.fixture()
async def gateway(paypal):
    settings = PaymentSettings(
        paypal_base_url="https://api-m.sandbox.paypal.com",
        paypal_client_id="client",
        paypal_client_secret="secret",
    )
    client = PayPalGateway(settings, transport=httpx.MockTransport(paypal))
    yield client
    await client.aclose()


class TestPayPalGateway:
    @pytest.mark.asyncio()
    async def test_create_order_returns_approval_link(self, gateway, paypal):
        created = await gateway.create_order(Decimal("10"), "USD")

        assert created.order_ref == "5O190127TN364715T"
        assert created.approve_url == "https://www.sandbox.paypal.com/checkoutnow?token=5O1"
        assert paypal.requests == [("POST", "/v2/checkout/orders")]

    @pytest.mark.asyncio()
    async def test_token_is_reused(self, gateway, paypal):
        await gateway.create_order(Decimal("10"), "USD")
        await gateway.create_order(Decimal("12.50"), "USD")
        assert paypal.token_requests == 1

    @pytest.mark.asyncio()
    async def test_capture_completed(self, gateway):
        capture = await gateway.capture_order("5O190127TN364715T")

        assert capture.completed
        assert capture.amount == Decimal("10.00")
        assert capture.capture_id == "3C679366HH908993F"

    @pytest.mark.asyncio()
    async def test_already_captured_reads_order(self, gateway, paypal):
        paypal.capture_response = httpx.Response(
            422,
            json={"name": "UNPROCESSABLE_ENTITY", "details": [{"issue": "ORDER_ALREADY_CAPTURED"}]},
        )

        capture = await gateway.capture_order("5O190127TN364715T")

        assert capture.status == "COMPLETED"
        assert paypal.requests[-1] == ("GET", "/v2/checkout/orders/5O190127TN364715T")

    @pytest.mark.asyncio()
    async def test_declined_capture_is_reported(self, gateway, paypal):
        paypal.capture_response = httpx.Response(
            201,
            json={
                "id": "X",
                "status": "COMPLETED",
                "purchase_units": [{"payments": {"captures": [{"id": "C", "status": "DECLINED"}]}}],
            },
        )

        capture = await gateway.capture_order("X")

        assert capture.status == "DECLINED"
        assert not capture.completed

    @pytest.mark.asyncio()
    async def test_http_error_raises(self, gateway, paypal):
        paypal.capture_response = httpx.Response(500, json={"name": "INTERNAL_SERVER_ERROR"})
        with pytest.raises(PaymentGatewayError):
            await gateway.capture_order("X")

    @pytest.mark.asyncio()
    async def test_bad_credentials(self):
        def deny(request):
            return httpx.Response(401, json={"error": "invalid_client"})

        gateway = PayPalGateway(
            PaymentSettings(paypal_client_id="bad", paypal_client_secret="bad"),
            transport=httpx.MockTransport(deny),
        )
        with pytest.raises(PaymentGatewayError):
            await gateway.create_order(Decimal("10"), "USD")
        await gateway.aclose()
