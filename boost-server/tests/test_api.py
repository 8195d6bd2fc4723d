"""HTTP API tests through the ASGI app with a fake provider."""

import httpx
import pytest

from boostshop.core.container import ApplicationContainer
from boostshop.infrastructure.provider import ProviderRejectedError, ProviderTimeoutError, ProviderStatus
from boostshop.main import create_app

PAGE_LINK = "https://www.facebook.com/somepage"


@pytest.fixture()
async def client(settings, session_factory, provider):
    container = ApplicationContainer.build(settings, session_factory=session_factory, provider=provider)
    app = create_app(settings, container)
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as http:
        yield http


@pytest.fixture()
def login(client, make_account):
    """Create an account with a balance and return auth headers for it."""

    async def _login(balance: str = "0.00", *, role: str = "user"):
        account = await make_account(balance, role=role)
        response = await client.post(
            "/api/auth/login", json={"email": account.email, "password": "secret123"}
        )
        assert response.status_code == 200
        return {"Authorization": f"Bearer {response.json()['access_token']}"}

    return _login


def order_body(order_id="ord-1", quantity=3000, service_key="page-likes", link=PAGE_LINK):
    return {"order_id": order_id, "service_key": service_key, "link": link, "quantity": quantity}


class TestAuth:
    @pytest.mark.asyncio()
    async def test_register_login_and_me(self, client):
        response = await client.post(
            "/api/auth/register", json={"email": "new@example.com", "password": "hunter22"}
        )
        assert response.status_code == 201
        token = response.json()["access_token"]

        duplicate = await client.post(
            "/api/auth/register", json={"email": "new@example.com", "password": "hunter22"}
        )
        assert duplicate.status_code == 400

        me = await client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert me.status_code == 200
        assert me.json()["email"] == "new@example.com"

        bad = await client.post("/api/auth/login", json={"email": "new@example.com", "password": "nope"})
        assert bad.status_code == 401

    @pytest.mark.asyncio()
    async def test_protected_routes_need_token(self, client):
        response = await client.get("/api/wallet")
        assert response.status_code in (401, 403)
        garbage = await client.get("/api/wallet", headers={"Authorization": "Bearer not-a-token"})
        assert garbage.status_code == 401


class TestOrdersApi:
    @pytest.mark.asyncio()
    async def test_catalog_is_public(self, client):
        response = await client.get("/api/services")
        assert response.status_code == 200
        keys = {service["key"] for service in response.json()["services"]}
        assert "page-likes" in keys

    @pytest.mark.asyncio()
    async def test_place_order_then_replay(self, client, login, provider):
        headers = await login("10.00")
        provider.refs = ["P123"]

        created = await client.post("/api/orders", json=order_body(), headers=headers)
        replay = await client.post("/api/orders", json=order_body(), headers=headers)

        assert created.status_code == 201
        body = created.json()
        assert (body["status"], body["upstream_ref"], body["price"]) == ("Processing", "P123", "7.50")
        assert replay.status_code == 200
        assert replay.json()["id"] == "ord-1"
        wallet = await client.get("/api/wallet", headers=headers)
        assert wallet.json()["balance"] == "2.50"

    @pytest.mark.asyncio()
    async def test_insufficient_funds(self, client, login):
        headers = await login("5.00")
        response = await client.post("/api/orders", json=order_body(), headers=headers)
        assert response.status_code == 402
        assert "top up" in response.json()["detail"]

    @pytest.mark.asyncio()
    async def test_invalid_requests(self, client, login):
        headers = await login("10.00")
        too_small = await client.post("/api/orders", json=order_body(quantity=5), headers=headers)
        wrong_site = await client.post(
            "/api/orders", json=order_body(link="https://example.com/page"), headers=headers
        )
        unknown = await client.post("/api/orders", json=order_body(service_key="nope"), headers=headers)

        assert too_small.status_code == 400
        assert wrong_site.status_code == 400
        assert unknown.status_code == 404

    @pytest.mark.asyncio()
    async def test_order_id_of_another_account(self, client, login):
        owner = await login("10.00")
        other = await login("10.00")
        await client.post("/api/orders", json=order_body(), headers=owner)
        response = await client.post("/api/orders", json=order_body(), headers=other)
        assert response.status_code == 409

    @pytest.mark.asyncio()
    async def test_provider_rejection(self, client, login, provider):
        headers = await login("10.00")
        provider.submit_errors = [ProviderRejectedError("Incorrect link")]

        response = await client.post("/api/orders", json=order_body(), headers=headers)

        assert response.status_code == 422
        assert "Incorrect link" in response.json()["detail"]
        wallet = await client.get("/api/wallet", headers=headers)
        assert wallet.json()["balance"] == "10.00"

    @pytest.mark.asyncio()
    async def test_unconfirmed_order_is_accepted_for_processing(self, client, login, provider):
        headers = await login("10.00")
        provider.submit_errors = [ProviderTimeoutError("read timeout")]

        response = await client.post("/api/orders", json=order_body(), headers=headers)

        assert response.status_code == 202
        assert response.headers["X-Order-Message"]
        assert response.json()["status"] == "PendingPayment"
        wallet = (await client.get("/api/wallet", headers=headers)).json()
        assert (wallet["balance"], wallet["held"], wallet["available"]) == ("10.00", "7.50", "2.50")

    @pytest.mark.asyncio()
    async def test_order_status_and_listing(self, client, login, provider):
        headers = await login("10.00")
        provider.refs = ["P123"]
        await client.post("/api/orders", json=order_body(), headers=headers)
        provider.statuses["P123"] = ProviderStatus(ref="P123", raw_status="Completed", remains=0)

        status = await client.get("/api/orders/ord-1", headers=headers)
        listing = await client.get("/api/orders", headers=headers)
        missing = await client.get("/api/orders/nope", headers=headers)

        assert status.json()["status"] == "Completed"
        assert [order["id"] for order in listing.json()["orders"]] == ["ord-1"]
        assert missing.status_code == 404

    @pytest.mark.asyncio()
    async def test_cancel_accepted_order_conflicts(self, client, login):
        headers = await login("10.00")
        await client.post("/api/orders", json=order_body(), headers=headers)
        response = await client.post("/api/orders/ord-1/cancel", headers=headers)
        assert response.status_code == 409


class TestWalletApi:
    @pytest.mark.asyncio()
    async def test_gcash_deposit_reviewed_by_admin(self, client, login):
        headers = await login()
        admin = await login(role="admin")

        requested = await client.post(
            "/api/wallet/deposits/gcash",
            json={"amount": "10.00", "reference_no": "9988776655"},
            headers=headers,
        )
        assert requested.status_code == 201
        assert requested.json()["gcash_number"] == "09170000000"
        deposit_id = requested.json()["deposit"]["id"]

        forbidden = await client.post(
            f"/api/admin/deposits/{deposit_id}/review", json={"approve": True}, headers=headers
        )
        assert forbidden.status_code == 403

        reviewed = await client.post(
            f"/api/admin/deposits/{deposit_id}/review", json={"approve": True}, headers=admin
        )
        assert reviewed.json()["status"] == "completed"
        wallet = await client.get("/api/wallet", headers=headers)
        assert wallet.json()["balance"] == "12.50"
        entries = await client.get("/api/wallet/entries", headers=headers)
        assert sorted(entry["type"] for entry in entries.json()["entries"]) == ["bonus", "credit"]

    @pytest.mark.asyncio()
    async def test_paypal_unconfigured(self, client, login):
        headers = await login()
        response = await client.post("/api/wallet/deposits/paypal", json={"amount": "10.00"}, headers=headers)
        assert response.status_code == 503


class TestAdminApi:
    @pytest.mark.asyncio()
    async def test_stats_count_only_charged_orders(self, client, login, provider):
        headers = await login("20.00")
        admin = await login(role="admin")
        provider.refs = ["P1"]
        await client.post("/api/orders", json=order_body("ord-1"), headers=headers)
        provider.submit_errors = [ProviderRejectedError("Incorrect link")]
        await client.post("/api/orders", json=order_body("ord-2"), headers=headers)

        response = await client.get("/api/admin/stats", headers=admin)

        assert response.status_code == 200
        assert response.json() == {
            "total_users": 2,
            "total_orders": 2,
            "total_revenue": "7.50",
            "total_profit": "6.00",
            "currency": "USD",
        }
        assert (await client.get("/api/admin/stats", headers=headers)).status_code == 403

    @pytest.mark.asyncio()
    async def test_resolve_unconfirmed_order(self, client, login, provider):
        headers = await login("10.00")
        admin = await login(role="admin")
        provider.submit_errors = [ProviderTimeoutError("read timeout")]
        await client.post("/api/orders", json=order_body(), headers=headers)

        swept = await client.post("/api/admin/reconciliation/sweep", headers=admin)
        assert swept.json()["order_ids"] == ["ord-1"]

        resolved = await client.post(
            "/api/admin/orders/ord-1/resolve", json={"upstream_ref": "P42"}, headers=admin
        )
        assert resolved.status_code == 200
        assert (resolved.json()["status"], resolved.json()["upstream_ref"]) == ("Processing", "P42")
        wallet = await client.get("/api/wallet", headers=headers)
        assert wallet.json()["balance"] == "2.50"

    @pytest.mark.asyncio()
    async def test_adjust_balance(self, client, login):
        headers = await login()
        admin = await login(role="admin")
        me = (await client.get("/api/auth/me", headers=headers)).json()

        credited = await client.post(
            f"/api/admin/accounts/{me['id']}/adjust", json={"amount": "3.00"}, headers=admin
        )
        overdrawn = await client.post(
            f"/api/admin/accounts/{me['id']}/adjust", json={"amount": "-5.00"}, headers=admin
        )

        assert credited.json()["balance"] == "3.00"
        assert overdrawn.status_code == 402

    @pytest.mark.asyncio()
    async def test_disabled_account_loses_access(self, client, login):
        headers = await login()
        admin = await login(role="admin")
        me = (await client.get("/api/auth/me", headers=headers)).json()

        response = await client.post(
            f"/api/admin/accounts/{me['id']}/status", json={"is_active": False}, headers=admin
        )

        assert response.json()["is_active"] is False
        assert (await client.get("/api/wallet", headers=headers)).status_code == 401

    @pytest.mark.asyncio()
    async def test_only_super_admin_changes_roles(self, client, login):
        headers = await login()
        admin = await login(role="admin")
        owner = await login(role="super_admin")
        me = (await client.get("/api/auth/me", headers=headers)).json()

        denied = await client.post(f"/api/admin/accounts/{me['id']}/role", json={"role": "admin"}, headers=admin)
        granted = await client.post(f"/api/admin/accounts/{me['id']}/role", json={"role": "admin"}, headers=owner)

        assert denied.status_code == 403
        assert granted.json()["role"] == "admin"


class TestPasswordChange:
    @pytest.mark.asyncio()
    async def test_change_password_then_login(self, client, login):
        headers = await login()
        me = (await client.get("/api/auth/me", headers=headers)).json()

        wrong = await client.post(
            "/api/auth/password",
            json={"current_password": "nope", "new_password": "brandnew1"},
            headers=headers,
        )
        changed = await client.post(
            "/api/auth/password",
            json={"current_password": "secret123", "new_password": "brandnew1"},
            headers=headers,
        )
        relogin = await client.post("/api/auth/login", json={"email": me["email"], "password": "brandnew1"})

        assert wrong.status_code == 400
        assert changed.status_code == 200
        assert relogin.status_code == 200
