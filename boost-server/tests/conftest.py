"""Shared fixtures: a throwaway SQLite database, a fake provider and funded accounts."""

from __future__ import annotations

import asyncio
import itertools
from decimal import Decimal
from typing import Optional

import pytest

from boostshop.core.config import Settings
from boostshop.core.money import to_cents
from boostshop.infrastructure.database.session import build_engine, build_session_factory, init_db
from boostshop.infrastructure.provider import ProviderBalance, ProviderStatus
from boostshop.modules.accounts import AccountCreateInput, AccountService
from boostshop.modules.catalog import CatalogService, ProviderRate
from boostshop.modules.orchestrator import OrderOrchestrator
from boostshop.modules.wallets import EntryType, WalletService


class FakeProvider:
    """In-memory stand-in for the SMM panel client."""

    def __init__(self) -> None:
        self.supports_idempotency_key = False
        self.submissions: list[dict] = []
        self.polls: list[str] = []
        self.refs: list[str] = []
        self.submit_errors: list[Exception] = []
        self.statuses: dict[str, ProviderStatus] = {}
        self.by_key: dict[str, ProviderStatus] = {}
        self.poll_error: Optional[Exception] = None
        self.services: list[ProviderRate] = []
        self.closed = False
        # set to an Event to park submit calls until the test releases them
        self.hold_submit: Optional[asyncio.Event] = None
        self.submit_entered = asyncio.Event()
        self._counter = itertools.count(1000)

    async def submit(self, service_id, link, quantity, idempotency_key=None):
        self.submissions.append(
            {
                "service_id": service_id,
                "link": link,
                "quantity": quantity,
                "idempotency_key": idempotency_key,
            }
        )
        if self.hold_submit is not None:
            self.submit_entered.set()
            await self.hold_submit.wait()
        if self.submit_errors:
            raise self.submit_errors.pop(0)
        return self.refs.pop(0) if self.refs else f"P{next(self._counter)}"

    async def poll_status(self, ref):
        self.polls.append(ref)
        if self.poll_error is not None:
            raise self.poll_error
        return self.statuses.get(ref) or ProviderStatus(ref=ref, raw_status="In progress")

    async def lookup_by_key(self, idempotency_key):
        return self.by_key.get(idempotency_key)

    async def list_services(self):
        return list(self.services)

    async def balance(self):
        return ProviderBalance(balance=Decimal("100.00"), currency="USD")

    async def aclose(self):
        self.closed = True


@pytest.fixture()
def settings(tmp_path) -> Settings:
    return Settings(
        environment="test",
        database={"url": f"sqlite+aiosqlite:///{tmp_path / 'boostshop-test.db'}"},
        security={"secret_key": "test-secret-key"},
        provider={
            "api_key": "test-key",
            "base_url": "https://panel.test/api/v2",
            "connect_retries": 2,
            "status_retries": 2,
            "retry_backoff_seconds": 0,
        },
        reconciliation={"enabled": False, "max_submit_attempts": 3, "stale_submission_seconds": 0},
        payments={"gcash_number": "09170000000"},
    )


@pytest.fixture()
async def session_factory(settings):
    engine = build_engine(settings)
    await init_db(engine)
    yield build_session_factory(engine)
    await engine.dispose()


@pytest.fixture()
def provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture()
def catalog(settings) -> CatalogService:
    return CatalogService(settings.catalog)


@pytest.fixture()
def orchestrator(session_factory, catalog, provider, settings) -> OrderOrchestrator:
    return OrderOrchestrator(session_factory, catalog, provider, settings.reconciliation)


@pytest.fixture()
def make_account(session_factory):
    """Factory creating an account with an optional opening balance."""
    counter = itertools.count(1)

    async def _make(balance: str = "0.00", *, role: str = "user", email: Optional[str] = None):
        async with session_factory() as session:
            async with session.begin():
                account = await AccountService.with_session(session).register(
                    AccountCreateInput(
                        email=email or f"buyer{next(counter)}@example.com",
                        password="secret123",
                        role=role,
                    )
                )
                cents = to_cents(balance)
                if cents:
                    await WalletService.with_session(session).credit(
                        account_id=account.id,
                        amount_cents=cents,
                        entry_type=EntryType.ADJUSTMENT,
                        description="opening balance",
                    )
        return account

    return _make


@pytest.fixture()
def wallet_of(session_factory):
    """Read a fresh wallet snapshot for an account."""

    async def _snapshot(account_id: str):
        async with session_factory() as session:
            return await WalletService.with_session(session).snapshot(account_id)

    return _snapshot


@pytest.fixture()
def entries_of(session_factory):
    async def _entries(account_id: str, order_id: Optional[str] = None):
        async with session_factory() as session:
            return await WalletService.with_session(session).list_entries(
                account_id, limit=500, order_id=order_id
            )

    return _entries
