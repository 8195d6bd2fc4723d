"""Persistence contract for accounts."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional, Protocol, Sequence

from .models import Account


class AccountRepository(Protocol):
    async def get_by_id(self, account_id: str) -> Account | None:
        ...

    async def get_by_email(self, email: str) -> Account | None:
        ...

    async def list_accounts(
        self, limit: int = 50, offset: int = 0, role: Optional[str] = None
    ) -> Sequence[Account]:
        ...

    async def count_accounts(self) -> int:
        ...

    async def exists_with_roles(self, roles: frozenset[str]) -> bool:
        ...

    async def create_account(
        self,
        *,
        email: str,
        password_hash: str,
        role: str,
        first_name: str | None,
        last_name: str | None,
        is_active: bool,
    ) -> Account:
        ...

    async def update(self, account_id: str, **values: Any) -> Account | None:
        ...

    async def set_last_login(self, account_id: str, timestamp: datetime) -> None:
        ...
