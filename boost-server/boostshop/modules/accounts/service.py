"""Account use cases: registration, login and staff administration."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from boostshop.core.crypto import hash_password, needs_rehash, verify_password
from boostshop.infrastructure.database.repositories.account_repository import SqlAccountRepository

from .exceptions import (
    AccountAlreadyExistsError,
    AccountNotFoundError,
    InvalidPasswordError,
    InvalidRoleError,
)
from .models import ADMIN_ROLES, Account, AccountCreateInput, AccountRole
from .repository import AccountRepository

logger = logging.getLogger(__name__)


def normalize_email(email: str) -> str:
    return email.strip().lower()


class AccountService:
    def __init__(self, repository: AccountRepository) -> None:
        self._repository = repository

    @classmethod
    def with_session(cls, session: AsyncSession) -> "AccountService":
        return cls(SqlAccountRepository(session))

    async def get_by_id(self, account_id: str) -> Account | None:
        return await self._repository.get_by_id(account_id)

    async def get(self, account_id: str) -> Account:
        account = await self._repository.get_by_id(account_id)
        if account is None:
            raise AccountNotFoundError(account_id)
        return account

    async def get_by_email(self, email: str) -> Account | None:
        return await self._repository.get_by_email(normalize_email(email))

    async def list_accounts(
        self, limit: int = 50, offset: int = 0, role: Optional[str] = None
    ) -> Sequence[Account]:
        return await self._repository.list_accounts(limit, offset, role)

    async def count(self) -> int:
        return await self._repository.count_accounts()

    async def has_admin(self) -> bool:
        return await self._repository.exists_with_roles(ADMIN_ROLES)

    async def authenticate(self, email: str, password: str) -> Account | None:
        """Check credentials; disabled accounts cannot log in.

        Hashes made with an older work factor are upgraded on success.
        """
        account = await self._repository.get_by_email(normalize_email(email))
        if account is None or not account.is_active:
            return None
        if not verify_password(password, account.password_hash):
            logger.info("Failed login for %s", account.email)
            return None
        if needs_rehash(account.password_hash):
            account = await self._repository.update(account.id, password_hash=hash_password(password)) or account
        return account

    async def register(self, payload: AccountCreateInput) -> Account:
        email = normalize_email(payload.email)
        if payload.role not in AccountRole.ALL:
            raise InvalidRoleError(payload.role)
        existing = await self._repository.get_by_email(email)
        if existing is not None:
            raise AccountAlreadyExistsError(f"Email already registered: {email}")

        account = await self._repository.create_account(
            email=email,
            password_hash=self._hash(payload.password),
            role=payload.role,
            first_name=payload.first_name,
            last_name=payload.last_name,
            is_active=payload.is_active,
        )
        logger.info("Registered account %s (role=%s)", account.id, account.role)
        return account

    async def change_password(self, account_id: str, current_password: str, new_password: str) -> Account:
        account = await self.get(account_id)
        if not verify_password(current_password, account.password_hash):
            raise InvalidPasswordError("Current password is incorrect")
        updated = await self._repository.update(account_id, password_hash=self._hash(new_password))
        logger.info("Password changed for %s", account.email)
        return updated or account

    async def set_active(self, account_id: str, active: bool) -> Account:
        """Enable or disable an account; a disabled account keeps its balance."""
        account = await self.get(account_id)
        if account.is_active == active:
            return account
        updated = await self._repository.update(account_id, is_active=active)
        logger.warning("Account %s %s", account.email, "enabled" if active else "disabled")
        return updated or account

    async def set_role(self, account_id: str, role: str) -> Account:
        if role not in AccountRole.ALL:
            raise InvalidRoleError(role)
        account = await self.get(account_id)
        if account.role == role:
            return account
        updated = await self._repository.update(account_id, role=role)
        logger.warning("Account %s role changed %s -> %s", account.email, account.role, role)
        return updated or account

    async def set_last_login(self, account_id: str) -> None:
        await self._repository.set_last_login(account_id, datetime.now(timezone.utc))

    @staticmethod
    def _hash(password: str) -> str:
        try:
            return hash_password(password)
        except ValueError as exc:
            raise InvalidPasswordError(str(exc)) from exc
