"""Storefront customers and staff."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional


class AccountRole:
    USER = "user"
    ADMIN = "admin"
    SUPER_ADMIN = "super_admin"

    ALL = frozenset({USER, ADMIN, SUPER_ADMIN})


ADMIN_ROLES = frozenset({AccountRole.ADMIN, AccountRole.SUPER_ADMIN})


@dataclass(slots=True)
class Account:
    id: str
    email: str
    role: str
    is_active: bool
    password_hash: str = field(repr=False)
    currency: str = "USD"
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    last_login_at: Optional[datetime] = None

    @property
    def display_name(self) -> str:
        name = " ".join(part for part in (self.first_name, self.last_name) if part)
        return name or self.email.split("@", 1)[0]

    def is_admin(self) -> bool:
        return self.role in ADMIN_ROLES

    def is_super_admin(self) -> bool:
        return self.role == AccountRole.SUPER_ADMIN


@dataclass(slots=True)
class AccountCreateInput:
    email: str
    password: str
    role: str = AccountRole.USER
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    is_active: bool = True
