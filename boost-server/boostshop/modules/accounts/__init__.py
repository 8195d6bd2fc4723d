"""Storefront accounts."""

from .exceptions import (
    AccountAlreadyExistsError,
    AccountError,
    AccountNotFoundError,
    InvalidPasswordError,
    InvalidRoleError,
)
from .models import ADMIN_ROLES, Account, AccountCreateInput, AccountRole
from .service import AccountService

__all__ = [
    "ADMIN_ROLES",
    "Account",
    "AccountAlreadyExistsError",
    "AccountCreateInput",
    "AccountError",
    "AccountNotFoundError",
    "AccountRole",
    "AccountService",
    "InvalidPasswordError",
    "InvalidRoleError",
]
