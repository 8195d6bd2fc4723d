"""Account and wallet services bound to the request's session."""

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from boostshop.modules.accounts import AccountService
from boostshop.modules.wallets import WalletService

from .database import get_db_session


def get_account_service(db: AsyncSession = Depends(get_db_session)) -> AccountService:
    return AccountService.with_session(db)


def get_wallet_service(db: AsyncSession = Depends(get_db_session)) -> WalletService:
    return WalletService.with_session(db)


__all__ = ["get_account_service", "get_wallet_service"]
