"""JWT access tokens and the dependencies resolving them to storefront accounts.

Tokens carry the account id, email and role at issue time; the role used
for authorization is always re-read from the database, so demoting or
disabling an account takes effect on its next request.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from sqlalchemy.ext.asyncio import AsyncSession

from boostshop.core.config import SecuritySettings
from boostshop.interfaces.http.deps.database import get_db_session
from boostshop.interfaces.http.deps.services import get_security_settings
from boostshop.modules.accounts import Account as AccountDomain
from boostshop.modules.accounts import AccountService
from boostshop.schemas import TokenData

bearer_scheme = HTTPBearer(auto_error=False)


def create_access_token(
    account: AccountDomain,
    settings: SecuritySettings,
    expires_delta: Optional[timedelta] = None,
) -> str:
    issued_at = datetime.now(timezone.utc)
    payload = {
        "sub": account.id,
        "email": account.email,
        "role": account.role,
        "iat": issued_at,
        "exp": issued_at + (expires_delta or timedelta(minutes=settings.access_token_expire_minutes)),
    }
    return jwt.encode(payload, settings.secret_key, algorithm=settings.algorithm)


def decode_access_token(token: str, settings: SecuritySettings) -> TokenData:
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except JWTError as exc:
        raise _unauthorized("Could not validate credentials") from exc

    account_id = payload.get("sub")
    email = payload.get("email")
    role = payload.get("role")
    if not all([account_id, email, role]):
        raise _unauthorized("Could not validate credentials")
    return TokenData(account_id=account_id, email=email, role=role)


async def get_current_account(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    settings: SecuritySettings = Depends(get_security_settings),
    db: AsyncSession = Depends(get_db_session),
) -> AccountDomain:
    if credentials is None:
        raise _unauthorized("Not authenticated")
    token_data = decode_access_token(credentials.credentials, settings)
    account = await AccountService.with_session(db).get_by_id(token_data.account_id)
    if account is None or not account.is_active:
        raise _unauthorized("Account not found or disabled")
    return account


async def get_current_admin(account: AccountDomain = Depends(get_current_account)) -> AccountDomain:
    if not account.is_admin():
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Administrator access required")
    return account


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )
