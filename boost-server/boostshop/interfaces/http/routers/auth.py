"""Registration, login and the current account."""
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from boostshop.core.security import create_access_token, get_current_account
from boostshop.core.config import SecuritySettings
from boostshop.interfaces.http.deps import get_account_service, get_db_session, get_security_settings
from boostshop.modules.accounts import (
    Account as AccountDomain,
    AccountAlreadyExistsError,
    AccountCreateInput,
    AccountService,
    InvalidPasswordError,
)
from boostshop.schemas import (
    AccountResponse,
    ChangePasswordRequest,
    LoginRequest,
    RegisterRequest,
    TokenResponse,
)

router = APIRouter()


def _token_response(account: AccountDomain, settings: SecuritySettings) -> TokenResponse:
    return TokenResponse(
        access_token=create_access_token(account, settings),
        account=AccountResponse.model_validate(account),
    )


@router.post(
    "/register",
    response_model=TokenResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a customer account",
)
async def register(
    payload: RegisterRequest,
    db: AsyncSession = Depends(get_db_session),
    account_service: AccountService = Depends(get_account_service),
    settings: SecuritySettings = Depends(get_security_settings),
) -> TokenResponse:
    try:
        account = await account_service.register(
            AccountCreateInput(
                email=payload.email,
                password=payload.password,
                first_name=payload.first_name,
                last_name=payload.last_name,
            )
        )
    except AccountAlreadyExistsError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email is already registered") from exc
    except InvalidPasswordError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    await db.commit()
    return _token_response(account, settings)


@router.post("/login", response_model=TokenResponse, summary="Log in with email and password")
async def login(
    payload: LoginRequest,
    db: AsyncSession = Depends(get_db_session),
    account_service: AccountService = Depends(get_account_service),
    settings: SecuritySettings = Depends(get_security_settings),
) -> TokenResponse:
    account = await account_service.authenticate(payload.email, payload.password)
    if not account:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid email or password")
    await account_service.set_last_login(account.id)
    await db.commit()
    return _token_response(account, settings)


@router.get("/me", response_model=AccountResponse, summary="Current account")
async def me(account: AccountDomain = Depends(get_current_account)) -> AccountResponse:
    return AccountResponse.model_validate(account)


@router.post("/password", response_model=AccountResponse, summary="Change the current password")
async def change_password(
    payload: ChangePasswordRequest,
    account: AccountDomain = Depends(get_current_account),
    db: AsyncSession = Depends(get_db_session),
    account_service: AccountService = Depends(get_account_service),
) -> AccountResponse:
    try:
        updated = await account_service.change_password(
            account.id, payload.current_password, payload.new_password
        )
    except InvalidPasswordError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    await db.commit()
    return AccountResponse.model_validate(updated)
