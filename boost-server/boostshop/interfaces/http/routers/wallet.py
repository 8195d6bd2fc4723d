"""Wallet balance, ledger history and deposits."""
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from boostshop.core.money import from_cents
from boostshop.core.security import get_current_account
from boostshop.interfaces.http.deps import get_db_session, get_deposit_service, get_wallet_service
from boostshop.modules.accounts import Account as AccountDomain
from boostshop.modules.deposits import (
    Deposit,
    DepositNotFoundError,
    DepositService,
    DuplicateDepositError,
    InvalidDepositError,
    PaymentUnavailableError,
)
from boostshop.modules.wallets import LedgerEntryRecord, WalletService
from boostshop.schemas import (
    DepositListResponse,
    DepositResponse,
    GCashDepositRequest,
    GCashDepositResponse,
    LedgerEntryListResponse,
    LedgerEntryResponse,
    PayPalDepositRequest,
    PayPalDepositResponse,
    WalletResponse,
)

router = APIRouter()


def to_entry_response(entry: LedgerEntryRecord) -> LedgerEntryResponse:
    return LedgerEntryResponse(
        id=entry.id,
        type=entry.type,
        amount=from_cents(entry.amount_cents),
        balance_after=from_cents(entry.balance_after_cents),
        held_after=from_cents(entry.held_after_cents),
        order_id=entry.order_id,
        deposit_id=entry.deposit_id,
        description=entry.description,
        created_at=entry.created_at,
    )


def to_deposit_response(deposit: Deposit) -> DepositResponse:
    return DepositResponse.model_validate(deposit)


@router.get("", response_model=WalletResponse, summary="Wallet balance")
async def get_wallet(
    account: AccountDomain = Depends(get_current_account),
    wallet: WalletService = Depends(get_wallet_service),
) -> WalletResponse:
    snapshot = await wallet.snapshot(account.id)
    return WalletResponse.model_validate(snapshot)


@router.get("/entries", response_model=LedgerEntryListResponse, summary="Ledger history")
async def list_entries(
    limit: int = 50,
    offset: int = 0,
    account: AccountDomain = Depends(get_current_account),
    wallet: WalletService = Depends(get_wallet_service),
) -> LedgerEntryListResponse:
    entries = await wallet.list_entries(account.id, min(limit, 200), offset)
    return LedgerEntryListResponse(entries=[to_entry_response(entry) for entry in entries])


@router.get("/deposits", response_model=DepositListResponse, summary="Deposits of the current account")
async def list_deposits(
    limit: int = 20,
    offset: int = 0,
    status_filter: str | None = None,
    account: AccountDomain = Depends(get_current_account),
    deposits: DepositService = Depends(get_deposit_service),
) -> DepositListResponse:
    rows = await deposits.list_for_account(account.id, min(limit, 100), offset, status_filter)
    return DepositListResponse(deposits=[to_deposit_response(row) for row in rows])


@router.post(
    "/deposits/paypal",
    response_model=PayPalDepositResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Start a PayPal deposit",
)
async def start_paypal_deposit(
    payload: PayPalDepositRequest,
    account: AccountDomain = Depends(get_current_account),
    db: AsyncSession = Depends(get_db_session),
    deposits: DepositService = Depends(get_deposit_service),
) -> PayPalDepositResponse:
    try:
        checkout = await deposits.start_paypal_deposit(account_id=account.id, amount=payload.amount)
    except InvalidDepositError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except PaymentUnavailableError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    await db.commit()
    return PayPalDepositResponse(
        deposit=to_deposit_response(checkout.deposit),
        approve_url=checkout.approve_url,
    )


@router.post(
    "/deposits/paypal/{order_ref}/capture",
    response_model=DepositResponse,
    summary="Capture an approved PayPal deposit",
)
async def capture_paypal_deposit(
    order_ref: str,
    account: AccountDomain = Depends(get_current_account),
    db: AsyncSession = Depends(get_db_session),
    deposits: DepositService = Depends(get_deposit_service),
) -> DepositResponse:
    try:
        deposit = await deposits.capture_paypal_deposit(account_id=account.id, order_ref=order_ref)
    except DepositNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Deposit not found") from exc
    except PaymentUnavailableError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    await db.commit()
    return to_deposit_response(deposit)


@router.post(
    "/deposits/gcash",
    response_model=GCashDepositResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Report a GCash transfer for review",
)
async def request_gcash_deposit(
    payload: GCashDepositRequest,
    account: AccountDomain = Depends(get_current_account),
    db: AsyncSession = Depends(get_db_session),
    deposits: DepositService = Depends(get_deposit_service),
) -> GCashDepositResponse:
    try:
        deposit = await deposits.request_gcash_deposit(
            account_id=account.id,
            amount=payload.amount,
            reference_no=payload.reference_no,
        )
    except InvalidDepositError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except DuplicateDepositError as exc:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT, detail="This GCash reference was already submitted"
        ) from exc
    await db.commit()
    return GCashDepositResponse(
        deposit=to_deposit_response(deposit),
        gcash_number=deposits.settings.gcash_number,
    )
