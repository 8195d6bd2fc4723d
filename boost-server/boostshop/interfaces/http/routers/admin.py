"""Administrator endpoints: totals, accounts, balance adjustments, order resolution and deposit review."""
import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from boostshop.core.container import ApplicationContainer
from boostshop.core.money import to_cents
from boostshop.core.security import get_current_admin
from boostshop.infrastructure.database.repositories.service_rate_repository import SqlServiceRateRepository
from boostshop.infrastructure.provider import ProviderError
from boostshop.interfaces.http.deps import (
    get_account_service,
    get_container,
    get_db_session,
    get_deposit_service,
    get_orchestrator,
    get_wallet_service,
)
from boostshop.interfaces.http.routers.catalog import list_services
from boostshop.interfaces.http.routers.wallet import to_deposit_response
from boostshop.modules.accounts import Account as AccountDomain
from boostshop.modules.accounts import AccountNotFoundError, AccountService, InvalidRoleError
from boostshop.modules.catalog import InvalidInputError
from boostshop.modules.deposits import DepositNotFoundError, DepositService, DepositStateError
from boostshop.modules.orchestrator import OrderOrchestrator
from boostshop.modules.orders import (
    InvalidTransitionError,
    OrderNotFoundError,
    OrderService,
    UpstreamRefConflictError,
)
from boostshop.modules.wallets import (
    EntryType,
    InsufficientFundsError,
    WalletAccountNotFoundError,
    WalletService,
)
from boostshop.schemas import (
    AccountAdjustRequest,
    AccountResponse,
    AccountRoleRequest,
    AccountStatusRequest,
    AdminStatsResponse,
    DepositListResponse,
    DepositResponse,
    DepositReviewRequest,
    OrderListResponse,
    OrderResponse,
    ReconciliationReportResponse,
    ResolveOrderRequest,
    ServiceListResponse,
    WalletResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/stats", response_model=AdminStatsResponse, summary="Storefront totals")
async def storefront_stats(
    _: AccountDomain = Depends(get_current_admin),
    accounts: AccountService = Depends(get_account_service),
    db: AsyncSession = Depends(get_db_session),
    container: ApplicationContainer = Depends(get_container),
) -> AdminStatsResponse:
    """Revenue counts charged orders only; profit is revenue less the provider cost."""
    totals = await OrderService.with_session(db).sales_totals()
    return AdminStatsResponse(
        total_users=await accounts.count(),
        total_orders=totals.order_count,
        total_revenue=totals.revenue,
        total_profit=totals.profit,
        currency=container.catalog.currency,
    )


@router.get("/accounts", response_model=list[AccountResponse], summary="All accounts")
async def list_accounts(
    role: str | None = None,
    limit: int = 50,
    offset: int = 0,
    _: AccountDomain = Depends(get_current_admin),
    accounts: AccountService = Depends(get_account_service),
) -> list[AccountResponse]:
    rows = await accounts.list_accounts(min(limit, 200), offset, role)
    return [AccountResponse.model_validate(account) for account in rows]


@router.post("/accounts/{account_id}/status", response_model=AccountResponse, summary="Enable or disable an account")
async def set_account_status(
    account_id: str,
    payload: AccountStatusRequest,
    admin: AccountDomain = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db_session),
    accounts: AccountService = Depends(get_account_service),
) -> AccountResponse:
    if account_id == admin.id and not payload.is_active:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="You cannot disable your own account")
    try:
        account = await accounts.set_active(account_id, payload.is_active)
    except AccountNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Account not found") from exc
    await db.commit()
    return AccountResponse.model_validate(account)


@router.post("/accounts/{account_id}/role", response_model=AccountResponse, summary="Change an account's role")
async def set_account_role(
    account_id: str,
    payload: AccountRoleRequest,
    admin: AccountDomain = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db_session),
    accounts: AccountService = Depends(get_account_service),
) -> AccountResponse:
    if not admin.is_super_admin():
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Only a super administrator can change roles")
    try:
        account = await accounts.set_role(account_id, payload.role)
    except AccountNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Account not found") from exc
    except InvalidRoleError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    await db.commit()
    return AccountResponse.model_validate(account)


@router.post("/accounts/{account_id}/adjust", response_model=WalletResponse, summary="Adjust a balance")
async def adjust_balance(
    account_id: str,
    payload: AccountAdjustRequest,
    admin: AccountDomain = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db_session),
    wallet: WalletService = Depends(get_wallet_service),
) -> WalletResponse:
    amount_cents = to_cents(payload.amount)
    if amount_cents == 0:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Amount must not be zero")
    description = payload.description or f"adjustment by {admin.email}"
    try:
        if amount_cents > 0:
            snapshot = await wallet.credit(
                account_id=account_id,
                amount_cents=amount_cents,
                entry_type=EntryType.ADJUSTMENT,
                description=description,
            )
        else:
            snapshot = await wallet.debit(
                account_id=account_id,
                amount_cents=-amount_cents,
                entry_type=EntryType.ADJUSTMENT,
                description=description,
            )
    except WalletAccountNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Account not found") from exc
    except InsufficientFundsError as exc:
        raise HTTPException(status_code=status.HTTP_402_PAYMENT_REQUIRED, detail=str(exc)) from exc
    await db.commit()
    logger.info("Balance of %s adjusted by %s (%s)", account_id, payload.amount, admin.email)
    return WalletResponse.model_validate(snapshot)


@router.get("/orders", response_model=OrderListResponse, summary="All orders")
async def list_orders(
    status_filter: str | None = None,
    limit: int = 50,
    offset: int = 0,
    _: AccountDomain = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db_session),
) -> OrderListResponse:
    orders = await OrderService.with_session(db).list_all(status_filter, min(limit, 200), offset)
    return OrderListResponse(orders=[OrderResponse.model_validate(order) for order in orders])


@router.post("/orders/{order_id}/reconcile", response_model=OrderResponse, summary="Reconcile one order")
async def reconcile_order(
    order_id: str,
    _: AccountDomain = Depends(get_current_admin),
    orchestrator: OrderOrchestrator = Depends(get_orchestrator),
) -> OrderResponse:
    try:
        order = await orchestrator.reconcile_order(order_id)
    except OrderNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Order not found") from exc
    return OrderResponse.model_validate(order)


@router.post("/orders/{order_id}/resolve", response_model=OrderResponse, summary="Resolve an order manually")
async def resolve_order(
    order_id: str,
    payload: ResolveOrderRequest,
    admin: AccountDomain = Depends(get_current_admin),
    orchestrator: OrderOrchestrator = Depends(get_orchestrator),
) -> OrderResponse:
    try:
        order = await orchestrator.resolve_manually(
            order_id,
            upstream_ref=payload.upstream_ref,
            status=payload.status,
        )
    except OrderNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Order not found") from exc
    except InvalidInputError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except (InvalidTransitionError, UpstreamRefConflictError) as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    except InsufficientFundsError as exc:
        raise HTTPException(status_code=status.HTTP_402_PAYMENT_REQUIRED, detail=str(exc)) from exc
    logger.info("Order %s resolved by %s: %s", order_id, admin.email, order.status)
    return OrderResponse.model_validate(order)


@router.post(
    "/reconciliation/sweep",
    response_model=ReconciliationReportResponse,
    summary="Run one reconciliation pass now",
)
async def sweep(
    _: AccountDomain = Depends(get_current_admin),
    orchestrator: OrderOrchestrator = Depends(get_orchestrator),
) -> ReconciliationReportResponse:
    report = await orchestrator.sweep()
    return ReconciliationReportResponse.model_validate(report)


@router.get("/deposits", response_model=DepositListResponse, summary="All deposits")
async def list_deposits(
    status_filter: str | None = None,
    limit: int = 50,
    offset: int = 0,
    _: AccountDomain = Depends(get_current_admin),
    deposits: DepositService = Depends(get_deposit_service),
) -> DepositListResponse:
    rows = await deposits.list_all(status_filter, min(limit, 200), offset)
    return DepositListResponse(deposits=[to_deposit_response(row) for row in rows])


@router.post("/deposits/{deposit_id}/review", response_model=DepositResponse, summary="Approve or reject a deposit")
async def review_deposit(
    deposit_id: str,
    payload: DepositReviewRequest,
    admin: AccountDomain = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db_session),
    deposits: DepositService = Depends(get_deposit_service),
) -> DepositResponse:
    try:
        deposit = await deposits.review_deposit(deposit_id, approve=payload.approve)
    except DepositNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Deposit not found") from exc
    except DepositStateError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    await db.commit()
    logger.info("Deposit %s %s by %s", deposit_id, deposit.status, admin.email)
    return to_deposit_response(deposit)


@router.post("/services/refresh", response_model=ServiceListResponse, summary="Reprice from the provider")
async def refresh_services(
    _: AccountDomain = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db_session),
    container: ApplicationContainer = Depends(get_container),
) -> ServiceListResponse:
    try:
        await container.catalog.refresh_from_provider(container.provider, SqlServiceRateRepository(db))
    except ProviderError as exc:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=f"Provider error: {exc}") from exc
    await db.commit()
    return await list_services(container.catalog)
