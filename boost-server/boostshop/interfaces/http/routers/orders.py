"""Customer order endpoints."""
import logging

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from boostshop.core.security import get_current_account
from boostshop.infrastructure.provider import ProviderRejectedError
from boostshop.interfaces.http.deps import get_db_session, get_orchestrator
from boostshop.modules.accounts import Account as AccountDomain
from boostshop.modules.catalog import InvalidInputError, UnknownServiceError
from boostshop.modules.orchestrator import OrderOrchestrator, OrderPendingConfirmationError
from boostshop.modules.orders import (
    DuplicateOrderIdError,
    InvalidTransitionError,
    OrderNotFoundError,
    OrderService,
)
from boostshop.modules.wallets import InsufficientFundsError
from boostshop.schemas import OrderCreateRequest, OrderListResponse, OrderResponse

logger = logging.getLogger(__name__)

router = APIRouter()

PROCESSING_MESSAGE = "Your order is being processed; its status will update shortly"


@router.post(
    "",
    response_model=OrderResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Place an order paid from the wallet",
    responses={
        200: {"description": "Replay of an order placed earlier with the same id"},
        202: {"description": "Accepted; awaiting provider confirmation"},
    },
)
async def place_order(
    payload: OrderCreateRequest,
    response: Response,
    account: AccountDomain = Depends(get_current_account),
    orchestrator: OrderOrchestrator = Depends(get_orchestrator),
) -> OrderResponse:
    try:
        result = await orchestrator.place_order(
            account_id=account.id,
            order_id=payload.order_id,
            service_key=payload.service_key,
            link=payload.link,
            quantity=payload.quantity,
        )
    except InvalidInputError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except UnknownServiceError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Service is not available") from exc
    except InsufficientFundsError as exc:
        raise HTTPException(
            status_code=status.HTTP_402_PAYMENT_REQUIRED,
            detail=f"{exc}. Please top up your wallet.",
        ) from exc
    except DuplicateOrderIdError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Order id is already in use") from exc
    except ProviderRejectedError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"The order was declined: {exc.reason}",
        ) from exc
    except OrderPendingConfirmationError as exc:
        response.status_code = status.HTTP_202_ACCEPTED
        response.headers["X-Order-Message"] = PROCESSING_MESSAGE
        return OrderResponse.model_validate(exc.order)

    if result.replayed:
        response.status_code = status.HTTP_200_OK
    return OrderResponse.model_validate(result.order)


@router.get("", response_model=OrderListResponse, summary="Orders of the current account")
async def list_orders(
    limit: int = 50,
    offset: int = 0,
    account: AccountDomain = Depends(get_current_account),
    db: AsyncSession = Depends(get_db_session),
) -> OrderListResponse:
    orders = await OrderService.with_session(db).list_for_account(account.id, min(limit, 200), offset)
    return OrderListResponse(orders=[OrderResponse.model_validate(order) for order in orders])


@router.get("/{order_id}", response_model=OrderResponse, summary="Order status")
async def get_order(
    order_id: str,
    refresh: bool = True,
    account: AccountDomain = Depends(get_current_account),
    orchestrator: OrderOrchestrator = Depends(get_orchestrator),
) -> OrderResponse:
    try:
        order = await orchestrator.get_order_status(order_id, account_id=account.id, refresh=refresh)
    except OrderNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Order not found") from exc
    return OrderResponse.model_validate(order)


@router.post("/{order_id}/cancel", response_model=OrderResponse, summary="Cancel an unsent order")
async def cancel_order(
    order_id: str,
    account: AccountDomain = Depends(get_current_account),
    orchestrator: OrderOrchestrator = Depends(get_orchestrator),
) -> OrderResponse:
    try:
        order = await orchestrator.cancel_order(account_id=account.id, order_id=order_id)
    except OrderNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Order not found") from exc
    except InvalidTransitionError as exc:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Order can no longer be cancelled ({exc.current})",
        ) from exc
    return OrderResponse.model_validate(order)
