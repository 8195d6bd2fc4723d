"""Pydantic schemas used across the project."""
from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


class TokenData(BaseModel):
    account_id: str
    email: str
    role: str


class RegisterRequest(BaseModel):
    email: str = Field(..., max_length=255, pattern=EMAIL_PATTERN)
    password: str = Field(..., min_length=6, max_length=72)
    first_name: Optional[str] = Field(default=None, max_length=100)
    last_name: Optional[str] = Field(default=None, max_length=100)


class LoginRequest(BaseModel):
    email: str = Field(..., max_length=255)
    password: str = Field(..., min_length=1)


class AccountResponse(BaseModel):
    id: str
    email: str
    role: str
    is_active: bool
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    created_at: Optional[datetime] = None
    last_login_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class ChangePasswordRequest(BaseModel):
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=6, max_length=72)


class AccountStatusRequest(BaseModel):
    is_active: bool


class AccountRoleRequest(BaseModel):
    role: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    account: AccountResponse


class DiscountTierResponse(BaseModel):
    min_quantity: int
    percent: Decimal


class ServiceResponse(BaseModel):
    key: str
    name: str
    rate_per_thousand: Decimal
    min_quantity: int
    max_quantity: int
    rate_updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class ServiceListResponse(BaseModel):
    currency: str
    services: list[ServiceResponse]
    discount_tiers: list[DiscountTierResponse] = Field(default_factory=list)


class OrderCreateRequest(BaseModel):
    order_id: str = Field(..., description="Caller-generated id, also the idempotency key")
    service_key: str
    link: str
    quantity: int


class OrderResponse(BaseModel):
    id: str
    account_id: str
    service_key: str
    service_name: str
    link: str
    quantity: int
    price: Decimal
    currency: str
    status: str
    submission_state: str
    upstream_ref: Optional[str] = None
    start_count: Optional[int] = None
    remains: Optional[int] = None
    last_error: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class OrderListResponse(BaseModel):
    orders: list[OrderResponse]


class WalletResponse(BaseModel):
    balance: Decimal
    held: Decimal
    available: Decimal
    currency: str

    model_config = ConfigDict(from_attributes=True)


class LedgerEntryResponse(BaseModel):
    id: str
    type: str
    amount: Decimal
    balance_after: Decimal
    held_after: Decimal
    order_id: Optional[str] = None
    deposit_id: Optional[str] = None
    description: Optional[str] = None
    created_at: Optional[datetime] = None


class LedgerEntryListResponse(BaseModel):
    entries: list[LedgerEntryResponse]


class DepositResponse(BaseModel):
    id: str
    account_id: str
    amount: Decimal
    bonus: Decimal
    currency: str
    status: str
    channel: str
    external_ref: Optional[str] = None
    local_amount: Optional[Decimal] = None
    local_currency: Optional[str] = None
    created_at: Optional[datetime] = None
    confirmed_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class DepositListResponse(BaseModel):
    deposits: list[DepositResponse]


class PayPalDepositRequest(BaseModel):
    amount: Decimal = Field(..., gt=0, decimal_places=2)


class PayPalDepositResponse(BaseModel):
    deposit: DepositResponse
    approve_url: Optional[str] = None


class GCashDepositRequest(BaseModel):
    amount: Decimal = Field(..., gt=0, decimal_places=2)
    reference_no: str = Field(..., min_length=1, max_length=100)


class GCashDepositResponse(BaseModel):
    deposit: DepositResponse
    gcash_number: str


class ResolveOrderRequest(BaseModel):
    upstream_ref: Optional[str] = Field(default=None, max_length=64)
    status: Optional[str] = None


class DepositReviewRequest(BaseModel):
    approve: bool


class AccountAdjustRequest(BaseModel):
    amount: Decimal = Field(..., decimal_places=2, description="Positive credits, negative debits")
    description: Optional[str] = Field(default=None, max_length=200)


class ReconciliationReportResponse(BaseModel):
    examined: int
    changed: int
    failed: int
    order_ids: list[str] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True)


class AdminStatsResponse(BaseModel):
    total_users: int
    total_orders: int
    total_revenue: Decimal
    total_profit: Decimal
    currency: str
