"""SQLAlchemy ORM models."""
import uuid

from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from boostshop.infrastructure.database.base import Base


def generate_uuid() -> str:
    return str(uuid.uuid4())


class Account(Base):
    __tablename__ = "accounts"
    __table_args__ = (
        CheckConstraint("balance_cents >= 0", name="ck_accounts_balance_non_negative"),
        CheckConstraint("held_cents >= 0", name="ck_accounts_held_non_negative"),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    first_name = Column(String(100))
    last_name = Column(String(100))
    role = Column(String(20), nullable=False, default="user")
    is_active = Column(Boolean, nullable=False, default=True)
    balance_cents = Column(Integer, nullable=False, default=0)
    held_cents = Column(Integer, nullable=False, default=0)
    currency = Column(String(10), nullable=False, default="USD")
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
    last_login_at = Column(DateTime(timezone=True))

    orders = relationship("Order", back_populates="account")
    deposits = relationship("Deposit", back_populates="account")


class ServiceRate(Base):
    """Last provider rate seen for a catalog service."""

    __tablename__ = "service_rates"

    service_key = Column(String(50), primary_key=True)
    provider_service_id = Column(String(50), nullable=False)
    name = Column(String(150), nullable=False)
    provider_rate = Column(String(32), nullable=False)
    rate_per_thousand = Column(String(32), nullable=False)
    min_quantity = Column(Integer, nullable=False)
    max_quantity = Column(Integer, nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class Order(Base):
    __tablename__ = "orders"
    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_orders_quantity_positive"),
    )

    id = Column(String(64), primary_key=True)
    account_id = Column(String(36), ForeignKey("accounts.id"), nullable=False, index=True)
    service_key = Column(String(50), nullable=False)
    provider_service_id = Column(String(50), nullable=False)
    service_name = Column(String(150), nullable=False)
    link = Column(Text, nullable=False)
    quantity = Column(Integer, nullable=False)
    price_cents = Column(Integer, nullable=False)
    cost_cents = Column(Integer, nullable=False, default=0)
    currency = Column(String(10), nullable=False, default="USD")
    status = Column(String(20), nullable=False, default="PendingPayment", index=True)
    submission_state = Column(String(20), nullable=False, default="pending", index=True)
    upstream_ref = Column(String(64), unique=True)
    submit_attempts = Column(Integer, nullable=False, default=0)
    last_error = Column(Text)
    start_count = Column(Integer)
    remains = Column(Integer)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
    completed_at = Column(DateTime(timezone=True))

    account = relationship("Account", back_populates="orders")


class Deposit(Base):
    __tablename__ = "deposits"
    __table_args__ = (
        UniqueConstraint("channel", "external_ref", name="uq_deposits_channel_external_ref"),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid)
    account_id = Column(String(36), ForeignKey("accounts.id"), nullable=False, index=True)
    amount_cents = Column(Integer, nullable=False)
    bonus_cents = Column(Integer, nullable=False, default=0)
    currency = Column(String(10), nullable=False, default="USD")
    status = Column(String(20), nullable=False, default="pending")  # pending, completed, failed
    channel = Column(String(20), nullable=False)  # paypal, gcash
    external_ref = Column(String(100))
    local_amount = Column(String(32))
    local_currency = Column(String(10))
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    confirmed_at = Column(DateTime(timezone=True))

    account = relationship("Account", back_populates="deposits")


class LedgerEntry(Base):
    __tablename__ = "ledger_entries"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    account_id = Column(String(36), ForeignKey("accounts.id"), nullable=False, index=True)
    order_id = Column(String(64), ForeignKey("orders.id"), nullable=True, index=True)
    deposit_id = Column(String(36), ForeignKey("deposits.id"), nullable=True, index=True)
    type = Column(String(20), nullable=False)  # hold, release, debit, credit, refund, bonus, adjustment
    amount_cents = Column(Integer, nullable=False)
    balance_after_cents = Column(Integer, nullable=False)
    held_after_cents = Column(Integer, nullable=False)
    description = Column(String(255))
    created_at = Column(DateTime(timezone=True), server_default=func.now())
