import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Numeric,
    String,
    text,
)
from wallet_topup.database import Base


def utcnow():
    return datetime.now(timezone.utc)


def new_id():
    return uuid.uuid4().hex


class OrderStatus(str, enum.Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"


class TransactionStatus(str, enum.Enum):
    PENDING = "Pending"
    COMPLETED = "Completed"
    FAILED = "Failed"


class User(Base):
    __tablename__ = "users"

    id = Column(String, primary_key=True)          # auth subject (uid)
    email = Column(String, nullable=False)
    phone = Column(String, nullable=True)
    balance = Column(Numeric(12, 2), nullable=False, default=0)
    is_banned = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)


class Gateway(Base):
    __tablename__ = "gateways"
    # At most one row may have enabled = true
    __table_args__ = (
        Index(
            "uq_gateways_single_enabled",
            "enabled",
            unique=True,
            sqlite_where=text("enabled = 1"),
            postgresql_where=text("enabled"),
        ),
    )

    id = Column(String, primary_key=True, default=new_id)
    name = Column(String, nullable=False, default="RupantorPay")
    store_password = Column(String, nullable=True)  # provider API key
    is_live = Column(Boolean, nullable=False, default=False)
    enabled = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)


class Order(Base):
    __tablename__ = "orders"

    id = Column(String, primary_key=True)          # TRN-<hex>, sent to the provider
    user_id = Column(String, ForeignKey("users.id"), nullable=False, index=True)
    gateway_id = Column(String, nullable=True)
    amount = Column(Numeric(12, 2), nullable=False)
    status = Column(String, nullable=False, default=OrderStatus.PENDING.value, index=True)
    description = Column(String, nullable=True)
    customer_name = Column(String, nullable=True)
    customer_email = Column(String, nullable=True)
    payment_details = Column(JSON, nullable=True)  # last provider payload
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)


class Transaction(Base):
    __tablename__ = "transactions"

    id = Column(String, primary_key=True, default=new_id)
    user_id = Column(String, ForeignKey("users.id"), nullable=False, index=True)
    order_id = Column(String, ForeignKey("orders.id"), nullable=True, unique=True)
    amount = Column(Numeric(12, 2), nullable=False)   # positive = credit
    description = Column(String, nullable=True)
    status = Column(String, nullable=False, default=TransactionStatus.COMPLETED.value)
    date = Column(DateTime, nullable=False, default=utcnow)


class WithdrawMethodStatus(str, enum.Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class WithdrawMethod(Base):
    __tablename__ = "withdraw_methods"

    id = Column(String, primary_key=True, default=new_id)
    name = Column(String, nullable=False)               # e.g. bKash, Nagad
    receiver_info = Column(String, nullable=False)      # shown to the user
    fee_percentage = Column(Numeric(5, 2), nullable=False, default=0)
    min_amount = Column(Numeric(12, 2), nullable=False)
    max_amount = Column(Numeric(12, 2), nullable=False)
    status = Column(String, nullable=False, default=WithdrawMethodStatus.ACTIVE.value, index=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)
