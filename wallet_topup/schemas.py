from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict


class TopUpRequest(BaseModel):
    amount: Any


class TopUpResponse(BaseModel):
    order_id: str
    payment_url: str


class WalletOut(BaseModel):
    user_id: str
    email: str
    balance: Decimal


class OrderOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    gateway_id: Optional[str] = None
    amount: Decimal
    status: str
    description: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class AdminOrderOut(OrderOut):
    payment_details: Optional[Any] = None


class TransactionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    order_id: Optional[str] = None
    amount: Decimal
    description: Optional[str] = None
    status: str
    date: datetime


class GatewayCreate(BaseModel):
    name: str = "RupantorPay"
    store_password: str
    is_live: bool = False
    enabled: bool = False


class GatewayUpdate(BaseModel):
    name: Optional[str] = None
    store_password: Optional[str] = None
    is_live: Optional[bool] = None
    enabled: Optional[bool] = None


class GatewayOut(BaseModel):
    id: str
    name: str
    is_live: bool
    enabled: bool
    has_credential: bool
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_gateway(cls, gateway):
        return cls(
            id=gateway.id,
            name=gateway.name,
            is_live=gateway.is_live,
            enabled=gateway.enabled,
            has_credential=bool(gateway.store_password),
            created_at=gateway.created_at,
            updated_at=gateway.updated_at,
        )


class WithdrawMethodCreate(BaseModel):
    name: str
    receiver_info: str
    fee_percentage: Decimal = Decimal("0")
    min_amount: Decimal
    max_amount: Decimal
    status: str = "active"


class WithdrawMethodUpdate(BaseModel):
    name: Optional[str] = None
    receiver_info: Optional[str] = None
    fee_percentage: Optional[Decimal] = None
    min_amount: Optional[Decimal] = None
    max_amount: Optional[Decimal] = None
    status: Optional[str] = None


class WithdrawMethodOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    receiver_info: str
    fee_percentage: Decimal
    min_amount: Decimal
    max_amount: Decimal
    status: str


class UserBanUpdate(BaseModel):
    is_banned: bool


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    email: str
    balance: Decimal
    is_banned: bool


class ReconcileSummary(BaseModel):
    checked: int
    completed: int
    failed: int
    errors: int
