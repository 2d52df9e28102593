from typing import Optional

from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from wallet_topup import gateways, payments, wallet, withdraw_methods
from wallet_topup.auth import require_admin
from wallet_topup.database import get_db
from wallet_topup.routes import get_events
from wallet_topup.schemas import (
    AdminOrderOut,
    GatewayCreate,
    GatewayOut,
    GatewayUpdate,
    ReconcileSummary,
    TransactionOut,
    UserBanUpdate,
    UserOut,
    WithdrawMethodCreate,
    WithdrawMethodOut,
    WithdrawMethodUpdate,
)

router = APIRouter(prefix="/admin", dependencies=[Depends(require_admin)])


@router.get("/gateways", response_model=list[GatewayOut])
def list_gateways_api(db: Session = Depends(get_db)):
    return [GatewayOut.from_gateway(g) for g in gateways.list_gateways(db)]


@router.post("/gateways", response_model=GatewayOut, status_code=201)
def create_gateway_api(body: GatewayCreate, db: Session = Depends(get_db)):
    return GatewayOut.from_gateway(gateways.create_gateway(db, body.model_dump()))


@router.patch("/gateways/{gateway_id}", response_model=GatewayOut)
def update_gateway_api(gateway_id: str, body: GatewayUpdate, db: Session = Depends(get_db)):
    changes = body.model_dump(exclude_unset=True)
    return GatewayOut.from_gateway(gateways.update_gateway(db, gateway_id, changes))


@router.delete("/gateways/{gateway_id}", status_code=204)
def delete_gateway_api(gateway_id: str, db: Session = Depends(get_db)):
    gateways.delete_gateway(db, gateway_id)
    return Response(status_code=204)


@router.get("/orders", response_model=list[AdminOrderOut])
def list_orders_api(status: Optional[str] = None, db: Session = Depends(get_db)):
    return wallet.list_orders(db, status=status.upper() if status else None)


@router.post("/orders/reconcile", response_model=ReconcileSummary)
def reconcile_orders_api(
    older_than_minutes: int = 1,
    limit: int = 50,
    db: Session = Depends(get_db),
    events=Depends(get_events),
):
    return payments.reconcile_pending_orders(db, older_than_minutes=older_than_minutes, limit=limit, events=events)


@router.post("/orders/{order_id}/reconcile", response_model=AdminOrderOut)
def reconcile_order_api(order_id: str, db: Session = Depends(get_db), events=Depends(get_events)):
    return payments.reconcile_order(db, order_id, events)


@router.get("/transactions", response_model=list[TransactionOut])
def list_transactions_api(db: Session = Depends(get_db)):
    return wallet.list_transactions(db)


@router.patch("/users/{user_id}", response_model=UserOut)
def update_user_api(user_id: str, body: UserBanUpdate, db: Session = Depends(get_db)):
    return wallet.set_user_banned(db, user_id, body.is_banned)


@router.get("/withdraw-methods", response_model=list[WithdrawMethodOut])
def list_withdraw_methods_api(db: Session = Depends(get_db)):
    return withdraw_methods.list_methods(db)


@router.post("/withdraw-methods", response_model=WithdrawMethodOut, status_code=201)
def create_withdraw_method_api(body: WithdrawMethodCreate, db: Session = Depends(get_db)):
    return withdraw_methods.create_method(db, body.model_dump())


@router.patch("/withdraw-methods/{method_id}", response_model=WithdrawMethodOut)
def update_withdraw_method_api(method_id: str, body: WithdrawMethodUpdate, db: Session = Depends(get_db)):
    return withdraw_methods.update_method(db, method_id, body.model_dump(exclude_unset=True))


@router.delete("/withdraw-methods/{method_id}", status_code=204)
def delete_withdraw_method_api(method_id: str, db: Session = Depends(get_db)):
    withdraw_methods.delete_method(db, method_id)
    return Response(status_code=204)
