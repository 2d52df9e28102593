import asyncio
import json
import logging
from typing import Optional
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, Form, Query, Request
from fastapi.responses import RedirectResponse, StreamingResponse
from sqlalchemy.orm import Session

from wallet_topup import config, payments, wallet, withdraw_methods
from wallet_topup.auth import current_user_id, verify_token
from wallet_topup.database import get_db
from wallet_topup.errors import InternalError, PaymentError
from wallet_topup.schemas import (
    OrderOut,
    TopUpRequest,
    TopUpResponse,
    TransactionOut,
    WalletOut,
    WithdrawMethodOut,
)

logger = logging.getLogger(__name__)

router = APIRouter()

KEEP_ALIVE_SECONDS = 15


def get_events(request: Request):
    return request.app.state.events


def base_url(request: Request) -> str:
    configured = config.public_base_url()
    if configured:
        return configured
    proto = request.headers.get("x-forwarded-proto") or request.url.scheme
    host = request.headers.get("host") or request.url.netloc
    return f"{proto}://{host}"


def _redirect(request: Request, outcome: payments.CallbackOutcome) -> RedirectResponse:
    url = f"{base_url(request)}/payment/{outcome.page}"
    if outcome.params:
        url = f"{url}?{urlencode(outcome.params)}"
    return RedirectResponse(url, status_code=303)


@router.post("/payments/initiate", response_model=TopUpResponse)
def initiate_payment_api(
    body: TopUpRequest,
    request: Request,
    user_id: str = Depends(current_user_id),
    db: Session = Depends(get_db),
    events=Depends(get_events),
):
    try:
        result = payments.initiate_payment(
            db,
            user_id,
            body.amount,
            base_url(request),
            client_host=request.headers.get("host"),
            events=events,
        )
    except PaymentError:
        raise
    except Exception:
        logger.exception("Payment initiation error for user %s", user_id)
        raise InternalError()
    return {"order_id": result.order_id, "payment_url": result.payment_url}


@router.get("/payments/callback")
def payment_callback(
    request: Request,
    transaction_id: Optional[str] = None,
    status: Optional[str] = None,
    db: Session = Depends(get_db),
    events=Depends(get_events),
):
    outcome = payments.handle_callback(db, status, transaction_id, events)
    return _redirect(request, outcome)


@router.post("/payments/callback")
def payment_callback_form(
    request: Request,
    query_transaction_id: Optional[str] = Query(None, alias="transaction_id"),
    query_status: Optional[str] = Query(None, alias="status"),
    form_transaction_id: Optional[str] = Form(None, alias="transaction_id"),
    form_status: Optional[str] = Form(None, alias="status"),
    db: Session = Depends(get_db),
    events=Depends(get_events),
):
    outcome = payments.handle_callback(
        db,
        form_status or query_status,
        form_transaction_id or query_transaction_id,
        events,
    )
    return _redirect(request, outcome)


@router.get("/wallet", response_model=WalletOut)
def get_wallet(claims: dict = Depends(verify_token), db: Session = Depends(get_db)):
    user = wallet.ensure_user(db, claims["sub"], claims.get("email"))
    return {"user_id": user.id, "email": user.email, "balance": user.balance}


@router.get("/wallet/orders", response_model=list[OrderOut])
def get_wallet_orders(user_id: str = Depends(current_user_id), db: Session = Depends(get_db)):
    return wallet.list_orders(db, user_id=user_id)


@router.get("/wallet/transactions", response_model=list[TransactionOut])
def get_wallet_transactions(user_id: str = Depends(current_user_id), db: Session = Depends(get_db)):
    return wallet.list_transactions(db, user_id=user_id)


@router.get("/withdraw-methods", response_model=list[WithdrawMethodOut])
def get_withdraw_methods(user_id: str = Depends(current_user_id), db: Session = Depends(get_db)):
    return withdraw_methods.list_active_methods(db)


@router.get("/wallet/events")
async def wallet_events(request: Request, user_id: str = Depends(current_user_id), events=Depends(get_events)):
    loop = asyncio.get_running_loop()
    queue = asyncio.Queue()

    def forward(event):
        if event.user_id == user_id:
            loop.call_soon_threadsafe(queue.put_nowait, event)

    unsubscribe = events.subscribe(forward)

    async def stream():
        try:
            while not await request.is_disconnected():
                try:
                    event = await asyncio.wait_for(queue.get(), timeout=KEEP_ALIVE_SECONDS)
                except asyncio.TimeoutError:
                    yield ": keep-alive\n\n"
                    continue
                yield f"event: order\ndata: {json.dumps(event.to_dict())}\n\n"
        finally:
            unsubscribe()

    return StreamingResponse(stream(), media_type="text/event-stream")
