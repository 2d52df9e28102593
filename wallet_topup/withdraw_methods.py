import logging
from decimal import Decimal

from sqlalchemy.orm import Session

from wallet_topup.errors import InvalidInput, WithdrawMethodNotFound
from wallet_topup.models import WithdrawMethod, WithdrawMethodStatus

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ("name", "receiver_info", "fee_percentage", "min_amount", "max_amount", "status")
STATUSES = {s.value for s in WithdrawMethodStatus}


def list_methods(db: Session):
    return db.query(WithdrawMethod).order_by(WithdrawMethod.name).all()


def list_active_methods(db: Session):
    return (
        db.query(WithdrawMethod)
        .filter(WithdrawMethod.status == WithdrawMethodStatus.ACTIVE.value)
        .order_by(WithdrawMethod.name)
        .all()
    )


def get_method(db: Session, method_id: str) -> WithdrawMethod:
    method = db.get(WithdrawMethod, method_id)
    if method is None:
        raise WithdrawMethodNotFound(f"Withdrawal method {method_id} not found.")
    return method


def _validate(method: WithdrawMethod) -> None:
    if method.status not in STATUSES:
        raise InvalidInput(f"Status must be one of {sorted(STATUSES)}.")
    fee = Decimal(method.fee_percentage)
    if fee < 0 or fee > 100:
        raise InvalidInput("Fee percentage must be between 0 and 100.")
    if Decimal(method.min_amount) <= 0:
        raise InvalidInput("Minimum amount must be positive.")
    if Decimal(method.min_amount) > Decimal(method.max_amount):
        raise InvalidInput("Minimum amount must not exceed the maximum amount.")


def create_method(db: Session, data: dict) -> WithdrawMethod:
    method = WithdrawMethod(**{k: v for k, v in data.items() if k in EDITABLE_FIELDS and v is not None})
    if method.fee_percentage is None:
        method.fee_percentage = Decimal("0")
    if method.status is None:
        method.status = WithdrawMethodStatus.ACTIVE.value
    _validate(method)
    db.add(method)
    db.commit()
    db.refresh(method)
    logger.info("Added withdrawal method %s (%s)", method.id, method.name)
    return method


def update_method(db: Session, method_id: str, data: dict) -> WithdrawMethod:
    method = get_method(db, method_id)
    changes = {k: v for k, v in data.items() if k in EDITABLE_FIELDS and v is not None}
    for key, value in changes.items():
        setattr(method, key, value)
    try:
        _validate(method)
    except InvalidInput:
        db.rollback()
        raise
    db.commit()
    db.refresh(method)
    logger.info("Updated withdrawal method %s: %s", method.id, sorted(changes))
    return method


def delete_method(db: Session, method_id: str) -> None:
    method = get_method(db, method_id)
    db.delete(method)
    db.commit()
    logger.info("Deleted withdrawal method %s", method_id)
