import logging

from sqlalchemy.orm import Session

from wallet_topup.errors import UserNotFound
from wallet_topup.models import Order, Transaction, User

logger = logging.getLogger(__name__)


def ensure_user(db: Session, user_id: str, email=None) -> User:
    """Return the user's wallet, creating an empty one on first sight."""
    user = db.get(User, user_id)
    if user is not None:
        return user
    if not email:
        raise UserNotFound()
    user = User(id=user_id, email=email, balance=0)
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("Created wallet profile for %s", user_id)
    return user


def list_orders(db: Session, user_id=None, status=None):
    query = db.query(Order)
    if user_id is not None:
        query = query.filter(Order.user_id == user_id)
    if status is not None:
        query = query.filter(Order.status == status)
    return query.order_by(Order.created_at.desc()).all()


def list_transactions(db: Session, user_id=None):
    query = db.query(Transaction)
    if user_id is not None:
        query = query.filter(Transaction.user_id == user_id)
    return query.order_by(Transaction.date.desc()).all()


def set_user_banned(db: Session, user_id: str, is_banned: bool) -> User:
    user = db.get(User, user_id)
    if user is None:
        raise UserNotFound()
    user.is_banned = is_banned
    db.commit()
    db.refresh(user)
    logger.info("User %s banned=%s", user_id, is_banned)
    return user
