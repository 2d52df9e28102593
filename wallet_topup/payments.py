"""Wallet top-up order lifecycle.

An order is created ``PENDING`` before the customer is sent to RupantorPay and
leaves that state exactly once. Every status write is a compare-and-set on
``status = 'PENDING'``, so the first writer wins and later writers (duplicate
callbacks, a concurrent reconcile run) see zero affected rows and back off.
"""
import logging
import uuid
from dataclasses import dataclass, field
from datetime import timedelta
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from wallet_topup import config, rupantorpay
from wallet_topup.errors import (
    GatewayError,
    GatewayNotFound,
    InvalidAmount,
    InvalidInput,
    NoGatewayAvailable,
    OrderNotFound,
    PaymentError,
    UserBanned,
    UserNotFound,
    VerificationFailed,
)
from wallet_topup.events import OrderEvent
from wallet_topup.gateways import get_active_gateway
from wallet_topup.models import (
    Gateway,
    Order,
    OrderStatus,
    Transaction,
    TransactionStatus,
    User,
    utcnow,
)

logger = logging.getLogger(__name__)

CALLBACK_PATH = "/payments/callback"

SUCCESS_PAGE = "success"
FAIL_PAGE = "fail"
CANCEL_PAGE = "cancel"


@dataclass
class InitiateResult:
    order_id: str
    payment_url: str


@dataclass
class CallbackOutcome:
    page: str
    params: dict = field(default_factory=dict)


def generate_order_id() -> str:
    return f"TRN-{uuid.uuid4().hex}"


def parse_amount(amount) -> Decimal:
    try:
        value = Decimal(str(amount))
    except (InvalidOperation, TypeError, ValueError):
        raise InvalidAmount("Amount must be a number.")
    if not value.is_finite() or value <= 0:
        raise InvalidAmount("Amount must be a positive number.")
    maximum = config.max_topup_amount()
    if value > maximum:
        raise InvalidAmount(f"Amount must not exceed {maximum}.")
    try:
        value = value.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    except InvalidOperation:
        raise InvalidAmount("Amount must be a number.")
    minimum = config.min_topup_amount()
    if value < minimum:
        raise InvalidAmount(f"Amount is required and must be at least {minimum}.")
    if value > maximum:
        raise InvalidAmount(f"Amount must not exceed {maximum}.")
    return value


def _publish(events, order_id, user_id, status, amount):
    if events is None:
        return
    events.publish(OrderEvent(order_id=order_id, user_id=user_id, status=status.value, amount=str(amount)))


def mark_terminal(db: Session, order_id: str, status: OrderStatus, payment_details=None, events=None) -> bool:
    """Move a PENDING order to ``status``. Returns False if it was no longer PENDING."""
    values = {"status": status.value, "updated_at": utcnow()}
    if payment_details is not None:
        values["payment_details"] = payment_details
    try:
        result = db.execute(
            update(Order)
            .where(Order.id == order_id, Order.status == OrderStatus.PENDING.value)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        db.commit()
    except Exception:
        db.rollback()
        raise

    if result.rowcount != 1:
        return False
    order = db.get(Order, order_id)
    logger.info("Order %s -> %s", order_id, status.value)
    _publish(events, order_id, order.user_id, status, order.amount)
    return True


def initiate_payment(db: Session, user_id, amount, base_url: str, client_host=None, events=None) -> InitiateResult:
    if not user_id:
        raise InvalidInput("User ID is missing.")
    value = parse_amount(amount)

    user = db.get(User, user_id)
    if user is None:
        raise UserNotFound()
    if user.is_banned:
        raise UserBanned()

    gateway = get_active_gateway(db)
    if gateway is None:
        raise NoGatewayAvailable()
    if not gateway.store_password:
        raise NoGatewayAvailable("The active payment gateway is missing its Store Password / Secret.")

    order_id = generate_order_id()
    customer_name = user.email.split("@")[0]
    order = Order(
        id=order_id,
        user_id=user.id,
        gateway_id=gateway.id,
        amount=value,
        status=OrderStatus.PENDING.value,
        description=f"Wallet Top-up of {value}",
        customer_name=customer_name,
        customer_email=user.email,
    )
    db.add(order)
    db.commit()
    logger.info("Created order %s for user %s (%s via %s)", order_id, user.id, value, gateway.name)
    _publish(events, order_id, user.id, OrderStatus.PENDING, value)

    callback_url = f"{base_url.rstrip('/')}{CALLBACK_PATH}?transaction_id={order_id}&status="
    payload = {
        "transaction_id": order_id,
        "amount": float(value),
        "success_url": callback_url + "success",
        "fail_url": callback_url + "fail",
        "cancel_url": callback_url + "cancel",
        "customer_name": customer_name,
        "customer_email": user.email,
        "customer_phone": user.phone or config.placeholder_phone(),
    }

    try:
        checkout = rupantorpay.create_checkout(gateway, payload, client_host=client_host)
    except GatewayError as e:
        details = {"error": e.message, "provider_status": e.provider_status}
        if e.payload is not None:
            details["response"] = e.payload
        mark_terminal(db, order_id, OrderStatus.FAILED, details, events)
        raise

    return InitiateResult(order_id=order_id, payment_url=checkout.payment_url)


def commit_verified_order(db: Session, order: Order, payment_details: dict, description=None, events=None) -> bool:
    """Complete the order, credit the user and append the ledger entry in one transaction.

    The status check is the first write of the transaction, so two concurrent
    commits for the same order cannot both pass it. Returns False when the
    order had already left PENDING.
    """
    order_id, user_id, amount = order.id, order.user_id, order.amount
    try:
        won = db.execute(
            update(Order)
            .where(Order.id == order_id, Order.status == OrderStatus.PENDING.value)
            .values(status=OrderStatus.COMPLETED.value, payment_details=payment_details, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        ).rowcount == 1
        if not won:
            db.rollback()
            logger.info("Order %s already processed, skipping credit", order_id)
            return False

        credited = db.execute(
            update(User)
            .where(User.id == user_id)
            .values(balance=User.balance + amount)
            .execution_options(synchronize_session=False)
        ).rowcount
        if credited != 1:
            raise UserNotFound(f"User {user_id} not found.")

        db.add(Transaction(
            user_id=user_id,
            order_id=order_id,
            amount=amount,
            description=description or f"Wallet Top-up of {amount}",
            status=TransactionStatus.COMPLETED.value,
        ))
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info("Order %s completed, credited %s to user %s", order_id, amount, user_id)
    _publish(events, order_id, user_id, OrderStatus.COMPLETED, amount)
    return True


def settle_order(db: Session, order_id: str, events=None) -> bool:
    """Verify a PENDING order with the provider and apply the result.

    Returns True if this call credited the user, False if the order was
    already processed. Raises ``VerificationFailed`` (order now FAILED),
    ``UserNotFound`` (order now FAILED), or ``OrderNotFound`` /
    ``GatewayNotFound`` / ``GatewayError`` (order untouched).
    """
    order = db.get(Order, order_id)
    if order is None:
        raise OrderNotFound(f"Order {order_id} not found.")
    if order.status != OrderStatus.PENDING.value:
        return False

    gateway = db.get(Gateway, order.gateway_id) if order.gateway_id else None
    if gateway is None:
        raise GatewayNotFound(f"Gateway for order {order_id} not found.")

    verification = rupantorpay.verify_payment(gateway, order.id)
    if not verification.completed:
        mark_terminal(db, order.id, OrderStatus.FAILED, verification.payload, events)
        raise VerificationFailed(payload=verification.payload)

    try:
        return commit_verified_order(
            db, order, verification.payload, description=f"Wallet Top-up via {gateway.name}", events=events
        )
    except UserNotFound as e:
        mark_terminal(db, order_id, OrderStatus.FAILED, {"error": e.message, "response": verification.payload}, events)
        raise


def handle_callback(db: Session, status, transaction_id, events=None) -> CallbackOutcome:
    try:
        return _handle_callback(db, (status or "").strip().lower(), transaction_id, events)
    except Exception:
        logger.exception("Callback handling error for %s", transaction_id)
        db.rollback()
        return CallbackOutcome(FAIL_PAGE, {"error": "internal"})


def _handle_callback(db, status, transaction_id, events):
    if not transaction_id:
        return CallbackOutcome(FAIL_PAGE, {"error": "notransactionid"})

    if status in (CANCEL_PAGE, FAIL_PAGE):
        if db.get(Order, transaction_id) is None:
            logger.warning("Callback %s for unknown order %s", status, transaction_id)
            return CallbackOutcome(FAIL_PAGE, {"error": "ordernotfound"})
        target = OrderStatus.CANCELLED if status == CANCEL_PAGE else OrderStatus.FAILED
        if not mark_terminal(db, transaction_id, target, events=events):
            logger.info("Callback %s ignored, order %s is already final", status, transaction_id)
            if db.get(Order, transaction_id).status == OrderStatus.COMPLETED.value:
                return CallbackOutcome(SUCCESS_PAGE, {"status": "alreadyprocessed"})
        return CallbackOutcome(status, {"status": status})

    try:
        credited = settle_order(db, transaction_id, events)
    except OrderNotFound:
        logger.warning("Success callback for unknown order %s", transaction_id)
        return CallbackOutcome(FAIL_PAGE, {"error": "ordernotfound"})
    except GatewayNotFound:
        logger.error("Order %s references a missing gateway", transaction_id)
        return CallbackOutcome(FAIL_PAGE, {"error": "gatewaynotfound"})
    except VerificationFailed as e:
        logger.warning("Verification rejected order %s: %s", transaction_id, e.payload)
        return CallbackOutcome(FAIL_PAGE, {"status": "verificationfailed"})
    except UserNotFound:
        logger.error("Order %s verified but its user is missing, marked FAILED", transaction_id)
        return CallbackOutcome(FAIL_PAGE, {"error": "usernotfound"})
    except GatewayError as e:
        logger.warning("Verification of order %s could not complete: %s", transaction_id, e.message)
        return CallbackOutcome(FAIL_PAGE, {"error": "verificationerror"})

    if not credited:
        return CallbackOutcome(SUCCESS_PAGE, {"status": "alreadyprocessed"})
    return CallbackOutcome(SUCCESS_PAGE)


def reconcile_order(db: Session, order_id: str, events=None) -> Order:
    try:
        settle_order(db, order_id, events)
    except (VerificationFailed, UserNotFound):
        # order is FAILED now; the caller reads the outcome from it
        pass
    order = db.get(Order, order_id)
    db.refresh(order)
    return order


def reconcile_pending_orders(db: Session, older_than_minutes: int = 1, limit: int = 50, events=None) -> dict:
    cutoff = utcnow() - timedelta(minutes=older_than_minutes)
    order_ids = [
        row.id for row in (
            db.query(Order.id)
            .filter(Order.status == OrderStatus.PENDING.value, Order.created_at < cutoff)
            .order_by(Order.created_at)
            .limit(limit)
        )
    ]

    counts = {"checked": 0, "completed": 0, "failed": 0, "errors": 0}
    for order_id in order_ids:
        counts["checked"] += 1
        try:
            if settle_order(db, order_id, events):
                counts["completed"] += 1
        except (VerificationFailed, UserNotFound):
            counts["failed"] += 1
        except PaymentError as e:
            counts["errors"] += 1
            logger.warning("Reconcile of %s failed: %s", order_id, e.message)
        except SQLAlchemyError:
            db.rollback()
            counts["errors"] += 1
            logger.exception("Reconcile of %s hit a database error", order_id)
    logger.info("Reconciled pending orders: %s", counts)
    return counts
