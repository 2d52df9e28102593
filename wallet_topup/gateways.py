import logging

from sqlalchemy import update
from sqlalchemy.orm import Session

from wallet_topup.errors import GatewayNotFound
from wallet_topup.models import Gateway, new_id

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ("name", "store_password", "is_live", "enabled")


def list_gateways(db: Session):
    return db.query(Gateway).order_by(Gateway.created_at.desc()).all()


def get_gateway(db: Session, gateway_id: str) -> Gateway:
    gateway = db.get(Gateway, gateway_id)
    if gateway is None:
        raise GatewayNotFound(f"Gateway {gateway_id} not found.")
    return gateway


def get_active_gateway(db: Session):
    return db.query(Gateway).filter(Gateway.enabled.is_(True)).first()


def _disable_others(db: Session, gateway_id: str) -> None:
    # Runs before the enabled row is flushed so the partial unique index holds
    db.execute(
        update(Gateway)
        .where(Gateway.id != gateway_id, Gateway.enabled.is_(True))
        .values(enabled=False)
        .execution_options(synchronize_session="fetch")
    )


def create_gateway(db: Session, data: dict) -> Gateway:
    gateway = Gateway(**{k: v for k, v in data.items() if k in EDITABLE_FIELDS and v is not None})
    gateway.id = new_id()
    if gateway.enabled:
        _disable_others(db, gateway.id)
    db.add(gateway)
    db.commit()
    db.refresh(gateway)
    logger.info("Created gateway %s (%s, enabled=%s)", gateway.id, gateway.name, gateway.enabled)
    return gateway


def update_gateway(db: Session, gateway_id: str, data: dict) -> Gateway:
    gateway = get_gateway(db, gateway_id)
    changes = {k: v for k, v in data.items() if k in EDITABLE_FIELDS}
    if changes.get("enabled"):
        _disable_others(db, gateway.id)
    for key, value in changes.items():
        setattr(gateway, key, value)
    db.commit()
    db.refresh(gateway)
    logger.info("Updated gateway %s: %s", gateway.id, sorted(k for k in changes if k != "store_password"))
    return gateway


def delete_gateway(db: Session, gateway_id: str) -> None:
    gateway = get_gateway(db, gateway_id)
    db.delete(gateway)
    db.commit()
    logger.info("Deleted gateway %s", gateway_id)
