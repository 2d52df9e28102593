import pytest
from sqlalchemy.exc import IntegrityError

from conftest import make_token
from wallet_topup import gateways
from wallet_topup.errors import GatewayNotFound
from wallet_topup.models import Gateway


def test_create_gateway_hides_credential(client, admin_headers):
    response = client.post(
        "/admin/gateways",
        json={"name": "RupantorPay", "store_password": "secret-key", "is_live": True, "enabled": True},
        headers=admin_headers,
    )

    assert response.status_code == 201
    body = response.json()
    assert body["enabled"] is True
    assert body["has_credential"] is True
    assert "store_password" not in body


def test_enabling_a_gateway_disables_the_others(client, db, gateway, admin_headers):
    created = client.post(
        "/admin/gateways",
        json={"name": "RupantorPay backup", "store_password": "other-key", "enabled": True},
        headers=admin_headers,
    ).json()

    db.expire_all()
    enabled = db.query(Gateway).filter(Gateway.enabled.is_(True)).all()
    assert [g.id for g in enabled] == [created["id"]]
    assert gateways.get_active_gateway(db).id == created["id"]

    client.patch("/admin/gateways/gw-1", json={"enabled": True}, headers=admin_headers)

    db.expire_all()
    assert gateways.get_active_gateway(db).id == "gw-1"
    assert db.get(Gateway, created["id"]).enabled is False


def test_single_enabled_gateway_is_a_storage_invariant(db, gateway):
    db.add(Gateway(id="gw-2", store_password="k", enabled=True))
    with pytest.raises(IntegrityError):
        db.commit()
    db.rollback()


def test_update_keeps_credential_when_omitted(client, db, gateway, admin_headers):
    response = client.patch("/admin/gateways/gw-1", json={"is_live": False}, headers=admin_headers)

    assert response.status_code == 200
    assert response.json()["is_live"] is False
    db.expire_all()
    assert db.get(Gateway, "gw-1").store_password == "secret-key"


def test_list_and_delete_gateway(client, gateway, admin_headers):
    listed = client.get("/admin/gateways", headers=admin_headers).json()
    assert [g["id"] for g in listed] == ["gw-1"]

    assert client.delete("/admin/gateways/gw-1", headers=admin_headers).status_code == 204
    assert client.get("/admin/gateways", headers=admin_headers).json() == []
    assert client.delete("/admin/gateways/gw-1", headers=admin_headers).status_code == 404


def test_get_gateway_unknown(db):
    with pytest.raises(GatewayNotFound):
        gateways.get_gateway(db, "missing")


def test_admin_routes_require_admin_claim(client, user_headers):
    assert client.get("/admin/gateways", headers=user_headers).status_code == 403

    headers = {"Authorization": f"Bearer {make_token('user-1', admin='yes')}"}
    assert client.get("/admin/gateways", headers=headers).status_code == 403
