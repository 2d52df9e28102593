from decimal import Decimal

import pytest

from wallet_topup import withdraw_methods
from wallet_topup.errors import InvalidInput, WithdrawMethodNotFound
from wallet_topup.models import WithdrawMethod

BKASH = {
    "name": "bKash",
    "receiver_info": "Personal: 01712345678",
    "fee_percentage": "2.5",
    "min_amount": "50",
    "max_amount": "5000",
}


def add_method(db, name, status="active"):
    method = WithdrawMethod(
        name=name,
        receiver_info="Personal: 01812345678",
        fee_percentage=Decimal("2"),
        min_amount=Decimal("100"),
        max_amount=Decimal("10000"),
        status=status,
    )
    db.add(method)
    db.commit()
    return method


def test_admin_creates_withdraw_method(client, admin_headers):
    response = client.post("/admin/withdraw-methods", json=BKASH, headers=admin_headers)

    assert response.status_code == 201
    body = response.json()
    assert body["name"] == "bKash"
    assert body["fee_percentage"] == "2.50"
    assert body["min_amount"] == "50.00"
    assert body["status"] == "active"


def test_admin_lists_methods_by_name(client, db, admin_headers):
    add_method(db, "Rocket", status="inactive")
    add_method(db, "Nagad")

    response = client.get("/admin/withdraw-methods", headers=admin_headers)

    assert [m["name"] for m in response.json()] == ["Nagad", "Rocket"]


def test_users_only_see_active_methods(client, db, user_headers):
    add_method(db, "Rocket", status="inactive")
    add_method(db, "Nagad")

    response = client.get("/withdraw-methods", headers=user_headers)

    assert response.status_code == 200
    assert [m["name"] for m in response.json()] == ["Nagad"]


def test_update_and_delete_method(client, db, admin_headers):
    method_id = add_method(db, "Nagad").id

    response = client.patch(
        f"/admin/withdraw-methods/{method_id}",
        json={"status": "inactive", "fee_percentage": "1.5"},
        headers=admin_headers,
    )
    assert response.status_code == 200
    assert response.json()["status"] == "inactive"
    assert response.json()["fee_percentage"] == "1.50"

    response = client.delete(f"/admin/withdraw-methods/{method_id}", headers=admin_headers)
    assert response.status_code == 204
    db.expire_all()
    assert db.get(WithdrawMethod, method_id) is None


def test_unknown_method_is_not_found(client, admin_headers):
    response = client.patch("/admin/withdraw-methods/nope", json={"name": "x"}, headers=admin_headers)
    assert response.status_code == 404

    response = client.delete("/admin/withdraw-methods/nope", headers=admin_headers)
    assert response.status_code == 404


@pytest.mark.parametrize(
    "changes",
    [
        {"min_amount": "6000"},
        {"min_amount": "0"},
        {"fee_percentage": "101"},
        {"fee_percentage": "-1"},
        {"status": "paused"},
    ],
)
def test_create_rejects_invalid_limits(db, changes):
    with pytest.raises(InvalidInput):
        withdraw_methods.create_method(db, {**BKASH, **changes})
    assert db.query(WithdrawMethod).count() == 0


def test_invalid_update_leaves_method_unchanged(db):
    method_id = add_method(db, "Nagad").id

    with pytest.raises(InvalidInput):
        withdraw_methods.update_method(db, method_id, {"max_amount": Decimal("10")})

    db.expire_all()
    assert db.get(WithdrawMethod, method_id).max_amount == Decimal("10000")


def test_get_missing_method(db):
    with pytest.raises(WithdrawMethodNotFound):
        withdraw_methods.get_method(db, "nope")


def test_withdraw_method_admin_requires_admin(client, user_headers):
    response = client.post("/admin/withdraw-methods", json=BKASH, headers=user_headers)
    assert response.status_code == 403
