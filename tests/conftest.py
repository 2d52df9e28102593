import json
import os

SQLALCHEMY_DATABASE_URL = "sqlite:///./test_wallet.db"
JWT_SECRET = "test-secret"

# Must be set before the application modules are imported
os.environ["DATABASE_URL"] = SQLALCHEMY_DATABASE_URL
os.environ["JWT_SECRET"] = JWT_SECRET

import pytest
import requests
from fastapi.testclient import TestClient
from jose import jwt
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from wallet_topup.database import Base, get_db
from wallet_topup.events import OrderEventBus
from wallet_topup.main import app as fastapi_app
from wallet_topup.models import Gateway, User

engine = create_engine(SQLALCHEMY_DATABASE_URL, connect_args={
                       "check_same_thread": False})
TestingSessionLocal = sessionmaker(
    autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(autouse=True)
def setup_db(monkeypatch):
    for key in ("PUBLIC_BASE_URL", "MIN_TOPUP_AMOUNT", "MAX_TOPUP_AMOUNT", "RUPANTORPAY_BASE_URL", "RUPANTORPAY_SANDBOX_URL"):
        monkeypatch.delenv(key, raising=False)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def events():
    return OrderEventBus()


@pytest.fixture
def client(events):
    fastapi_app.dependency_overrides[get_db] = override_get_db
    fastapi_app.state.events = events
    with TestClient(fastapi_app) as c:
        yield c
    fastapi_app.dependency_overrides.clear()


@pytest.fixture
def db():
    session = TestingSessionLocal()
    yield session
    session.close()


def make_token(sub, admin=False, **claims):
    return jwt.encode({"sub": sub, "admin": admin, **claims}, JWT_SECRET, algorithm="HS256")


@pytest.fixture
def user_headers():
    return {"Authorization": f"Bearer {make_token('user-1', email='alice@example.com')}"}


@pytest.fixture
def admin_headers():
    return {"Authorization": f"Bearer {make_token('admin-1', admin=True)}"}


@pytest.fixture
def user(db):
    u = User(id="user-1", email="alice@example.com", balance=0)
    db.add(u)
    db.commit()
    return u


@pytest.fixture
def gateway(db):
    g = Gateway(id="gw-1", name="RupantorPay", store_password="secret-key", is_live=True, enabled=True)
    db.add(g)
    db.commit()
    return g


@pytest.fixture
def provider_response():
    """Build real ``requests.Response`` objects for mocking the provider."""

    def _build(status_code=200, body=None, text=None):
        resp = requests.Response()
        resp.status_code = status_code
        resp.encoding = "utf-8"
        if body is not None:
            resp._content = json.dumps(body).encode("utf-8")
        else:
            resp._content = (text or "").encode("utf-8")
        return resp

    return _build
