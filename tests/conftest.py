import os
import tempfile

# Settings are read once at import time, so the test environment goes first
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("UPLOAD_DIR", tempfile.mkdtemp(prefix="shipment-uploads-"))

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool

from shipment_service.domain.models import Base, User, UserRole
from shipment_service.infrastructure import db as db_module
from shipment_service.infrastructure import storage
from shipment_service.infrastructure.security import hash_password
from shipment_service.application.user_service import issue_token
from shipment_service.main import app

engine = db_module.configure_engine("sqlite://", poolclass=StaticPool)

FUTURE = "2099-01-01T00:00:00Z"

@pytest.fixture(autouse=True)
def database():
    Base.metadata.create_all(engine)
    yield
    Base.metadata.drop_all(engine)

@pytest.fixture(autouse=True)
def upload_dir(tmp_path, monkeypatch):
    monkeypatch.setattr(storage, "_storage", storage.FileStorage(str(tmp_path), "/uploads"))
    return tmp_path

@pytest.fixture
def db_session():
    session = db_module.SessionLocal()
    try:
        yield session
    finally:
        session.close()

@pytest.fixture
def client():
    return TestClient(app)

@pytest.fixture
def make_user(db_session):
    def _make(name="Test User", email="user@example.com", password="password123", role=UserRole.USER, active=True):
        user = User(
            name=name,
            email=email.lower(),
            password_hash=hash_password(password),
            role=role.value,
            is_active=active,
        )
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user
    return _make

def auth_headers(user: User) -> dict:
    return {"Authorization": f"Bearer {issue_token(user)}"}

@pytest.fixture
def user(make_user):
    return make_user()

@pytest.fixture
def other_user(make_user):
    return make_user(name="Other User", email="other@example.com")

@pytest.fixture
def admin(make_user):
    return make_user(name="Admin User", email="admin@example.com", role=UserRole.ADMIN)

@pytest.fixture
def user_headers(user):
    return auth_headers(user)

@pytest.fixture
def other_headers(other_user):
    return auth_headers(other_user)

@pytest.fixture
def admin_headers(admin):
    return auth_headers(admin)

def shipment_payload(**overrides) -> dict:
    payload = {
        "senderName": "Alice Sender",
        "receiverName": "Bob Receiver",
        "origin": "Lagos, Nigeria",
        "destination": "London, UK",
        "weight": 2.5,
        "description": "Books",
        "estimatedDelivery": FUTURE,
    }
    payload.update(overrides)
    return payload

@pytest.fixture
def create_shipment(client):
    def _create(headers, **overrides):
        resp = client.post("/api/shipments", json=shipment_payload(**overrides), headers=headers)
        assert resp.status_code == 201, resp.text
        return resp.json()["data"]
    return _create
