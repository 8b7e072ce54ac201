# tests/conftest.py
import os
from datetime import timedelta

# Settings are read at import time
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-chronodesk")
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, Session, create_engine

import models.models  # noqa: F401  (register tables)
from core.crypto import get_field_cipher
from core.database import get_session
from core.security import token_service
from main import app
from models.models import PlanStatus, UserRole, utcnow
from services.credential_store import CredentialStore
from services.plan_registry import PlanRegistry

PASSWORD = "Secret123"


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def client(engine):
    def override_get_session():
        with Session(engine) as session:
            yield session

    app.dependency_overrides[get_session] = override_get_session
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def tokens():
    return token_service


@pytest.fixture
def store(session):
    return CredentialStore(session, get_field_cipher())


@pytest.fixture
def make_plan(session):
    def _make_plan(**overrides):
        now = utcnow()
        fields = {
            "name": "Team plan",
            "description": "Plan used in tests",
            "start_date": now - timedelta(days=1),
            "end_date": now + timedelta(days=30),
            "max_users": 3,
            "max_supervisors": 1,
            "status": PlanStatus.ACTIVE.value,
        }
        fields.update(overrides)
        return PlanRegistry(session).create_plan(**fields)

    return _make_plan


@pytest.fixture
def make_user(store, make_plan):
    counter = {"n": 0}

    def _make_user(plan=None, **overrides):
        counter["n"] += 1
        n = counter["n"]
        if plan is None and "plan_id" not in overrides:
            plan = make_plan()
        fields = {
            "first_name": "Ana",
            "last_name": "Lopez",
            "username": f"user{n}",
            "email": f"user{n}@example.com",
            "phone": "+34 600 000 000",
            "password": PASSWORD,
            "role": UserRole.USER.value,
            "is_active": True,
            "plan_id": plan.id if plan is not None else None,
        }
        fields.update(overrides)
        return store.create_user(**fields)

    return _make_user


@pytest.fixture
def login(client):
    """Log in over HTTP and return the response body."""
    def _login(identifier, password=PASSWORD, **extra):
        response = client.post("/auth/login", json={"identifier": identifier, "password": password, **extra})
        assert response.status_code == 200, response.json()
        return response.json()

    return _login


def bearer(token):
    return {"Authorization": f"Bearer {token}"}
