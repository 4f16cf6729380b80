import os

# Keep app.main's import-time create_all away from the working directory
os.environ.setdefault("DATABASE_URL", "sqlite://")

from datetime import datetime, timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.database import Base, get_db
from app.dependencies import get_optional_email, get_verified_email
from app.main import app
from app.models.coupon import Coupon

ADMIN_EMAIL = "admin@example.com"


@pytest.fixture(autouse=True)
def env(monkeypatch):
    monkeypatch.setenv("ENV", "dev")
    monkeypatch.setenv("ADMIN_EMAILS", ADMIN_EMAIL)
    monkeypatch.delenv("COOLDOWN_PERIOD", raising=False)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db_session(session_factory):
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def client(session_factory):
    """Anonymous visitor; the database is the per-test in-memory one."""
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_optional_email] = lambda: None
    with TestClient(app, raise_server_exceptions=False) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def admin_client(client):
    app.dependency_overrides[get_verified_email] = lambda: ADMIN_EMAIL
    return client


@pytest.fixture
def make_coupon(db_session):
    """Insert a coupon directly; created_at is spaced out to pin FIFO order."""
    base = datetime.utcnow() - timedelta(hours=1)
    counter = {"n": 0}

    def _make(code=None, **overrides):
        counter["n"] += 1
        fields = {
            "code": code or f"CODE{counter['n']}",
            "description": f"Coupon {counter['n']}",
            "discount": 10,
            "expiry_date": datetime.utcnow() + timedelta(days=30),
            "is_active": True,
            "is_claimed": False,
            "created_at": base + timedelta(seconds=counter["n"]),
        }
        fields.update(overrides)
        coupon = Coupon(**fields)
        db_session.add(coupon)
        db_session.commit()
        db_session.refresh(coupon)
        return coupon

    return _make
