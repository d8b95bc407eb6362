"""Pytest configuration and shared fixtures for all tests."""

import os
import tempfile
from pathlib import Path

# Settings are read at import time, so the environment must be ready first
_TMP_DIR = Path(tempfile.mkdtemp(prefix="deposit-tests-"))
os.environ.setdefault("DATABASE_URL", f"sqlite:///{_TMP_DIR / 'test.db'}")
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-deposit-tests-only-0123456789")
os.environ.setdefault("LOG_DIR", str(_TMP_DIR / "logs"))
os.environ.setdefault("ALLOWED_ORIGINS", "http://testserver")
os.environ.setdefault("DEBUG", "false")

import pytest
from fastapi.testclient import TestClient

from app import models  # noqa: F401
from app.database import Base, SessionLocal, engine
from app.main import app as fastapi_app
from app.models.user import UserRole
from app.services.auth_service import create_jwt_token
from app.services.deposit_service import create_member


@pytest.fixture(autouse=True)
def reset_database():
    """Every test starts from empty tables."""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client():
    with TestClient(fastapi_app) as c:
        yield c


@pytest.fixture
def members(db):
    """An admin and three regular members, each with a fresh deposit."""
    create_member(db, "admin", "Admin", UserRole.ADMIN)
    create_member(db, "u1", "Kim")
    create_member(db, "u2", "Lee")
    create_member(db, "u3", "Park")
    db.commit()
    return ["admin", "u1", "u2", "u3"]


def bearer(user_id: str, **kwargs) -> dict:
    return {"Authorization": f"Bearer {create_jwt_token(user_id, **kwargs)}"}


@pytest.fixture
def admin_headers(members):
    return bearer("admin")


@pytest.fixture
def user_headers(members):
    return bearer("u1")
