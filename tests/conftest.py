"""Pytest configuration and fixtures."""

import os
import tempfile

# Settings are read at import time, so point them at throwaway locations first.
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("UPLOAD_DIR", tempfile.mkdtemp(prefix="account-service-uploads-"))
os.environ.setdefault("BCRYPT_ROUNDS", "4")

from datetime import datetime  # noqa: E402
from unittest.mock import patch  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import Session, sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from app.database import Base, get_db  # noqa: E402
from app.models.token import Token  # noqa: E402
from app.models.user import User  # noqa: E402
from app.security import hash_password  # noqa: E402
from app.services.email import EmailService  # noqa: E402

PASSWORD = "P4ssword"


@pytest.fixture(name="session_factory")
def session_factory_fixture():
    """Create an in-memory SQLite database for tests and return its session factory."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield sessionmaker(bind=engine, autocommit=False, autoflush=False)
    finally:
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(name="db_session")
def db_session_fixture(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(name="outbox")
def outbox_fixture():
    """Capture outgoing e-mails instead of talking to an SMTP server."""
    sent = []
    with patch.object(EmailService, "_deliver", side_effect=sent.append):
        yield sent


@pytest.fixture(name="client")
def client_fixture(db_session: Session, outbox: list):
    """Create a test client with overridden DB dependency."""
    from main import app

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture(name="add_user")
def add_user_fixture(db_session: Session):
    """Return a factory that stores a user directly, active by default."""
    counter = {"n": 0}

    def _add_user(**overrides) -> User:
        counter["n"] += 1
        n = counter["n"]
        values = {
            "username": f"user{n}",
            "email": f"user{n}@mail.com",
            "password": PASSWORD,
            "inactive": False,
        }
        values.update(overrides)
        values["password"] = hash_password(values["password"])
        user = User(**values)
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return _add_user


@pytest.fixture(name="login")
def login_fixture(client: TestClient):
    """Return a helper that logs in through the API and returns the token."""

    def _login(email: str, password: str = PASSWORD) -> str:
        response = client.post("/api/1.0/auth", json={"email": email, "password": password})
        assert response.status_code == 200
        return response.json()["token"]

    return _login


@pytest.fixture(name="add_token")
def add_token_fixture(db_session: Session):
    """Return a factory that stores a token row with a chosen last use time."""

    def _add_token(user: User, last_used_at: datetime, token: str = "test-token") -> str:
        db_session.add(Token(token=token, user_id=user.id, last_used_at=last_used_at))
        db_session.commit()
        return token

    return _add_token
