import os
import tempfile
from pathlib import Path

# Settings are read once at import time, so the test environment goes first.
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("JWT_SECRET", "test-access-secret-0123456789abcdef")
os.environ.setdefault("JWT_REFRESH_SECRET", "test-refresh-secret-0123456789abcdef")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("DB_INIT_MODE", "create_all")
os.environ.setdefault("RESET_TOKEN_BACKEND", "database")
os.environ.setdefault("LOG_FILE", str(Path(tempfile.gettempdir()) / "trademaster-tests.log"))

import pytest
from fastapi.testclient import TestClient

from trademaster.api.deps import get_reset_notifier
from trademaster.core.database import Base, SessionLocal, engine
from trademaster.main import app
from trademaster.services.rate_limiter import rate_limiter


class CapturingNotifier:
    """Collects reset links instead of mailing them"""

    def __init__(self):
        self.sent = []

    def send_reset_link(self, email, token):
        self.sent.append((email, token))

    @property
    def last_token(self):
        return self.sent[-1][1]


@pytest.fixture(autouse=True)
def fresh_database():
    Base.metadata.create_all(bind=engine)
    rate_limiter.reset()
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def notifier():
    capturing = CapturingNotifier()
    app.dependency_overrides[get_reset_notifier] = lambda: capturing
    yield capturing
    app.dependency_overrides.pop(get_reset_notifier, None)


@pytest.fixture
def client(notifier):
    return TestClient(app)


@pytest.fixture
def signup_payload():
    return {"firstname": "A", "lastname": "B", "email": "a@b.com", "password": "secret1"}


@pytest.fixture
def registered(client, signup_payload):
    response = client.post("/auth/signup", json=signup_payload)
    assert response.status_code == 201
    return response.json()["data"]
