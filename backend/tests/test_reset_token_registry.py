import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta

import pytest
from sqlalchemy.orm import sessionmaker

from trademaster.core.database import Base, SessionLocal, build_engine
from trademaster.models.password_reset import PasswordResetToken
from trademaster.models.user import User
from trademaster.services.reset_token_registry import (
    DatabaseResetTokenRegistry,
    InMemoryResetTokenRegistry,
    hash_reset_token,
)


class FakeClock:
    def __init__(self):
        self.now = datetime(2026, 1, 1, 12, 0, 0)

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def users(db):
    rows = [
        User(firstname="A", lastname="B", email="a@b.com", password_hash="x"),
        User(firstname="C", lastname="D", email="c@d.com", password_hash="x"),
    ]
    db.add_all(rows)
    db.commit()
    return [row.id for row in rows]


@pytest.fixture(params=["memory", "database"])
def registry(request, clock):
    if request.param == "memory":
        return InMemoryResetTokenRegistry(ttl=timedelta(hours=1), clock=clock)
    return DatabaseResetTokenRegistry(SessionLocal, ttl=timedelta(hours=1), clock=clock)


def test_create_then_consume_returns_user(registry, users):
    token = registry.create(users[0])
    assert len(token) >= 32
    assert registry.consume(token) == users[0]


def test_token_is_single_use(registry, users):
    token = registry.create(users[0])
    assert registry.consume(token) == users[0]
    assert registry.consume(token) is None


def test_tokens_are_unique(registry, users):
    assert registry.create(users[0]) != registry.create(users[0])


def test_expired_token_returns_none(registry, users, clock):
    token = registry.create(users[0])
    clock.advance(hours=1)
    assert registry.consume(token) is None


def test_token_still_valid_just_before_expiry(registry, users, clock):
    token = registry.create(users[0])
    clock.advance(minutes=59, seconds=59)
    assert registry.consume(token) == users[0]


@pytest.mark.parametrize("token", ["", "unknown-token"])
def test_unknown_token_returns_none(registry, token):
    assert registry.consume(token) is None


def test_invalidate_all_only_touches_one_user(registry, users):
    first = registry.create(users[0])
    second = registry.create(users[0])
    other = registry.create(users[1])

    assert registry.invalidate_all(users[0]) == 2
    assert registry.consume(first) is None
    assert registry.consume(second) is None
    assert registry.consume(other) == users[1]


def test_memory_create_purges_expired_entries(clock):
    registry = InMemoryResetTokenRegistry(ttl=timedelta(hours=1), clock=clock)
    registry.create(1)
    registry.create(2)
    clock.advance(hours=2)
    registry.create(3)
    assert len(registry) == 1


def test_database_create_purges_expired_rows(db, users, clock):
    registry = DatabaseResetTokenRegistry(SessionLocal, ttl=timedelta(hours=1), clock=clock)
    registry.create(users[0])
    clock.advance(hours=2)
    registry.create(users[1])
    assert db.query(PasswordResetToken).count() == 1


def test_database_stores_only_digest(db, users):
    registry = DatabaseResetTokenRegistry(SessionLocal)
    token = registry.create(users[0])
    row = db.query(PasswordResetToken).one()
    assert row.token_hash == hash_reset_token(token)
    assert row.token_hash != token


@pytest.fixture(params=["memory", "database"])
def shared_registry(request, tmp_path):
    """Registry shared by several threads; the database one opens a connection per consumer"""
    if request.param == "memory":
        yield InMemoryResetTokenRegistry()
        return
    file_engine = build_engine(f"sqlite:///{tmp_path / 'reset.db'}")
    Base.metadata.create_all(bind=file_engine)
    yield DatabaseResetTokenRegistry(sessionmaker(bind=file_engine))
    file_engine.dispose()


def test_concurrent_consume_succeeds_once(shared_registry):
    token = shared_registry.create(42)
    workers = 8
    start = threading.Barrier(workers)

    def consume(_):
        start.wait()
        return shared_registry.consume(token)

    with ThreadPoolExecutor(max_workers=workers) as pool:
        results = list(pool.map(consume, range(workers)))
    assert results.count(42) == 1
    assert results.count(None) == workers - 1
