import pytest
from sqlalchemy.pool import StaticPool

from trademaster.core.database import build_engine, is_memory_sqlite


@pytest.mark.parametrize("url", ["sqlite://", "sqlite:///:memory:", "sqlite+pysqlite://"])
def test_memory_sqlite_shares_one_connection(url):
    engine = build_engine(url)
    try:
        assert is_memory_sqlite(url)
        assert isinstance(engine.pool, StaticPool)
    finally:
        engine.dispose()


def test_file_sqlite_gets_a_real_pool(tmp_path):
    url = f"sqlite:///{tmp_path / 'dev.db'}"
    engine = build_engine(url)
    try:
        assert not is_memory_sqlite(url)
        assert not isinstance(engine.pool, StaticPool)
        with engine.connect() as first, engine.connect() as second:
            assert first.connection.dbapi_connection is not second.connection.dbapi_connection
    finally:
        engine.dispose()


def test_postgres_url_is_not_memory_sqlite():
    assert not is_memory_sqlite("postgresql://u:p@localhost/db")
