import os
import uuid
from collections.abc import Generator

import psycopg
import pytest

from aegis.config.settings import Settings
from aegis.storage.connection import close_pool, get_connection, init_pool
from aegis.storage.postgres_store import PostgresKeyValueStore


def _test_settings() -> Settings:
    os.environ.setdefault("DB_DATABASE", "aegis_test")
    return Settings()


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    return _test_settings()


@pytest.fixture(scope="session")
def integration_pool(test_settings: Settings) -> Generator[None, None, None]:
    try:
        psycopg.connect(
            host=test_settings.db_host,
            port=test_settings.db_port,
            dbname=test_settings.db_database,
            user=test_settings.db_username,
            password=test_settings.db_password,
            connect_timeout=3,
        ).close()
    except psycopg.Error as e:
        pytest.skip(f"PostgreSQL test DB not available: {e}. Set DB_* env to run these tests")
    init_pool(test_settings)
    try:
        yield
    finally:
        close_pool()


@pytest.fixture
def pg_table(integration_pool: None) -> Generator[str, None, None]:
    """A throwaway key-value table, dropped after the test."""
    table = f"aegis_kv_test_{uuid.uuid4().hex[:8]}"
    try:
        yield table
    finally:
        with get_connection() as conn:
            conn.execute(f"DROP TABLE IF EXISTS {table}")
            conn.commit()


@pytest.fixture
def pg_store(pg_table: str) -> PostgresKeyValueStore:
    store = PostgresKeyValueStore(table=pg_table)
    store.ensure_schema()
    return store
