import psycopg
from psycopg import errors

from aegis.storage.base import BaseKeyValueStore
from aegis.storage.connection import get_connection
from aegis.storage.exceptions import StorageError, StorageQuotaError


class PostgresKeyValueStore(BaseKeyValueStore):
    """Key-value substrate backed by a single PostgreSQL table."""

    def __init__(self, table: str = "aegis_kv", quota_bytes: int | None = None) -> None:
        if not table.isidentifier():
            raise ValueError(f"Invalid table name '{table}'")
        self._table = table
        self._quota_bytes = quota_bytes

    def ensure_schema(self) -> None:
        """Create the backing table if it does not exist yet."""
        try:
            with get_connection() as conn:
                conn.execute(
                    f"""
                    CREATE TABLE IF NOT EXISTS {self._table} (
                        key TEXT PRIMARY KEY,
                        value TEXT NOT NULL,
                        updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
                    )
                    """
                )
                conn.commit()
        except psycopg.Error as exc:
            raise StorageError(f"Failed to create table {self._table}: {exc}") from exc

    def get(self, key: str) -> str | None:
        try:
            with get_connection() as conn:
                with conn.cursor() as cur:
                    cur.execute(
                        f"SELECT value FROM {self._table} WHERE key = %s",
                        (key,),
                    )
                    row = cur.fetchone()
        except psycopg.Error as exc:
            raise StorageError(f"Failed to read '{key}': {exc}") from exc

        if row is None:
            return None
        value: str = row[0]
        return value

    def set(self, key: str, value: str) -> None:
        size = len(value.encode("utf-8"))
        if self._quota_bytes is not None:
            used = self._used_bytes(excluding=key)
            if used + size > self._quota_bytes:
                raise StorageQuotaError(
                    f"Quota exceeded writing '{key}': {used + size} > {self._quota_bytes} bytes"
                )
        try:
            with get_connection() as conn:
                conn.execute(
                    f"""
                    INSERT INTO {self._table} (key, value, updated_at)
                    VALUES (%s, %s, NOW())
                    ON CONFLICT (key)
                    DO UPDATE SET value = EXCLUDED.value, updated_at = NOW()
                    """,
                    (key, value),
                )
                conn.commit()
        except (errors.DiskFull, errors.ProgramLimitExceeded) as exc:
            raise StorageQuotaError(f"Database refused '{key}': {exc}") from exc
        except psycopg.Error as exc:
            raise StorageError(f"Failed to write '{key}': {exc}") from exc

    def remove(self, key: str) -> None:
        try:
            with get_connection() as conn:
                conn.execute(f"DELETE FROM {self._table} WHERE key = %s", (key,))
                conn.commit()
        except psycopg.Error as exc:
            raise StorageError(f"Failed to remove '{key}': {exc}") from exc

    def _used_bytes(self, excluding: str) -> int:
        try:
            with get_connection() as conn:
                with conn.cursor() as cur:
                    cur.execute(
                        f"SELECT COALESCE(SUM(OCTET_LENGTH(value)), 0) "
                        f"FROM {self._table} WHERE key <> %s",
                        (excluding,),
                    )
                    row = cur.fetchone()
        except psycopg.Error as exc:
            raise StorageError(f"Failed to measure {self._table}: {exc}") from exc
        return int(row[0]) if row is not None else 0
