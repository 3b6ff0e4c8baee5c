from collections.abc import Callable
from typing import ClassVar

from aegis.config.settings import Settings
from aegis.storage.base import BaseKeyValueStore
from aegis.storage.connection import init_pool
from aegis.storage.file_store import FileKeyValueStore
from aegis.storage.memory_store import InMemoryKeyValueStore
from aegis.storage.postgres_store import PostgresKeyValueStore


def _memory(settings: Settings) -> BaseKeyValueStore:
    return InMemoryKeyValueStore(quota_bytes=settings.storage_quota_bytes)


def _file(settings: Settings) -> BaseKeyValueStore:
    return FileKeyValueStore(settings.storage_dir, quota_bytes=settings.storage_quota_bytes)


def _postgres(settings: Settings) -> BaseKeyValueStore:
    init_pool(settings)
    store = PostgresKeyValueStore(quota_bytes=settings.storage_quota_bytes)
    store.ensure_schema()
    return store


class KeyValueStoreFactory:
    """Creates the configured key-value substrate."""

    BACKENDS: ClassVar[dict[str, Callable[[Settings], BaseKeyValueStore]]] = {
        "memory": _memory,
        "file": _file,
        "postgres": _postgres,
    }

    @classmethod
    def create(cls, settings: Settings) -> BaseKeyValueStore:
        backend = settings.storage_backend.lower()
        builder = cls.BACKENDS.get(backend)
        if builder is None:
            raise ValueError(
                f"Unknown storage backend '{backend}'. Choose from: {list(cls.BACKENDS)}"
            )
        return builder(settings)
