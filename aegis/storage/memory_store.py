from aegis.storage.base import BaseKeyValueStore
from aegis.storage.exceptions import StorageQuotaError


class InMemoryKeyValueStore(BaseKeyValueStore):
    """Process-local substrate with an optional byte quota over all values."""

    def __init__(self, quota_bytes: int | None = None) -> None:
        self._quota_bytes = quota_bytes
        self._data: dict[str, str] = {}

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        if self._quota_bytes is not None:
            used = sum(
                len(v.encode("utf-8")) for k, v in list(self._data.items()) if k != key
            )
            needed = used + len(value.encode("utf-8"))
            if needed > self._quota_bytes:
                raise StorageQuotaError(
                    f"Quota exceeded writing '{key}': {needed} > {self._quota_bytes} bytes"
                )
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)
