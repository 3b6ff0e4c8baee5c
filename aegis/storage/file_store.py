import errno
import os
from pathlib import Path

from aegis.storage.base import BaseKeyValueStore
from aegis.storage.exceptions import StorageError, StorageQuotaError


def value_file_path(root: Path, key: str) -> Path:
    """Build path to a value file: {root}/{key}.json"""
    return root / f"{key}.json"


class FileKeyValueStore(BaseKeyValueStore):
    """Stores each key as a JSON text file inside one directory.

    The quota covers the total size of all value files in the directory.
    """

    def __init__(self, root: Path, quota_bytes: int | None = None) -> None:
        self._root = root
        self._quota_bytes = quota_bytes

    def get(self, key: str) -> str | None:
        path = value_file_path(self._root, key)
        if not path.exists():
            return None
        try:
            return path.read_text(encoding="utf-8")
        except OSError as exc:
            raise StorageError(f"Failed to read '{key}': {exc}") from exc

    def set(self, key: str, value: str) -> None:
        data = value.encode("utf-8")
        self._check_quota(key, len(data))
        path = value_file_path(self._root, key)
        tmp_path = path.with_suffix(".tmp")
        try:
            self._root.mkdir(parents=True, exist_ok=True)
            tmp_path.write_bytes(data)
            os.replace(tmp_path, path)
        except OSError as exc:
            tmp_path.unlink(missing_ok=True)
            if exc.errno in (errno.ENOSPC, errno.EDQUOT):
                raise StorageQuotaError(f"No space left writing '{key}': {exc}") from exc
            raise StorageError(f"Failed to write '{key}': {exc}") from exc

    def remove(self, key: str) -> None:
        try:
            value_file_path(self._root, key).unlink(missing_ok=True)
        except OSError as exc:
            raise StorageError(f"Failed to remove '{key}': {exc}") from exc

    def _check_quota(self, key: str, size: int) -> None:
        if self._quota_bytes is None:
            return
        target = value_file_path(self._root, key)
        used = 0
        if self._root.exists():
            used = sum(
                p.stat().st_size
                for p in self._root.glob("*.json")
                if p != target
            )
        if used + size > self._quota_bytes:
            raise StorageQuotaError(
                f"Quota exceeded writing '{key}': {used + size} > {self._quota_bytes} bytes"
            )
