import json
from typing import Any

from aegis.logging.logger import Log
from aegis.storage.base import BaseKeyValueStore
from aegis.storage.exceptions import StorageError
from aegis.tasks.models import TaskRecord

TASK_HISTORY_KEY = "aegis_file_history"


class PersistentTaskStore:
    """Bounded task history kept in the key-value substrate, newest first.

    Content snapshots above ``max_content_bytes`` never reach the medium; a
    failed write is retried once without the record's snapshot and then
    dropped. Callers never see a storage exception from ``save``.
    """

    def __init__(
        self,
        kv: BaseKeyValueStore,
        *,
        max_entries: int = 50,
        max_content_bytes: int = 500_000,
        key: str = TASK_HISTORY_KEY,
    ) -> None:
        self._kv = kv
        self._max_entries = max_entries
        self._max_content_bytes = max_content_bytes
        self._key = key

    def load(self) -> list[TaskRecord]:
        """Return persisted records newest-first; empty if nothing readable is stored."""
        try:
            raw = self._kv.get(self._key)
        except StorageError as exc:
            Log.error(f"Failed to read task history: {exc}")
            return []
        if not raw:
            return []
        try:
            payload = json.loads(raw)
        except json.JSONDecodeError as exc:
            Log.error(f"Task history is not valid JSON, ignoring it: {exc}")
            return []
        if not isinstance(payload, list):
            Log.error("Task history is not a list, ignoring it")
            return []
        return [record for item in payload if (record := self._parse(item)) is not None]

    def get(self, task_id: str) -> TaskRecord | None:
        for record in self.load():
            if record.id == task_id:
                return record
        return None

    def save(self, record: TaskRecord) -> None:
        """Upsert record by id and write back the newest ``max_entries`` records."""
        history = self.load()
        to_save = self._fit_content(record)
        index = next((i for i, r in enumerate(history) if r.id == record.id), None)
        if index is None:
            history.insert(0, to_save)
            index = 0
        else:
            history[index] = to_save

        try:
            self._write(history)
            return
        except StorageError as exc:
            Log.warning(
                f"Storage write failed for task {record.id}, retrying without content: {exc}"
            )

        history[index] = to_save.without_content()
        try:
            self._write(history)
        except StorageError as exc:
            Log.error(f"Critical storage failure, task {record.id} not persisted: {exc}")

    def clear(self) -> None:
        try:
            self._kv.remove(self._key)
        except StorageError as exc:
            Log.error(f"Failed to clear task history: {exc}")

    def _fit_content(self, record: TaskRecord) -> TaskRecord:
        content = record.original_content
        if content is not None and len(content) > self._max_content_bytes:
            Log.debug(
                f"Task {record.id}: content snapshot of {len(content)} bytes "
                f"not persisted (limit {self._max_content_bytes})"
            )
            return record.without_content()
        return record

    def _write(self, history: list[TaskRecord]) -> None:
        payload = [r.to_dict() for r in history[: self._max_entries]]
        self._kv.set(self._key, json.dumps(payload))

    @staticmethod
    def _parse(item: Any) -> TaskRecord | None:
        try:
            return TaskRecord.from_dict(item)
        except (KeyError, ValueError, TypeError) as exc:
            Log.warning(f"Skipping malformed task history entry: {exc}")
            return None
