import json
import uuid
from collections.abc import Callable
from datetime import datetime

from aegis.audit.models import LogEntry, LogLevel, LogModule
from aegis.logging.logger import Log
from aegis.storage.base import BaseKeyValueStore
from aegis.storage.exceptions import StorageError

AUDIT_LOG_KEY = "aegis_audit_logs"

Listener = Callable[[], None]


class AuditLogStore:
    """Append-only, capped, newest-first audit log with change notification.

    Listeners registered through ``subscribe`` are called after every
    mutation. Delivery is best effort: a failing listener is logged and the
    remaining listeners still run.
    """

    def __init__(
        self,
        kv: BaseKeyValueStore,
        *,
        cap: int = 2000,
        key: str = AUDIT_LOG_KEY,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._kv = kv
        self._cap = cap
        self._key = key
        self._clock = clock
        self._listeners: list[Listener] = []

    def append(self, module: LogModule, level: LogLevel, message: str) -> LogEntry:
        entry = LogEntry(
            id=uuid.uuid4().hex[:12],
            timestamp=self._clock().strftime("%Y-%m-%d %H:%M:%S"),
            module=module,
            level=level,
            message=message,
        )
        self._mirror(entry)
        entries = [entry, *self._read()][: self._cap]
        try:
            self._kv.set(self._key, json.dumps([e.to_dict() for e in entries]))
        except StorageError as exc:
            Log.error(f"Failed to persist audit entry {entry.id}: {exc}")
        self._notify()
        return entry

    def query(self, search: str | None = None) -> list[LogEntry]:
        """Entries newest-first, optionally only those whose message or module
        contains ``search`` (case-insensitive)."""
        entries = self._read()
        if not search:
            return entries
        needle = search.lower()
        return [
            e
            for e in entries
            if needle in e.message.lower() or needle in e.module.value.lower()
        ]

    def clear(self) -> None:
        try:
            self._kv.remove(self._key)
        except StorageError as exc:
            Log.error(f"Failed to clear audit log: {exc}")
        self._notify()

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a change listener; returns a callable that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _read(self) -> list[LogEntry]:
        try:
            raw = self._kv.get(self._key)
        except StorageError as exc:
            Log.error(f"Failed to read audit log: {exc}")
            return []
        if not raw:
            return []
        try:
            payload = json.loads(raw)
            return [LogEntry.from_dict(item) for item in payload]
        except (json.JSONDecodeError, KeyError, ValueError, TypeError) as exc:
            Log.error(f"Audit log is unreadable, ignoring it: {exc}")
            return []

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener()
            except Exception as exc:
                Log.warning(f"Audit log listener {listener!r} failed: {exc}")

    @staticmethod
    def _mirror(entry: LogEntry) -> None:
        line = f"[{entry.module.value}] {entry.message}"
        if entry.level is LogLevel.ERROR:
            Log.error(line)
        elif entry.level in (LogLevel.WARN, LogLevel.SECURITY):
            Log.warning(line)
        else:
            Log.info(line)
