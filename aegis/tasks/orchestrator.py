import asyncio
import base64
import threading
from collections.abc import Sequence
from dataclasses import dataclass, replace
from typing import Any

from aegis.analysis.base import BaseThreatAnalyzer
from aegis.analysis.factory import AnalyzerFactory
from aegis.audit.audit_log import AuditLogStore
from aegis.audit.models import LogLevel, LogModule
from aegis.config.settings import Settings
from aegis.logging.logger import Log
from aegis.pipeline.stages import Sleep, build_stage_plan, stage_progress
from aegis.storage.base import BaseKeyValueStore
from aegis.tasks.classifier import classify_file_type, result_filename
from aegis.tasks.exceptions import TaskNotFoundError
from aegis.tasks.models import (
    DEFAULT_MIME_TYPE,
    FileDescriptor,
    ProcessingStatus,
    TaskRecord,
    new_task_id,
)
from aegis.tasks.task_store import PersistentTaskStore

SKIPPED_ANALYSIS_TEXT = "Analysis skipped for large media file."


@dataclass(frozen=True)
class StageTimings:
    """Simulated durations, in seconds, of the pipeline's waiting points."""

    upload_seconds: float = 0.8
    analysis_skip_seconds: float = 1.0
    sanitize_total_seconds: float = 3.0


class TaskOrchestrator:
    """Creates tasks for submitted files and drives each one to a terminal state.

    Pipeline: PENDING -> UPLOADING -> ANALYZING -> SANITIZING -> COMPLETED,
    with FAILED reachable from any non-terminal state. Every transition is
    persisted and written to the audit log. Tasks advance concurrently on the
    running event loop and never affect each other.

    With ``persist_in_thread`` the task store read-modify-write cycles run in
    a worker thread so a networked substrate does not stall sibling tasks.
    A lock keeps those cycles serialized either way. Audit appends stay on
    the loop.
    """

    def __init__(
        self,
        task_store: PersistentTaskStore,
        audit_log: AuditLogStore,
        analyzer: BaseThreatAnalyzer,
        *,
        timings: StageTimings | None = None,
        analysis_size_limit_bytes: int = 4_000_000,
        sleep: Sleep = asyncio.sleep,
        persist_in_thread: bool = False,
    ) -> None:
        self._task_store = task_store
        self._audit_log = audit_log
        self._analyzer = analyzer
        self._timings = timings or StageTimings()
        self._analysis_size_limit_bytes = analysis_size_limit_bytes
        self._sleep = sleep
        self._persist_in_thread = persist_in_thread
        self._store_lock = threading.Lock()
        self._records: dict[str, TaskRecord] = {}
        self._running: set[asyncio.Task[TaskRecord]] = set()

    def submit(self, files: Sequence[FileDescriptor]) -> list[TaskRecord]:
        """Create one PENDING task per file and schedule its advancement.

        Must be called with an event loop running.
        """
        loop = asyncio.get_running_loop()
        self._audit_log.append(
            LogModule.API,
            LogLevel.INFO,
            f"POST /api/v1/clean/async - Batch upload started: {len(files)} files",
        )
        records = [self._create_record(f) for f in files]
        for record in records:
            self._records[record.id] = record
            with self._store_lock:
                self._task_store.save(record)
            job = loop.create_task(self.advance(record), name=f"aegis-task-{record.id}")
            self._running.add(job)
            job.add_done_callback(self._running.discard)
        return records

    async def advance(self, task: TaskRecord) -> TaskRecord:
        """Run one task through the full pipeline. Never raises; returns the terminal record."""
        self._records.setdefault(task.id, task)
        self._audit_log.append(
            LogModule.ENGINE,
            LogLevel.INFO,
            f'Task {task.id}: Initializing CDR pipeline for "{task.filename}" '
            f"({task.file_type.value})",
        )
        try:
            await self._run_pipeline(task.id)
        except Exception as exc:
            await self._fail(task.id, exc)
        return self._records[task.id]

    async def wait_all(self) -> None:
        """Wait until every scheduled task has reached a terminal state."""
        while self._running:
            await asyncio.gather(*list(self._running))

    def get(self, task_id: str) -> TaskRecord:
        """Latest record for task_id, preferring the in-session copy.

        Raises:
            TaskNotFoundError: if the task is neither running nor persisted.
        """
        record = self._records.get(task_id) or self._task_store.get(task_id)
        if record is None:
            raise TaskNotFoundError(f"Task {task_id} not found")
        return record

    def history(self) -> list[TaskRecord]:
        return self._task_store.load()

    def clear_history(self) -> None:
        with self._store_lock:
            self._task_store.clear()
        self._records = {
            task_id: record
            for task_id, record in self._records.items()
            if not record.status.is_terminal
        }
        self._audit_log.append(
            LogModule.SYSTEM, LogLevel.WARN, "User cleared local file processing history"
        )

    async def _run_pipeline(self, task_id: str) -> None:
        await self._update(task_id, status=ProcessingStatus.UPLOADING, progress=10)
        await self._sleep(self._timings.upload_seconds)

        record = await self._update(task_id, status=ProcessingStatus.ANALYZING, progress=30)
        analysis = await self._analyze(record)
        record = await self._update(
            task_id,
            status=ProcessingStatus.SANITIZING,
            progress=50,
            threat_analysis=analysis,
        )

        stages = build_stage_plan(
            record.file_type, self._timings.sanitize_total_seconds, self._sleep
        )
        self._audit_log.append(
            LogModule.ENGINE,
            LogLevel.INFO,
            f"Task {task_id}: Starting reconstruction sequence: "
            f"{', '.join(stage.label for stage in stages)}",
        )
        for index, stage in enumerate(stages, start=1):
            await stage.run(self._records[task_id])
            record = await self._update(
                task_id,
                pipeline_steps=(*record.pipeline_steps, stage.label),
                progress=stage_progress(index, len(stages)),
            )

        output = result_filename(record.filename, record.file_type)
        self._audit_log.append(
            LogModule.ENGINE,
            LogLevel.INFO,
            f'Task {task_id}: File reconstruction successful. Generated "{output}"',
        )
        await self._update(
            task_id,
            status=ProcessingStatus.COMPLETED,
            progress=100,
            result_filename=output,
        )

    async def _analyze(self, record: TaskRecord) -> str:
        content = record.original_content
        if (
            record.file_type.keeps_content
            and content is not None
            and record.original_size_bytes < self._analysis_size_limit_bytes
        ):
            return await self._analyzer.analyze(
                record.filename,
                base64.b64encode(content).decode("ascii"),
                record.mime_type,
            )
        await self._sleep(self._timings.analysis_skip_seconds)
        return SKIPPED_ANALYSIS_TEXT

    async def _fail(self, task_id: str, exc: Exception) -> None:
        self._audit_log.append(
            LogModule.ENGINE,
            LogLevel.ERROR,
            f"Task {task_id}: Sanitization failed - {exc}",
        )
        if self._records[task_id].status.is_terminal:
            Log.error(f"Task {task_id} failed after reaching a terminal state: {exc}")
            return
        await self._update(
            task_id,
            status=ProcessingStatus.FAILED,
            progress=0,
            error_message=str(exc),
        )

    async def _update(self, task_id: str, **changes: Any) -> TaskRecord:
        """Apply changes in memory, then merge them into the latest persisted snapshot."""
        updated = self._records[task_id].evolve(**changes)
        self._records[task_id] = updated
        if self._persist_in_thread:
            await asyncio.to_thread(self._persist, updated, changes)
        else:
            self._persist(updated, changes)
        Log.debug(f"Task {task_id}: {updated.status.value} {updated.progress}%")
        return updated

    def _persist(self, updated: TaskRecord, changes: dict[str, Any]) -> None:
        with self._store_lock:
            persisted = self._task_store.get(updated.id)
            self._task_store.save(replace(persisted, **changes) if persisted else updated)

    @staticmethod
    def _create_record(descriptor: FileDescriptor) -> TaskRecord:
        file_type = classify_file_type(descriptor.filename, descriptor.mime_type)
        return TaskRecord(
            id=new_task_id(),
            filename=descriptor.filename,
            original_size_bytes=descriptor.size,
            file_type=file_type,
            mime_type=descriptor.mime_type or DEFAULT_MIME_TYPE,
            original_content=descriptor.content if file_type.keeps_content else None,
        )


def build_orchestrator(
    settings: Settings,
    kv: BaseKeyValueStore,
    audit_log: AuditLogStore,
) -> TaskOrchestrator:
    """Build a TaskOrchestrator with its store and analyzer from settings."""
    task_store = PersistentTaskStore(
        kv,
        max_entries=settings.task_history_limit,
        max_content_bytes=settings.content_persist_limit_bytes,
    )
    timings = StageTimings(
        upload_seconds=settings.upload_delay_seconds,
        analysis_skip_seconds=settings.analysis_skip_delay_seconds,
        sanitize_total_seconds=settings.sanitize_total_seconds,
    )
    return TaskOrchestrator(
        task_store=task_store,
        audit_log=audit_log,
        analyzer=AnalyzerFactory.create(settings),
        timings=timings,
        analysis_size_limit_bytes=settings.analysis_size_limit_bytes,
        persist_in_thread=settings.storage_backend.lower() == "postgres",
    )
