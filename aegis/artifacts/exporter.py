from aegis.artifacts.exceptions import ArtifactNotReadyError
from aegis.artifacts.generator import ArtifactGenerator
from aegis.artifacts.models import Artifact
from aegis.audit.audit_log import AuditLogStore
from aegis.audit.models import LogLevel, LogModule
from aegis.tasks.models import TaskRecord


class ArtifactExporter:
    """Download surface: audits the request and hands back the artifact."""

    def __init__(self, generator: ArtifactGenerator, audit_log: AuditLogStore) -> None:
        self._generator = generator
        self._audit_log = audit_log

    def export(self, task: TaskRecord) -> Artifact:
        """Produce the artifact for a terminal task.

        Raises:
            ArtifactNotReadyError: if the task has not reached COMPLETED or FAILED.
        """
        if not task.status.is_terminal:
            raise ArtifactNotReadyError(
                f"Task {task.id} is {task.status.value}; artifacts exist only for finished tasks"
            )
        artifact = self._generator.generate(task)
        self._audit_log.append(
            LogModule.API,
            LogLevel.INFO,
            f"File download initiated for Task {task.id}: {artifact.filename}",
        )
        if task.file_type.keeps_content and task.original_content is None:
            self._audit_log.append(
                LogModule.API,
                LogLevel.WARN,
                f"Task {task.id}: Original content missing from storage. "
                "Generating metadata report only.",
            )
        return artifact
