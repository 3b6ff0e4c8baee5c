import base64
import mimetypes
import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any

from aegis.tasks.exceptions import InvalidTransitionError

DEFAULT_MIME_TYPE = "text/plain"


class FileType(str, Enum):
    DOCUMENT = "DOCUMENT"
    IMAGE = "IMAGE"
    VIDEO = "VIDEO"
    AUDIO = "AUDIO"
    UNKNOWN = "UNKNOWN"

    @property
    def keeps_content(self) -> bool:
        """Only documents and images carry a content snapshot for reconstruction."""
        return self in (FileType.DOCUMENT, FileType.IMAGE)


class ProcessingStatus(str, Enum):
    PENDING = "PENDING"
    UPLOADING = "UPLOADING"
    ANALYZING = "ANALYZING"
    SANITIZING = "SANITIZING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"

    @property
    def is_terminal(self) -> bool:
        return self in (ProcessingStatus.COMPLETED, ProcessingStatus.FAILED)

    def can_transition_to(self, target: "ProcessingStatus") -> bool:
        """Only the next pipeline state, or FAILED from any non-terminal state."""
        if self.is_terminal:
            return False
        if target is ProcessingStatus.FAILED:
            return True
        order = list(ProcessingStatus)
        return order.index(target) == order.index(self) + 1


@dataclass(frozen=True)
class FileDescriptor:
    """A file handed to the orchestrator for sanitization."""

    filename: str
    content: bytes
    mime_type: str = ""
    size_bytes: int | None = None

    @property
    def size(self) -> int:
        return self.size_bytes if self.size_bytes is not None else len(self.content)

    @classmethod
    def from_path(cls, path: Path) -> "FileDescriptor":
        """Read a file from disk, guessing its MIME type from the extension."""
        mime_type, _ = mimetypes.guess_type(path.name)
        content = path.read_bytes()
        return cls(
            filename=path.name,
            content=content,
            mime_type=mime_type or "",
            size_bytes=len(content),
        )


def new_task_id() -> str:
    return uuid.uuid4().hex


@dataclass(frozen=True)
class TaskRecord:
    """One submitted file's progress through the sanitization pipeline.

    Records are immutable; ``evolve`` returns an updated copy after checking
    that the status change respects pipeline ordering.
    """

    id: str
    filename: str
    original_size_bytes: int
    file_type: FileType
    mime_type: str
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    status: ProcessingStatus = ProcessingStatus.PENDING
    progress: int = 0
    threat_analysis: str | None = None
    pipeline_steps: tuple[str, ...] = ()
    result_filename: str | None = None
    original_content: bytes | None = None
    error_message: str | None = None

    def evolve(self, **changes: Any) -> "TaskRecord":
        """Return a copy with changes applied.

        Raises:
            InvalidTransitionError: if the status or progress change is not allowed.
        """
        if self.status.is_terminal:
            raise InvalidTransitionError(f"Task {self.id}: {self.status.value} is terminal")
        target = changes.get("status", self.status)
        if target is not self.status and not self.status.can_transition_to(target):
            raise InvalidTransitionError(
                f"Task {self.id}: cannot move from {self.status.value} to {target.value}"
            )
        progress = changes.get("progress", self.progress)
        if target is not ProcessingStatus.FAILED and progress < self.progress:
            raise InvalidTransitionError(
                f"Task {self.id}: progress cannot decrease ({self.progress} -> {progress})"
            )
        if not 0 <= progress <= 100:
            raise InvalidTransitionError(f"Task {self.id}: progress {progress} out of range")
        return replace(self, **changes)

    def without_content(self) -> "TaskRecord":
        return replace(self, original_content=None)

    def to_dict(self) -> dict[str, Any]:
        """JSON-ready representation; content is base64-encoded."""
        return {
            "id": self.id,
            "filename": self.filename,
            "original_size_bytes": self.original_size_bytes,
            "file_type": self.file_type.value,
            "mime_type": self.mime_type,
            "created_at": self.created_at.isoformat(),
            "status": self.status.value,
            "progress": self.progress,
            "threat_analysis": self.threat_analysis,
            "pipeline_steps": list(self.pipeline_steps),
            "result_filename": self.result_filename,
            "original_content": (
                base64.b64encode(self.original_content).decode("ascii")
                if self.original_content is not None
                else None
            ),
            "error_message": self.error_message,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TaskRecord":
        """Rebuild a record from its JSON representation.

        Raises:
            KeyError, ValueError, TypeError: if the payload is malformed.
        """
        content = data.get("original_content")
        return cls(
            id=str(data["id"]),
            filename=str(data["filename"]),
            original_size_bytes=int(data["original_size_bytes"]),
            file_type=FileType(data["file_type"]),
            mime_type=str(data.get("mime_type") or DEFAULT_MIME_TYPE),
            created_at=datetime.fromisoformat(data["created_at"]),
            status=ProcessingStatus(data["status"]),
            progress=int(data["progress"]),
            threat_analysis=data.get("threat_analysis"),
            pipeline_steps=tuple(data.get("pipeline_steps") or ()),
            result_filename=data.get("result_filename"),
            original_content=(
                base64.b64decode(content, validate=True) if content is not None else None
            ),
            error_message=data.get("error_message"),
        )
