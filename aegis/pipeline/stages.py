import asyncio
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable

from aegis.pipeline.exceptions import ReconstructionUnavailableError
from aegis.tasks.models import FileType, TaskRecord

Sleep = Callable[[float], Awaitable[None]]


class SanitizationStage(ABC):
    """One named transformation inside the SANITIZING state."""

    def __init__(self, label: str) -> None:
        self.label = label

    @abstractmethod
    async def run(self, task: TaskRecord) -> None:
        """Perform the stage's work for task.

        Raises:
            PipelineError: if the stage cannot be completed.
        """

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.label!r})"


class SimulatedStage(SanitizationStage):
    """Stands in for a real work unit by waiting a fixed duration."""

    def __init__(self, label: str, duration_seconds: float, sleep: Sleep = asyncio.sleep) -> None:
        super().__init__(label)
        self._duration_seconds = duration_seconds
        self._sleep = sleep

    async def run(self, task: TaskRecord) -> None:
        await self._sleep(self._duration_seconds)


class RejectingStage(SanitizationStage):
    """Terminates the pipeline for files that cannot be rebuilt safely."""

    async def run(self, task: TaskRecord) -> None:
        raise ReconstructionUnavailableError(
            f"No reconstruction path for {task.file_type.value} file '{task.filename}'"
        )


STAGE_LABELS: dict[FileType, tuple[str, ...]] = {
    FileType.DOCUMENT: (
        "Parsing Structure",
        "Stripping Macros",
        "Flattening OLE Objects",
        "Rebuilding as PDF",
    ),
    FileType.IMAGE: (
        "Stripping EXIF",
        "Normalizing Colorspace",
        "Re-encoding to PNG",
    ),
    FileType.VIDEO: (
        "Decoding H264 -> YUV",
        "Compressing Frame Rate",
        "Injecting White Noise",
        "Re-encoding to H264/MP4",
    ),
    FileType.AUDIO: (
        "Decoding Stream",
        "Injecting White Noise",
        "Re-encoding to MP3",
    ),
    FileType.UNKNOWN: ("Binary Analysis",),
}

REJECTED_STAGE_LABEL = "Sanitization Failed"


def build_stage_plan(
    file_type: FileType,
    total_seconds: float,
    sleep: Sleep = asyncio.sleep,
) -> list[SanitizationStage]:
    """Ordered stages for a file type; simulated stages share total_seconds equally."""
    labels = STAGE_LABELS[file_type]
    stages: list[SanitizationStage] = []
    if file_type is FileType.UNKNOWN:
        step_seconds = total_seconds / (len(labels) + 1)
        stages.extend(SimulatedStage(label, step_seconds, sleep) for label in labels)
        stages.append(RejectingStage(REJECTED_STAGE_LABEL))
        return stages
    step_seconds = total_seconds / len(labels)
    stages.extend(SimulatedStage(label, step_seconds, sleep) for label in labels)
    return stages


def stage_progress(completed: int, total: int) -> int:
    """Progress after ``completed`` of ``total`` stages: linear from 50 to 90."""
    return 50 + (40 * completed) // total
