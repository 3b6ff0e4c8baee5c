from dataclasses import dataclass
from pathlib import Path

PDF_CONTENT_TYPE = "application/pdf"
TEXT_CONTENT_TYPE = "text/plain"


@dataclass(frozen=True)
class Artifact:
    """Downloadable output of a finished task."""

    content: bytes
    filename: str
    content_type: str

    def write_to(self, directory: Path) -> Path:
        """Write content into directory under the suggested filename."""
        directory.mkdir(parents=True, exist_ok=True)
        path = directory / Path(self.filename).name
        path.write_bytes(self.content)
        return path
