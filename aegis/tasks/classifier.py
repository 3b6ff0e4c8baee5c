"""File type classification and result naming."""

import re

from aegis.tasks.models import FileType

_DOCUMENT_EXTENSION_RE = re.compile(r"\.(doc|docx|xls|xlsx|ppt|pptx|pdf|txt)$", re.IGNORECASE)

_DOCUMENT_MIME_TYPES = frozenset(
    {
        "application/pdf",
        "application/msword",
        "application/vnd.ms-excel",
        "application/vnd.ms-powerpoint",
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
        "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        "application/vnd.openxmlformats-officedocument.presentationml.presentation",
        "application/vnd.oasis.opendocument.text",
        "application/vnd.oasis.opendocument.spreadsheet",
        "application/vnd.oasis.opendocument.presentation",
        "text/plain",
    }
)

_MEDIA_PREFIXES: tuple[tuple[str, FileType], ...] = (
    ("image/", FileType.IMAGE),
    ("video/", FileType.VIDEO),
    ("audio/", FileType.AUDIO),
)

_RESULT_SUFFIXES: dict[FileType, str] = {
    FileType.DOCUMENT: "_safe.pdf",
    FileType.IMAGE: "_safe.pdf",
    FileType.VIDEO: "_safe.mp4",
    FileType.AUDIO: "_safe.mp3",
    FileType.UNKNOWN: "_report.txt",
}


def classify_file_type(filename: str, mime_type: str) -> FileType:
    """Derive the file type from the MIME type first, then the filename extension."""
    mime = (mime_type or "").lower().split(";")[0].strip()
    for prefix, file_type in _MEDIA_PREFIXES:
        if mime.startswith(prefix):
            return file_type
    if _DOCUMENT_EXTENSION_RE.search(filename) or mime in _DOCUMENT_MIME_TYPES:
        return FileType.DOCUMENT
    return FileType.UNKNOWN


def strip_extension(filename: str) -> str:
    """Drop the last extension; names without one (or only a dot prefix) stay whole."""
    stem, dot, _ext = filename.rpartition(".")
    return stem if dot and stem else filename


def result_filename(filename: str, file_type: FileType) -> str:
    return f"{strip_extension(filename)}{_RESULT_SUFFIXES[file_type]}"
