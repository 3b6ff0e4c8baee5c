import io
from pathlib import Path

import pymupdf
import pytest
import reportlab
from reportlab.lib.pagesizes import letter
from reportlab.pdfgen import canvas

from aegis.audit.audit_log import AuditLogStore
from aegis.storage.memory_store import InMemoryKeyValueStore
from aegis.tasks.task_store import PersistentTaskStore


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture()
def kv() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore()


@pytest.fixture()
def task_store(kv: InMemoryKeyValueStore) -> PersistentTaskStore:
    return PersistentTaskStore(kv)


@pytest.fixture()
def audit_log(kv: InMemoryKeyValueStore) -> AuditLogStore:
    return AuditLogStore(kv)


@pytest.fixture()
def sample_pdf_bytes() -> bytes:
    """Generate a minimal single-page PDF with known text content."""
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=letter)
    c.drawString(72, 720, "Hello PDF World")
    c.save()
    return buf.getvalue()


@pytest.fixture()
def sample_png_bytes() -> bytes:
    """A small solid-color PNG image."""
    pix = pymupdf.Pixmap(pymupdf.csRGB, pymupdf.IRect(0, 0, 8, 8), False)
    pix.clear_with(180)
    return pix.tobytes("png")


@pytest.fixture()
def vera_font_path() -> Path:
    """TrueType font shipped with ReportLab; covers Latin-1 and Mac Roman."""
    return Path(reportlab.__file__).parent / "fonts" / "Vera.ttf"
