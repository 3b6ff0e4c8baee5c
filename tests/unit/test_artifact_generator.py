import io
import logging
from dataclasses import replace
from pathlib import Path
from unittest.mock import MagicMock

import pdfplumber
import pymupdf
import pytest

from aegis.artifacts.generator import (
    CONTENT_UNAVAILABLE_TEXT,
    DEFAULT_ARTIFACT_FILENAME,
    GENERATION_ERROR_TEXT,
    ArtifactGenerator,
    wrap_text,
)
from aegis.artifacts.models import PDF_CONTENT_TYPE, TEXT_CONTENT_TYPE
from aegis.rendering.pymupdf_renderer import PyMuPdfRenderer
from aegis.rendering.reportlab_renderer import ReportLabRenderer
from aegis.tasks.models import FileType, ProcessingStatus, TaskRecord


def _completed(
    filename: str,
    file_type: FileType,
    mime_type: str,
    content: bytes | None = None,
    **overrides: object,
) -> TaskRecord:
    record = TaskRecord(
        id="task-1",
        filename=filename,
        original_size_bytes=len(content or b""),
        file_type=file_type,
        mime_type=mime_type,
        status=ProcessingStatus.COMPLETED,
        progress=100,
        threat_analysis="No active content found.",
        pipeline_steps=("Metadata Stripping",),
        result_filename=f"{filename}_safe",
        original_content=content,
    )
    return replace(record, **overrides)


def _page_texts(pdf_bytes: bytes) -> list[str]:
    """Extracted text per page, whitespace removed."""
    with pdfplumber.open(io.BytesIO(pdf_bytes)) as pdf:
        return ["".join((page.extract_text() or "").split()) for page in pdf.pages]


def _squash(text: str) -> str:
    return "".join(text.split())


class TestPdfArtifacts:
    def test_image_without_content_shows_notice_on_second_page(self) -> None:
        task = _completed("photo.png", FileType.IMAGE, "image/png", content=None)

        artifact = ArtifactGenerator().generate(task)

        assert artifact.content_type == PDF_CONTENT_TYPE
        assert artifact.filename == "photo.png_safe"
        assert artifact.content.startswith(b"%PDF")
        pages = _page_texts(artifact.content)
        assert len(pages) == 2
        assert _squash("Threat Neutralization Report") in pages[0]
        assert _squash("Source: photo.png") in pages[0]
        assert _squash("No active content found.") in pages[0]
        assert _squash(CONTENT_UNAVAILABLE_TEXT) in pages[1]

    def test_report_page_uses_default_analysis_text(self) -> None:
        task = _completed("a.txt", FileType.DOCUMENT, "text/plain", b"x", threat_analysis=None)

        pages = _page_texts(ArtifactGenerator().generate(task).content)

        assert _squash("Standard preventative reconstruction performed.") in pages[0]
        assert _squash("Verdict: THREATS REMOVED") in pages[0]

    def test_plain_text_is_typeset(self) -> None:
        task = _completed(
            "notes.txt", FileType.DOCUMENT, "text/plain", b"first line\nsecond line"
        )

        pages = _page_texts(ArtifactGenerator().generate(task).content)

        assert "firstline" in pages[1]
        assert "secondline" in pages[1]

    def test_long_text_flows_onto_more_pages(self) -> None:
        body = "\n".join(f"line {i}" for i in range(200)).encode()
        task = _completed("long.txt", FileType.DOCUMENT, "text/plain", body)

        pages = _page_texts(ArtifactGenerator().generate(task).content)

        assert len(pages) >= 4
        assert "line199" in pages[-1]

    def test_undecodable_text_gets_notice(self) -> None:
        task = _completed("bad.txt", FileType.DOCUMENT, "text/plain", b"\xff\xfe\xfa")

        pages = _page_texts(ArtifactGenerator().generate(task).content)

        assert _squash("Content could not be decoded as text.") in pages[1]

    def test_binary_document_gets_placeholder(self, sample_pdf_bytes: bytes) -> None:
        task = _completed("report.pdf", FileType.DOCUMENT, "application/pdf", sample_pdf_bytes)

        pages = _page_texts(ArtifactGenerator().generate(task).content)

        assert _squash("Content Reconstruction View") in pages[1]
        assert "HelloPDFWorld" not in pages[1]

    def test_image_is_embedded(self, sample_png_bytes: bytes) -> None:
        task = _completed("pic.png", FileType.IMAGE, "image/png", sample_png_bytes)

        artifact = ArtifactGenerator().generate(task)

        with pdfplumber.open(io.BytesIO(artifact.content)) as pdf:
            assert len(pdf.pages) == 2
            assert len(pdf.pages[1].images) == 1

    def test_malformed_image_degrades_to_error_text(self) -> None:
        task = _completed("pic.png", FileType.IMAGE, "image/png", b"not an image")

        artifact = ArtifactGenerator().generate(task)

        assert artifact.content == GENERATION_ERROR_TEXT.encode()
        assert artifact.content_type == TEXT_CONTENT_TYPE
        assert artifact.filename == "pic.png_safe"

    def test_reportlab_renderer(self) -> None:
        task = _completed("photo.png", FileType.IMAGE, "image/png", content=None)

        artifact = ArtifactGenerator(ReportLabRenderer).generate(task)

        pages = _page_texts(artifact.content)
        assert len(pages) == 2
        assert _squash("Threat Neutralization Report") in pages[0]
        assert _squash(CONTENT_UNAVAILABLE_TEXT) in pages[1]

    def test_renderer_failure_degrades_to_error_text(self) -> None:
        def broken_renderer() -> ReportLabRenderer:
            raise RuntimeError("no renderer")

        task = _completed("a.txt", FileType.DOCUMENT, "text/plain", b"x")

        artifact = ArtifactGenerator(broken_renderer).generate(task)

        assert artifact.content == GENERATION_ERROR_TEXT.encode()

    def test_renderer_is_closed_when_drawing_fails(self) -> None:
        renderers: list[PyMuPdfRenderer] = []

        def tracked_renderer() -> PyMuPdfRenderer:
            renderer = PyMuPdfRenderer()
            renderer.close = MagicMock(wraps=renderer.close)  # type: ignore[method-assign]
            renderers.append(renderer)
            return renderer

        malformed = _completed("pic.png", FileType.IMAGE, "image/png", b"not an image")
        notes = _completed("notes.txt", FileType.DOCUMENT, "text/plain", b"hello")

        generator = ArtifactGenerator(tracked_renderer)
        assert generator.generate(malformed).content == GENERATION_ERROR_TEXT.encode()
        assert generator.generate(notes).content.startswith(b"%PDF")

        assert len(renderers) == 2
        for renderer in renderers:
            renderer.close.assert_called_once()  # type: ignore[attr-defined]


class TestUnicodeText:
    def test_non_latin_filename_analysis_and_body_survive(self) -> None:
        task = _completed(
            "отчёт.txt",
            FileType.DOCUMENT,
            "text/plain",
            "Привет, мир\n你好 héllo".encode(),
            threat_analysis="Анализ завершён 分析",
        )

        artifact = ArtifactGenerator().generate(task)

        with pymupdf.open(stream=artifact.content, filetype="pdf") as doc:
            pages = [_squash(page.get_text()) for page in doc]
        assert "Source:отчёт.txt" in pages[0]
        assert "Анализзавершён分析" in pages[0]
        assert "Привет,мир" in pages[1]
        assert "你好héllo" in pages[1]

    def test_reportlab_draws_with_configured_unicode_font(self, vera_font_path: Path) -> None:
        task = _completed(
            "pi.txt", FileType.DOCUMENT, "text/plain", "π ≈ 3.14".encode(), threat_analysis="Ω ok"
        )

        def renderer() -> ReportLabRenderer:
            return ReportLabRenderer(unicode_font_path=vera_font_path)

        pages = _page_texts(ArtifactGenerator(renderer).generate(task).content)

        assert "Ωok" in pages[0]
        assert "π≈3.14" in pages[1]

    def test_reportlab_without_unicode_font_logs_lost_characters(
        self, caplog: pytest.LogCaptureFixture
    ) -> None:
        task = _completed("pi.txt", FileType.DOCUMENT, "text/plain", "π = 3.14".encode())

        with caplog.at_level(logging.WARNING, logger="aegis"):
            pages = _page_texts(ArtifactGenerator(ReportLabRenderer).generate(task).content)

        assert "?=3.14" in pages[1]
        assert any("π" in record.getMessage() for record in caplog.records)


class TestTextArtifacts:
    @pytest.mark.parametrize(
        ("filename", "file_type", "mime_type"),
        [
            ("clip.mp4", FileType.VIDEO, "video/mp4"),
            ("song.mp3", FileType.AUDIO, "audio/mpeg"),
        ],
    )
    def test_media_wrapper(self, filename: str, file_type: FileType, mime_type: str) -> None:
        task = _completed(filename, file_type, mime_type)

        artifact = ArtifactGenerator().generate(task)

        assert artifact.content_type == TEXT_CONTENT_TYPE
        text = artifact.content.decode()
        assert text.startswith("AEGIS CDR - SAFE MEDIA WRAPPER")
        assert f"File: {filename}" in text
        assert "Status: Cleaned" in text

    def test_unknown_type_gets_failure_report(self) -> None:
        task = _completed(
            "blob.xyz",
            FileType.UNKNOWN,
            "application/octet-stream",
            status=ProcessingStatus.FAILED,
            progress=0,
            result_filename=None,
            pipeline_steps=("Binary Analysis",),
            error_message="No reconstruction path for blob.xyz",
        )

        artifact = ArtifactGenerator().generate(task)

        assert artifact.filename == DEFAULT_ARTIFACT_FILENAME
        text = artifact.content.decode()
        assert "Status: FAILED" in text
        assert "Completed stages: Binary Analysis" in text
        assert "Reason: No reconstruction path for blob.xyz" in text


class TestWrapText:
    def test_wraps_on_words(self) -> None:
        assert wrap_text("aaa bbb ccc", len, 7) == ["aaa bbb", "ccc"]

    def test_splits_overlong_words(self) -> None:
        assert wrap_text("abcdefgh", len, 3) == ["abc", "def", "gh"]

    def test_keeps_blank_lines(self) -> None:
        assert wrap_text("a\n\nb", len, 10) == ["a", "", "b"]
