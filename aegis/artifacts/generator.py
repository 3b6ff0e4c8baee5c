"""Synthesizes the reconstructed output file for a finished task.

Documents and images become a two-part PDF: a threat report page followed by
watermarked content pages. Audio and video get a plain text wrapper. Any
rendering failure degrades to a short text artifact.
"""

from collections.abc import Callable

from aegis.artifacts.models import PDF_CONTENT_TYPE, TEXT_CONTENT_TYPE, Artifact
from aegis.logging.logger import Log
from aegis.rendering.base import BaseDocumentRenderer, Color, Font
from aegis.rendering.pymupdf_renderer import PyMuPdfRenderer
from aegis.tasks.models import FileType, TaskRecord

DEFAULT_ARTIFACT_FILENAME = "safe_file"
DEFAULT_ANALYSIS_TEXT = "Standard preventative reconstruction performed."
VERDICT_TEXT = "Verdict: THREATS REMOVED / CONTENT RECONSTRUCTED"
CONTENT_UNAVAILABLE_TEXT = "[Original content data not available in this session]"
UNDECODABLE_TEXT = "Content could not be decoded as text."
GENERATION_ERROR_TEXT = "Error generating Safe PDF."
WATERMARK_TEXT = "SANITIZED"

MARGIN = 56.0
LINE_HEIGHT = 14.0
MONO_LINE_HEIGHT = 12.0

_INDIGO: Color = (79 / 255, 70 / 255, 229 / 255)
_SLATE: Color = (71 / 255, 85 / 255, 105 / 255)
_DARK_SLATE: Color = (30 / 255, 41 / 255, 59 / 255)
_GREY_TEXT: Color = (70 / 255, 70 / 255, 70 / 255)
_GREEN: Color = (22 / 255, 101 / 255, 52 / 255)
_LIGHT_GREY: Color = (150 / 255, 150 / 255, 150 / 255)
_FRAME_GREY: Color = (200 / 255, 200 / 255, 200 / 255)
_WATERMARK_GREY: Color = (240 / 255, 240 / 255, 240 / 255)
_BLACK: Color = (0.0, 0.0, 0.0)


def wrap_text(
    text: str,
    measure: Callable[[str], float],
    max_width: float,
) -> list[str]:
    """Greedy word wrap; words wider than max_width are split by character."""
    lines: list[str] = []
    for paragraph in text.replace("\r\n", "\n").split("\n"):
        current = ""
        for word in paragraph.split(" "):
            candidate = f"{current} {word}" if current else word
            if measure(candidate) <= max_width:
                current = candidate
                continue
            if current:
                lines.append(current)
            current = ""
            for char in word:
                if current and measure(current + char) > max_width:
                    lines.append(current)
                    current = ""
                current += char
        lines.append(current)
    return lines


class ArtifactGenerator:
    """Builds artifact bytes from a TaskRecord. ``generate`` never raises."""

    def __init__(
        self,
        renderer_factory: Callable[[], BaseDocumentRenderer] = PyMuPdfRenderer,
    ) -> None:
        self._renderer_factory = renderer_factory

    def generate(self, task: TaskRecord) -> Artifact:
        filename = task.result_filename or DEFAULT_ARTIFACT_FILENAME
        try:
            if task.file_type is FileType.DOCUMENT or task.file_type is FileType.IMAGE:
                return Artifact(self._render_pdf(task), filename, PDF_CONTENT_TYPE)
            if task.file_type is FileType.VIDEO or task.file_type is FileType.AUDIO:
                return Artifact(self._media_wrapper(task), filename, TEXT_CONTENT_TYPE)
            return Artifact(self._failure_report(task), filename, TEXT_CONTENT_TYPE)
        except Exception as exc:
            Log.error(f"Artifact generation failed for task {task.id}: {exc}")
            return Artifact(GENERATION_ERROR_TEXT.encode("utf-8"), filename, TEXT_CONTENT_TYPE)

    def _render_pdf(self, task: TaskRecord) -> bytes:
        with self._renderer_factory() as renderer:
            self._draw_report_page(renderer, task)
            self._draw_content_pages(renderer, task)
            return renderer.render()

    def _draw_report_page(self, r: BaseDocumentRenderer, task: TaskRecord) -> None:
        r.new_page()
        r.text(MARGIN, 71, "AEGIS CDR - Reconstructed File", font=Font.BOLD, size=22, color=_INDIGO)
        r.text(MARGIN + 14, 113, f"Source: {task.filename}", color=_SLATE)
        r.text(MARGIN + 14, 130, f"Sanitization ID: {task.id}", color=_SLATE)
        r.text(MARGIN, 170, "Threat Neutralization Report", size=14, color=_DARK_SLATE)

        analysis = task.threat_analysis or DEFAULT_ANALYSIS_TEXT
        lines = wrap_text(
            analysis,
            lambda s: r.text_width(s, font=Font.REGULAR, size=10),
            r.page_width - 2 * MARGIN,
        )
        y = 198.0
        for line in lines:
            r.text(MARGIN, y, line, color=_GREY_TEXT)
            y += LINE_HEIGHT
        r.text(MARGIN, y + LINE_HEIGHT / 2, VERDICT_TEXT, color=_GREEN)

    def _draw_content_pages(self, r: BaseDocumentRenderer, task: TaskRecord) -> None:
        self._new_content_page(r)
        content = task.original_content
        if content is None:
            r.text(MARGIN, MARGIN, CONTENT_UNAVAILABLE_TEXT, size=12, color=_LIGHT_GREY)
        elif task.file_type is FileType.IMAGE:
            r.image(MARGIN, MARGIN, r.page_width - 2 * MARGIN, r.page_height - 2 * MARGIN, content)
        elif self._is_plain_text(task):
            self._typeset_text(r, content)
        else:
            self._draw_placeholder(r)

    def _typeset_text(self, r: BaseDocumentRenderer, content: bytes) -> None:
        try:
            text = content.decode("utf-8")
        except UnicodeDecodeError:
            r.text(MARGIN, MARGIN, UNDECODABLE_TEXT, font=Font.MONO, size=10, color=_BLACK)
            return

        lines = wrap_text(
            text.expandtabs(4),
            lambda s: r.text_width(s, font=Font.MONO, size=10),
            r.page_width - 2 * MARGIN,
        )
        y = MARGIN
        for line in lines:
            if y > r.page_height - MARGIN:
                self._new_content_page(r)
                y = MARGIN
            r.text(MARGIN, y, line, font=Font.MONO, size=10, color=_BLACK)
            y += MONO_LINE_HEIGHT

    def _draw_placeholder(self, r: BaseDocumentRenderer) -> None:
        center_x = r.page_width / 2
        r.text(MARGIN, 85, "Content Reconstruction View", font=Font.BOLD, size=16, color=_BLACK)
        r.text(MARGIN, 128, "The original document structure has been flattened.", size=12)
        r.text(
            MARGIN, 148, "This PDF guarantees safety by removing all executable scripts.", size=12
        )
        r.rect(MARGIN, 170, r.page_width - 2 * MARGIN, 283, color=_FRAME_GREY)
        r.text(center_x, 312, "[ Safe Content Placeholder ]", size=12, centered=True)
        r.text(
            center_x,
            340,
            "Rasterizing the visual pages of the source PDF/DOCX requires a native",
            centered=True,
        )
        r.text(
            center_x,
            354,
            "rendering engine, which is not part of this deployment.",
            centered=True,
        )

    @staticmethod
    def _new_content_page(r: BaseDocumentRenderer) -> None:
        r.new_page()
        r.watermark(WATERMARK_TEXT, size=60, color=_WATERMARK_GREY, angle=45)

    @staticmethod
    def _is_plain_text(task: TaskRecord) -> bool:
        return task.mime_type == "text/plain" or task.filename.lower().endswith(".txt")

    @staticmethod
    def _media_wrapper(task: TaskRecord) -> bytes:
        report = (
            "AEGIS CDR - SAFE MEDIA WRAPPER\n"
            f"File: {task.filename}\n"
            "Status: Cleaned\n"
            "\n"
            "(Media content wrapper structure)"
        )
        return report.encode("utf-8")

    @staticmethod
    def _failure_report(task: TaskRecord) -> bytes:
        steps = ", ".join(task.pipeline_steps) or "none"
        report = (
            "AEGIS CDR - SANITIZATION REPORT\n"
            f"File: {task.filename}\n"
            f"Status: {task.status.value}\n"
            f"Completed stages: {steps}\n"
        )
        if task.error_message:
            report += f"Reason: {task.error_message}\n"
        return report.encode("utf-8")
