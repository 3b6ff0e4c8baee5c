import hashlib
import io
from pathlib import Path

from reportlab.lib.pagesizes import A4
from reportlab.lib.utils import ImageReader
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.pdfmetrics import stringWidth
from reportlab.pdfbase.ttfonts import TTFError, TTFont
from reportlab.pdfgen import canvas

from aegis.logging.logger import Log
from aegis.rendering.base import BLACK, BaseDocumentRenderer, Color, Font
from aegis.rendering.exceptions import RenderError

_FONT_NAMES: dict[Font, str] = {
    Font.REGULAR: "Helvetica",
    Font.BOLD: "Helvetica-Bold",
    Font.MONO: "Courier",
}

# Drawn in place of characters no configured font covers.
_MISSING_GLYPH = "?"

Run = tuple[str, str]


def register_unicode_font(path: Path) -> TTFont:
    """Register a TrueType font file with ReportLab once and return it.

    Raises:
        RenderError: if the file cannot be read as a TrueType font.
    """
    digest = hashlib.sha1(str(path.resolve()).encode("utf-8")).hexdigest()[:10]
    name = f"AegisUnicode-{digest}"
    if name not in pdfmetrics.getRegisteredFontNames():
        try:
            pdfmetrics.registerFont(TTFont(name, str(path)))
        except (TTFError, OSError) as exc:
            raise RenderError(f"reportlab could not load font {path}: {exc}") from exc
    font: TTFont = pdfmetrics.getFont(name)
    return font


class ReportLabRenderer(BaseDocumentRenderer):
    """Draws A4 PDF pages using the ReportLab canvas API.

    ReportLab measures y upwards from the bottom edge, so every y coordinate
    is flipped on the way in. The standard fonts only encode cp1252; other
    characters are drawn with ``unicode_font_path`` (a TrueType file) when it
    covers them, otherwise replaced and logged.
    """

    def __init__(self, unicode_font_path: Path | None = None) -> None:
        self._unicode_font = (
            register_unicode_font(unicode_font_path) if unicode_font_path else None
        )
        self._buffer = io.BytesIO()
        self._width, self._height = A4
        self._canvas = canvas.Canvas(self._buffer, pagesize=A4)
        self._pages = 0

    @property
    def page_width(self) -> float:
        return float(self._width)

    @property
    def page_height(self) -> float:
        return float(self._height)

    def new_page(self) -> None:
        if self._pages:
            self._canvas.showPage()
        self._pages += 1

    def text(
        self,
        x: float,
        y: float,
        text: str,
        *,
        font: Font = Font.REGULAR,
        size: float = 10,
        color: Color = BLACK,
        centered: bool = False,
    ) -> None:
        self._require_page()
        runs, missing = self._split_runs(text, font)
        if missing:
            Log.warning(f"No font covers {''.join(sorted(missing))!r}; drawn as '{_MISSING_GLYPH}'")
        if centered:
            x -= _runs_width(runs, size) / 2
        self._canvas.setFillColorRGB(*color)
        for font_name, run in runs:
            self._canvas.setFont(font_name, size)
            self._canvas.drawString(x, self._height - y, run)
            x += stringWidth(run, font_name, size)

    def rect(self, x: float, y: float, width: float, height: float, *, color: Color) -> None:
        self._require_page()
        self._canvas.setStrokeColorRGB(*color)
        self._canvas.rect(x, self._height - y - height, width, height, stroke=1, fill=0)

    def image(self, x: float, y: float, width: float, height: float, data: bytes) -> None:
        self._require_page()
        try:
            reader = ImageReader(io.BytesIO(data))
            self._canvas.drawImage(
                reader,
                x,
                self._height - y - height,
                width=width,
                height=height,
                preserveAspectRatio=True,
                anchor="n",
            )
        except Exception as exc:
            raise RenderError(f"reportlab could not embed image: {exc}") from exc

    def watermark(self, text: str, *, size: float, color: Color, angle: float) -> None:
        self._require_page()
        self._canvas.saveState()
        self._canvas.setFillColorRGB(*color)
        self._canvas.setFont(_FONT_NAMES[Font.BOLD], size)
        self._canvas.translate(self._width / 2, self._height / 2)
        self._canvas.rotate(angle)
        self._canvas.drawCentredString(0, -size / 3, text)
        self._canvas.restoreState()

    def text_width(self, text: str, *, font: Font, size: float) -> float:
        runs, _missing = self._split_runs(text, font)
        return _runs_width(runs, size)

    def render(self) -> bytes:
        self._canvas.save()
        return self._buffer.getvalue()

    def close(self) -> None:
        self._buffer.close()

    def _split_runs(self, text: str, font: Font) -> tuple[list[Run], set[str]]:
        """Group consecutive characters by the font that can draw them."""
        base = _FONT_NAMES[font]
        runs: list[Run] = []
        missing: set[str] = set()
        for char in text:
            font_name = base
            if not _in_standard_encoding(char):
                if self._covers(char):
                    font_name = self._unicode_font.fontName  # type: ignore[union-attr]
                else:
                    missing.add(char)
                    char = _MISSING_GLYPH
            if runs and runs[-1][0] == font_name:
                runs[-1] = (font_name, runs[-1][1] + char)
            else:
                runs.append((font_name, char))
        return runs, missing

    def _covers(self, char: str) -> bool:
        return self._unicode_font is not None and ord(char) in self._unicode_font.face.charToGlyph

    def _require_page(self) -> None:
        if not self._pages:
            raise RenderError("new_page() must be called before drawing")


def _in_standard_encoding(char: str) -> bool:
    try:
        char.encode("cp1252")
    except UnicodeEncodeError:
        return False
    return True


def _runs_width(runs: list[Run], size: float) -> float:
    return float(sum(stringWidth(run, font_name, size) for font_name, run in runs))
