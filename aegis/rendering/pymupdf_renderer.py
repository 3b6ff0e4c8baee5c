import functools

import pymupdf

from aegis.logging.logger import Log
from aegis.rendering.base import BLACK, BaseDocumentRenderer, Color, Font
from aegis.rendering.exceptions import RenderError

_FONT_NAMES: dict[Font, str] = {
    Font.REGULAR: "helv",
    Font.BOLD: "hebo",
    Font.MONO: "cour",
}


@functools.cache
def _load_font(font: Font) -> pymupdf.Font:
    return pymupdf.Font(_FONT_NAMES[font])


class PyMuPdfRenderer(BaseDocumentRenderer):
    """Draws A4 PDF pages using PyMuPDF.

    Text goes through ``TextWriter``, so characters the base font lacks are
    taken from MuPDF's built-in Noto and CJK fallback fonts and embedded.
    """

    def __init__(self) -> None:
        self._doc = pymupdf.open()
        self._page: pymupdf.Page | None = None
        self._width, self._height = pymupdf.paper_size("a4")

    @property
    def page_width(self) -> float:
        return float(self._width)

    @property
    def page_height(self) -> float:
        return float(self._height)

    def new_page(self) -> None:
        self._page = self._doc.new_page(width=self._width, height=self._height)

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
        page = self._current_page()
        face = _load_font(font)
        _warn_uncovered(text, face)
        if centered:
            x -= face.text_length(text, fontsize=size) / 2
        writer = pymupdf.TextWriter(page.rect)
        writer.append((x, y), text, font=face, fontsize=size)
        writer.write_text(page, color=color)

    def rect(self, x: float, y: float, width: float, height: float, *, color: Color) -> None:
        self._current_page().draw_rect(
            pymupdf.Rect(x, y, x + width, y + height), color=color, width=0.8
        )

    def image(self, x: float, y: float, width: float, height: float, data: bytes) -> None:
        try:
            self._current_page().insert_image(
                pymupdf.Rect(x, y, x + width, y + height),
                stream=data,
                keep_proportion=True,
            )
        except Exception as exc:
            raise RenderError(f"pymupdf could not embed image: {exc}") from exc

    def watermark(self, text: str, *, size: float, color: Color, angle: float) -> None:
        page = self._current_page()
        face = _load_font(Font.BOLD)
        center = pymupdf.Point(self._width / 2, self._height / 2)
        half_width = face.text_length(text, fontsize=size) / 2
        writer = pymupdf.TextWriter(page.rect)
        writer.append((center.x - half_width, center.y + size / 3), text, font=face, fontsize=size)
        writer.write_text(
            page,
            color=color,
            morph=(center, pymupdf.Matrix(1, 1).prerotate(-angle)),
        )

    def text_width(self, text: str, *, font: Font, size: float) -> float:
        return float(_load_font(font).text_length(text, fontsize=size))

    def render(self) -> bytes:
        return self._doc.tobytes(garbage=3, deflate=True)

    def close(self) -> None:
        if not self._doc.is_closed:
            self._doc.close()

    def _current_page(self) -> pymupdf.Page:
        if self._page is None:
            raise RenderError("new_page() must be called before drawing")
        return self._page


def _warn_uncovered(text: str, face: pymupdf.Font) -> None:
    missing = {c for c in text if not c.isspace() and not face.has_glyph(ord(c), fallback=1)}
    if missing:
        Log.warning(f"No font covers {''.join(sorted(missing))!r}; drawn as blanks")
