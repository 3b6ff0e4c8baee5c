import functools
from collections.abc import Callable

from aegis.config.settings import Settings
from aegis.rendering.base import BaseDocumentRenderer
from aegis.rendering.pymupdf_renderer import PyMuPdfRenderer
from aegis.rendering.reportlab_renderer import ReportLabRenderer


class RendererFactory:
    """Resolves the PDF renderer configured in settings.

    Renderers are single-use, so the factory hands out a constructor and the
    caller builds one instance per document.
    """

    RENDERERS: dict[str, type[BaseDocumentRenderer]] = {
        "pymupdf": PyMuPdfRenderer,
        "reportlab": ReportLabRenderer,
    }

    @classmethod
    def create(cls, settings: Settings) -> Callable[[], BaseDocumentRenderer]:
        engine = settings.pdf_engine.lower()
        renderer_cls = cls.RENDERERS.get(engine)
        if renderer_cls is None:
            raise ValueError(
                f"Unknown PDF engine '{engine}'. Choose from: {list(cls.RENDERERS)}"
            )
        if renderer_cls is ReportLabRenderer:
            return functools.partial(
                ReportLabRenderer, unicode_font_path=settings.pdf_unicode_font_path
            )
        return renderer_cls
