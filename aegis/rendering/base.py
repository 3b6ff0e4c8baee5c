from abc import ABC, abstractmethod
from enum import Enum

Color = tuple[float, float, float]

BLACK: Color = (0.0, 0.0, 0.0)


class Font(str, Enum):
    REGULAR = "regular"
    BOLD = "bold"
    MONO = "mono"


class BaseDocumentRenderer(ABC):
    """Contract for single-use PDF drawing adapters.

    Coordinates are in points with the origin at the top-left corner of the
    page; ``y`` in ``text`` is the baseline. Colors are RGB in 0..1.
    """

    @property
    @abstractmethod
    def page_width(self) -> float:
        """Page width in points."""

    @property
    @abstractmethod
    def page_height(self) -> float:
        """Page height in points."""

    @abstractmethod
    def new_page(self) -> None:
        """Start a new page; all drawing goes to the most recent page."""

    @abstractmethod
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
        """Draw one line of text. With ``centered`` the line is centered on x."""

    @abstractmethod
    def rect(self, x: float, y: float, width: float, height: float, *, color: Color) -> None:
        """Draw a rectangle outline."""

    @abstractmethod
    def image(self, x: float, y: float, width: float, height: float, data: bytes) -> None:
        """Draw encoded image bytes scaled into the box, keeping aspect ratio.

        Raises:
            RenderError: if the image data cannot be decoded.
        """

    @abstractmethod
    def watermark(self, text: str, *, size: float, color: Color, angle: float) -> None:
        """Draw text rotated by angle degrees around the page center."""

    @abstractmethod
    def text_width(self, text: str, *, font: Font, size: float) -> float:
        """Width of text in points."""

    @abstractmethod
    def render(self) -> bytes:
        """Finish the document and return the PDF bytes."""

    @abstractmethod
    def close(self) -> None:
        """Release the underlying document. Safe to call more than once."""

    def __enter__(self) -> "BaseDocumentRenderer":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
