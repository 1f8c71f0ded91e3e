from io import BytesIO
from typing import Callable, List, Sequence, Tuple

import pytest
from fpdf import FPDF
from PIL import Image
from pypdf import PdfReader, PdfWriter

LETTER = (612, 792)

# (x, baseline from top, text, size, style)
TextRun = Tuple[float, float, str, float, str]


def _blank_pdf(
    pages: int = 1,
    width: float = 300,
    height: float = 300,
    rotation: int = 0,
) -> bytes:
    """Create a blank PDF with the given number of pages."""
    writer = PdfWriter()
    for _ in range(pages):
        page = writer.add_blank_page(width=width, height=height)
        if rotation:
            page.rotate(rotation)
    buffer = BytesIO()
    writer.write(buffer)
    return buffer.getvalue()


def _text_pdf(pages: Sequence[Sequence[TextRun]], size: Tuple[float, float] = LETTER) -> bytes:
    """Create a PDF with real text runs; an empty run list produces a page without text."""
    pdf = FPDF(orientation="P", unit="pt", format=size)
    pdf.set_auto_page_break(auto=False)
    for runs in pages:
        pdf.add_page()
        for x, baseline, text, font_size, style in runs:
            pdf.set_font("helvetica", style=style, size=font_size)
            pdf.text(x, baseline, text)
    return bytes(pdf.output())


def _numbered_pdf(pages: int) -> bytes:
    """Create a PDF whose page N carries the text "Page N"."""
    return _text_pdf([[(72, 100, f"Page {number}", 12, "")] for number in range(1, pages + 1)])


def _png(width: int = 100, height: int = 50, color=(20, 40, 200)) -> bytes:
    buffer = BytesIO()
    Image.new("RGB", (width, height), color).save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def make_pdf() -> Callable[..., bytes]:
    return _blank_pdf


@pytest.fixture
def make_text_pdf() -> Callable[..., bytes]:
    return _text_pdf


@pytest.fixture
def numbered_pdf() -> Callable[[int], bytes]:
    return _numbered_pdf


@pytest.fixture
def make_png() -> Callable[..., bytes]:
    return _png


@pytest.fixture
def image_only_pdf() -> bytes:
    """A one-page PDF holding only a raster image, like a scanned page."""
    pdf = FPDF(orientation="P", unit="pt", format=LETTER)
    pdf.add_page()
    pdf.image(Image.new("RGB", (60, 60), (0, 0, 0)), x=100, y=100, w=200, h=200)
    return bytes(pdf.output())


def _page_texts(data: bytes) -> List[str]:
    """Extract text per page with pypdf."""
    reader = PdfReader(BytesIO(data))
    return [page.extract_text() or "" for page in reader.pages]


@pytest.fixture
def read_texts() -> Callable[[bytes], List[str]]:
    return _page_texts
