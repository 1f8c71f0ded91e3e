"""Overlay tools: watermark, text, signature, and redaction."""

from __future__ import annotations

import logging
from io import BytesIO
from typing import Callable, Dict, List, Sequence, Tuple

import fitz
from fpdf import FPDF
from PIL import Image
from pypdf import PageObject, PdfReader, Transformation

from .config import Settings, load_settings, resolve_unicode_font_path
from .document import Document, fitz_document
from .errors import PageRangeError, ParseError, SerializationError
from .styles import OverlayStyle, PlacementSpec, RedactionArea, TextItem

logger = logging.getLogger(__name__)

UNICODE_FONT_FAMILY = "DejaVuSans"


def _build_overlay_page(
    width_points: float,
    height_points: float,
    draw_fn: Callable[[FPDF, float, float], None],
) -> PageObject:
    """
    Create a single-page PDF overlay sized to the given page dimensions and rendered by the provided draw callback.

    The overlay uses point units with the origin at the top-left corner, as fpdf2 does.

    Parameters:
        width_points (float): Page width in PDF points.
        height_points (float): Page height in PDF points.
        draw_fn (Callable[[FPDF, float, float], None]): Callback that draws onto an FPDF instance; called with the FPDF object and the page width and height in points.

    Returns:
        PageObject: The generated overlay page.
    """
    pdf = FPDF(orientation="P", unit="pt", format=(width_points, height_points))
    pdf.set_margins(0, 0, 0)
    pdf.set_auto_page_break(auto=False)
    pdf.add_page()
    draw_fn(pdf, width_points, height_points)
    overlay_reader = PdfReader(BytesIO(bytes(pdf.output())))
    return overlay_reader.pages[0]


def _merge_overlay(document: Document, number: int, overlay: PageObject) -> None:
    """Stamp an overlay on top of a page, aligned with its media box origin."""
    left, bottom = document.page_origin(number)
    page = document.page(number)
    page.merge_transformed_page(overlay, Transformation().translate(left, bottom))


def _set_overlay_font(pdf: FPDF, text: str, style: OverlayStyle, settings: Settings) -> None:
    """
    Select the requested standard font, or a Unicode font when the text needs one.

    Raises:
        ParseError: If the text needs a Unicode font and none is available.
    """
    try:
        text.encode("latin-1")
    except UnicodeEncodeError as error:
        font_path = resolve_unicode_font_path(settings)
        if font_path is None:
            raise ParseError(
                "Text contains characters outside Latin-1. Set PDFTOOLS_TTF_PATH to a DejaVuSans.ttf path."
            ) from error
        if UNICODE_FONT_FAMILY.lower() not in pdf.fonts:
            pdf.add_font(UNICODE_FONT_FAMILY, fname=str(font_path))
        pdf.set_font(UNICODE_FONT_FAMILY, size=style.font_size)
        return
    pdf.set_font(style.font.family, style=style.font.style, size=style.font_size)


def _draw_text(
    pdf: FPDF,
    text: str,
    style: OverlayStyle,
    settings: Settings,
    anchor: Tuple[float, float],
    start: Tuple[float, float] | None = None,
) -> None:
    """Draw text whose baseline starts at ``start``, rotated about ``anchor`` (top-left coordinates)."""
    _set_overlay_font(pdf, text, style, settings)
    pdf.set_text_color(*style.color)
    start_x, baseline = start or anchor
    with pdf.local_context(fill_opacity=style.opacity):
        if style.rotation:
            with pdf.rotation(style.rotation, x=anchor[0], y=anchor[1]):
                pdf.text(start_x, baseline, text)
        else:
            pdf.text(start_x, baseline, text)


def default_watermark_style(settings: Settings | None = None) -> OverlayStyle:
    """Return the light-gray bold style used when a caller supplies no watermark style."""
    settings = settings or load_settings()
    return OverlayStyle(
        font="HELVETICA_BOLD",
        font_size=settings.watermark_font_size,
        color=(192, 192, 192),
        rotation=settings.watermark_rotation,
        opacity=settings.watermark_opacity,
    )


def add_watermark(
    document: Document,
    text: str,
    style: OverlayStyle | None = None,
    position: Tuple[float, float] | None = None,
    settings: Settings | None = None,
) -> Document:
    """
    Stamp the same text on every page of a document.

    Parameters:
        document (Document): Document to modify in place.
        text (str): Watermark text.
        style (OverlayStyle | None): Font, color, rotation (degrees counter-clockwise), and opacity.
            Defaults to a translucent diagonal gray label.
        position (tuple[float, float] | None): Document-space baseline start point. When None
            the text is centred on each page using that page's own size.
        settings (Settings | None): Overrides for the environment settings.

    Returns:
        Document: The same document, watermarked.
    """
    if not text or not text.strip():
        raise ParseError("Watermark text is required")
    settings = settings or load_settings()
    style = style or default_watermark_style(settings)
    for number in range(1, document.page_count + 1):
        document.normalize_rotation(number)
        width, height = document.page_size(number)

        def _draw(pdf: FPDF, width_pt: float, height_pt: float) -> None:
            _set_overlay_font(pdf, text, style, settings)
            if position is None:
                anchor = (width_pt / 2, height_pt / 2)
                text_width = pdf.get_string_width(text)
                # Baseline sits a third of the font size below centre so the glyphs look centred.
                start = (anchor[0] - text_width / 2, anchor[1] + style.font_size / 3)
            else:
                anchor = (position[0], height_pt - position[1])
                start = anchor
            _draw_text(pdf, text, style, settings, anchor, start)

        _merge_overlay(document, number, _build_overlay_page(width, height, _draw))
    logger.info("Watermarked %d page(s)", document.page_count)
    return document


def add_text(
    document: Document,
    items: Sequence[TextItem],
    settings: Settings | None = None,
) -> Document:
    """
    Place text runs on their target pages.

    Items are applied in list order. Items that share a page are drawn into one
    overlay in that order, so later items appear on top of earlier ones. Each
    item's (x, y) is the document-space start of its baseline.
    """
    if not items:
        raise ParseError("At least one text item is required")
    settings = settings or load_settings()
    by_page: Dict[int, List[TextItem]] = {}
    for item in items:
        if not item.text or not item.text.strip():
            raise ParseError("Text to add is required")
        document.page(item.placement.page)
        by_page.setdefault(item.placement.page, []).append(item)

    for number, page_items in by_page.items():
        document.normalize_rotation(number)
        width, height = document.page_size(number)

        def _draw(pdf: FPDF, width_pt: float, height_pt: float, page_items=page_items) -> None:
            for item in page_items:
                anchor = (item.placement.x, height_pt - item.placement.y)
                _draw_text(pdf, item.text, item.style, settings, anchor)

        _merge_overlay(document, number, _build_overlay_page(width, height, _draw))
    logger.info("Added %d text item(s) on %d page(s)", len(items), len(by_page))
    return document


def _open_image(data: bytes) -> Image.Image:
    """Decode a raster image, raising ParseError for anything Pillow cannot read."""
    if not data:
        raise ParseError("Signature image is empty")
    try:
        picture = Image.open(BytesIO(data))
        picture.load()
    except (OSError, SyntaxError, ValueError, Image.DecompressionBombError) as error:
        raise ParseError("Signature image is not a supported raster image") from error
    if picture.mode not in ("RGB", "RGBA", "L", "LA"):
        picture = picture.convert("RGBA")
    return picture


def _signature_extent(
    pixel_size: Tuple[int, int],
    display_width: float | None,
    display_height: float | None,
    scale: float,
) -> Tuple[float, float]:
    """
    Resolve the on-page size of a signature image.

    With no size the pixel dimensions are scaled by ``scale``. With one size the other
    follows the image's aspect ratio. With both, the caller's size wins.
    """
    pixel_width, pixel_height = pixel_size
    for value, name in ((display_width, "width"), (display_height, "height")):
        if value is not None and value <= 0:
            raise ParseError(f"Signature {name} must be positive")
    if display_width is not None and display_height is not None:
        return float(display_width), float(display_height)
    if display_width is not None:
        return float(display_width), float(display_width) * pixel_height / pixel_width
    if display_height is not None:
        return float(display_height) * pixel_width / pixel_height, float(display_height)
    return pixel_width * scale, pixel_height * scale


def signature_size(
    image: bytes,
    display_width: float | None = None,
    display_height: float | None = None,
    settings: Settings | None = None,
) -> Tuple[float, float]:
    """Return the on-page (width, height) in points a signature image would be drawn at."""
    settings = settings or load_settings()
    picture = _open_image(image)
    return _signature_extent(picture.size, display_width, display_height, settings.signature_scale)


def add_signature(
    document: Document,
    image: bytes,
    placement: PlacementSpec,
    display_width: float | None = None,
    display_height: float | None = None,
    settings: Settings | None = None,
) -> Document:
    """
    Place a raster image with its lower-left corner at the placement point.

    Parameters:
        document (Document): Document to modify in place.
        image (bytes): PNG, JPEG, or any other raster format Pillow can decode.
        placement (PlacementSpec): Target page and document-space lower-left anchor.
        display_width (float | None): On-page width in points.
        display_height (float | None): On-page height in points.
        settings (Settings | None): Overrides for the environment settings.

    Returns:
        Document: The same document, signed.
    """
    settings = settings or load_settings()
    picture = _open_image(image)
    document.page(placement.page)
    width_pt, height_pt = _signature_extent(
        picture.size, display_width, display_height, settings.signature_scale
    )
    document.normalize_rotation(placement.page)
    width, height = document.page_size(placement.page)

    def _draw(pdf: FPDF, width_pt_page: float, height_pt_page: float) -> None:
        top = height_pt_page - placement.y - height_pt
        pdf.image(picture, x=placement.x, y=top, w=width_pt, h=height_pt)

    _merge_overlay(document, placement.page, _build_overlay_page(width, height, _draw))
    logger.info(
        "Placed %.1fx%.1f pt signature on page %d", width_pt, height_pt, placement.page
    )
    return document


def _area_rect(area: RedactionArea, page: fitz.Page, origin: Tuple[float, float]) -> fitz.Rect:
    """
    Convert a document-space area into a PyMuPDF rectangle clipped to the visible page.

    Document space is measured from the media box's lower-left corner, the same
    origin overlays are stamped at. The page's transformation matrix then maps
    PDF space into PyMuPDF's top-left space, which is relative to the crop box.
    """
    left, bottom = origin
    pdf_rect = fitz.Rect(
        left + area.x,
        bottom + area.y,
        left + area.x + area.width,
        bottom + area.y + area.height,
    )
    rect = pdf_rect * page.transformation_matrix
    page_rect = page.rect
    clipped = rect & page_rect
    if clipped.is_empty:
        raise PageRangeError(
            (area.x, area.y, area.width, area.height),
            (page_rect.width, page_rect.height),
            f"Redaction area at ({area.x}, {area.y}) size {area.width}x{area.height} lies outside "
            f"page {area.page} (page size {page_rect.width:.0f}x{page_rect.height:.0f})",
        )
    return clipped


def _verify_cleared(page: fitz.Page, rects: Sequence[fitz.Rect], number: int) -> None:
    """Fail if any word still sits entirely inside a redacted rectangle."""
    for word in page.get_text("words"):
        word_rect = fitz.Rect(word[:4])
        for rect in rects:
            if rect.contains(word_rect):
                logger.error(
                    "Text survived redaction on page %d inside %s: %r", number, rect, word[4]
                )
                raise SerializationError(f"Redaction left text behind on page {number}")


def redact_areas(
    document: Document,
    areas: Sequence[RedactionArea],
    settings: Settings | None = None,
) -> Document:
    """
    Permanently remove content inside rectangles and cover them with black boxes.

    Text, image pixels, and vector graphics intersecting an area are removed from
    the page's content stream, not just painted over. Areas may share pages and
    are order-insensitive; an area partly off the page is clipped to it.

    Raises:
        PageRangeError: If an area targets a missing page or lies entirely off its page.
        SerializationError: If text remains inside an area after redaction.
    """
    if not areas:
        raise ParseError("At least one redaction area is required")
    settings = settings or load_settings()
    by_page: Dict[int, List[RedactionArea]] = {}
    for area in areas:
        document.page(area.page)
        by_page.setdefault(area.page, []).append(area)
    for number in by_page:
        document.normalize_rotation(number)

    with fitz_document(document) as pdf:
        page_rects: Dict[int, List[fitz.Rect]] = {}
        for number, page_areas in by_page.items():
            page = pdf.load_page(number - 1)
            origin = document.page_origin(number)
            page_rects[number] = [_area_rect(area, page, origin) for area in page_areas]
        for number, rects in page_rects.items():
            page = pdf.load_page(number - 1)
            for rect in rects:
                page.add_redact_annot(rect, fill=(0, 0, 0))
            page.apply_redactions(
                images=fitz.PDF_REDACT_IMAGE_PIXELS,
                graphics=fitz.PDF_REDACT_LINE_ART_REMOVE_IF_TOUCHED,
            )
            if settings.verify_redactions:
                _verify_cleared(page, rects, number)
        data = pdf.tobytes(garbage=3, deflate=True)
    document.reload(data)
    logger.info("Redacted %d area(s) on %d page(s)", len(areas), len(by_page))
    return document
