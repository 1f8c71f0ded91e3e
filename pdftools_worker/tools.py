"""Byte-buffer entry points for every PDF tool.

Each function parses its own input bytes into fresh documents, runs one
operation and serializes the result, so calls share no mutable state.
"""

from __future__ import annotations

import json
from typing import Any, Dict, List, Mapping, Sequence

from .config import Settings, load_settings
from .conversion import ConversionResult, convert_to_docx, convert_to_markdown
from .coordinates import scale_extent, to_document_space
from .document import Document, document_info, load_document, write_document
from .errors import ParseError
from .overlays import (
    add_signature,
    add_text,
    add_watermark,
    default_watermark_style,
    redact_areas,
    signature_size,
)
from .page_ops import extract_pages, merge_documents, remove_pages, split_document
from .page_ranges import parse_page_groups, parse_page_spec, validate_pages
from .styles import (
    OverlayStyle,
    PlacementSpec,
    RedactionArea,
    TextItem,
    parse_number,
    parse_page_number,
)

PageSelection = str | Sequence[int]

DEFAULT_TEXT_X = 50.0
DEFAULT_TEXT_Y = 750.0
DEFAULT_TEXT_SIZE = 12.0
DEFAULT_SIGNATURE_X = 400.0
DEFAULT_SIGNATURE_Y = 100.0


def _optional_number(value: Any, name: str) -> float | None:
    if value is None or value == "":
        return None
    return parse_number(value, name)


def _resolve_selection(pages: PageSelection | None, total_pages: int) -> List[int]:
    """Accept a page spec string such as "1,3,5-7" or an explicit list of page numbers."""
    if pages is None:
        raise ParseError("Page selection is required")
    if isinstance(pages, str):
        return parse_page_spec(pages, total_pages)
    return validate_pages(pages, total_pages)


def _display_height(document: Document, page: int) -> float:
    """Height of the page as a viewer shows it, after /Rotate is applied."""
    width, height = document.page_size(page)
    return width if document.rotation(page) in (90, 270) else height


def merge_pdfs(inputs: Sequence[bytes], min_inputs: int | None = None) -> bytes:
    """
    Merge several PDFs into one.

    Parameters:
        inputs (Sequence[bytes]): PDF files, merged in the given order.
        min_inputs (int | None): Minimum number of files; defaults to the configured value.

    Returns:
        bytes: The merged PDF.
    """
    documents = [load_document(data) for data in inputs]
    return write_document(merge_documents(documents, min_inputs=min_inputs))


def split_pdf(
    data: bytes,
    groups: str | Sequence[Sequence[int]] | None = None,
) -> List[bytes]:
    """Split a PDF into one file per page, or one file per group such as "1,2,3;4,5"."""
    document = load_document(data)
    if isinstance(groups, str):
        if not groups.strip():
            groups = None
        else:
            groups = parse_page_groups(groups, document.page_count)
    return [write_document(part) for part in split_document(document, groups)]


def extract_pdf_pages(data: bytes, pages: PageSelection) -> bytes:
    """Keep only the selected pages, in selection order."""
    document = load_document(data)
    selection = _resolve_selection(pages, document.page_count)
    return write_document(extract_pages(document, selection))


def remove_pdf_pages(data: bytes, pages: PageSelection) -> bytes:
    """Drop the selected pages, keeping the rest in their original order."""
    document = load_document(data)
    selection = _resolve_selection(pages, document.page_count)
    return write_document(remove_pages(document, selection))


def watermark_pdf(
    data: bytes,
    text: str,
    x: Any = None,
    y: Any = None,
    rotation: Any = None,
    opacity: Any = None,
    font_size: Any = None,
    font_name: str | None = None,
    font_color: str | None = None,
    settings: Settings | None = None,
) -> bytes:
    """
    Stamp text on every page.

    Parameters:
        data (bytes): Source PDF.
        text (str): Watermark text.
        x, y: Document-space baseline start; both omitted centres the text on each page.
        rotation: Degrees counter-clockwise about the placement point (default 45).
        opacity: 0 (invisible) to 1 (opaque) (default 0.3).
        font_size: Points (default 60).
        font_name (str | None): One of the standard fonts (default Helvetica-Bold).
        font_color (str | None): Hex color (default light gray).
        settings (Settings | None): Overrides for the environment settings.

    Returns:
        bytes: The watermarked PDF.
    """
    settings = settings or load_settings()
    defaults = default_watermark_style(settings)
    x_value = _optional_number(x, "x")
    y_value = _optional_number(y, "y")
    if (x_value is None) != (y_value is None):
        raise ParseError("Watermark position needs both x and y")
    position = None if x_value is None else (x_value, y_value)
    rotation_value = _optional_number(rotation, "rotation")
    opacity_value = _optional_number(opacity, "opacity")
    size_value = _optional_number(font_size, "fontSize")
    style = OverlayStyle(
        font=font_name or defaults.font,
        font_size=defaults.font_size if size_value is None else size_value,
        color=font_color or defaults.color,
        rotation=defaults.rotation if rotation_value is None else rotation_value,
        opacity=defaults.opacity if opacity_value is None else opacity_value,
    )
    document = load_document(data)
    add_watermark(document, str(text or ""), style=style, position=position, settings=settings)
    return write_document(document)


def _text_item(item: Mapping[str, Any], document: Document, display_scale: float | None) -> TextItem:
    if not isinstance(item, Mapping):
        raise ParseError("Each text item must be an object")
    page = parse_page_number(item.get("page", 1))
    x = parse_number(item.get("x", DEFAULT_TEXT_X), "x")
    y = parse_number(item.get("y", DEFAULT_TEXT_Y), "y")
    style = OverlayStyle(
        font=item.get("fontName") or "HELVETICA",
        font_size=parse_number(item.get("fontSize", DEFAULT_TEXT_SIZE), "fontSize"),
        color=item.get("fontColor") or "#000000",
    )
    if display_scale is not None:
        document.page(page)
        # On screen y is the top of the text box; the baseline sits one font size lower.
        x, y = to_document_space(
            x, y, display_scale, _display_height(document, page), style.font_size * display_scale
        )
    return TextItem(str(item.get("text") or ""), PlacementSpec(page, x, y), style)


def add_text_pdf(
    data: bytes,
    items: Sequence[Mapping[str, Any]],
    display_scale: Any = None,
    settings: Settings | None = None,
) -> bytes:
    """
    Place text runs described as ``{text, x, y, page, fontSize, fontName, fontColor}``.

    Coordinates are document-space baseline points unless ``display_scale`` is
    given, in which case they are viewer pixels locating the top-left corner of
    the text box, measured from the page's top-left corner.
    """
    if isinstance(items, Mapping):
        items = [items]
    document = load_document(data)
    scale = _optional_number(display_scale, "displayScale")
    text_items = [_text_item(item, document, scale) for item in items or []]
    add_text(document, text_items, settings=settings)
    return write_document(document)


def add_signature_pdf(
    data: bytes,
    image: bytes,
    x: Any = DEFAULT_SIGNATURE_X,
    y: Any = DEFAULT_SIGNATURE_Y,
    page: Any = 1,
    width: Any = None,
    height: Any = None,
    display_scale: Any = None,
    settings: Settings | None = None,
) -> bytes:
    """
    Place a signature image with its lower-left corner at (x, y) on one page.

    With ``display_scale`` the position and size are viewer pixels and (x, y)
    is the image's top-left corner on screen.
    """
    settings = settings or load_settings()
    page_number = parse_page_number(page)
    x_value = parse_number(x, "x")
    y_value = parse_number(y, "y")
    width_value = _optional_number(width, "width")
    height_value = _optional_number(height, "height")
    scale = _optional_number(display_scale, "displayScale")
    document = load_document(data)
    if scale is not None:
        document.page(page_number)
        if width_value is not None or height_value is not None:
            extent = scale_extent(width_value or 0.0, height_value or 0.0, scale)
            width_value = extent.width if width_value is not None else None
            height_value = extent.height if height_value is not None else None
        _, height_pt = signature_size(image, width_value, height_value, settings)
        x_value, y_value = to_document_space(
            x_value, y_value, scale, _display_height(document, page_number), height_pt * scale
        )
    add_signature(
        document,
        image,
        PlacementSpec(page_number, x_value, y_value),
        display_width=width_value,
        display_height=height_value,
        settings=settings,
    )
    return write_document(document)


def _redaction_area(
    area: Mapping[str, Any], document: Document, display_scale: float | None
) -> RedactionArea:
    if not isinstance(area, Mapping):
        raise ParseError("Each redaction area must be an object")
    page = parse_page_number(area.get("page", 1))
    x = parse_number(area.get("x"), "x")
    y = parse_number(area.get("y"), "y")
    width = parse_number(area.get("width"), "width")
    height = parse_number(area.get("height"), "height")
    if display_scale is not None:
        document.page(page)
        x, y = to_document_space(x, y, display_scale, _display_height(document, page), height)
        width, height = scale_extent(width, height, display_scale)
    return RedactionArea(page, x, y, width, height)


def redact_pdf(
    data: bytes,
    x: Any,
    y: Any,
    width: Any,
    height: Any,
    page: Any = 1,
    display_scale: Any = None,
    settings: Settings | None = None,
) -> bytes:
    """Redact one rectangle whose lower-left corner is (x, y)."""
    area = {"x": x, "y": y, "width": width, "height": height, "page": page}
    return redact_pdf_multiple(data, [area], display_scale=display_scale, settings=settings)


def redact_pdf_multiple(
    data: bytes,
    areas: str | Sequence[Mapping[str, Any]],
    display_scale: Any = None,
    settings: Settings | None = None,
) -> bytes:
    """
    Redact several rectangles given as a list or a JSON array of ``{x, y, width, height, page}``.

    Raises:
        ParseError: If the JSON is malformed or an area is missing a field.
    """
    if isinstance(areas, (str, bytes)):
        try:
            areas = json.loads(areas)
        except json.JSONDecodeError as error:
            raise ParseError(f"Invalid redaction areas JSON: {error.msg}") from error
    if isinstance(areas, Mapping):
        areas = [areas]
    if not isinstance(areas, Sequence):
        raise ParseError("Redaction areas must be a list")
    document = load_document(data)
    scale = _optional_number(display_scale, "displayScale")
    resolved = [_redaction_area(area, document, scale) for area in areas]
    redact_areas(document, resolved, settings=settings)
    return write_document(document)


def pdf_to_markdown(data: bytes) -> ConversionResult:
    """Convert a PDF's text into UTF-8 Markdown."""
    return convert_to_markdown(load_document(data))


def pdf_to_docx(data: bytes) -> ConversionResult:
    """Convert a PDF's text into a Word document."""
    return convert_to_docx(load_document(data))


def pdf_info(data: bytes) -> Dict[str, Any]:
    """Report page count, page sizes, and metadata."""
    return document_info(load_document(data))
