"""Conversions between viewer pixels and PDF page space.

Visual space has its origin at the top-left corner with y growing downward,
measured in on-screen pixels at some display scale. Document space has its
origin at the bottom-left corner with y growing upward, measured in points.
An element is anchored by its top edge in visual space and by its bottom edge
in document space, so every conversion shifts by the element's height.
"""

from __future__ import annotations

from typing import NamedTuple

from .errors import ParseError


class Point(NamedTuple):
    x: float
    y: float


class Extent(NamedTuple):
    width: float
    height: float


def _check_scale(display_scale: float) -> float:
    scale = float(display_scale)
    if scale <= 0:
        raise ParseError(f"Display scale must be positive, got {display_scale}")
    return scale


def _clamp(value: float, low: float, high: float) -> float:
    return min(max(value, low), high)


def to_document_space(
    visual_x: float,
    visual_y: float,
    display_scale: float,
    page_height: float,
    element_height: float = 0.0,
    *,
    page_width: float | None = None,
    clamp: bool = False,
) -> Point:
    """
    Convert a visual top-left anchor into a document-space bottom-left anchor.

    Parameters:
        visual_x (float): Horizontal pixel offset from the page's left edge.
        visual_y (float): Vertical pixel offset of the element's top edge from the page's top edge.
        display_scale (float): Pixels per document unit at the current zoom.
        page_height (float): Page height in document units.
        element_height (float): Element height in pixels; 0 for a point.
        page_width (float | None): Page width in document units, required when clamping.
        clamp (bool): Clamp the result onto the page (interactive dragging). Explicit
            numeric entry leaves this off so out-of-page values pass through.

    Returns:
        Point: Document-space coordinates of the element's bottom-left corner.
    """
    scale = _check_scale(display_scale)
    doc_x = visual_x / scale
    doc_y = page_height - (visual_y + element_height) / scale
    if clamp:
        if page_width is None:
            raise ParseError("Page width is required for clamped placement")
        doc_x = _clamp(doc_x, 0.0, float(page_width))
        doc_y = _clamp(doc_y, 0.0, float(page_height))
    return Point(doc_x, doc_y)


def to_visual_space(
    doc_x: float,
    doc_y: float,
    display_scale: float,
    page_height: float,
    element_height: float = 0.0,
) -> Point:
    """Inverse of ``to_document_space`` for unclamped coordinates."""
    scale = _check_scale(display_scale)
    visual_x = doc_x * scale
    visual_y = (page_height - doc_y) * scale - element_height
    return Point(visual_x, visual_y)


def scale_extent(visual_width: float, visual_height: float, display_scale: float) -> Extent:
    """Convert an on-screen element size to document units."""
    scale = _check_scale(display_scale)
    return Extent(visual_width / scale, visual_height / scale)
