"""Placement and style parameters for overlay tools."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Tuple

from .errors import ParseError

RGB = Tuple[int, int, int]

_HEX_COLOR = re.compile(r"^#?([0-9a-fA-F]{6}|[0-9a-fA-F]{3})$")


class FontName(Enum):
    """Standard fonts accepted for overlay text, as (family, style) pairs."""

    HELVETICA = ("helvetica", "")
    HELVETICA_BOLD = ("helvetica", "B")
    HELVETICA_OBLIQUE = ("helvetica", "I")
    HELVETICA_BOLD_OBLIQUE = ("helvetica", "BI")
    TIMES_ROMAN = ("times", "")
    TIMES_BOLD = ("times", "B")
    TIMES_ITALIC = ("times", "I")
    TIMES_BOLD_ITALIC = ("times", "BI")
    COURIER = ("courier", "")
    COURIER_BOLD = ("courier", "B")
    COURIER_OBLIQUE = ("courier", "I")
    COURIER_BOLD_OBLIQUE = ("courier", "BI")

    @property
    def family(self) -> str:
        return self.value[0]

    @property
    def style(self) -> str:
        return self.value[1]


def parse_font_name(value: str | FontName | None) -> FontName:
    """
    Resolve a font name such as "Helvetica-Bold" or "TIMES_ROMAN".

    Raises:
        ParseError: If the name is not one of the standard fonts.
    """
    if value is None:
        return FontName.HELVETICA
    if isinstance(value, FontName):
        return value
    key = re.sub(r"[\s\-]+", "_", str(value).strip()).upper()
    if key == "TIMES":
        key = "TIMES_ROMAN"
    try:
        return FontName[key]
    except KeyError as error:
        choices = ", ".join(font.name for font in FontName)
        raise ParseError(f"Unknown font '{value}'. Use one of: {choices}") from error


def parse_color(value: str | RGB | None) -> RGB:
    """
    Parse "#RRGGBB", "RRGGBB", or "#RGB" into an RGB triple.

    Raises:
        ParseError: If the value is not a hex color or an in-range triple.
    """
    if value is None:
        return (0, 0, 0)
    if isinstance(value, tuple):
        if len(value) != 3 or any(
            not isinstance(part, int) or not 0 <= part <= 255 for part in value
        ):
            raise ParseError(f"Invalid RGB color: {value!r}")
        return value
    match = _HEX_COLOR.match(str(value).strip())
    if not match:
        raise ParseError(f"Invalid color '{value}': expected #RRGGBB")
    digits = match.group(1)
    if len(digits) == 3:
        digits = "".join(char * 2 for char in digits)
    return (int(digits[0:2], 16), int(digits[2:4], 16), int(digits[4:6], 16))


def parse_number(value, name: str) -> float:
    """Coerce a numeric request parameter, raising ParseError when malformed."""
    if isinstance(value, bool):
        raise ParseError(f"{name} must be a number")
    try:
        number = float(value)
    except (TypeError, ValueError) as error:
        raise ParseError(f"{name} must be a number, got {value!r}") from error
    if number != number or number in (float("inf"), float("-inf")):
        raise ParseError(f"{name} must be a finite number")
    return number


def parse_page_number(value, name: str = "page") -> int:
    """Coerce a 1-based page number parameter."""
    if isinstance(value, bool):
        raise ParseError(f"{name} must be an integer")
    if isinstance(value, int):
        return value
    try:
        return int(str(value).strip())
    except (TypeError, ValueError) as error:
        raise ParseError(f"{name} must be an integer, got {value!r}") from error


@dataclass(frozen=True)
class OverlayStyle:
    """Font, color, rotation, and opacity for overlay text."""

    font: FontName = FontName.HELVETICA
    font_size: float = 12.0
    color: RGB = (0, 0, 0)
    rotation: float = 0.0
    opacity: float = 1.0

    def __post_init__(self) -> None:
        if not isinstance(self.font, FontName):
            object.__setattr__(self, "font", parse_font_name(self.font))
        object.__setattr__(self, "color", parse_color(self.color))
        if self.font_size <= 0:
            raise ParseError(f"Font size must be positive, got {self.font_size}")
        if not 0.0 <= self.opacity <= 1.0:
            raise ParseError(f"Opacity must be between 0 and 1, got {self.opacity}")


@dataclass(frozen=True)
class PlacementSpec:
    """A 1-based page and a document-space anchor point in points."""

    page: int
    x: float
    y: float


@dataclass(frozen=True)
class TextItem:
    text: str
    placement: PlacementSpec
    style: OverlayStyle = field(default_factory=OverlayStyle)


@dataclass(frozen=True)
class RedactionArea:
    """A document-space rectangle given by its lower-left corner and extent."""

    page: int
    x: float
    y: float
    width: float
    height: float

    def __post_init__(self) -> None:
        if self.width <= 0 or self.height <= 0:
            raise ParseError(
                f"Redaction area on page {self.page} must have positive width and height"
            )
