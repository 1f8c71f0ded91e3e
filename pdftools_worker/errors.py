"""Error types raised by the PDF tools."""

from __future__ import annotations

from typing import Iterable, List


class PdfToolError(Exception):
    """Base class for every error raised by a PDF tool."""

    code = "INTERNAL_ERROR"

    def __init__(self, message: str) -> None:
        """Initialize the base exception with the message."""
        super().__init__(message)
        self.message = message


class ParseError(PdfToolError, ValueError):
    """Raised for a malformed page spec, number, color, or font name."""

    code = "USER_INPUT_INVALID"


class PageRangeError(PdfToolError, ValueError):
    """Raised when a page or rectangle falls outside the document."""

    code = "USER_INPUT_INVALID"

    def __init__(self, value, bound, message: str | None = None) -> None:
        """Record the offending value and the valid bound."""
        self.value = value
        self.bound = bound
        super().__init__(message or f"Page {value} is out of range (valid pages: 1-{bound})")


class CorruptDocumentError(PdfToolError, ValueError):
    """Raised when input bytes are not a readable PDF."""

    code = "DOCUMENT_UNREADABLE"


class EmptyInputError(PdfToolError, ValueError):
    """Raised when an operation receives too few documents."""

    code = "USER_INPUT_INVALID"


class EmptyResultError(PdfToolError, ValueError):
    """Raised when an operation would produce a document without pages."""

    code = "USER_INPUT_INVALID"


class UnextractableContentError(PdfToolError, ValueError):
    """Raised when no page of a document has extractable text."""

    code = "CONTENT_UNEXTRACTABLE"

    def __init__(self, pages: Iterable[int], message: str | None = None) -> None:
        """Record the pages that produced no text."""
        self.pages: List[int] = list(pages)
        listed = ", ".join(str(page) for page in self.pages)
        super().__init__(message or f"No extractable text on page(s): {listed}")


class SerializationError(PdfToolError, RuntimeError):
    """Raised when an in-memory document cannot be written back to bytes."""

    code = "INTERNAL_ERROR"
