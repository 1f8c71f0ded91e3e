"""PDF tools: page operations, overlays, redaction, and text conversion."""

from .errors import (
    CorruptDocumentError,
    EmptyInputError,
    EmptyResultError,
    PageRangeError,
    ParseError,
    PdfToolError,
    SerializationError,
    UnextractableContentError,
)

__all__ = [
    "CorruptDocumentError",
    "EmptyInputError",
    "EmptyResultError",
    "PageRangeError",
    "ParseError",
    "PdfToolError",
    "SerializationError",
    "UnextractableContentError",
]
