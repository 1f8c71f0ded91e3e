"""Loading PDF bytes into a mutable page tree and writing it back."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from io import BytesIO
from typing import Any, Dict, Iterator, List, Mapping, Tuple

import fitz
from pypdf import PageObject, PdfReader, PdfWriter
from pypdf.errors import DependencyError, PdfReadError

from .errors import CorruptDocumentError, PageRangeError, SerializationError

logger = logging.getLogger(__name__)

HEADER_SEARCH_BYTES = 1024

_READ_ERRORS = (PdfReadError, KeyError, ValueError, TypeError, AttributeError)
_WRITE_ERRORS = (PdfReadError, KeyError, ValueError, TypeError, AttributeError, OSError)


def _safe_metadata(raw: Mapping[str, Any] | None) -> Dict[str, str]:
    """Drop empty values and coerce metadata to strings."""
    safe: Dict[str, str] = {}
    for key, value in (raw or {}).items():
        if value is None:
            continue
        safe[str(key)] = str(value)
    return safe


class Document:
    """A PDF page tree held in memory for the duration of one operation."""

    def __init__(self, writer: PdfWriter, encrypted: bool = False) -> None:
        self._writer = writer
        self.encrypted = encrypted

    @property
    def writer(self) -> PdfWriter:
        return self._writer

    @property
    def pages(self) -> List[PageObject]:
        return list(self._writer.pages)

    @property
    def page_count(self) -> int:
        return len(self._writer.pages)

    @property
    def metadata(self) -> Dict[str, str]:
        return _safe_metadata(self._writer.metadata)

    def page(self, number: int) -> PageObject:
        """Return the page with the given 1-based number."""
        if isinstance(number, bool) or not isinstance(number, int):
            raise PageRangeError(number, self.page_count, f"Invalid page number: {number!r}")
        if number < 1 or number > self.page_count:
            raise PageRangeError(number, self.page_count)
        return self._writer.pages[number - 1]

    def page_size(self, number: int) -> Tuple[float, float]:
        """Return (width, height) of the page's media box in points."""
        box = self.page(number).mediabox
        return float(box.width), float(box.height)

    def page_origin(self, number: int) -> Tuple[float, float]:
        """Return the lower-left corner of the page's media box."""
        box = self.page(number).mediabox
        return float(box.left), float(box.bottom)

    def rotation(self, number: int) -> int:
        return int(self.page(number).rotation) % 360

    def normalize_rotation(self, number: int) -> None:
        """
        Fold the page's /Rotate entry into its content.

        Afterwards the media box matches the page as displayed, so document-space
        coordinates measured on screen land where the viewer showed them.
        """
        page = self.page(number)
        if int(page.rotation) % 360:
            page.transfer_rotation_to_content()

    def append_page(self, page: PageObject) -> None:
        """Append a page from another document; its resources are cloned alongside it."""
        self._writer.add_page(page)

    def reload(self, data: bytes) -> None:
        """Replace the page tree with a freshly parsed copy of ``data``."""
        reader = _read_pdf(data)
        self._writer = PdfWriter(clone_from=reader)


def _read_pdf(data: bytes, password: str | None = None) -> PdfReader:
    """Parse PDF bytes, translating parser failures into CorruptDocumentError."""
    if not data:
        raise CorruptDocumentError("PDF is empty")
    if b"%PDF-" not in bytes(data[:HEADER_SEARCH_BYTES]):
        raise CorruptDocumentError("PDF header not found; file is not a PDF")
    try:
        reader = PdfReader(BytesIO(data))
    except _READ_ERRORS as error:
        raise CorruptDocumentError("PDF appears to be corrupted or unreadable.") from error
    if reader.is_encrypted:
        if password is None:
            raise CorruptDocumentError("PDF is encrypted")
        try:
            unlocked = reader.decrypt(password)
        except DependencyError as error:
            raise CorruptDocumentError(f"PDF encryption is not supported: {error}") from error
        except _READ_ERRORS as error:
            raise CorruptDocumentError("Unable to unlock PDF") from error
        if unlocked == 0:
            raise CorruptDocumentError("Unable to unlock PDF with the supplied password")
    try:
        page_count = len(reader.pages)
    except _READ_ERRORS as error:
        raise CorruptDocumentError("PDF page tree is damaged or truncated.") from error
    if page_count == 0:
        raise CorruptDocumentError("PDF has no pages")
    return reader


def load_document(data: bytes, password: str | None = None) -> Document:
    """
    Parse PDF bytes into a mutable in-memory document.

    Parameters:
        data (bytes): Complete PDF file contents.
        password (str | None): Password for encrypted input, if any.

    Returns:
        Document: A clone of the parsed page tree; mutating it never touches ``data``.

    Raises:
        CorruptDocumentError: If the bytes are not a readable PDF, have no pages,
            or are encrypted without a working password.
    """
    reader = _read_pdf(data, password)
    try:
        writer = PdfWriter(clone_from=reader)
    except _READ_ERRORS as error:
        raise CorruptDocumentError("PDF appears to be corrupted or unreadable.") from error
    return Document(writer, encrypted=reader.is_encrypted)


def new_document(metadata: Mapping[str, Any] | None = None) -> Document:
    """Create an empty document, optionally carrying metadata from a source."""
    writer = PdfWriter()
    safe = _safe_metadata(metadata)
    if safe:
        writer.add_metadata(safe)
    return Document(writer)


def write_document(document: Document) -> bytes:
    """
    Serialize a document to PDF bytes.

    Raises:
        SerializationError: If the document has no pages or the writer fails.
    """
    if document.page_count == 0:
        raise SerializationError("Cannot write a PDF without pages")
    buffer = BytesIO()
    try:
        document.writer.write(buffer)
    except _WRITE_ERRORS as error:
        logger.exception(
            "Failed to serialize PDF (%d pages, metadata=%s)",
            document.page_count,
            document.metadata,
        )
        raise SerializationError(f"Failed to write PDF: {error}") from error
    return buffer.getvalue()


@contextmanager
def fitz_document(document: Document) -> Iterator[fitz.Document]:
    """Open the current page tree in PyMuPDF for the duration of the block."""
    data = write_document(document)
    try:
        opened = fitz.open(stream=data, filetype="pdf")
    except (RuntimeError, ValueError) as error:
        logger.exception("PyMuPDF could not reopen a serialized PDF")
        raise SerializationError(f"Failed to reopen PDF: {error}") from error
    try:
        yield opened
    finally:
        opened.close()


def document_info(document: Document) -> Dict[str, Any]:
    """Summarize page count, page geometry, and metadata."""
    pages = []
    for number in range(1, document.page_count + 1):
        width, height = document.page_size(number)
        pages.append(
            {
                "page": number,
                "width": round(width, 2),
                "height": round(height, 2),
                "rotation": document.rotation(number),
            }
        )
    return {
        "pageCount": document.page_count,
        "encrypted": document.encrypted,
        "metadata": document.metadata,
        "pages": pages,
    }
