"""Text extraction and conversion to Markdown and Word documents."""

from __future__ import annotations

import logging
import re
from collections import Counter
from dataclasses import dataclass, field
from io import BytesIO
from typing import List, Tuple

from docx import Document as DocxDocument

from .document import Document, fitz_document
from .errors import UnextractableContentError

logger = logging.getLogger(__name__)

MARKDOWN_MEDIA_TYPE = "text/markdown; charset=utf-8"
DOCX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
PAGE_BREAK_MARKER = "---"

TITLE_SIZE_RATIO = 1.6
SECTION_SIZE_RATIO = 1.25
MAX_BOLD_HEADING_CHARS = 80
FLAG_BOLD = 16

_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f]")


@dataclass
class TextBlock:
    """One paragraph-like block of text in reading order."""

    text: str
    size: float
    bold: bool
    heading: int = 0


@dataclass
class ConversionResult:
    data: bytes
    media_type: str
    unextractable_pages: List[int] = field(default_factory=list)


def _clean_text(text: str) -> str:
    return _CONTROL_CHARS.sub("", text).strip()


def _join_lines(lines: List[str]) -> str:
    """Join a block's lines with spaces, re-joining words hyphenated across lines."""
    joined = ""
    for line in lines:
        if not line:
            continue
        if joined.endswith("-") and line[:1].islower():
            joined = joined[:-1] + line
        elif joined:
            joined = f"{joined} {line}"
        else:
            joined = line
    return joined


def _span_is_bold(span: dict) -> bool:
    return bool(span.get("flags", 0) & FLAG_BOLD) or "bold" in span.get("font", "").lower()


def _page_blocks(page) -> Tuple[List[TextBlock], Counter]:
    """Collect text blocks of a PyMuPDF page plus a character-weighted font size histogram."""
    blocks: List[TextBlock] = []
    sizes: Counter = Counter()
    content = page.get_text("dict", sort=True)
    for block in content.get("blocks", []):
        if block.get("type", 0) != 0:
            continue
        lines: List[str] = []
        max_size = 0.0
        all_bold = True
        for line in block.get("lines", []):
            spans = [span for span in line.get("spans", []) if span.get("text", "").strip()]
            if not spans:
                continue
            lines.append(_clean_text("".join(span["text"] for span in line["spans"])))
            for span in spans:
                size = round(float(span.get("size", 0.0)), 1)
                sizes[size] += len(span["text"].strip())
                max_size = max(max_size, size)
                all_bold = all_bold and _span_is_bold(span)
        text = _join_lines(lines)
        if text:
            blocks.append(TextBlock(text=text, size=max_size, bold=all_bold))
    return blocks, sizes


def _heading_level(block: TextBlock, body_size: float) -> int:
    """Guess a heading level from relative size and weight; 0 means body text."""
    if body_size <= 0:
        return 0
    if block.size >= body_size * TITLE_SIZE_RATIO:
        return 1
    if block.size >= body_size * SECTION_SIZE_RATIO:
        return 2
    if block.bold and len(block.text) <= MAX_BOLD_HEADING_CHARS and not block.text.endswith("."):
        return 3
    return 0


def extract_blocks(document: Document) -> Tuple[List[List[TextBlock]], List[int]]:
    """
    Extract text blocks per page in reading order and tag likely headings.

    Returns:
        tuple: (blocks per page, 1-based pages that had no extractable text).

    Raises:
        UnextractableContentError: If no page has any text.
    """
    pages: List[List[TextBlock]] = []
    sizes: Counter = Counter()
    with fitz_document(document) as pdf:
        for index in range(pdf.page_count):
            blocks, page_sizes = _page_blocks(pdf.load_page(index))
            pages.append(blocks)
            sizes.update(page_sizes)
    empty = [number for number, blocks in enumerate(pages, start=1) if not blocks]
    if len(empty) == len(pages):
        raise UnextractableContentError(empty)
    for number in empty:
        logger.warning("Page %d has no extractable text (scanned or image-only?)", number)
    body_size = sizes.most_common(1)[0][0] if sizes else 0.0
    for blocks in pages:
        for block in blocks:
            block.heading = _heading_level(block, body_size)
    return pages, empty


def extract_text(document: Document, page: int) -> str:
    """Return the plain text of one 1-based page in reading order."""
    document.page(page)
    with fitz_document(document) as pdf:
        return pdf.load_page(page - 1).get_text("text", sort=True)


def _escape_markdown(text: str) -> str:
    """Keep body text from being read as a heading or list marker."""
    if text[:1] in "#>" or re.match(r"^[-*+]\s", text):
        return "\\" + text
    return re.sub(r"^(\d+)\.(?=\s)", r"\1\\.", text)


def convert_to_markdown(document: Document) -> ConversionResult:
    """
    Convert extracted text into Markdown.

    Larger or bold short blocks become headings, other blocks become paragraphs,
    and pages are separated by a horizontal-rule page break. Pages without text
    are marked with an HTML comment and listed in the result.
    """
    pages, empty = extract_blocks(document)
    sections: List[str] = []
    for number, blocks in enumerate(pages, start=1):
        if not blocks:
            sections.append(f"<!-- page {number}: no extractable text -->")
            continue
        parts = []
        for block in blocks:
            if block.heading:
                parts.append(f"{'#' * block.heading} {block.text}")
            else:
                parts.append(_escape_markdown(block.text))
        sections.append("\n\n".join(parts))
    markdown = f"\n\n{PAGE_BREAK_MARKER}\n\n".join(sections) + "\n"
    logger.info("Converted %d page(s) to Markdown", len(pages))
    return ConversionResult(markdown.encode("utf-8"), MARKDOWN_MEDIA_TYPE, empty)


def convert_to_docx(document: Document) -> ConversionResult:
    """Convert extracted text into a Word document, one paragraph per text block."""
    pages, empty = extract_blocks(document)
    docx = DocxDocument()
    for number, blocks in enumerate(pages, start=1):
        if number > 1:
            docx.add_page_break()
        for block in blocks:
            if block.heading:
                docx.add_heading(block.text, level=block.heading)
            else:
                docx.add_paragraph(block.text)
    buffer = BytesIO()
    docx.save(buffer)
    logger.info("Converted %d page(s) to DOCX", len(pages))
    return ConversionResult(buffer.getvalue(), DOCX_MEDIA_TYPE, empty)
