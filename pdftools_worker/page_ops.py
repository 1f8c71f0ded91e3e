"""Page tree tools: merge, split, extract, and remove."""

from __future__ import annotations

import logging
from typing import List, Sequence

from .config import load_settings
from .document import Document, new_document
from .errors import EmptyInputError, EmptyResultError, ParseError
from .page_ranges import validate_pages

logger = logging.getLogger(__name__)


def _copy_pages(source: Document, pages: Sequence[int]) -> Document:
    """Build a new document holding the given 1-based pages of ``source`` in order."""
    target = new_document(source.metadata)
    for number in pages:
        target.append_page(source.page(number))
    return target


def merge_documents(documents: Sequence[Document], *, min_inputs: int | None = None) -> Document:
    """
    Concatenate documents into one, preserving input order and per-source page order.

    Parameters:
        documents (Sequence[Document]): Sources, merged in the given order.
        min_inputs (int | None): Business-rule minimum number of sources; defaults to
            ``PDFTOOLS_MERGE_MIN_INPUTS`` (2).

    Returns:
        Document: A new document; metadata comes from the first source.

    Raises:
        EmptyInputError: If fewer than ``min_inputs`` documents are given.
    """
    if min_inputs is None:
        min_inputs = load_settings().merge_min_inputs
    if not documents:
        raise EmptyInputError("No PDF files provided to merge")
    if len(documents) < min_inputs:
        raise EmptyInputError(f"At least {min_inputs} PDF files are required to merge")
    merged = new_document(documents[0].metadata)
    for source in documents:
        for page in source.pages:
            merged.append_page(page)
    logger.info("Merged %d document(s) into %d page(s)", len(documents), merged.page_count)
    return merged


def split_document(
    document: Document,
    groups: Sequence[Sequence[int]] | None = None,
) -> List[Document]:
    """
    Split a document into several.

    Without groups every page becomes its own document, in original order; a one-page
    document yields a single one-page output. With groups each group becomes one
    document holding exactly its pages in the group's order. Groups are taken as
    given: they may overlap, and pages left out of every group are dropped.

    Raises:
        ParseError: If ``groups`` is empty or contains an empty group.
        PageRangeError: If a group names a page outside the document.
    """
    if groups is None:
        outputs = [_copy_pages(document, [number]) for number in range(1, document.page_count + 1)]
        logger.info("Split %d page(s) into individual documents", document.page_count)
        return outputs
    if not groups:
        raise ParseError("No page groups provided")
    resolved: List[List[int]] = []
    for index, group in enumerate(groups, start=1):
        pages = validate_pages(group, document.page_count)
        if not pages:
            raise ParseError(f"Page group {index} is empty")
        resolved.append(pages)
    outputs = [_copy_pages(document, pages) for pages in resolved]
    logger.info(
        "Split %d page(s) into %d group(s) of sizes %s",
        document.page_count,
        len(outputs),
        [len(pages) for pages in resolved],
    )
    return outputs


def extract_pages(document: Document, selection: Sequence[int]) -> Document:
    """Return a new document with only the selected pages, in selection order."""
    pages = validate_pages(selection, document.page_count)
    if not pages:
        raise ParseError("Page selection is empty")
    extracted = _copy_pages(document, pages)
    logger.info("Extracted %d of %d page(s)", extracted.page_count, document.page_count)
    return extracted


def remove_pages(document: Document, selection: Sequence[int]) -> Document:
    """
    Return a new document without the selected pages, keeping original order.

    Raises:
        ParseError: If the selection is empty.
        EmptyResultError: If the selection covers every page.
    """
    remove_set = set(validate_pages(selection, document.page_count))
    if not remove_set:
        raise ParseError("Page selection is empty")
    kept = [number for number in range(1, document.page_count + 1) if number not in remove_set]
    if not kept:
        raise EmptyResultError("Cannot remove every page; a PDF needs at least one page")
    trimmed = _copy_pages(document, kept)
    logger.info("Removed %d page(s); %d remain", len(remove_set), trimmed.page_count)
    return trimmed
