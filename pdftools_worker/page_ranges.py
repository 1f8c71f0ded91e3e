"""Page spec parsing ("1,3,5-7") and page selection validation."""

from __future__ import annotations

from typing import Iterable, List, Tuple

from .errors import PageRangeError, ParseError


def _parse_number(token: str, original: str) -> int:
    """Parse one page number, rejecting signs and non-digits."""
    cleaned = token.strip()
    if not (cleaned.isascii() and cleaned.isdigit()):
        raise ParseError(f"Invalid page token '{original}': expected a page number or range")
    return int(cleaned)


def _parse_ranges(value: str) -> List[Tuple[int, int]]:
    """Parse a comma-separated list of page ranges into inclusive (start, end) pairs."""
    ranges: List[Tuple[int, int]] = []
    for part in value.split(","):
        cleaned = part.strip()
        if not cleaned:
            continue
        if "-" in cleaned:
            start, end = cleaned.split("-", 1)
        else:
            start, end = cleaned, cleaned
        start_i = _parse_number(start, cleaned)
        end_i = _parse_number(end, cleaned)
        if start_i > end_i:
            raise ParseError(f"Invalid page range '{cleaned}': start must not exceed end")
        ranges.append((start_i, end_i))
    return ranges


def validate_pages(pages: Iterable[int], total_pages: int) -> List[int]:
    """
    Validate page numbers against a document and collapse duplicates.

    Parameters:
        pages (Iterable[int]): 1-based page numbers in caller order.
        total_pages (int): Number of pages in the document.

    Returns:
        list[int]: The pages in first-seen order without duplicates.

    Raises:
        ParseError: If a value is not an integer.
        PageRangeError: If a page is outside 1..total_pages.
    """
    seen = set()
    ordered: List[int] = []
    for page in pages:
        if isinstance(page, bool) or not isinstance(page, int):
            raise ParseError(f"Invalid page number: {page!r}")
        if page < 1 or page > total_pages:
            raise PageRangeError(page, total_pages)
        if page not in seen:
            seen.add(page)
            ordered.append(page)
    return ordered


def parse_page_spec(spec: str | None, total_pages: int, *, sort: bool = False) -> List[int]:
    """
    Expand a page spec such as "1,3,5-7" into validated page numbers.

    Parameters:
        spec (str | None): Comma-separated page numbers and inclusive ranges.
        total_pages (int): Number of pages in the document.
        sort (bool): Return pages ascending instead of in first-seen order.

    Returns:
        list[int]: Deduplicated 1-based page numbers.

    Raises:
        ParseError: If the spec is empty, has a non-numeric token, or a reversed range.
        PageRangeError: If any page is outside 1..total_pages.
    """
    if spec is None or not str(spec).strip():
        raise ParseError("Page selection is empty")
    ranges = _parse_ranges(str(spec))
    if not ranges:
        raise ParseError("Page selection is empty")
    pages: List[int] = []
    for start, end in ranges:
        if start < 1:
            raise PageRangeError(start, total_pages)
        if end > total_pages:
            raise PageRangeError(end, total_pages)
        pages.extend(range(start, end + 1))
    selection = validate_pages(pages, total_pages)
    return sorted(selection) if sort else selection


def parse_page_groups(spec: str | None, total_pages: int) -> List[List[int]]:
    """Parse split groups such as "1,2,3;4-5" into one page list per group."""
    if spec is None or not str(spec).strip():
        raise ParseError("No page groups provided")
    groups = [
        parse_page_spec(part, total_pages)
        for part in str(spec).split(";")
        if part.strip()
    ]
    if not groups:
        raise ParseError("No page groups provided")
    return groups
