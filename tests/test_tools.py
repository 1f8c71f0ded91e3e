import json
from io import BytesIO

import fitz
import pytest
from pypdf import PdfReader

from pdftools_worker.errors import (
    CorruptDocumentError,
    EmptyInputError,
    EmptyResultError,
    PageRangeError,
    ParseError,
)
from pdftools_worker.tools import (
    add_signature_pdf,
    add_text_pdf,
    extract_pdf_pages,
    merge_pdfs,
    pdf_info,
    pdf_to_docx,
    pdf_to_markdown,
    redact_pdf,
    redact_pdf_multiple,
    remove_pdf_pages,
    split_pdf,
    watermark_pdf,
)


def _page_count(data: bytes) -> int:
    return len(PdfReader(BytesIO(data)).pages)


def test_merge_pdfs(make_pdf) -> None:
    """Merge multiple PDFs into one output."""
    output = merge_pdfs([make_pdf(1), make_pdf(2)])
    assert _page_count(output) == 3


def test_merge_pdfs_rejects_single_input_and_bad_bytes(make_pdf) -> None:
    with pytest.raises(EmptyInputError):
        merge_pdfs([make_pdf(1)])
    with pytest.raises(CorruptDocumentError):
        merge_pdfs([make_pdf(1), b"garbage"])


def test_split_pdf_groups_string(make_pdf) -> None:
    """Split a PDF using semicolon-separated page groups."""
    outputs = split_pdf(make_pdf(5), "1,2,3;4,5")
    assert [_page_count(output) for output in outputs] == [3, 2]


def test_split_pdf_individual(make_pdf) -> None:
    assert [_page_count(output) for output in split_pdf(make_pdf(3))] == [1, 1, 1]
    assert len(split_pdf(make_pdf(2), "  ")) == 2


def test_extract_and_remove_pages(numbered_pdf, read_texts) -> None:
    source = numbered_pdf(5)
    assert [text.strip() for text in read_texts(extract_pdf_pages(source, "5,1-2"))] == [
        "Page 5",
        "Page 1",
        "Page 2",
    ]
    assert [text.strip() for text in read_texts(remove_pdf_pages(source, [2, 3]))] == [
        "Page 1",
        "Page 4",
        "Page 5",
    ]


def test_page_selection_errors(make_pdf) -> None:
    source = make_pdf(5)
    with pytest.raises(ParseError):
        remove_pdf_pages(source, "")
    with pytest.raises(ParseError):
        extract_pdf_pages(source, "4-2")
    with pytest.raises(PageRangeError):
        extract_pdf_pages(source, "1,99")
    with pytest.raises(EmptyResultError):
        remove_pdf_pages(source, "1-5")


def test_watermark_pdf_defaults_and_overrides(make_pdf) -> None:
    output = watermark_pdf(make_pdf(2, width=612, height=792), "DRAFT")
    with fitz.open(stream=output, filetype="pdf") as pdf:
        assert all("DRAFT" in page.get_text() for page in pdf)

    output = watermark_pdf(
        make_pdf(1, width=612, height=792),
        "DRAFT",
        x="100",
        y="200",
        rotation=0,
        opacity="0.5",
        font_size=30,
        font_color="#FF0000",
    )
    with fitz.open(stream=output, filetype="pdf") as pdf:
        words = pdf[0].get_text("words")
    assert words[0][0] == pytest.approx(100, abs=2)


def test_watermark_pdf_rejects_malformed_parameters(make_pdf) -> None:
    source = make_pdf(1)
    with pytest.raises(ParseError):
        watermark_pdf(source, "DRAFT", x=10)
    with pytest.raises(ParseError):
        watermark_pdf(source, "DRAFT", opacity="lots")
    with pytest.raises(ParseError):
        watermark_pdf(source, "DRAFT", opacity=2)
    with pytest.raises(ParseError):
        watermark_pdf(source, "DRAFT", font_name="Wingdings")


def test_add_text_pdf_defaults(make_pdf) -> None:
    output = add_text_pdf(make_pdf(1, width=612, height=792), [{"text": "Hello"}])
    with fitz.open(stream=output, filetype="pdf") as pdf:
        word = pdf[0].get_text("words")[0]
    assert word[4] == "Hello"
    assert word[0] == pytest.approx(50, abs=2)
    assert word[1] < 792 - 750 < word[3] + 4


def test_add_text_pdf_items(make_pdf, read_texts) -> None:
    items = [
        {"text": "One", "x": 72, "y": 700, "page": 1, "fontSize": 14, "fontName": "COURIER", "fontColor": "#0000FF"},
        {"text": "Two", "x": "72", "y": "650", "page": "2"},
    ]
    texts = read_texts(add_text_pdf(make_pdf(2, width=612, height=792), items))
    assert "One" in texts[0]
    assert "Two" in texts[1]


def test_add_text_pdf_visual_coordinates(make_pdf) -> None:
    """With a display scale, (x, y) are viewer pixels locating the text box's top-left corner."""
    output = add_text_pdf(
        make_pdf(1, width=612, height=792),
        [{"text": "Scaled", "x": 144, "y": 200}],
        display_scale=2,
    )
    with fitz.open(stream=output, filetype="pdf") as pdf:
        word = pdf[0].get_text("words")[0]
    assert word[0] == pytest.approx(72, abs=2)
    # Top edge at 100 pt, baseline one font size (12 pt) lower.
    assert word[1] == pytest.approx(100, abs=2)
    assert word[3] > 110


def test_add_text_pdf_visual_top_edge_follows_font_size(make_pdf) -> None:
    output = add_text_pdf(
        make_pdf(1, width=612, height=792),
        [{"text": "Hello", "x": 50, "y": 100, "fontSize": 24}],
        display_scale=1,
    )
    with fitz.open(stream=output, filetype="pdf") as pdf:
        word = pdf[0].get_text("words")[0]
    assert word[1] == pytest.approx(100, abs=3)
    assert word[3] > 120


def test_add_text_pdf_errors(make_pdf) -> None:
    source = make_pdf(1)
    with pytest.raises(ParseError):
        add_text_pdf(source, [{"text": "x", "fontSize": "big"}])
    with pytest.raises(ParseError):
        add_text_pdf(source, [{"text": "x", "fontColor": "blue"}])
    with pytest.raises(PageRangeError):
        add_text_pdf(source, [{"text": "x", "page": 2}])
    with pytest.raises(ParseError):
        add_text_pdf(source, [])


def test_add_signature_pdf(make_pdf, make_png) -> None:
    output = add_signature_pdf(make_pdf(1, width=612, height=792), make_png(200, 100))
    with fitz.open(stream=output, filetype="pdf") as pdf:
        bbox = pdf[0].get_image_info()[0]["bbox"]
    # Defaults: lower-left at (400, 100), 0.3 pt per pixel.
    assert bbox == pytest.approx((400, 792 - 130, 460, 792 - 100), abs=0.5)


def test_add_signature_pdf_visual_coordinates(make_pdf, make_png) -> None:
    output = add_signature_pdf(
        make_pdf(1, width=612, height=792),
        make_png(200, 100),
        x=100,
        y=100,
        width=200,
        display_scale=2,
    )
    with fitz.open(stream=output, filetype="pdf") as pdf:
        bbox = pdf[0].get_image_info()[0]["bbox"]
    # Top-left at (50, 50) in points, 100 x 50 pt.
    assert bbox == pytest.approx((50, 50, 150, 100), abs=0.5)


def test_add_signature_pdf_errors(make_pdf, make_png) -> None:
    with pytest.raises(ParseError):
        add_signature_pdf(make_pdf(1), b"\x89PNG broken")
    with pytest.raises(ParseError):
        add_signature_pdf(make_pdf(1), make_png(), x="left")
    with pytest.raises(PageRangeError):
        add_signature_pdf(make_pdf(1), make_png(), page=5)


def _secret(make_text_pdf) -> bytes:
    return make_text_pdf([[(72, 100, "SECRET", 12, ""), (72, 400, "PUBLIC", 12, "")]])


def test_redact_pdf(make_text_pdf) -> None:
    output = redact_pdf(_secret(make_text_pdf), 60, 680, 200, 30, page=1)
    markdown = pdf_to_markdown(output).data.decode("utf-8")
    assert "SECRET" not in markdown
    assert "PUBLIC" in markdown


def test_redact_pdf_visual_coordinates(make_text_pdf) -> None:
    # The same area measured on screen at 1.5x: top-left (90, 123), 300 x 45 px.
    output = redact_pdf(_secret(make_text_pdf), 90, 123, 300, 45, display_scale=1.5)
    markdown = pdf_to_markdown(output).data.decode("utf-8")
    assert "SECRET" not in markdown
    assert "PUBLIC" in markdown


def test_redact_pdf_multiple_json(make_text_pdf) -> None:
    areas = json.dumps(
        [
            {"x": 60, "y": 680, "width": 200, "height": 30, "page": 1},
            {"x": 60, "y": 380, "width": 200, "height": 30, "page": 1},
        ]
    )
    output = redact_pdf_multiple(_secret(make_text_pdf), areas)
    with fitz.open(stream=output, filetype="pdf") as pdf:
        assert pdf[0].get_text().strip() == ""


def test_redact_pdf_multiple_errors(make_text_pdf) -> None:
    source = _secret(make_text_pdf)
    with pytest.raises(ParseError):
        redact_pdf_multiple(source, "[{not json")
    with pytest.raises(ParseError):
        redact_pdf_multiple(source, [{"x": 1, "y": 1, "width": 10}])
    with pytest.raises(ParseError):
        redact_pdf_multiple(source, [{"x": 1, "y": 1, "width": -10, "height": 5}])
    with pytest.raises(PageRangeError):
        redact_pdf_multiple(source, [{"x": 1, "y": 1, "width": 10, "height": 10, "page": 9}])


def test_pdf_to_docx_and_markdown(numbered_pdf) -> None:
    source = numbered_pdf(2)
    assert pdf_to_docx(source).data[:2] == b"PK"
    assert pdf_to_markdown(source).data.decode("utf-8").count("Page") == 2


def test_pdf_info(make_pdf) -> None:
    info = pdf_info(make_pdf(3, width=200, height=100))
    assert info["pageCount"] == 3
    assert info["pages"][0]["width"] == 200
