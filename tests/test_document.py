from io import BytesIO

import pytest
from pypdf import PdfWriter

from pdftools_worker.document import (
    document_info,
    fitz_document,
    load_document,
    new_document,
    write_document,
)
from pdftools_worker.errors import CorruptDocumentError, PageRangeError, SerializationError


def test_load_and_write_round_trip(make_pdf) -> None:
    document = load_document(make_pdf(3, width=200, height=400))
    assert document.page_count == 3
    assert document.page_size(2) == (200, 400)

    reloaded = load_document(write_document(document))
    assert reloaded.page_count == 3


def test_load_document_does_not_share_state(make_pdf) -> None:
    """Two loads of the same bytes are independent page trees."""
    data = make_pdf(2)
    first = load_document(data)
    second = load_document(data)
    first.writer.add_blank_page(width=100, height=100)
    assert first.page_count == 3
    assert second.page_count == 2


@pytest.mark.parametrize(
    "data",
    [
        b"",
        b"hello world, definitely not a pdf",
        b"%PDF-1.7\n%\xe2\xe3\xcf\xd3\n1 0 obj\n<< /Type /Catalog",
    ],
)
def test_load_document_rejects_bad_bytes(data) -> None:
    with pytest.raises(CorruptDocumentError):
        load_document(data)


def test_load_document_rejects_truncated_file(make_pdf) -> None:
    data = make_pdf(2)
    with pytest.raises(CorruptDocumentError):
        load_document(data[: len(data) // 3])


def test_load_document_encrypted_needs_password() -> None:
    writer = PdfWriter()
    writer.add_blank_page(width=200, height=200)
    writer.encrypt("secret", algorithm="RC4-128")
    buffer = BytesIO()
    writer.write(buffer)
    data = buffer.getvalue()

    with pytest.raises(CorruptDocumentError):
        load_document(data)
    with pytest.raises(CorruptDocumentError):
        load_document(data, password="wrong")
    document = load_document(data, password="secret")
    assert document.encrypted is True
    assert document.page_count == 1


def test_page_lookup_is_one_based(make_pdf) -> None:
    document = load_document(make_pdf(2))
    assert document.page(1) is not None
    with pytest.raises(PageRangeError) as excinfo:
        document.page(3)
    assert excinfo.value.bound == 2
    with pytest.raises(PageRangeError):
        document.page(0)


def test_write_document_without_pages() -> None:
    with pytest.raises(SerializationError):
        write_document(new_document())


def test_new_document_carries_metadata(make_pdf) -> None:
    document = new_document({"/Title": "Quarterly report", "/Author": None})
    document.append_page(load_document(make_pdf(1)).page(1))
    reloaded = load_document(write_document(document))
    assert reloaded.metadata.get("/Title") == "Quarterly report"
    assert "/Author" not in reloaded.metadata


def test_normalize_rotation_swaps_displayed_size(make_pdf) -> None:
    document = load_document(make_pdf(1, width=200, height=400, rotation=90))
    assert document.rotation(1) == 90
    document.normalize_rotation(1)
    assert document.rotation(1) == 0
    assert document.page_size(1) == pytest.approx((400, 200))


def test_fitz_document_sees_same_pages(make_pdf) -> None:
    document = load_document(make_pdf(4))
    with fitz_document(document) as pdf:
        assert pdf.page_count == 4


def test_document_info(make_pdf) -> None:
    info = document_info(load_document(make_pdf(2, width=300, height=500)))
    assert info["pageCount"] == 2
    assert info["encrypted"] is False
    assert info["pages"][1] == {"page": 2, "width": 300, "height": 500, "rotation": 0}
