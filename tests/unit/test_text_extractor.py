"""Unit tests for format-specific raw-text extraction."""

from __future__ import annotations

import pytest

from docvector.models.document import SourceKind
from docvector.services.ingestion.text_extractor import (
    _EXTRACTORS,
    TextExtractor,
    _format_cell,
    extract_docx,
    extract_excel,
    extract_image,
    extract_pdf,
    extract_text,
    extract_xls,
)
from docvector.utils.errors import ExtractionError


class TestPdf:
    def test_pages_in_order_blank_pages_skipped(self, pdf_bytes: bytes) -> None:
        text = extract_pdf(pdf_bytes)
        assert text == "Quarterly revenue grew eleven percent.\n\nCosts were flat."

    def test_corrupt_pdf_raises_extraction_error(self) -> None:
        with pytest.raises(ExtractionError) as exc_info:
            TextExtractor().extract(b"%PDF-1.4 not really a pdf", SourceKind.PDF)
        assert exc_info.value.source_kind == "pdf"


class TestDocx:
    def test_paragraphs_and_table_in_body_order(self, docx_bytes: bytes) -> None:
        text = extract_docx(docx_bytes)
        assert text == (
            "Board minutes\n\n"
            "Item | Decision\n"
            "Retention policy | Approved\n\n"
            "Meeting closed at noon."
        )

    def test_invalid_docx_raises_extraction_error(self) -> None:
        with pytest.raises(ExtractionError):
            TextExtractor().extract(b"not a zip archive", SourceKind.DOCX)


class TestExcel:
    def test_rows_rendered_under_sheet_header(self, xlsx_bytes: bytes) -> None:
        text = extract_excel(xlsx_bytes)
        assert text == (
            "Sheet: Revenue\n"
            "Row 1: Region | Amount\n"
            "Row 2: North | 1200\n"
            "Row 3: South | 950.5"
        )

    def test_blank_sheet_is_skipped(self, xlsx_bytes: bytes) -> None:
        assert "Sheet: Notes" not in extract_excel(xlsx_bytes)

    def test_invalid_workbook_raises_extraction_error(self) -> None:
        with pytest.raises(ExtractionError) as exc_info:
            TextExtractor().extract(b"garbage", SourceKind.EXCEL)
        assert exc_info.value.source_kind == "excel"

    @pytest.mark.parametrize(
        ("value", "expected"),
        [(None, ""), (3.0, "3"), (2.5, "2.5"), (7, "7"), ("text", "text"), (True, "True")],
    )
    def test_format_cell(self, value: object, expected: str) -> None:
        assert _format_cell(value) == expected


class TestLegacyExcel:
    def test_xls_renders_like_xlsx(self, xls_bytes: bytes, xlsx_bytes: bytes) -> None:
        assert extract_xls(xls_bytes) == extract_excel(xlsx_bytes)

    def test_excel_kind_reads_xls(self, xls_bytes: bytes) -> None:
        text = TextExtractor().extract(xls_bytes, SourceKind.EXCEL)
        assert text.startswith("Sheet: Revenue\nRow 1: Region | Amount")
        assert "Sheet: Notes" not in text

    def test_corrupt_xls_raises_extraction_error(self) -> None:
        corrupt = b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1" + b"\x00" * 64
        with pytest.raises(ExtractionError) as exc_info:
            TextExtractor().extract(corrupt, SourceKind.EXCEL)
        assert exc_info.value.source_kind == "excel"


class TestImageAndText:
    def test_image_has_no_raw_text(self, png_bytes: bytes) -> None:
        assert extract_image(png_bytes) == ""

    def test_text_decoded_unchanged(self) -> None:
        assert extract_text("line one\nline two café".encode()) == "line one\nline two café"

    def test_text_byte_order_mark_dropped(self) -> None:
        assert extract_text(b"\xef\xbb\xbfhello") == "hello"

    def test_invalid_utf8_raises_extraction_error(self) -> None:
        with pytest.raises(ExtractionError) as exc_info:
            TextExtractor().extract(b"\xff\xfe\xfa", SourceKind.TEXT)
        assert isinstance(exc_info.value.cause, UnicodeDecodeError)


class TestDispatch:
    def test_extract_dispatches_by_kind(self, docx_bytes: bytes) -> None:
        assert TextExtractor().extract(docx_bytes, SourceKind.DOCX).startswith("Board minutes")

    def test_every_kind_has_an_extractor(self) -> None:
        assert set(_EXTRACTORS) == set(SourceKind)
