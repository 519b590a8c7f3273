"""Format-specific raw-text extraction for uploaded documents.

One extraction function per :class:`~docvector.models.document.SourceKind`,
dispatched through the closed ``_EXTRACTORS`` table:

* PDF   - PyMuPDF page text in document order, blank pages skipped.
* DOCX  - python-docx paragraphs and table rows in body order.
* Excel - openpyxl (.xlsx) or xlrd (.xls) cell values as ``Row <n>: a | b``
  lines under a ``Sheet: <name>`` header; blank sheets skipped.
* Image - no text of its own; the pipeline captions it instead.
* Text  - UTF-8 decoded, otherwise unchanged.

All parsers are synchronous; the pipeline calls :meth:`TextExtractor.extract`
from a worker thread.  Any parser failure is re-raised as
:class:`~docvector.utils.errors.ExtractionError`.
"""

from __future__ import annotations

import io
from collections.abc import Iterable, Sequence
from typing import Any, Callable

import docx
import fitz  # PyMuPDF -- the "fitz" import name is a PyMuPDF convention
import openpyxl
import structlog
import xlrd
from docx.table import Table
from docx.text.paragraph import Paragraph

from docvector.models.document import SourceKind
from docvector.utils.errors import ExtractionError

logger = structlog.get_logger(logger_name=__name__)


def extract_pdf(data: bytes) -> str:
    """Concatenate page text across the PDF in page order."""
    doc = fitz.open(stream=data, filetype="pdf")
    try:
        if doc.needs_pass:
            msg = "PDF is password protected"
            raise ValueError(msg)
        pages: list[str] = []
        for page in doc:
            text = page.get_text("text").strip()
            if text:
                pages.append(text)
    finally:
        doc.close()
    return "\n\n".join(pages)


def extract_docx(data: bytes) -> str:
    """Return the body text of a DOCX file, formatting discarded."""
    document = docx.Document(io.BytesIO(data))
    blocks: list[str] = []
    for block in document.iter_inner_content():
        if isinstance(block, Paragraph):
            text = block.text.strip()
            if text:
                blocks.append(text)
        elif isinstance(block, Table):
            rows = [
                " | ".join(cell.text.strip() for cell in row.cells)
                for row in block.rows
                if any(cell.text.strip() for cell in row.cells)
            ]
            if rows:
                blocks.append("\n".join(rows))
    return "\n\n".join(blocks)


# Compound File header that opens every legacy BIFF (.xls) workbook.
_OLE2_MAGIC = b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1"


def extract_excel(data: bytes) -> str:
    """Render every non-blank sheet as numbered, pipe-delimited rows.

    Legacy ``.xls`` workbooks are recognised by their header and read with
    xlrd; everything else goes through openpyxl.
    """
    if data.startswith(_OLE2_MAGIC):
        return extract_xls(data)
    workbook = openpyxl.load_workbook(io.BytesIO(data), read_only=True, data_only=True)
    try:
        return _render_sheets(
            (worksheet.title, worksheet.iter_rows(values_only=True))
            for worksheet in workbook.worksheets
        )
    finally:
        workbook.close()


def extract_xls(data: bytes) -> str:
    """Same rendering as :func:`extract_excel` for a legacy BIFF workbook."""
    book = xlrd.open_workbook(file_contents=data, on_demand=True)
    try:
        return _render_sheets(
            (sheet.name, (sheet.row_values(r) for r in range(sheet.nrows)))
            for sheet in (book.sheet_by_index(i) for i in range(book.nsheets))
        )
    finally:
        book.release_resources()


def _render_sheets(sheets: Iterable[tuple[str, Iterable[Sequence[Any]]]]) -> str:
    blocks: list[str] = []
    for title, raw_rows in sheets:
        rows = [[_format_cell(value) for value in row] for row in raw_rows]
        non_empty = [row for row in rows if any(cell.strip() for cell in row)]
        if not non_empty:
            continue
        lines = [f"Sheet: {title}"]
        lines.extend(
            f"Row {number}: {' | '.join(row)}"
            for number, row in enumerate(non_empty, start=1)
        )
        blocks.append("\n".join(lines))
    return "\n\n".join(blocks)


def extract_image(data: bytes) -> str:
    """Images carry no extractable text; their caption comes from the summarizer."""
    return ""


def extract_text(data: bytes) -> str:
    # utf-8-sig drops a leading byte-order mark if present.
    return data.decode("utf-8-sig")


def _format_cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


_EXTRACTORS: dict[SourceKind, Callable[[bytes], str]] = {
    SourceKind.PDF: extract_pdf,
    SourceKind.DOCX: extract_docx,
    SourceKind.EXCEL: extract_excel,
    SourceKind.IMAGE: extract_image,
    SourceKind.TEXT: extract_text,
}


class TextExtractor:
    """Dispatches raw bytes to the extraction function for their kind."""

    def extract(self, data: bytes, kind: SourceKind) -> str:
        """Extract raw text from ``data``.

        Raises
        ------
        ExtractionError
            If the bytes cannot be parsed as ``kind``.
        """
        extractor = _EXTRACTORS[kind]
        try:
            text = extractor(data)
        except Exception as exc:
            logger.warning("extraction_failed", source_kind=kind.value, error=str(exc))
            raise ExtractionError(source_kind=kind.value, cause=exc) from exc

        logger.debug("text_extracted", source_kind=kind.value, characters=len(text))
        return text
