"""Utilities for extracting plain text from office documents and PDFs."""

from __future__ import annotations

import io
import logging
from typing import BinaryIO, Callable

import fitz  # PyMuPDF
import pandas as pd
from docx import Document
from pptx import Presentation
from tika import parser as tika_parser

logger = logging.getLogger(__name__)

# Tika server round trips for large legacy documents can be slow
TIKA_REQUEST_TIMEOUT = 120


class ExtractionError(Exception):
    """Raised when a document cannot be converted to plain text."""


def extract_content_from_docx(data: bytes) -> str:
    """Extract paragraph and table text from a .docx document.

    Parameters
    ----------
    data : bytes
        Raw contents of the .docx file.

    Returns
    -------
    str
        The document text, one paragraph or table row per line.
    """
    doc = Document(io.BytesIO(data))
    text_parts = [paragraph.text for paragraph in doc.paragraphs]
    for table in doc.tables:
        for row in table.rows:
            cells = [cell.text.strip() for cell in row.cells if cell.text.strip()]
            if cells:
                text_parts.append(" | ".join(cells))
    return "\n".join(text_parts)


def extract_content_from_pdf(data: bytes) -> str:
    """Extract the digital text layer of every page of a PDF.

    Any page failure aborts the whole document so that partial text is never
    handed to the classifier.
    """
    with fitz.open(stream=data, filetype="pdf") as doc:
        if doc.needs_pass:
            raise ExtractionError("PDF is password protected")
        pages = []
        for page_num, page in enumerate(doc):
            try:
                pages.append(page.get_text())
            except Exception as exc:
                raise ExtractionError(
                    f"Failed to read page {page_num + 1}: {exc}"
                ) from exc
    return "\n".join(pages)


def _extract_workbook_text(excel_file: pd.ExcelFile) -> str:
    all_text = []

    for sheet_name in excel_file.sheet_names:
        logger.debug("Processing sheet: %s", sheet_name)
        df = excel_file.parse(sheet_name)
        if df.empty:
            continue

        headers = [
            str(col) for col in df.columns if not str(col).startswith("Unnamed:")
        ]
        if headers:
            all_text.append(" | ".join(headers))

        for row in df.itertuples(index=False, name=None):
            row_text = " | ".join(str(val) for val in row if pd.notna(val))
            if row_text.strip():
                all_text.append(row_text)

    return "\n".join(all_text)


def extract_content_from_xlsx(data: bytes) -> str:
    """Extract header and cell text from every worksheet of an .xlsx workbook."""
    with pd.ExcelFile(io.BytesIO(data)) as excel_file:
        return _extract_workbook_text(excel_file)


def extract_content_from_xls(data: bytes) -> str:
    """Extract header and cell text from a legacy .xls workbook."""
    with pd.ExcelFile(io.BytesIO(data), engine="xlrd") as excel_file:
        return _extract_workbook_text(excel_file)


def extract_content_from_pptx(data: bytes) -> str:
    """Extract the shape text of each slide of a .pptx deck, in slide order."""
    presentation = Presentation(io.BytesIO(data))
    slide_text = []
    for slide in presentation.slides:
        texts = [
            shape.text_frame.text.strip()
            for shape in slide.shapes
            if shape.has_text_frame and shape.text_frame.text.strip()
        ]
        if texts:
            slide_text.append(" ".join(texts))
    return "\n".join(slide_text)


def extract_content_from_legacy_office(data: bytes) -> str:
    """Extract the body text of a binary Word 97-2003 or PowerPoint file.

    Parameters
    ----------
    data : bytes
        Raw contents of the .doc or .ppt file.

    Returns
    -------
    str
        The document body as parsed by Apache Tika, without length limit.

    Raises
    ------
    ExtractionError
        If the Tika server rejects the document.
    """
    parsed = tika_parser.from_buffer(
        data, requestOptions={"timeout": TIKA_REQUEST_TIMEOUT}
    )
    status = parsed.get("status")
    if status != 200:
        raise ExtractionError(f"Tika could not parse document (status {status})")

    content_type = (parsed.get("metadata") or {}).get("Content-Type")
    logger.debug("Tika parsed legacy document as %s", content_type)
    return parsed.get("content") or ""


EXTRACTORS: dict[str, Callable[[bytes], str]] = {
    "doc": extract_content_from_legacy_office,
    "docx": extract_content_from_docx,
    "xls": extract_content_from_xls,
    "xlsx": extract_content_from_xlsx,
    "ppt": extract_content_from_legacy_office,
    "pptx": extract_content_from_pptx,
    "pdf": extract_content_from_pdf,
}


class TextExtractor:
    """Convert a document byte stream to plain text based on its extension."""

    def __init__(self, handlers: dict[str, Callable[[bytes], str]] | None = None):
        self._handlers = dict(EXTRACTORS if handlers is None else handlers)

    def supports(self, extension: str) -> bool:
        return extension.lower() in self._handlers

    def extract(self, stream: BinaryIO, extension: str) -> str:
        """Return the text of ``stream`` or raise :class:`ExtractionError`.

        Empty or whitespace-only output is treated as a failure.
        """
        handler = self._handlers.get(extension.lower())
        if handler is None:
            raise ExtractionError(f"No text extractor for .{extension} files")

        try:
            data = stream.read()
        except OSError as exc:
            raise ExtractionError(f"Unable to read document content: {exc}") from exc

        try:
            text = handler(data)
        except ExtractionError:
            raise
        except Exception as exc:
            raise ExtractionError(
                f"Failed to extract text from .{extension} document: {exc}"
            ) from exc

        if not text.strip():
            raise ExtractionError("Document contains no extractable text")

        logger.debug("Extracted %d characters from .%s document", len(text), extension)
        return text


__all__ = [
    "EXTRACTORS",
    "ExtractionError",
    "TextExtractor",
    "extract_content_from_docx",
    "extract_content_from_legacy_office",
    "extract_content_from_pdf",
    "extract_content_from_pptx",
    "extract_content_from_xls",
    "extract_content_from_xlsx",
]
