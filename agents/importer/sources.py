"""Read exported itinerary files (PDF, Excel, Word, plain text) into raw text."""

from __future__ import annotations

import logging
from pathlib import Path

import openpyxl
import pdfplumber
import xlrd
from docx import Document


logger = logging.getLogger(__name__)

TEXT_SUFFIXES = (".txt", ".md", ".text")
EXCEL_SUFFIXES = (".xlsx", ".xlsm")
WORD_SUFFIXES = (".docx",)


def extract_text(file_path: str | Path) -> str:
    """Extract itinerary text from a file, chosen by its suffix."""
    file_path = Path(file_path)

    if not file_path.exists():
        raise FileNotFoundError(f"File not found: {file_path}")

    suffix = file_path.suffix.lower()

    if suffix in TEXT_SUFFIXES:
        return file_path.read_text(encoding="utf-8")
    if suffix == ".pdf":
        return extract_text_from_pdf(file_path)
    if suffix in EXCEL_SUFFIXES:
        return extract_text_from_excel(file_path)
    if suffix == ".xls":
        return extract_text_from_xls(file_path)
    if suffix in WORD_SUFFIXES:
        return extract_text_from_word(file_path)
    if suffix == ".doc":
        raise ValueError("Legacy .doc format not supported. Please save as .docx")
    raise ValueError(f"Unsupported file format: {suffix}")


def extract_text_from_pdf(file_path: Path) -> str:
    """Extract text content from a PDF, one line per text line or table row."""
    text_parts = []

    # Try pdfplumber first (better table extraction)
    try:
        with pdfplumber.open(file_path) as pdf:
            for page in pdf.pages:
                page_text = page.extract_text()
                if page_text:
                    text_parts.append(page_text)
                for table in page.extract_tables():
                    for row in table:
                        if row:
                            text_parts.append(" | ".join(str(cell) for cell in row if cell))
    except Exception as e:
        logger.warning("pdfplumber failed on %s: %s", file_path, e)

    if not text_parts:
        logger.info("Trying PyPDF2 as fallback for %s", file_path)
        try:
            from PyPDF2 import PdfReader
            reader = PdfReader(file_path)
            for page in reader.pages:
                page_text = page.extract_text()
                if page_text:
                    text_parts.append(page_text)
        except Exception as e:
            logger.warning("PyPDF2 also failed on %s: %s", file_path, e)

    if not text_parts:
        raise ValueError("Could not extract any text from PDF. The file may be image-based or corrupted.")

    return "\n".join(text_parts)


def extract_text_from_excel(file_path: Path) -> str:
    """Extract rows from every sheet, cells joined with spaces.

    Spaces rather than separators keep a row like
    ("Sun, 21 Dec", "16:30", "Aeon Mall") readable by the line parser.
    """
    text_parts = []
    workbook = openpyxl.load_workbook(file_path, data_only=True, read_only=True)

    try:
        for sheet in workbook.worksheets:
            for row in sheet.iter_rows(values_only=True):
                values = [str(value).strip() for value in row if value is not None and str(value).strip()]
                if values:
                    text_parts.append(" ".join(values))
    finally:
        workbook.close()

    return "\n".join(text_parts)


def extract_text_from_xls(file_path: Path) -> str:
    """Extract rows from a legacy .xls workbook."""
    text_parts = []
    workbook = xlrd.open_workbook(str(file_path))

    for sheet in workbook.sheets():
        for row_idx in range(sheet.nrows):
            values = [str(cell).strip() for cell in sheet.row_values(row_idx) if str(cell).strip()]
            if values:
                text_parts.append(" ".join(values))

    return "\n".join(text_parts)


def extract_text_from_word(file_path: Path) -> str:
    """Extract paragraphs, then table rows, from a Word document."""
    doc = Document(str(file_path))
    text_parts = [para.text for para in doc.paragraphs if para.text.strip()]

    for table in doc.tables:
        for row in table.rows:
            values = [cell.text.strip() for cell in row.cells if cell.text.strip()]
            if values:
                text_parts.append(" ".join(values))

    return "\n".join(text_parts)
