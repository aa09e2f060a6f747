"""Source processor for PDF files.

Reads PDF files using PyMuPDF (fitz) and extracts text page-by-page.
Scanned PDFs only yield text when they carry an embedded OCR text layer;
OCR itself is out of scope.
"""

from __future__ import annotations

from pathlib import Path

import fitz  # PyMuPDF -- the "fitz" import name is a PyMuPDF convention
import structlog

from kbindex.interfaces.text_extractor import ITextExtractor
from kbindex.utils.errors import ExtractionError

logger = structlog.get_logger(logger_name=__name__)


class PDFExtractor(ITextExtractor):
    """Extracts the text layer of every page, pages separated by newlines."""

    extensions = ("pdf",)

    def extract(self, path: Path) -> str:
        file_path = str(path)
        try:
            doc = fitz.open(file_path)
        except Exception as exc:  # noqa: BLE001 -- fitz raises several unrelated types
            raise ExtractionError(
                f"Could not open PDF {Path(path).name}",
                technical_message=str(exc),
            ) from exc

        pages: list[str] = []
        try:
            for page in doc:
                text = page.get_text("text").strip()
                if text:
                    pages.append(text)
        finally:
            doc.close()

        if not pages:
            logger.warning("pdf_no_text_extracted", file_path=file_path)
        return "\n".join(pages)
