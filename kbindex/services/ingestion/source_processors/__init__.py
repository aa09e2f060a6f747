"""Text extractors for each supported knowledge-base file format.

    Extension(s)   Extractor               Library
    -----------------------------------------------------
    txt, md        PlainTextExtractor      (stdlib)
    pdf            PDFExtractor            PyMuPDF
    docx           DocxExtractor           python-docx
    pptx, ppt      PresentationExtractor   python-pptx (.ppt rejected)
    xlsx, xls      SpreadsheetExtractor    openpyxl    (.xls rejected)
"""

from kbindex.interfaces.text_extractor import ITextExtractor
from kbindex.services.ingestion.source_processors.docx_processor import DocxExtractor
from kbindex.services.ingestion.source_processors.pdf_processor import PDFExtractor
from kbindex.services.ingestion.source_processors.presentation_processor import (
    PresentationExtractor,
)
from kbindex.services.ingestion.source_processors.spreadsheet_processor import (
    SpreadsheetExtractor,
)
from kbindex.services.ingestion.source_processors.text_processor import PlainTextExtractor


def build_extractor_registry() -> dict[str, ITextExtractor]:
    """Map every supported extension (lower-case, no dot) to an extractor."""
    registry: dict[str, ITextExtractor] = {}
    for extractor in (
        PlainTextExtractor(),
        PDFExtractor(),
        DocxExtractor(),
        PresentationExtractor(),
        SpreadsheetExtractor(),
    ):
        for extension in extractor.extensions:
            registry[extension] = extractor
    return registry


__all__ = [
    "DocxExtractor",
    "PDFExtractor",
    "PlainTextExtractor",
    "PresentationExtractor",
    "SpreadsheetExtractor",
    "build_extractor_registry",
]
