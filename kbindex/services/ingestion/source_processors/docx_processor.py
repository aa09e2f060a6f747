"""Source processor for Word ``.docx`` files via python-docx.

python-docx reads the XML inside the DOCX zip archive.  Body paragraphs are
extracted in order, followed by table rows with cells separated by `` | ``.
"""

from __future__ import annotations

from pathlib import Path

from docx import Document

from kbindex.interfaces.text_extractor import ITextExtractor
from kbindex.utils.errors import ExtractionError


class DocxExtractor(ITextExtractor):
    extensions = ("docx",)

    def extract(self, path: Path) -> str:
        try:
            document = Document(str(path))
        except Exception as exc:  # noqa: BLE001 -- zip, XML and package errors
            raise ExtractionError(
                f"Could not open Word document {Path(path).name}",
                technical_message=str(exc),
            ) from exc

        lines = [p.text for p in document.paragraphs if p.text.strip()]
        for table in document.tables:
            for row in table.rows:
                cells = [cell.text.strip() for cell in row.cells]
                if any(cells):
                    lines.append(" | ".join(cells))
        return "\n".join(lines)
