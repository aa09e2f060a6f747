"""Source processor for PowerPoint files via python-pptx.

Only the Office Open XML format (``.pptx``) can be read.  Legacy binary
``.ppt`` files are accepted by the directory scan but rejected here, before
python-pptx is called, with an :class:`~kbindex.utils.errors.ExtractionError`
asking for a ``.pptx`` copy.  The scan records them as failed files.
"""

from __future__ import annotations

from pathlib import Path

from pptx import Presentation

from kbindex.interfaces.text_extractor import ITextExtractor
from kbindex.utils.errors import ExtractionError


class PresentationExtractor(ITextExtractor):
    """Extracts the text frames and tables of every slide, in slide order."""

    extensions = ("pptx", "ppt")

    def extract(self, path: Path) -> str:
        name = Path(path).name
        if Path(path).suffix.lower() == ".ppt":
            raise ExtractionError(
                f"Legacy PowerPoint file {name} cannot be read; save it as .pptx",
                technical_message=f"{name}: python-pptx reads Office Open XML presentations only",
            )

        try:
            presentation = Presentation(str(path))
        except Exception as exc:  # noqa: BLE001 -- zip, XML and package errors
            raise ExtractionError(
                f"Could not open presentation {name}",
                technical_message=str(exc),
            ) from exc

        lines: list[str] = []
        for slide in presentation.slides:
            for shape in slide.shapes:
                if shape.has_text_frame:
                    text = shape.text_frame.text.strip()
                    if text:
                        lines.append(text)
                elif getattr(shape, "has_table", False) and shape.has_table:
                    for row in shape.table.rows:
                        cells = [cell.text.strip() for cell in row.cells]
                        if any(cells):
                            lines.append(" | ".join(cells))
        return "\n".join(lines)
