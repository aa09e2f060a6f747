"""Source processor for plain-text and Markdown files."""

from __future__ import annotations

from pathlib import Path

from kbindex.interfaces.text_extractor import ITextExtractor
from kbindex.utils.errors import ExtractionError


class PlainTextExtractor(ITextExtractor):
    """Reads ``.txt`` and ``.md`` files as UTF-8, replacing undecodable bytes."""

    extensions = ("txt", "md")

    def extract(self, path: Path) -> str:
        try:
            return Path(path).read_bytes().decode("utf-8", errors="replace")
        except OSError as exc:
            raise ExtractionError(
                f"Could not read {Path(path).name}",
                technical_message=str(exc),
            ) from exc
