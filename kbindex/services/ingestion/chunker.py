"""Text chunking with overlapping character windows and sentence-boundary cuts.

Splits document text into plain-string chunks sized for embedding models
(1000 characters with 200 characters of overlap by default).

The strategy is greedy and local:

1. Take a window of ``chunk_size`` characters starting at ``start``.
2. If the window stops before the end of the text, look for the last ``.``
   or newline inside it.  When that break point lies past the middle of the
   window, cut right after it and continue from there (no overlap needed,
   the cut is on a sentence boundary).
3. Otherwise cut at the full window and step back ``overlap`` characters so
   a sentence straddling the cut is captured whole in at least one chunk.

Every step advances by at least ``chunk_size - overlap`` or more than half a
window, so the loop always terminates.
"""

from __future__ import annotations

import re

import structlog

from kbindex.utils.errors import ConfigurationError

logger = structlog.get_logger(logger_name=__name__)

_WHITESPACE_RUN = re.compile(r"\s+")


def clean_text(text: str) -> str:
    """Collapse every whitespace run into a single space and trim."""
    return _WHITESPACE_RUN.sub(" ", text).strip()


class TextChunker:
    """Splits text into overlapping chunks.

    Parameters
    ----------
    chunk_size:
        Maximum characters per chunk (default 1000).
    overlap:
        Characters shared by consecutive chunks cut mid-sentence
        (default 200).  Must be smaller than *chunk_size*.

    Raises
    ------
    ConfigurationError
        If ``chunk_size <= 0``, ``overlap < 0`` or ``overlap >= chunk_size``.
    """

    def __init__(self, chunk_size: int = 1000, overlap: int = 200) -> None:
        if chunk_size <= 0:
            raise ConfigurationError(
                "Chunk size must be positive",
                technical_message=f"chunk_size={chunk_size}",
            )
        if overlap < 0 or overlap >= chunk_size:
            raise ConfigurationError(
                "Chunk overlap must be between 0 and the chunk size",
                technical_message=f"chunk_size={chunk_size} overlap={overlap}",
            )
        self._chunk_size = chunk_size
        self._overlap = overlap

    @property
    def chunk_size(self) -> int:
        return self._chunk_size

    @property
    def overlap(self) -> int:
        return self._overlap

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def chunk(self, text: str) -> list[str]:
        """Split *text* into non-empty, trimmed chunks.

        Empty or whitespace-only input returns an empty list; text no longer
        than ``chunk_size`` returns exactly one chunk.
        """
        if not text or not text.strip():
            return []

        chunks: list[str] = []
        length = len(text)
        start = 0
        while start < length:
            end = min(start + self._chunk_size, length)
            window = text[start:end]

            if end < length:
                break_point = max(window.rfind("."), window.rfind("\n"))
                if break_point > self._chunk_size * 0.5:
                    window = text[start : start + break_point + 1]
                    start = start + break_point + 1
                else:
                    start = end - self._overlap
            else:
                start = end

            piece = window.strip()
            if piece:
                chunks.append(piece)

        logger.debug(
            "chunking_complete",
            num_chunks=len(chunks),
            text_length=length,
            chunk_size=self._chunk_size,
            overlap=self._overlap,
        )
        return chunks
