"""Abstract base class for document text extractors.

An extractor turns one file into plain text.  Format internals (PDF layout,
Office XML) are the libraries' business; the index only relies on this
contract.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path


class ITextExtractor(ABC):
    """Contract for turning a file into plain text."""

    #: Lower-case extensions (without dot) this extractor handles.
    extensions: tuple[str, ...] = ()

    @abstractmethod
    def extract(self, path: Path) -> str:
        """Return the text content of the file at *path*.

        Raises
        ------
        kbindex.utils.errors.ExtractionError
            If the file cannot be opened or parsed.
        """

    def get_extractor_name(self) -> str:
        return type(self).__name__
