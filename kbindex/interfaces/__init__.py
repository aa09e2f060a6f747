"""Abstract interfaces for the index's external collaborators.

Concrete adapters implement these and are injected at construction time by
:mod:`kbindex.main`, so tests can substitute in-memory fakes.

    Interface            ->  Concrete implementations
    ---------------------------------------------------------------
    IEmbeddingProvider   ->  OpenAIEmbeddingProvider, GeminiEmbeddingProvider,
                             NomicEmbeddingProvider
    ITextExtractor       ->  PlainTextExtractor, PDFExtractor, DocxExtractor,
                             PresentationExtractor, SpreadsheetExtractor
    IIndexStore          ->  JsonIndexStore
"""

from kbindex.interfaces.embedding_provider import IEmbeddingProvider
from kbindex.interfaces.index_store import IIndexStore
from kbindex.interfaces.text_extractor import ITextExtractor

__all__ = ["IEmbeddingProvider", "IIndexStore", "ITextExtractor"]
