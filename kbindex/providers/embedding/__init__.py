"""Embedding provider implementations.

Three implementations of IEmbeddingProvider, in selection order:
    1. OpenAIEmbeddingProvider -- text-embedding-3-small (1536 dims), or any
       OpenAI-compatible endpoint.  Requires an API key.
    2. GeminiEmbeddingProvider -- text-embedding-004 (768 dims) through
       Google's OpenAI-compatible endpoint.  Requires an API key.
    3. NomicEmbeddingProvider  -- nomic-embed-text via Ollama (768 dims).
       Free and local, but requires a running Ollama server.

All three share the batching loop of OpenAICompatibleEmbeddingProvider.
"""

from kbindex.providers.embedding.gemini_embedding_provider import GeminiEmbeddingProvider
from kbindex.providers.embedding.nomic_embedding_provider import NomicEmbeddingProvider
from kbindex.providers.embedding.openai_embedding_provider import (
    OpenAICompatibleEmbeddingProvider,
    OpenAIEmbeddingProvider,
)

__all__ = [
    "GeminiEmbeddingProvider",
    "NomicEmbeddingProvider",
    "OpenAICompatibleEmbeddingProvider",
    "OpenAIEmbeddingProvider",
]
