"""Abstract base class for text-embedding providers.

Implementations live in :mod:`kbindex.providers.embedding` (OpenAI or a
compatible gateway, Gemini, Nomic via Ollama); the composition root picks
the first one that is available.

Providers do **not** retry.  They let the SDK's exceptions propagate so
:func:`kbindex.utils.retry.classify_error` can read their status codes;
:class:`kbindex.services.embedding_client.EmbeddingClient` applies the
retry policy on top.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class IEmbeddingProvider(ABC):
    """Turns text into fixed-length vectors."""

    @abstractmethod
    async def embed(self, texts: list[str]) -> list[list[float]]:
        """Embed a batch of texts.

        Parameters
        ----------
        texts:
            Texts to embed.  Implementations split the list when the service
            caps the number of inputs per request.

        Returns
        -------
        list[list[float]]
            One vector per input, in input order.
        """

    @abstractmethod
    async def embed_single(self, text: str) -> list[float]:
        """Embed one text; the call ingestion and search make per chunk or query."""

    @abstractmethod
    def get_dimension(self) -> int:
        """Length of the vectors this provider produces (e.g. 1536 or 768)."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Identifier used in logs, e.g. ``"openai_embedding"``."""

    @abstractmethod
    def is_available(self) -> bool:
        """Whether the provider is configured (and, for local servers, reachable).

        Must not generate an embedding.
        """
