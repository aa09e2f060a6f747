"""``nomic-embed-text`` served by a local Ollama instance.

Ollama exposes an OpenAI-compatible API under ``/v1`` and needs no key.
Availability is a quick check of ``/api/tags`` so the composition root can
fall back to this provider only when the server is actually running.
"""

from __future__ import annotations

import httpx
import openai
import structlog

from kbindex.config.settings import Settings
from kbindex.providers.embedding.openai_embedding_provider import (
    OpenAICompatibleEmbeddingProvider,
)

logger = structlog.get_logger(logger_name=__name__)

NOMIC_MODEL = "nomic-embed-text"
NOMIC_DIMENSION = 768


class NomicEmbeddingProvider(OpenAICompatibleEmbeddingProvider):
    """768-dimensional embeddings from Ollama, 512 inputs per request."""

    def __init__(self, settings: Settings) -> None:
        self._ollama_url = settings.ollama_base_url.rstrip("/")
        super().__init__(
            client=openai.AsyncOpenAI(
                base_url=f"{self._ollama_url}/v1",
                api_key="ollama",
                max_retries=0,
            ),
            model=NOMIC_MODEL,
            dimension=NOMIC_DIMENSION,
            name="nomic_embedding",
            batch_limit=512,
        )

    def is_available(self) -> bool:
        if not self._ollama_url:
            return False
        try:
            response = httpx.get(f"{self._ollama_url}/api/tags", timeout=3.0)
        except (httpx.ConnectError, httpx.TimeoutException) as exc:
            logger.debug("ollama_unreachable", url=self._ollama_url, error=str(exc))
            return False
        return response.status_code == 200
