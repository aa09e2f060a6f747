"""Google Gemini embeddings through Google's OpenAI-compatible endpoint.

``text-embedding-004`` (768 dimensions) is the default model; the endpoint
accepts at most 100 inputs per request.
"""

from __future__ import annotations

import openai

from kbindex.config.settings import Settings
from kbindex.providers.embedding.openai_embedding_provider import (
    OpenAICompatibleEmbeddingProvider,
)

GEMINI_OPENAI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta/openai/"

_DIMENSIONS = {"text-embedding-004": 768, "gemini-embedding-001": 3072}


class GeminiEmbeddingProvider(OpenAICompatibleEmbeddingProvider):
    def __init__(self, settings: Settings) -> None:
        self._api_key = settings.gemini_api_key
        model = settings.gemini_embedding_model or "text-embedding-004"
        super().__init__(
            client=openai.AsyncOpenAI(
                api_key=self._api_key or "unset",
                base_url=GEMINI_OPENAI_BASE_URL,
                max_retries=0,
            ),
            model=model,
            dimension=_DIMENSIONS.get(model, 768),
            name="gemini_embedding",
            batch_limit=100,
        )

    def is_available(self) -> bool:
        return bool(self._api_key)
