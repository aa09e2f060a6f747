"""Embedding providers that speak the OpenAI embeddings API.

:class:`OpenAICompatibleEmbeddingProvider` holds the request loop shared by
every adapter in this package: inputs are split into batches no larger than
the service's per-request limit and the vectors are returned in input order.
:class:`OpenAIEmbeddingProvider` points it at OpenAI itself or at any
compatible gateway (TogetherAI, Fireworks, a local proxy).

Clients are created with ``max_retries=0``.  SDK exceptions propagate
untouched so :func:`kbindex.utils.retry.classify_error` sees their status
codes and the embedding client's policy stays the only retry layer.
"""

from __future__ import annotations

import openai
import structlog

from kbindex.config.settings import Settings
from kbindex.interfaces.embedding_provider import IEmbeddingProvider

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_MODEL = "text-embedding-3-small"

_MODEL_DIMENSIONS: dict[str, int] = {
    "text-embedding-3-small": 1536,
    "text-embedding-3-large": 3072,
    "text-embedding-ada-002": 1536,
    "BAAI/bge-base-en-v1.5": 768,
    "BAAI/bge-large-en-v1.5": 1024,
    "intfloat/multilingual-e5-large-instruct": 1024,
}


class OpenAICompatibleEmbeddingProvider(IEmbeddingProvider):
    """Batching request loop over an ``openai.AsyncOpenAI`` client.

    Parameters
    ----------
    client:
        Async client already pointed at the target endpoint.
    model:
        Embedding model name sent with every request.
    dimension:
        Vector length the model produces.
    name:
        Value returned by :meth:`get_provider_name`.
    batch_limit:
        Maximum number of inputs per request.
    """

    def __init__(
        self,
        client: openai.AsyncOpenAI,
        model: str,
        dimension: int,
        name: str,
        batch_limit: int,
    ) -> None:
        self._client = client
        self._model = model
        self._dimension = dimension
        self._name = name
        self._batch_limit = batch_limit

    @property
    def model(self) -> str:
        return self._model

    async def embed(self, texts: list[str]) -> list[list[float]]:
        if not texts:
            return []

        vectors: list[list[float]] = []
        for offset in range(0, len(texts), self._batch_limit):
            batch = texts[offset : offset + self._batch_limit]
            response = await self._client.embeddings.create(input=batch, model=self._model)
            vectors.extend(item.embedding for item in response.data)
            usage = getattr(response, "usage", None)
            logger.debug(
                "embedding_batch_completed",
                provider=self._name,
                model=self._model,
                batch_size=len(batch),
                tokens=getattr(usage, "total_tokens", None),
            )
        return vectors

    async def embed_single(self, text: str) -> list[float]:
        (vector,) = await self.embed([text])
        return vector

    def get_dimension(self) -> int:
        return self._dimension

    def get_provider_name(self) -> str:
        return self._name


class OpenAIEmbeddingProvider(OpenAICompatibleEmbeddingProvider):
    """OpenAI (or an OpenAI-compatible gateway when ``openai_base_url`` is set).

    Defaults to ``text-embedding-3-small`` (1536 dimensions); unknown
    gateway models are assumed to produce 768-dimensional vectors.
    """

    def __init__(self, settings: Settings) -> None:
        self._api_key = settings.openai_api_key
        client_kwargs: dict = {"api_key": self._api_key or "unset", "max_retries": 0}
        if settings.openai_base_url:
            client_kwargs["base_url"] = settings.openai_base_url

        model = settings.openai_embedding_model or _DEFAULT_MODEL
        super().__init__(
            client=openai.AsyncOpenAI(**client_kwargs),
            model=model,
            dimension=_MODEL_DIMENSIONS.get(model, 768),
            name="openai-compatible_embedding" if settings.openai_base_url else "openai_embedding",
            batch_limit=2048,
        )

    def is_available(self) -> bool:
        return bool(self._api_key)
