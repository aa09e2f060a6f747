"""Embedding client: one provider call per text, under the retry policy."""

from __future__ import annotations

from kbindex.interfaces.embedding_provider import IEmbeddingProvider
from kbindex.utils.errors import EmbeddingError, RemoteCallError
from kbindex.utils.retry import RetryPolicy

EMBEDDING_CONTEXT = "Embedding Generation"


class EmbeddingClient:
    """Turns text into a vector, retrying transient provider failures.

    Parameters
    ----------
    provider:
        The embedding backend.
    policy:
        Retry policy; defaults to 3 attempts with a 2000 ms base delay under
        the ``"Embedding Generation"`` context.
    """

    def __init__(self, provider: IEmbeddingProvider, policy: RetryPolicy | None = None) -> None:
        self._provider = provider
        self._policy = policy or RetryPolicy(EMBEDDING_CONTEXT, max_attempts=3, base_delay_ms=2000)

    @property
    def provider_name(self) -> str:
        return self._provider.get_provider_name()

    @property
    def dimension(self) -> int:
        return self._provider.get_dimension()

    @property
    def policy(self) -> RetryPolicy:
        return self._policy

    async def embed(self, text: str) -> list[float]:
        """Embed *text*.

        Raises
        ------
        EmbeddingError
            When retries are exhausted or the failure is not retryable.
        """
        try:
            return await self._policy.call(lambda: self._provider.embed_single(text))
        except RemoteCallError as exc:
            raise EmbeddingError.from_remote(exc) from exc
