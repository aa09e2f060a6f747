"""kbindex composition root.

Wires providers and services together via constructor injection.  This is
the only module that knows which concrete classes implement the interfaces;
everything else receives its collaborators as arguments.
"""

from __future__ import annotations

from kbindex.config.settings import Settings
from kbindex.interfaces.embedding_provider import IEmbeddingProvider
from kbindex.providers.index_store.json_index_store import JsonIndexStore
from kbindex.services.embedding_client import EMBEDDING_CONTEXT, EmbeddingClient
from kbindex.services.ingestion.chunker import TextChunker
from kbindex.services.ingestion.guard import IngestionGuard
from kbindex.services.ingestion.ingestion_service import IngestionService
from kbindex.services.knowledge_index import KnowledgeIndex
from kbindex.services.similarity import SearchService
from kbindex.services.watcher import KnowledgeBaseWatcher
from kbindex.utils.errors import ConfigurationError
from kbindex.utils.logging import get_logger
from kbindex.utils.retry import RetryPolicy

_logger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Provider factories
# ---------------------------------------------------------------------------


def _build_embedding_provider(app_settings: Settings) -> IEmbeddingProvider:
    """Select the first available embedding provider.

    Priority: OpenAI/OpenAI-compatible (if API key set) ->
              Gemini (if API key set) ->
              Nomic/Ollama (if reachable).

    Raises
    ------
    ConfigurationError
        If no provider is available.
    """
    if app_settings.openai_api_key:
        from kbindex.providers.embedding.openai_embedding_provider import (
            OpenAIEmbeddingProvider,
        )

        provider: IEmbeddingProvider = OpenAIEmbeddingProvider(settings=app_settings)
        if provider.is_available():
            return provider

    if app_settings.gemini_api_key:
        from kbindex.providers.embedding.gemini_embedding_provider import (
            GeminiEmbeddingProvider,
        )

        provider = GeminiEmbeddingProvider(settings=app_settings)
        if provider.is_available():
            return provider

    if app_settings.ollama_base_url:
        from kbindex.providers.embedding.nomic_embedding_provider import (
            NomicEmbeddingProvider,
        )

        provider = NomicEmbeddingProvider(settings=app_settings)
        if provider.is_available():
            return provider

    raise ConfigurationError(
        "No embedding provider is available. Set OPENAI_API_KEY or GEMINI_API_KEY, "
        "or run Ollama with nomic-embed-text.",
        technical_message=f"checked providers: {app_settings.get_available_embedding_providers()}",
    )


# ---------------------------------------------------------------------------
# Full DI assembly
# ---------------------------------------------------------------------------


def build_knowledge_index(
    app_settings: Settings,
    embedding_provider: IEmbeddingProvider | None = None,
) -> KnowledgeIndex:
    """Construct the store, services and watcher for *app_settings*.

    Parameters
    ----------
    embedding_provider:
        Use this provider instead of selecting one from the settings
        (tests inject an in-memory fake here).
    """
    provider = embedding_provider or _build_embedding_provider(app_settings)

    policy = RetryPolicy(
        EMBEDDING_CONTEXT,
        max_attempts=app_settings.embedding_max_attempts,
        base_delay_ms=app_settings.embedding_base_delay_ms,
    )
    embedding_client = EmbeddingClient(provider, policy)
    store = JsonIndexStore(app_settings.snapshot_path)
    chunker = TextChunker(chunk_size=app_settings.chunk_size, overlap=app_settings.chunk_overlap)

    ingestion = IngestionService(
        chunker=chunker,
        embedding_client=embedding_client,
        store=store,
        guard=IngestionGuard(),
    )
    search_service = SearchService(
        embedding_client,
        store,
        default_limit=app_settings.search_default_limit,
    )
    watcher = KnowledgeBaseWatcher(
        app_settings.knowledge_base_path,
        ingestion,
        debounce_ms=app_settings.watch_debounce_ms,
    )

    _logger.info(
        "knowledge_index_built",
        embedding_provider=provider.get_provider_name(),
        dimension=provider.get_dimension(),
        snapshot=str(app_settings.snapshot_path),
        knowledge_base=app_settings.knowledge_base_path,
    )
    return KnowledgeIndex(
        store=store,
        ingestion=ingestion,
        search_service=search_service,
        knowledge_base_path=app_settings.knowledge_base_path,
        watcher=watcher,
    )
