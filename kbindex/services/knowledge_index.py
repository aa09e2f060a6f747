"""Caller-facing facade over the incremental embedding index.

:class:`KnowledgeIndex` is what a chat service, HTTP layer or the CLI talks
to.  It owns no logic of its own beyond lifecycle ordering:

    start()  ->  load snapshot -> scan knowledge base -> start watcher
    close()  ->  stop watcher

Everything else delegates to the ingestion service (mutations, all guarded)
or the search service (read-only, never waits for ingestion).
"""

from __future__ import annotations

from pathlib import Path

import structlog

from kbindex.interfaces.index_store import IIndexStore
from kbindex.models.index import DirectoryScanResult, DocumentSummary, IndexStats, SearchResult
from kbindex.services.ingestion.ingestion_service import IngestionService
from kbindex.services.similarity import SearchService
from kbindex.services.watcher import KnowledgeBaseWatcher

logger = structlog.get_logger(logger_name=__name__)


class KnowledgeIndex:
    """Single entry point for indexing and searching a knowledge-base folder."""

    def __init__(
        self,
        store: IIndexStore,
        ingestion: IngestionService,
        search_service: SearchService,
        knowledge_base_path: str | Path,
        watcher: KnowledgeBaseWatcher | None = None,
    ) -> None:
        self._store = store
        self._ingestion = ingestion
        self._search_service = search_service
        self._knowledge_base_path = Path(knowledge_base_path)
        self._watcher = watcher
        self._started = False

    @property
    def knowledge_base_path(self) -> Path:
        return self._knowledge_base_path

    @property
    def ingestion(self) -> IngestionService:
        return self._ingestion

    @property
    def watcher(self) -> KnowledgeBaseWatcher | None:
        return self._watcher

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self, scan: bool = True, watch: bool = True) -> DirectoryScanResult | None:
        """Load the snapshot, optionally scan the folder and start watching.

        A corrupt snapshot raises :class:`~kbindex.utils.errors.PersistenceError`
        rather than being silently overwritten.
        """
        await self._store.load()
        self._knowledge_base_path.mkdir(parents=True, exist_ok=True)

        result = await self._ingestion.process_directory(self._knowledge_base_path) if scan else None
        if watch and self._watcher is not None:
            await self._watcher.start()

        self._started = True
        stats = self._store.get_stats()
        logger.info(
            "knowledge_index_started",
            knowledge_base=str(self._knowledge_base_path),
            document_count=stats.document_count,
            source_count=stats.source_count,
            watching=bool(watch and self._watcher is not None),
        )
        return result

    async def close(self) -> None:
        if self._watcher is not None and self._watcher.is_running:
            await self._watcher.stop()
        self._started = False
        logger.info("knowledge_index_closed")

    async def __aenter__(self) -> KnowledgeIndex:
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # Mutations (guarded; None / False means dropped)
    # ------------------------------------------------------------------

    async def process_document(self, path: str | Path, name: str | None = None) -> DocumentSummary | None:
        return await self._ingestion.process_document(path, name)

    async def process_directory(self, path: str | Path | None = None) -> DirectoryScanResult | None:
        return await self._ingestion.process_directory(path or self._knowledge_base_path)

    async def reprocess_all(self, path: str | Path | None = None) -> DirectoryScanResult | None:
        return await self._ingestion.reprocess_all(path or self._knowledge_base_path)

    async def remove_by_source(self, name: str) -> int | None:
        return await self._ingestion.remove_by_source(name)

    async def clear(self) -> bool:
        return await self._ingestion.clear()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def search(self, query: str, k: int | None = None) -> list[SearchResult]:
        return await self._search_service.search(query, k)

    def stats(self) -> IndexStats:
        return self._store.get_stats()
