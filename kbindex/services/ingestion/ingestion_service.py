"""Orchestrator for the document ingestion pipeline.

Pipeline stages: **extract -> clean -> chunk -> embed -> store -> save**.

:class:`IngestionService` coordinates its collaborators (text extractors,
chunker, embedding client, index store) without any of them knowing about
each other.  Every public method is a mutation of the index and runs under
the shared :class:`~kbindex.services.ingestion.guard.IngestionGuard`; a call
made while another mutation is in flight is dropped and returns ``None``
(``False`` for :meth:`clear`).

Failure handling:

* a chunk whose embedding fails is skipped and counted; the rest of the
  document is indexed (chunk indices may then have gaps)
* a file that fails on its own (unreadable, unsupported, vanished, or
  embedded with a vector size the index does not hold) is logged and recorded
  in ``failed_files``; a directory scan continues with the next file
* a snapshot write failure (:class:`PersistenceError`) aborts the operation
"""

from __future__ import annotations

import asyncio
import time
from pathlib import Path

import structlog

from kbindex.interfaces.index_store import IIndexStore
from kbindex.interfaces.text_extractor import ITextExtractor
from kbindex.models.index import (
    ChunkMetadata,
    ChunkRecord,
    DirectoryScanResult,
    DocumentSummary,
    SourceDocument,
)
from kbindex.services.embedding_client import EmbeddingClient
from kbindex.services.ingestion.chunker import TextChunker, clean_text
from kbindex.services.ingestion.guard import IngestionGuard
from kbindex.services.ingestion.source_processors import build_extractor_registry
from kbindex.utils.errors import (
    EmbeddingError,
    KnowledgeIndexError,
    PersistenceError,
    UnsupportedFormatError,
)

logger = structlog.get_logger(logger_name=__name__)

SUPPORTED_EXTENSIONS = frozenset({"pdf", "txt", "md", "docx", "ppt", "pptx", "xls", "xlsx"})

# OS and VCS artifacts that may carry a supported-looking name.
EXCLUDED_FILENAMES = frozenset({".gitkeep", ".ds_store", "thumbs.db", ".gitignore"})


def is_supported_file(path: str | Path) -> bool:
    """Return ``True`` if *path* names a file the index should ingest.

    Dotfiles and OS artifacts are excluded; otherwise the lower-case
    extension must be one of :data:`SUPPORTED_EXTENSIONS`.
    """
    name = Path(path).name
    if not name or name.startswith(".") or name.lower() in EXCLUDED_FILENAMES:
        return False
    return Path(name).suffix.lower().lstrip(".") in SUPPORTED_EXTENSIONS


class IngestionService:
    """Turns knowledge-base files into indexed, embedded chunks.

    Parameters
    ----------
    chunker:
        Splits cleaned document text into overlapping windows.
    embedding_client:
        Embeds one chunk at a time under the retry policy.
    store:
        The index; saved after every successful mutation.
    guard:
        In-flight guard shared with every other mutating caller.
    extractors:
        Extension -> extractor map.  Defaults to
        :func:`build_extractor_registry`.
    """

    def __init__(
        self,
        chunker: TextChunker,
        embedding_client: EmbeddingClient,
        store: IIndexStore,
        guard: IngestionGuard | None = None,
        extractors: dict[str, ITextExtractor] | None = None,
    ) -> None:
        self._chunker = chunker
        self._embedding_client = embedding_client
        self._store = store
        self._guard = guard or IngestionGuard()
        self._extractors = extractors if extractors is not None else build_extractor_registry()

    @property
    def guard(self) -> IngestionGuard:
        return self._guard

    @property
    def store(self) -> IIndexStore:
        return self._store

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def process_document(
        self,
        path: str | Path,
        name: str | None = None,
    ) -> DocumentSummary | None:
        """Index (or re-index) the file at *path* under the source *name*.

        Any records previously indexed for the same source are replaced, so
        a modified file never leaves duplicate chunks behind.

        Returns
        -------
        DocumentSummary | None
            ``None`` when the call was dropped by the guard.

        Raises
        ------
        UnsupportedFormatError
            No extractor for the file extension.
        ExtractionError
            The file could not be read.
        DimensionMismatchError
            The provider's vectors do not fit the existing index.
        PersistenceError
            The snapshot could not be written.
        """
        file_path = Path(path)
        source = name or file_path.name
        async with self._guard.claim("document", source) as session:
            if session is None:
                return None
            summary = await self._index_file(file_path, source)
            await self._store.save()
            return summary

    async def process_directory(self, path: str | Path) -> DirectoryScanResult | None:
        """Index every supported file in *path* that is not indexed yet.

        The listing is non-recursive and sorted by file name.  Files whose
        name is already a source in the index are skipped, so running the
        scan twice is a no-op the second time.

        Raises
        ------
        FileNotFoundError
            *path* is not an existing directory.
        PersistenceError
            The snapshot could not be written; the scan stops.
        """
        directory = Path(path)
        async with self._guard.claim("directory", str(directory)) as session:
            if session is None:
                return None
            return await self._scan(directory)

    async def reprocess_all(self, path: str | Path) -> DirectoryScanResult | None:
        """Empty the index, then scan *path* from scratch as one guarded session."""
        directory = Path(path)
        async with self._guard.claim("reprocess", str(directory)) as session:
            if session is None:
                return None
            await self._store.clear()
            await self._store.save()
            logger.info("index_cleared_for_reprocess", directory=str(directory))
            return await self._scan(directory)

    async def remove_by_source(self, name: str) -> int | None:
        """Delete every chunk of source *name*; return how many were removed."""
        async with self._guard.claim("remove", name) as session:
            if session is None:
                return None
            removed = await self._store.remove_by_source(name)
            await self._store.save()
            logger.info("source_removed", source=name, chunks_removed=removed)
            return removed

    async def clear(self) -> bool:
        """Empty the index.  Returns ``False`` when dropped by the guard."""
        async with self._guard.claim("clear") as session:
            if session is None:
                return False
            await self._store.clear()
            await self._store.save()
            logger.info("index_cleared")
            return True

    # ------------------------------------------------------------------
    # Internal helpers (callers hold the guard)
    # ------------------------------------------------------------------

    async def _scan(self, directory: Path) -> DirectoryScanResult:
        if not directory.is_dir():
            raise FileNotFoundError(f"Knowledge base directory not found: {directory}")

        start = time.monotonic()
        existing = self._store.get_source_names()
        processed = 0
        skipped = 0
        failed: list[str] = []
        summaries: list[DocumentSummary] = []

        for entry in sorted(directory.iterdir(), key=lambda p: p.name):
            if not entry.is_file() or not is_supported_file(entry):
                continue
            if entry.name in existing:
                skipped += 1
                continue

            try:
                summary = await self._index_file(entry, entry.name)
            except PersistenceError:
                raise
            except KnowledgeIndexError as exc:
                logger.error(
                    "document_failed",
                    source=entry.name,
                    kind=exc.kind.value,
                    error=exc.technical_message,
                )
                failed.append(entry.name)
                continue
            except OSError as exc:
                # Removed or made unreadable between the listing and the read.
                logger.error(
                    "document_failed",
                    source=entry.name,
                    kind="os_error",
                    error=str(exc),
                )
                failed.append(entry.name)
                continue

            await self._store.save()
            processed += 1
            summaries.append(summary)

        result = DirectoryScanResult(
            processed_files=processed,
            skipped_files=skipped,
            failed_files=failed,
            summaries=summaries,
        )
        logger.info(
            "directory_scanned",
            directory=str(directory),
            processed=processed,
            skipped=skipped,
            failed=len(failed),
            chunks_indexed=result.chunks_indexed,
            total_chunks=len(self._store),
            elapsed_s=round(time.monotonic() - start, 2),
        )
        return result

    async def _index_file(self, file_path: Path, source: str) -> DocumentSummary:
        """Extract, chunk and embed one file, then swap it into the store."""
        document = SourceDocument.from_path(file_path, name=source)
        extractor = self._extractors.get(document.kind)
        if extractor is None:
            raise UnsupportedFormatError(
                f"Unsupported file type: .{document.kind}" if document.kind else None,
                technical_message=f"no extractor registered for {file_path.name}",
            )

        start = time.monotonic()
        text = await asyncio.to_thread(extractor.extract, file_path)
        chunks = self._chunker.chunk(clean_text(text))

        records: list[ChunkRecord] = []
        for index, chunk in enumerate(chunks):
            try:
                embedding = await self._embedding_client.embed(chunk)
            except EmbeddingError as exc:
                logger.warning(
                    "chunk_embedding_failed",
                    source=source,
                    chunk_index=index,
                    kind=exc.kind.value,
                    attempts=exc.attempts,
                    error=exc.technical_message,
                )
                continue
            records.append(
                ChunkRecord(
                    content=chunk,
                    embedding=embedding,
                    metadata=ChunkMetadata(
                        source=source,
                        chunk_index=index,
                        total_chunks=len(chunks),
                    ),
                )
            )

        summary = DocumentSummary(
            source=source,
            chunks_total=len(chunks),
            chunks_succeeded=len(records),
        )

        if chunks and not records:
            # Nothing embedded: keep whatever was indexed for this source before.
            logger.error("document_not_indexed", source=source, chunks_total=len(chunks))
            return summary

        replaced = await self._store.replace_source(source, records)
        if summary.chunks_failed:
            logger.warning(
                "document_partially_indexed",
                source=source,
                chunks_succeeded=summary.chunks_succeeded,
                chunks_failed=summary.chunks_failed,
            )
        logger.info(
            "document_processed",
            source=source,
            kind=document.kind,
            size=document.size,
            chunks_total=summary.chunks_total,
            chunks_succeeded=summary.chunks_succeeded,
            chunks_replaced=replaced,
            elapsed_s=round(time.monotonic() - start, 2),
        )
        return summary
