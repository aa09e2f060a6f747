"""JSON-file index store.

Keeps every :class:`ChunkRecord` in an in-memory tuple and persists the
whole index as one JSON document with three parallel arrays::

    {
      "documents":  ["chunk text", ...],
      "embeddings": [[0.1, 0.2, ...], ...],
      "metadatas":  [{"source": "a.pdf", "chunk_index": 0, "total_chunks": 3}, ...]
    }

The arrays are always written from the same record tuple, so they cannot
drift apart.  ``save`` writes a temporary file beside the snapshot and
``os.replace``-s it over the target, so a crash mid-write leaves the previous
snapshot intact.

Mutations rebind ``self._records`` to a new tuple without awaiting, so a
search holding the previous tuple is never affected.
"""

from __future__ import annotations

import asyncio
import json
import os
import tempfile
from collections.abc import Sequence
from pathlib import Path
from typing import Any

import structlog
from pydantic import ValidationError

from kbindex.interfaces.index_store import IIndexStore
from kbindex.models.index import ChunkMetadata, ChunkRecord, IndexStats, SearchResult
from kbindex.services.similarity import rank_by_cosine
from kbindex.utils.errors import DimensionMismatchError, PersistenceError

logger = structlog.get_logger(logger_name=__name__)


class JsonIndexStore(IIndexStore):
    """Index store persisted to a single JSON snapshot file.

    Parameters
    ----------
    path:
        Snapshot file, e.g. ``./vector-db/vector-data.json``.  The parent
        directory is created on first save.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self._records: tuple[ChunkRecord, ...] = ()

    @property
    def path(self) -> Path:
        return self._path

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    async def add(self, record: ChunkRecord) -> None:
        self._check_dimension([record], self._records)
        self._records = (*self._records, record)

    async def add_many(self, records: Sequence[ChunkRecord]) -> int:
        if not records:
            return 0
        self._check_dimension(records, self._records)
        self._records = (*self._records, *records)
        return len(records)

    async def replace_source(self, source: str, records: Sequence[ChunkRecord]) -> int:
        survivors = tuple(r for r in self._records if r.metadata.source != source)
        self._check_dimension(records, survivors)
        removed = len(self._records) - len(survivors)
        self._records = (*survivors, *records)
        logger.debug("source_replaced", source=source, removed=removed, added=len(records))
        return removed

    async def remove_by_source(self, source: str) -> int:
        survivors = tuple(r for r in self._records if r.metadata.source != source)
        removed = len(self._records) - len(survivors)
        self._records = survivors
        return removed

    async def clear(self) -> None:
        self._records = ()

    # ------------------------------------------------------------------
    # Query
    # ------------------------------------------------------------------

    async def search(self, query_vector: Sequence[float], k: int) -> list[SearchResult]:
        return rank_by_cosine(query_vector, self._records, k)

    def records(self) -> tuple[ChunkRecord, ...]:
        return self._records

    def get_source_names(self) -> set[str]:
        return {r.metadata.source for r in self._records}

    def get_stats(self) -> IndexStats:
        sources = sorted(self.get_source_names())
        return IndexStats(
            document_count=len(self._records),
            source_count=len(sources),
            sources=sources,
        )

    def __len__(self) -> int:
        return len(self._records)

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    async def save(self) -> None:
        payload = self._to_payload(self._records)
        try:
            await asyncio.to_thread(self._write_atomic, payload)
        except (OSError, TypeError, ValueError) as exc:
            logger.error("index_save_failed", path=str(self._path), error=str(exc))
            raise PersistenceError(
                "The index could not be saved",
                technical_message=f"{self._path}: {exc}",
            ) from exc
        logger.debug("index_saved", path=str(self._path), records=len(payload["documents"]))

    async def load(self) -> None:
        if not self._path.exists():
            logger.info("index_snapshot_missing", path=str(self._path))
            self._records = ()
            return

        try:
            raw = await asyncio.to_thread(self._path.read_text, encoding="utf-8")
            data = json.loads(raw)
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise PersistenceError(
                "The index snapshot could not be read",
                technical_message=f"{self._path}: {exc}",
            ) from exc

        self._records = self._from_payload(data)
        logger.info(
            "index_loaded",
            path=str(self._path),
            records=len(self._records),
            sources=len(self.get_source_names()),
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _check_dimension(new: Sequence[ChunkRecord], existing: Sequence[ChunkRecord]) -> None:
        """Raise :class:`DimensionMismatchError` unless every embedding has the index dimension."""
        reference = existing[0].dimension if existing else (new[0].dimension if new else None)
        for record in new:
            if record.dimension != reference:
                raise DimensionMismatchError(
                    technical_message=(
                        f"embedding dimension {record.dimension} does not match index "
                        f"dimension {reference} (source {record.metadata.source!r})"
                    ),
                )

    @staticmethod
    def _to_payload(records: Sequence[ChunkRecord]) -> dict[str, list[Any]]:
        return {
            "documents": [r.content for r in records],
            "embeddings": [list(r.embedding) for r in records],
            "metadatas": [r.metadata.model_dump() for r in records],
        }

    def _from_payload(self, data: Any) -> tuple[ChunkRecord, ...]:
        if not isinstance(data, dict):
            raise PersistenceError(
                "The index snapshot is malformed",
                technical_message=f"{self._path}: top-level value is {type(data).__name__}",
            )
        documents = data.get("documents") or []
        embeddings = data.get("embeddings") or []
        metadatas = data.get("metadatas") or []
        if not (len(documents) == len(embeddings) == len(metadatas)):
            raise PersistenceError(
                "The index snapshot is inconsistent",
                technical_message=(
                    f"{self._path}: documents={len(documents)} embeddings={len(embeddings)} "
                    f"metadatas={len(metadatas)}"
                ),
            )

        try:
            records = tuple(
                ChunkRecord(
                    content=content,
                    embedding=embedding,
                    metadata=ChunkMetadata.model_validate(metadata),
                )
                for content, embedding, metadata in zip(documents, embeddings, metadatas)
            )
            self._check_dimension(records, ())
        except DimensionMismatchError as exc:
            raise PersistenceError(
                "The index snapshot is malformed",
                technical_message=f"{self._path}: {exc.technical_message}",
            ) from exc
        except (ValidationError, ValueError) as exc:
            raise PersistenceError(
                "The index snapshot is malformed",
                technical_message=f"{self._path}: {exc}",
            ) from exc
        return records

    def _write_atomic(self, payload: dict[str, list[Any]]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{self._path.name}.", suffix=".tmp", dir=self._path.parent
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(payload, f, indent=2)
            os.replace(tmp_name, self._path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
