"""Data models for the incremental embedding index.

Defines Pydantic v2 models for indexed chunks, search results, ingestion
summaries, and index statistics.  All models use frozen config so a record
handed to a caller can never be mutated behind the store's back.

Indexing overview:

    1. A document in the knowledge-base folder is described by a
       :class:`SourceDocument` (its file name is its identity).
    2. Its text is split into chunks; each chunk is embedded remotely and
       stored as a :class:`ChunkRecord` with :class:`ChunkMetadata`.
    3. A query is embedded the same way and ranked against every record,
       producing :class:`SearchResult` objects.
"""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator


# ---------------------------------------------------------------------------
# SourceDocument: one file in the knowledge-base folder.
# ---------------------------------------------------------------------------
class SourceDocument(BaseModel):
    """A file in the knowledge-base directory.

    Not persisted.  The ``name`` is the stable identity used as the
    ``source`` of every chunk produced from the file.
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(description="File name, unique within the knowledge base.")
    kind: str = Field(description="Lower-case file extension without the dot, e.g. 'pdf'.")
    mtime: float = Field(default=0.0, description="Last modification time (epoch seconds).")
    size: int = Field(default=0, ge=0, description="File size in bytes.")

    @classmethod
    def from_path(cls, path: str | Path, name: str | None = None) -> SourceDocument:
        """Describe the file at *path*; ``stat`` failures propagate."""
        file_path = Path(path)
        stat = file_path.stat()
        return cls(
            name=name or file_path.name,
            kind=file_path.suffix.lower().lstrip("."),
            mtime=stat.st_mtime,
            size=stat.st_size,
        )


# ---------------------------------------------------------------------------
# ChunkMetadata / ChunkRecord: the unit of storage.
# ---------------------------------------------------------------------------
class ChunkMetadata(BaseModel):
    """Provenance of a chunk, persisted with exactly these three keys."""

    model_config = ConfigDict(frozen=True)

    source: str = Field(description="Name of the source document.")
    chunk_index: int = Field(ge=0, description="Zero-based position within the source.")
    total_chunks: int = Field(ge=0, description="Chunks produced from the source at processing time.")


class ChunkRecord(BaseModel):
    """An indexed chunk: its text, its embedding and its provenance."""

    model_config = ConfigDict(frozen=True)

    content: str = Field(description="Chunk text.")
    embedding: list[float] = Field(description="Embedding vector of the chunk text.")
    metadata: ChunkMetadata

    @field_validator("content")
    @classmethod
    def _content_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("chunk content must not be blank")
        return value

    @field_validator("embedding")
    @classmethod
    def _embedding_not_empty(cls, value: list[float]) -> list[float]:
        if not value:
            raise ValueError("chunk embedding must not be empty")
        return value

    @property
    def dimension(self) -> int:
        return len(self.embedding)


# ---------------------------------------------------------------------------
# SearchResult: one ranked hit.
# ---------------------------------------------------------------------------
class SearchResult(BaseModel):
    """A chunk returned by similarity search.

    ``distance`` is ``1 - cosine_similarity``: 0 for identical direction,
    1 for orthogonal vectors.
    """

    model_config = ConfigDict(frozen=True)

    content: str
    metadata: ChunkMetadata
    distance: float

    @property
    def similarity(self) -> float:
        return 1.0 - self.distance


# ---------------------------------------------------------------------------
# Ingestion results
# ---------------------------------------------------------------------------
class DocumentSummary(BaseModel):
    """Outcome of processing one document."""

    model_config = ConfigDict(frozen=True)

    source: str
    chunks_total: int = Field(ge=0)
    chunks_succeeded: int = Field(ge=0)

    @property
    def chunks_failed(self) -> int:
        return self.chunks_total - self.chunks_succeeded


class DirectoryScanResult(BaseModel):
    """Outcome of a directory scan or a full reprocess."""

    model_config = ConfigDict(frozen=True)

    processed_files: int = Field(default=0, ge=0)
    skipped_files: int = Field(default=0, ge=0)
    failed_files: list[str] = Field(default_factory=list)
    summaries: list[DocumentSummary] = Field(default_factory=list)

    @property
    def chunks_indexed(self) -> int:
        return sum(s.chunks_succeeded for s in self.summaries)


class IndexStats(BaseModel):
    """Size of the index."""

    model_config = ConfigDict(frozen=True)

    document_count: int = Field(ge=0, description="Number of chunk records in the index.")
    source_count: int = Field(ge=0, description="Number of distinct source documents.")
    sources: list[str] = Field(default_factory=list, description="Sorted source names.")


# ---------------------------------------------------------------------------
# IngestionSession: the occupant of the in-flight guard.
# ---------------------------------------------------------------------------
IngestionOperation = Literal["document", "directory", "reprocess", "remove", "clear"]


class IngestionSession(BaseModel):
    """The ingestion currently holding the guard."""

    model_config = ConfigDict(frozen=True)

    operation: IngestionOperation
    target: str = ""
    started_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
