"""kbindex domain models -- re-exports all public model classes.

Import models from ``kbindex.models`` rather than from the submodule.
"""

from __future__ import annotations

from kbindex.models.index import (
    ChunkMetadata,
    ChunkRecord,
    DirectoryScanResult,
    DocumentSummary,
    IndexStats,
    IngestionSession,
    SearchResult,
    SourceDocument,
)

__all__ = [
    "ChunkMetadata",
    "ChunkRecord",
    "DirectoryScanResult",
    "DocumentSummary",
    "IndexStats",
    "IngestionSession",
    "SearchResult",
    "SourceDocument",
]
