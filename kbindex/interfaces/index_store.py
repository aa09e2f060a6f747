"""Abstract base class for the chunk index store.

The store owns the ordered list of :class:`~kbindex.models.index.ChunkRecord`
objects and its persisted snapshot.  Mutating methods are ``async`` but must
not await between reading and replacing the record list, so a concurrent
search always sees a source wholly before or wholly after a mutation.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence

from kbindex.models.index import ChunkRecord, IndexStats, SearchResult


class IIndexStore(ABC):
    """Contract for storing, removing and searching indexed chunks."""

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    @abstractmethod
    async def add(self, record: ChunkRecord) -> None:
        """Append one record.

        Raises
        ------
        DimensionMismatchError
            If the embedding dimension differs from the stored records.
        """

    @abstractmethod
    async def add_many(self, records: Sequence[ChunkRecord]) -> int:
        """Append *records* in order and return how many were added."""

    @abstractmethod
    async def replace_source(self, source: str, records: Sequence[ChunkRecord]) -> int:
        """Swap every record of *source* for *records*; return the removed count."""

    @abstractmethod
    async def remove_by_source(self, source: str) -> int:
        """Delete every record of *source*, keeping survivor order; return the count."""

    @abstractmethod
    async def clear(self) -> None:
        """Remove every record."""

    # ------------------------------------------------------------------
    # Query
    # ------------------------------------------------------------------

    @abstractmethod
    async def search(self, query_vector: Sequence[float], k: int) -> list[SearchResult]:
        """Return the *k* records most similar to *query_vector*."""

    @abstractmethod
    def records(self) -> tuple[ChunkRecord, ...]:
        """Return an immutable snapshot of the records in insertion order."""

    @abstractmethod
    def get_source_names(self) -> set[str]:
        """Return the distinct source names present in the index."""

    @abstractmethod
    def get_stats(self) -> IndexStats:
        """Return record and source counts."""

    @abstractmethod
    def __len__(self) -> int:
        """Return the number of records."""

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    @abstractmethod
    async def save(self) -> None:
        """Write the whole index to its snapshot.

        Raises
        ------
        kbindex.utils.errors.PersistenceError
        """

    @abstractmethod
    async def load(self) -> None:
        """Replace the in-memory index with the snapshot; a missing file means empty.

        Raises
        ------
        kbindex.utils.errors.PersistenceError
        """
