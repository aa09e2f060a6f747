"""Cosine-similarity ranking and the query-side search service.

The index is small enough (one knowledge-base folder) that a flat O(n) scan
over every stored vector is used instead of an approximate-neighbour
structure.  numpy does the arithmetic in one matrix-vector product.
"""

from __future__ import annotations

from collections.abc import Sequence

import numpy as np
import structlog

from kbindex.interfaces.index_store import IIndexStore
from kbindex.models.index import ChunkRecord, SearchResult
from kbindex.services.embedding_client import EmbeddingClient
from kbindex.utils.errors import DimensionMismatchError

logger = structlog.get_logger(logger_name=__name__)


def cosine_similarities(query_vector: Sequence[float], vectors: Sequence[Sequence[float]]) -> np.ndarray:
    """Return the cosine similarity of *query_vector* with each row of *vectors*.

    A zero-norm query or row yields ``0.0`` for that pair instead of NaN.

    Raises
    ------
    DimensionMismatchError
        If the query dimension differs from the row dimension.
    """
    query = np.asarray(query_vector, dtype=np.float64)
    if len(vectors) == 0:
        return np.zeros(0, dtype=np.float64)
    matrix = np.asarray(vectors, dtype=np.float64)
    if matrix.ndim != 2 or matrix.shape[1] != query.shape[0]:
        raise DimensionMismatchError(
            technical_message=(
                f"query dimension {query.shape[0]} does not match index dimension {matrix.shape[-1]}"
            ),
        )

    denominators = np.linalg.norm(matrix, axis=1) * np.linalg.norm(query)
    dots = matrix @ query
    similarities = np.zeros(len(matrix), dtype=np.float64)
    np.divide(dots, denominators, out=similarities, where=denominators > 0)
    return similarities


def rank_by_cosine(
    query_vector: Sequence[float],
    records: Sequence[ChunkRecord],
    k: int,
) -> list[SearchResult]:
    """Rank *records* against *query_vector* and return the top *k*.

    Sorting is stable, so records with equal similarity keep their
    insertion order.  ``k <= 0`` or no records returns ``[]``.
    """
    if k <= 0 or not records:
        return []

    similarities = cosine_similarities(query_vector, [r.embedding for r in records])
    order = np.argsort(-similarities, kind="stable")[:k]
    return [
        SearchResult(
            content=records[i].content,
            metadata=records[i].metadata,
            distance=float(1.0 - similarities[i]),
        )
        for i in order
    ]


class SearchService:
    """Embeds a natural-language query and ranks the index against it.

    Parameters
    ----------
    embedding_client:
        :class:`~kbindex.services.embedding_client.EmbeddingClient`; its
        ``EmbeddingError`` is fatal to the search and reaches the caller.
    store:
        The index to search.
    default_limit:
        ``k`` used when the caller passes ``None``.
    """

    def __init__(
        self,
        embedding_client: EmbeddingClient,
        store: IIndexStore,
        default_limit: int = 5,
    ) -> None:
        self._embedding_client = embedding_client
        self._store = store
        self._default_limit = default_limit

    async def search(self, query: str, k: int | None = None) -> list[SearchResult]:
        limit = self._default_limit if k is None else k
        if limit <= 0 or not query.strip():
            return []
        if len(self._store) == 0:
            logger.info("search_on_empty_index", query_length=len(query))
            return []

        query_vector = await self._embedding_client.embed(query)
        results = await self._store.search(query_vector, limit)
        logger.info(
            "search_completed",
            query_length=len(query),
            k=limit,
            results=len(results),
            top_similarity=round(results[0].similarity, 4) if results else None,
        )
        return results
