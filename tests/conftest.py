"""Shared pytest fixtures for the kbindex test suite."""

from __future__ import annotations

import hashlib
import struct
from pathlib import Path

import pytest

from kbindex.interfaces.embedding_provider import IEmbeddingProvider
from kbindex.models.index import ChunkMetadata, ChunkRecord
from kbindex.providers.index_store.json_index_store import JsonIndexStore
from kbindex.services.embedding_client import EMBEDDING_CONTEXT, EmbeddingClient
from kbindex.services.ingestion.chunker import TextChunker
from kbindex.services.ingestion.guard import IngestionGuard
from kbindex.services.ingestion.ingestion_service import IngestionService
from kbindex.utils.retry import RetryPolicy

_EMBEDDING_DIM = 16


def _hash_to_vector(text: str, dim: int = _EMBEDDING_DIM) -> list[float]:
    """Generate a deterministic fixed-length vector by hashing *text*.

    Uses SHA-256 to hash the text, then unpacks bytes into integers and
    normalises to unit length.  Same text always produces the same vector.
    """
    raw = hashlib.sha256(text.encode("utf-8")).digest()
    while len(raw) < dim * 2:
        raw += hashlib.sha256(raw).digest()
    values = [float(v) for v in struct.unpack(f"<{dim}h", raw[: dim * 2])]
    norm = sum(v * v for v in values) ** 0.5 or 1.0
    return [v / norm for v in values]


class ProviderFailure(Exception):
    """Exception carrying an HTTP-like status, as SDK errors do."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class MockEmbeddingProvider(IEmbeddingProvider):
    """In-memory deterministic embedding provider for tests.

    Texts containing any marker in ``fail_markers`` raise a non-retryable
    400 error, so a single chunk can be made to fail on purpose.
    """

    def __init__(self, fail_markers: tuple[str, ...] = ()) -> None:
        self.fail_markers = fail_markers
        self.calls: list[str] = []

    async def embed(self, texts: list[str]) -> list[list[float]]:
        return [await self.embed_single(t) for t in texts]

    async def embed_single(self, text: str) -> list[float]:
        self.calls.append(text)
        if any(marker in text for marker in self.fail_markers):
            raise ProviderFailure("400 Bad Request: refused", status_code=400)
        return _hash_to_vector(text)

    def get_dimension(self) -> int:
        return _EMBEDDING_DIM

    def get_provider_name(self) -> str:
        return "mock-embedding"

    def is_available(self) -> bool:
        return True


class SleepRecorder:
    """Stand-in for ``asyncio.sleep`` that records requested delays."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


def make_record(
    source: str,
    chunk_index: int,
    embedding: list[float],
    content: str | None = None,
    total_chunks: int = 1,
) -> ChunkRecord:
    return ChunkRecord(
        content=content or f"{source} chunk {chunk_index}",
        embedding=embedding,
        metadata=ChunkMetadata(source=source, chunk_index=chunk_index, total_chunks=total_chunks),
    )


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def record_factory():  # noqa: ANN201
    return make_record


@pytest.fixture
def mock_embedding_provider() -> MockEmbeddingProvider:
    return MockEmbeddingProvider()


@pytest.fixture
def sleep_recorder() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def embedding_client(
    mock_embedding_provider: MockEmbeddingProvider,
    sleep_recorder: SleepRecorder,
) -> EmbeddingClient:
    policy = RetryPolicy(EMBEDDING_CONTEXT, max_attempts=3, base_delay_ms=2000, sleep=sleep_recorder)
    return EmbeddingClient(mock_embedding_provider, policy)


@pytest.fixture
def snapshot_path(tmp_path: Path) -> Path:
    return tmp_path / "vector-db" / "vector-data.json"


@pytest.fixture
def index_store(snapshot_path: Path) -> JsonIndexStore:
    return JsonIndexStore(snapshot_path)


@pytest.fixture
def knowledge_base(tmp_path: Path) -> Path:
    path = tmp_path / "knowledge-base"
    path.mkdir()
    return path


@pytest.fixture
def ingestion_service(
    embedding_client: EmbeddingClient,
    index_store: JsonIndexStore,
) -> IngestionService:
    return IngestionService(
        chunker=TextChunker(chunk_size=200, overlap=40),
        embedding_client=embedding_client,
        store=index_store,
        guard=IngestionGuard(),
    )


@pytest.fixture
def sample_text() -> str:
    """Multi-sentence text long enough to produce several 200-char chunks."""
    sentences = [
        "The support desk is open from nine to five on weekdays.",
        "Refunds are issued within fourteen days of a returned order.",
        "Shipping to Europe takes three to five business days.",
        "Gift cards never expire and can be combined with discounts.",
        "Warranty claims require the original receipt and serial number.",
        "Orders above fifty euros ship for free within the country.",
        "Accounts can be deleted on request by emailing the privacy team.",
        "Damaged parcels must be reported within forty-eight hours.",
    ]
    return " ".join(sentences)
