"""Integration tests for the full index pipeline.

Wires the real store, chunker, ingestion service, search service and watcher
through :func:`kbindex.main.build_knowledge_index`, with only the embedding
provider replaced by the deterministic in-memory fake from conftest.
"""

from __future__ import annotations

import asyncio
import json
from pathlib import Path

import pytest

from kbindex.config.settings import Settings
from kbindex.main import build_knowledge_index
from kbindex.services.ingestion.chunker import TextChunker, clean_text
from kbindex.services.knowledge_index import KnowledgeIndex
from kbindex.utils.errors import PersistenceError


def _numbered_text(count: int = 24) -> str:
    return " ".join(
        f"Clause {i} of the staff handbook covers topic number {i}." for i in range(count)
    )


@pytest.fixture
def settings(tmp_path: Path, knowledge_base: Path) -> Settings:
    return Settings(
        openai_api_key="",
        gemini_api_key="",
        knowledge_base_path=str(knowledge_base),
        vector_db_path=str(tmp_path / "vector-db"),
        chunk_size=200,
        chunk_overlap=40,
        embedding_base_delay_ms=0,
        watch_debounce_ms=50,
    )


@pytest.fixture
def index(settings: Settings, mock_embedding_provider) -> KnowledgeIndex:  # noqa: ANN001
    return build_knowledge_index(settings, embedding_provider=mock_embedding_provider)


@pytest.mark.asyncio
async def test_scan_is_idempotent(
    index: KnowledgeIndex, settings: Settings, knowledge_base: Path, sample_text: str
) -> None:
    (knowledge_base / "faq.txt").write_text(sample_text, encoding="utf-8")
    (knowledge_base / "hours.md").write_text("Open nine to five.", encoding="utf-8")

    first = await index.start(scan=True, watch=False)
    snapshot = settings.snapshot_path.read_bytes()
    second = await index.process_directory()

    assert first is not None and first.processed_files == 2
    assert second is not None
    assert second.processed_files == 0
    assert second.skipped_files == 2
    assert settings.snapshot_path.read_bytes() == snapshot
    await index.close()


@pytest.mark.asyncio
async def test_partial_embedding_failure_leaves_gap(
    index: KnowledgeIndex,
    mock_embedding_provider,  # noqa: ANN001
    knowledge_base: Path,
    settings: Settings,
) -> None:
    text = _numbered_text()
    chunks = TextChunker(chunk_size=200, overlap=40).chunk(clean_text(text))
    assert len(chunks) >= 5
    mock_embedding_provider.fail_markers = (chunks[3],)
    (knowledge_base / "handbook.txt").write_text(text, encoding="utf-8")

    result = await index.start(scan=True, watch=False)

    assert result is not None
    assert result.summaries[0].chunks_failed == 1
    data = json.loads(settings.snapshot_path.read_text(encoding="utf-8"))
    indices = [m["chunk_index"] for m in data["metadatas"]]
    assert indices == [i for i in range(len(chunks)) if i != 3]
    assert {m["total_chunks"] for m in data["metadatas"]} == {len(chunks)}
    assert len(data["documents"]) == len(data["embeddings"]) == len(data["metadatas"])
    await index.close()


@pytest.mark.asyncio
async def test_snapshot_survives_restart(
    settings: Settings, mock_embedding_provider, knowledge_base: Path  # noqa: ANN001
) -> None:
    (knowledge_base / "faq.txt").write_text("Refunds take fourteen days.", encoding="utf-8")
    first = build_knowledge_index(settings, embedding_provider=mock_embedding_provider)
    await first.start(scan=True, watch=False)
    await first.close()

    second = build_knowledge_index(settings, embedding_provider=mock_embedding_provider)
    await second.start(scan=False, watch=False)

    assert second.stats().document_count == 1
    hits = await second.search("Refunds take fourteen days.")
    assert hits[0].content == "Refunds take fourteen days."
    await second.close()


@pytest.mark.asyncio
async def test_corrupt_snapshot_blocks_start(index: KnowledgeIndex, settings: Settings) -> None:
    settings.snapshot_path.parent.mkdir(parents=True)
    settings.snapshot_path.write_text('{"documents": ["a"]}', encoding="utf-8")

    with pytest.raises(PersistenceError):
        await index.start(scan=True, watch=False)
    assert settings.snapshot_path.read_text(encoding="utf-8") == '{"documents": ["a"]}'


@pytest.mark.asyncio
async def test_reprocess_all_drops_stale_sources(
    index: KnowledgeIndex, knowledge_base: Path
) -> None:
    (knowledge_base / "old.txt").write_text("Outdated policy.", encoding="utf-8")
    (knowledge_base / "new.txt").write_text("Current policy.", encoding="utf-8")
    await index.start(scan=True, watch=False)
    (knowledge_base / "old.txt").unlink()

    result = await index.reprocess_all()

    assert result is not None and result.processed_files == 1
    assert index.stats().sources == ["new.txt"]
    await index.close()


@pytest.mark.asyncio
async def test_unlink_event_removes_source(index: KnowledgeIndex, knowledge_base: Path) -> None:
    path = knowledge_base / "faq.txt"
    path.write_text("Refunds take fourteen days.", encoding="utf-8")
    await index.start(scan=True, watch=False)
    path.unlink()

    assert index.watcher is not None
    removed = await index.watcher.handle_event("unlink", path)

    assert removed == 1
    assert index.stats().document_count == 0
    await index.close()


@pytest.mark.asyncio
async def test_concurrent_mutation_is_dropped(
    index: KnowledgeIndex, knowledge_base: Path, sample_text: str
) -> None:
    for name in ("a.txt", "b.txt", "c.txt"):
        (knowledge_base / name).write_text(f"{name}: {sample_text}", encoding="utf-8")
    late = knowledge_base / "late.txt"
    late.write_text("Arrived during the scan.", encoding="utf-8")
    await index.start(scan=False, watch=False)

    scan_result, late_result = await asyncio.gather(
        index.process_directory(),
        index.process_document(late),
    )

    assert scan_result is not None and scan_result.processed_files == 4
    assert late_result is None
    assert index.ingestion.guard.dropped_count == 1
    await index.close()


@pytest.mark.asyncio
async def test_search_while_idle_returns_ranked_results(
    index: KnowledgeIndex, knowledge_base: Path
) -> None:
    (knowledge_base / "refunds.txt").write_text("Refunds take fourteen days.", encoding="utf-8")
    (knowledge_base / "shipping.txt").write_text("Shipping takes three days.", encoding="utf-8")
    await index.start(scan=True, watch=False)

    hits = await index.search("Shipping takes three days.", k=2)

    assert [h.metadata.source for h in hits][0] == "shipping.txt"
    assert len(hits) == 2
    assert hits[0].distance <= hits[1].distance
    assert await index.search("anything", k=0) == []
    await index.close()


@pytest.mark.asyncio
async def test_watcher_indexes_new_file(index: KnowledgeIndex, knowledge_base: Path) -> None:
    await index.start(scan=True, watch=True)
    await asyncio.sleep(0.2)
    (knowledge_base / "dropped-in.txt").write_text("Watched content.", encoding="utf-8")

    async def _indexed() -> None:
        while "dropped-in.txt" not in index.stats().sources:
            await asyncio.sleep(0.05)

    try:
        await asyncio.wait_for(_indexed(), timeout=10)
    finally:
        await index.close()
    assert index.watcher is not None and not index.watcher.is_running
