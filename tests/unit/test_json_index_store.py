"""Unit tests for JsonIndexStore -- mutation, search and snapshot persistence."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from kbindex.providers.index_store.json_index_store import JsonIndexStore
from kbindex.utils.errors import DimensionMismatchError, ErrorKind, PersistenceError


class TestMutation:
    @pytest.mark.asyncio
    async def test_add_and_add_many(self, index_store: JsonIndexStore, record_factory) -> None:  # noqa: ANN001
        await index_store.add(record_factory("a.txt", 0, [1.0, 0.0]))
        added = await index_store.add_many(
            [record_factory("b.txt", 0, [0.0, 1.0]), record_factory("b.txt", 1, [1.0, 1.0])]
        )
        assert added == 2
        assert len(index_store) == 3
        assert [r.metadata.source for r in index_store.records()] == ["a.txt", "b.txt", "b.txt"]

    @pytest.mark.asyncio
    async def test_dimension_mismatch_rejected(self, index_store: JsonIndexStore, record_factory) -> None:  # noqa: ANN001
        await index_store.add(record_factory("a.txt", 0, [1.0, 0.0]))
        with pytest.raises(DimensionMismatchError):
            await index_store.add(record_factory("b.txt", 0, [1.0, 0.0, 0.0]))
        with pytest.raises(DimensionMismatchError):
            await index_store.add_many([record_factory("c.txt", 0, [1.0])])
        assert len(index_store) == 1

    @pytest.mark.asyncio
    async def test_dimension_mismatch_is_a_configuration_error(
        self, index_store: JsonIndexStore, record_factory  # noqa: ANN001
    ) -> None:
        await index_store.add(record_factory("a.txt", 0, [1.0, 0.0]))

        with pytest.raises(DimensionMismatchError) as exc_info:
            await index_store.replace_source("b.txt", [record_factory("b.txt", 0, [1.0, 0.0, 0.0])])

        assert exc_info.value.kind is ErrorKind.CONFIGURATION_ERROR
        assert "reprocess" in exc_info.value.user_message
        assert "dimension 3" in exc_info.value.technical_message
        assert index_store.get_source_names() == {"a.txt"}

    @pytest.mark.asyncio
    async def test_remove_by_source_keeps_survivor_order(
        self, index_store: JsonIndexStore, record_factory  # noqa: ANN001
    ) -> None:
        await index_store.add_many(
            [
                record_factory("a.txt", 0, [1.0, 0.0]),
                record_factory("b.txt", 0, [0.0, 1.0]),
                record_factory("a.txt", 1, [1.0, 1.0]),
                record_factory("c.txt", 0, [0.5, 0.5]),
            ]
        )
        removed = await index_store.remove_by_source("a.txt")

        assert removed == 2
        assert "a.txt" not in index_store.get_source_names()
        assert [r.metadata.source for r in index_store.records()] == ["b.txt", "c.txt"]

    @pytest.mark.asyncio
    async def test_remove_unknown_source(self, index_store: JsonIndexStore, record_factory) -> None:  # noqa: ANN001
        await index_store.add(record_factory("a.txt", 0, [1.0, 0.0]))
        assert await index_store.remove_by_source("missing.txt") == 0
        assert len(index_store) == 1

    @pytest.mark.asyncio
    async def test_replace_source_swaps_records(self, index_store: JsonIndexStore, record_factory) -> None:  # noqa: ANN001
        await index_store.add_many(
            [
                record_factory("a.txt", 0, [1.0, 0.0], content="old 0"),
                record_factory("b.txt", 0, [0.0, 1.0]),
                record_factory("a.txt", 1, [1.0, 1.0], content="old 1"),
            ]
        )
        removed = await index_store.replace_source(
            "a.txt", [record_factory("a.txt", 0, [0.2, 0.8], content="new 0")]
        )

        assert removed == 2
        contents = [r.content for r in index_store.records()]
        assert contents == ["b.txt chunk 0", "new 0"]

    @pytest.mark.asyncio
    async def test_replace_only_source_allows_new_dimension(
        self, index_store: JsonIndexStore, record_factory  # noqa: ANN001
    ) -> None:
        await index_store.add(record_factory("a.txt", 0, [1.0, 0.0]))
        await index_store.replace_source("a.txt", [record_factory("a.txt", 0, [1.0, 0.0, 0.0])])
        assert index_store.records()[0].dimension == 3

    @pytest.mark.asyncio
    async def test_clear(self, index_store: JsonIndexStore, record_factory) -> None:  # noqa: ANN001
        await index_store.add(record_factory("a.txt", 0, [1.0, 0.0]))
        await index_store.clear()
        assert len(index_store) == 0

    @pytest.mark.asyncio
    async def test_records_snapshot_is_unaffected_by_later_mutation(
        self, index_store: JsonIndexStore, record_factory  # noqa: ANN001
    ) -> None:
        await index_store.add(record_factory("a.txt", 0, [1.0, 0.0]))
        snapshot = index_store.records()
        await index_store.remove_by_source("a.txt")
        assert len(snapshot) == 1


class TestStatsAndSearch:
    @pytest.mark.asyncio
    async def test_stats(self, index_store: JsonIndexStore, record_factory) -> None:  # noqa: ANN001
        await index_store.add_many(
            [
                record_factory("b.txt", 0, [1.0, 0.0]),
                record_factory("a.txt", 0, [0.0, 1.0]),
                record_factory("b.txt", 1, [1.0, 1.0]),
            ]
        )
        stats = index_store.get_stats()
        assert stats.document_count == 3
        assert stats.source_count == 2
        assert stats.sources == ["a.txt", "b.txt"]

    @pytest.mark.asyncio
    async def test_search(self, index_store: JsonIndexStore, record_factory) -> None:  # noqa: ANN001
        await index_store.add_many(
            [
                record_factory("A", 0, [1.0, 0.0]),
                record_factory("B", 0, [0.0, 1.0]),
                record_factory("C", 0, [0.9, 0.1]),
            ]
        )
        results = await index_store.search([1.0, 0.0], 2)
        assert [r.metadata.source for r in results] == ["A", "C"]


class TestPersistence:
    @pytest.mark.asyncio
    async def test_round_trip(self, snapshot_path: Path, record_factory) -> None:  # noqa: ANN001
        store = JsonIndexStore(snapshot_path)
        await store.add_many(
            [
                record_factory("a.txt", 0, [0.25, -0.5], total_chunks=2),
                record_factory("a.txt", 1, [1.0, 0.125], total_chunks=2),
            ]
        )
        await store.save()

        reloaded = JsonIndexStore(snapshot_path)
        await reloaded.load()
        assert reloaded.records() == store.records()

    @pytest.mark.asyncio
    async def test_snapshot_layout(self, snapshot_path: Path, record_factory) -> None:  # noqa: ANN001
        store = JsonIndexStore(snapshot_path)
        await store.add(record_factory("a.txt", 0, [1.0, 0.0], content="hello"))
        await store.save()

        data = json.loads(snapshot_path.read_text(encoding="utf-8"))
        assert data == {
            "documents": ["hello"],
            "embeddings": [[1.0, 0.0]],
            "metadatas": [{"source": "a.txt", "chunk_index": 0, "total_chunks": 1}],
        }

    @pytest.mark.asyncio
    async def test_save_leaves_no_temp_files(self, snapshot_path: Path, record_factory) -> None:  # noqa: ANN001
        store = JsonIndexStore(snapshot_path)
        await store.add(record_factory("a.txt", 0, [1.0, 0.0]))
        await store.save()
        await store.save()
        assert [p.name for p in snapshot_path.parent.iterdir()] == ["vector-data.json"]

    @pytest.mark.asyncio
    async def test_missing_file_loads_empty(self, snapshot_path: Path) -> None:
        store = JsonIndexStore(snapshot_path)
        await store.load()
        assert len(store) == 0

    @pytest.mark.asyncio
    async def test_malformed_json_raises(self, snapshot_path: Path) -> None:
        snapshot_path.parent.mkdir(parents=True)
        snapshot_path.write_text("{not json", encoding="utf-8")

        with pytest.raises(PersistenceError) as exc_info:
            await JsonIndexStore(snapshot_path).load()
        assert exc_info.value.kind is ErrorKind.PERSISTENCE_FAILED

    @pytest.mark.asyncio
    async def test_unequal_arrays_raise(self, snapshot_path: Path) -> None:
        snapshot_path.parent.mkdir(parents=True)
        snapshot_path.write_text(
            json.dumps({"documents": ["a", "b"], "embeddings": [[1.0]], "metadatas": []}),
            encoding="utf-8",
        )
        with pytest.raises(PersistenceError):
            await JsonIndexStore(snapshot_path).load()

    @pytest.mark.asyncio
    async def test_invalid_metadata_raises(self, snapshot_path: Path) -> None:
        snapshot_path.parent.mkdir(parents=True)
        snapshot_path.write_text(
            json.dumps({"documents": ["a"], "embeddings": [[1.0]], "metadatas": [{"source": "x"}]}),
            encoding="utf-8",
        )
        with pytest.raises(PersistenceError):
            await JsonIndexStore(snapshot_path).load()

    @pytest.mark.asyncio
    async def test_mixed_dimensions_in_snapshot_raise(self, snapshot_path: Path) -> None:
        snapshot_path.parent.mkdir(parents=True)
        snapshot_path.write_text(
            json.dumps(
                {
                    "documents": ["a", "b"],
                    "embeddings": [[1.0, 0.0], [1.0, 0.0, 0.0]],
                    "metadatas": [
                        {"source": "a.txt", "chunk_index": 0, "total_chunks": 1},
                        {"source": "b.txt", "chunk_index": 0, "total_chunks": 1},
                    ],
                }
            ),
            encoding="utf-8",
        )
        with pytest.raises(PersistenceError) as exc_info:
            await JsonIndexStore(snapshot_path).load()
        assert "does not match index dimension" in exc_info.value.technical_message

    @pytest.mark.asyncio
    async def test_unwritable_location_raises(self, tmp_path: Path, record_factory) -> None:  # noqa: ANN001
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("file", encoding="utf-8")
        store = JsonIndexStore(blocker / "vector-data.json")
        await store.add(record_factory("a.txt", 0, [1.0, 0.0]))

        with pytest.raises(PersistenceError):
            await store.save()
