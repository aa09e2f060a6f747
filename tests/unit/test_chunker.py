"""Unit tests for TextChunker -- overlapping windows with sentence-boundary cuts."""

from __future__ import annotations

import pytest

from kbindex.services.ingestion.chunker import TextChunker, clean_text
from kbindex.utils.errors import ConfigurationError, ErrorKind


def _make_chunker(chunk_size: int = 100, overlap: int = 20) -> TextChunker:
    return TextChunker(chunk_size=chunk_size, overlap=overlap)


class TestEdgeCases:
    def test_empty_text_returns_no_chunks(self) -> None:
        assert _make_chunker().chunk("") == []

    def test_whitespace_only_returns_no_chunks(self) -> None:
        assert _make_chunker().chunk("   \n\t  ") == []

    def test_short_text_is_one_trimmed_chunk(self) -> None:
        assert _make_chunker().chunk("  A short note.  ") == ["A short note."]

    def test_text_of_exactly_chunk_size_is_one_chunk(self) -> None:
        text = "x" * 100
        assert _make_chunker().chunk(text) == [text]


class TestConfigurationValidation:
    @pytest.mark.parametrize(
        ("chunk_size", "overlap"),
        [(0, 0), (-5, 0), (100, -1), (100, 100), (100, 150)],
    )
    def test_invalid_configuration_raises(self, chunk_size: int, overlap: int) -> None:
        with pytest.raises(ConfigurationError) as exc_info:
            TextChunker(chunk_size=chunk_size, overlap=overlap)
        assert exc_info.value.kind is ErrorKind.CONFIGURATION_ERROR
        assert exc_info.value.retryable is False

    def test_zero_overlap_is_valid(self) -> None:
        chunker = TextChunker(chunk_size=10, overlap=0)
        assert chunker.chunk("a" * 25) == ["a" * 10, "a" * 10, "a" * 5]


class TestBoundarySearch:
    def test_cuts_after_period_in_second_half_of_window(self) -> None:
        # Period at offset 69 of a 100-char window: past the midpoint.
        first = "A" * 69 + "."
        text = first + " " + "B" * 60
        chunks = _make_chunker().chunk(text)
        assert chunks[0] == first
        assert chunks[1] == "B" * 60

    def test_period_in_first_half_falls_back_to_overlap(self) -> None:
        text = "A" * 20 + "." + "B" * 130
        chunks = _make_chunker(chunk_size=100, overlap=20).chunk(text)
        assert chunks[0] == text[:100]
        # Second window starts 20 characters before the first cut.
        assert chunks[1] == text[80:]

    def test_newline_counts_as_break_point(self) -> None:
        text = "C" * 70 + "\n" + "D" * 60
        chunks = _make_chunker().chunk(text)
        assert chunks[0] == "C" * 70
        assert chunks[1] == "D" * 60

    def test_unbroken_text_overlaps_by_configured_amount(self) -> None:
        text = "".join(chr(ord("a") + i % 26) for i in range(250))
        chunks = _make_chunker(chunk_size=100, overlap=20).chunk(text)
        assert chunks[0][-20:] == chunks[1][:20]
        assert chunks[1][-20:] == chunks[2][:20]


class TestCoverageAndTermination:
    @pytest.mark.parametrize(
        ("chunk_size", "overlap"),
        [(50, 10), (100, 20), (120, 0), (60, 59), (200, 40)],
    )
    def test_every_character_is_covered(self, sample_text: str, chunk_size: int, overlap: int) -> None:
        chunks = TextChunker(chunk_size=chunk_size, overlap=overlap).chunk(sample_text)
        assert chunks
        for chunk in chunks:
            assert chunk == chunk.strip()
            assert 0 < len(chunk) <= chunk_size
            assert chunk in sample_text

        covered = [False] * len(sample_text)
        position = 0
        for chunk in chunks:
            start = sample_text.index(chunk, max(0, position - overlap))
            for i in range(start, start + len(chunk)):
                covered[i] = True
            position = start + len(chunk)
        uncovered = [sample_text[i] for i, c in enumerate(covered) if not c]
        assert all(ch.isspace() for ch in uncovered)

    def test_large_text_terminates(self) -> None:
        text = ("word " * 20000).strip()
        chunks = TextChunker(chunk_size=1000, overlap=200).chunk(text)
        assert 100 < len(chunks) < 200


class TestCleanText:
    def test_collapses_whitespace_runs(self) -> None:
        assert clean_text("  one\n\ntwo\t three   ") == "one two three"

    def test_empty_stays_empty(self) -> None:
        assert clean_text("\n \t") == ""
