"""Ingestion pipeline: extract, chunk, embed and store knowledge-base files."""

from kbindex.services.ingestion.chunker import TextChunker, clean_text
from kbindex.services.ingestion.guard import IngestionGuard
from kbindex.services.ingestion.ingestion_service import IngestionService, is_supported_file

__all__ = ["IngestionGuard", "IngestionService", "TextChunker", "clean_text", "is_supported_file"]
