"""Index store implementations.

JsonIndexStore is the sole implementation: an in-memory record list with a
whole-file JSON snapshot.  To back the index with a real vector database,
implement IIndexStore and wire it in kbindex/main.py.
"""

from kbindex.providers.index_store.json_index_store import JsonIndexStore

__all__ = ["JsonIndexStore"]
