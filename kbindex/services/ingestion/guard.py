"""Single-slot in-flight guard for index mutations.

Every mutating operation (document, directory scan, reprocess, remove,
clear) runs inside :meth:`IngestionGuard.claim`.  At most one session holds
the guard; a request that arrives while it is held is **dropped**, not
queued: it is logged as ``ingestion_dropped``, counted in
:attr:`IngestionGuard.dropped_count`, and the caller receives ``None``
instead of a session.  A later directory re-scan picks up whatever a dropped
watcher event missed.

Usage::

    async with guard.claim("document", name) as session:
        if session is None:
            return None
        ...

The guard is cooperative (asyncio, one event loop); checking and setting the
slot happen without an await in between, so no lock is needed.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from kbindex.models.index import IngestionOperation, IngestionSession
from kbindex.utils.logging import get_logger

_logger = get_logger(__name__)


class IngestionGuard:
    """Holds at most one :class:`IngestionSession`."""

    def __init__(self) -> None:
        self._current: IngestionSession | None = None
        self._dropped_count = 0

    @property
    def is_busy(self) -> bool:
        return self._current is not None

    @property
    def current(self) -> IngestionSession | None:
        return self._current

    @property
    def dropped_count(self) -> int:
        return self._dropped_count

    @asynccontextmanager
    async def claim(
        self,
        operation: IngestionOperation,
        target: str = "",
    ) -> AsyncIterator[IngestionSession | None]:
        """Hold the guard for the duration of the ``async with`` block.

        Yields the new session, or ``None`` when another session already
        holds the guard.  The slot is released on every exit path.
        """
        if self._current is not None:
            self._dropped_count += 1
            _logger.warning(
                "ingestion_dropped",
                operation=operation,
                target=target,
                busy_with=self._current.operation,
                busy_target=self._current.target,
                dropped_count=self._dropped_count,
            )
            yield None
            return

        session = IngestionSession(operation=operation, target=target)
        self._current = session
        try:
            yield session
        finally:
            self._current = None
            elapsed = (datetime.now(timezone.utc) - session.started_at).total_seconds()
            _logger.debug(
                "ingestion_released",
                operation=operation,
                target=target,
                elapsed_s=round(elapsed, 3),
            )


__all__ = ["IngestionGuard", "IngestionSession"]
