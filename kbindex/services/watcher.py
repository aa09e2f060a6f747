"""Knowledge-base change watcher built on watchfiles.

Watches the knowledge-base directory (non-recursively, matching the flat
directory scan) and turns file-system changes into index mutations:

    add / change  ->  IngestionService.process_document(path, name)
    unlink        ->  IngestionService.remove_by_source(name)

watchfiles debounces bursts itself (``debounce`` window, 1600 ms by default)
and yields one batch of changes per quiet period.  Each batch is handled one
event at a time, so the watcher never competes with itself for the ingestion
guard; an event is only dropped when another mutation (a bulk scan, a
reprocess, a caller request) holds the guard.  Missed events are recovered by
the next directory scan.
"""

from __future__ import annotations

import asyncio
import contextlib
from pathlib import Path
from typing import Literal

import structlog
from watchfiles import Change, awatch

from kbindex.services.ingestion.ingestion_service import IngestionService, is_supported_file
from kbindex.utils.errors import KnowledgeIndexError

logger = structlog.get_logger(logger_name=__name__)

WatchEvent = Literal["add", "change", "unlink"]

_EVENT_FOR_CHANGE: dict[Change, WatchEvent] = {
    Change.added: "add",
    Change.modified: "change",
    Change.deleted: "unlink",
}


def knowledge_base_filter(change: Change, path: str) -> bool:
    """watchfiles filter: keep supported, non-hidden, non-artifact files."""
    return is_supported_file(path)


class KnowledgeBaseWatcher:
    """Feeds file changes in *directory* to an :class:`IngestionService`.

    Parameters
    ----------
    directory:
        Knowledge-base folder to watch.
    ingestion:
        Service that performs the guarded index mutations.
    debounce_ms:
        Quiet period watchfiles waits for before yielding a batch.
    step_ms:
        How often watchfiles polls its Rust side for new events.
    """

    def __init__(
        self,
        directory: str | Path,
        ingestion: IngestionService,
        debounce_ms: int = 1600,
        step_ms: int = 50,
    ) -> None:
        self._directory = Path(directory)
        self._ingestion = ingestion
        self._debounce_ms = debounce_ms
        self._step_ms = step_ms
        self._stop_event = asyncio.Event()
        self._watch_task: asyncio.Task[None] | None = None
        self._events_handled = 0

    @property
    def directory(self) -> Path:
        return self._directory

    @property
    def is_running(self) -> bool:
        return self._watch_task is not None and not self._watch_task.done()

    @property
    def events_handled(self) -> int:
        return self._events_handled

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Start watching; a second call while running is a no-op."""
        if self.is_running:
            return
        self._directory.mkdir(parents=True, exist_ok=True)
        self._stop_event.clear()
        self._watch_task = asyncio.create_task(self._watch_loop())
        logger.info(
            "knowledge_base_watcher_started",
            directory=str(self._directory),
            debounce_ms=self._debounce_ms,
        )

    async def stop(self) -> None:
        """Stop watching and wait for the in-progress batch to finish."""
        self._stop_event.set()
        if self._watch_task is not None:
            with contextlib.suppress(asyncio.CancelledError):
                await self._watch_task
            self._watch_task = None
        logger.info("knowledge_base_watcher_stopped", events_handled=self._events_handled)

    async def wait(self) -> None:
        """Block until the watcher stops.

        Raises
        ------
        KnowledgeIndexError
            The watch loop died, e.g. the directory was removed or the
            platform watch limit was reached.  The original exception is
            chained as ``__cause__``.
        """
        if self._watch_task is None:
            return
        try:
            await self._watch_task
        except KnowledgeIndexError:
            raise
        except Exception as exc:
            raise KnowledgeIndexError(
                "The knowledge-base watcher stopped unexpectedly",
                technical_message=f"{type(exc).__name__}: {exc}",
            ) from exc

    # ------------------------------------------------------------------
    # Event dispatch
    # ------------------------------------------------------------------

    async def handle_event(self, event: WatchEvent, path: str | Path) -> object | None:
        """Apply one file-system event to the index.

        Returns the ingestion result, or ``None`` when the file is filtered
        out, the guard dropped the event, or the event failed (failures are
        logged as ``watch_event_failed`` and never propagate).
        """
        file_path = Path(path)
        name = file_path.name
        if not is_supported_file(file_path):
            logger.debug("watch_event_ignored", watch_event=event, file=name)
            return None

        logger.info("watch_event_received", watch_event=event, file=name)
        self._events_handled += 1
        try:
            if event == "unlink":
                return await self._ingestion.remove_by_source(name)
            return await self._ingestion.process_document(file_path, name)
        except Exception as exc:  # noqa: BLE001 -- one bad file must not stop the watcher
            logger.error(
                "watch_event_failed",
                watch_event=event,
                file=name,
                error=str(exc),
                error_type=type(exc).__name__,
            )
            return None

    async def _handle_changes(self, changes: set[tuple[Change, str]]) -> None:
        for change, path in sorted(changes, key=lambda c: (c[1], c[0].value)):
            event = _EVENT_FOR_CHANGE[change]
            if event == "unlink" and Path(path).exists():
                # Deleted and recreated within one debounce window.
                event = "change"
            await self.handle_event(event, path)

    async def _watch_loop(self) -> None:
        try:
            async for changes in awatch(
                self._directory,
                watch_filter=knowledge_base_filter,
                debounce=self._debounce_ms,
                step=self._step_ms,
                stop_event=self._stop_event,
                recursive=False,
            ):
                await self._handle_changes(changes)
        except asyncio.CancelledError:
            raise
        except Exception as exc:  # noqa: BLE001
            logger.error("knowledge_base_watcher_error", error=str(exc))
            raise
