from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable
from pathlib import Path

from watchfiles import awatch

from content_forge.core.ports.watcher import RebuildCallback

logger = logging.getLogger(__name__)

# Swap and backup files written by editors while saving
_EDITOR_SUFFIXES: frozenset[str] = frozenset({".swp", ".swx", ".tmp"})


def _is_watched_file(path: Path) -> bool:
    if path.name.startswith(".") or path.name.endswith("~"):
        return False
    return path.suffix not in _EDITOR_SUFFIXES


class WatchfilesWatcher:
    """Rebuild trigger for the content root, backed by ``watchfiles.awatch``.

    Changes are batched by watchfiles (``debounce`` milliseconds), filtered, and handed
    to ``on_change`` as one set. Implements ``ContentWatcher``.
    """

    def __init__(
        self,
        directory: str | Path,
        on_change: RebuildCallback,
        ignore: Callable[[Path], bool] | None = None,
        debounce: int = 200,
    ) -> None:
        self._directory = Path(directory)
        self._on_change = on_change
        self._ignore = ignore
        self._debounce = debounce
        self._task: asyncio.Task[None] | None = None

    @property
    def directory(self) -> Path:
        return self._directory

    async def start(self) -> None:
        if self._task is not None:
            return
        self._task = asyncio.create_task(self._watch())
        logger.info("Watching %s", self._directory)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None
        logger.info("Stopped watching %s", self._directory)

    def _accepts(self, path: Path) -> bool:
        if not _is_watched_file(path):
            return False
        return self._ignore is None or not self._ignore(path)

    async def _watch(self) -> None:
        async for changes in awatch(self._directory, debounce=self._debounce):
            changed = {Path(raw) for _, raw in changes}
            paths = {path for path in changed if self._accepts(path)}
            if not paths:
                logger.debug("Ignored %d change(s)", len(changed))
                continue
            logger.info("%d content file(s) changed, rebuilding", len(paths))
            try:
                await self._on_change(paths)
            except Exception:
                logger.exception("Error in rebuild callback")
