"""Build-wide shared state passed by reference into every schema invocation."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Any, TypeVar

from content_forge.core.config import Config, Output

logger = logging.getLogger(__name__)

T = TypeVar("T")


class BuildContext:
    """Key/value cache shared by all files of one build.

    ``reserve``, ``register`` and ``reset`` are the only mutation entry points. All of
    them run on the event loop thread; ``reserve`` never suspends, so the first caller
    to reach it wins.
    """

    def __init__(self, config: Config) -> None:
        self.config = config
        self._cache: dict[str, Any] = {}

    @property
    def output(self) -> Output:
        return self.config.output

    @property
    def root(self) -> Path:
        return self.config.root

    def __len__(self) -> int:
        return len(self._cache)

    def lookup(self, key: str) -> Any | None:
        value = self._cache.get(key)
        if isinstance(value, asyncio.Future):
            if not value.done() or value.cancelled() or value.exception() is not None:
                return None
            return value.result()
        return value

    def reserve(self, namespace: str, value: str, owner: str) -> str | None:
        """Claim ``namespace:value`` for ``owner``.

        Returns ``None`` when the claim succeeds or ``owner`` already holds it,
        otherwise the owner already stored.
        """
        key = f"{namespace}:{value}"
        previous = self._cache.get(key)
        if previous is not None and previous != owner:
            return str(previous)
        self._cache[key] = owner
        return None

    async def register(self, key: str, factory: Callable[[], Awaitable[T]]) -> T:
        """Run ``factory`` once per key and share its result with every caller.

        Concurrent callers for the same key await the same in-flight task. A failed
        task is evicted so a later call can retry it.
        """
        entry = self._cache.get(key)
        if entry is None:
            entry = asyncio.ensure_future(factory())
            self._cache[key] = entry
        elif not isinstance(entry, asyncio.Future):
            return entry  # type: ignore[no-any-return]

        try:
            return await asyncio.shield(entry)  # type: ignore[no-any-return]
        except Exception:
            if self._cache.get(key) is entry:
                del self._cache[key]
            raise

    def reset(self) -> None:
        logger.debug("Resetting build context (%d entries)", len(self._cache))
        self._cache.clear()
