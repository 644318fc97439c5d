from collections.abc import Callable, Coroutine
from pathlib import Path
from typing import Any, Protocol

RebuildCallback = Callable[[set[Path]], Coroutine[Any, Any, None]]


class ContentWatcher(Protocol):
    """Watches the content root and calls back with the changed paths."""

    @property
    def directory(self) -> Path: ...

    async def start(self) -> None: ...

    async def stop(self) -> None: ...
