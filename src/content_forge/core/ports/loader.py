from pathlib import Path
from typing import Protocol

from content_forge.core.files import File


class Loader(Protocol):
    def test(self, path: Path) -> bool: ...

    def load(self, path: Path, text: str) -> File: ...
