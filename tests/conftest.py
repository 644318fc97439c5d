"""Shared fixtures and helpers for tests."""

import io
import struct
import zlib
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest
from PIL import Image as PILImage

from content_forge.core.config import Config, Output
from content_forge.core.context import BuildContext
from content_forge.core.files import File

_REPO_ROOT = Path(__file__).parent.parent


# ---------------------------------------------------------------------------
# Auto-marker: tag tests as "unit" or "integration" based on directory
# ---------------------------------------------------------------------------


def pytest_collection_modifyitems(items: list[pytest.Item]) -> None:
    for item in items:
        test_path = Path(str(item.fspath))
        rel = test_path.relative_to(_REPO_ROOT / "tests")
        parts = rel.parts
        if parts and parts[0] == "integration":
            item.add_marker(pytest.mark.integration)
        else:
            item.add_marker(pytest.mark.unit)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def png_bytes(size: tuple[int, int] = (40, 20), color: tuple[int, int, int] = (200, 30, 30)) -> bytes:
    buffer = io.BytesIO()
    PILImage.new("RGB", size, color).save(buffer, format="PNG")
    return buffer.getvalue()


def oversized_png_bytes(width: int = 20000, height: int = 20000) -> bytes:
    """A 1x1 PNG whose IHDR claims ``width`` x ``height`` pixels."""
    data = bytearray(png_bytes((1, 1)))
    # IHDR follows the 8-byte signature: length, type, width, height, ..., crc
    data[16:24] = struct.pack(">II", width, height)
    data[29:33] = struct.pack(">I", zlib.crc32(bytes(data[12:29])))
    return bytes(data)


def write_bytes(path: Path, data: bytes) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)
    return path


# ---------------------------------------------------------------------------
# Shared unit-test fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def config(tmp_path: Path) -> Config:
    return Config(root=tmp_path / "content", output=Output(), config_path=tmp_path / "content.config.py")


@pytest.fixture
def context(config: Config) -> BuildContext:
    return BuildContext(config)


@pytest.fixture
def make_file(config: Config) -> Callable[..., File]:
    def _make(relative: str = "posts/hello.md", data: Any = None, content: str = "", plain: str = "") -> File:
        path = config.root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        return File(path=path, data=data if data is not None else {}, content=content, plain=plain)

    return _make


@pytest.fixture
def png() -> Callable[..., bytes]:
    return png_bytes


@pytest.fixture
def write() -> Callable[[Path, bytes], Path]:
    return write_bytes
