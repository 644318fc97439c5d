"""Content-addressed asset materialization."""

from __future__ import annotations

import asyncio
import base64
import hashlib
import io
import logging
import math
import re
import shutil
from pathlib import Path

from PIL import Image as PILImage
from PIL import UnidentifiedImageError

from content_forge.core.context import BuildContext
from content_forge.models import Asset, Image, ImageMetadata

logger = logging.getLogger(__name__)

_TEMPLATE_TOKEN = re.compile(r"\[(name|hash|ext)(?::(\d+))?\]")
_PROTOCOL = re.compile(r"^[a-z][a-z0-9+.-]*:", re.IGNORECASE)
_BLUR_WIDTH = 8


def is_relative_path(url: str) -> bool:
    if url.startswith(("/", "#", "?")):
        return False
    return not _PROTOCOL.match(url)


def strip_query(reference: str) -> str:
    return re.split(r"[?#]", reference, maxsplit=1)[0]


def content_hash(data: bytes) -> str:
    return hashlib.md5(data, usedforsecurity=False).hexdigest()


def render_asset_name(template: str, *, name: str, ext: str, digest: str) -> str:
    """Substitute ``[name]``, ``[hash]`` and ``[ext]`` tokens, each optionally ``[token:N]``.

    ``ext`` is the source suffix without its leading dot.
    """
    values = {"name": name, "hash": digest, "ext": ext}

    def _substitute(match: re.Match[str]) -> str:
        value = values[match.group(1)]
        length = match.group(2)
        return value[: int(length)] if length is not None else value

    return _TEMPLATE_TOKEN.sub(_substitute, template)


def public_url(base: str, filename: str) -> str:
    return base + filename


def _js_round(value: float) -> int:
    return math.floor(value + 0.5)


def read_image_metadata(data: bytes) -> ImageMetadata:
    """Decode pixel dimensions and build a tiny webp placeholder."""
    try:
        with PILImage.open(io.BytesIO(data)) as img:
            width, height = img.size
            if width == 0 or height == 0:
                raise ValueError("Image has no pixels")
            blur_height = max(1, _js_round(_BLUR_WIDTH / (width / height)))
            preview = img.convert("RGBA" if "A" in img.getbands() else "RGB")
            preview = preview.resize((_BLUR_WIDTH, blur_height))
    except UnidentifiedImageError:
        raise ValueError("Unsupported image format") from None
    except (OSError, PILImage.DecompressionBombError) as exc:
        raise ValueError(f"Cannot decode image: {exc}") from None

    buffer = io.BytesIO()
    preview.save(buffer, format="WEBP", quality=1)
    encoded = base64.b64encode(buffer.getvalue()).decode("ascii")
    return ImageMetadata(
        width=width,
        height=height,
        blur_data_url=f"data:image/webp;base64,{encoded}",
        blur_width=_BLUR_WIDTH,
        blur_height=blur_height,
    )


def _read_source(path: Path) -> bytes:
    try:
        return path.read_bytes()
    except (FileNotFoundError, IsADirectoryError):
        raise FileNotFoundError(f"File not found: {path}") from None


def _write_asset(target: Path, data: bytes) -> None:
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_bytes(data)


def clean_directory(path: Path) -> None:
    if path.exists():
        logger.info("Cleaning %s", path)
        shutil.rmtree(path)


async def resolve_asset(reference: str, from_path: Path, context: BuildContext) -> tuple[Asset, bytes]:
    source = (from_path.parent / strip_query(reference)).resolve()
    data = await asyncio.to_thread(_read_source, source)
    digest = content_hash(data)

    async def _materialize() -> Asset:
        name = render_asset_name(
            context.output.name,
            name=source.stem,
            ext=source.suffix[1:],
            digest=digest,
        )
        url = public_url(context.output.base, name)
        target = context.config.assets_dir / name
        await asyncio.to_thread(_write_asset, target, data)
        logger.debug("Wrote asset %s -> %s", source, target)
        context.reserve("assets:url", url, digest)
        return Asset(source=str(source), digest=digest, name=name, url=url)

    asset = await context.register(f"assets:{digest}", _materialize)
    return asset, data


async def process_file(reference: str, from_path: Path, context: BuildContext) -> str:
    asset, _ = await resolve_asset(reference, from_path, context)
    return asset.url


async def process_image(reference: str, from_path: Path, context: BuildContext) -> Image:
    asset, data = await resolve_asset(reference, from_path, context)

    async def _decode() -> ImageMetadata:
        try:
            return await asyncio.to_thread(read_image_metadata, data)
        except ValueError as exc:
            raise ValueError(f"Invalid image '{reference}' in {from_path}: {exc}") from None

    metadata = await context.register(f"images:{asset.digest}", _decode)
    return Image(src=asset.url, **metadata.model_dump())
