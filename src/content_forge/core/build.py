"""Build orchestration: discover, load, validate and write every collection."""

from __future__ import annotations

import asyncio
import json
import logging
import time
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from pydantic_core import to_jsonable_python

from content_forge.core.assets import clean_directory
from content_forge.core.config import Collection, Config
from content_forge.core.context import BuildContext
from content_forge.core.files import File
from content_forge.core.loaders import DEFAULT_LOADERS, load_file
from content_forge.core.ports.loader import Loader
from content_forge.core.validate import claim_file, validate_file
from content_forge.models import Issue

logger = logging.getLogger(__name__)


@dataclass
class BuildResult:
    data: dict[str, Any] = field(default_factory=dict)
    files: list[File] = field(default_factory=list)
    elapsed: float = 0.0

    @property
    def issues(self) -> list[Issue]:
        return [issue for file in self.files for issue in file.issues]

    @property
    def ok(self) -> bool:
        return all(file.ok for file in self.files)


def discover_files(root: Path, pattern: str) -> list[Path]:
    return sorted(path for path in root.glob(pattern) if path.is_file())


async def _load(path: Path, loaders: Sequence[Loader]) -> File:
    try:
        return await asyncio.to_thread(load_file, path, loaders)
    except (OSError, ValueError, yaml.YAMLError) as exc:
        file = File(path=path)
        file.report([Issue(code="custom", message=f"Failed to load: {exc}")])
        return file


async def _process(file: File, collection: Collection, context: BuildContext) -> list[Any]:
    if not file.ok:
        return []
    result = await validate_file(file, collection.schema, context)
    if not result.ok:
        return []
    if isinstance(file.data, list):
        return list(result.value)
    return [result.value]


def _collect(collection: Collection, entries: list[Any]) -> Any:
    if not collection.single:
        return entries
    if len(entries) > 1:
        logger.warning("Collection %s is single but matched %d entries; using the first", collection.name, len(entries))
    return entries[0] if entries else None


def _write_data(data_dir: Path, data: dict[str, Any]) -> None:
    data_dir.mkdir(parents=True, exist_ok=True)
    for name, value in data.items():
        target = data_dir / f"{name}.json"
        payload = to_jsonable_python(value, by_alias=True)
        target.write_text(json.dumps(payload, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")
        logger.debug("Wrote %s", target)


async def run_build(config: Config, context: BuildContext | None = None, *, write: bool = True) -> BuildResult:
    """Run one full build.

    Files are validated concurrently. Uniqueness claims are made beforehand in
    collection declaration order and sorted path order, so contested values resolve
    the same way on every run.
    """
    started = time.perf_counter()
    context = context or BuildContext(config)

    if config.output.clean:
        await asyncio.to_thread(clean_directory, config.data_dir)
        await asyncio.to_thread(clean_directory, config.assets_dir)

    loaders = (*config.loaders, *DEFAULT_LOADERS)
    jobs: list[tuple[str, Collection, Path]] = []
    for key, collection in config.collections.items():
        paths = discover_files(config.root, collection.pattern)
        logger.info("Collection %s: %d file(s)", key, len(paths))
        jobs.extend((key, collection, path) for path in paths)

    files = await asyncio.gather(*(_load(path, loaders) for _, _, path in jobs))
    for (_, collection, _), file in zip(jobs, files, strict=True):
        if file.ok:
            claim_file(file, collection.schema, context)
    entries = await asyncio.gather(
        *(_process(file, collection, context) for (_, collection, _), file in zip(jobs, files, strict=True))
    )

    grouped: dict[str, list[Any]] = {name: [] for name in config.collections}
    for (key, _, _), values in zip(jobs, entries, strict=True):
        grouped[key].extend(values)

    result = BuildResult(files=list(files))
    for key, collection in config.collections.items():
        result.data[key] = _collect(collection, grouped[key])

    if write:
        await asyncio.to_thread(_write_data, config.data_dir, result.data)

    result.elapsed = time.perf_counter() - started
    issue_count = len(result.issues)
    if issue_count:
        logger.warning("Build finished with %d issue(s) in %d file(s)", issue_count, sum(not f.ok for f in files))
    logger.info("Built %d file(s) in %.2fs", len(files), result.elapsed)
    return result
