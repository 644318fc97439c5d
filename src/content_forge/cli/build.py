import asyncio
import contextlib
import dataclasses
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table

from content_forge.core.build import BuildResult, run_build
from content_forge.core.config import Config, load_config
from content_forge.core.context import BuildContext
from content_forge.core.ports.watcher import ContentWatcher
from content_forge.models import Issue
from content_forge.watcher.watchfiles_adapter import WatchfilesWatcher

console = Console()


def _render_issues(issues: list[Issue]) -> None:
    table = Table(show_lines=False)
    for header in ("file", "field", "code", "message"):
        table.add_column(header)
    for issue in issues:
        table.add_row(issue.file or "", ".".join(str(key) for key in issue.path), issue.code, issue.message)
    console.print(table)


def _report(result: BuildResult) -> None:
    if result.issues:
        _render_issues(result.issues)
        console.print(f"[yellow]{len(result.issues)} issue(s)[/yellow] in {len(result.files)} file(s)")
    entries = sum(len(value) if isinstance(value, list) else int(value is not None) for value in result.data.values())
    console.print(f"[green]Built[/green] {entries} entries from {len(result.files)} file(s) in {result.elapsed:.2f}s")


def _under(path: Path, directories: tuple[Path, ...]) -> bool:
    resolved = path.resolve()
    return any(resolved.is_relative_to(directory) for directory in directories)


async def _watch(config: Config, write: bool) -> None:
    context = BuildContext(config)
    rebuild_config = dataclasses.replace(config, output=config.output.model_copy(update={"clean": False}))
    outputs = (config.data_dir.resolve(), config.assets_dir.resolve())

    async def _rebuild(paths: set[Path]) -> None:
        context.reset()
        _report(await run_build(rebuild_config, context, write=write))

    watcher: ContentWatcher = WatchfilesWatcher(config.root, _rebuild, ignore=lambda path: _under(path, outputs))
    await watcher.start()
    console.print(f"Watching {config.root} for changes (Ctrl+C to stop)")
    try:
        await asyncio.Event().wait()
    finally:
        await watcher.stop()


def build(
    config: Annotated[
        str | None, typer.Option("--config", "-c", help="Config file (default: content.config.py).")
    ] = None,
    clean: Annotated[bool, typer.Option(help="Remove the data and assets directories first.")] = False,
    strict: Annotated[bool, typer.Option(help="Exit with an error if any issue is reported.")] = False,
    watch: Annotated[bool, typer.Option(help="Rebuild when content changes.")] = False,
    dry_run: Annotated[bool, typer.Option(help="Validate without writing data files.")] = False,
) -> None:
    """Validate every collection and write its data files."""
    try:
        resolved = load_config(config)
    except (FileNotFoundError, ValueError) as exc:
        console.print(f"[red]Invalid configuration:[/red] {exc}")
        raise typer.Exit(1) from None

    if clean:
        resolved = dataclasses.replace(resolved, output=resolved.output.model_copy(update={"clean": True}))

    result = asyncio.run(run_build(resolved, write=not dry_run))
    _report(result)
    if strict and not result.ok:
        raise typer.Exit(1)

    if watch:
        with contextlib.suppress(KeyboardInterrupt):
            asyncio.run(_watch(resolved, write=not dry_run))
