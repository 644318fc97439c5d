import logging
from typing import Annotated

import typer

from content_forge.cli.build import build

app = typer.Typer(
    name="content-forge",
    help="Content Forge CLI: validate content collections and materialize their assets.",
    no_args_is_help=True,
    context_settings={"help_option_names": ["-h", "--help"]},
)


@app.callback()
def configure(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Enable debug logging.")] = False,
) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


app.command("build")(build)


def main() -> None:
    app()
