import logging
from typing import Annotated

import typer
from rich.console import Console
from rich.logging import RichHandler

from dbdrill.cli.browse import browse
from dbdrill.cli.check import check
from dbdrill.cli.search import search

app = typer.Typer(
    name="dbdrill",
    help="Drill through a PostgreSQL database along configured resources and links.",
    no_args_is_help=True,
    context_settings={"help_option_names": ["-h", "--help"]},
)

app.command("check")(check)
app.command("search")(search)
app.command("browse")(browse)


@app.callback()
def _configure(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Log debug output to stderr.")] = False,
) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )


def main() -> None:
    app()
