import asyncio
import logging
from typing import Annotated

import typer
from rich.markup import escape

from dbdrill.cli import options
from dbdrill.cli.options import DsnOption, ResourcesOption, console, err_console, load_catalog
from dbdrill.cli.render import render_rows
from dbdrill.core.query import execute_search
from dbdrill.errors import DatabaseError, ParameterError

logger = logging.getLogger(__name__)


def search(
    resources: ResourcesOption,
    dsn: DsnOption,
    resource: Annotated[str, typer.Argument(help="Resource key.")],
    search_id: Annotated[str, typer.Argument(metavar="SEARCH", help="Search name.")],
    params: Annotated[list[str] | None, typer.Argument(help="Search parameters, in declaration order.")] = None,
) -> None:
    """Run one search and print its results."""
    catalog = load_catalog(resources)
    found = catalog.search(resource, search_id)
    if found is None:
        err_console.print(f"[red]Unknown search[/red] {escape(resource)}.{escape(search_id)}")
        raise typer.Exit(1)

    values = params or []
    if len(values) != len(found.params):
        expected = " ".join(p.name for p in found.params) or "(none)"
        err_console.print(f"[red]Expected {len(found.params)} parameters:[/red] {escape(expected)}")
        raise typer.Exit(2)

    db = options._get_database(dsn)

    async def _run() -> None:
        try:
            result = await execute_search(db, catalog, resource, search_id, values)
            render_rows(console, result.title, result.rows)
        finally:
            await db.dispose()

    try:
        asyncio.run(_run())
    except (ParameterError, DatabaseError) as exc:
        logger.debug("Search %s.%s failed", resource, search_id, exc_info=True)
        err_console.print(f"[red]Query error:[/red] {escape(str(exc))}")
        raise typer.Exit(1) from exc
