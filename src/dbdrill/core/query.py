import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from dbdrill.core.catalog import Catalog
from dbdrill.core.coercion import from_text
from dbdrill.core.ports.database import Database, Row
from dbdrill.errors import CoercionError, ParameterError
from dbdrill.models import Resource, Search

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SearchResult:
    resource_id: str
    title: str
    rows: list[Row]


def bind_parameters(search: Search, param_strings: Sequence[str]) -> list[Any]:
    """Convert operator input to positional parameters, all or nothing."""
    if len(param_strings) != len(search.params):
        raise ValueError(f"search takes {len(search.params)} params but {len(param_strings)} were supplied")

    params: list[Any] = []
    for param, text in zip(search.params, param_strings, strict=True):
        try:
            params.append(from_text(text, param.type))
        except CoercionError as exc:
            raise ParameterError(f"error parsing parameter {param.name}: {exc}") from exc
    return params


async def run_search(database: Database, search: Search, param_strings: Sequence[str]) -> list[Row]:
    """Bind ``param_strings`` to ``search`` and run it.

    Nothing reaches the database unless every parameter converts.
    """
    params = bind_parameters(search, param_strings)
    logger.debug("Running search with %d params", len(params))
    return await database.fetch(search.query, params)


def search_title(resource: Resource, search_id: str, search: Search, param_strings: Sequence[str]) -> str:
    values = ", ".join(f"{p.name}={v}" for p, v in zip(search.params, param_strings, strict=True))
    return f"{resource.name} / {search_id} ({values})"


async def execute_search(
    database: Database,
    catalog: Catalog,
    resource_id: str,
    search_id: str,
    param_strings: Sequence[str],
) -> SearchResult:
    resource = catalog.resource(resource_id)
    search = catalog.search(resource_id, search_id)
    if resource is None or search is None:
        raise LookupError(f"unknown search {resource_id}.{search_id}")

    rows = await run_search(database, search, param_strings)
    logger.info("Search %s.%s returned %d rows", resource_id, search_id, len(rows))
    return SearchResult(
        resource_id=resource_id,
        title=search_title(resource, search_id, search, param_strings),
        rows=rows,
    )
