"""Follow a link from a result row to another resource's search."""

import logging
from dataclasses import dataclass
from typing import Any

from dbdrill.core.catalog import Catalog
from dbdrill.core.coercion import decode_cell, evaluate_json_path, from_json, to_bindable
from dbdrill.core.ports.database import Database, Row
from dbdrill.core.query import SearchResult
from dbdrill.errors import LinkError, ParameterError
from dbdrill.models import ColumnExpression, JsonPathColumn, Search, SearchParam, SearchParamType

logger = logging.getLogger(__name__)

_JSON_TYPES = {SearchParamType.JSON.value, SearchParamType.JSONB.value}


@dataclass(frozen=True)
class ResolvedLink:
    resource_id: str
    search: Search
    params: list[Any]
    title: str


def _column_param(row: Row, name: str) -> tuple[Any, str]:
    column = row.column(name)
    if column is None:
        raise LinkError(f"row has no column named {name}")
    column_type = SearchParamType.from_db_type(column.type_name)
    if column_type is None:
        raise LinkError(f"column {name} has unsupported type {column.type_name}")
    value = row.value(name)
    return to_bindable(value, column_type), decode_cell(column, value)


def _json_path_param(row: Row, expression: JsonPathColumn, target: SearchParam) -> tuple[Any, str]:
    column = row.column(expression.column)
    if column is None:
        raise LinkError(f"row has no column named {expression.column}")
    if column.type_name not in _JSON_TYPES:
        raise LinkError(f"column {expression.column} of type {column.type_name} can't be read as JSON")
    document = row.value(expression.column)
    if document is None:
        raise LinkError(f"column {expression.column} is NULL")

    try:
        value = from_json(evaluate_json_path(expression.path, document), target.type)
    except ParameterError as exc:
        raise LinkError(f"error dereferencing {expression.path} for parameter {target.name}: {exc}") from exc
    return value, f"{expression.path}={decode_cell(column, document)}"


def _resolve_param(row: Row, expression: ColumnExpression, target: SearchParam) -> tuple[Any, str]:
    if isinstance(expression, JsonPathColumn):
        return _json_path_param(row, expression, target)
    return _column_param(row, expression)


def resolve_link(catalog: Catalog, resource_id: str, link_id: str, row: Row) -> ResolvedLink:
    """Derive the target search and its bound parameters from ``row``.

    Bare columns are bound with the row's own value (JSON cells re-serialized
    to text); JSONPath columns are converted to the target parameter's
    declared type. Neither the row nor the catalog is modified.
    """
    source = catalog.resource(resource_id)
    link = catalog.link(resource_id, link_id)
    if source is None or link is None:
        raise LookupError(f"unknown link {resource_id}.{link_id}")
    target_search = catalog.search(link.kind, link.search)
    if target_search is None:
        raise LookupError(f"link {resource_id}.{link_id} targets unknown search {link.kind}.{link.search}")

    params: list[Any] = []
    title_items: list[str] = []
    for expression, target in zip(link.search_params, target_search.params, strict=True):
        value, title_item = _resolve_param(row, expression, target)
        params.append(value)
        title_items.append(title_item)

    title = f"{source.name} ({', '.join(title_items)}) → {link_id}"
    logger.debug("Resolved link %s.%s to %s.%s", resource_id, link_id, link.kind, link.search)
    return ResolvedLink(resource_id=link.kind, search=target_search, params=params, title=title)


async def follow_link(
    database: Database,
    catalog: Catalog,
    resource_id: str,
    link_id: str,
    row: Row,
) -> SearchResult:
    resolved = resolve_link(catalog, resource_id, link_id, row)
    rows = await database.fetch(resolved.search.query, resolved.params)
    logger.info("Link %s.%s returned %d rows", resource_id, link_id, len(rows))
    return SearchResult(resource_id=resolved.resource_id, title=resolved.title, rows=rows)
