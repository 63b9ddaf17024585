"""The validated, read-only graph of resources, searches and links."""

from __future__ import annotations

import logging
import tomllib
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from pydantic import TypeAdapter, ValidationError

from dbdrill.core.coercion import compile_json_path
from dbdrill.errors import CoercionError, ConfigurationError
from dbdrill.models import JsonPathColumn, Link, Resource, Search

logger = logging.getLogger(__name__)

_RESOURCES = TypeAdapter(dict[str, Resource])


def _format_validation_error(exc: ValidationError) -> str:
    first = exc.errors()[0]
    location = ".".join(str(part) for part in first["loc"])
    return f"invalid configuration at {location}: {first['msg']}"


def _validate_link(resources: Mapping[str, Resource], link: Link) -> None:
    target = resources.get(link.kind)
    if target is None:
        raise ValueError(f"link references a non existing resource {link.kind}")

    target_search = target.search.get(link.search)
    if target_search is None:
        raise ValueError(f"referenced resource {link.kind} has no search named {link.search}")

    if len(target_search.params) != len(link.search_params):
        raise ValueError(
            f"referenced search {link.search} has {len(target_search.params)} params "
            f"but link specifies {len(link.search_params)}"
        )

    for idx, expression in enumerate(link.search_params):
        if isinstance(expression, JsonPathColumn):
            try:
                compile_json_path(expression.path)
            except CoercionError as exc:
                raise ValueError(f"invalid JSONPath expression for search parameter {idx}: {exc}") from exc

    if link.condition is not None:
        expression = link.condition.eq[0]
        if isinstance(expression, JsonPathColumn):
            try:
                compile_json_path(expression.path)
            except CoercionError as exc:
                raise ValueError(f'link condition ("if") is an invalid JSONPath expression: {exc}') from exc


def validate_resources(resources: Mapping[str, Resource]) -> None:
    """Check every catalog invariant, raising on the first violation.

    Resources and links are visited in key order so the reported violation
    doesn't depend on the mapping's iteration order.
    """
    used_names: dict[str, str] = {}

    for resource_id in sorted(resources):
        resource = resources[resource_id]
        if not resource_id:
            raise ConfigurationError("resource identifiers can't be empty")
        if not resource.name:
            raise ConfigurationError("resource has an empty name", resource_id=resource_id)
        other = used_names.get(resource.name)
        if other is not None:
            raise ConfigurationError(f"resource has the same name as {other}", resource_id=resource_id)
        used_names[resource.name] = resource_id

        for link_id in sorted(resource.links):
            try:
                _validate_link(resources, resource.links[link_id])
            except ValueError as exc:
                raise ConfigurationError(str(exc), resource_id=resource_id, link_id=link_id) from exc


class Catalog:
    """Resources loaded from configuration; immutable once built."""

    def __init__(self, resources: Mapping[str, Resource]) -> None:
        validate_resources(resources)
        self._resources = dict(resources)

    @classmethod
    def load(cls, raw: Mapping[str, Any]) -> Catalog:
        try:
            resources = _RESOURCES.validate_python(dict(raw))
        except ValidationError as exc:
            raise ConfigurationError(_format_validation_error(exc)) from exc
        catalog = cls(resources)
        logger.info("Loaded %d resources", len(resources))
        return catalog

    @classmethod
    def load_file(cls, path: Path | str) -> Catalog:
        path = Path(path)
        try:
            with path.open("rb") as f:
                raw = tomllib.load(f)
        except OSError as exc:
            raise ConfigurationError(f"error opening resources file {path}: {exc}") from exc
        except tomllib.TOMLDecodeError as exc:
            raise ConfigurationError(f"error parsing resources file {path}: {exc}") from exc
        logger.debug("Parsed resources file %s", path)
        return cls.load(raw)

    def resource(self, resource_id: str) -> Resource | None:
        return self._resources.get(resource_id)

    def all_resources(self) -> list[tuple[str, Resource]]:
        """Every (id, resource) pair, ordered by display name."""
        return sorted(self._resources.items(), key=lambda item: item[1].name)

    def search(self, resource_id: str, search_id: str) -> Search | None:
        resource = self._resources.get(resource_id)
        return None if resource is None else resource.search.get(search_id)

    def link(self, resource_id: str, link_id: str) -> Link | None:
        resource = self._resources.get(resource_id)
        return None if resource is None else resource.links.get(link_id)

    def searches(self, resource_id: str) -> list[str]:
        resource = self._resources.get(resource_id)
        return [] if resource is None else sorted(resource.search)

    def links(self, resource_id: str) -> list[str]:
        resource = self._resources.get(resource_id)
        return [] if resource is None else sorted(resource.links)

    def __len__(self) -> int:
        return len(self._resources)
