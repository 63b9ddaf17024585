from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from dbdrill.core.ports.database import Column, Row
from dbdrill.errors import DatabaseError


def make_rows(columns: Sequence[tuple[str, str]], values: Sequence[Sequence[Any]]) -> list[Row]:
    """Build rows sharing one ``(name, type_name)`` column layout."""
    cols = tuple(Column(name=name, type_name=type_name) for name, type_name in columns)
    return [Row(columns=cols, values=tuple(v)) for v in values]


@dataclass(frozen=True)
class RecordedQuery:
    query: str
    params: tuple[Any, ...]


class InMemoryDatabase:
    """Serves canned rows keyed by query text and records every call."""

    def __init__(self) -> None:
        self.results: dict[str, list[Row]] = {}
        self.calls: list[RecordedQuery] = []
        self.failure: str | None = None
        self.reachable = True
        self.disposed = False

    def add_result(self, query: str, columns: Sequence[tuple[str, str]], values: Sequence[Sequence[Any]]) -> None:
        self.results[query] = make_rows(columns, values)

    async def fetch(self, query: str, params: Sequence[Any]) -> list[Row]:
        self.calls.append(RecordedQuery(query=query, params=tuple(params)))
        if self.failure is not None:
            raise DatabaseError(f"error running SQL query: {self.failure}")
        return list(self.results.get(query, []))

    async def ping(self) -> bool:
        return self.reachable

    async def dispose(self) -> None:
        self.disposed = True
