from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, Protocol


@dataclass(frozen=True)
class Column:
    name: str
    type_name: str


@dataclass(frozen=True)
class Row:
    """One result row: named, typed columns and their native values."""

    columns: tuple[Column, ...]
    values: tuple[Any, ...]

    def index_of(self, name: str) -> int | None:
        for idx, col in enumerate(self.columns):
            if col.name == name:
                return idx
        return None

    def column(self, name: str) -> Column | None:
        idx = self.index_of(name)
        return None if idx is None else self.columns[idx]

    def value(self, name: str) -> Any:
        idx = self.index_of(name)
        if idx is None:
            raise KeyError(name)
        return self.values[idx]


class Database(Protocol):
    async def fetch(self, query: str, params: Sequence[Any]) -> list[Row]: ...

    async def ping(self) -> bool: ...

    async def dispose(self) -> None: ...
