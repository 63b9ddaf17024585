"""Screen stack driven by the interactive browser.

Only ``submit`` (parameter form) and ``follow`` (link picker) touch the
database; every other transition is a push or pop over data already held.
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import TypeVar

from dbdrill.core.catalog import Catalog
from dbdrill.core.links import follow_link
from dbdrill.core.ports.database import Database, Row
from dbdrill.core.query import execute_search
from dbdrill.errors import InvalidTransition

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResourcePicker:
    pass


@dataclass(frozen=True)
class SearchPicker:
    resource_id: str


@dataclass(frozen=True)
class ParameterForm:
    resource_id: str
    search_id: str


@dataclass(frozen=True)
class ResultTable:
    resource_id: str
    title: str
    rows: list[Row]


@dataclass(frozen=True)
class LinkPicker:
    resource_id: str
    row: Row


Screen = ResourcePicker | SearchPicker | ParameterForm | ResultTable | LinkPicker

S = TypeVar("S", ResourcePicker, SearchPicker, ParameterForm, ResultTable, LinkPicker)


class Navigator:
    def __init__(self, catalog: Catalog, database: Database) -> None:
        self.catalog = catalog
        self.database = database
        self._stack: list[Screen] = [ResourcePicker()]

    @property
    def current(self) -> Screen | None:
        return self._stack[-1] if self._stack else None

    @property
    def depth(self) -> int:
        return len(self._stack)

    @property
    def finished(self) -> bool:
        return not self._stack

    def push(self, screen: Screen) -> None:
        logger.debug("Push %s", type(screen).__name__)
        self._stack.append(screen)

    def pop(self) -> Screen | None:
        """Go back one screen; returns the screen now on top, or None when the session ended."""
        if self._stack:
            logger.debug("Pop %s", type(self._stack[-1]).__name__)
            self._stack.pop()
        return self.current

    def _expect(self, screen_type: type[S]) -> S:
        screen = self.current
        if not isinstance(screen, screen_type):
            current = type(screen).__name__ if screen is not None else "nothing"
            raise InvalidTransition(f"expected {screen_type.__name__} screen, currently on {current}")
        return screen

    def select_resource(self, resource_id: str) -> None:
        self._expect(ResourcePicker)
        if self.catalog.resource(resource_id) is None:
            raise InvalidTransition(f"unknown resource {resource_id}")
        self.push(SearchPicker(resource_id))

    def select_search(self, search_id: str) -> None:
        screen = self._expect(SearchPicker)
        if self.catalog.search(screen.resource_id, search_id) is None:
            raise InvalidTransition(f"resource {screen.resource_id} has no search {search_id}")
        self.push(ParameterForm(screen.resource_id, search_id))

    async def submit(self, param_strings: Sequence[str]) -> ResultTable:
        screen = self._expect(ParameterForm)
        result = await execute_search(
            self.database, self.catalog, screen.resource_id, screen.search_id, param_strings
        )
        table = ResultTable(result.resource_id, result.title, result.rows)
        self.push(table)
        return table

    def show_links(self, row_index: int) -> None:
        screen = self._expect(ResultTable)
        if not 0 <= row_index < len(screen.rows):
            raise InvalidTransition(f"no row {row_index} in the current results")
        self.push(LinkPicker(screen.resource_id, screen.rows[row_index]))

    async def follow(self, link_id: str) -> ResultTable:
        """Resolve and run a link; the new results replace the link picker."""
        screen = self._expect(LinkPicker)
        if self.catalog.link(screen.resource_id, link_id) is None:
            raise InvalidTransition(f"resource {screen.resource_id} has no link {link_id}")
        result = await follow_link(self.database, self.catalog, screen.resource_id, link_id, screen.row)
        table = ResultTable(result.resource_id, result.title, result.rows)
        self._stack.pop()
        self.push(table)
        return table
