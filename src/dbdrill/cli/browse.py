"""Interactive browser: a console front end over the ``Navigator`` screen stack."""

import asyncio
import logging
from collections.abc import Iterable, Sequence

import typer
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.prompt import Prompt
from rich.text import Text

from dbdrill.cli import options
from dbdrill.cli.options import DsnOption, ResourcesOption, console, err_console, load_catalog
from dbdrill.cli.render import render_rows, row_table
from dbdrill.core.navigation import (
    LinkPicker,
    Navigator,
    ParameterForm,
    ResourcePicker,
    ResultTable,
    SearchPicker,
)
from dbdrill.errors import DatabaseError, InvalidTransition, LinkError, ParameterError

logger = logging.getLogger(__name__)

BACK = ":b"
QUIT = ":q"

_VOWELS = frozenset("aeiou")


def _shortcut_candidates(label: str) -> list[tuple[int, str]]:
    word_starts: list[tuple[int, str]] = []
    prev_alpha = False
    for idx, ch in enumerate(label):
        if ch.isalpha() and not prev_alpha:
            word_starts.append((idx, ch))
        prev_alpha = ch.isalpha()
    consonants = [(idx, ch) for idx, ch in enumerate(label) if ch.isalpha() and ch not in _VOWELS]
    letters = [(idx, ch) for idx, ch in enumerate(label) if ch.isalpha()]
    return word_starts + consonants + letters


def assign_shortcuts(labels: Iterable[str]) -> list[tuple[int, str] | None]:
    """Pick one distinct letter per label: word starts first, then consonants, then any letter.

    Returns ``(index_in_label, letter)`` per label, or None when every letter is taken.
    """
    assigned: set[str] = set()
    result: list[tuple[int, str] | None] = []
    for label in labels:
        chosen = None
        for idx, ch in _shortcut_candidates(label):
            key = ch.lower()[0]
            if key not in assigned:
                assigned.add(key)
                chosen = (idx, key)
                break
        result.append(chosen)
    return result


class _Back(Exception):
    pass


class _Quit(Exception):
    pass


class Browser:
    def __init__(self, navigator: Navigator, console: Console) -> None:
        self.nav = navigator
        self.console = console

    def _ask(self, prompt: str) -> str:
        answer = Prompt.ask(prompt, console=self.console, default="", show_default=False).strip()
        if answer == QUIT:
            raise _Quit
        if answer == BACK:
            raise _Back
        return answer

    def _pick(self, title: str, choices: Sequence[tuple[str, str]]) -> str:
        """Show ``(label, value)`` choices and return the chosen value."""
        shortcuts = assign_shortcuts(label for label, _ in choices)
        self.console.print(Text(title, style="bold"))
        for number, ((label, _), shortcut) in enumerate(zip(choices, shortcuts, strict=True)):
            text = Text(f"{number:>3}  ")
            line = Text(label)
            if shortcut is not None:
                line.stylize("bold reverse", shortcut[0], shortcut[0] + 1)
            self.console.print(text + line)

        by_key = {sc[1]: value for sc, (_, value) in zip(shortcuts, choices, strict=True) if sc is not None}
        by_label = {label: value for label, value in choices}
        while True:
            answer = self._ask(f"Select ({BACK} back, {QUIT} quit)")
            if answer.isdigit() and int(answer) < len(choices):
                return choices[int(answer)][1]
            if answer in by_label:
                return by_label[answer]
            if answer.lower() in by_key:
                return by_key[answer.lower()]
            self.console.print(f"[yellow]No such choice:[/yellow] {escape(answer)}")

    def _resource_picker(self) -> None:
        choices = [(resource.name, resource_id) for resource_id, resource in self.nav.catalog.all_resources()]
        self.nav.select_resource(self._pick("Resources", choices))

    def _search_picker(self, screen: SearchPicker) -> None:
        resource = self.nav.catalog.resource(screen.resource_id)
        assert resource is not None
        choices = [(name, name) for name in self.nav.catalog.searches(screen.resource_id)]
        self.nav.select_search(self._pick(f"Search {resource.name} by...", choices))

    async def _parameter_form(self, screen: ParameterForm) -> None:
        resource = self.nav.catalog.resource(screen.resource_id)
        search = self.nav.catalog.search(screen.resource_id, screen.search_id)
        assert resource is not None and search is not None
        self.console.print(Text(f"Search {resource.name} by {screen.search_id}", style="bold"))
        values = []
        for param in search.params:
            hint = f" ({param.type.value})" if param.type is not None else ""
            values.append(self._ask(f"{param.name}{hint}"))
        await self.nav.submit(values)

    def _result_table(self, screen: ResultTable) -> None:
        render_rows(self.console, f"Query results: {screen.title}", screen.rows)
        while True:
            answer = self._ask(f"Row number to inspect, 'l <row>' for links ({BACK} back, {QUIT} quit)")
            if answer.isdigit() and int(answer) < len(screen.rows):
                self.console.print(row_table(screen.rows[int(answer)]))
                continue
            parts = answer.split()
            if len(parts) == 2 and parts[0] == "l" and parts[1].isdigit():
                self.nav.show_links(int(parts[1]))
                return
            self.console.print(f"[yellow]No such row:[/yellow] {escape(answer)}")

    async def _link_picker(self, screen: LinkPicker) -> None:
        links = self.nav.catalog.links(screen.resource_id)
        if not links:
            self.console.print("[yellow]This resource has no links.[/yellow]")
            self.nav.pop()
            return
        await self.nav.follow(self._pick("Links", [(name, name) for name in links]))

    async def _step(self) -> None:
        screen = self.nav.current
        if isinstance(screen, ResourcePicker):
            self._resource_picker()
        elif isinstance(screen, SearchPicker):
            self._search_picker(screen)
        elif isinstance(screen, ParameterForm):
            await self._parameter_form(screen)
        elif isinstance(screen, ResultTable):
            self._result_table(screen)
        elif isinstance(screen, LinkPicker):
            await self._link_picker(screen)

    async def run(self) -> None:
        """Drive the screen stack until the operator backs out of the first screen or quits."""
        while not self.nav.finished:
            try:
                await self._step()
            except _Back:
                self.nav.pop()
            except _Quit:
                while not self.nav.finished:
                    self.nav.pop()
            except (ParameterError, LinkError, DatabaseError, InvalidTransition) as exc:
                logger.info("Action failed: %s", exc)
                self.console.print(Panel(Text(str(exc)), title="Query Error", border_style="red"))


def browse(resources: ResourcesOption, dsn: DsnOption) -> None:
    """Browse the database interactively."""
    catalog = load_catalog(resources)
    db = options._get_database(dsn)

    async def _run() -> int:
        try:
            if not await db.ping():
                err_console.print("[red]Error connecting to the database.[/red]")
                return 1
            await Browser(Navigator(catalog, db), console).run()
            return 0
        finally:
            await db.dispose()

    code = asyncio.run(_run())
    if code:
        raise typer.Exit(code)
