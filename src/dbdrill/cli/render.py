from collections.abc import Sequence

from rich.console import Console
from rich.table import Table
from rich.text import Text

from dbdrill.core.coercion import decode_row
from dbdrill.core.ports.database import Row

_MAX_COL_WIDTH = 32


def results_table(title: str, rows: Sequence[Row]) -> Table:
    """Decoded rows as a table; a cell that can't be decoded shows its error instead."""
    table = Table(title=Text(title), show_lines=False)
    if not rows:
        return table
    table.add_column("#", justify="right")
    for col in rows[0].columns:
        table.add_column(col.name, max_width=_MAX_COL_WIDTH, no_wrap=True, overflow="ellipsis")
    for idx, row in enumerate(rows):
        table.add_row(str(idx), *(Text(v) for v in decode_row(row)))
    return table


def row_table(row: Row) -> Table:
    table = Table(show_header=False, show_lines=True)
    table.add_column("column", style="bold")
    table.add_column("value")
    for col, value in zip(row.columns, decode_row(row), strict=True):
        table.add_row(Text(col.name), Text(value))
    return table


def render_rows(console: Console, title: str, rows: Sequence[Row]) -> None:
    console.print(results_table(title, rows))
    console.print(f"({len(rows)} rows)")
