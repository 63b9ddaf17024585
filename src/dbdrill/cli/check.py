from rich.table import Table
from rich.text import Text

from dbdrill.cli.options import ResourcesOption, console, load_catalog


def check(resources: ResourcesOption) -> None:
    """Load and validate the resources configuration."""
    catalog = load_catalog(resources)

    table = Table(show_lines=False)
    for h in ("resource", "name", "searches", "links"):
        table.add_column(h)
    for resource_id, resource in catalog.all_resources():
        table.add_row(
            Text(resource_id),
            Text(resource.name),
            Text(", ".join(catalog.searches(resource_id))),
            Text(", ".join(catalog.links(resource_id))),
        )
    console.print(table)
    console.print(f"[green]{len(catalog)} resources OK[/green]")
