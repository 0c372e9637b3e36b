from __future__ import annotations

import json
from typing import Any, Dict, List, Optional, Sequence

from rich import box
from rich.console import Console
from rich.table import Table


def format_cell(value: Any) -> str:
    """
    Render one value for a table cell.

    None shows as an empty cell; structured values are shown as compact JSON.
    """
    if value is None:
        return ""
    if isinstance(value, (dict, list)):
        return json.dumps(value, default=str, separators=(",", ":"))
    return str(value)


def print_rows(
    rows: List[Dict[str, Any]],
    title: str = "Results",
    columns: Optional[Sequence[str]] = None,
    console: Optional[Console] = None,
) -> None:
    """
    Render search results as a rich table.

    Columns default to the keys of the first row, in order; rows missing a
    column get an empty cell.
    """
    console = console or Console()

    if not rows:
        console.print("[yellow]No rows matched.[/yellow]")
        return

    names = list(columns) if columns else list(rows[0].keys())
    table = Table(
        title=title,
        box=box.ROUNDED,
        caption=f"{len(rows)} row(s)",
    )
    for index, name in enumerate(names):
        table.add_column(name, style="cyan" if index == 0 else None, no_wrap=index == 0)

    for row in rows:
        table.add_row(*(format_cell(row.get(name)) for name in names))

    console.print(table)


__all__ = ["format_cell", "print_rows"]
