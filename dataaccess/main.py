from __future__ import annotations

import json
import sys
from typing import List, Optional, Tuple

import typer

from dataaccess.config import get_settings
from dataaccess.errors import DataAccessError
from dataaccess.registry import Registry
from dataaccess.reporter import print_rows
from dataaccess.utils.logging import configure_logging

app = typer.Typer(help="Schema-driven data-access CLI.")


def parse_filter(expression: str) -> Tuple[str, Optional[str], str]:
    """
    Split ``field[:operator]=value`` into its parts.

    >>> parse_filter("user_name:begins=jo")
    ('user_name', 'begins', 'jo')
    """
    target, sep, value = expression.partition("=")
    if not sep or not target:
        raise typer.BadParameter(f"Expected field[:operator]=value, got '{expression}'.")
    field_name, _, operator = target.partition(":")
    return field_name.strip(), (operator.strip() or None), value


def parse_order(expression: str) -> Tuple[str, Optional[str]]:
    field_name, _, direction = expression.partition(":")
    return field_name.strip(), (direction.strip() or None)


@app.command()
def info() -> None:
    """
    Show effective configuration values.
    """
    settings = get_settings()
    typer.echo(
        f"DB={settings.db_user}@{settings.db_host}:{settings.db_port}/{settings.db_name} | "
        f"schemas={settings.schema_dir} max_limit={settings.max_limit} "
        f"cache_prefix={settings.cache_prefix} env={settings.app_env}"
    )


@app.command()
def search(
    table: str = typer.Argument(..., help="Table whose schema file should be used."),
    schema: str = typer.Option("public", "--schema", help="Schema part of the schema file name."),
    filters: List[str] = typer.Option(
        [],
        "--filter",
        "-f",
        help="Filter as field[:operator]=value, e.g. user_name:begins=jo. Repeatable.",
    ),
    orders: List[str] = typer.Option(
        [],
        "--order",
        "-o",
        help="Order as field[:ASC|DESC]. Repeatable.",
    ),
    limit: Optional[int] = typer.Option(None, "--limit", "-l", help="Maximum number of rows."),
    offset: Optional[int] = typer.Option(None, "--offset", help="Rows to skip (needs --limit)."),
    fields: Optional[str] = typer.Option(None, "--fields", help="Comma separated projection."),
    dry_run: bool = typer.Option(False, "--dry-run", help="Print the compiled statement instead of running it."),
) -> None:
    """
    Search a table through its schema-driven Model.
    """
    settings = get_settings()
    configure_logging(level=settings.log_level, json_logs=settings.log_json)

    registry = Registry(settings=settings)
    try:
        model = registry.model_for(table, schema=schema)
    except DataAccessError as exc:
        typer.echo(f"Error: {exc.message}", err=True)
        raise typer.Exit(code=2)

    for expression in filters:
        field_name, operator, value = parse_filter(expression)
        model.add_filter(field_name, value, operator)
    for expression in orders:
        field_name, direction = parse_order(expression)
        try:
            model.add_order(field_name, direction)
        except ValueError as exc:
            raise typer.BadParameter(str(exc)) from exc
    if limit is not None:
        model.set_limit(limit)
    if offset is not None:
        model.set_offset(offset)
    if fields:
        model.add_field(fields)

    if dry_run:
        query = registry.slang.search(model)
        model.reset()
        typer.echo(json.dumps({"sql": query.text, "parameters": query.parameters}, indent=2, default=str))
        return

    rows = model.search()
    if model.last_error is not None:
        typer.echo(f"Error: {model.last_error}", err=True)
        raise typer.Exit(code=1)
    print_rows(rows, title=f"{schema}.{table}")


def main() -> None:
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(130)


if __name__ == "__main__":
    main()
