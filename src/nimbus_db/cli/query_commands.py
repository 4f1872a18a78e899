"""Query expression commands."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Annotated

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

console = Console()

query_app = typer.Typer(
    name="query",
    help="Query expression tools",
    no_args_is_help=True,
)


@query_app.command(name="encode")
def encode_query(
    expression_file: Annotated[
        Path,
        typer.Argument(help="JSON file holding a query expression", exists=True, dir_okay=False),
    ],
    as_json: Annotated[
        bool,
        typer.Option("--json", help="Print the pairs as JSON instead of a table"),
    ] = False,
) -> None:
    """
    Encode a query expression into query string pairs.

    The file holds a group such as
    {"combinator": "and", "children": [{"field": "age", "op": "gte", "value": 2}]}.
    """
    from nimbus_db.models.schemas import GroupSpec
    from nimbus_db.query import encode_expression

    try:
        spec = GroupSpec.model_validate_json(expression_file.read_text())
    except ValidationError as e:
        console.print(f"[red]Error:[/red] Invalid query expression in {expression_file}")
        console.print(str(e))
        raise typer.Exit(code=1) from e

    pairs = encode_expression(spec.to_expression())

    if as_json:
        typer.echo(json.dumps([list(pair) for pair in pairs]))
        return

    table = Table(title=f"Query Arguments ({len(pairs)} pairs)")
    table.add_column("Key", style="cyan")
    table.add_column("Value", style="green")
    for key, value in pairs:
        table.add_row(key, value)
    console.print(table)
