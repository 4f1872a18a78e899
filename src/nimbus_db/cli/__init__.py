"""Console script for nimbus_db."""

from __future__ import annotations

import sys
from typing import Annotated

import typer
from loguru import logger
from rich.console import Console

app = typer.Typer(
    name="nimbus_db",
    help="nimbus_db CLI - inspect model schemas and encode queries",
    no_args_is_help=True,
)
console = Console()


@app.callback()
def main(
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Show debug logging"),
    ] = False,
) -> None:
    """Object mapping and query encoding tools."""
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if verbose else "WARNING")


# Import subcommand apps
from nimbus_db.cli.query_commands import query_app  # noqa: E402
from nimbus_db.cli.schema_commands import schema_app  # noqa: E402

# Register subcommands
app.add_typer(query_app, name="query", help="Query expression tools")
app.add_typer(schema_app, name="schema", help="Model schema inspection")


if __name__ == "__main__":
    app()
