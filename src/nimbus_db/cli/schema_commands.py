"""Model schema inspection commands."""

from __future__ import annotations

import importlib
from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table

console = Console()

schema_app = typer.Typer(
    name="schema",
    help="Model schema inspection",
    no_args_is_help=True,
)


def _load_model(target: str) -> type:
    module_name, sep, class_name = target.partition(":")
    if not sep or not class_name:
        raise typer.BadParameter("Expected MODULE:CLASS", param_hint="TARGET")
    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise typer.BadParameter(f"Cannot import {module_name}: {e}") from e
    try:
        return getattr(module, class_name)
    except AttributeError as e:
        raise typer.BadParameter(f"{module_name} has no {class_name}") from e


@schema_app.command(name="show")
def show_schema(
    target: Annotated[
        str,
        typer.Argument(help="Model class as MODULE:CLASS"),
    ],
) -> None:
    """
    Show how a model class maps to the wire.

    Prints the schema name, the id field and every persisted field with its
    wire name and kind.
    """
    from nimbus_db.exceptions import ConfigurationError
    from nimbus_db.models import default_registry
    from nimbus_db.serialization import Serializer

    model_type = _load_model(target)
    try:
        meta = default_registry.metadata_for(model_type)
    except TypeError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(code=1) from e

    console.print(f"[bold blue]Schema:[/bold blue] {meta.schema_name}")
    console.print(f"Id field: [cyan]{meta.id_field_name}[/cyan]")

    table = Table(title=f"{model_type.__name__} ({len(meta.fields)} fields)")
    table.add_column("Field", style="cyan")
    table.add_column("Wire name", style="magenta")
    table.add_column("Kind", style="green")
    table.add_column("Element", style="yellow")
    for info in meta:
        element = getattr(info.element_type, "__name__", "") if info.element_type else ""
        table.add_row(info.name, info.wire_name, info.kind.value, element)
    console.print(table)

    try:
        Serializer().validate(meta)
    except ConfigurationError as e:
        console.print(f"[red]✗[/red] {e}")
        raise typer.Exit(code=1) from e
    console.print("[green]✓[/green] Names are valid")
