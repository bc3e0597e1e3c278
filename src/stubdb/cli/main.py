"""stubdb CLI - PHP stub signature database.

This module provides the command-line interface for stubdb, enabling
database builds, symbol lookups, diagnostics review and snapshot export.
"""

from __future__ import annotations

import json
import logging
import traceback
from dataclasses import asdict
from pathlib import Path
from typing import Annotated, Optional

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.logging import RichHandler

from stubdb.core.config import get_config
from stubdb.core.diagnostics import DiagnosticKind

# Load environment variables from .env file
load_dotenv()

app = typer.Typer(
    name="stubdb",
    help="Signature database for PHP stub files",
    no_args_is_help=True,
)

console = Console()
err_console = Console(stderr=True)

_verbose: bool = False


def set_verbose(verbose: bool) -> None:
    """Set global verbose mode."""
    global _verbose
    _verbose = verbose


def print_exception(e: Exception) -> None:
    """Print exception details in verbose mode."""
    if _verbose:
        err_console.print("\n[dim]--- Traceback (verbose mode) ---[/dim]")
        err_console.print(f"[dim]{traceback.format_exc()}[/dim]")


def configure_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else get_config().log_level.upper()
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


@app.callback()
def main_callback(
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable debug logging and full tracebacks"),
    ] = False,
) -> None:
    """stubdb CLI - PHP stub signature database."""
    set_verbose(verbose)
    configure_logging(verbose)


StubPath = Annotated[
    Path,
    typer.Argument(help="Stub directory or single stub file", exists=True, resolve_path=True),
]


def load_database(path: Path, quiet: bool = False):
    """Build the database for a command, exiting on failure."""
    from stubdb.services.build_service import BuildService

    service = BuildService()
    try:
        if quiet:
            return service.build_directory(path)
        with console.status("[bold blue]Building signature database..."):
            return service.build_directory(path)
    except OSError as e:
        err_console.print(f"[red]Error:[/red] {e}")
        print_exception(e)
        raise typer.Exit(1)


@app.command()
def build(
    path: StubPath,
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output machine-readable JSON"),
    ] = False,
) -> None:
    """Build the database and print a summary.

    Example:
        stubdb build ./stubs
    """
    from stubdb.cli._tables import build_diagnostics_table

    result = load_database(path, quiet=json_output)
    table = result.database.table

    if json_output:
        summary = {
            "files_scanned": result.files_scanned,
            "files_skipped": result.files_skipped,
            "classes": len(table.classes),
            "functions": len(table.functions),
            "constants": len(table.constants),
            "namespaces": len(table.namespaces),
            "diagnostics": [asdict(d) for d in result.diagnostics],
        }
        typer.echo(json.dumps(summary, ensure_ascii=False, indent=2, default=str))
        return

    console.print("[green]✓[/green] Build completed")
    console.print(f"  Files: {result.files_scanned} scanned, {result.files_skipped} skipped")
    console.print(f"  Classes: {len(table.classes)}")
    console.print(f"  Functions: {len(table.functions)}")
    console.print(f"  Constants: {len(table.constants)}")
    if result.diagnostics:
        console.print(f"  [yellow]Diagnostics: {len(result.diagnostics)}[/yellow]")
        console.print(build_diagnostics_table(result.diagnostics))


@app.command()
def lookup(
    path: StubPath,
    name: Annotated[str, typer.Argument(help="Fully qualified name, or Class::member")],
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output machine-readable JSON"),
    ] = False,
) -> None:
    """Look up a declaration by fully qualified name.

    Example:
        stubdb lookup ./stubs 'Ds\\Vector'
    """
    from stubdb.cli._tables import build_members_table, format_signature

    database = load_database(path, quiet=json_output).database
    declaration = database.lookup(name)
    if declaration is None:
        err_console.print(f"[red]Error:[/red] Not found: {name}")
        raise typer.Exit(1)

    if json_output:
        typer.echo(declaration.model_dump_json(indent=2))
        return

    console.print(f"[blue]{declaration.kind.value}[/blue] {declaration.qualified_name}")
    if declaration.location is not None:
        console.print(f"  Location: {declaration.location}")
    if declaration.is_deprecated:
        console.print("  [yellow]Deprecated[/yellow]")

    entry = database.get_class(name) if "::" not in name else None
    if entry is not None and entry.declaration.kind == declaration.kind:
        ancestors = database.ancestors(entry.name)
        if ancestors:
            console.print(f"  Ancestors: {', '.join(ancestors)}")
        console.print(build_members_table(entry))
        return

    function = database.get_function(name) if "::" not in name else None
    if function is not None:
        for signature in function.overloads.signatures:
            console.print(f"  {format_signature(function.declaration.name, signature)}")
        return

    constant = database.get_constant(name)
    if constant is not None:
        value = repr(constant.value) if constant.is_value_known else "unknown"
        console.print(f"  Type: {constant.type}")
        console.print(f"  Value: {value}")


@app.command()
def member(
    path: StubPath,
    class_name: Annotated[str, typer.Argument(help="Fully qualified class-like name")],
    member_name: Annotated[str, typer.Argument(help="Method or constant name, or $property")],
) -> None:
    """Resolve a member through the inheritance hierarchy.

    Example:
        stubdb member ./stubs 'ArrayIterator' count
    """
    from stubdb.cli._tables import format_signature

    database = load_database(path).database
    found = database.find_member(class_name, member_name)
    if found is None:
        err_console.print(f"[red]Error:[/red] {class_name} has no member {member_name}")
        raise typer.Exit(1)

    console.print(f"[blue]{found.kind.value}[/blue] {found.owner}::{found.declaration.name}")
    overloads = found.overloads()
    if overloads is not None:
        for signature in overloads.signatures:
            console.print(f"  {format_signature(found.declaration.name, signature)}")
    else:
        console.print(f"  Type: {found.type()}")


@app.command()
def diagnostics(
    path: StubPath,
    kind: Annotated[
        Optional[str],
        typer.Option("--kind", "-k", help="Only show diagnostics of this kind"),
    ] = None,
) -> None:
    """List build diagnostics.

    Example:
        stubdb diagnostics ./stubs --kind inheritance_cycle
    """
    from stubdb.cli._tables import build_diagnostics_table

    selected: DiagnosticKind | None = None
    if kind is not None:
        try:
            selected = DiagnosticKind(kind)
        except ValueError:
            err_console.print(f"[red]Error:[/red] Invalid kind: {kind}")
            err_console.print(f"  Valid options: {', '.join(k.value for k in DiagnosticKind)}")
            raise typer.Exit(1)

    result = load_database(path)
    items = result.diagnostics if selected is None else result.diagnostics_of(selected)
    if not items:
        console.print("[green]No diagnostics[/green]")
        return
    console.print(build_diagnostics_table(items))


@app.command()
def export(
    path: StubPath,
    output: Annotated[
        Path,
        typer.Option("--output", "-o", help="Output file path"),
    ],
) -> None:
    """Export the database as a JSON snapshot.

    Example:
        stubdb export ./stubs -o stubs.json
    """
    from stubdb.core.exceptions import SerializationError

    database = load_database(path).database
    try:
        output.write_text(database.to_snapshot(), encoding="utf-8")
    except (SerializationError, OSError) as e:
        err_console.print(f"[red]Error:[/red] Export failed: {e}")
        print_exception(e)
        raise typer.Exit(1)
    console.print(f"[green]✓[/green] Exported to {output}")


if __name__ == "__main__":
    app()
