"""Rich table builders and formatters used by the CLI."""

from __future__ import annotations

from rich.table import Table

from stubdb.core.diagnostics import Diagnostic, Severity
from stubdb.core.models import ClassEntry, Parameter, Signature


def format_parameter(param: Parameter) -> str:
    text = str(param.type)
    if param.is_by_reference:
        text += " &"
    else:
        text += " "
    if param.is_variadic:
        text += "..."
    text += f"${param.name}"
    if param.has_default:
        text += f" = {param.default_expression}"
    if param.out_type is not None:
        text += f" (out: {param.out_type})"
    return text


def format_signature(name: str, signature: Signature) -> str:
    """Render ``name<T>(int $a, ...): R``."""
    templates = ""
    if signature.templates:
        templates = "<" + ", ".join(t.name for t in signature.templates) + ">"
    params = ", ".join(format_parameter(p) for p in signature.parameters)
    return f"{name}{templates}({params}): {signature.return_type}"


def build_diagnostics_table(diagnostics: list[Diagnostic]) -> Table:
    """Build the (Severity, Kind, Location, Symbol, Message) table."""
    table = Table(show_header=True)
    table.add_column("Severity")
    table.add_column("Kind", style="cyan")
    table.add_column("Location")
    table.add_column("Symbol")
    table.add_column("Message")
    for diagnostic in diagnostics:
        severity = (
            "[red]error[/red]"
            if diagnostic.severity == Severity.ERROR
            else "[yellow]warning[/yellow]"
        )
        location = diagnostic.file or ""
        if diagnostic.line is not None:
            location = f"{location}:{diagnostic.line}"
        table.add_row(
            severity,
            diagnostic.kind.value,
            location,
            diagnostic.symbol or "",
            diagnostic.message,
        )
    return table


def build_members_table(entry: ClassEntry) -> Table:
    """Build the member listing for `lookup` on a class-like."""
    table = Table(show_header=True, title=entry.name)
    table.add_column("Kind")
    table.add_column("Member")
    table.add_column("Declared In")
    for method in entry.methods.values():
        for signature in method.overloads.signatures:
            table.add_row(
                "method",
                format_signature(method.declaration.name, signature),
                method.declared_in,
            )
    for prop in entry.properties.values():
        table.add_row("property", f"{prop.type} ${prop.declaration.name}", prop.declared_in)
    for constant in entry.constants.values():
        value = repr(constant.value) if constant.is_value_known else "?"
        table.add_row(
            constant.declaration.kind.value,
            f"{constant.type} {constant.declaration.name} = {value}",
            constant.owner or "",
        )
    return table
