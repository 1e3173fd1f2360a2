"""Display components for CLI using Rich."""

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from codestruct.code_structure import BatchResult, CodeDataStruct, Diagnostic, DiagnosticLevel, ScopeGraph

console = Console()

TYPE_COLORS = {
    "Class": "cyan",
    "Interface": "magenta",
    "Enum": "yellow",
    "Message": "green",
}


def show_success(title: str, message: str) -> None:
    """Display a success message."""
    console.print()
    console.print(
        Panel(
            f"[bold green]{escape(message)}[/]",
            title=f"[bold]{title}[/]",
            border_style="green",
        )
    )


def show_error(title: str, message: str) -> None:
    """Display an error message."""
    console.print()
    console.print(
        Panel(
            f"[bold red]{escape(message)}[/]",
            title=f"[bold]{escape(title)}[/]",
            border_style="red",
        )
    )


def show_info(title: str, message: str) -> None:
    """Display an info message."""
    console.print()
    console.print(
        Panel(
            message,
            title=f"[bold]{title}[/]",
            border_style="blue",
        )
    )


def _add_struct_rows(table: Table, struct: CodeDataStruct, depth: int) -> None:
    kind = struct.type.value
    color = TYPE_COLORS.get(kind, "white")
    name = escape(struct.node_name)
    if struct.is_function_holder:
        name = f"[dim]{name}[/]"
    table.add_row(
        "  " * depth + name,
        f"[{color}]{kind}[/]",
        escape(struct.extend or ", ".join(struct.multiple_extend)),
        str(len(struct.fields)),
        str(len(struct.functions)),
        str(struct.position.start_line + 1) if not struct.is_function_holder else "-",
    )
    for inner in struct.inner_structures:
        _add_struct_rows(table, inner, depth + 1)


def show_structs(structs: list[CodeDataStruct], title: str = "Structures") -> None:
    """Display structures, inner structures indented under their owner.

    Args:
        structs: Top-level structures of one file.
        title: Table title.
    """
    if not structs:
        console.print("[dim]No structures found.[/]")
        return

    table = Table(title=f"[bold]{escape(title)}[/]")
    table.add_column("Name", style="bold")
    table.add_column("Type")
    table.add_column("Extends", style="dim")
    table.add_column("Fields", justify="right")
    table.add_column("Functions", justify="right")
    table.add_column("Line", justify="right", style="dim")

    for struct in structs:
        _add_struct_rows(table, struct, 0)
    console.print(table)


def show_struct_detail(struct: CodeDataStruct) -> None:
    """Display the members of one structure."""
    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="white")

    table.add_row("Module", escape(struct.module))
    if struct.package:
        table.add_row("Package", escape(struct.package))
    if struct.implements:
        table.add_row("Implements", escape(", ".join(struct.implements)))
    for annotation in struct.annotations:
        table.add_row("Annotation", f"@{escape(annotation.name)}")
    for field in struct.fields:
        table.add_row("Field", escape(f"{field.name}: {field.type}" if field.type else field.name))
    for func in struct.functions:
        table.add_row("Function", escape(func.signature))
    if struct.function_calls:
        table.add_row("Calls", escape(", ".join(struct.function_calls)))

    console.print(Panel(table, title=f"[bold]{escape(struct.node_name)}[/]", border_style="blue"))


def show_diagnostics(diagnostics: list[Diagnostic]) -> None:
    """Display per-file diagnostics of a batch run."""
    if not diagnostics:
        return

    table = Table(title="[bold]Diagnostics[/]", show_lines=True)
    table.add_column("Level", width=8)
    table.add_column("File", style="cyan")
    table.add_column("Type", style="dim")
    table.add_column("Message")

    for diagnostic in diagnostics:
        level = (
            "[bold red]ERROR[/]"
            if diagnostic.level == DiagnosticLevel.ERROR
            else "[yellow]WARNING[/]"
        )
        table.add_row(
            level,
            escape(diagnostic.file_path),
            diagnostic.error_type,
            escape(diagnostic.message),
        )
    console.print(table)


def show_batch_summary(batch: BatchResult) -> None:
    """Display the totals of a directory scan."""
    table = Table(title="[bold]Scan Summary[/]", show_header=False, box=None)
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="white")

    languages: dict[str, int] = {}
    for result in batch.results:
        languages[result.language] = languages.get(result.language, 0) + 1

    table.add_row("Files parsed", str(len(batch.results)))
    table.add_row("Structures", str(batch.struct_count))
    table.add_row("Errors", f"[red]{len(batch.errors)}[/]" if batch.errors else "0")
    if languages:
        table.add_row("Languages", ", ".join(f"{k} ({v})" for k, v in sorted(languages.items())))

    console.print()
    console.print(table)


def show_scope_graph(graph: ScopeGraph) -> None:
    """Display definitions of a scope graph and where references resolve."""
    summary = Table(show_header=False, box=None)
    summary.add_column("Field", style="cyan")
    summary.add_column("Value", style="white")
    summary.add_row("Scopes", str(len(graph.scopes())))
    summary.add_row("Definitions", str(len(graph.definitions())))
    summary.add_row("References", str(len(graph.references())))
    summary.add_row("Unresolved", str(len(graph.unresolved())))
    console.print(Panel(summary, title=f"[bold]{escape(graph.file_path)}[/]", border_style="blue"))

    table = Table(title="[bold]Definitions[/]")
    table.add_column("Name", style="bold")
    table.add_column("Kind", style="cyan")
    table.add_column("Line", justify="right", style="dim")
    table.add_column("References", justify="right")

    counts: dict[int, int] = {}
    for reference in graph.references():
        target = graph.resolve(reference.id)
        if target is not None:
            counts[target] = counts.get(target, 0) + 1

    for definition in graph.definitions():
        table.add_row(
            escape(definition.name),
            definition.symbol_kind,
            str(definition.span.start.line + 1),
            str(counts.get(definition.id, 0)),
        )
    console.print(table)
