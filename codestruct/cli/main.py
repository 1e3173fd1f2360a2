"""Main CLI entry point for codestruct."""

import json
from pathlib import Path

import click

from codestruct.cli.display import (
    console,
    show_batch_summary,
    show_diagnostics,
    show_error,
    show_info,
    show_scope_graph,
    show_struct_detail,
    show_structs,
    show_success,
)
from codestruct.code_structure import (
    ProjectParser,
    StructureEngine,
    structs_to_json,
)
from codestruct.code_structure.languages_map import supported_extensions
from codestruct.core.exceptions import CodeStructError
from codestruct.core.logger import set_level


def _write_or_echo(text: str, output: str | None) -> None:
    if output:
        Path(output).write_text(text, encoding="utf-8")
        console.print(f"[green]Output written to: {output}[/]")
    else:
        click.echo(text)


@click.group(invoke_without_command=True)
@click.option("--version", "-v", is_flag=True, help="Show version")
@click.option("--verbose", is_flag=True, help="Verbose logging")
@click.pass_context
def main(ctx: click.Context, version: bool, verbose: bool) -> None:
    """codestruct - multi-language source code structurer.

    Parses Java, TypeScript/JavaScript, Go, Python and Protocol Buffers
    files into one structural model.
    """
    if verbose:
        set_level("DEBUG")

    if version:
        from codestruct import __version__

        click.echo(f"codestruct version {__version__}")
        return

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


@main.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.option("--language", "-l", help="Language tag (detected from the extension by default)")
@click.option("--json", "as_json", is_flag=True, help="Print structures as JSON")
@click.option("--output", "-o", type=click.Path(), help="Write JSON output to a file")
@click.option("--detailed", "-d", is_flag=True, help="Show members of every structure")
def parse(file: str, language: str | None, as_json: bool, output: str | None, detailed: bool) -> None:
    """Parse one source file and print its structures.

    Examples:
        codestruct parse src/Main.java
        codestruct parse api.proto --json -o api.json
        codestruct parse script.txt --language python
    """
    engine = StructureEngine.create_default()
    try:
        structs = engine.parse_path(file, language)
    except CodeStructError as e:
        show_error("Parse Failed", str(e))
        raise SystemExit(1) from e

    if as_json or output:
        _write_or_echo(structs_to_json(structs), output)
        return

    show_structs(structs, title=file)
    if detailed:
        for struct in structs:
            for item in struct.iter_structures():
                show_struct_detail(item)


@main.command()
@click.argument("directory", type=click.Path(exists=True, file_okay=False))
@click.option("--json", "as_json", is_flag=True, help="Print results and diagnostics as JSON")
@click.option("--output", "-o", type=click.Path(), help="Write JSON output to a file")
@click.option("--workers", "-w", type=click.IntRange(1, 64), help="Worker threads")
def scan(directory: str, as_json: bool, output: str | None, workers: int | None) -> None:
    """Parse every supported file under a directory.

    Files that fail are reported as diagnostics; the scan continues.

    Examples:
        codestruct scan ./src
        codestruct scan . --json -o structure.json
    """
    engine = StructureEngine.create_default()
    if workers:
        engine.settings = engine.settings.model_copy(update={"max_workers": workers})
    try:
        batch = ProjectParser(engine).parse_project(directory)
    except CodeStructError as e:
        show_error("Scan Failed", str(e))
        raise SystemExit(1) from e

    if as_json or output:
        _write_or_echo(batch.model_dump_json(by_alias=True, indent=2), output)
        return

    if not batch.results and not batch.diagnostics:
        show_info(
            "Nothing to parse",
            f"No files with a supported extension ({', '.join(supported_extensions())}) found.",
        )
        return

    for result in batch.results:
        show_structs(result.structs, title=result.file_path)
    show_diagnostics(batch.diagnostics)
    show_batch_summary(batch)
    if not batch.errors:
        show_success("Scan Complete", f"Parsed {len(batch.results)} files")


@main.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.option("--language", "-l", help="Language tag (detected from the extension by default)")
@click.option("--json", "as_json", is_flag=True, help="Print the scope graph as JSON")
@click.option("--output", "-o", type=click.Path(), help="Write JSON output to a file")
def scopes(file: str, language: str | None, as_json: bool, output: str | None) -> None:
    """Build the scope graph of a file and show how references resolve.

    Examples:
        codestruct scopes src/main.go
        codestruct scopes app.ts --json
    """
    engine = StructureEngine.create_default()
    try:
        graph = engine.build_scope_graph(Path(file).read_bytes(), file, language)
    except CodeStructError as e:
        show_error("Scope Graph Failed", str(e))
        raise SystemExit(1) from e

    if as_json or output:
        _write_or_echo(json.dumps(graph.to_dict(), indent=2), output)
        return

    show_scope_graph(graph)


if __name__ == "__main__":
    main()
