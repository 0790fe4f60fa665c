"""deadly CLI - find files a JavaScript/Vue project never reaches from its entry point."""
import json
from pathlib import Path
from typing import Optional

import typer
from rich.markup import escape
from rich.table import Table

from deadly.analyzer.errors import AnalysisError
from deadly.analyzer.import_graph import dependents as direct_dependents
from deadly.analyzer.session import AnalysisSession
from deadly.config import Config, __version__
from deadly.utils.logger import setup_logging
from deadly.utils.safe_console import SafeConsole

app = typer.Typer(
    name="deadly",
    help="Find source files that are unreachable from a project's entry point",
    add_completion=False,
)
console = SafeConsole()
err_console = SafeConsole(stderr=True)

OUTPUT_FORMATS = ("text", "json", "table")


def _version_callback(value: bool):
    if value:
        typer.echo(f"deadly {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(False, "--version", callback=_version_callback, is_eager=True,
                                 help="Show the version and exit"),
):
    """Dead-file finder for JavaScript/Vue projects."""


def _entry_path(directory: Path, entry_point: str) -> Path:
    entry = Path(entry_point)
    if not entry.is_absolute():
        entry = directory / entry
    return entry.resolve()


def _run_session(directory: str, entry_point: str, workers: Optional[int],
                 verbose: bool) -> AnalysisSession:
    """Build and run a session; exit with status 1 on any fatal analysis error."""
    project_dir = Path(directory).resolve()
    if not project_dir.is_dir():
        err_console.print(f"[bold red]Error:[/bold red] Project directory does not exist: "
                          f"{escape(str(project_dir))}")
        raise typer.Exit(1)

    try:
        config = Config(workers=workers, log_level="DEBUG" if verbose else None)
    except ValueError as exc:
        err_console.print(f"[bold red]Error:[/bold red] {escape(str(exc))}")
        raise typer.Exit(1)
    setup_logging(config.log_level, console=err_console)

    session = AnalysisSession(_entry_path(project_dir, entry_point), project_dir, config)
    try:
        session.run()
    except AnalysisError as exc:
        err_console.print(f"[bold red]Analysis failed:[/bold red] {escape(str(exc))}")
        raise typer.Exit(1)
    return session


def _display_path(path: str, project_dir: Path) -> str:
    try:
        return str(Path(path).relative_to(project_dir))
    except ValueError:
        return path


@app.command()
def report(
    directory: str = typer.Argument(..., help="The project directory to analyze"),
    entry_point: str = typer.Option("src/main.js", "--entry-point", "-e",
                                    help="Entry point of the project, relative to DIRECTORY"),
    output_format: str = typer.Option("text", "--format", "-f",
                                      help="Output format: text, json or table"),
    workers: Optional[int] = typer.Option(None, "--workers", "-w",
                                          help="Analysis threads (overrides DEADLY_WORKERS)"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log debug details to stderr"),
):
    """Report files that are unreachable from the entry point."""
    if output_format not in OUTPUT_FORMATS:
        err_console.print(f"[bold red]Error:[/bold red] Unknown format '{escape(output_format)}'. "
                          f"Choose one of: {', '.join(OUTPUT_FORMATS)}")
        raise typer.Exit(2)

    session = _run_session(directory, entry_point, workers, verbose)
    unused = sorted(session.unused)

    if output_format == "text":
        for path in unused:
            typer.echo(path)
    elif output_format == "json":
        typer.echo(json.dumps(unused, indent=2))
    else:
        _print_table(unused, session)


def _print_table(unused, session: AnalysisSession):
    if not unused:
        console.print("[bold green]✓ No unused files[/bold green]")
        return

    table = Table(title="Unused Files")
    table.add_column("File Path", style="cyan", no_wrap=False)
    table.add_column("Type", style="magenta")
    for path in unused:
        table.add_row(escape(_display_path(path, session.root)), Path(path).suffix or "-")
    console.print(table)

    total = len(session.registry)
    percentage = len(unused) / total * 100 if total else 0
    console.print(f"\n[bold yellow]Summary:[/bold yellow] {len(unused)} of {total} files "
                  f"unreachable from {escape(_display_path(str(session.entry_point), session.root))} "
                  f"({percentage:.1f}%)")


@app.command()
def dependents(
    directory: str = typer.Argument(..., help="The project directory to analyze"),
    file: str = typer.Argument(..., help="The file whose importers are listed"),
    entry_point: str = typer.Option("src/main.js", "--entry-point", "-e",
                                    help="Entry point of the project, relative to DIRECTORY"),
    workers: Optional[int] = typer.Option(None, "--workers", "-w",
                                          help="Analysis threads (overrides DEADLY_WORKERS)"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log debug details to stderr"),
):
    """List all files that import FILE."""
    session = _run_session(directory, entry_point, workers, verbose)
    target = Path(file)
    if not target.is_absolute():
        target = session.root / target
    target = target.resolve()

    if str(target) not in session.registry:
        err_console.print(f"[bold red]Error:[/bold red] File was not analyzed: {escape(str(target))}")
        raise typer.Exit(1)

    for path in sorted(direct_dependents(session.import_graph(), target)):
        typer.echo(path)


if __name__ == "__main__":
    app()
