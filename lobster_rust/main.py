"""Command line interface for lobster-rust.

Traces a Rust crate and writes the LOBSTER implementation trace
document. Problems that do not prevent tracing (unresolved module
declarations, unreadable module files) are listed after the summary.
"""

import logging
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from lobster_rust import __version__
from lobster_rust.config import get_settings
from lobster_rust.core.errors import ResolutionError
from lobster_rust.core.lobster import LobsterEncoder, RemoteSource
from lobster_rust.tracing.project_tracer import ProjectTracer, TraceResult


console = Console()
error_console = Console(stderr=True)


def configure_logging(level: str):
    """Route library log records through rich on stderr."""
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=error_console, show_time=False, show_path=False)],
        force=True,
    )


def display_summary(result: TraceResult, exported: int, output: Path):
    """Print the summary table and all warnings of a run."""
    table = Table(title="lobster-rust", show_header=False)
    table.add_column("Metric", style="bold")
    table.add_column("Value", justify="right")
    table.add_row("Module files", str(len(result.modules)))
    table.add_row("Traced files", str(len(result.roots)))
    table.add_row("Exported items", str(exported))
    table.add_row("Unresolved modules", str(len(result.unresolved)))
    table.add_row("File failures", str(len(result.failures)))
    console.print(table)

    display_warnings(result)
    console.print(f"[green]Wrote {exported} items to {escape(str(output))}[/green]", soft_wrap=True)


def display_warnings(result: TraceResult):
    for warning in result.warnings:
        console.print(f"[yellow]Warning:[/yellow] {escape(warning)}", highlight=False, soft_wrap=True)


@click.command()
@click.argument("directory", default="./src/", type=click.Path(path_type=Path))
@click.argument("out", default="rust.lobster", type=click.Path(dir_okay=False, path_type=Path))
@click.option("--lib", "-l", is_flag=True, help="Trace a library crate (lib.rs instead of main.rs)")
@click.option("--activity", is_flag=True, help="Trace test activities (not supported)")
@click.option("--only-tagged-functions", is_flag=True, help="Export only tagged functions (not supported)")
@click.option("--include-containers", is_flag=True, help="Also export modules, traits and impl blocks")
@click.option("--jobs", "-j", type=click.IntRange(min=1), help="Number of files traced in parallel")
@click.option("--github-root", help="GitHub repository URL for remote locations")
@click.option("--commit", help="Commit the remote locations refer to")
@click.option(
    "--repo-root",
    type=click.Path(file_okay=False, dir_okay=True, path_type=Path),
    default=Path("."),
    show_default=True,
    help="Local checkout that remote file paths are relative to",
)
@click.option("--verbose", is_flag=True, help="Show debug output")
@click.option("--version", is_flag=True, help="Show version")
def cli(directory, out, lib, activity, only_tagged_functions, include_containers,
        jobs, github_root, commit, repo_root, verbose, version):
    """lobster-rust - LOBSTER implementation traces for Rust crates.

    Resolves the modules of the crate in DIRECTORY (default ./src/)
    starting at main.rs, or lib.rs with --lib, and writes the trace
    document to OUT (default rust.lobster).

    Examples:

        lobster-rust                          # ./src/main.rs -> rust.lobster

        lobster-rust --lib crate/src out.lobster

        lobster-rust --jobs 4 --include-containers
    """
    if version:
        console.print(f"lobster-rust {__version__}")
        return

    if bool(github_root) != bool(commit):
        raise click.UsageError("--github-root and --commit must be given together")

    settings = get_settings()
    configure_logging("DEBUG" if verbose else settings.log_level)

    if activity:
        console.print("[yellow]Activity tracing is not supported, ignoring --activity[/yellow]")
    if only_tagged_functions:
        console.print("[yellow]Filtering tagged functions is not supported, "
                      "ignoring --only-tagged-functions[/yellow]")

    entry_filename = "lib.rs" if lib else "main.rs"
    tracer = ProjectTracer(directory, entry_filename, settings=settings)
    try:
        result = tracer.trace(jobs=jobs)
    except ResolutionError as e:
        error_console.print(f"[red]Error:[/red] {escape(str(e))}", highlight=False, soft_wrap=True)
        sys.exit(1)

    if not result.ok:
        display_warnings(result)
        entry = escape(str(directory / entry_filename))
        error_console.print(f"[red]Error:[/red] entry file {entry} could not be traced",
                            highlight=False, soft_wrap=True)
        sys.exit(1)

    remote = RemoteSource(github_root, commit, repo_root) if github_root else None
    encoder = LobsterEncoder(include_containers=include_containers, remote=remote)
    try:
        exported = encoder.write(result.roots, out)
    except OSError as e:
        error_console.print(f"[red]Error:[/red] cannot write {escape(str(out))}: {escape(str(e))}",
                            highlight=False, soft_wrap=True)
        sys.exit(1)

    display_summary(result, exported, out)


if __name__ == "__main__":
    cli()
