"""Command line interface for codefinder."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from codefinder.config import AppConfig
from codefinder.errors import TraversalError
from codefinder.index.indexer import CodebaseIndexer, index_workspace
from codefinder.web.app import app as web_app


console = Console()
app = typer.Typer(help="codefinder - find the source files behind an error log or request")


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="[%(levelname)s] %(message)s")


def _build_index(root: Path, ignore: Optional[List[str]], config: AppConfig) -> CodebaseIndexer:
    try:
        return index_workspace(root, ignore or [], config)
    except TraversalError as exc:
        console.print(f"[red]Indexing failed:[/red] {escape(str(exc))}")
        raise typer.Exit(code=1) from exc


@app.command()
def index(
    root: Path = typer.Argument(..., help="Workspace root to index.", resolve_path=True),
    ignore: Optional[List[str]] = typer.Option(
        None, "--ignore", "-i", help="Extra glob pattern to exclude (repeatable)."
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """Index a workspace and print statistics."""
    _setup_logging(verbose)
    console.print(f"Indexing [bold]{root}[/bold]...")
    indexer = _build_index(root, ignore, AppConfig())
    stats = indexer.stats

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Files")
    table.add_column("Symbols")
    table.add_column("Dependencies")
    table.add_column("Skipped (too large)")
    table.add_column("Failed")
    table.add_row(
        str(stats.files),
        str(stats.symbols),
        str(stats.dependencies),
        str(stats.skipped_large),
        str(stats.failed),
    )
    console.print(table)
    console.print(f"Root digest: {stats.root_digest}")


@app.command()
def query(
    root: Path = typer.Argument(..., help="Workspace root to search.", resolve_path=True),
    text: str = typer.Argument(..., help="Error log, stack trace or request text"),
    ignore: Optional[List[str]] = typer.Option(
        None, "--ignore", "-i", help="Extra glob pattern to exclude (repeatable)."
    ),
    max_files: int = typer.Option(AppConfig().max_context_files, help="Maximum number of files returned"),
    raw: bool = typer.Option(False, "--raw", help="Print file contents instead of a table"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """Find the files most relevant to a query."""
    _setup_logging(verbose)
    indexer = _build_index(root, ignore, AppConfig(max_context_files=max_files))

    bundle = indexer.find_relevant_context(text)
    if not bundle.found:
        console.print("[yellow]No relevant files found.[/yellow]")
        return

    if raw:
        console.print(bundle.render(), markup=False, highlight=False)
        return

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Rank")
    table.add_column("Score")
    table.add_column("File")
    table.add_column("Lines")

    for rank, entry in enumerate(bundle, start=1):
        table.add_row(str(rank), f"{entry.score:.2f}", entry.name, str(len(entry.content.splitlines())))

    console.print(table)


@app.command()
def web(
    host: str = typer.Option("127.0.0.1", help="Host interface"),
    port: int = typer.Option(8000, help="Server port"),
) -> None:
    """Start the HTTP service."""
    try:
        import uvicorn
    except ImportError as exc:  # pragma: no cover
        raise typer.BadParameter(
            "uvicorn is not installed. Install the web extras with \"python -m pip install '.[web]'\""
        ) from exc

    console.print(f"Starting codefinder service on http://{host}:{port}")
    uvicorn.run(
        web_app,
        host=host,
        port=port,
        reload=False,
        log_level="info",
    )


if __name__ == "__main__":  # pragma: no cover
    app()
