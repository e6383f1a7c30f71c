"""Command line interface for zimswarm."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List

import typer
from rich.console import Console
from rich.progress import BarColumn, MofNCompleteColumn, Progress, TextColumn, TimeElapsedColumn
from rich.table import Table

from zimswarm.config import AppConfig
from zimswarm.converter import Converter
from zimswarm.errors import ZimSwarmError
from zimswarm.index.parser import SkipEvent
from zimswarm.ingestion.zim_reader import open_reader
from zimswarm.utils.files import find_zim_archives

console = Console()
app = typer.Typer(help="zimswarm - convert ZIM archives into servable resources for Swarm")


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="[%(levelname)s] %(message)s")


def _convert_one(zim_path: Path, config: AppConfig) -> None:
    output = config.resolve_output_path(zim_path, Path.cwd())
    skipped: list[SkipEvent] = []
    reader = open_reader(zim_path)
    try:
        with Progress(
            TextColumn("[bold]{task.description}"),
            BarColumn(),
            MofNCompleteColumn(),
            TimeElapsedColumn(),
            console=console,
            transient=True,
        ) as progress:
            task = progress.add_task(zim_path.name, total=reader.entry_count)
            converter = Converter(
                reader,
                observer=skipped.append,
                on_progress=lambda visited: progress.update(task, completed=visited),
            )
            if config.mode == "tar":
                stats = converter.convert_to_tar(output)
            else:
                stats = converter.convert_to_directory(output)

        if config.mode == "tar":
            if config.index_page == "search":
                converter.make_index_search_page(output)
            elif config.index_page == "redirect":
                converter.make_redirect_index_page(output)
            if config.error_page:
                converter.make_error_page(output)
    finally:
        reader.close()

    console.print(f"[bold]{zim_path.name}[/bold] -> {output}")
    console.print(
        f"Emitted: {stats.emitted}, deleted: {stats.deleted}, "
        f"excluded: {stats.excluded}, failed: {stats.failed}"
    )
    for event in skipped:
        console.print(f"[yellow]Skipped {event.path} ({event.reason}): {event.error}[/yellow]")


@app.command()
def convert(
    inputs: List[Path] = typer.Argument(
        ..., help="ZIM files or directories containing them.", resolve_path=True
    ),
    output: Path = typer.Option(AppConfig().output_dir, "--output", "-o", help="Output directory"),
    mode: str = typer.Option(AppConfig().mode, help="Output format: 'tar' or 'dir'"),
    index_page: str = typer.Option(
        AppConfig().index_page, "--index", help="Index page for tar output: 'search', 'redirect' or 'none'"
    ),
    error_page: bool = typer.Option(True, "--error-page/--no-error-page", help="Add error.html to tar output"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """Convert one or more ZIM archives."""
    _setup_logging(verbose)
    try:
        config = AppConfig(output_dir=output, mode=mode, index_page=index_page, error_page=error_page)
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc

    zim_paths = find_zim_archives(inputs)
    if not zim_paths:
        console.print("[yellow]No ZIM files found.[/yellow]")
        return

    for zim_path in zim_paths:
        try:
            _convert_one(zim_path, config)
        except ZimSwarmError as exc:
            console.print(f"[red]Conversion of {zim_path.name} failed: {exc}[/red]")
            raise typer.Exit(code=1) from exc


@app.command()
def info(
    archive: Path = typer.Argument(..., help="ZIM file to inspect", exists=True, dir_okay=False),
) -> None:
    """Show basic information about a ZIM archive."""
    try:
        reader = open_reader(archive)
    except ZimSwarmError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(code=1) from exc

    try:
        main_page = reader.main_page()
        table = Table(show_header=False)
        table.add_column("Field", style="bold magenta")
        table.add_column("Value")
        table.add_row("File", reader.filename)
        table.add_row("Entries", str(reader.entry_count))
        table.add_row("Main page", main_page.full_url if main_page is not None else "-")
        console.print(table)
    finally:
        reader.close()


@app.command()
def serve(
    tar_file: Path = typer.Argument(..., help="Converted tar file", exists=True, dir_okay=False),
    host: str = typer.Option("127.0.0.1", help="Host interface"),
    port: int = typer.Option(8000, help="Server port"),
) -> None:
    """Preview a converted tar archive in the browser."""
    try:
        import uvicorn
    except ImportError as exc:  # pragma: no cover - defensive
        raise typer.BadParameter(
            "uvicorn is not installed. Install the web extras with \"python -m pip install '.[web]'\""
        ) from exc

    from zimswarm.web.app import create_app

    console.print(f"Serving {tar_file} on http://{host}:{port}")
    uvicorn.run(create_app(tar_file), host=host, port=port, reload=False, log_level="info")
