"""View Pipeline CLI.

Usage:
    view-pipeline collect SHEET [OPTIONS]
    view-pipeline status
    view-pipeline reset SHEET
    view-pipeline summary [SHEET ...] [OPTIONS]

Exit codes: 0=success, 1=error, 2=rate_limit (progress saved, rerun to resume)
"""

# Load .env file before any other imports
from pathlib import Path as _Path

from dotenv import load_dotenv

_env_path = _Path(__file__).parent.parent.parent / ".env"
load_dotenv(_env_path)

import asyncio
import logging
from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table

from collectors import CollectionReport, ViewCountCollector
from config import (
    DEFAULT_INPUT_COLUMN,
    DEFAULT_OUTPUT_COLUMN,
    DEFAULT_START_ROW,
    RunConfig,
    Settings,
    get_settings,
)
from core.errors import PipelineError
from observability import get_logger, setup_logging
from rate_limit import ResumeCursor
from sources import XApiClient
from storage import Workbook, aggregate_views, column_index

__version__ = "0.2.0"

# Create CLI app
app = typer.Typer(
    name="view-pipeline",
    help="Post view-count collector for CSV sheets",
    add_completion=False,
)

console = Console()
logger = get_logger(__name__)


def _configure_logging(quiet: bool = False, verbose: bool = False, json_logs: bool = False) -> None:
    """Configure logging with rich handler (or JSON lines)."""
    level = logging.WARNING if quiet else (logging.DEBUG if verbose else logging.INFO)
    setup_logging(level=level, json_format=json_logs, quiet=quiet, force=True)


@app.command()
def collect(
    sheet: Annotated[str, typer.Argument(help="Sheet name (CSV file stem in the sheets dir)")],
    input_column: Annotated[str, typer.Option("--input-column", "-i", help="Column with post URLs")] = DEFAULT_INPUT_COLUMN,
    output_column: Annotated[str, typer.Option("--output-column", "-o", help="Column for view counts")] = DEFAULT_OUTPUT_COLUMN,
    start_row: Annotated[int, typer.Option("--start-row", help="First data row (1-based)")] = DEFAULT_START_ROW,
    reset: Annotated[bool, typer.Option("--reset", help="Ignore saved progress and start over")] = False,
    refresh: Annotated[bool, typer.Option("--refresh", help="Re-fetch rows that already have a count")] = False,
    batch_size: Annotated[int | None, typer.Option("--batch-size", help="Rows per batch")] = None,
    limit: Annotated[int | None, typer.Option("--limit", help="Max rows attempted this run")] = None,
    delay: Annotated[float | None, typer.Option("--delay", help="Pause between API calls in seconds")] = None,
    quiet: Annotated[bool, typer.Option("--quiet", "-q", help="Minimal output")] = False,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Verbose output")] = False,
    json_logs: Annotated[bool, typer.Option("--json-logs", help="Emit JSON log lines")] = False,
) -> None:
    """Fetch view counts for the post URLs in a sheet.

    Resumes automatically from the last saved row. Exits with code 2 when
    the run stops on rate limiting; rerun later to continue.

    Examples:
        view-pipeline collect campaign
        view-pipeline collect campaign -i C -o D --start-row 3
        view-pipeline collect campaign --reset --limit 50
        view-pipeline collect campaign --reset --refresh
    """
    _configure_logging(quiet=quiet, verbose=verbose, json_logs=json_logs)
    settings = get_settings()

    try:
        config = settings.run_config().with_overrides(
            batch_size=batch_size,
            max_items_per_run=limit,
            api_call_delay=delay,
        )
        column_index(input_column)
        column_index(output_column)
    except ValueError as e:
        console.print(f"[red]Invalid option: {e}[/red]")
        raise typer.Exit(code=1)

    if not quiet:
        console.print("=" * 44)
        console.print("[bold]View Pipeline[/bold]")
        console.print(f"Sheet: {sheet} ({input_column} -> {output_column}, from row {start_row})")
        console.print(f"Reset: {reset}")
        console.print(f"Batch size: {config.batch_size}")
        console.print(f"Max rows this run: {config.max_items_per_run}")
        console.print("=" * 44)

    try:
        report = asyncio.run(
            _run_collect(
                settings,
                config,
                sheet,
                input_column=input_column.upper(),
                output_column=output_column.upper(),
                start_row=start_row,
                reset=reset,
                only_missing=not refresh,
            )
        )
    except PipelineError as e:
        console.print(f"[red]Collection failed: {e}[/red]")
        raise typer.Exit(code=1)

    logger.info("Run metrics", extra=report.metrics.to_dict())

    if not quiet:
        console.print()
        console.print(report.metrics.to_summary())
        console.print()

    if report.rate_limit_hit:
        console.print("[yellow]Stopped on rate limiting. Progress saved.[/yellow]")
        console.print("[yellow]Run the same command again later to resume.[/yellow]")
        raise typer.Exit(code=2)

    if report.capped:
        console.print(
            f"[yellow]Row limit reached; resume point saved at row {report.cursor_after}.[/yellow]"
        )
    elif not quiet:
        console.print(f"[green]{sheet} completed![/green]")


async def _run_collect(
    settings: Settings,
    config: RunConfig,
    sheet: str,
    **options,
) -> CollectionReport:
    """Open the client and run one collection."""
    workbook = Workbook(settings.sheets_dir)
    # Fail on a missing sheet before touching credentials
    workbook.sheet(sheet)
    cursors = ResumeCursor(settings.cursor_file)

    async with XApiClient(
        settings.x_bearer_token,
        base_url=settings.x_api_base_url,
        timeout=settings.request_timeout,
    ) as client:
        collector = ViewCountCollector(workbook, cursors, client, config)
        return await collector.collect(sheet, **options)


@app.command()
def status() -> None:
    """Show sheets and their saved resume points."""
    settings = get_settings()
    workbook = Workbook(settings.sheets_dir)

    try:
        cursors = ResumeCursor(settings.cursor_file)
    except PipelineError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(code=1)

    names = sorted(set(workbook.sheet_names()) | set(cursors.items()))
    if not names:
        console.print(f"No sheets found in {settings.sheets_dir}")
        return

    table = Table(title=f"Sheets in {settings.sheets_dir}")
    table.add_column("Sheet")
    table.add_column("Resume after row", justify="right")
    for name in names:
        position = cursors.read(name)
        table.add_row(name, str(position) if position is not None else "-")
    console.print(table)


@app.command()
def reset(
    sheet: Annotated[str, typer.Argument(help="Sheet whose resume point to clear")],
) -> None:
    """Clear a sheet's resume point so the next run starts from the top."""
    settings = get_settings()
    try:
        cursors = ResumeCursor(settings.cursor_file)
    except PipelineError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(code=1)

    if sheet not in cursors:
        console.print(f"No saved progress for {sheet}")
        return
    cursors.clear(sheet)
    console.print(f"[green]Cleared progress for {sheet}[/green]")


@app.command()
def summary(
    sheets: Annotated[list[str] | None, typer.Argument(help="Sheets to total (default: all)")] = None,
    column: Annotated[str, typer.Option("--column", "-c", help="Column holding view counts")] = DEFAULT_OUTPUT_COLUMN,
    start_row: Annotated[int, typer.Option("--start-row", help="First data row (1-based)")] = DEFAULT_START_ROW,
) -> None:
    """Total the view counts across sheets."""
    settings = get_settings()
    workbook = Workbook(settings.sheets_dir)
    names = sheets or workbook.sheet_names()

    try:
        totals = aggregate_views(workbook, names, column.upper(), start_row)
    except (PipelineError, ValueError) as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(code=1)

    table = Table(title="View Totals")
    table.add_column("Sheet")
    table.add_column("Rows", justify="right")
    table.add_column("Views", justify="right")
    for name in names:
        table.add_row(name, str(totals.counted_rows[name]), f"{totals.per_sheet[name]:,}")
    table.add_row("[bold]Total[/bold]", str(sum(totals.counted_rows.values())), f"[bold]{totals.total:,}[/bold]")
    console.print(table)


@app.command()
def version() -> None:
    """Show version information."""
    console.print(f"[bold]View Pipeline v{__version__}[/bold]")
    console.print("Resumable, rate-limit aware view-count collection")


if __name__ == "__main__":
    app()
