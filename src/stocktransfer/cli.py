"""Command-line interface for Stock Transfer."""

import asyncio
from pathlib import Path

import structlog
import typer
from rich.console import Console
from rich.panel import Panel
from rich.progress import BarColumn, Progress, SpinnerColumn, TextColumn, TimeElapsedColumn
from rich.table import Table

from .config import TransferConfig, load_config
from .core.exporter import ExportOrchestrator
from .core.importer import ImportOrchestrator
from .models.progress import Progress as TransferProgress
from .models.progress import ProgressCallback
from .models.results import ImportResult
from .observability import configure_logging
from .persistence.backup import BackupManager
from .persistence.store import SQLiteInventoryStore
from .utils.cleanup import cleanup_all_temp_files, cleanup_old_temp_files, temp_files_size
from .validation.validator import ImportValidator, ValidationResult

app = typer.Typer(
    name="stocktransfer",
    help="Stock Transfer - bulk export/import of warehouse inventory data",
    add_completion=False,
)

console = Console()
logger = structlog.get_logger(__name__)


def _setup(config_file: Path | None) -> TransferConfig:
    config = load_config(config_file)
    configure_logging(
        level=config.logging.level,
        json_logs=config.logging.format == "json",
        log_file=config.logging.file,
    )
    return config


def _progress_bar() -> Progress:
    return Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TextColumn("{task.percentage:>3.0f}%"),
        TimeElapsedColumn(),
        console=console,
    )


def _progress_callback(progress: Progress, task_id: int) -> ProgressCallback:
    def _update(event: TransferProgress) -> None:
        progress.update(
            task_id,
            completed=round(event.fraction * 100),
            description=f"[cyan]{event.stage.value}[/cyan] {event.message}",
        )

    return _update


def _print_import_result(result: ImportResult) -> None:
    """One confirmation panel: outcome and advisory counts together."""
    body = result.get_summary()
    if result.backup_path is not None:
        body += f"\nBackup: {result.backup_path}"
    if result.errors:
        shown = "\n".join(f"  - {error}" for error in result.errors[:10])
        more = len(result.errors) - 10
        body += f"\n\n[dim]Row problems:\n{shown}"
        if more > 0:
            body += f"\n  ... and {more} more"
        body += "[/dim]"

    console.print(
        Panel.fit(
            body,
            title="Import complete",
            border_style="yellow" if result.has_advisories or result.errors else "green",
        )
    )


def _print_validation(result: ValidationResult, source: Path) -> None:
    if not result.errors and not result.warnings:
        console.print(f"[green]No problems found in {source}[/green]")
        return

    table = Table(title=f"Validation of {source.name}", show_header=True, header_style="bold cyan")
    table.add_column("Severity")
    table.add_column("Message")
    for error in result.errors:
        table.add_row("[red]ERROR[/red]", error)
    for warning in result.warnings:
        table.add_row("[yellow]WARNING[/yellow]", warning)
    console.print(table)


@app.command()
def export(
    output_dir: Path | None = typer.Option(
        None, "--output-dir", "-o", help="Destination directory (default: configured export_dir)"
    ),
    folder: bool = typer.Option(
        False, "--folder", help="Write a plain folder instead of a zip archive (constant memory)"
    ),
    config_file: Path | None = typer.Option(None, "--config", "-c", help="Configuration file"),
    db: Path | None = typer.Option(None, "--db", help="SQLite database (default: configured)"),
) -> None:
    """
    Export all items, transactions and images.

    Examples:
        stocktransfer export
        stocktransfer export --output-dir ~/exports
        stocktransfer export --folder
    """
    try:
        config = _setup(config_file)
        with SQLiteInventoryStore(db or config.paths.database) as store:
            exporter = ExportOrchestrator(store, config)
            with _progress_bar() as progress:
                task_id = progress.add_task("[cyan]Preparing export...", total=100)
                callback = _progress_callback(progress, task_id)
                if folder:
                    result = asyncio.run(exporter.export_to_folder(callback, output_dir))
                else:
                    result = asyncio.run(exporter.export(callback, output_dir))

        console.print(f"\n[green]{result.get_summary()}[/green]")
        console.print(f"[bold]Output:[/bold] {result.archive_path}")

    except Exception as e:
        console.print(f"\n[red]ERROR: Export failed:[/red] {e}")
        raise typer.Exit(code=1) from e


@app.command("import")
def import_(
    source: Path = typer.Argument(..., help="Export archive (.zip) or extracted folder", exists=True),
    config_file: Path | None = typer.Option(None, "--config", "-c", help="Configuration file"),
    db: Path | None = typer.Option(None, "--db", help="SQLite database (default: configured)"),
    backup: bool | None = typer.Option(
        None, "--backup/--no-backup", help="Back up the current data first (default: configured)"
    ),
) -> None:
    """
    Import an export archive or folder into the local store.

    Archives larger than the in-memory limit are refused; extract them by
    hand and import the folder instead.

    Examples:
        stocktransfer import warehouse_export_1718000000000.zip
        stocktransfer import ./extracted_export --no-backup
    """
    try:
        config = _setup(config_file)
        with SQLiteInventoryStore(db or config.paths.database) as store:
            backup_manager = None
            use_backup = config.backup.enabled if backup is None else backup
            if use_backup:
                backup_manager = BackupManager(
                    ExportOrchestrator(store, config),
                    config.paths.backup_dir,
                    retention=config.backup.retention,
                )

            importer = ImportOrchestrator(store, config, backup_manager=backup_manager)
            with _progress_bar() as progress:
                task_id = progress.add_task("[cyan]Reading files...", total=100)
                result = asyncio.run(
                    importer.import_auto(source, _progress_callback(progress, task_id))
                )

        _print_import_result(result)

    except Exception as e:
        console.print(f"\n[red]ERROR: Import failed:[/red] {e}")
        raise typer.Exit(code=1) from e


@app.command()
def validate(
    source: Path = typer.Argument(..., help="Export archive (.zip) or extracted folder", exists=True),
    config_file: Path | None = typer.Option(None, "--config", "-c", help="Configuration file"),
) -> None:
    """
    Check an import source without importing it.

    Examples:
        stocktransfer validate ./extracted_export
        stocktransfer validate warehouse_export_1718000000000.zip
    """
    console.print(f"\n[bold blue]Validating:[/bold blue] {source}\n")

    try:
        config = _setup(config_file)
        validator = ImportValidator(
            large_archive_warning_mb=config.archive.large_archive_warning_mb
        )
        if source.is_dir():
            result = validator.validate_folder(source)
        else:
            result = validator.validate_archive(source)
    except Exception as e:
        console.print(f"\n[red]ERROR: Validation failed:[/red] {e}")
        raise typer.Exit(code=1) from e

    _print_validation(result, source)
    if not result.valid:
        raise typer.Exit(code=1)


@app.command()
def cleanup(
    all_files: bool = typer.Option(
        False, "--all", help="Remove all temporary files, not only those older than 24h"
    ),
    config_file: Path | None = typer.Option(None, "--config", "-c", help="Configuration file"),
) -> None:
    """
    Remove leftover staging folders and stray archives from the work directory.

    Examples:
        stocktransfer cleanup
        stocktransfer cleanup --all
    """
    try:
        config = _setup(config_file)
        work_dir = config.paths.work_dir
        size_before = temp_files_size(work_dir)
        if all_files:
            removed = cleanup_all_temp_files(work_dir)
        else:
            removed = cleanup_old_temp_files(work_dir)
        freed = size_before - temp_files_size(work_dir)
    except Exception as e:
        console.print(f"\n[red]ERROR: Cleanup failed:[/red] {e}")
        raise typer.Exit(code=1) from e

    console.print(
        f"[green]Removed {removed} temporary entries ({freed / (1024 * 1024):.2f} MB freed)[/green]"
    )


@app.command()
def version() -> None:
    """Show version information and features."""
    from . import __version__

    console.print(
        Panel.fit(
            "[bold]Stock Transfer[/bold]\n\n"
            f"Version: [cyan]{__version__}[/cyan]\n"
            "Python: 3.11+\n\n"
            "[bold]Core Features:[/bold]\n"
            "- Batched CSV export of items and transactions\n"
            "- Zip archive or plain folder exports\n"
            "- Size-gated archive import with manual-extraction fallback\n"
            "- Image re-association after identifier changes\n"
            "- Pre-import backups with retention\n"
            "- Structured logging",
            title="About",
            border_style="blue",
        )
    )


if __name__ == "__main__":
    app()
