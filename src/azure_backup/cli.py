"""Command-line interface for the Azure backup application."""

import asyncio
import signal
import sys
from pathlib import Path
from typing import List, Optional

import click
from rich import print as rprint
from rich.console import Console
from rich.table import Table

from . import __version__
from .destinations.azure_blob import create_storage_provider
from .sync.backup_manager import BackupManager, JobResult, run_backup
from .utils.logging import LOG_FILE_NAME, resolve_log_directory, setup_logging

console = Console()


@click.command()
@click.version_option(version=__version__)
@click.option('--config', '-c',
              type=click.Path(path_type=Path),
              help='Path to configuration file (JSON or YAML)')
@click.option('--dry-run',
              is_flag=True,
              help='Show what would be uploaded without uploading (overrides the config file)')
@click.option('--log-level',
              type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR'], case_sensitive=False),
              default='INFO',
              help='Console log level')
@click.option('--log-dir',
              type=click.Path(file_okay=False, path_type=Path),
              help='Directory for log files (default: $AZUREBACKUP_LOGDIR or a system location)')
@click.pass_context
def cli(ctx: click.Context, config: Optional[Path], dry_run: bool, log_level: str,
        log_dir: Optional[Path]):
    """Azure Blob Backup

    Synchronize local folders to Azure Blob Storage, uploading only changed
    files and honoring per-job access tiers.
    """
    if config is None:
        click.echo(ctx.get_usage())
        return

    log_dir = log_dir or resolve_log_directory()
    setup_logging(log_level=log_level, log_file=log_dir / LOG_FILE_NAME)

    if dry_run:
        console.print("🔍 DRY RUN MODE - No files will be uploaded", style="yellow bold")

    exit_code = asyncio.run(_run_backup_async(config, dry_run))
    sys.exit(exit_code)


async def _run_backup_async(config_path: Path, dry_run: bool) -> int:
    """Run the backup, turning SIGINT/SIGTERM into a cooperative stop."""
    loop = asyncio.get_running_loop()
    stop_event = asyncio.Event()

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
        except (NotImplementedError, RuntimeError):
            # Windows event loops do not support signal handlers
            pass

    return await run_backup(
        config_path,
        dry_run=dry_run,
        stop_event=stop_event,
        provider_factory=create_storage_provider,
        on_complete=lambda manager: _display_backup_results(manager.results, manager),
    )


def _display_backup_results(results: List[JobResult], manager: BackupManager):
    """Display backup results in a nice table."""
    table = Table(title="Backup Results")
    table.add_column("Job Name", style="cyan")
    table.add_column("Status", style="magenta")
    table.add_column("Tier")
    table.add_column("Files Found", justify="right")
    table.add_column("Uploaded", justify="right", style="green")
    table.add_column("Skipped", justify="right", style="yellow")
    table.add_column("Dry Run", justify="right")
    table.add_column("Duration", justify="right")
    table.add_column("Errors", justify="right", style="red")

    for result in results:
        status_style = "green" if result.status == 'completed' else "red"
        table.add_row(
            result.job_name,
            f"[{status_style}]{result.status}[/{status_style}]",
            result.tier.value,
            str(result.files_discovered),
            str(result.counters.uploaded),
            str(result.counters.skipped),
            str(result.counters.dry_run),
            f"{result.duration:.1f}s",
            str(result.counters.errors),
        )

    console.print(table)

    summary = manager.get_backup_summary(results)
    rprint(f"\n📊 [bold]Summary:[/bold]")
    rprint(f"   • Jobs run: {summary['jobs_run']} of {summary['total_jobs']}")
    rprint(f"   • Successful: [green]{summary['successful_jobs']}[/green]")
    rprint(f"   • Failed: [red]{summary['failed_jobs']}[/red]")
    rprint(f"   • Files uploaded: [green]{summary['total_files_uploaded']}[/green]")
    rprint(f"   • Files skipped: {summary['total_files_skipped']}")

    for result in results:
        if result.error:
            rprint(f"   • [red]{result.job_name}: {result.error}[/red]")


if __name__ == '__main__':
    cli()
