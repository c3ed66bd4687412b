"""Export command: build the access inventory and write it as CSV."""

from typing import Optional

import typer
from rich.table import Table

from ..inventory.directory import DirectoryClient
from ..inventory.errors import InventoryError, ReportError
from ..inventory.models import InventoryResult
from ..inventory.progress import NullProgressListener, ProgressListener, RichProgressReporter
from ..inventory.report import write_report
from ..inventory.runner import run_inventory
from ..utils.config import Config
from ..utils.logging_config import LogFormat, get_logger, setup_logging
from .common import (
    console,
    get_aws_client_manager,
    handle_inventory_error,
    log_format_option,
    profile_option,
    region_option,
    verbose_option,
)

logger = get_logger(__name__)


def export_assignments(
    profile: Optional[str] = profile_option(),
    region: Optional[str] = region_option(),
    output: Optional[str] = typer.Option(
        None, "--output", "-o", help="CSV file to write (default: sso-assignments.csv)"
    ),
    concurrency: Optional[int] = typer.Option(
        None, "--concurrency", "-c", help="Maximum number of account/permission set pairs in flight"
    ),
    max_retries: Optional[int] = typer.Option(
        None, "--max-retries", help="Retries for a throttled request before giving up"
    ),
    initial_delay_ms: Optional[int] = typer.Option(
        None, "--initial-delay-ms", help="Backoff delay before the first retry, in milliseconds"
    ),
    continue_on_error: bool = typer.Option(
        False,
        "--continue-on-error",
        help="Keep going when an account/permission set pair fails and report it at the end",
    ),
    progress: Optional[bool] = typer.Option(
        None, "--progress/--no-progress", help="Show live progress while processing"
    ),
    verbose: bool = verbose_option(),
    log_format: LogFormat = log_format_option(),
):
    """Export every account assignment in the organization to a CSV file.

    Lists all accounts and permission sets, queries each account/permission set
    pair concurrently, expands groups into their members and writes one row per
    user per assignment.
    """
    config = Config()
    setup_logging(config=config.get_logging_config(verbose=verbose, format_type=log_format))

    settings = config.get_inventory_settings(
        profile=profile,
        region=region,
        output_file=output,
        concurrency=concurrency,
        max_retries=max_retries,
        initial_delay_ms=initial_delay_ms,
        continue_on_error=True if continue_on_error else None,
        progress=progress,
    )
    errors = settings.validate()
    if errors:
        for error in errors:
            console.print(f"[red]Error: {error}[/red]")
        raise typer.Exit(1)

    aws_client = get_aws_client_manager(
        profile=settings.profile,
        region=settings.region,
        max_pool_connections=settings.concurrency,
        verbose=verbose,
    )
    directory = DirectoryClient.from_client_manager(aws_client, max_workers=settings.concurrency)

    listener: ProgressListener
    if settings.progress:
        listener = RichProgressReporter(console)
    else:
        listener = NullProgressListener()

    console.print("[blue]Fetching AWS accounts, SSO instance and permission sets...[/blue]")
    try:
        result = run_inventory(directory, settings, listener)
    except InventoryError as e:
        handle_inventory_error(e, verbose=verbose)
        raise typer.Exit(1)
    except KeyboardInterrupt:
        console.print("\n[yellow]Export interrupted[/yellow]")
        raise typer.Exit(130)
    finally:
        directory.close()

    try:
        path = write_report(result.assignments, settings.output_file)
    except ReportError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    display_summary(result)
    console.print(f"\n[green]✓ Exported {len(result.assignments)} assignments to {path}[/green]")

    if not result.succeeded:
        display_failures(result)
        raise typer.Exit(1)


def display_summary(result: InventoryResult) -> None:
    """Print run statistics."""
    stats = result.statistics
    table = Table(title="Export Summary", show_header=False)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="white", justify="right")

    table.add_row("Accounts", str(len(result.accounts)))
    table.add_row("Permission sets", str(len(result.permission_sets)))
    table.add_row("Account/permission set pairs", str(result.total_units))
    table.add_row("Assignments", str(len(result.assignments)))
    table.add_row("  Direct", str(stats.get("direct_assignments", 0)))
    table.add_row("  Via group", str(stats.get("group_assignments", 0)))
    table.add_row("Unique users", str(stats.get("unique_users", 0)))
    table.add_row("API calls", str(stats.get("remote_calls", 0)))
    table.add_row("Throttling retries", str(stats.get("retries", 0)))
    table.add_row("Cache hits", str(stats.get("cache_hits", 0)))
    table.add_row("Deleted principals", str(stats.get("tombstones", 0)))
    table.add_row("Elapsed", f"{result.elapsed_seconds:.1f}s")

    console.print()
    console.print(table)


def display_failures(result: InventoryResult) -> None:
    """Print the account/permission set pairs that could not be processed."""
    table = Table(title=f"Failed ({len(result.failures)})", show_header=True)
    table.add_column("Account", style="cyan")
    table.add_column("Permission Set", style="white")
    table.add_column("Error", style="red")

    for failure in result.failures:
        table.add_row(
            f"{failure.unit.account_name} ({failure.unit.account_id})",
            failure.unit.permission_set_name,
            str(failure.error),
        )

    console.print()
    console.print(table)
    console.print(
        "[yellow]The report is missing the assignments of the pairs listed above.[/yellow]"
    )
    logger.warning(f"{len(result.failures)} account/permission set pairs failed")
