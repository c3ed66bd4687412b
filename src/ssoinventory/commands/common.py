"""Common command infrastructure for ssoinventory CLI commands.

Shared option factories, AWS client setup and error reporting used by every
command.
"""

import logging
from typing import Any, Optional

import typer
from botocore.exceptions import BotoCoreError
from rich.console import Console

from ..aws_clients.manager import AWSClientManager
from ..inventory.errors import DirectoryError, RetryExhaustedError, WorkUnitError
from ..utils.logging_config import LogFormat

# Shared instances
console = Console()
logger = logging.getLogger(__name__)


def profile_option() -> Any:
    """
    Create a standardized --profile option for commands.

    Returns:
        Typer option for AWS profile selection
    """
    return typer.Option(
        None, "--profile", "-p", help="AWS profile to use (uses default profile if not specified)"
    )


def region_option() -> Any:
    """
    Create a standardized --region option for commands.

    Returns:
        Typer option for AWS region selection
    """
    return typer.Option(
        None, "--region", "-r", help="AWS region to use (uses configured region if not specified)"
    )


def verbose_option() -> Any:
    """Create a verbose option for CLI commands."""
    return typer.Option(False, "--verbose", "-v", help="Show debug logging")


def log_format_option() -> Any:
    """Create a --log-format option for CLI commands."""
    return typer.Option(
        LogFormat.DETAILED,
        "--log-format",
        help="Log output format",
        case_sensitive=False,
    )


def get_aws_client_manager(
    profile: Optional[str] = None,
    region: Optional[str] = None,
    max_pool_connections: int = 10,
    verbose: bool = False,
) -> AWSClientManager:
    """
    Get an AWS client manager with a validated session.

    Args:
        profile: AWS profile name
        region: AWS region
        max_pool_connections: HTTP connection pool size per client
        verbose: Whether to show verbose output

    Returns:
        Configured AWSClientManager instance

    Raises:
        typer.Exit: If the session cannot be created or its credentials are invalid
    """
    try:
        aws_client = AWSClientManager(
            profile=profile, region=region, max_pool_connections=max_pool_connections
        )
    except BotoCoreError as e:
        console.print(f"[red]Error creating AWS session: {e}[/red]")
        raise typer.Exit(1)

    if not aws_client.validate_session():
        console.print("[red]❌ Error: AWS session validation failed.[/red]")
        console.print("\n[yellow]This usually means:[/yellow]")
        console.print("1. Your AWS SSO token has expired")
        console.print("2. Your AWS credentials are invalid")
        console.print("3. Your profile configuration is incorrect")
        console.print("\n[yellow]To fix this issue:[/yellow]")
        console.print(
            "1. Refresh your SSO login: [cyan]aws sso login --profile your-profile[/cyan]"
        )
        console.print("2. Or use a different profile: [cyan]--profile other-profile[/cyan]")
        raise typer.Exit(1)

    if verbose:
        console.print(f"[blue]Using AWS profile: {aws_client.profile or 'default'}[/blue]")
        console.print(f"[blue]Using AWS region: {aws_client.get_region() or 'default'}[/blue]")

    logger.debug(f"Created AWS client manager: profile={profile}, region={region}")
    return aws_client


def handle_inventory_error(error: Exception, verbose: bool = False) -> None:
    """
    Report a fatal inventory error consistently across commands.

    Args:
        error: The error that occurred
        verbose: Whether to show the traceback
    """
    if isinstance(error, WorkUnitError):
        console.print(f"[red]Error: Failed to process {error.unit.label}[/red]")
        error = error.error

    if isinstance(error, RetryExhaustedError):
        console.print(
            f"[red]Error in {error.operation}: still throttled after {error.retries} retries "
            f"({error.label})[/red]"
        )
    elif isinstance(error, DirectoryError):
        console.print(
            f"[red]AWS Error in {error.operation} ({error.code}): "
            f"{error.message or 'no details'}[/red]"
        )
    else:
        console.print(f"[red]Error: {error}[/red]")

    if verbose:
        console.print_exception()
