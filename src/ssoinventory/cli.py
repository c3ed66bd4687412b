#!/usr/bin/env python3
"""
ssoinventory - AWS IAM Identity Center access inventory

A CLI tool that exports who has access to which AWS account, through which
permission set, directly or via a group.
"""
import typer
from rich.console import Console

from . import __version__
from .commands import export

app = typer.Typer(
    help="AWS IAM Identity Center access inventory - export every account assignment to CSV.",
    add_completion=True,
    no_args_is_help=True,
)
console = Console()

app.command(name="export")(export.export_assignments)


# Add version command
@app.command()
def version():
    """Show the application version and exit."""
    console.print(f"ssoinventory version: {__version__}")
    raise typer.Exit()


if __name__ == "__main__":
    app()
