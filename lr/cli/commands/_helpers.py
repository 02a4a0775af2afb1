"""Shared helpers for CLI commands."""

from __future__ import annotations

from typing import TYPE_CHECKING, NoReturn

import typer

from lr.core.result import Err
from lr.output.errors import CliError, error_exit_code, print_error

if TYPE_CHECKING:
    from lr.cli.context import CLIContext

APIKEY_HELP = "API key in the form org:app (default: $LOGROCKET_API_KEY)"
APIHOST_HELP = "API base URL (default: $LOGROCKET_API_HOST or the production API)"


def exit_with(error: CliError, ctx: CLIContext) -> NoReturn:
    """Print ``error`` and exit with its mapped code."""
    print_error(error, ctx.console)
    raise typer.Exit(code=error_exit_code(error))


def ensure_compatible(ctx: CLIContext) -> None:
    """Run the CLI status check; exit when the API refuses to proceed.

    Partial work is never attempted after a failed check.
    """
    status = ctx.client.check_status()
    if isinstance(status, Err):
        exit_with(status.error, ctx)
    if status.value:
        ctx.console.info(status.value)
