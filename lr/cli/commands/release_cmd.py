"""Release command - register a release version."""

from __future__ import annotations

import typer

from lr.cli.commands._helpers import APIHOST_HELP, APIKEY_HELP, ensure_compatible, exit_with
from lr.cli.context import build_context
from lr.core.errors import ErrorCode
from lr.core.result import Err
from lr.services.upload import api_error_message

RELEASE_EXISTS = 409


def release(
    version: str = typer.Argument(..., help="Release version (e.g. 1.4.2)"),
    strict: bool = typer.Option(False, "--strict", help="Fail if the release already exists"),
    apikey: str | None = typer.Option(
        None, "--apikey", "-k", help=APIKEY_HELP, show_default=False
    ),
    apihost: str | None = typer.Option(
        None, "--apihost", help=APIHOST_HELP, show_default=False
    ),
) -> None:
    """Create a release."""
    if not version.strip():
        typer.echo("error: version must not be empty", err=True)
        raise typer.Exit(code=int(ErrorCode.USER_ERROR))

    ctx = build_context(apikey=apikey, apihost=apihost)
    ensure_compatible(ctx)

    result = ctx.client.create_release(version)
    if isinstance(result, Err):
        exit_with(result.error, ctx)

    response = result.value
    if response.ok:
        ctx.console.success(f"release {version} created")
        return

    message = api_error_message(response)
    if response.status == RELEASE_EXISTS and not strict:
        ctx.console.warning(message)
        return

    ctx.console.error(f"could not create release {version}: {message}")
    raise typer.Exit(code=int(ErrorCode.API_ERROR))
