"""Upload command - upload artifacts for a release."""

from __future__ import annotations

from pathlib import Path

import typer

from lr.cli.commands._helpers import APIHOST_HELP, APIKEY_HELP, ensure_compatible, exit_with
from lr.cli.context import build_context
from lr.core.errors import ErrorCode
from lr.core.result import Err
from lr.output.console import Style
from lr.services.upload import DEFAULT_URL_PREFIX, UploadService, collect_artifacts


def upload(
    paths: list[Path] = typer.Argument(..., help="Files or directories to upload"),
    release: str = typer.Option(..., "--release", "-r", help="Release version"),
    url_prefix: str = typer.Option(
        DEFAULT_URL_PREFIX, "--url-prefix", help="Prefix recorded in front of each file path"
    ),
    gcs_token: str | None = typer.Option(None, "--gcs-token", hidden=True),
    gcs_bucket: str | None = typer.Option(None, "--gcs-bucket", hidden=True),
    apikey: str | None = typer.Option(
        None, "--apikey", "-k", help=APIKEY_HELP, show_default=False
    ),
    apihost: str | None = typer.Option(
        None, "--apihost", help=APIHOST_HELP, show_default=False
    ),
) -> None:
    """Upload source maps and scripts for a release."""
    ctx = build_context(apikey=apikey, apihost=apihost)
    ensure_compatible(ctx)

    artifacts = collect_artifacts(paths, url_prefix=url_prefix)
    if isinstance(artifacts, Err):
        exit_with(artifacts.error, ctx)

    if gcs_token and gcs_bucket:
        ctx.client.set_gcs_data(gcs_token, gcs_bucket)

    ctx.console.print(
        f"uploading {len(artifacts.value)} file(s) for release {release}", Style.DIM
    )
    report = UploadService(client=ctx.client, console=ctx.console).upload_all(
        release, artifacts.value
    )

    if not report.ok:
        ctx.console.error(
            f"{len(report.failed)} of {len(artifacts.value)} file(s) failed to upload"
        )
        raise typer.Exit(code=int(ErrorCode.API_ERROR))

    ctx.console.success(f"uploaded {len(report.uploaded)} file(s)")
