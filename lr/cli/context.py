from __future__ import annotations

import os
from dataclasses import dataclass

import typer

from lr.api.client import ReleaseClient
from lr.core.config import ClientConfig, load_client_config
from lr.core.result import Err
from lr.output.console import ConsoleProtocol, RichConsole, Style
from lr.output.errors import error_exit_code, print_error


@dataclass(frozen=True, slots=True)
class CLIContext:
    config: ClientConfig
    client: ReleaseClient
    console: ConsoleProtocol


def build_context(*, apikey: str | None, apihost: str | None) -> CLIContext:
    console = RichConsole()
    config_result = load_client_config(api_key=apikey, api_host=apihost, env=os.environ)
    if isinstance(config_result, Err):
        print_error(config_result.error, console)
        raise typer.Exit(code=error_exit_code(config_result.error))

    config = config_result.value
    if config.proxy is not None:
        console.print(f"proxy: {config.proxy.url} ({config.proxy.kind.value})", Style.DIM)

    return CLIContext(config=config, client=ReleaseClient(config), console=console)
