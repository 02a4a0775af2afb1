"""Error presentation utilities.

Centralized error formatting and exit code mapping for consistent UX.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from lr.api.client import FatalIncompatibility
from lr.api.http import HttpError
from lr.core.config import ConfigError
from lr.core.errors import ErrorCode
from lr.output.console import Style
from lr.services.upload import UploadError

if TYPE_CHECKING:
    from lr.output.console import ConsoleProtocol

__all__ = ["CliError", "print_error", "error_exit_code"]

type CliError = ConfigError | FatalIncompatibility | HttpError | UploadError


def print_error(error: CliError, console: ConsoleProtocol) -> None:
    """Print an error payload with its hint, if any."""
    match error:
        case ConfigError(message=message, hint=hint):
            console.error(message)
            if hint:
                console.print(f"hint: {hint}", Style.DIM)
        case FatalIncompatibility(message=message):
            console.error(message)
        case HttpError():
            console.error(f"request failed: {error}")
        case UploadError(message=message):
            console.error(message)


def error_exit_code(error: CliError) -> int:
    """Get exit code for an error payload."""
    match error:
        case ConfigError():
            return int(ErrorCode.CONFIG_ERROR)
        case FatalIncompatibility(reason="unverifiable"):
            return int(ErrorCode.CONFIG_ERROR)
        case FatalIncompatibility():
            return int(ErrorCode.API_ERROR)
        case HttpError(status=0):
            return int(ErrorCode.NETWORK_ERROR)
        case HttpError():
            return int(ErrorCode.API_ERROR)
        case UploadError():
            return int(ErrorCode.USER_ERROR)
