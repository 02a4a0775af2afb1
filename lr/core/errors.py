"""Error codes for CLI exit status.

These map to shell exit codes and are only turned into a process exit by the
CLI layer; the client and services report failures as values.
"""

from enum import IntEnum

__all__ = ["ErrorCode"]


class ErrorCode(IntEnum):
    """Exit codes for CLI commands.

    These values are used as process exit codes and should remain stable.
    - 0: Success
    - 1: User error (bad arguments, missing files)
    - 2: Config error (missing API key, CLI status could not be verified)
    - 3: Network error (API unreachable)
    - 4: API error (request rejected by the API)
    """

    OK = 0
    USER_ERROR = 1
    CONFIG_ERROR = 2
    NETWORK_ERROR = 3
    API_ERROR = 4

    def __str__(self) -> str:
        """Return human-readable name."""
        return self.name.lower().replace("_", " ")
