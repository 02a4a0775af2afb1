"""Result type for explicit error handling.

API calls and file discovery return a Result instead of raising, so that the
CLI can decide whether a failure aborts the run or is collected into a report.

Usage:
    result = client.create_release("1.2.3")
    match result:
        case Ok(response) if response.ok:
            console.success("release created")
        case Ok(response):
            console.error(api_error_message(response))
        case Err(error):
            console.error(str(error))
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Ok[T]:
    """Successful result carrying a value."""

    value: T

    def unwrap(self) -> T:
        return self.value

    def __repr__(self) -> str:
        return f"Ok({self.value!r})"


@dataclass(frozen=True, slots=True)
class Err[E]:
    """Failed result carrying an error payload."""

    error: E

    def unwrap(self) -> None:
        """Raise ValueError with the error.

        Raises:
            ValueError: Always, containing the error.
        """
        raise ValueError(f"called unwrap on Err: {self.error}")

    def __repr__(self) -> str:
        return f"Err({self.error!r})"


type Result[T, E] = Ok[T] | Err[E]
