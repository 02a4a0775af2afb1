"""Artifact discovery and sequential upload.

collect_artifacts turns command-line paths into the list of files to upload
and the logical path each one is recorded under. UploadService pushes them
one at a time through ReleaseClient.upload_file and collects every failure
into an UploadReport instead of stopping at the first one.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Literal

from lr.api.client import MissingUploadUrlError
from lr.api.http import HttpResponse
from lr.core.result import Err, Ok, Result
from lr.core.structured import get_str

if TYPE_CHECKING:
    from lr.api.client import ReleaseClient
    from lr.output.console import ConsoleProtocol

__all__ = [
    "Artifact",
    "UploadError",
    "UploadFailure",
    "UploadReport",
    "UploadService",
    "api_error_message",
    "collect_artifacts",
    "DEFAULT_EXTENSIONS",
    "DEFAULT_URL_PREFIX",
]

DEFAULT_URL_PREFIX = "~/"
DEFAULT_EXTENSIONS = (".js", ".map")

_SKIPPED_DIRS = frozenset({"node_modules"})


@dataclass(frozen=True, slots=True)
class Artifact:
    """A local file and the path it is recorded under in the release."""

    path: Path
    filepath: str


@dataclass(frozen=True, slots=True)
class UploadError:
    """Error when the artifacts to upload cannot be determined."""

    kind: Literal["not_found", "no_files"]
    message: str
    path: Path | None = None


@dataclass(frozen=True, slots=True)
class UploadFailure:
    """One artifact that did not make it."""

    filepath: str
    reason: str


@dataclass
class UploadReport:
    uploaded: list[str] = field(default_factory=list)
    failed: list[UploadFailure] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed


def api_error_message(response: HttpResponse) -> str:
    """Best human-readable message for a rejected API call."""
    try:
        message = get_str(response.json(), "message")
    except ValueError:
        message = None
    return message or f"HTTP {response.status}"


def _is_skipped(rel: Path) -> bool:
    return any(part in _SKIPPED_DIRS or part.startswith(".") for part in rel.parts[:-1])


def _walk(root: Path, extensions: tuple[str, ...]) -> Iterable[Path]:
    for path in sorted(root.rglob("*")):
        if not path.is_file() or path.suffix not in extensions:
            continue
        if _is_skipped(path.relative_to(root)):
            continue
        yield path


def collect_artifacts(
    paths: Sequence[Path],
    *,
    url_prefix: str = DEFAULT_URL_PREFIX,
    extensions: tuple[str, ...] = DEFAULT_EXTENSIONS,
) -> Result[list[Artifact], UploadError]:
    """Resolve files and directories into artifacts.

    Files given directly are kept whatever their extension and recorded under
    their name. Directories are walked recursively (skipping node_modules and
    hidden directories) for files with one of ``extensions``, recorded under
    their path relative to the directory. The first artifact wins when two
    map to the same logical path.

    Args:
        paths: Files and directories from the command line
        url_prefix: Prefix of every logical path
        extensions: File suffixes picked up inside directories

    Returns:
        Ok with artifacts in discovery order, or Err(UploadError)
    """
    artifacts: list[Artifact] = []
    seen: set[str] = set()

    def add(path: Path, rel: str) -> None:
        filepath = f"{url_prefix}{rel}"
        if filepath in seen:
            return
        seen.add(filepath)
        artifacts.append(Artifact(path=path, filepath=filepath))

    for given in paths:
        if given.is_file():
            add(given, given.name)
        elif given.is_dir():
            for path in _walk(given, extensions):
                add(path, path.relative_to(given).as_posix())
        else:
            return Err(UploadError("not_found", f"Path not found: {given}", path=given))

    if not artifacts:
        wanted = ", ".join(extensions)
        return Err(UploadError("no_files", f"No files to upload (looked for {wanted})"))
    return Ok(artifacts)


class UploadService:
    """Uploads artifacts for a release, one after the other."""

    def __init__(self, client: ReleaseClient, console: ConsoleProtocol) -> None:
        self._client = client
        self._console = console

    def upload_all(self, release: str, artifacts: Sequence[Artifact]) -> UploadReport:
        report = UploadReport()
        for artifact in artifacts:
            reason = self._upload_one(release, artifact)
            if reason is None:
                report.uploaded.append(artifact.filepath)
                self._console.info(f"uploaded {artifact.filepath}")
            else:
                report.failed.append(UploadFailure(artifact.filepath, reason))
                self._console.error(f"{artifact.filepath}: {reason}")
        return report

    def _upload_one(self, release: str, artifact: Artifact) -> str | None:
        """Upload a single artifact; returns the failure reason or None."""
        try:
            with artifact.path.open("rb") as contents:
                result = self._client.upload_file(release, artifact.filepath, contents)
        except MissingUploadUrlError as e:
            return str(e)
        except OSError as e:
            return f"could not read {artifact.path}: {e.strerror or e}"

        if isinstance(result, Err):
            return str(result.error)
        if not result.value.ok:
            return api_error_message(result.value)
        return None
