"""Client for the release-tracking API.

ReleaseClient wraps the three calls the CLI needs:
- check_status: pre-flight compatibility check for this CLI version
- create_release: register a release version
- upload_file: two-phase artifact upload (signed URL request, then a direct
  PUT to object storage, then an optional storage notification)

Headers and proxy routing are computed per request from ClientConfig, so
object-storage credentials set after construction apply to the next upload.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import TYPE_CHECKING, Literal

from lr.api.http import Body, HttpError, HttpResponse, HttpTransport, RealHttpTransport
from lr.core.config import ClientConfig, ObjectStorageCredentials
from lr.core.result import Err, Ok, Result
from lr.core.structured import StrDict, get_str

if TYPE_CHECKING:
    from collections.abc import Mapping

__all__ = [
    "FatalIncompatibility",
    "MissingUploadUrlError",
    "ReleaseClient",
    "SignedUploadTarget",
    "STATUS_UNVERIFIABLE_MESSAGE",
]

STATUS_UNVERIFIABLE_MESSAGE = (
    "Could not verify CLI status. Check your network connection and reinstall "
    "the CLI if the problem persists."
)


@dataclass(frozen=True, slots=True)
class FatalIncompatibility:
    """The CLI must not proceed.

    Attributes:
        reason: "unverifiable" when the status could not be read,
            "rejected" when the API refused this CLI version
        message: Message to show the user
        status: HTTP status of the status reply (0 when none was read)
    """

    reason: Literal["unverifiable", "rejected"]
    message: str
    status: int = 0


class MissingUploadUrlError(Exception):
    """The API accepted an artifact but returned no upload URL."""

    def __init__(self, filepath: str) -> None:
        super().__init__(f"Could not get upload url for: {filepath}")
        self.filepath = filepath


@dataclass(frozen=True, slots=True)
class SignedUploadTarget:
    """Single-use upload target issued for one artifact."""

    upload_url: str | None
    object_name: str | None

    @classmethod
    def from_dict(cls, data: StrDict) -> SignedUploadTarget:
        return cls(upload_url=get_str(data, "signed_url"), object_name=get_str(data, "name"))


class ReleaseClient:
    """Authenticated client for one org/app pair."""

    def __init__(self, config: ClientConfig, transport: HttpTransport | None = None) -> None:
        self.config = config
        self._transport: HttpTransport = transport or RealHttpTransport()
        self._gcs: ObjectStorageCredentials | None = None

    @property
    def headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Token {self.config.api_key.raw}",
            "Accept": "application/json",
            "Content-Type": "application/json",
            "X-LogRocket-Cli-Version": self.config.cli_version,
        }

    @property
    def gcs(self) -> ObjectStorageCredentials | None:
        return self._gcs

    def api_url(self, path: str) -> str:
        key = self.config.api_key
        return f"{self.config.api_host}/v1/orgs/{key.org}/apps/{key.app}/{path}/"

    def _send(
        self,
        method: str,
        url: str,
        *,
        headers: Mapping[str, str] | None = None,
        body: Body | None = None,
    ) -> Result[HttpResponse, HttpError]:
        return self._transport.request(
            method, url, headers=headers, body=body, proxy=self.config.proxy
        )

    def _post_json(self, path: str, data: StrDict) -> Result[HttpResponse, HttpError]:
        return self._send("POST", self.api_url(path), headers=self.headers, body=_encode(data))

    def check_status(self) -> Result[str | None, FatalIncompatibility]:
        """Ask the API whether this CLI version may be used.

        Returns:
            Ok with the server's informational message (None on 204), or
            Err(FatalIncompatibility) when the caller must stop
        """
        result = self._send("GET", f"{self.config.api_host}/cli/status/", headers=self.headers)
        if isinstance(result, Err):
            return Err(FatalIncompatibility("unverifiable", STATUS_UNVERIFIABLE_MESSAGE))

        response = result.value
        if response.status == 204:
            return Ok(None)

        try:
            data = response.json()
        except ValueError:
            return Err(
                FatalIncompatibility(
                    "unverifiable", STATUS_UNVERIFIABLE_MESSAGE, status=response.status
                )
            )

        message = get_str(data, "message")
        if not response.ok:
            return Err(
                FatalIncompatibility(
                    "rejected",
                    message or f"HTTP {response.status}",
                    status=response.status,
                )
            )
        return Ok(message)

    def create_release(self, version: str) -> Result[HttpResponse, HttpError]:
        """Register ``version``; the reply is returned uninterpreted."""
        return self._post_json("releases", {"version": version})

    def upload_file(
        self, release: str, filepath: str, contents: Body
    ) -> Result[HttpResponse, HttpError]:
        """Upload one artifact for ``release``.

        Args:
            release: Release version the artifact belongs to
            filepath: Logical path recorded against the release
            contents: Raw bytes or a binary file object

        Returns:
            The result of the upload PUT, or the artifact request's reply when
            the API rejected it (no upload is attempted then)

        Raises:
            MissingUploadUrlError: The API accepted the artifact without
                issuing an upload URL
        """
        requested = self._post_json(f"releases/{release}/artifacts", {"filepath": filepath})
        if isinstance(requested, Err) or not requested.value.ok:
            return requested

        try:
            target = SignedUploadTarget.from_dict(requested.value.json())
        except ValueError as e:
            raise MissingUploadUrlError(filepath) from e
        if target.upload_url is None:
            raise MissingUploadUrlError(filepath)

        # Signed URL carries its own authorization.
        result = self._send("PUT", target.upload_url, body=contents)

        if self._gcs is not None and self._gcs.bucket_name:
            self._notify_storage(target, self._gcs)

        return result

    def _notify_storage(
        self, target: SignedUploadTarget, gcs: ObjectStorageCredentials
    ) -> None:
        # Outcome intentionally discarded.
        self._send(
            "POST",
            f"{self.config.api_host}/gcloud/",
            headers={
                "Content-Type": "application/json",
                "X-Goog-Channel-Token": gcs.notification_token,
            },
            body=_encode({"name": target.object_name, "bucket": gcs.bucket_name}),
        )

    def set_gcs_data(self, notification_token: str, bucket_name: str) -> None:
        """Set object-storage notification credentials for later uploads."""
        self._gcs = ObjectStorageCredentials(
            notification_token=notification_token, bucket_name=bucket_name
        )


def _encode(data: StrDict) -> bytes:
    return json.dumps(data, separators=(",", ":")).encode("utf-8")
