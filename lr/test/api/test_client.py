"""Tests for lr.api.client - ReleaseClient."""

from __future__ import annotations

import io
import json

import pytest

from lr.api.client import (
    STATUS_UNVERIFIABLE_MESSAGE,
    FatalIncompatibility,
    MissingUploadUrlError,
    ReleaseClient,
    SignedUploadTarget,
)
from lr.api.http import MockHttpTransport, RealHttpTransport
from lr.core.config import ApiKey, ClientConfig, ProxyConfig, ProxyKind
from lr.core.result import Err, Ok
from lr.test.api._server import RawHttpServer, http_reply, raw_http_server

HOST = "https://api.example.com"
STATUS_URL = f"{HOST}/cli/status/"
RELEASES_URL = f"{HOST}/v1/orgs/acme/apps/web/releases/"
ARTIFACTS_URL = f"{HOST}/v1/orgs/acme/apps/web/releases/1.2.3/artifacts/"
SIGNED_URL = "https://storage.example.com/bucket/abc?signature=xyz"
NOTIFY_URL = f"{HOST}/gcloud/"


def _client(
    transport: MockHttpTransport,
    *,
    key: str = "acme:web",
    proxy: ProxyConfig | None = None,
) -> ReleaseClient:
    config = ClientConfig(
        api_key=ApiKey.parse(key).unwrap(),  # type: ignore[arg-type]
        api_host=HOST,
        proxy=proxy,
        cli_version="9.9.9",
    )
    return ReleaseClient(config, transport=transport)


def _signed(transport: MockHttpTransport) -> None:
    transport.respond(
        "POST", ARTIFACTS_URL, 200, {"signed_url": SIGNED_URL, "name": "acme/web/abc"}
    )
    transport.respond("PUT", SIGNED_URL, 200)


@pytest.fixture
def transport() -> MockHttpTransport:
    return MockHttpTransport()


class TestRequestConstruction:
    """Headers, paths and proxy routing shared by every call."""

    def test_headers(self, transport: MockHttpTransport) -> None:
        headers = _client(transport).headers
        assert headers == {
            "Authorization": "Token acme:web",
            "Accept": "application/json",
            "Content-Type": "application/json",
            "X-LogRocket-Cli-Version": "9.9.9",
        }

    @pytest.mark.parametrize(
        ("key", "org", "app"),
        [("acme:web", "acme", "web"), ("big-co:mobile:v2", "big-co", "mobile:v2")],
    )
    def test_path_uses_key_segments(
        self, transport: MockHttpTransport, key: str, org: str, app: str
    ) -> None:
        client = _client(transport, key=key)
        client.create_release("1.0.0")
        assert transport.calls[0].url == f"{HOST}/v1/orgs/{org}/apps/{app}/releases/"

    def test_every_request_uses_configured_proxy(self, transport: MockHttpTransport) -> None:
        proxy = ProxyConfig("https://proxy:8443", ProxyKind.HTTPS)
        client = _client(transport, proxy=proxy)
        _signed(transport)
        client.set_gcs_data("token", "bucket")

        client.check_status()
        client.upload_file("1.2.3", "~/app.js", b"js")

        assert [c.method for c in transport.calls] == ["GET", "POST", "PUT", "POST"]
        assert all(c.proxy == proxy for c in transport.calls)

    def test_no_proxy_by_default(self, transport: MockHttpTransport) -> None:
        _client(transport).create_release("1.0.0")
        assert transport.calls[0].proxy is None


class TestCheckStatus:
    """Pre-flight compatibility check."""

    def test_no_content(self, transport: MockHttpTransport) -> None:
        transport.respond("GET", STATUS_URL, 204)
        assert _client(transport).check_status() == Ok(None)

    def test_ok_surfaces_message(self, transport: MockHttpTransport) -> None:
        transport.respond("GET", STATUS_URL, 200, {"message": "ok"})
        assert _client(transport).check_status() == Ok("ok")

    def test_ok_without_message(self, transport: MockHttpTransport) -> None:
        transport.respond("GET", STATUS_URL, 200, {})
        assert _client(transport).check_status() == Ok(None)

    def test_failure_is_fatal_with_server_message(self, transport: MockHttpTransport) -> None:
        transport.respond("GET", STATUS_URL, 500, {"message": "bad"})

        result = _client(transport).check_status()

        assert result == Err(FatalIncompatibility("rejected", "bad", status=500))

    def test_invalid_json_is_fatal(self, transport: MockHttpTransport) -> None:
        transport.respond("GET", STATUS_URL, 200, b"<html>proxy error</html>")

        result = _client(transport).check_status()

        assert isinstance(result, Err)
        assert result.error.reason == "unverifiable"
        assert result.error.message == STATUS_UNVERIFIABLE_MESSAGE

    def test_transport_failure_is_fatal(self, transport: MockHttpTransport) -> None:
        transport.fail("GET", STATUS_URL)

        result = _client(transport).check_status()

        assert isinstance(result, Err)
        assert result.error.reason == "unverifiable"

    def test_sends_auth_headers(self, transport: MockHttpTransport) -> None:
        transport.respond("GET", STATUS_URL, 204)
        _client(transport).check_status()
        assert transport.calls[0].headers["Authorization"] == "Token acme:web"


class TestCreateRelease:
    def test_request_body(self, transport: MockHttpTransport) -> None:
        transport.respond("POST", RELEASES_URL, 201, {"version": "1.2.3"})

        result = _client(transport).create_release("1.2.3")

        [call] = transport.calls
        assert call.method == "POST"
        assert "releases/" in call.url
        assert call.body == b'{"version":"1.2.3"}'
        assert isinstance(result, Ok)
        assert result.value.status == 201

    def test_failure_returned_uninterpreted(self, transport: MockHttpTransport) -> None:
        transport.respond("POST", RELEASES_URL, 409, {"message": "exists"})

        result = _client(transport).create_release("1.2.3")

        assert isinstance(result, Ok)
        assert result.value.status == 409
        assert not result.value.ok

    def test_transport_failure(self, transport: MockHttpTransport) -> None:
        transport.fail("POST", RELEASES_URL)
        assert isinstance(_client(transport).create_release("1.2.3"), Err)


class TestUploadFile:
    def test_success_puts_contents_without_auth(self, transport: MockHttpTransport) -> None:
        _signed(transport)

        result = _client(transport).upload_file("1.2.3", "~/static/app.js", b"console.log(1)")

        request, put = transport.calls
        assert request.url == ARTIFACTS_URL
        assert request.body == b'{"filepath":"~/static/app.js"}'
        assert put.method == "PUT"
        assert put.url == SIGNED_URL
        assert put.body == b"console.log(1)"
        assert "Authorization" not in put.headers
        assert isinstance(result, Ok)
        assert result.value.url == SIGNED_URL

    def test_streams_file_objects(self, transport: MockHttpTransport) -> None:
        _signed(transport)
        _client(transport).upload_file("1.2.3", "~/app.js.map", io.BytesIO(b"{}"))
        assert transport.calls_to("PUT")[0].body == b"{}"

    def test_rejected_request_short_circuits(self, transport: MockHttpTransport) -> None:
        transport.respond("POST", ARTIFACTS_URL, 403, {"message": "forbidden"})

        result = _client(transport).upload_file("1.2.3", "~/app.js", b"js")

        assert isinstance(result, Ok)
        assert result.value.status == 403
        assert len(transport.calls_to("PUT")) == 0
        assert len(transport.calls) == 1

    def test_transport_failure_short_circuits(self, transport: MockHttpTransport) -> None:
        transport.fail("POST", ARTIFACTS_URL)

        result = _client(transport).upload_file("1.2.3", "~/app.js", b"js")

        assert isinstance(result, Err)
        assert transport.calls_to("PUT") == []

    def test_missing_signed_url_raises(self, transport: MockHttpTransport) -> None:
        transport.respond("POST", ARTIFACTS_URL, 200, {"name": "acme/web/abc"})

        with pytest.raises(MissingUploadUrlError, match="~/app.js") as exc:
            _client(transport).upload_file("1.2.3", "~/app.js", b"js")

        assert exc.value.filepath == "~/app.js"
        assert transport.calls_to("PUT") == []

    def test_non_json_reply_raises(self, transport: MockHttpTransport) -> None:
        transport.respond("POST", ARTIFACTS_URL, 200, b"")

        with pytest.raises(MissingUploadUrlError):
            _client(transport).upload_file("1.2.3", "~/app.js", b"js")

    def test_put_failure_is_returned(self, transport: MockHttpTransport) -> None:
        _signed(transport)
        transport.respond("PUT", SIGNED_URL, 403, b"<Error>SignatureDoesNotMatch</Error>")

        result = _client(transport).upload_file("1.2.3", "~/app.js", b"js")

        assert isinstance(result, Ok)
        assert result.value.status == 403

    def test_no_notification_without_credentials(self, transport: MockHttpTransport) -> None:
        _signed(transport)
        _client(transport).upload_file("1.2.3", "~/app.js", b"js")
        assert transport.calls_to("POST", NOTIFY_URL) == []


class TestStorageNotification:
    def test_notifies_with_object_name_and_bucket(self, transport: MockHttpTransport) -> None:
        _signed(transport)
        transport.respond("POST", NOTIFY_URL, 200)
        client = _client(transport)
        client.set_gcs_data("secret-token", "sourcemaps")

        client.upload_file("1.2.3", "~/app.js", b"js")

        [notify] = transport.calls_to("POST", NOTIFY_URL)
        assert notify.json() == {"name": "acme/web/abc", "bucket": "sourcemaps"}
        assert notify.headers == {
            "Content-Type": "application/json",
            "X-Goog-Channel-Token": "secret-token",
        }
        assert transport.calls[-1] is notify

    @pytest.mark.parametrize("failure", ["status", "transport"])
    def test_notification_failure_does_not_change_result(
        self, transport: MockHttpTransport, failure: str
    ) -> None:
        _signed(transport)
        if failure == "status":
            transport.respond("POST", NOTIFY_URL, 500, {"message": "down"})
        else:
            transport.fail("POST", NOTIFY_URL)
        client = _client(transport)
        client.set_gcs_data("token", "bucket")

        result = client.upload_file("1.2.3", "~/app.js", b"js")

        assert isinstance(result, Ok)
        assert result.value.status == 200
        assert result.value.url == SIGNED_URL
        assert len(transport.calls_to("POST", NOTIFY_URL)) == 1

    def test_credentials_set_after_construction_apply(
        self, transport: MockHttpTransport
    ) -> None:
        _signed(transport)
        client = _client(transport)
        client.upload_file("1.2.3", "~/a.js", b"a")
        client.set_gcs_data("token", "bucket")
        client.upload_file("1.2.3", "~/b.js", b"b")

        assert len(transport.calls_to("POST", NOTIFY_URL)) == 1
        assert client.gcs is not None
        assert client.gcs.bucket_name == "bucket"

    def test_empty_bucket_skips_notification(self, transport: MockHttpTransport) -> None:
        _signed(transport)
        client = _client(transport)
        client.set_gcs_data("token", "")
        client.upload_file("1.2.3", "~/a.js", b"a")
        assert transport.calls_to("POST", NOTIFY_URL) == []


class TestSignedUploadTarget:
    def test_from_dict(self) -> None:
        target = SignedUploadTarget.from_dict({"signed_url": SIGNED_URL, "name": "obj"})
        assert target == SignedUploadTarget(upload_url=SIGNED_URL, object_name="obj")

    def test_missing_fields(self) -> None:
        target = SignedUploadTarget.from_dict({"signed_url": 12})
        assert target.upload_url is None
        assert target.object_name is None


class TestMalformedReplies:
    """Broken HTTP replies from a real socket."""

    @staticmethod
    def _client(server: RawHttpServer) -> ReleaseClient:
        config = ClientConfig(
            api_key=ApiKey.parse("acme:web").unwrap(),  # type: ignore[arg-type]
            api_host=server.base_url,
            proxy=None,
            cli_version="9.9.9",
        )
        return ReleaseClient(config, transport=RealHttpTransport(timeout=5.0))

    def test_garbage_status_reply_is_unverifiable(self) -> None:
        with raw_http_server({("GET", "/cli/status/"): b"garbage\r\n\r\n"}) as server:
            result = self._client(server).check_status()

        assert result == Err(FatalIncompatibility("unverifiable", STATUS_UNVERIFIABLE_MESSAGE))

    def test_garbage_notification_reply_keeps_upload_result(self) -> None:
        with raw_http_server() as server:
            server.replies[("POST", "/v1/orgs/acme/apps/web/releases/1.2.3/artifacts/")] = (
                http_reply(
                    200,
                    json.dumps(
                        {"signed_url": server.url("/upload/abc"), "name": "acme/web/abc"}
                    ).encode(),
                )
            )
            server.replies[("PUT", "/upload/abc")] = http_reply(200)
            server.replies[("POST", "/gcloud/")] = b"garbage\r\n\r\n"
            client = self._client(server)
            client.set_gcs_data("token", "bucket")

            result = client.upload_file("1.2.3", "~/app.js", b"js")

        assert isinstance(result, Ok)
        assert result.value.status == 200
        assert server.requests == [
            ("POST", "/v1/orgs/acme/apps/web/releases/1.2.3/artifacts/"),
            ("PUT", "/upload/abc"),
            ("POST", "/gcloud/"),
        ]
