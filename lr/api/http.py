"""HTTP transport abstraction for API and object-storage calls.

This module provides:
- HttpTransport: Protocol for HTTP requests (injectable for tests)
- RealHttpTransport: Real implementation using urllib (requests for https:// proxies)
- MockHttpTransport: Scripted implementation for testing

A non-2xx status is a normal reply, returned as ``Ok(HttpResponse)``. Only
transport failures (refused connection, DNS, timeout, bad URL, malformed reply)
are ``Err``.
"""

from __future__ import annotations

import http.client
import json
import os
import ssl
import urllib.error
import urllib.request
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import IO, Protocol, runtime_checkable

import requests

from lr.core.config import ProxyConfig, ProxyKind
from lr.core.result import Err, Ok, Result
from lr.core.structured import StrDict, as_str_dict

__all__ = [
    "Body",
    "HttpError",
    "HttpResponse",
    "HttpTransport",
    "MockHttpTransport",
    "RealHttpTransport",
    "proxy_handler",
]

type Body = bytes | IO[bytes]


@dataclass(frozen=True, slots=True)
class HttpError:
    """Transport failure details.

    Attributes:
        url: The URL that failed
        status: HTTP status code (0 for network errors)
        message: Human-readable error message
    """

    url: str
    status: int
    message: str

    def __str__(self) -> str:
        if self.status:
            return f"HTTP {self.status}: {self.message} ({self.url})"
        return f"{self.message} ({self.url})"


@dataclass(frozen=True, slots=True)
class HttpResponse:
    """A completed HTTP exchange, successful or not."""

    url: str
    status: int
    body: bytes = b""
    headers: Mapping[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    def json(self) -> StrDict:
        """Decode the body as a JSON object.

        Raises:
            ValueError: If the body is not valid JSON or not an object
        """
        try:
            data_obj: object = json.loads(self.body.decode("utf-8"))
        except UnicodeDecodeError as e:
            raise ValueError(f"response body is not UTF-8: {e}") from e
        data = as_str_dict(data_obj)
        if data is None:
            raise ValueError("Expected JSON object")
        return data


@runtime_checkable
class HttpTransport(Protocol):
    """Protocol for outbound HTTP requests."""

    def request(
        self,
        method: str,
        url: str,
        *,
        headers: Mapping[str, str] | None = None,
        body: Body | None = None,
        proxy: ProxyConfig | None = None,
    ) -> Result[HttpResponse, HttpError]:
        """Send a request and wait for the full response.

        Args:
            method: HTTP method
            url: Absolute URL
            headers: Request headers
            body: Raw bytes or a binary file object to stream
            proxy: Forward proxy to route through, or None for a direct call

        Returns:
            Ok with the response (any status), or Err with HttpError
        """
        ...


def proxy_handler(proxy: ProxyConfig | None) -> urllib.request.ProxyHandler | None:
    """Build the urllib handler for a plain ``http://`` proxy.

    Both target schemes go through the proxy: http targets are forwarded,
    https targets are tunnelled with CONNECT. Returns None for no proxy and
    for ``https://`` proxies, which urllib cannot reach over TLS.
    """
    if proxy is None or proxy.kind is not ProxyKind.HTTP:
        return None
    return urllib.request.ProxyHandler({"http": proxy.url, "https": proxy.url})


def _content_length(body: Body) -> int | None:
    if isinstance(body, bytes):
        return len(body)
    try:
        size = os.fstat(body.fileno()).st_size
    except (AttributeError, OSError, ValueError):
        return None
    return size - body.tell()


class RealHttpTransport:
    """HTTP transport using urllib, and requests for TLS proxies.

    Handles:
    - HTTPS with system certificates
    - Explicit proxy selection (environment proxies are never picked up)
    - ``http://`` proxies through urllib's ProxyHandler
    - ``https://`` proxies through requests, which speaks TLS to the proxy
      before tunnelling
    - Streaming file bodies with a Content-Length
    - Timeout handling
    """

    def __init__(self, timeout: float = 30.0) -> None:
        self.timeout = timeout
        self._ssl_context = ssl.create_default_context()
        self._session: requests.Session | None = None

    def _opener(self, proxy: ProxyConfig | None) -> urllib.request.OpenerDirector:
        # An empty ProxyHandler disables the implicit *_proxy lookup.
        handler = proxy_handler(proxy) or urllib.request.ProxyHandler({})
        return urllib.request.build_opener(
            handler,
            urllib.request.HTTPSHandler(context=self._ssl_context),
        )

    def _tls_proxy_session(self) -> requests.Session:
        if self._session is None:
            self._session = requests.Session()
            self._session.trust_env = False
        return self._session

    def request(
        self,
        method: str,
        url: str,
        *,
        headers: Mapping[str, str] | None = None,
        body: Body | None = None,
        proxy: ProxyConfig | None = None,
    ) -> Result[HttpResponse, HttpError]:
        all_headers = dict(headers or {})
        if body is not None:
            length = _content_length(body)
            if length is not None:
                all_headers.setdefault("Content-Length", str(length))

        if proxy is not None and proxy.kind is ProxyKind.HTTPS:
            return self._request_via_tls_proxy(method, url, all_headers, body, proxy)
        return self._request_urllib(method, url, all_headers, body, proxy)

    def _request_urllib(
        self,
        method: str,
        url: str,
        headers: dict[str, str],
        body: Body | None,
        proxy: ProxyConfig | None,
    ) -> Result[HttpResponse, HttpError]:
        try:
            req = urllib.request.Request(url, data=body, headers=headers, method=method)
            with self._opener(proxy).open(req, timeout=self.timeout) as response:
                return Ok(
                    HttpResponse(
                        url=url,
                        status=response.status,
                        body=response.read(),
                        headers=dict(response.headers.items()),
                    )
                )
        except urllib.error.HTTPError as e:
            return Ok(_error_reply(url, e))
        except urllib.error.URLError as e:
            return Err(HttpError(url=url, status=0, message=str(e.reason)))
        except http.client.HTTPException as e:
            # Malformed replies: bad status line, truncated body, oversized headers.
            message = str(e).strip() or type(e).__name__
            return Err(HttpError(url=url, status=0, message=message))
        except TimeoutError:
            return Err(HttpError(url=url, status=0, message="Request timed out"))
        except ValueError as e:
            return Err(HttpError(url=url, status=0, message=str(e)))
        except OSError as e:
            return Err(HttpError(url=url, status=0, message=str(e)))

    def _request_via_tls_proxy(
        self,
        method: str,
        url: str,
        headers: dict[str, str],
        body: Body | None,
        proxy: ProxyConfig,
    ) -> Result[HttpResponse, HttpError]:
        try:
            response = self._tls_proxy_session().request(
                method,
                url,
                headers=headers,
                data=body,
                proxies={"http": proxy.url, "https": proxy.url},
                timeout=self.timeout,
            )
        except requests.Timeout:
            return Err(HttpError(url=url, status=0, message="Request timed out"))
        except requests.RequestException as e:
            return Err(HttpError(url=url, status=0, message=str(e)))

        return Ok(
            HttpResponse(
                url=url,
                status=response.status_code,
                body=response.content,
                headers=dict(response.headers),
            )
        )


def _error_reply(url: str, error: urllib.error.HTTPError) -> HttpResponse:
    try:
        body = error.read()
    except (http.client.HTTPException, OSError):
        body = b""
    return HttpResponse(
        url=url,
        status=error.code,
        body=body,
        headers=dict(error.headers.items()) if error.headers else {},
    )


@dataclass(frozen=True, slots=True)
class RecordedRequest:
    """A request seen by MockHttpTransport."""

    method: str
    url: str
    headers: dict[str, str]
    body: bytes | None
    proxy: ProxyConfig | None

    def json(self) -> object:
        return json.loads(self.body or b"null")


class MockHttpTransport:
    """Scripted HTTP transport for testing.

    Usage:
        transport = MockHttpTransport()
        transport.respond("GET", "https://api.example.com/cli/status/", 204)
        result = transport.request("GET", "https://api.example.com/cli/status/")
        assert result.unwrap().status == 204

    Unscripted requests get a 404 response.
    """

    def __init__(self) -> None:
        self._responses: dict[tuple[str, str], HttpResponse | HttpError] = {}
        self.calls: list[RecordedRequest] = []

    def respond(
        self,
        method: str,
        url: str,
        status: int,
        body: bytes | StrDict | None = None,
    ) -> None:
        """Script a response for (method, url); dict bodies are JSON-encoded."""
        raw = json.dumps(body).encode("utf-8") if isinstance(body, dict) else (body or b"")
        self._responses[(method, url)] = HttpResponse(url=url, status=status, body=raw)

    def fail(self, method: str, url: str, message: str = "Connection refused") -> None:
        """Script a transport failure for (method, url)."""
        self._responses[(method, url)] = HttpError(url=url, status=0, message=message)

    def request(
        self,
        method: str,
        url: str,
        *,
        headers: Mapping[str, str] | None = None,
        body: Body | None = None,
        proxy: ProxyConfig | None = None,
    ) -> Result[HttpResponse, HttpError]:
        raw = body if isinstance(body, bytes) or body is None else body.read()
        self.calls.append(
            RecordedRequest(
                method=method,
                url=url,
                headers=dict(headers or {}),
                body=raw,
                proxy=proxy,
            )
        )

        response = self._responses.get((method, url))
        if response is None:
            return Ok(HttpResponse(url=url, status=404, body=b'{"message": "Not found (mock)"}'))
        if isinstance(response, HttpError):
            return Err(response)
        return Ok(response)

    def calls_to(self, method: str, url: str | None = None) -> list[RecordedRequest]:
        """Recorded calls matching a method and, optionally, a URL."""
        return [c for c in self.calls if c.method == method and (url is None or c.url == url)]
