"""Typed client configuration.

Configuration is resolved once at startup from explicit arguments and an
environment mapping, then handed to the client as frozen dataclasses. Nothing
below reads ``os.environ`` on its own.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from urllib.parse import urlparse

from lr import __version__

from .result import Err, Ok, Result

__all__ = [
    "ApiKey",
    "ClientConfig",
    "ConfigError",
    "ObjectStorageCredentials",
    "ProxyConfig",
    "ProxyKind",
    "load_client_config",
    "resolve_proxy",
    "DEFAULT_API_HOST",
    "API_KEY_ENV",
    "API_HOST_ENV",
]

DEFAULT_API_HOST = "https://api.logrocket.com"

API_KEY_ENV = "LOGROCKET_API_KEY"
API_HOST_ENV = "LOGROCKET_API_HOST"

# Checked in order; the first non-empty value wins.
PROXY_ENV_VARS = ("HTTPS_PROXY", "HTTP_PROXY")


@dataclass(frozen=True, slots=True)
class ConfigError:
    """Error when the client configuration cannot be resolved."""

    message: str
    hint: str | None = None


@dataclass(frozen=True, slots=True)
class ApiKey:
    """An ``org:app`` API key.

    Attributes:
        raw: The key as given; sent verbatim in the Authorization header
        org: Organization slug (before the first colon)
        app: Application slug (after the first colon)
    """

    raw: str
    org: str
    app: str

    @classmethod
    def parse(cls, value: str) -> Result[ApiKey, ConfigError]:
        raw = value.strip()
        org, sep, app = raw.partition(":")
        if not sep or not org or not app:
            return Err(
                ConfigError(
                    f"Invalid API key: {raw!r}",
                    hint="expected the form org:app (copy it from your project settings)",
                )
            )
        return Ok(cls(raw=raw, org=org, app=app))

    def __str__(self) -> str:
        return f"{self.org}:{self.app}"


class ProxyKind(Enum):
    """Tunnelling flavour, picked from the proxy URL scheme."""

    HTTP = "http"
    HTTPS = "https"


@dataclass(frozen=True, slots=True)
class ProxyConfig:
    """Forward proxy used for every outbound request."""

    url: str
    kind: ProxyKind


def resolve_proxy(env: Mapping[str, str]) -> ProxyConfig | None:
    """Pick the forward proxy from proxy environment variables.

    HTTPS_PROXY is preferred over HTTP_PROXY. The scheme of the chosen URL
    decides the tunnelling flavour; an unsupported scheme means no proxy.

    Args:
        env: Environment mapping (usually ``os.environ``)

    Returns:
        ProxyConfig, or None when no usable proxy is configured
    """
    url = next((env[name] for name in PROXY_ENV_VARS if env.get(name)), None)
    if url is None:
        return None

    match urlparse(url).scheme.lower():
        case "http":
            return ProxyConfig(url=url, kind=ProxyKind.HTTP)
        case "https":
            return ProxyConfig(url=url, kind=ProxyKind.HTTPS)
        case _:
            return None


@dataclass(frozen=True, slots=True)
class ObjectStorageCredentials:
    """Credentials for the post-upload object-storage notification."""

    notification_token: str
    bucket_name: str


@dataclass(frozen=True, slots=True)
class ClientConfig:
    """Immutable configuration for a ReleaseClient."""

    api_key: ApiKey
    api_host: str = DEFAULT_API_HOST
    proxy: ProxyConfig | None = None
    cli_version: str = __version__

    def __post_init__(self) -> None:
        object.__setattr__(self, "api_host", self.api_host.rstrip("/"))


def load_client_config(
    *,
    api_key: str | None,
    api_host: str | None,
    env: Mapping[str, str],
) -> Result[ClientConfig, ConfigError]:
    """Resolve client configuration from explicit values and the environment.

    Explicit arguments win over environment variables.

    Args:
        api_key: Key from the command line, if any
        api_host: Host from the command line, if any
        env: Environment mapping

    Returns:
        Ok(ClientConfig) on success, Err(ConfigError) on failure
    """
    key_value = api_key or env.get(API_KEY_ENV)
    if not key_value or not key_value.strip():
        return Err(
            ConfigError(
                "Missing API key",
                hint=f"pass --apikey or set {API_KEY_ENV}",
            )
        )

    key = ApiKey.parse(key_value)
    if isinstance(key, Err):
        return key

    host = api_host or env.get(API_HOST_ENV) or DEFAULT_API_HOST
    return Ok(ClientConfig(api_key=key.value, api_host=host, proxy=resolve_proxy(env)))
