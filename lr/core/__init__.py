"""Core domain types and logic."""

from .config import (
    ApiKey,
    ClientConfig,
    ConfigError,
    ObjectStorageCredentials,
    ProxyConfig,
    ProxyKind,
    load_client_config,
    resolve_proxy,
)
from .errors import ErrorCode
from .result import Err, Ok, Result

__all__ = [
    # config
    "ApiKey",
    "ClientConfig",
    "ConfigError",
    "ObjectStorageCredentials",
    "ProxyConfig",
    "ProxyKind",
    "load_client_config",
    "resolve_proxy",
    # errors
    "ErrorCode",
    # result
    "Err",
    "Ok",
    "Result",
]
