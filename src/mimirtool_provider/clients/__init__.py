"""HTTP clients for Mimir."""

from mimirtool_provider.clients.base import BaseHTTPClient, RetryableHTTPError, is_retryable_status
from mimirtool_provider.clients.mimir import (
    AlertmanagerUserConfig,
    MimirClient,
    MimirClientConfig,
    MimirClientProtocol,
    build_ssl_context,
)

__all__ = [
    "AlertmanagerUserConfig",
    "BaseHTTPClient",
    "MimirClient",
    "MimirClientConfig",
    "MimirClientProtocol",
    "RetryableHTTPError",
    "build_ssl_context",
    "is_retryable_status",
]
