"""
Provider configuration.

Environment variables are read into a typed record first, then merged with
the declared provider values into an immutable ``ProviderConfig``.
"""

from mimirtool_provider.config.settings import (
    DEFAULT_ALERTMANAGER_HTTP_PREFIX,
    DEFAULT_PROMETHEUS_HTTP_PREFIX,
    ENV_VARS,
    LEGACY_ENV_VARS,
    MimirEnvironment,
    ProviderConfig,
    TLSConfig,
    is_url_with_http_or_https,
    load_environment,
    load_provider_config,
)

__all__ = [
    "DEFAULT_ALERTMANAGER_HTTP_PREFIX",
    "DEFAULT_PROMETHEUS_HTTP_PREFIX",
    "ENV_VARS",
    "LEGACY_ENV_VARS",
    "MimirEnvironment",
    "ProviderConfig",
    "TLSConfig",
    "is_url_with_http_or_https",
    "load_environment",
    "load_provider_config",
]
