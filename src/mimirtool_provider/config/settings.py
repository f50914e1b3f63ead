"""
Provider configuration loading.

Configuration is resolved in an explicit step before any resource logic runs:

1. ``MimirEnvironment`` reads the ``MIMIR_*`` environment variables into a
   typed record (pydantic-settings).
2. ``load_provider_config`` merges the values declared in the provider block
   over the environment, validates them and returns an immutable
   ``ProviderConfig``.

Declared values always win over environment variables, which win over the
field defaults.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Any, Mapping
from urllib.parse import urlparse

import structlog
from pydantic import SecretStr
from pydantic import ValidationError as PydanticValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from mimirtool_provider.core.errors import ConfigurationError

logger = structlog.get_logger()

DEFAULT_PROMETHEUS_HTTP_PREFIX = "/prometheus"
DEFAULT_ALERTMANAGER_HTTP_PREFIX = "/alertmanager"

# Provider field -> environment variable
ENV_VARS: dict[str, str] = {
    "url": "MIMIR_ADDRESS",
    "tenant_id": "MIMIR_TENANT_ID",
    "user": "MIMIR_API_USER",
    "key": "MIMIR_API_KEY",
    "token": "MIMIR_AUTH_TOKEN",
    "tls_key_path": "MIMIR_TLS_KEY_PATH",
    "tls_cert_path": "MIMIR_TLS_CERT_PATH",
    "ca_cert_path": "MIMIR_CA_CERT_PATH",
    "insecure_skip_verify": "MIMIR_INSECURE_SKIP_VERIFY",
    "prometheus_http_prefix": "MIMIR_API_PREFIX",
    "alertmanager_http_prefix": "MIMIR_ALERTMANAGER_HTTP_PREFIX",
    "store_rules_sha256": "MIMIR_STORE_RULES_SHA256",
}

# Variable names with a trailing period, read by earlier releases
LEGACY_ENV_VARS: dict[str, str] = {
    "user": "MIMIR_API_USER.",
    "token": "MIMIR_AUTH_TOKEN.",
}

BOOL_FIELDS = frozenset({"insecure_skip_verify", "store_rules_sha256"})
SENSITIVE_FIELDS = frozenset({"key", "token"})


class MimirEnvironment(BaseSettings):
    """``MIMIR_*`` environment variables."""

    address: str | None = None
    tenant_id: str | None = None
    api_user: str | None = None
    api_key: SecretStr = SecretStr("")
    auth_token: SecretStr | None = None
    tls_key_path: str | None = None
    tls_cert_path: str | None = None
    ca_cert_path: str | None = None
    insecure_skip_verify: bool | None = None
    api_prefix: str = DEFAULT_PROMETHEUS_HTTP_PREFIX
    alertmanager_http_prefix: str = DEFAULT_ALERTMANAGER_HTTP_PREFIX
    store_rules_sha256: bool = False

    model_config = SettingsConfigDict(
        env_prefix="MIMIR_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_ignore_empty=True,
        extra="ignore",
    )

    def value_for(self, name: str) -> Any:
        """Return the environment value for a provider field name."""
        attribute = ENV_VARS[name].removeprefix("MIMIR_").lower()
        value = getattr(self, attribute)
        if isinstance(value, SecretStr):
            return value.get_secret_value()
        return value


def load_environment() -> MimirEnvironment:
    """Read the environment, honouring legacy variable names as a fallback."""
    try:
        env = MimirEnvironment()
    except PydanticValidationError as exc:
        fields = sorted({str(err["loc"][0]) for err in exc.errors() if err.get("loc")})
        raise ConfigurationError(
            "Invalid MIMIR_* environment variable",
            {"variables": ", ".join(f"MIMIR_{f.upper()}" for f in fields)},
        ) from exc

    updates: dict[str, Any] = {}
    if env.api_user is None and os.environ.get(LEGACY_ENV_VARS["user"]):
        logger.warning("legacy_env_var_used", variable=LEGACY_ENV_VARS["user"], replacement=ENV_VARS["user"])
        updates["api_user"] = os.environ[LEGACY_ENV_VARS["user"]]
    if env.auth_token is None and os.environ.get(LEGACY_ENV_VARS["token"]):
        logger.warning("legacy_env_var_used", variable=LEGACY_ENV_VARS["token"], replacement=ENV_VARS["token"])
        updates["auth_token"] = SecretStr(os.environ[LEGACY_ENV_VARS["token"]])
    if updates:
        env = env.model_copy(update=updates)
    return env


def is_url_with_http_or_https(value: Any) -> bool:
    """True when ``value`` parses as a URL with an http(s) scheme and a host."""
    if not isinstance(value, str) or not value:
        return False
    try:
        parsed = urlparse(value)
        # Accessing port validates it
        parsed.port
    except ValueError:
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.hostname)


@dataclass(frozen=True)
class TLSConfig:
    """Client TLS material, forwarded to the Mimir client."""

    ca_path: str | None = None
    cert_path: str | None = None
    key_path: str | None = None
    insecure_skip_verify: bool = False

    @property
    def enabled(self) -> bool:
        return bool(self.ca_path or self.cert_path or self.key_path or self.insecure_skip_verify)


@dataclass(frozen=True)
class ProviderConfig:
    """Resolved, immutable provider configuration."""

    url: str
    tenant_id: str | None = None
    user: str | None = None
    key: str = field(default="", repr=False)
    token: str | None = field(default=None, repr=False)
    tls: TLSConfig = field(default_factory=TLSConfig)
    prometheus_http_prefix: str = DEFAULT_PROMETHEUS_HTTP_PREFIX
    alertmanager_http_prefix: str = DEFAULT_ALERTMANAGER_HTTP_PREFIX
    store_rules_sha256: bool = False

    def to_log_dict(self) -> dict[str, Any]:
        """Non-sensitive view of the configuration for logging."""
        return {
            "url": self.url,
            "tenant_id": self.tenant_id,
            "user": self.user,
            "key_set": bool(self.key),
            "token_set": bool(self.token),
            "tls_enabled": self.tls.enabled,
            "prometheus_http_prefix": self.prometheus_http_prefix,
            "alertmanager_http_prefix": self.alertmanager_http_prefix,
            "store_rules_sha256": self.store_rules_sha256,
        }


def _coerce(name: str, value: Any) -> Any:
    if value is None:
        return None
    if name in BOOL_FIELDS:
        if not isinstance(value, bool):
            raise ConfigurationError(f"{name} must be a boolean", {"attribute": name})
        return value
    if not isinstance(value, str):
        # Never echo the value itself; it may be a credential
        raise ConfigurationError(f"{name} must be a string", {"attribute": name})
    return value


def load_provider_config(
    declared: Mapping[str, Any] | None = None,
    *,
    environment: MimirEnvironment | None = None,
) -> ProviderConfig:
    """
    Resolve the provider configuration.

    Args:
        declared: Values set in the provider block; ``None`` entries fall
            back to the environment
        environment: Pre-loaded environment, read from ``os.environ`` if omitted

    Returns:
        ProviderConfig

    Raises:
        ConfigurationError: On unknown fields, wrong types, a missing or
            invalid url, or unparseable environment variables
    """
    declared = dict(declared or {})
    unknown = sorted(set(declared) - set(ENV_VARS))
    if unknown:
        raise ConfigurationError("Unsupported provider arguments", {"arguments": ", ".join(unknown)})

    env = environment if environment is not None else load_environment()

    values: dict[str, Any] = {}
    for name in ENV_VARS:
        value = _coerce(name, declared.get(name))
        values[name] = value if value is not None else env.value_for(name)

    url = values["url"]
    if not url:
        raise ConfigurationError(
            "url is required",
            {"attribute": "url", "env_var": ENV_VARS["url"]},
        )
    if not is_url_with_http_or_https(url):
        raise ConfigurationError(
            "expected url to have a host and an http or https scheme",
            {"attribute": "url", "url": url},
        )

    return ProviderConfig(
        url=url,
        tenant_id=values["tenant_id"] or None,
        user=values["user"] or None,
        key=values["key"] or "",
        token=values["token"] or None,
        tls=TLSConfig(
            ca_path=values["ca_cert_path"] or None,
            cert_path=values["tls_cert_path"] or None,
            key_path=values["tls_key_path"] or None,
            insecure_skip_verify=bool(values["insecure_skip_verify"]),
        ),
        prometheus_http_prefix=values["prometheus_http_prefix"],
        alertmanager_http_prefix=values["alertmanager_http_prefix"],
        store_rules_sha256=bool(values["store_rules_sha256"]),
    )
