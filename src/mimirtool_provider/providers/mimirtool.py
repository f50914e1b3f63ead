"""
The mimirtool provider.

Declares the provider schema, builds the Mimir client from the provider
configuration and hands resources a ``ProviderContext``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Mapping

import structlog

from mimirtool_provider import __version__
from mimirtool_provider.clients.mimir import MimirClient, MimirClientConfig, MimirClientProtocol
from mimirtool_provider.config.settings import (
    DEFAULT_ALERTMANAGER_HTTP_PREFIX,
    DEFAULT_PROMETHEUS_HTTP_PREFIX,
    ENV_VARS,
    SENSITIVE_FIELDS,
    MimirEnvironment,
    ProviderConfig,
    load_provider_config,
)
from mimirtool_provider.core.diagnostics import Diagnostic, Diagnostics, Severity
from mimirtool_provider.core.errors import MimirClientError, MimirtoolError
from mimirtool_provider.providers.base import (
    ProviderContext,
    ProviderHealth,
    ProviderResource,
    ProviderResourceSchema,
    SchemaAttribute,
)
from mimirtool_provider.providers.registry import ResourceRegistry, default_registry

logger = structlog.get_logger()

PROVIDER_NAME = "terraform-provider-mimirtool"

ClientFactory = Callable[[ProviderConfig, str], MimirClientProtocol]


def _env_doc(name: str) -> str:
    return f" May alternatively be set via the `{ENV_VARS[name]}` environment variable."


PROVIDER_SCHEMA = ProviderResourceSchema(
    name="mimirtool",
    description="Grafana Mimir ruler and alertmanager configuration",
    attributes=(
        SchemaAttribute(
            "url",
            "string",
            "Address to use when contacting Grafana Mimir." + _env_doc("url"),
            required=True,
            env_var=ENV_VARS["url"],
        ),
        SchemaAttribute(
            "tenant_id",
            "string",
            "Tenant ID to use when contacting Grafana Mimir." + _env_doc("tenant_id"),
            env_var=ENV_VARS["tenant_id"],
        ),
        SchemaAttribute(
            "user",
            "string",
            "API user to use when contacting Grafana Mimir." + _env_doc("user"),
            env_var=ENV_VARS["user"],
        ),
        SchemaAttribute(
            "key",
            "string",
            "API key to use when contacting Grafana Mimir." + _env_doc("key"),
            sensitive=True,
            default="",
            env_var=ENV_VARS["key"],
        ),
        SchemaAttribute(
            "token",
            "string",
            "Authentication token for bearer token or JWT auth when contacting Grafana Mimir."
            + _env_doc("token"),
            sensitive=True,
            env_var=ENV_VARS["token"],
        ),
        SchemaAttribute(
            "tls_key_path",
            "string",
            "Client TLS key file to use to authenticate to the MIMIR server." + _env_doc("tls_key_path"),
            env_var=ENV_VARS["tls_key_path"],
        ),
        SchemaAttribute(
            "tls_cert_path",
            "string",
            "Client TLS certificate file to use to authenticate to the MIMIR server."
            + _env_doc("tls_cert_path"),
            env_var=ENV_VARS["tls_cert_path"],
        ),
        SchemaAttribute(
            "ca_cert_path",
            "string",
            "Certificate CA bundle to use to verify the MIMIR server's certificate."
            + _env_doc("ca_cert_path"),
            env_var=ENV_VARS["ca_cert_path"],
        ),
        SchemaAttribute(
            "insecure_skip_verify",
            "bool",
            "Skip TLS certificate verification." + _env_doc("insecure_skip_verify"),
            env_var=ENV_VARS["insecure_skip_verify"],
        ),
        SchemaAttribute(
            "prometheus_http_prefix",
            "string",
            "Path prefix to use for rules." + _env_doc("prometheus_http_prefix"),
            default=DEFAULT_PROMETHEUS_HTTP_PREFIX,
            env_var=ENV_VARS["prometheus_http_prefix"],
        ),
        SchemaAttribute(
            "alertmanager_http_prefix",
            "string",
            "Path prefix to use for alertmanager." + _env_doc("alertmanager_http_prefix"),
            default=DEFAULT_ALERTMANAGER_HTTP_PREFIX,
            env_var=ENV_VARS["alertmanager_http_prefix"],
        ),
        SchemaAttribute(
            "store_rules_sha256",
            "bool",
            "Set to true if you want to save only the sha256sum instead of namespace's "
            "groups rules definition in the tfstate.",
            default=False,
            env_var=ENV_VARS["store_rules_sha256"],
        ),
    ),
)


def default_client_factory(config: ProviderConfig, user_agent: str) -> MimirClient:
    return MimirClient(MimirClientConfig.from_provider_config(config, user_agent=user_agent))


@dataclass(frozen=True)
class ConfigureResult:
    """Outcome of ``MimirtoolProvider.configure``."""

    context: ProviderContext | None
    diagnostics: Diagnostics

    @property
    def ok(self) -> bool:
        return self.context is not None and not self.diagnostics.has_error


class MimirtoolProvider:
    """
    Provider entry point driven by the host runtime.

    Args:
        version: Provider version, stamped into the user agent
        client_factory: Builds the Mimir client from the resolved config;
            tests inject a factory returning a fake client
        registry: Resource types exposed by the provider
    """

    name = "mimirtool"

    def __init__(
        self,
        version: str = __version__,
        *,
        client_factory: ClientFactory = default_client_factory,
        registry: ResourceRegistry | None = None,
    ) -> None:
        self.version = version
        self._client_factory = client_factory
        self._registry = registry or default_registry()

    @property
    def user_agent(self) -> str:
        return f"{PROVIDER_NAME}/{self.version}"

    @staticmethod
    def schema() -> ProviderResourceSchema:
        return PROVIDER_SCHEMA

    def resources(self) -> list[ProviderResourceSchema]:
        return [spec.schema for spec in self._registry.list()]

    def resource(self, name: str, context: ProviderContext) -> ProviderResource:
        return self._registry.create(name, context)

    def configure(
        self,
        declared: Mapping[str, Any] | None = None,
        *,
        environment: MimirEnvironment | None = None,
    ) -> ConfigureResult:
        """
        Resolve configuration and build the client.

        Never raises: configuration and client construction failures are
        returned as error diagnostics, with key and token values masked.
        """
        secrets = tuple(
            str(value) for name, value in (declared or {}).items() if name in SENSITIVE_FIELDS and value
        )

        try:
            config = load_provider_config(declared, environment=environment)
        except MimirtoolError as exc:
            diagnostics = Diagnostics.from_error(exc, exc.details.get("attribute")).redacted(secrets)
            logger.error("provider_config_invalid", error=diagnostics.errors[0].summary)
            return ConfigureResult(None, diagnostics)

        secrets += tuple(s for s in (config.key, config.token) if s)

        try:
            client = self._client_factory(config, self.user_agent)
        except MimirtoolError as exc:
            diagnostics = Diagnostics.from_error(exc, exc.details.get("attribute")).redacted(secrets)
            logger.error("mimir_client_failed", error=diagnostics.errors[0].summary)
            return ConfigureResult(None, diagnostics)
        except Exception as exc:
            logger.error("mimir_client_failed", error_type=type(exc).__name__)
            diagnostics = Diagnostics(
                [Diagnostic(Severity.ERROR, "failed to create Mimir client", str(exc))]
            )
            return ConfigureResult(None, diagnostics.redacted(secrets))

        logger.info("provider_configured", user_agent=self.user_agent, **config.to_log_dict())
        return ConfigureResult(
            ProviderContext(client=client, config=config, user_agent=self.user_agent),
            Diagnostics(),
        )

    async def health_check(self, context: ProviderContext) -> ProviderHealth:
        try:
            await context.client.list_rules()
        except MimirClientError as exc:
            # No rules configured for the tenant yet
            if exc.status_code != 404:
                return ProviderHealth(status="unreachable", details=exc.message)
        try:
            await context.client.alertmanager_status()
        except MimirClientError as exc:
            return ProviderHealth(status="degraded", details=f"alertmanager: {exc.message}")
        return ProviderHealth(status="healthy")
