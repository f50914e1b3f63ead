"""
Mimir HTTP API client.

Covers the ruler configuration API and the per-tenant alertmanager
configuration API.

API endpoints:
    POST   {prometheus_prefix}/config/v1/rules/{namespace}          - Create/update a rule group
    GET    {prometheus_prefix}/config/v1/rules[/{namespace}]        - List rule groups
    GET    {prometheus_prefix}/config/v1/rules/{namespace}/{group}  - Get one rule group
    DELETE {prometheus_prefix}/config/v1/rules/{namespace}/{group}  - Delete one rule group
    DELETE {prometheus_prefix}/config/v1/rules/{namespace}          - Delete a namespace
    GET|POST|DELETE /api/v1/alerts                                  - Alertmanager configuration
    GET    {alertmanager_prefix}/api/v2/status                      - Alertmanager status
"""

from __future__ import annotations

import ssl
from dataclasses import dataclass, field
from typing import Any, Protocol
from urllib.parse import quote

import structlog
import yaml

from mimirtool_provider.clients.base import BaseHTTPClient
from mimirtool_provider.config.settings import (
    DEFAULT_ALERTMANAGER_HTTP_PREFIX,
    DEFAULT_PROMETHEUS_HTTP_PREFIX,
    ProviderConfig,
    TLSConfig,
)
from mimirtool_provider.core.errors import ConfigurationError, MimirClientError
from mimirtool_provider.rules.models import RuleGroup

logger = structlog.get_logger()

DEFAULT_USER_AGENT = "terraform-provider-mimirtool/dev"
ALERTMANAGER_CONFIG_PATH = "/api/v1/alerts"


@dataclass(frozen=True)
class MimirClientConfig:
    """Connection settings for ``MimirClient``."""

    address: str
    id: str | None = None
    user: str | None = None
    key: str = field(default="", repr=False)
    auth_token: str | None = field(default=None, repr=False)
    tls: TLSConfig = field(default_factory=TLSConfig)
    prometheus_http_prefix: str = DEFAULT_PROMETHEUS_HTTP_PREFIX
    alertmanager_http_prefix: str = DEFAULT_ALERTMANAGER_HTTP_PREFIX
    user_agent: str = DEFAULT_USER_AGENT

    @classmethod
    def from_provider_config(cls, config: ProviderConfig, *, user_agent: str = DEFAULT_USER_AGENT) -> MimirClientConfig:
        return cls(
            address=config.url,
            id=config.tenant_id,
            user=config.user,
            key=config.key,
            auth_token=config.token,
            tls=config.tls,
            prometheus_http_prefix=config.prometheus_http_prefix,
            alertmanager_http_prefix=config.alertmanager_http_prefix,
            user_agent=user_agent,
        )


@dataclass
class AlertmanagerUserConfig:
    """A tenant's alertmanager configuration and its template files."""

    config_yaml: str
    templates: dict[str, str] = field(default_factory=dict)


class MimirClientProtocol(Protocol):
    """Operations the resources need from a Mimir client."""

    async def create_rule_group(self, namespace: str, group: RuleGroup) -> None:
        ...

    async def get_rule_group(self, namespace: str, group_name: str) -> RuleGroup:
        ...

    async def list_rules(self, namespace: str | None = None) -> dict[str, list[RuleGroup]]:
        ...

    async def delete_rule_group(self, namespace: str, group_name: str) -> None:
        ...

    async def delete_namespace(self, namespace: str) -> None:
        ...

    async def create_alertmanager_config(self, config_yaml: str, templates: dict[str, str]) -> None:
        ...

    async def get_alertmanager_config(self) -> AlertmanagerUserConfig:
        ...

    async def delete_alertmanager_config(self) -> None:
        ...

    async def alertmanager_status(self) -> dict[str, Any]:
        ...


def build_ssl_context(tls: TLSConfig) -> ssl.SSLContext | bool:
    """
    Compile TLS file paths into an SSL context.

    Returns ``True`` (default verification) when no TLS option is set.

    Raises:
        ConfigurationError: If a certificate or key cannot be loaded
    """
    if not tls.enabled:
        return True
    if bool(tls.cert_path) != bool(tls.key_path):
        raise ConfigurationError(
            "tls_cert_path and tls_key_path must be set together",
            {"attribute": "tls_cert_path" if not tls.cert_path else "tls_key_path"},
        )
    try:
        context = ssl.create_default_context(cafile=tls.ca_path)
        if tls.cert_path and tls.key_path:
            context.load_cert_chain(tls.cert_path, tls.key_path)
    except OSError as exc:
        raise ConfigurationError("Failed to load TLS configuration", {"error": str(exc)}) from exc

    if tls.insecure_skip_verify:
        context.check_hostname = False
        context.verify_mode = ssl.CERT_NONE
    return context


def _segment(value: str) -> str:
    return quote(value, safe="")


class MimirClient(BaseHTTPClient):
    """
    Client for the Mimir ruler and alertmanager configuration APIs.

    Authentication follows mimirtool: basic auth with ``user``/``key`` (or the
    tenant id and ``key`` when no user is given), or a bearer ``auth_token``;
    never both.
    """

    def __init__(
        self,
        config: MimirClientConfig,
        *,
        timeout: float = 30.0,
        max_retries: int = 3,
        backoff_factor: float = 2.0,
    ) -> None:
        """
        Initialize the client.

        Args:
            config: Connection settings
            timeout: Request timeout in seconds
            max_retries: Attempts per request for retryable failures
            backoff_factor: Exponential backoff multiplier in seconds

        Raises:
            ConfigurationError: On conflicting credentials or unreadable TLS files
        """
        if (config.user or config.key) and config.auth_token:
            raise ConfigurationError("at most one of basic auth or auth token should be configured")

        auth: tuple[str, str] | None = None
        if config.user:
            auth = (config.user, config.key)
        elif config.key:
            auth = (config.id or "", config.key)

        super().__init__(
            config.address,
            timeout=timeout,
            max_retries=max_retries,
            backoff_factor=backoff_factor,
            verify=build_ssl_context(config.tls),
            auth=auth,
        )
        self.config = config
        self._rules_path = f"{config.prometheus_http_prefix.rstrip('/')}/config/v1/rules"
        self._alertmanager_prefix = config.alertmanager_http_prefix.rstrip("/")

    def _headers(self) -> dict[str, str]:
        headers = {"User-Agent": self.config.user_agent}
        if self.config.id:
            headers["X-Scope-OrgID"] = self.config.id
        if self.config.auth_token:
            headers["Authorization"] = f"Bearer {self.config.auth_token}"
        return headers

    # Ruler

    async def create_rule_group(self, namespace: str, group: RuleGroup) -> None:
        await self._request(
            "POST",
            f"{self._rules_path}/{_segment(namespace)}",
            content=group.to_yaml(),
            headers={"Content-Type": "application/yaml"},
        )
        logger.info("ruler_group_pushed", namespace=namespace, group=group.name)

    async def get_rule_group(self, namespace: str, group_name: str) -> RuleGroup:
        response = await self._request(
            "GET", f"{self._rules_path}/{_segment(namespace)}/{_segment(group_name)}"
        )
        return RuleGroup.from_dict(_load_yaml(response.text) or {})

    async def list_rules(self, namespace: str | None = None) -> dict[str, list[RuleGroup]]:
        """
        List rule groups, optionally restricted to one namespace.

        Raises:
            ResourceNotFoundError: If the namespace (or tenant) has no rules
        """
        path = self._rules_path if namespace is None else f"{self._rules_path}/{_segment(namespace)}"
        response = await self._request("GET", path)
        data = _load_yaml(response.text) or {}
        if not isinstance(data, dict):
            raise MimirClientError("unexpected rules response", {"path": path})
        return {
            str(ns): [RuleGroup.from_dict(group) for group in (groups or [])]
            for ns, groups in data.items()
        }

    async def delete_rule_group(self, namespace: str, group_name: str) -> None:
        await self._request("DELETE", f"{self._rules_path}/{_segment(namespace)}/{_segment(group_name)}")
        logger.info("ruler_group_deleted", namespace=namespace, group=group_name)

    async def delete_namespace(self, namespace: str) -> None:
        await self._request("DELETE", f"{self._rules_path}/{_segment(namespace)}")
        logger.info("ruler_namespace_deleted", namespace=namespace)

    # Alertmanager

    async def create_alertmanager_config(self, config_yaml: str, templates: dict[str, str]) -> None:
        payload = yaml.safe_dump(
            {"template_files": dict(templates), "alertmanager_config": config_yaml},
            sort_keys=False,
            default_flow_style=False,
        )
        await self._request(
            "POST",
            ALERTMANAGER_CONFIG_PATH,
            content=payload,
            headers={"Content-Type": "application/yaml"},
        )
        logger.info("alertmanager_config_pushed", tenant_id=self.config.id, templates=len(templates))

    async def get_alertmanager_config(self) -> AlertmanagerUserConfig:
        response = await self._request("GET", ALERTMANAGER_CONFIG_PATH)
        data = _load_yaml(response.text) or {}
        if not isinstance(data, dict):
            raise MimirClientError("unexpected alertmanager response", {"path": ALERTMANAGER_CONFIG_PATH})
        return AlertmanagerUserConfig(
            config_yaml=data.get("alertmanager_config") or "",
            templates={str(k): str(v) for k, v in (data.get("template_files") or {}).items()},
        )

    async def delete_alertmanager_config(self) -> None:
        await self._request("DELETE", ALERTMANAGER_CONFIG_PATH)
        logger.info("alertmanager_config_deleted", tenant_id=self.config.id)

    async def alertmanager_status(self) -> dict[str, Any]:
        path = f"{self._alertmanager_prefix}/api/v2/status"
        response = await self._request("GET", path)
        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as exc:
            raise MimirClientError("Mimir returned a malformed JSON body", {"path": path}) from exc


def _load_yaml(text: str) -> Any:
    try:
        return yaml.safe_load(text) if text else None
    except yaml.YAMLError as exc:
        raise MimirClientError("Mimir returned a malformed YAML body") from exc
