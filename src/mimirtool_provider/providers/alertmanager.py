"""
Alertmanager configuration resource.

Manages the tenant's alertmanager configuration document and its template
files. There is one configuration per tenant, so the resource id is the
tenant id.
"""

from __future__ import annotations

from typing import Any

import structlog
import yaml

from mimirtool_provider.core.errors import ResourceNotFoundError, ValidationError
from mimirtool_provider.providers.base import (
    PlanChange,
    PlanResult,
    ProviderContext,
    ProviderResource,
    ProviderResourceSchema,
    SchemaAttribute,
)

logger = structlog.get_logger()

DEFAULT_ID = "alertmanager"


def normalize_config(config_yaml: str) -> str:
    """Canonical YAML for comparing two alertmanager configs."""
    try:
        data = yaml.safe_load(config_yaml)
    except yaml.YAMLError as exc:
        raise ValidationError("config_yaml is not valid YAML") from exc
    if not isinstance(data, dict):
        raise ValidationError("config_yaml must be a YAML mapping")
    return yaml.safe_dump(data, sort_keys=True, default_flow_style=False)


class AlertmanagerResource(ProviderResource):
    RESOURCE = "mimirtool_alertmanager"

    def __init__(self, context: ProviderContext) -> None:
        self._ctx = context

    @staticmethod
    def schema() -> ProviderResourceSchema:
        return ProviderResourceSchema(
            name=AlertmanagerResource.RESOURCE,
            description="Alertmanager configuration of the configured tenant",
            attributes=(
                SchemaAttribute("id", "string", "Tenant id, or `alertmanager` without one", computed=True),
                SchemaAttribute(
                    "config_yaml",
                    "string",
                    "The Alertmanager configuration to load in Grafana Mimir as YAML.",
                    required=True,
                ),
                SchemaAttribute(
                    "templates_config_yaml",
                    "map",
                    "The templates to load along with the configuration, keyed by file name.",
                    default={},
                ),
            ),
        )

    @property
    def resource_id(self) -> str:
        return self._ctx.config.tenant_id or DEFAULT_ID

    @staticmethod
    def _templates(state: dict[str, Any]) -> dict[str, str]:
        templates = state.get("templates_config_yaml") or {}
        if not isinstance(templates, dict):
            raise ValidationError("templates_config_yaml must be a map", {"attribute": "templates_config_yaml"})
        for name, body in templates.items():
            if not isinstance(body, str):
                raise ValidationError("template content must be a string", {"template": name})
        return {str(name): body for name, body in templates.items()}

    def _desired(self, desired_state: dict[str, Any]) -> tuple[str, dict[str, str]]:
        config_yaml = desired_state.get("config_yaml")
        if not config_yaml:
            raise ValidationError("config_yaml is required", {"attribute": "config_yaml"})
        normalize_config(config_yaml)
        return config_yaml, self._templates(desired_state)

    async def _remote(self) -> dict[str, Any] | None:
        try:
            remote = await self._ctx.client.get_alertmanager_config()
        except ResourceNotFoundError:
            return None
        return {
            "id": self.resource_id,
            "config_yaml": remote.config_yaml,
            "templates_config_yaml": remote.templates,
        }

    def _diff(self, config_yaml: str, templates: dict[str, str], remote: dict[str, Any] | None) -> PlanResult:
        if remote is None:
            return PlanResult([PlanChange("create", {"id": self.resource_id})])

        changes: list[PlanChange] = []
        if normalize_config(remote["config_yaml"] or "{}") != normalize_config(config_yaml):
            changes.append(PlanChange("update", {"field": "config_yaml"}))
        if remote["templates_config_yaml"] != templates:
            changes.append(PlanChange("update", {"field": "templates_config_yaml"}))
        return PlanResult(changes)

    async def read(self, state: dict[str, Any]) -> dict[str, Any] | None:
        remote = await self._remote()
        if remote is None:
            logger.info("alertmanager_config_not_found", id=self.resource_id)
        return remote

    async def import_state(self, resource_id: str) -> dict[str, Any] | None:
        return await self.read({"id": resource_id})

    async def plan(self, desired_state: dict[str, Any]) -> PlanResult:
        config_yaml, templates = self._desired(desired_state)
        return self._diff(config_yaml, templates, await self._remote())

    async def apply(self, desired_state: dict[str, Any]) -> dict[str, Any]:
        config_yaml, templates = self._desired(desired_state)
        await self._ctx.client.create_alertmanager_config(config_yaml, templates)
        return {
            "id": self.resource_id,
            "config_yaml": config_yaml,
            "templates_config_yaml": templates,
        }

    async def delete(self, state: dict[str, Any]) -> None:
        try:
            await self._ctx.client.delete_alertmanager_config()
        except ResourceNotFoundError:
            logger.info("alertmanager_config_already_deleted", id=self.resource_id)

    async def drift(self, state: dict[str, Any]) -> PlanResult:
        return self._diff(
            state.get("config_yaml") or "{}",
            self._templates(state),
            await self._remote(),
        )
