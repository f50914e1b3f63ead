"""
Ruler namespace resource.

Keeps a Mimir ruler namespace in line with a declared ``groups:`` document.
Groups are reconciled one by one: groups no longer declared are deleted,
new and changed groups are pushed.
"""

from __future__ import annotations

from typing import Any

import structlog

from mimirtool_provider.core.errors import ResourceNotFoundError, ValidationError
from mimirtool_provider.logging import bind_context
from mimirtool_provider.providers.base import (
    PlanChange,
    PlanResult,
    ProviderContext,
    ProviderResource,
    ProviderResourceSchema,
    SchemaAttribute,
)
from mimirtool_provider.rules import RuleNamespace, validate_namespace

logger = structlog.get_logger()


class RulerNamespaceResource(ProviderResource):
    RESOURCE = "mimirtool_ruler_namespace"

    def __init__(self, context: ProviderContext) -> None:
        self._ctx = context

    @staticmethod
    def schema() -> ProviderResourceSchema:
        return ProviderResourceSchema(
            name=RulerNamespaceResource.RESOURCE,
            description="Rule groups of one Mimir ruler namespace",
            attributes=(
                SchemaAttribute("id", "string", "Namespace name", computed=True),
                SchemaAttribute(
                    "namespace",
                    "string",
                    "The name of the namespace to create in Grafana Mimir.",
                    required=True,
                    force_new=True,
                ),
                SchemaAttribute(
                    "config_yaml",
                    "string",
                    "The namespace's groups rules definition to create in Grafana Mimir. "
                    "Stored as its sha256 digest when the provider sets `store_rules_sha256`.",
                    required=True,
                ),
                SchemaAttribute(
                    "strict_recording_rule_name_check",
                    "bool",
                    "Fails the apply when recording rule names do not follow "
                    "the `level:metric:operations` convention.",
                    default=False,
                ),
            ),
        )

    def _desired(self, desired_state: dict[str, Any]) -> RuleNamespace:
        namespace = desired_state.get("namespace")
        if not namespace:
            raise ValidationError("namespace is required", {"attribute": "namespace"})
        config_yaml = desired_state.get("config_yaml")
        if not config_yaml:
            raise ValidationError("config_yaml is required", {"attribute": "config_yaml"})

        rules = RuleNamespace.from_yaml(namespace, config_yaml)
        result = validate_namespace(
            rules,
            strict_recording_rule_name_check=bool(desired_state.get("strict_recording_rule_name_check")),
        )
        if not result.is_valid:
            raise ValidationError(
                "config_yaml contains invalid rule groups",
                {"namespace": namespace, "issues": "; ".join(result.issues)},
            )
        return rules

    def _state(self, rules: RuleNamespace, strict: bool) -> dict[str, Any]:
        if self._ctx.store_rules_sha256:
            config_yaml = rules.sha256()
        else:
            config_yaml = rules.to_yaml()
        return {
            "id": rules.namespace,
            "namespace": rules.namespace,
            "config_yaml": config_yaml,
            "strict_recording_rule_name_check": strict,
        }

    @staticmethod
    def _namespace(state: dict[str, Any]) -> str:
        namespace = state.get("namespace") or state.get("id")
        if not namespace:
            raise ValidationError("namespace is required", {"attribute": "namespace"})
        return namespace

    async def _remote(self, namespace: str) -> RuleNamespace | None:
        try:
            listing = await self._ctx.client.list_rules(namespace)
        except ResourceNotFoundError:
            return None
        groups = listing.get(namespace) or []
        if not groups:
            return None
        return RuleNamespace(namespace=namespace, groups=groups)

    @staticmethod
    def _diff(desired: RuleNamespace, remote: RuleNamespace | None) -> PlanResult:
        current = remote.group_map() if remote else {}
        wanted = desired.group_map()
        changes: list[PlanChange] = []

        for name in sorted(current):
            if name not in wanted:
                changes.append(PlanChange("delete", {"namespace": desired.namespace, "group": name}))
        for name in sorted(wanted):
            if name not in current:
                changes.append(PlanChange("create", {"namespace": desired.namespace, "group": name}))
            elif current[name].to_dict() != wanted[name].to_dict():
                changes.append(PlanChange("update", {"namespace": desired.namespace, "group": name}))

        return PlanResult(
            changes=changes,
            metadata={"namespace": desired.namespace, "exists": remote is not None},
        )

    async def read(self, state: dict[str, Any]) -> dict[str, Any] | None:
        """Refresh state from Mimir; ``None`` means the namespace is gone."""
        namespace = self._namespace(state)
        remote = await self._remote(namespace)
        if remote is None:
            logger.info("ruler_namespace_not_found", namespace=namespace)
            return None
        return self._state(remote, bool(state.get("strict_recording_rule_name_check", False)))

    async def import_state(self, namespace: str) -> dict[str, Any] | None:
        return await self.read({"namespace": namespace})

    async def plan(self, desired_state: dict[str, Any]) -> PlanResult:
        desired = self._desired(desired_state)
        return self._diff(desired, await self._remote(desired.namespace))

    async def apply(self, desired_state: dict[str, Any]) -> dict[str, Any]:
        desired = self._desired(desired_state)
        plan = self._diff(desired, await self._remote(desired.namespace))
        groups = desired.group_map()

        # Stale groups are removed before new ones are pushed
        for change in plan.changes:
            if change.action == "delete":
                await self._ctx.client.delete_rule_group(desired.namespace, change.details["group"])
        for change in plan.changes:
            if change.action in ("create", "update"):
                await self._ctx.client.create_rule_group(desired.namespace, groups[change.details["group"]])

        bind_context(namespace=desired.namespace).info("ruler_namespace_applied", changes=len(plan.changes))
        return self._state(desired, bool(desired_state.get("strict_recording_rule_name_check", False)))

    async def delete(self, state: dict[str, Any]) -> None:
        namespace = self._namespace(state)
        try:
            await self._ctx.client.delete_namespace(namespace)
        except ResourceNotFoundError:
            logger.info("ruler_namespace_already_deleted", namespace=namespace)

    async def drift(self, state: dict[str, Any]) -> PlanResult:
        """Compare recorded state with what Mimir currently holds."""
        namespace = self._namespace(state)
        remote = await self._remote(namespace)
        if remote is None:
            return PlanResult([PlanChange("create", {"namespace": namespace})])

        current = self._state(remote, bool(state.get("strict_recording_rule_name_check", False)))
        if current["config_yaml"] != state.get("config_yaml"):
            return PlanResult(
                [PlanChange("update", {"namespace": namespace, "field": "config_yaml"})],
                metadata={"remote_config_yaml": current["config_yaml"]},
            )
        return PlanResult([])
