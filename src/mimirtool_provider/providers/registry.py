from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, List

from mimirtool_provider.providers.base import ProviderContext, ProviderResource, ProviderResourceSchema

ResourceFactory = Callable[[ProviderContext], ProviderResource]


@dataclass(frozen=True)
class ResourceSpec:
    """Metadata describing a registered resource type."""

    name: str
    factory: ResourceFactory
    schema: ProviderResourceSchema


class ResourceRegistry:
    """In-memory map of resource type name to implementation."""

    def __init__(self) -> None:
        self._resources: Dict[str, ResourceSpec] = {}

    def register(self, name: str, factory: ResourceFactory, schema: ProviderResourceSchema) -> None:
        if not name:
            raise ValueError("Resource name is required")
        if name != schema.name:
            raise ValueError(f"Resource name '{name}' does not match schema name '{schema.name}'")
        self._resources[name] = ResourceSpec(name=name, factory=factory, schema=schema)

    def create(self, name: str, context: ProviderContext) -> ProviderResource:
        spec = self._resources.get(name)
        if spec is None:
            raise KeyError(f"Resource '{name}' is not registered")
        return spec.factory(context)

    def list(self) -> List[ResourceSpec]:
        return list(self._resources.values())

    def names(self) -> List[str]:
        return sorted(self._resources)


def default_registry() -> ResourceRegistry:
    """Registry holding the built-in resources."""
    from mimirtool_provider.providers.alertmanager import AlertmanagerResource
    from mimirtool_provider.providers.ruler_namespace import RulerNamespaceResource

    registry = ResourceRegistry()
    registry.register(RulerNamespaceResource.RESOURCE, RulerNamespaceResource, RulerNamespaceResource.schema())
    registry.register(AlertmanagerResource.RESOURCE, AlertmanagerResource, AlertmanagerResource.schema())
    return registry
