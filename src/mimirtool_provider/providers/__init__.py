"""Provider entry point and built-in resources."""

from mimirtool_provider.providers.alertmanager import AlertmanagerResource
from mimirtool_provider.providers.base import (
    PlanChange,
    PlanResult,
    ProviderContext,
    ProviderHealth,
    ProviderResource,
    ProviderResourceSchema,
    SchemaAttribute,
)
from mimirtool_provider.providers.mimirtool import (
    PROVIDER_SCHEMA,
    ConfigureResult,
    MimirtoolProvider,
    default_client_factory,
)
from mimirtool_provider.providers.registry import ResourceRegistry, default_registry
from mimirtool_provider.providers.ruler_namespace import RulerNamespaceResource

__all__ = [
    "AlertmanagerResource",
    "ConfigureResult",
    "MimirtoolProvider",
    "PROVIDER_SCHEMA",
    "PlanChange",
    "PlanResult",
    "ProviderContext",
    "ProviderHealth",
    "ProviderResource",
    "ProviderResourceSchema",
    "ResourceRegistry",
    "RulerNamespaceResource",
    "SchemaAttribute",
    "default_client_factory",
    "default_registry",
]
