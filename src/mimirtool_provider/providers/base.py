from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal, Protocol

from mimirtool_provider.clients.mimir import MimirClientProtocol
from mimirtool_provider.config.settings import ProviderConfig


@dataclass(frozen=True)
class SchemaAttribute:
    """One declared field of the provider or a resource."""

    name: str
    type: Literal["string", "bool", "map"]
    description: str
    required: bool = False
    sensitive: bool = False
    default: Any = None
    env_var: str | None = None
    force_new: bool = False
    computed: bool = False


@dataclass(frozen=True)
class ProviderResourceSchema:
    """Schema metadata describing a provider-managed resource."""

    name: str
    description: str
    attributes: tuple[SchemaAttribute, ...]

    def attribute(self, name: str) -> SchemaAttribute:
        for attr in self.attributes:
            if attr.name == name:
                return attr
        raise KeyError(name)

    @property
    def sensitive_attributes(self) -> frozenset[str]:
        return frozenset(a.name for a in self.attributes if a.sensitive)


@dataclass(frozen=True)
class PlanChange:
    """Represents a single change detected during planning."""

    action: Literal["create", "update", "delete"]
    details: dict[str, Any]


@dataclass(frozen=True)
class PlanResult:
    """Plan result summarising pending changes."""

    changes: list[PlanChange]
    metadata: dict[str, Any] | None = None

    @property
    def has_changes(self) -> bool:
        return bool(self.changes)


@dataclass(frozen=True)
class ProviderHealth:
    status: Literal["healthy", "degraded", "unreachable"]
    details: str | None = None


@dataclass(frozen=True)
class ProviderContext:
    """What ``configure`` hands to every resource operation."""

    client: MimirClientProtocol
    config: ProviderConfig
    user_agent: str

    @property
    def store_rules_sha256(self) -> bool:
        return self.config.store_rules_sha256


class ProviderResource(Protocol):
    """Contract for provider-managed resources."""

    @staticmethod
    def schema() -> ProviderResourceSchema:
        ...

    async def read(self, state: dict[str, Any]) -> dict[str, Any] | None:
        ...

    async def plan(self, desired_state: dict[str, Any]) -> PlanResult:
        ...

    async def apply(self, desired_state: dict[str, Any]) -> dict[str, Any]:
        ...

    async def delete(self, state: dict[str, Any]) -> None:
        ...

    async def drift(self, state: dict[str, Any]) -> PlanResult:
        ...
