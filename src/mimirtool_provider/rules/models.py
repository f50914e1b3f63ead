"""Data models for Mimir ruler namespaces."""

from __future__ import annotations

import hashlib
from dataclasses import dataclass, field
from typing import Any, Dict, List

import yaml

from mimirtool_provider.core.errors import ValidationError


@dataclass
class RuleGroup:
    """A Prometheus-compatible rule group as stored by the Mimir ruler.

    Keys other than ``name``, ``interval`` and ``rules`` (``source_tenants``,
    ``evaluation_delay``, ``limit`` ...) are kept verbatim in ``extra``.
    """

    name: str
    rules: List[Dict[str, Any]] = field(default_factory=list)
    interval: str | None = None
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RuleGroup":
        if not isinstance(data, dict):
            raise ValidationError("rule group must be a mapping")
        extra = {k: v for k, v in data.items() if k not in ("name", "interval", "rules")}
        return cls(
            name=str(data.get("name") or ""),
            rules=list(data.get("rules") or []),
            interval=data.get("interval"),
            extra=extra,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the ruler wire format.

        Key order is fixed so that two equal groups always serialize the same.
        """
        group: Dict[str, Any] = {"name": self.name}
        if self.interval:
            group["interval"] = self.interval
        for key in sorted(self.extra):
            group[key] = self.extra[key]
        group["rules"] = [_normalize_rule(rule) for rule in self.rules]
        return group

    def to_yaml(self) -> str:
        return yaml.safe_dump(self.to_dict(), sort_keys=False, default_flow_style=False)


_RULE_KEY_ORDER = ("alert", "record", "expr", "for", "keep_firing_for", "labels", "annotations")


def _normalize_rule(rule: Dict[str, Any]) -> Dict[str, Any]:
    ordered: Dict[str, Any] = {}
    for key in _RULE_KEY_ORDER:
        if key in rule and rule[key] not in (None, {}, ""):
            value = rule[key]
            if isinstance(value, dict):
                value = {k: value[k] for k in sorted(value)}
            ordered[key] = value
    for key in sorted(k for k in rule if k not in _RULE_KEY_ORDER):
        ordered[key] = rule[key]
    return ordered


@dataclass
class RuleNamespace:
    """All rule groups of one ruler namespace."""

    namespace: str
    groups: List[RuleGroup] = field(default_factory=list)

    @classmethod
    def from_yaml(cls, namespace: str, content: str) -> "RuleNamespace":
        """Parse a ``groups:`` document.

        Raises:
            ValidationError: If the content is not valid YAML or has no groups list
        """
        try:
            data = yaml.safe_load(content)
        except yaml.YAMLError as exc:
            raise ValidationError("config_yaml is not valid YAML", {"namespace": namespace}) from exc

        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ValidationError("config_yaml must be a mapping with a 'groups' key", {"namespace": namespace})
        unknown = sorted(set(data) - {"groups"})
        if unknown:
            raise ValidationError(
                "config_yaml has unexpected top-level keys",
                {"namespace": namespace, "keys": ", ".join(unknown)},
            )
        groups = data.get("groups") or []
        if not isinstance(groups, list):
            raise ValidationError("'groups' must be a list", {"namespace": namespace})
        return cls(namespace=namespace, groups=[RuleGroup.from_dict(g) for g in groups])

    def group_map(self) -> Dict[str, RuleGroup]:
        return {group.name: group for group in self.groups}

    def to_yaml(self) -> str:
        """Normalized YAML; groups sorted by name."""
        groups = [g.to_dict() for g in sorted(self.groups, key=lambda g: g.name)]
        return yaml.safe_dump({"groups": groups}, sort_keys=False, default_flow_style=False)

    def sha256(self) -> str:
        return hashlib.sha256(self.to_yaml().encode("utf-8")).hexdigest()
