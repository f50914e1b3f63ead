"""
Rule namespace validation.

Checks performed before anything is sent to the ruler:
1. Group names are present and unique within the namespace
2. Every rule is either an alerting or a recording rule, with an expression
3. Recording rule names are valid metric names
4. Optionally, recording rule names follow the ``level:metric:operations``
   naming convention
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from mimirtool_provider.rules.models import RuleNamespace

METRIC_NAME_RE = re.compile(r"^[a-zA-Z_:][a-zA-Z0-9_:]*$")
# level:metric:operations, each part non-empty
RECORDING_CONVENTION_RE = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*:[a-zA-Z0-9_]+(:[a-zA-Z0-9_]+)+$")


@dataclass
class ValidationResult:
    """Result of namespace validation."""

    issues: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.issues


def validate_namespace(
    namespace: RuleNamespace,
    *,
    strict_recording_rule_name_check: bool = False,
) -> ValidationResult:
    result = ValidationResult()
    seen: set[str] = set()

    for index, group in enumerate(namespace.groups):
        label = group.name or f"#{index}"
        if not group.name:
            result.issues.append(f"group {label}: name is required")
        elif group.name in seen:
            result.issues.append(f"group {label}: duplicate group name")
        seen.add(group.name)

        if not group.rules:
            result.issues.append(f"group {label}: at least one rule is required")

        for position, rule in enumerate(group.rules):
            where = f"group {label} rule {position}"
            if not isinstance(rule, dict):
                result.issues.append(f"{where}: rule must be a mapping")
                continue

            alert = rule.get("alert")
            record = rule.get("record")
            if bool(alert) == bool(record):
                result.issues.append(f"{where}: exactly one of 'alert' or 'record' must be set")
            if not str(rule.get("expr") or "").strip():
                result.issues.append(f"{where}: 'expr' is required")

            if record:
                if not METRIC_NAME_RE.match(str(record)):
                    result.issues.append(f"{where}: invalid recording rule name {record!r}")
                elif strict_recording_rule_name_check and not RECORDING_CONVENTION_RE.match(str(record)):
                    result.issues.append(
                        f"{where}: recording rule name {record!r} does not match "
                        "the level:metric:operations convention"
                    )
            if record and ("for" in rule or "annotations" in rule):
                result.issues.append(f"{where}: recording rules cannot set 'for' or 'annotations'")

    return result
