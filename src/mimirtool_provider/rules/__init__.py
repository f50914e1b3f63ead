"""
Ruler namespace models and validation.

Parses ``groups:`` documents into rule groups, normalizes them for stable
comparison and hashing, and lints them before they are pushed.
"""

from mimirtool_provider.rules.models import RuleGroup, RuleNamespace
from mimirtool_provider.rules.validator import ValidationResult, validate_namespace

__all__ = [
    "RuleGroup",
    "RuleNamespace",
    "ValidationResult",
    "validate_namespace",
]
