"""Core modules for the mimirtool provider - errors and diagnostics."""

from mimirtool_provider.core.diagnostics import Diagnostic, Diagnostics, Severity
from mimirtool_provider.core.errors import (
    ConfigurationError,
    MimirClientError,
    MimirtoolError,
    ResourceNotFoundError,
    ValidationError,
    format_error_message,
)

__all__ = [
    # Errors
    "MimirtoolError",
    "ConfigurationError",
    "ValidationError",
    "MimirClientError",
    "ResourceNotFoundError",
    "format_error_message",
    # Diagnostics
    "Diagnostic",
    "Diagnostics",
    "Severity",
]
