"""
Unified error types for the mimirtool provider.

Every error carries a human readable message plus a ``details`` mapping of
non-sensitive context. The provider converts these into diagnostics for the
host; resource operations let them propagate.

Hierarchy:
- MimirtoolError
  - ConfigurationError: provider configuration could not be loaded
  - ValidationError: declared resource data is malformed
  - MimirClientError: the Mimir API client failed
    - ResourceNotFoundError: the API answered 404
"""

from __future__ import annotations

from typing import Any


class MimirtoolError(Exception):
    """Base exception for mimirtool provider errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigurationError(MimirtoolError):
    """Raised for provider configuration errors."""


class ValidationError(MimirtoolError):
    """Raised when declared resource data fails validation."""


class MimirClientError(MimirtoolError):
    """Raised when the Mimir API client fails."""

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
        *,
        status_code: int | None = None,
    ):
        super().__init__(message, details)
        self.status_code = status_code


class ResourceNotFoundError(MimirClientError):
    """Raised when the requested Mimir resource does not exist."""


def format_error_message(error: MimirtoolError) -> str:
    """Format an error message for display to users."""
    msg = error.message
    if error.details:
        detail_str = ", ".join(f"{k}={v}" for k, v in error.details.items())
        msg = f"{msg} ({detail_str})"
    return msg
