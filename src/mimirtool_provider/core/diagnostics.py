"""
Diagnostics returned to the host runtime.

Configuration never raises into the host; failures are reported as a list of
severity-tagged diagnostics instead.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from mimirtool_provider.core.errors import MimirtoolError, format_error_message


class Severity(str, Enum):
    """Diagnostic severity."""

    ERROR = "error"
    WARNING = "warning"


@dataclass(frozen=True)
class Diagnostic:
    """A single message for the host."""

    severity: Severity
    summary: str
    detail: str = ""
    attribute: str | None = None


@dataclass
class Diagnostics:
    """Ordered collection of diagnostics."""

    items: list[Diagnostic] = field(default_factory=list)

    def append(self, diagnostic: Diagnostic) -> None:
        self.items.append(diagnostic)

    def extend(self, other: Diagnostics) -> None:
        self.items.extend(other.items)

    @property
    def has_error(self) -> bool:
        return any(d.severity == Severity.ERROR for d in self.items)

    @property
    def errors(self) -> list[Diagnostic]:
        return [d for d in self.items if d.severity == Severity.ERROR]

    @property
    def warnings(self) -> list[Diagnostic]:
        return [d for d in self.items if d.severity == Severity.WARNING]

    def __len__(self) -> int:
        return len(self.items)

    def __iter__(self):
        return iter(self.items)

    @classmethod
    def from_error(cls, error: Exception, attribute: str | None = None) -> Diagnostics:
        """Wrap an exception into a single error diagnostic."""
        if isinstance(error, MimirtoolError):
            summary = error.message
            detail = format_error_message(error)
        else:
            summary = str(error) or type(error).__name__
            detail = ""
        return cls([Diagnostic(Severity.ERROR, summary, detail, attribute)])

    def redacted(self, secrets: tuple[str, ...]) -> Diagnostics:
        """Copy with every occurrence of ``secrets`` masked."""

        def scrub(text: str) -> str:
            for secret in secrets:
                if secret:
                    text = text.replace(secret, "***")
            return text

        return Diagnostics(
            [
                Diagnostic(d.severity, scrub(d.summary), scrub(d.detail), d.attribute)
                for d in self.items
            ]
        )
