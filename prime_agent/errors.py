"""Error taxonomy for prime-agent.

Every failure the core can surface is a subclass of PrimeAgentError. Each
carries the name or path involved so the CLI can print a message that points
at the failing entity.
"""

from __future__ import annotations

from pathlib import Path


class PrimeAgentError(Exception):
    """Base class for all prime-agent errors."""


class NotFound(PrimeAgentError):
    """A referenced skill, section or file does not exist."""

    def __init__(self, kind: str, name: str | Path):
        self.kind = kind
        self.name = str(name)
        super().__init__(f"{kind} '{self.name}' not found")


class InvalidName(PrimeAgentError):
    """A skill name cannot be turned into a safe file path."""

    def __init__(self, name: str, reason: str):
        self.name = name
        self.reason = reason
        super().__init__(f"invalid skill name '{name}': {reason}")


class DuplicateSection(PrimeAgentError):
    """The same section name appears more than once in one aggregate file."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"duplicate section '{name}'")


class MalformedAggregate(PrimeAgentError):
    """A section marker was recognized but the section around it is broken."""

    def __init__(self, line_number: int, detail: str):
        self.line_number = line_number
        self.detail = detail
        super().__init__(f"line {line_number}: {detail}")


class UnencodableSection(PrimeAgentError):
    """A section body would end the section early if written to the aggregate."""

    def __init__(self, name: str, line_number: int):
        self.name = name
        self.line_number = line_number
        super().__init__(
            f"section '{name}' cannot be written: body line {line_number} is its own end marker"
        )


class ReconciliationConflict(PrimeAgentError):
    """Both sides changed a skill and the policy refuses to pick a winner."""

    def __init__(self, names: list[str]):
        self.names = list(names)
        joined = ", ".join(f"'{n}'" for n in self.names)
        super().__init__(f"conflicting edits in aggregate and skills directory for {joined}")


class IOFailure(PrimeAgentError):
    """An underlying read, write or delete failed."""

    def __init__(self, path: str | Path, action: str, cause: Exception | None = None):
        self.path = str(path)
        self.action = action
        self.cause = cause
        detail = f": {getattr(cause, 'strerror', None) or cause}" if cause else ""
        super().__init__(f"failed to {action} '{self.path}'{detail}")


class ConfigError(PrimeAgentError):
    """The configuration file or a --config override is invalid."""
