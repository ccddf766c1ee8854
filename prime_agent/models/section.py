"""Section — a named block of Markdown text belonging to one skill."""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from prime_agent.errors import InvalidName

# Skill names become directory names
NAME_PATTERN = re.compile(r"[A-Za-z0-9_-]+")


def validate_name(name: str) -> str:
    """Check that a skill name is usable as a directory name.

    Returns the name unchanged so callers can validate inline.
    """
    if not name:
        raise InvalidName(name, "name cannot be empty")
    if "/" in name or "\\" in name:
        raise InvalidName(name, "name cannot contain path separators")
    if not NAME_PATTERN.fullmatch(name):
        raise InvalidName(name, "name must contain only letters, digits, '-' or '_'")
    return name


@dataclass
class Section:
    """A named section of the aggregate file.

    ``body`` is the raw Markdown between the section header and its end
    marker. Provenance is bookkeeping only and does not take part in equality.
    """

    name: str
    body: str = ""
    source: str = field(default="aggregate", compare=False)  # "aggregate" or "skill"

    def validate(self) -> Section:
        validate_name(self.name)
        return self

    def lines(self) -> list[str]:
        """Split the body into the lines written between header and end marker."""
        if not self.body:
            return []
        return self.body.split("\n")

    @classmethod
    def from_lines(cls, name: str, lines: list[str], source: str = "aggregate") -> Section:
        return cls(name=name, body="\n".join(lines), source=source)
