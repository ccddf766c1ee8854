"""Skill store — one Markdown file per skill under a skills directory.

Layout::

    <root>/<name>/SKILL.md

The store never creates anything outside its root.
"""

from __future__ import annotations

import logging
from pathlib import Path

from prime_agent.errors import IOFailure, NotFound
from prime_agent.models.section import NAME_PATTERN, Section, validate_name
from prime_agent.utils.files import ensure_dir, read_text, remove_file, write_text

logger = logging.getLogger(__name__)


class SkillStore:
    """File-based store for skills."""

    SKILL_FILE = "SKILL.md"

    def __init__(self, root: str | Path):
        self.root = Path(root)

    def path_for(self, name: str) -> Path:
        validate_name(name)
        return self.root / name / self.SKILL_FILE

    def list(self) -> list[str]:
        """Names of all skills present, sorted.

        Directories without a SKILL.md, or whose names are not valid skill
        names, are skipped.
        """
        if not self.root.is_dir():
            return []

        names = []
        try:
            entries = list(self.root.iterdir())
        except OSError as e:
            raise IOFailure(self.root, "list skills directory", e) from e

        for entry in entries:
            if not entry.is_dir() or not (entry / self.SKILL_FILE).is_file():
                continue
            if not NAME_PATTERN.fullmatch(entry.name):
                logger.warning("Skipping skill directory with invalid name: %s", entry)
                continue
            names.append(entry.name)
        return sorted(names)

    def exists(self, name: str) -> bool:
        return self.path_for(name).is_file()

    def read(self, name: str) -> str:
        return read_text(self.path_for(name), kind="skill")

    def read_section(self, name: str) -> Section:
        return Section(name=name, body=self.read(name), source="skill")

    def read_all(self) -> dict[str, str]:
        """Bodies of every skill, keyed by name."""
        return {name: self.read(name) for name in self.list()}

    def write(self, name: str, body: str) -> Path:
        """Create or replace a skill file."""
        path = self.path_for(name)
        ensure_dir(path.parent)
        write_text(path, body)
        logger.info("Wrote skill '%s' to %s", name, path)
        return path

    def remove(self, name: str, missing_ok: bool = False) -> bool:
        """Delete a skill file and its directory if that leaves it empty.

        Returns whether a file was removed. A missing skill raises NotFound
        unless ``missing_ok`` is set.
        """
        path = self.path_for(name)
        try:
            remove_file(path, kind="skill")
        except NotFound:
            if missing_ok:
                return False
            raise NotFound("skill", name) from None

        try:
            path.parent.rmdir()
        except OSError:
            # Directory still holds other files; leave it alone
            pass
        logger.info("Removed skill '%s'", name)
        return True
