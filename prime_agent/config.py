"""Configuration — the prime-agent config file and skills directory lookup.

The config file is a flat YAML mapping. ``skills-dir`` and ``on-conflict``
are understood by prime-agent; any other keys are kept as free-form values.
"""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from prime_agent.errors import ConfigError
from prime_agent.utils.files import ensure_dir, read_text, write_text

APP_NAME = "prime-agent"
CONFIG_FILE = "config.yaml"
SKILLS_DIR_KEY = "skills-dir"
ON_CONFLICT_KEY = "on-conflict"
SKILLS_DIR_ENV = "PRIME_AGENT_SKILLS_DIR"
DEFAULT_SKILLS_DIR = "skills"
DEFAULT_AGENTS_PATH = "AGENTS.md"


def expand_path(value: str | Path) -> Path:
    """Expand a leading ``~`` and any ``$HOME`` in a configured path."""
    raw = str(value)
    home = os.environ.get("HOME")
    if home:
        if raw == "~" or raw.startswith("~/"):
            return Path(home) / raw[2:]
        if "$HOME" in raw:
            return Path(raw.replace("$HOME", home))
    return Path(raw)


def config_path() -> Path:
    """Location of the config file for this platform."""
    xdg = os.environ.get("XDG_CONFIG_HOME")
    if xdg:
        return Path(xdg) / APP_NAME / CONFIG_FILE
    home = os.environ.get("HOME")
    if not home:
        raise ConfigError("HOME not set and XDG_CONFIG_HOME not set")
    if sys.platform == "darwin":
        return Path(home) / "Library" / "Application Support" / APP_NAME / CONFIG_FILE
    return Path(home) / ".config" / APP_NAME / CONFIG_FILE


@dataclass
class Config:
    """prime-agent settings."""

    skills_dir: Path | None = None
    values: dict[str, str] = field(default_factory=dict)

    @classmethod
    def load(cls, path: str | Path) -> Config:
        path = Path(path)
        try:
            data = yaml.safe_load(read_text(path, kind="config file")) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"failed to parse config '{path}': {e}") from e
        if not isinstance(data, dict):
            raise ConfigError(f"failed to parse config '{path}': expected a mapping")

        config = cls()
        for key, value in data.items():
            if value is not None:
                config.set_value(str(key), str(value))
        return config

    @classmethod
    def load_or_default(cls, path: str | Path) -> Config:
        if Path(path).exists():
            return cls.load(path)
        return cls()

    def save(self, path: str | Path) -> None:
        path = Path(path)
        ensure_dir(path.parent)
        write_text(path, yaml.safe_dump(self.all_values(), sort_keys=False))

    def set_value(self, name: str, value: str) -> None:
        if name == SKILLS_DIR_KEY:
            self.skills_dir = expand_path(value)
        else:
            self.values[name] = value

    def get_value(self, name: str) -> str | None:
        if name == SKILLS_DIR_KEY:
            return str(self.skills_dir) if self.skills_dir else None
        return self.values.get(name)

    def all_values(self) -> dict[str, str]:
        """All settings, ``skills-dir`` first and the rest by name."""
        values = {}
        if self.skills_dir:
            values[SKILLS_DIR_KEY] = str(self.skills_dir)
        for key in sorted(self.values):
            values[key] = self.values[key]
        return values

    def apply_overrides(self, overrides: dict[str, str]) -> None:
        for key, value in overrides.items():
            self.set_value(key, value)


def ensure_config_file(path: str | Path) -> None:
    if not Path(path).exists():
        Config().save(path)


def parse_overrides(values: list[str] | tuple[str, ...]) -> dict[str, str]:
    """Parse ``key:value`` override strings."""
    overrides = {}
    for value in values:
        key, sep, raw = value.partition(":")
        if not sep:
            raise ConfigError(f"invalid --config value '{value}', expected key:value")
        key = key.strip()
        if not key:
            raise ConfigError(f"invalid --config value '{value}', empty key")
        overrides[key] = raw
    return overrides


def resolve_skills_dir(
    flag: str | None = None,
    overrides: dict[str, str] | None = None,
    config: Config | None = None,
) -> Path:
    """Pick the skills directory.

    Order: command-line flag, ``--config skills-dir:...`` override, the
    PRIME_AGENT_SKILLS_DIR environment variable, the config file, then
    ``./skills``.
    """
    if flag:
        return expand_path(flag)
    if overrides and overrides.get(SKILLS_DIR_KEY):
        return expand_path(overrides[SKILLS_DIR_KEY])
    env_value = os.environ.get(SKILLS_DIR_ENV)
    if env_value:
        return expand_path(env_value)
    if config and config.skills_dir:
        return config.skills_dir
    return Path(DEFAULT_SKILLS_DIR)


def resolve_conflict_policy(
    flag: str | None = None,
    overrides: dict[str, str] | None = None,
    config: Config | None = None,
) -> str:
    """Pick the conflict policy name: flag, override, config file, then ``skill``."""
    if flag:
        return flag
    if overrides and overrides.get(ON_CONFLICT_KEY):
        return overrides[ON_CONFLICT_KEY]
    if config and config.get_value(ON_CONFLICT_KEY):
        return config.get_value(ON_CONFLICT_KEY)
    return "skill"
