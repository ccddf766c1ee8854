"""Sync state — what both sides agreed on after the last successful sync.

The state lives next to the aggregate file in ``.prime-agent/state.yaml``
and holds a generation counter plus one body digest per skill. The
reconciler uses the digests to tell which side edited a skill.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path

import yaml

from prime_agent.errors import ConfigError
from prime_agent.utils.files import ensure_dir, read_text_if_exists, write_text

logger = logging.getLogger(__name__)


@dataclass
class SyncState:
    """Persisted outcome of the last reconciliation."""

    generation: int = 0
    synced_at: str = ""
    baseline: dict[str, str] = field(default_factory=dict)

    def advance(self, baseline: dict[str, str]) -> SyncState:
        """The state after one more successful sync."""
        return SyncState(
            generation=self.generation + 1,
            synced_at=datetime.now(timezone.utc).isoformat(),
            baseline=dict(baseline),
        )

    def with_baseline(self, baseline: dict[str, str]) -> SyncState:
        return SyncState(generation=self.generation, synced_at=self.synced_at, baseline=dict(baseline))

    def without(self, name: str) -> SyncState:
        baseline = {k: v for k, v in self.baseline.items() if k != name}
        return self.with_baseline(baseline)


class SyncStateStore:
    """Reads and writes the sync state for one aggregate file."""

    STATE_DIR = ".prime-agent"
    STATE_FILE = "state.yaml"

    def __init__(self, agents_path: str | Path):
        self.agents_path = Path(agents_path)
        self.state_dir = self.agents_path.parent / self.STATE_DIR
        self.state_file = self.state_dir / self.STATE_FILE

    def load(self) -> SyncState:
        """Load the state; a missing file means no sync has happened yet."""
        text = read_text_if_exists(self.state_file)
        if text is None:
            return SyncState()

        try:
            data = yaml.safe_load(text) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"invalid sync state '{self.state_file}': {e}") from e
        if not isinstance(data, dict):
            raise ConfigError(f"invalid sync state '{self.state_file}': expected a mapping")

        return SyncState(
            generation=int(data.get("generation", 0)),
            synced_at=str(data.get("synced_at", "")),
            baseline={str(k): str(v) for k, v in (data.get("baseline") or {}).items()},
        )

    def save(self, state: SyncState) -> None:
        ensure_dir(self.state_dir)
        data = {
            "generation": state.generation,
            "synced_at": state.synced_at,
            "baseline": dict(sorted(state.baseline.items())),
        }
        write_text(self.state_file, yaml.safe_dump(data, sort_keys=False))
        logger.debug("Saved sync state generation %d to %s", state.generation, self.state_file)
