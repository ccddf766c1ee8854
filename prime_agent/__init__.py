"""prime-agent — keep AGENTS.md and a directory of skills in sync."""

__version__ = "0.3.0"
