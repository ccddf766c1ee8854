"""Skill store — read and write skills on the local file system."""

from prime_agent.store.skill_store import SkillStore

__all__ = ["SkillStore"]
