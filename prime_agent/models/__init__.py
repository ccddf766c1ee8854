"""Data models shared by the parser, the skill store and the reconciler."""

from prime_agent.models.section import Section, validate_name

__all__ = ["Section", "validate_name"]
