"""Reconciler — decide how to bring the aggregate file and the skills together.

This module is pure: it works on snapshots (name → body maps) and returns a
plan. Reading and writing files is the orchestrator's job.

Decision table for one name:

==================  ===================================  ==========
aggregate           skills directory                     action
==================  ===================================  ==========
body == skill body  present                              UNCHANGED
edited              unchanged since baseline             PULL
unchanged           edited since baseline                PUSH
edited              edited (or no baseline)              policy
present             missing (orphaned section)           RESTORE
missing             present                              ADD
==================  ===================================  ==========

PULL copies the aggregate body into the skill file, PUSH copies the skill
body into the aggregate. RESTORE writes an orphaned section back out as a
skill file so nothing is lost. ADD appends a section for a new skill; several
new skills are appended in name order.
"""

from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass, field
from enum import Enum

from prime_agent.errors import ReconciliationConflict

logger = logging.getLogger(__name__)


class ConflictPolicy(Enum):
    """Who wins when both sides edited the same skill."""

    SKILL = "skill"  # The skill file wins
    AGGREGATE = "aggregate"  # The aggregate section wins
    FAIL = "fail"  # Refuse to sync

    @classmethod
    def parse(cls, value: str | ConflictPolicy) -> ConflictPolicy:
        if isinstance(value, cls):
            return value
        try:
            return cls(value.strip().lower())
        except ValueError:
            choices = ", ".join(p.value for p in cls)
            raise ValueError(f"unknown conflict policy '{value}' (expected one of: {choices})") from None


class Action(Enum):
    """What the plan does for one name."""

    UNCHANGED = "unchanged"
    PULL = "pull"  # aggregate → skill
    PUSH = "push"  # skill → aggregate
    RESTORE = "restore"  # orphaned section → new skill file
    ADD = "add"  # new skill → appended section


@dataclass
class Decision:
    """The reconciliation outcome for a single name."""

    name: str
    action: Action
    body: str
    conflict: bool = False
    reason: str = ""

    @property
    def writes_skill(self) -> bool:
        return self.action in (Action.PULL, Action.RESTORE)

    @property
    def writes_section(self) -> bool:
        return self.action in (Action.PUSH, Action.ADD)


@dataclass
class SyncPlan:
    """Writes needed on each side to make them agree."""

    decisions: list[Decision] = field(default_factory=list)
    section_writes: dict[str, str] = field(default_factory=dict)
    skill_writes: dict[str, str] = field(default_factory=dict)
    merged: dict[str, str] = field(default_factory=dict)

    @property
    def conflicts(self) -> list[Decision]:
        return [d for d in self.decisions if d.conflict]

    @property
    def has_changes(self) -> bool:
        return bool(self.section_writes or self.skill_writes)

    def by_action(self, action: Action) -> list[str]:
        return [d.name for d in self.decisions if d.action == action]

    def baseline(self) -> dict[str, str]:
        """Digests of the merged bodies, for the next reconciliation."""
        return {name: digest(body) for name, body in self.merged.items()}


def digest(body: str) -> str:
    """Stable fingerprint of a body, used for baselines."""
    return hashlib.sha256(body.encode("utf-8")).hexdigest()


def reconcile(
    sections: dict[str, str],
    skills: dict[str, str],
    baseline: dict[str, str] | None = None,
    policy: ConflictPolicy = ConflictPolicy.SKILL,
) -> SyncPlan:
    """Compute the plan that brings both sides into agreement.

    Args:
        sections: Aggregate section bodies by name, in document order.
        skills: Skill bodies by name.
        baseline: Body digests both sides agreed on at the last successful
            sync. Used to tell a one-sided edit from a conflict.
        policy: How to settle edits made on both sides.

    Raises:
        ReconciliationConflict: policy is FAIL and at least one name has
            diverging edits on both sides. No partial plan is returned.
    """
    baseline = baseline or {}
    plan = SyncPlan()
    unresolved: list[str] = []

    # Existing sections first, in document order, then new skills by name
    for name, section_body in sections.items():
        if name not in skills:
            decision = Decision(
                name, Action.RESTORE, section_body, reason="skill file missing; restored from aggregate"
            )
        elif section_body == skills[name]:
            decision = Decision(name, Action.UNCHANGED, section_body)
        else:
            decision = _resolve_divergence(name, section_body, skills[name], baseline.get(name), policy)
            if decision is None:
                unresolved.append(name)
                continue
        plan.decisions.append(decision)

    if unresolved:
        raise ReconciliationConflict(unresolved)

    for name in sorted(set(skills) - set(sections)):
        plan.decisions.append(
            Decision(name, Action.ADD, skills[name], reason="new skill appended to aggregate")
        )

    for decision in plan.decisions:
        plan.merged[decision.name] = decision.body
        if decision.writes_skill:
            plan.skill_writes[decision.name] = decision.body
        elif decision.writes_section:
            plan.section_writes[decision.name] = decision.body
        logger.debug("%s: %s %s", decision.name, decision.action.value, decision.reason)

    return plan


def _resolve_divergence(
    name: str,
    section_body: str,
    skill_body: str,
    base: str | None,
    policy: ConflictPolicy,
) -> Decision | None:
    """Decide a name whose bodies differ. None means an unresolved conflict."""
    if base is not None:
        if digest(skill_body) == base:
            return Decision(name, Action.PULL, section_body, reason="edited in aggregate")
        if digest(section_body) == base:
            return Decision(name, Action.PUSH, skill_body, reason="edited in skills directory")

    why = "edited on both sides" if base is not None else "differs with no sync history"
    if policy == ConflictPolicy.SKILL:
        return Decision(name, Action.PUSH, skill_body, conflict=True, reason=f"{why}; skill file kept")
    if policy == ConflictPolicy.AGGREGATE:
        return Decision(name, Action.PULL, section_body, conflict=True, reason=f"{why}; aggregate kept")
    return None
