"""Orchestrator — the get, set, sync, delete and delete-globally operations.

All file I/O happens here. The reconciler only ever sees snapshots, and the
sync state is loaded, passed along and saved explicitly.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from prime_agent.aggregate.document import AggregateDocument, parse_aggregate, render_sections
from prime_agent.errors import DuplicateSection, NotFound, PrimeAgentError, UnencodableSection
from prime_agent.models.section import Section, validate_name
from prime_agent.store.skill_store import SkillStore
from prime_agent.sync.reconciler import Action, ConflictPolicy, Decision, digest, reconcile
from prime_agent.sync.state import SyncStateStore
from prime_agent.utils.files import read_text, read_text_if_exists, write_text

logger = logging.getLogger(__name__)


@dataclass
class WriteFailure:
    """A write that was attempted during sync and did not complete."""

    target: str
    error: str


@dataclass
class SyncReport:
    """What a sync changed on each side."""

    sections_added: list[str] = field(default_factory=list)
    sections_updated: list[str] = field(default_factory=list)
    skills_added: list[str] = field(default_factory=list)
    skills_updated: list[str] = field(default_factory=list)
    conflicts: list[Decision] = field(default_factory=list)
    applied: list[str] = field(default_factory=list)
    failed: list[WriteFailure] = field(default_factory=list)
    aggregate_written: bool = False
    generation: int = 0

    @property
    def succeeded(self) -> bool:
        return not self.failed

    @property
    def has_changes(self) -> bool:
        return bool(
            self.sections_added or self.sections_updated or self.skills_added or self.skills_updated
        )

    def summary(self) -> str:
        if not self.has_changes and not self.failed:
            return "Already in sync"
        parts = []
        if self.sections_added:
            parts.append(f"{len(self.sections_added)} section(s) added")
        if self.sections_updated:
            parts.append(f"{len(self.sections_updated)} section(s) updated")
        if self.skills_added:
            parts.append(f"{len(self.skills_added)} skill(s) restored")
        if self.skills_updated:
            parts.append(f"{len(self.skills_updated)} skill(s) updated")
        if self.failed:
            parts.append(f"{len(self.failed)} write(s) FAILED")
        return ", ".join(parts)


@dataclass
class DeleteOutcome:
    """Which sides a delete-globally actually removed."""

    name: str
    section_removed: bool = False
    skill_removed: bool = False


class Orchestrator:
    """Runs prime-agent operations against one aggregate file and skill store."""

    def __init__(
        self,
        skill_store: SkillStore,
        agents_path: str | Path = "AGENTS.md",
        state_store: SyncStateStore | None = None,
    ):
        self.skills = skill_store
        self.agents_path = Path(agents_path)
        self.state_store = state_store or SyncStateStore(self.agents_path)

    # ── get ──────────────────────────────────────────────────────────

    def get(self, names: list[str]) -> AggregateDocument:
        """Build a fresh aggregate file from the named skills, in that order.

        The current aggregate file is overwritten, not merged.
        """
        seen: set[str] = set()
        sections = []
        for name in names:
            validate_name(name)
            if name in seen:
                raise DuplicateSection(name)
            seen.add(name)
            sections.append(self.skills.read_section(name))

        rendered = render_sections(sections)
        write_text(self.agents_path, rendered)
        logger.info("Wrote %d section(s) to %s", len(sections), self.agents_path)

        state = self.state_store.load()
        self.state_store.save(state.with_baseline({s.name: digest(s.body) for s in sections}))
        return parse_aggregate(rendered)

    # ── set ──────────────────────────────────────────────────────────

    def set(self, name: str, path: str | Path) -> Path:
        """Store the contents of ``path`` as skill ``name``, replacing it if present."""
        validate_name(name)
        body = read_text(path, kind="file")
        return self.skills.write(name, body)

    # ── sync ─────────────────────────────────────────────────────────

    def sync(self, policy: ConflictPolicy = ConflictPolicy.SKILL) -> SyncReport:
        """Reconcile the aggregate file and the skills directory.

        Skill files are written first, then the aggregate file. Every write
        is attempted; failures are collected in the report rather than
        aborting the run. The sync state only advances when nothing failed.
        """
        original = read_text_if_exists(self.agents_path)
        doc = parse_aggregate(original or "")
        skills = self.skills.read_all()
        state = self.state_store.load()

        plan = reconcile(doc.bodies(), skills, baseline=state.baseline, policy=policy)
        report = SyncReport(
            sections_added=plan.by_action(Action.ADD),
            sections_updated=plan.by_action(Action.PUSH),
            skills_added=plan.by_action(Action.RESTORE),
            skills_updated=plan.by_action(Action.PULL),
            conflicts=plan.conflicts,
            generation=state.generation,
        )
        for decision in report.conflicts:
            logger.warning("Conflict in '%s': %s", decision.name, decision.reason)

        for name, body in plan.skill_writes.items():
            target = f"skill '{name}'"
            try:
                self.skills.write(name, body)
            except PrimeAgentError as e:
                logger.warning("Failed to write %s: %s", target, e)
                report.failed.append(WriteFailure(target, str(e)))
            else:
                report.applied.append(target)

        for decision in plan.decisions:
            if not decision.writes_section:
                continue
            try:
                doc.upsert_section(Section(decision.name, decision.body, source="skill"))
            except UnencodableSection as e:
                # The old section, if any, stays; the skill file is untouched
                target = f"section '{decision.name}'"
                logger.warning("Failed to write %s: %s", target, e)
                report.failed.append(WriteFailure(target, str(e)))
                for names in (report.sections_added, report.sections_updated):
                    if decision.name in names:
                        names.remove(decision.name)
        rendered = doc.render()
        if rendered != (original or ""):
            target = f"aggregate '{self.agents_path}'"
            try:
                write_text(self.agents_path, rendered)
            except PrimeAgentError as e:
                logger.warning("Failed to write %s: %s", target, e)
                report.failed.append(WriteFailure(target, str(e)))
            else:
                report.applied.append(target)
                report.aggregate_written = True

        if report.failed:
            return report

        baseline = plan.baseline()
        if plan.has_changes or baseline != state.baseline:
            new_state = state.advance(baseline)
            try:
                self.state_store.save(new_state)
            except PrimeAgentError as e:
                report.failed.append(WriteFailure(f"sync state '{self.state_store.state_file}'", str(e)))
                return report
            report.generation = new_state.generation
        return report

    # ── delete ───────────────────────────────────────────────────────

    def delete(self, name: str) -> None:
        """Remove one section from the aggregate file; the skill file stays."""
        validate_name(name)
        doc = parse_aggregate(read_text(self.agents_path, kind="aggregate file"))
        if not doc.remove_section(name):
            raise NotFound("section", name)
        write_text(self.agents_path, doc.render())
        logger.info("Removed section '%s' from %s", name, self.agents_path)
        self._forget(name)

    def delete_globally(self, name: str) -> DeleteOutcome:
        """Remove a skill from both the aggregate file and the skills directory.

        Either side may already be gone; it is an error only if both are.
        """
        validate_name(name)
        outcome = DeleteOutcome(name)

        text = read_text_if_exists(self.agents_path)
        if text is not None:
            doc = parse_aggregate(text)
            if doc.remove_section(name):
                write_text(self.agents_path, doc.render())
                outcome.section_removed = True

        outcome.skill_removed = self.skills.remove(name, missing_ok=True)

        if not (outcome.section_removed or outcome.skill_removed):
            raise NotFound("skill", name)
        self._forget(name)
        return outcome

    # ── list ─────────────────────────────────────────────────────────

    def list(self) -> list[str]:
        return self.skills.list()

    def _forget(self, name: str) -> None:
        state = self.state_store.load()
        if name in state.baseline:
            self.state_store.save(state.without(name))
