"""prime-agent CLI — assemble AGENTS.md from skills and keep both in sync."""

from __future__ import annotations

import logging
import os

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from prime_agent import __version__
from prime_agent.config import (
    DEFAULT_AGENTS_PATH,
    ON_CONFLICT_KEY,
    SKILLS_DIR_ENV,
    SKILLS_DIR_KEY,
    Config,
    config_path,
    ensure_config_file,
    parse_overrides,
    resolve_conflict_policy,
    resolve_skills_dir,
)
from prime_agent.errors import ConfigError, NotFound, PrimeAgentError

console = Console(soft_wrap=True)


class Context:
    """Options shared by every command."""

    def __init__(self, skills_dir: str | None, agents_path: str, overrides: dict[str, str]):
        self.skills_dir_flag = skills_dir
        self.agents_path = agents_path
        self.overrides = overrides
        self._config: Config | None = None

    @property
    def config(self) -> Config:
        if self._config is None:
            config = Config.load_or_default(config_path())
            config.apply_overrides(self.overrides)
            self._config = config
        return self._config

    def orchestrator(self):
        from prime_agent.orchestrator import Orchestrator
        from prime_agent.store.skill_store import SkillStore

        skills_dir = resolve_skills_dir(
            self.skills_dir_flag,
            self.overrides,
            None if self._skips_config_file() else self.config,
        )
        return Orchestrator(SkillStore(skills_dir), self.agents_path)

    def _skips_config_file(self) -> bool:
        # The config file is only read when nothing closer names the directory
        return bool(
            self.skills_dir_flag
            or self.overrides.get(SKILLS_DIR_KEY)
            or os.environ.get(SKILLS_DIR_ENV)
        )


def _fail(operation: str, error: Exception) -> None:
    console.print(f"[red]{escape(operation)} failed:[/] {escape(str(error))}")
    raise SystemExit(1)


def _split_names(values: tuple[str, ...]) -> list[str]:
    names = []
    for value in values:
        names.extend(part.strip() for part in value.split(",") if part.strip())
    return names


@click.group()
@click.version_option(version=__version__)
@click.option("--skills-dir", default=None, help="Skills directory (overrides env and config)")
@click.option(
    "--agents-path",
    default=DEFAULT_AGENTS_PATH,
    show_default=True,
    help="Aggregate file to build and sync",
)
@click.option(
    "--config",
    "-c",
    "config_values",
    multiple=True,
    metavar="KEY:VALUE",
    help="Override a config value for this run",
)
@click.option("--verbose", "-v", is_flag=True, help="Show debug logging")
@click.pass_context
def main(ctx, skills_dir: str | None, agents_path: str, config_values: tuple, verbose: bool):
    """prime-agent — build AGENTS.md from reusable skills.

    Each skill is a Markdown file at <skills-dir>/<name>/SKILL.md. The
    aggregate file holds one marked section per skill, and `sync` keeps
    edits on either side flowing to the other.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )
    console.print(f"[green]prime-agent({__version__})[/]")

    try:
        overrides = parse_overrides(config_values)
    except ConfigError as e:
        raise click.UsageError(str(e)) from e
    ctx.obj = Context(skills_dir, agents_path, overrides)


# ── Get ──────────────────────────────────────────────────────────────


@main.command()
@click.argument("names", nargs=-1, required=True)
@click.pass_obj
def get(obj: Context, names: tuple):
    """Build the aggregate file from the given skills, in order.

    NAMES may be comma-separated, e.g. `prime-agent get foo,bar`.
    """
    skill_names = _split_names(names)
    if not skill_names:
        raise click.UsageError("no skill names given")
    try:
        doc = obj.orchestrator().get(skill_names)
    except PrimeAgentError as e:
        _fail("get", e)

    console.print(f"  [green]v[/] Wrote {len(doc.sections)} section(s) to {escape(obj.agents_path)}")


# ── Set ──────────────────────────────────────────────────────────────


@main.command(name="set")
@click.argument("name")
@click.argument("path", type=click.Path(dir_okay=False))
@click.pass_obj
def set_skill(obj: Context, name: str, path: str):
    """Store the file at PATH as skill NAME (replacing any existing one)."""
    try:
        written = obj.orchestrator().set(name, path)
    except PrimeAgentError as e:
        _fail(f"set '{name}'", e)

    console.print(f"  [green]v[/] Skill '{name}' saved to {escape(str(written))}")


# ── Sync ─────────────────────────────────────────────────────────────


@main.command()
@click.option(
    "--on-conflict",
    type=click.Choice(["skill", "aggregate", "fail"], case_sensitive=False),
    default=None,
    help="Who wins when both sides edited a skill (default: skill)",
)
@click.pass_obj
def sync(obj: Context, on_conflict: str | None):
    """Two-way sync between the aggregate file and the skills directory."""
    from prime_agent.sync.reconciler import ConflictPolicy

    try:
        orchestrator = obj.orchestrator()
        config = None if on_conflict or obj.overrides.get(ON_CONFLICT_KEY) else obj.config
        policy_name = resolve_conflict_policy(on_conflict, obj.overrides, config)
    except PrimeAgentError as e:
        _fail("sync", e)

    try:
        policy = ConflictPolicy.parse(policy_name)
    except ValueError as e:
        _fail("sync", ConfigError(str(e)))

    try:
        report = orchestrator.sync(policy)
    except PrimeAgentError as e:
        _fail("sync", e)

    for name in report.sections_added:
        console.print(f"  [green]+[/] section {name} (new skill)")
    for name in report.sections_updated:
        console.print(f"  [cyan]~[/] section {name} (from skill file)")
    for name in report.skills_added:
        console.print(f"  [green]+[/] skill {name} (restored from aggregate)")
    for name in report.skills_updated:
        console.print(f"  [cyan]~[/] skill {name} (from aggregate)")
    for decision in report.conflicts:
        console.print(f"  [yellow]![/] conflict in {decision.name}: {escape(decision.reason)}")
    for failure in report.failed:
        console.print(f"  [red]x[/] {escape(failure.target)}: {escape(failure.error)}")

    if not report.succeeded:
        console.print(f"\n[red]Sync incomplete:[/] {report.summary()}")
        raise SystemExit(1)
    console.print(f"\n[green]{report.summary()}[/] (generation {report.generation})")


# ── Delete ───────────────────────────────────────────────────────────


@main.command()
@click.argument("name")
@click.pass_obj
def delete(obj: Context, name: str):
    """Remove a section from the aggregate file (the skill file is kept)."""
    try:
        obj.orchestrator().delete(name)
    except PrimeAgentError as e:
        _fail(f"delete '{name}'", e)

    console.print(f"  [green]v[/] Removed section '{name}' from {escape(obj.agents_path)}")


@main.command(name="delete-globally")
@click.argument("name")
@click.pass_obj
def delete_globally(obj: Context, name: str):
    """Remove a skill from the aggregate file and the skills directory."""
    try:
        outcome = obj.orchestrator().delete_globally(name)
    except PrimeAgentError as e:
        _fail(f"delete-globally '{name}'", e)

    if outcome.section_removed:
        console.print(f"  [green]v[/] Removed section '{name}' from {escape(obj.agents_path)}")
    if outcome.skill_removed:
        console.print(f"  [green]v[/] Removed skill '{name}'")


# ── List ─────────────────────────────────────────────────────────────


@main.command(name="list")
@click.pass_obj
def list_skills(obj: Context):
    """List skills in the skills directory."""
    try:
        names = obj.orchestrator().list()
    except PrimeAgentError as e:
        _fail("list", e)

    if not names:
        console.print("[yellow]No skills found.[/]")
        return
    for name in names:
        console.print(name)


# ── Config ───────────────────────────────────────────────────────────


@main.group(invoke_without_command=True)
@click.pass_context
def config(ctx):
    """Show or change values in the config file."""
    if ctx.invoked_subcommand is not None:
        return
    try:
        path = config_path()
        ensure_config_file(path)
        _print_config(Config.load(path))
    except PrimeAgentError as e:
        _fail("config", e)


@config.command(name="get")
@click.argument("name")
def config_get(name: str):
    """Print one config value."""
    try:
        path = config_path()
        ensure_config_file(path)
        value = Config.load(path).get_value(name)
        if value is None:
            raise NotFound("config value", name)
    except PrimeAgentError as e:
        _fail("config get", e)

    console.print(escape(value))


@config.command(name="set")
@click.argument("name")
@click.argument("value")
def config_set(name: str, value: str):
    """Set a config value and save the config file."""
    try:
        path = config_path()
        cfg = Config.load_or_default(path)
        cfg.set_value(name, value)
        cfg.save(path)
    except PrimeAgentError as e:
        _fail("config set", e)

    _print_config(cfg, updated=name)


def _print_config(cfg: Config, updated: str | None = None):
    values = cfg.all_values()

    table = Table(title="Config")
    table.add_column("Key", style="cyan")
    table.add_column("Value")
    table.add_column("", style="green")

    skills_dir = values.pop(SKILLS_DIR_KEY, "<missing>")
    table.add_row(SKILLS_DIR_KEY, escape(skills_dir), "updated" if updated == SKILLS_DIR_KEY else "")
    for key, value in values.items():
        table.add_row(escape(key), escape(value), "updated" if updated == key else "")

    console.print(table)


if __name__ == "__main__":
    main()
