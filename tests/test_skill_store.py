"""Tests for the file-based skill store."""

import tempfile
from pathlib import Path

import pytest

from prime_agent.errors import InvalidName, NotFound
from prime_agent.store.skill_store import SkillStore


def test_write_and_read():
    with tempfile.TemporaryDirectory() as tmpdir:
        store = SkillStore(Path(tmpdir) / "skills")
        path = store.write("foo", "Do X.\n")

        assert path == Path(tmpdir) / "skills" / "foo" / "SKILL.md"
        assert path.read_text() == "Do X.\n"
        assert store.read("foo") == "Do X.\n"
        assert store.exists("foo")


def test_write_overwrites():
    with tempfile.TemporaryDirectory() as tmpdir:
        store = SkillStore(tmpdir)
        store.write("foo", "old")
        store.write("foo", "new")
        assert store.read("foo") == "new"


def test_read_section_marks_source():
    with tempfile.TemporaryDirectory() as tmpdir:
        store = SkillStore(tmpdir)
        store.write("foo", "Do X.")
        section = store.read_section("foo")
        assert section.name == "foo"
        assert section.body == "Do X."
        assert section.source == "skill"


def test_read_missing_skill():
    with tempfile.TemporaryDirectory() as tmpdir:
        store = SkillStore(tmpdir)
        with pytest.raises(NotFound) as exc:
            store.read("nope")
        assert exc.value.kind == "skill"
        assert not store.exists("nope")


def test_list_sorted_and_filtered():
    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir)
        store = SkillStore(root)
        store.write("zeta", "z")
        store.write("alpha", "a")
        (root / "empty-dir").mkdir()
        (root / "loose.md").write_text("not a skill")
        (root / "has space").mkdir()
        (root / "has space" / "SKILL.md").write_text("skipped")

        assert store.list() == ["alpha", "zeta"]
        assert store.read_all() == {"alpha": "a", "zeta": "z"}


def test_list_missing_root():
    with tempfile.TemporaryDirectory() as tmpdir:
        store = SkillStore(Path(tmpdir) / "does-not-exist")
        assert store.list() == []
        assert store.read_all() == {}


def test_remove_skill():
    with tempfile.TemporaryDirectory() as tmpdir:
        store = SkillStore(tmpdir)
        store.write("foo", "x")

        assert store.remove("foo") is True
        assert not (Path(tmpdir) / "foo").exists()
        assert store.list() == []


def test_remove_keeps_directory_with_other_files():
    with tempfile.TemporaryDirectory() as tmpdir:
        store = SkillStore(tmpdir)
        store.write("foo", "x")
        (Path(tmpdir) / "foo" / "notes.txt").write_text("keep")

        store.remove("foo")
        assert (Path(tmpdir) / "foo" / "notes.txt").exists()
        assert not store.exists("foo")


def test_remove_missing_skill():
    with tempfile.TemporaryDirectory() as tmpdir:
        store = SkillStore(tmpdir)
        with pytest.raises(NotFound):
            store.remove("foo")
        assert store.remove("foo", missing_ok=True) is False


def test_invalid_names_rejected():
    with tempfile.TemporaryDirectory() as tmpdir:
        store = SkillStore(tmpdir)
        for name in ["", "../escape", "a/b"]:
            with pytest.raises(InvalidName):
                store.write(name, "x")
            with pytest.raises(InvalidName):
                store.read(name)
        assert list(Path(tmpdir).iterdir()) == []
