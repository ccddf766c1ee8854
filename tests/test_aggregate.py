"""Tests for parsing and rendering the aggregate file."""

import pytest

from prime_agent.aggregate.document import (
    AggregateDocument,
    parse,
    parse_aggregate,
    render_sections,
    serialize,
)
from prime_agent.errors import DuplicateSection, InvalidName, MalformedAggregate, UnencodableSection
from prime_agent.models.section import Section


def _section_text(name: str, body_lines: list[str]) -> str:
    lines = [f"<!-- prime-agent(Start {name}) -->", f"## {name}", *body_lines, f"<!-- prime-agent(End {name}) -->"]
    return "\n".join(lines)


SAMPLE = (
    "# Project rules\n"
    "\n"
    "Intro text.\n"
    "\n"
    + _section_text("foo", ["Do X."])
    + "\n\nBetween.\n\n"
    + _section_text("bar", ["Do Y.", ""])
    + "\nTrailer\n"
)


# --- Parse Tests ---


def test_parse_sections_in_order():
    doc = parse_aggregate(SAMPLE)
    assert doc.section_names() == ["foo", "bar"]
    assert doc.get_section("foo").body == "Do X."
    assert doc.get_section("bar").body == "Do Y.\n"
    assert doc.get_section("missing") is None


def test_round_trip_is_lossless():
    assert parse_aggregate(SAMPLE).render() == SAMPLE


def test_round_trip_keeps_carriage_returns():
    text = "Title\r\n" + _section_text("foo", ["line one\r", "line two\r", ""]) + "\n"
    doc = parse_aggregate(text)
    assert doc.get_section("foo").body == "line one\r\nline two\r\n"
    assert doc.render() == text


def test_round_trip_normalizes_marker_whitespace():
    text = (
        "<!-- prime-agent(Start  foo ) -->   \n"
        "## foo  \n"
        "body  \n"
        "<!-- prime-agent(End foo) -->\t\n"
    )
    expected = "<!-- prime-agent(Start foo) -->\n## foo\nbody  \n<!-- prime-agent(End foo) -->\n"
    assert parse_aggregate(text).render() == expected


def test_parse_two_value_form():
    preamble, sections = parse(SAMPLE)
    assert preamble == "# Project rules\n\nIntro text.\n\n"
    assert sections == [Section("foo", "Do X."), Section("bar", "Do Y.\n")]


def test_parse_empty_text():
    doc = parse_aggregate("")
    assert doc.sections == []
    assert doc.render() == ""
    assert parse("") == ("", [])


def test_parse_text_without_sections():
    text = "# Just a title\n\nSome notes.\n"
    doc = parse_aggregate(text)
    assert doc.sections == []
    assert doc.preamble == text
    assert doc.render() == text


def test_marker_with_empty_name_is_plain_text():
    text = "<!-- prime-agent(Start ) -->\nnot a section\n"
    doc = parse_aggregate(text)
    assert doc.sections == []
    assert doc.render() == text


def test_parse_duplicate_section():
    text = _section_text("foo", ["a"]) + "\n" + _section_text("foo", ["b"]) + "\n"
    with pytest.raises(DuplicateSection) as exc:
        parse_aggregate(text)
    assert exc.value.name == "foo"


def test_parse_missing_end_marker():
    text = "<!-- prime-agent(Start foo) -->\n## foo\nbody\n"
    with pytest.raises(MalformedAggregate) as exc:
        parse_aggregate(text)
    assert "missing end marker for 'foo'" in str(exc.value)
    assert exc.value.line_number == 1


def test_parse_header_mismatch():
    text = "intro\n<!-- prime-agent(Start foo) -->\n## bar\nbody\n<!-- prime-agent(End foo) -->\n"
    with pytest.raises(MalformedAggregate) as exc:
        parse_aggregate(text)
    assert exc.value.line_number == 3
    assert "expected header '## foo'" in str(exc.value)


def test_parse_missing_header_at_end_of_file():
    with pytest.raises(MalformedAggregate):
        parse_aggregate("<!-- prime-agent(Start foo) -->")


def test_parse_rejects_unsafe_section_name():
    text = "<!-- prime-agent(Start ../etc) -->\n## ../etc\nx\n<!-- prime-agent(End ../etc) -->\n"
    with pytest.raises(InvalidName):
        parse_aggregate(text)


def test_end_marker_for_other_section_is_body():
    text = _section_text("foo", ["<!-- prime-agent(End bar) -->", "more"]) + "\n"
    doc = parse_aggregate(text)
    assert doc.get_section("foo").body == "<!-- prime-agent(End bar) -->\nmore"


# --- Serialize Tests ---


def test_serialize_then_parse():
    preamble = "# Title\n\n"
    sections = [Section("b", "one\ntwo\n"), Section("a", "")]
    assert parse(serialize(preamble, sections)) == (preamble, sections)


def test_serialize_is_deterministic():
    sections = [Section("foo", "Do X.\n"), Section("bar", "Do Y.\n")]
    assert serialize("", sections) == serialize("", sections)


def test_serialize_layout():
    text = serialize("", [Section("foo", "Do X.\n"), Section("bar", "Do Y.\n")])
    assert text == (
        "<!-- prime-agent(Start foo) -->\n"
        "## foo\n"
        "Do X.\n"
        "\n"
        "<!-- prime-agent(End foo) -->\n"
        "\n"
        "<!-- prime-agent(Start bar) -->\n"
        "## bar\n"
        "Do Y.\n"
        "\n"
        "<!-- prime-agent(End bar) -->\n"
    )


def test_serialize_rejects_duplicates():
    with pytest.raises(DuplicateSection):
        serialize("", [Section("foo", "a"), Section("foo", "b")])


def test_serialize_rejects_invalid_names():
    with pytest.raises(InvalidName):
        serialize("", [Section("bad name", "a")])


def test_serialize_adds_newline_to_preamble():
    sections = [Section("foo", "Do X.\n")]
    assert serialize("Title", sections) == serialize("Title\n", sections)
    assert parse(serialize("Title", sections)) == ("Title\n", sections)


def test_serialize_rejects_body_with_own_end_marker():
    body = "Intro\n<!-- prime-agent(End foo) -->\nImportant tail\n"
    with pytest.raises(UnencodableSection) as exc:
        serialize("", [Section("foo", body)])
    assert exc.value.name == "foo"
    assert exc.value.line_number == 2

    with pytest.raises(UnencodableSection):
        render_sections([Section("foo", "<!-- prime-agent(End foo) -->   ")])


def test_serialize_keeps_other_sections_end_marker_in_body():
    sections = [Section("foo", "<!-- prime-agent(End bar) -->\n"), Section("bar", "B\n")]
    assert parse(serialize("", sections)) == ("", sections)


def test_render_sections_keeps_given_order():
    text = render_sections([Section("b", "B"), Section("a", "A")])
    assert parse_aggregate(text).section_names() == ["b", "a"]


# --- Edit Tests ---


def test_upsert_replaces_in_place():
    doc = parse_aggregate(SAMPLE)
    doc.upsert_section(Section("foo", "Do Z."))
    assert doc.section_names() == ["foo", "bar"]
    assert doc.render() == SAMPLE.replace("Do X.", "Do Z.")


def test_upsert_appends_after_last_section():
    doc = parse_aggregate(SAMPLE)
    doc.upsert_section(Section("baz", "New."))
    assert doc.section_names() == ["foo", "bar", "baz"]
    rendered = doc.render()
    assert "<!-- prime-agent(End bar) -->\n\n<!-- prime-agent(Start baz) -->" in rendered
    assert rendered.endswith("<!-- prime-agent(End baz) -->\nTrailer\n")


def test_upsert_into_text_only_document():
    doc = parse_aggregate("# Title\n")
    doc.upsert_section(Section("foo", "Do X."))
    assert doc.render() == "# Title\n\n" + _section_text("foo", ["Do X."]) + "\n"


def test_upsert_into_text_without_trailing_newline():
    doc = parse_aggregate("# Title")
    doc.upsert_section(Section("foo", "Do X."))
    assert doc.render() == "# Title\n\n" + _section_text("foo", ["Do X."]) + "\n"


def test_upsert_rejects_body_with_own_end_marker():
    doc = parse_aggregate(SAMPLE)
    with pytest.raises(UnencodableSection):
        doc.upsert_section(Section("foo", "Do Z.\n<!-- prime-agent(End foo) -->\nTail"))
    with pytest.raises(UnencodableSection):
        doc.upsert_section(Section("baz", "<!-- prime-agent(End baz) -->"))
    assert doc.render() == SAMPLE


def test_upsert_into_empty_document():
    doc = AggregateDocument()
    doc.upsert_section(Section("foo", "Do X."))
    assert doc.render() == _section_text("foo", ["Do X."]) + "\n"


def test_remove_section_leaves_others_untouched():
    a, b, c = Section("a", "A\n"), Section("b", "B\n"), Section("c", "C\n")
    doc = parse_aggregate(render_sections([a, b, c]))
    assert doc.remove_section("b")
    assert doc.render() == render_sections([a, c])


def test_remove_first_and_last_sections():
    a, b, c = Section("a", "A"), Section("b", "B"), Section("c", "C")
    doc = parse_aggregate(render_sections([a, b, c]))
    assert doc.remove_section("a")
    assert doc.remove_section("c")
    assert doc.render() == render_sections([b])


def test_remove_missing_section():
    doc = parse_aggregate(SAMPLE)
    assert not doc.remove_section("nope")
    assert doc.render() == SAMPLE


def test_bodies_in_document_order():
    assert list(parse_aggregate(SAMPLE).bodies().items()) == [("foo", "Do X."), ("bar", "Do Y.\n")]
