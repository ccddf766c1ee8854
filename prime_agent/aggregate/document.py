"""Parser and serializer for the aggregate file.

The document is kept as an ordered list of segments: runs of plain text
lines and marked sections. Rendering joins all lines with ``\\n``, so a
parsed document renders back to the original text except for the marker
normalization described in ``parse_aggregate``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from prime_agent.errors import DuplicateSection, MalformedAggregate, UnencodableSection
from prime_agent.models.section import Section, validate_name

logger = logging.getLogger(__name__)

START_PREFIX = "<!-- prime-agent(Start "
END_PREFIX = "<!-- prime-agent(End "
MARKER_SUFFIX = ") -->"


def start_marker(name: str) -> str:
    return f"{START_PREFIX}{name}{MARKER_SUFFIX}"


def end_marker(name: str) -> str:
    return f"{END_PREFIX}{name}{MARKER_SUFFIX}"


def header_line(name: str) -> str:
    return f"## {name}"


def _parse_start_marker(line: str) -> str | None:
    """Return the section name if ``line`` is a start marker, else None."""
    line = line.rstrip()
    if not (line.startswith(START_PREFIX) and line.endswith(MARKER_SUFFIX)):
        return None
    name = line[len(START_PREFIX):-len(MARKER_SUFFIX)].strip()
    return name or None


def check_encodable(section: Section) -> Section:
    """Reject a body that would close its own section when rendered.

    A body line equal to the section's end marker (trailing whitespace
    aside) would be read back as the end of the section, cutting the body
    short on the next parse.
    """
    closing = end_marker(section.name)
    for number, line in enumerate(section.lines(), start=1):
        if line.rstrip() == closing:
            raise UnencodableSection(section.name, number)
    return section


def _split_lines(text: str) -> list[str]:
    if not text:
        return []
    return text.split("\n")


@dataclass
class TextBlock:
    """A run of lines outside any section, kept verbatim."""

    lines: list[str] = field(default_factory=list)

    @property
    def is_separator(self) -> bool:
        return self.lines == [""]


@dataclass
class AggregateDocument:
    """An aggregate file as an ordered sequence of text blocks and sections."""

    segments: list[TextBlock | Section] = field(default_factory=list)

    @classmethod
    def from_sections(cls, sections: list[Section], preamble: str = "") -> AggregateDocument:
        """Build a document from a preamble and sections separated by blank lines."""
        if not sections:
            return parse_aggregate(preamble)

        for section in sections:
            check_encodable(section)

        segments: list[TextBlock | Section] = []
        if preamble:
            lines = preamble.split("\n")
            if preamble.endswith("\n"):
                # The first start marker takes the place of the empty last line
                lines = lines[:-1]
            segments.append(TextBlock(lines))
        for i, section in enumerate(sections):
            if i:
                segments.append(TextBlock([""]))
            segments.append(section)
        segments.append(TextBlock([""]))
        return cls(segments)

    @property
    def sections(self) -> list[Section]:
        return [s for s in self.segments if isinstance(s, Section)]

    @property
    def preamble(self) -> str:
        """Text before the first section, including its trailing newline."""
        lines: list[str] = []
        for segment in self.segments:
            if isinstance(segment, Section):
                return "\n".join(lines) + "\n" if lines else ""
            lines.extend(segment.lines)
        return "\n".join(lines)

    def section_names(self) -> list[str]:
        return [s.name for s in self.sections]

    def bodies(self) -> dict[str, str]:
        """Section bodies keyed by name, in document order."""
        return {s.name: s.body for s in self.sections}

    def get_section(self, name: str) -> Section | None:
        for section in self.sections:
            if section.name == name:
                return section
        return None

    def upsert_section(self, section: Section) -> None:
        """Replace a section in place, or append it after the last section.

        Appended sections are separated from the previous one by a blank line.
        A document without sections gets the new section at its end, followed
        by a newline. Raises UnencodableSection for a body that holds its own
        end marker; the document is left unchanged.
        """
        check_encodable(section)
        for i, segment in enumerate(self.segments):
            if isinstance(segment, Section) and segment.name == section.name:
                self.segments[i] = section
                return

        last = self._last_section_index()
        if last is not None:
            self.segments[last + 1:last + 1] = [TextBlock([""]), section]
            return

        if self.segments and self.segments[-1].lines[-1:] != [""]:
            self.segments.append(TextBlock([""]))
        self.segments.extend([section, TextBlock([""])])

    def remove_section(self, name: str) -> bool:
        """Remove a section and one blank separator next to it.

        Returns False when no section has that name.
        """
        index = None
        for i, segment in enumerate(self.segments):
            if isinstance(segment, Section) and segment.name == name:
                index = i
                break
        if index is None:
            return False

        del self.segments[index]
        before = index - 1
        if (
            before >= 1
            and isinstance(self.segments[before], TextBlock)
            and self.segments[before].is_separator
            and isinstance(self.segments[before - 1], Section)
        ):
            del self.segments[before]
        elif (
            index + 1 < len(self.segments)
            and isinstance(self.segments[index], TextBlock)
            and self.segments[index].is_separator
            and isinstance(self.segments[index + 1], Section)
        ):
            del self.segments[index]
        return True

    def render(self) -> str:
        lines: list[str] = []
        for segment in self.segments:
            if isinstance(segment, Section):
                lines.append(start_marker(segment.name))
                lines.append(header_line(segment.name))
                lines.extend(segment.lines())
                lines.append(end_marker(segment.name))
            else:
                lines.extend(segment.lines)
        return "\n".join(lines)

    def _last_section_index(self) -> int | None:
        for i in range(len(self.segments) - 1, -1, -1):
            if isinstance(self.segments[i], Section):
                return i
        return None


def parse_aggregate(text: str) -> AggregateDocument:
    """Parse aggregate file text into a document.

    Lines that are not start markers are plain text, so stray headings and
    comments are carried through untouched. Once a start marker is seen the
    section is parsed strictly: the next line must be ``## NAME`` and the
    section runs until ``<!-- prime-agent(End NAME) -->``.

    Normalization: trailing whitespace on marker and header lines, and
    whitespace around the name inside the start marker, is not preserved.

    Raises:
        MalformedAggregate: header or end marker missing or mismatched.
        InvalidName: the name in a start marker is not a valid skill name.
        DuplicateSection: two sections share a name.
    """
    lines = _split_lines(text)
    segments: list[TextBlock | Section] = []
    text_lines: list[str] = []
    seen: set[str] = set()
    index = 0

    while index < len(lines):
        name = _parse_start_marker(lines[index])
        if name is None:
            text_lines.append(lines[index])
            index += 1
            continue

        start_line = index + 1
        validate_name(name)
        if name in seen:
            raise DuplicateSection(name)
        seen.add(name)

        if text_lines:
            segments.append(TextBlock(text_lines))
            text_lines = []

        index += 1
        if index >= len(lines):
            raise MalformedAggregate(
                start_line, f"missing section header after start marker for '{name}'"
            )
        expected = header_line(name)
        found = lines[index].rstrip()
        if found != expected:
            raise MalformedAggregate(index + 1, f"expected header '{expected}', found '{found}'")

        index += 1
        body_lines: list[str] = []
        closing = end_marker(name)
        while index < len(lines) and lines[index].rstrip() != closing:
            body_lines.append(lines[index])
            index += 1
        if index >= len(lines):
            raise MalformedAggregate(start_line, f"missing end marker for '{name}'")

        segments.append(Section.from_lines(name, body_lines))
        index += 1

    if text_lines:
        segments.append(TextBlock(text_lines))

    doc = AggregateDocument(segments)
    logger.debug("Parsed aggregate with sections %s", doc.section_names())
    return doc


def render_sections(sections: list[Section]) -> str:
    """Render sections alone, one blank line apart, ending with a newline."""
    return AggregateDocument.from_sections(sections).render()


def parse(text: str) -> tuple[str, list[Section]]:
    """Parse into ``(preamble, sections)``.

    Text between or after sections is not part of this view; use
    ``parse_aggregate`` to keep it.
    """
    doc = parse_aggregate(text)
    return doc.preamble, doc.sections


def serialize(preamble: str, sections: list[Section]) -> str:
    """Render a preamble followed by sections one blank line apart.

    A non-empty preamble is given a trailing newline if it lacks one, so the
    first start marker always begins a line of its own. Hence
    ``parse(serialize(p, s)) == (p, s)`` for a preamble that is empty or ends
    with a newline, and ``(p + "\\n", s)`` otherwise, as long as ``p`` holds
    no start marker.

    Raises:
        InvalidName, DuplicateSection: the sections cannot share one file.
        UnencodableSection: a body contains its own end marker line.
    """
    if preamble and not preamble.endswith("\n"):
        preamble += "\n"
    names: set[str] = set()
    for section in sections:
        section.validate()
        if section.name in names:
            raise DuplicateSection(section.name)
        names.add(section.name)
    return AggregateDocument.from_sections(sections, preamble=preamble).render()
