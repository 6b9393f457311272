"""Markdown plan parsing.

Turns a plan's raw markdown into a forest of :class:`Section` objects. Only ATX headings
(``#`` to ``######`` at the start of a line) delimit sections. Skipped heading levels are
not filled in: an ``###`` directly under a ``#`` becomes its child, so ancestor chains (and
therefore section ids) match what the text literally says.

Parsing is total: text without any heading becomes a single synthetic ``Content``
section instead of an error.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Iterable, Iterator

from planreview.models.plan import ParsedPlan, PlanMetadata, Section
from planreview.utils.ids import ANCESTOR_SLUG_MAX_LENGTH, generate_section_id, slugify

_HEADING_RE = re.compile(r"^(#{1,6})\s+(.+)$")

SYNTHETIC_SECTION_ID = "1_content"
SYNTHETIC_SECTION_HEADING = "Content"


@dataclass(frozen=True)
class HeadingMatch:
    level: int
    text: str
    line: int


@dataclass
class _Frame:
    """An open section on the parser stack, with the ancestor slugs used for its id."""

    section: Section
    ancestors: list[str]


def extract_headings(lines: list[str]) -> list[HeadingMatch]:
    """Find ATX headings in document order."""

    headings: list[HeadingMatch] = []
    for i, line in enumerate(lines):
        m = _HEADING_RE.match(line)
        if m:
            headings.append(HeadingMatch(level=len(m.group(1)), text=m.group(2).strip(), line=i))
    return headings


def build_section_tree(lines: list[str], headings: list[HeadingMatch]) -> list[Section]:
    """Assemble headings into a section forest.

    Args:
        lines: Document lines.
        headings: Headings found by :func:`extract_headings`.

    Returns:
        Root sections in document order.
    """

    last_line = len(lines) - 1

    if not headings:
        return [
            Section(
                id=SYNTHETIC_SECTION_ID,
                heading=SYNTHETIC_SECTION_HEADING,
                level=1,
                content="\n".join(lines).strip(),
                start_line=0,
                end_line=last_line,
            )
        ]

    roots: list[Section] = []
    stack: list[_Frame] = []

    for i, heading in enumerate(headings):
        next_line = headings[i + 1].line if i + 1 < len(headings) else len(lines)
        content = "\n".join(lines[heading.line + 1 : next_line]).strip()

        # Close deeper-or-equal sections; their subtree ends right before this heading.
        while stack and stack[-1].section.level >= heading.level:
            stack.pop().section.end_line = heading.line - 1

        if stack:
            parent = stack[-1]
            ancestors = [
                *parent.ancestors,
                slugify(parent.section.heading, ANCESTOR_SLUG_MAX_LENGTH),
            ]
        else:
            parent = None
            ancestors = []

        section = Section(
            id=generate_section_id(heading.text, heading.level, ancestors),
            heading=heading.text,
            level=heading.level,
            content=content,
            start_line=heading.line,
            end_line=last_line,
        )

        if parent is None:
            roots.append(section)
        else:
            parent.section.children.append(section)

        stack.append(_Frame(section=section, ancestors=ancestors))

    return roots


def parse_markdown(content: str, plan_id: str, plan_path: str) -> ParsedPlan:
    """Parse markdown text into a :class:`ParsedPlan`.

    Args:
        content: Raw markdown.
        plan_id: Plan identifier (file stem).
        plan_path: Path of the plan file, recorded as-is.

    Returns:
        The parsed plan. ``metadata.created_at``/``modified_at`` are set to now; callers
        that know the file's timestamps overwrite them.
    """

    lines = content.split("\n")
    sections = build_section_tree(lines, extract_headings(lines))

    if sections and sections[0].level == 1:
        title = sections[0].heading
    else:
        title = plan_id.replace("-", " ")

    now = datetime.now(UTC)
    metadata = PlanMetadata(
        created_at=now,
        modified_at=now,
        word_count=len(content.split()),
        section_count=count_sections(sections),
        file_size=len(content.encode("utf-8")),
    )

    return ParsedPlan(
        id=plan_id,
        path=plan_path,
        title=title,
        raw_content=content,
        sections=sections,
        metadata=metadata,
    )


def iter_sections(sections: Iterable[Section]) -> Iterator[Section]:
    """Yield sections depth-first in document order."""

    for section in sections:
        yield section
        yield from iter_sections(section.children)


def flatten_sections(sections: Iterable[Section]) -> list[Section]:
    """Flatten a section forest into a list in document order."""

    return list(iter_sections(sections))


def find_section(sections: Iterable[Section], section_id: str) -> Section | None:
    """Return the first section with ``section_id``, or ``None``."""

    return next((s for s in iter_sections(sections) if s.id == section_id), None)


def count_sections(sections: Iterable[Section]) -> int:
    return sum(1 for _ in iter_sections(sections))


def collect_section_ids(sections: Iterable[Section]) -> list[str]:
    """Section ids in document order. Duplicate headings yield duplicate ids."""

    return [s.id for s in iter_sections(sections)]
