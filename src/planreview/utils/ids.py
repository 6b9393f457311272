"""ID utilities.

Section ids embed the heading level, the heading slug and the slugs of all ancestor
headings, e.g. ``overview_2_goals_3_non-goals``. Parsing an unchanged document always
reproduces the same ids, which is what keeps stored reviews attached across reloads.
"""

from __future__ import annotations

import re
import uuid
from dataclasses import dataclass, field
from typing import Iterable

SLUG_MAX_LENGTH = 50
ANCESTOR_SLUG_MAX_LENGTH = 20

_DISALLOWED_RE = re.compile(r"[^a-z0-9\s-]")
_WHITESPACE_RE = re.compile(r"\s+")
_LEVEL_PART_RE = re.compile(r"^\d$")


@dataclass(frozen=True)
class SectionIdParts:
    """Components recovered from a section id."""

    level: int
    slug: str
    ancestors: list[str] = field(default_factory=list)


def slugify(text: str, max_length: int = SLUG_MAX_LENGTH) -> str:
    """Normalize heading text into a slug.

    Lowercases, drops everything but ``a-z``, ``0-9``, whitespace and ``-``, turns each
    whitespace run into a single ``-`` and truncates to ``max_length`` characters.
    """

    normalized = _DISALLOWED_RE.sub("", text.lower())
    normalized = _WHITESPACE_RE.sub("-", normalized)
    return normalized[:max_length]


def generate_section_id(heading: str, level: int, ancestors: Iterable[str] = ()) -> str:
    """Build a section id from heading text, level and ancestor slugs.

    Identical sibling headings produce identical ids; they are not disambiguated.

    Args:
        heading: Heading text as written in the document.
        level: Heading level (number of ``#``).
        ancestors: Slugs of the enclosing headings, outermost first.

    Returns:
        An id of the form ``<ancestor>_..._<level>_<slug>``.
    """

    ancestor_slugs = [a[:ANCESTOR_SLUG_MAX_LENGTH] for a in ancestors]
    prefix = "_".join(ancestor_slugs) + "_" if ancestor_slugs else ""
    return f"{prefix}{level}_{slugify(heading)}"


def parse_section_id(section_id: str) -> SectionIdParts:
    """Split a section id back into level, slug and ancestor slugs.

    The first ``_``-separated part made of a single digit is taken as the level. When
    there is none the level defaults to 1 and the whole id is the slug.
    """

    parts = section_id.split("_")
    level_index = next((i for i, p in enumerate(parts) if _LEVEL_PART_RE.match(p)), None)
    if level_index is None:
        return SectionIdParts(level=1, slug=section_id)
    return SectionIdParts(
        level=int(parts[level_index]),
        slug="_".join(parts[level_index + 1 :]),
        ancestors=parts[:level_index],
    )


def new_comment_id() -> str:
    """Return a fresh comment id. Ids are random and never reused."""

    return str(uuid.uuid4())
