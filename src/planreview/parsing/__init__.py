"""Plan parsing."""

from __future__ import annotations

from planreview.parsing.markdown import (
    collect_section_ids,
    count_sections,
    find_section,
    flatten_sections,
    parse_markdown,
)

__all__ = [
    "collect_section_ids",
    "count_sections",
    "find_section",
    "flatten_sections",
    "parse_markdown",
]
