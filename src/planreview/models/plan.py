"""Parsed plan models.

These are derived from the markdown text on every read and never persisted.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import Field

from planreview.models.base import CamelModel


class Section(CamelModel):
    """A heading-delimited region of a plan.

    ``content`` holds only the text between this heading and the next heading of any
    level; ``end_line`` covers the whole subtree (up to the next heading of the same or a
    higher level). Line numbers are 0-based.
    """

    id: str
    heading: str
    level: int = Field(ge=1, le=6)
    content: str = ""
    start_line: int = Field(ge=0)
    end_line: int = Field(ge=0)

    children: list["Section"] = Field(default_factory=list)


class PlanMetadata(CamelModel):
    created_at: datetime
    modified_at: datetime
    word_count: int = Field(ge=0)
    section_count: int = Field(ge=0)
    file_size: int = Field(ge=0)


class ParsedPlan(CamelModel):
    """A plan document parsed into its section forest."""

    id: str
    path: str
    title: str
    raw_content: str
    sections: list[Section] = Field(default_factory=list)
    metadata: PlanMetadata
