"""Review state models.

This module defines the persisted schema of a plan's review file: one
:class:`PlanCommentFile` per plan, holding a :class:`SectionReview` for every section that
ever received a comment or an explicit status.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum

from pydantic import ConfigDict, Field

from planreview.models.base import CamelModel


def utc_now() -> datetime:
    return datetime.now(UTC)


class SectionStatus(str, Enum):
    """Approval workflow state of a section."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    RESOLVED = "resolved"


class Comment(CamelModel):
    """A single comment in a section thread."""

    id: str
    section_id: str
    text: str
    author: str
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime | None = None
    resolved: bool = False
    resolved_at: datetime | None = None


class CommentUpdate(CamelModel):
    """Partial update of a comment. Only ``text`` and ``resolved`` are editable."""

    model_config = ConfigDict(extra="forbid")

    text: str | None = None
    resolved: bool | None = None


class SectionReview(CamelModel):
    """Review status and comment thread attached to a section id.

    The section id may no longer exist in the current parse of the plan (orphaned review).
    """

    section_id: str
    heading: str = ""
    heading_level: int = Field(default=1, ge=1, le=6)
    status: SectionStatus = SectionStatus.PENDING
    resolved_at: datetime | None = None
    comments: list[Comment] = Field(default_factory=list)


class PlanCommentFile(CamelModel):
    """Everything recorded about one plan's review."""

    plan_id: str
    plan_path: str = ""
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
    sections: list[SectionReview] = Field(default_factory=list)

    def find_section(self, section_id: str) -> SectionReview | None:
        for review in self.sections:
            if review.section_id == section_id:
                return review
        return None
