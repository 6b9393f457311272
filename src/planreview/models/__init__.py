"""Pydantic models used across the project."""

from __future__ import annotations

from planreview.models.listing import PlanListItem, StatusCounts
from planreview.models.plan import ParsedPlan, PlanMetadata, Section
from planreview.models.review import (
    Comment,
    CommentUpdate,
    PlanCommentFile,
    SectionReview,
    SectionStatus,
)

__all__ = [
    "Comment",
    "CommentUpdate",
    "ParsedPlan",
    "PlanCommentFile",
    "PlanListItem",
    "PlanMetadata",
    "Section",
    "SectionReview",
    "SectionStatus",
    "StatusCounts",
]
