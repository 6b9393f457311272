"""Plan list models."""

from __future__ import annotations

from datetime import datetime

from pydantic import Field

from planreview.models.base import CamelModel


class StatusCounts(CamelModel):
    """Per-status tally over the sections of the current parse."""

    pending: int = 0
    approved: int = 0
    rejected: int = 0
    resolved: int = 0
    total: int = 0


class PlanListItem(CamelModel):
    """Aggregate view of a plan for list screens. Recomputed on every request."""

    id: str
    title: str
    path: str
    modified_at: datetime
    has_comments: bool = False
    unresolved_count: int = Field(default=0, ge=0)
    orphaned_count: int = Field(default=0, ge=0)
    status_counts: StatusCounts = Field(default_factory=StatusCounts)
