"""Exceptions raised by planreview.

Missing plans, review files, sections and comments are not errors: lookups return
``None`` (or ``False`` for deletions) so callers can tell "no data yet" from a failure.
"""

from __future__ import annotations

from pathlib import Path


class PlanReviewError(Exception):
    """Base class for planreview errors."""


class ReviewValidationError(PlanReviewError):
    """Raised when a request is rejected before touching the review store."""


class StorageIOError(PlanReviewError):
    """Raised when the backing store cannot be read or written."""

    def __init__(self, message: str, *, path: Path | str | None = None) -> None:
        super().__init__(message)
        self.path = str(path) if path is not None else None
