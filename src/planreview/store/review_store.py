"""Review store.

This component is the authoritative store for section review state: one JSON file per plan
under the reviews directory, holding every :class:`SectionReview` ever created for the plan.

Every mutation is a whole-file read-modify-write. Mutations on the same plan are serialized
by a per-plan lock so a concurrent writer can never overwrite another writer's change, and
the file itself is replaced atomically by the backend.
"""

from __future__ import annotations

import json
import re
import threading
from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError

from planreview.backends.filesystem import FilesystemBackend
from planreview.backends.protocol import BackendProtocol
from planreview.config import StorageLocations
from planreview.errors import ReviewValidationError, StorageIOError
from planreview.logging import get_logger, log_exception, plan_context
from planreview.models.review import (
    Comment,
    CommentUpdate,
    PlanCommentFile,
    SectionReview,
    SectionStatus,
    utc_now,
)
from planreview.utils.ids import new_comment_id, parse_section_id

logger = get_logger(__name__)

REVIEW_FILE_SUFFIX = ".json"

_PLAN_ID_RE = re.compile(r"[^./\\\x00][^/\\\x00]*")


def is_valid_plan_id(plan_id: str) -> bool:
    """Plan ids are plain file stems: no path separators and no leading dot."""

    return bool(plan_id) and _PLAN_ID_RE.fullmatch(plan_id) is not None


def require_plan_id(plan_id: str) -> str:
    if not is_valid_plan_id(plan_id):
        raise ReviewValidationError(f"Invalid plan id: {plan_id!r}")
    return plan_id


def coerce_status(status: SectionStatus | str) -> SectionStatus:
    """Validate a status value against :class:`SectionStatus`."""

    try:
        return SectionStatus(status)
    except ValueError:
        allowed = ", ".join(s.value for s in SectionStatus)
        raise ReviewValidationError(f"Invalid status {status!r}; expected one of: {allowed}") from None


class _PlanLocks:
    """Registry handing out one lock per plan id."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[str, threading.Lock] = {}

    def get(self, plan_id: str) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(plan_id)
            if lock is None:
                lock = self._locks[plan_id] = threading.Lock()
            return lock


class ReviewStore:
    """JSON-file backed store of per-plan review state."""

    def __init__(
        self,
        locations: StorageLocations,
        *,
        default_author: str = "User",
        backend: BackendProtocol | None = None,
    ) -> None:
        self._locations = locations
        self._backend = backend or FilesystemBackend(locations.reviews_dir, create=True)
        self._default_author = default_author
        self._locks = _PlanLocks()

    @property
    def locations(self) -> StorageLocations:
        return self._locations

    def get(self, plan_id: str) -> PlanCommentFile | None:
        """Load a plan's review file.

        Returns:
            The review file, or ``None`` if none was ever created for this plan.

        Raises:
            StorageIOError: The file exists but cannot be read or decoded.
        """

        if not is_valid_plan_id(plan_id):
            return None

        name = plan_id + REVIEW_FILE_SUFFIX
        raw = self._backend.read_text(name)
        if raw is None:
            return None
        try:
            return PlanCommentFile.model_validate_json(raw)
        except ValidationError as e:
            path = self._locations.review_path(plan_id)
            logger.error("Review file %s is not valid: %s", path, e)
            raise StorageIOError(f"Review file '{path}' is corrupt", path=path) from e

    def ensure_initialized(self, plan_id: str) -> PlanCommentFile:
        """Return the plan's review file, creating an empty one if needed."""

        require_plan_id(plan_id)
        with self._locks.get(plan_id), plan_context(plan_id=plan_id, action="ensure_initialized"):
            return self._load_or_create(plan_id)

    def add_comment(self, plan_id: str, section_id: str, text: str, heading: str = "") -> Comment:
        """Append a comment to a section's thread.

        The section review is created on demand with status ``pending``. A previously empty
        cached heading is filled in from ``heading``.

        Args:
            plan_id: Plan identifier.
            section_id: Target section id; need not exist in the current parse.
            text: Comment text; must not be blank.
            heading: Heading label cached on the section review.

        Returns:
            The stored comment.
        """

        require_plan_id(plan_id)
        if not section_id or not section_id.strip():
            raise ReviewValidationError("sectionId is required")
        if not text or not text.strip():
            raise ReviewValidationError("text is required")

        with self._locks.get(plan_id), plan_context(plan_id=plan_id, action="add_comment"):
            data = self._load_or_create(plan_id)
            review = self._find_or_create_section(data, section_id, heading)

            comment = Comment(
                id=new_comment_id(),
                section_id=section_id,
                text=text,
                author=self._default_author,
                created_at=utc_now(),
                resolved=False,
            )
            review.comments.append(comment)
            self._save(data)

            logger.info("Added comment %s to section %s", comment.id, section_id)
            return comment

    def update_comment(
        self,
        plan_id: str,
        comment_id: str,
        update: CommentUpdate | Mapping[str, Any],
    ) -> Comment | None:
        """Apply a partial update to a comment.

        Only ``text`` and ``resolved`` can change. Marking a comment resolved stamps
        ``resolved_at``; un-resolving clears it.

        Returns:
            The updated comment, or ``None`` if the plan has no such comment.
        """

        changes = self._validate_update(update)
        if not is_valid_plan_id(plan_id):
            return None

        with self._locks.get(plan_id), plan_context(plan_id=plan_id, action="update_comment"):
            data = self.get(plan_id)
            if data is None:
                return None

            comment = self._find_comment(data, comment_id)
            if comment is None:
                return None

            now = utc_now()
            if changes.text is not None:
                comment.text = changes.text
            if changes.resolved is not None:
                if changes.resolved and not comment.resolved:
                    comment.resolved_at = now
                elif not changes.resolved:
                    comment.resolved_at = None
                comment.resolved = changes.resolved
            comment.updated_at = now
            self._save(data)

            logger.info("Updated comment %s", comment_id)
            return comment

    def delete_comment(self, plan_id: str, comment_id: str) -> bool:
        """Remove a comment. The (possibly now empty) section review is kept."""

        if not is_valid_plan_id(plan_id):
            return False

        with self._locks.get(plan_id), plan_context(plan_id=plan_id, action="delete_comment"):
            data = self.get(plan_id)
            if data is None:
                return False

            for review in data.sections:
                for i, comment in enumerate(review.comments):
                    if comment.id == comment_id:
                        del review.comments[i]
                        self._save(data)
                        logger.info("Deleted comment %s", comment_id)
                        return True
            return False

    def set_section_status(
        self,
        plan_id: str,
        section_id: str,
        status: SectionStatus | str,
        heading: str | None = None,
    ) -> SectionReview:
        """Set a section's review status, creating its review on demand.

        ``resolved_at`` is stamped when the status becomes ``resolved`` and cleared for any
        other status.
        """

        require_plan_id(plan_id)
        new_status = coerce_status(status)
        if not section_id or not section_id.strip():
            raise ReviewValidationError("sectionId is required")

        with self._locks.get(plan_id), plan_context(plan_id=plan_id, action="set_section_status"):
            data = self._load_or_create(plan_id)
            review = self._find_or_create_section(data, section_id, heading or "")

            review.status = new_status
            review.resolved_at = utc_now() if new_status is SectionStatus.RESOLVED else None
            self._save(data)

            logger.info("Section %s is now %s", section_id, new_status.value)
            return review

    def _load_or_create(self, plan_id: str) -> PlanCommentFile:
        existing = self.get(plan_id)
        if existing is not None:
            return existing

        now = utc_now()
        data = PlanCommentFile(
            plan_id=plan_id,
            plan_path=str(self._locations.plan_path(plan_id)),
            created_at=now,
            updated_at=now,
            sections=[],
        )
        self._save(data)
        logger.info("Created review file for %s", plan_id)
        return data

    @staticmethod
    def _find_or_create_section(data: PlanCommentFile, section_id: str, heading: str) -> SectionReview:
        review = data.find_section(section_id)
        if review is None:
            review = SectionReview(
                section_id=section_id,
                heading=heading,
                heading_level=min(max(parse_section_id(section_id).level, 1), 6),
                status=SectionStatus.PENDING,
            )
            data.sections.append(review)
        elif not review.heading and heading:
            review.heading = heading
        return review

    @staticmethod
    def _find_comment(data: PlanCommentFile, comment_id: str) -> Comment | None:
        for review in data.sections:
            for comment in review.comments:
                if comment.id == comment_id:
                    return comment
        return None

    @staticmethod
    def _validate_update(update: CommentUpdate | Mapping[str, Any]) -> CommentUpdate:
        if not isinstance(update, CommentUpdate):
            try:
                update = CommentUpdate.model_validate(dict(update))
            except ValidationError as e:
                raise ReviewValidationError(f"Invalid comment update: {e}") from e
        if update.text is not None and not update.text.strip():
            raise ReviewValidationError("text must not be empty")
        return update

    def _save(self, data: PlanCommentFile) -> None:
        data.updated_at = utc_now()
        payload = json.dumps(data.to_json_dict(), indent=2, ensure_ascii=False)
        try:
            self._backend.write_text(data.plan_id + REVIEW_FILE_SUFFIX, payload)
        except StorageIOError:
            log_exception(logger, "Failed to write review file", plan_id=data.plan_id)
            raise
