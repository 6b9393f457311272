"""Plan index.

Joins the freshly parsed section tree of each plan with its review file. Review files may
reference section ids the current text no longer produces (orphaned reviews); those never
contribute to the status tally.
"""

from __future__ import annotations

from planreview.backends.filesystem import FilesystemBackend
from planreview.backends.protocol import BackendProtocol, FileInfo
from planreview.config import StorageLocations
from planreview.errors import StorageIOError
from planreview.logging import get_logger, log_exception
from planreview.models.listing import PlanListItem, StatusCounts
from planreview.models.plan import ParsedPlan
from planreview.models.review import PlanCommentFile, SectionStatus
from planreview.parsing.markdown import collect_section_ids, parse_markdown
from planreview.store.review_store import ReviewStore, is_valid_plan_id

logger = get_logger(__name__)

PLAN_FILE_SUFFIX = ".md"


def compute_status_counts(section_ids: list[str], reviews: PlanCommentFile | None) -> StatusCounts:
    """Tally review status over the current section ids.

    Sections without a review count as ``pending``; reviews whose section id is not in
    ``section_ids`` are ignored.
    """

    status_by_id: dict[str, SectionStatus] = {}
    if reviews is not None:
        for review in reviews.sections:
            status_by_id.setdefault(review.section_id, review.status)

    counts = StatusCounts(total=len(section_ids))
    for section_id in section_ids:
        status = status_by_id.get(section_id, SectionStatus.PENDING)
        setattr(counts, status.value, getattr(counts, status.value) + 1)
    return counts


def count_unresolved_comments(reviews: PlanCommentFile | None) -> int:
    """Unresolved comments across the whole review file, orphaned sections included."""

    if reviews is None:
        return 0
    return sum(1 for review in reviews.sections for c in review.comments if not c.resolved)


def count_orphaned_reviews(section_ids: list[str], reviews: PlanCommentFile | None) -> int:
    if reviews is None:
        return 0
    live = set(section_ids)
    return sum(1 for review in reviews.sections if review.section_id not in live)


class PlanIndex:
    """Lists plans with aggregate review statistics and parses plans on demand."""

    def __init__(
        self,
        locations: StorageLocations,
        review_store: ReviewStore,
        *,
        backend: BackendProtocol | None = None,
    ) -> None:
        self._locations = locations
        self._reviews = review_store
        self._backend = backend or FilesystemBackend(locations.plans_dir)

    def list(self) -> list[PlanListItem]:  # noqa: A003
        """List all plans, newest first.

        Raises:
            StorageIOError: The plans directory or a review file cannot be read.
        """

        items: list[PlanListItem] = []
        for info in self._backend.list_files(PLAN_FILE_SUFFIX):
            item = self._list_item(info)
            if item is not None:
                items.append(item)

        items.sort(key=lambda x: x.modified_at, reverse=True)
        return items

    def refresh(self) -> int:
        """Re-scan the plans directory and return the number of plans."""

        count = len(self.list())
        logger.info("Rescanned %s: %d plans", self._locations.plans_dir, count)
        return count

    def get(self, plan_id: str) -> ParsedPlan | None:
        """Parse a plan, or return ``None`` if it cannot be read."""

        if not is_valid_plan_id(plan_id):
            return None

        name = plan_id + PLAN_FILE_SUFFIX
        try:
            info = self._backend.stat(name)
            content = self._backend.read_text(name)
        except StorageIOError:
            log_exception(logger, "Error reading plan", plan_id=plan_id)
            return None
        if info is None or content is None:
            return None

        plan = parse_markdown(content, plan_id, info.path)
        plan.metadata.modified_at = info.modified_at
        plan.metadata.created_at = info.created_at or info.modified_at
        return plan

    def _list_item(self, info: FileInfo) -> PlanListItem | None:
        plan_id = info.stem
        if not is_valid_plan_id(plan_id):
            return None

        try:
            content = self._backend.read_text(info.name)
        except StorageIOError:
            log_exception(logger, "Skipping unreadable plan", plan_id=plan_id)
            return None
        if content is None:
            # Removed between listing and reading.
            return None

        plan = parse_markdown(content, plan_id, info.path)
        section_ids = collect_section_ids(plan.sections)
        reviews = self._reviews.get(plan_id)

        return PlanListItem(
            id=plan_id,
            title=plan.title,
            path=info.path,
            modified_at=info.modified_at,
            has_comments=reviews is not None,
            unresolved_count=count_unresolved_comments(reviews),
            orphaned_count=count_orphaned_reviews(section_ids, reviews),
            status_counts=compute_status_counts(section_ids, reviews),
        )
