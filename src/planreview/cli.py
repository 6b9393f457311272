"""CLI entrypoints for planreview."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.tree import Tree

from planreview.api import serve as serve_module
from planreview.config import Settings, load_settings
from planreview.errors import PlanReviewError
from planreview.logging import configure_logging, get_logger
from planreview.models.plan import Section
from planreview.models.review import PlanCommentFile, SectionStatus
from planreview.store.plan_index import PlanIndex
from planreview.store.review_store import ReviewStore

app = typer.Typer(add_completion=False, help="Review markdown plans section by section")
logger = get_logger(__name__)
console = Console()

_STATUS_STYLE = {
    SectionStatus.PENDING: "yellow",
    SectionStatus.APPROVED: "green",
    SectionStatus.REJECTED: "red",
    SectionStatus.RESOLVED: "blue",
}


def _settings(plans_dir: Path | None, reviews_dir: Path | None) -> Settings:
    settings = load_settings()
    if plans_dir is not None:
        settings.plans_dir = plans_dir
    if reviews_dir is not None:
        settings.reviews_dir = reviews_dir
    configure_logging(settings.log_level)
    return settings


def _services(settings: Settings) -> tuple[ReviewStore, PlanIndex]:
    locations = settings.locations()
    store = ReviewStore(locations, default_author=settings.default_author)
    return store, PlanIndex(locations, store)


PlansDirOption = typer.Option(None, "--plans-dir", help="Plans directory (overrides PLANREVIEW_PLANS_DIR)")
ReviewsDirOption = typer.Option(
    None, "--reviews-dir", help="Review files directory (overrides PLANREVIEW_REVIEWS_DIR)"
)


@app.command("list")
def list_plans(
    plans_dir: Path | None = PlansDirOption,
    reviews_dir: Path | None = ReviewsDirOption,
) -> None:
    """List plans with their review progress, newest first."""

    _, index = _services(_settings(plans_dir, reviews_dir))
    logger.info("CLI list requested")

    table = Table("id", "title", "sections", "approved", "rejected", "resolved", "open comments")
    for item in index.list():
        c = item.status_counts
        table.add_row(
            item.id,
            escape(item.title),
            str(c.total),
            str(c.approved),
            str(c.rejected),
            str(c.resolved),
            str(item.unresolved_count),
        )
    console.print(table)


def _add_sections(node: Tree, sections: list[Section], reviews: PlanCommentFile | None) -> None:
    for section in sections:
        review = reviews.find_section(section.id) if reviews else None
        status = review.status if review else SectionStatus.PENDING
        label = f"[{_STATUS_STYLE[status]}]{status.value:>8}[/] {'#' * section.level} {escape(section.heading)}"
        if review and review.comments:
            label += f" [dim]({len(review.comments)} comments)[/]"
        label += f" [dim]{section.id}[/]"
        child = node.add(label)
        _add_sections(child, section.children, reviews)


@app.command()
def show(
    plan_id: str = typer.Argument(..., help="Plan id (file name without .md)"),
    plans_dir: Path | None = PlansDirOption,
    reviews_dir: Path | None = ReviewsDirOption,
) -> None:
    """Print a plan's section tree with review status."""

    store, index = _services(_settings(plans_dir, reviews_dir))
    plan = index.get(plan_id)
    if plan is None:
        typer.echo(f"Plan not found: {plan_id}", err=True)
        raise typer.Exit(code=1)

    tree = Tree(f"[bold]{escape(plan.title)}[/] ({plan.metadata.word_count} words)")
    _add_sections(tree, plan.sections, store.get(plan_id))
    console.print(tree)


@app.command()
def comment(
    plan_id: str = typer.Argument(..., help="Plan id"),
    section_id: str = typer.Argument(..., help="Section id"),
    text: str = typer.Argument(..., help="Comment text"),
    heading: str = typer.Option("", "--heading", help="Heading label to cache with the review"),
    plans_dir: Path | None = PlansDirOption,
    reviews_dir: Path | None = ReviewsDirOption,
) -> None:
    """Add a comment to a section."""

    store, _ = _services(_settings(plans_dir, reviews_dir))
    try:
        created = store.add_comment(plan_id, section_id, text, heading)
    except PlanReviewError as e:
        raise typer.BadParameter(str(e)) from e
    typer.echo(created.id)


@app.command()
def status(
    plan_id: str = typer.Argument(..., help="Plan id"),
    section_id: str = typer.Argument(..., help="Section id"),
    value: str = typer.Argument(..., help="pending, approved, rejected or resolved"),
    plans_dir: Path | None = PlansDirOption,
    reviews_dir: Path | None = ReviewsDirOption,
) -> None:
    """Set a section's review status."""

    store, _ = _services(_settings(plans_dir, reviews_dir))
    try:
        review = store.set_section_status(plan_id, section_id, value)
    except PlanReviewError as e:
        raise typer.BadParameter(str(e)) from e
    typer.echo(f"{review.section_id}: {review.status.value}")


app.command("serve")(serve_module.main)


if __name__ == "__main__":
    app()
