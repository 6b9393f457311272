"""Tests for markdown plan parsing."""

from __future__ import annotations

from planreview.models.plan import Section
from planreview.parsing.markdown import (
    collect_section_ids,
    find_section,
    flatten_sections,
    parse_markdown,
)

NESTED_PLAN = "\n".join(
    [
        "# Plan",
        "intro",
        "## Goals",
        "g",
        "### Non Goals",
        "ng",
        "## Steps",
        "s",
        "# Appendix",
        "a",
    ]
)


def _assert_hierarchy(sections: list[Section]) -> None:
    for section in sections:
        assert section.start_line <= section.end_line
        previous_end = section.start_line
        for child in section.children:
            assert child.start_line > section.start_line
            assert child.start_line > previous_end
            assert child.end_line <= section.end_line
            previous_end = child.end_line
        _assert_hierarchy(section.children)


def test_headings_without_level_one_fall_back_to_plan_id_title() -> None:
    """It should parse level-2 roots and humanize the plan id for the title."""

    text = "Intro\n\n## Setup\nStep one.\n\n## Run\nStep two.\n"
    plan = parse_markdown(text, "my-great-plan", "/plans/my-great-plan.md")

    assert plan.title == "my great plan"
    assert [s.id for s in plan.sections] == ["2_setup", "2_run"]
    setup, run = plan.sections
    assert setup.heading == "Setup"
    assert setup.content == "Step one."
    assert (setup.start_line, setup.end_line) == (2, 4)
    assert run.content == "Step two."
    assert (run.start_line, run.end_line) == (5, 7)
    assert plan.metadata.section_count == 2
    assert plan.metadata.word_count == 9
    assert plan.metadata.file_size == len(text.encode("utf-8"))


def test_nested_headings_build_a_tree() -> None:
    """It should nest sections by level and embed ancestor slugs in ids."""

    plan = parse_markdown(NESTED_PLAN, "p", "p.md")

    assert plan.title == "Plan"
    assert [s.id for s in plan.sections] == ["1_plan", "1_appendix"]

    root = plan.sections[0]
    assert root.content == "intro"
    assert (root.start_line, root.end_line) == (0, 7)
    assert [c.id for c in root.children] == ["plan_2_goals", "plan_2_steps"]

    goals = root.children[0]
    assert (goals.start_line, goals.end_line) == (2, 5)
    assert goals.content == "g"
    assert [c.id for c in goals.children] == ["plan_goals_3_non-goals"]
    assert goals.children[0].content == "ng"

    assert plan.sections[1].end_line == 9
    assert plan.metadata.section_count == 5
    _assert_hierarchy(plan.sections)


def test_skipped_levels_attach_to_nearest_shallower_heading() -> None:
    """It should make an h3 under an h1 a direct child, without a synthetic h2."""

    plan = parse_markdown("# Top\n### Deep\nx\n## Back\ny", "p", "p.md")

    top = plan.sections[0]
    assert [c.id for c in top.children] == ["top_3_deep", "top_2_back"]
    assert top.children[0].children == []


def test_duplicate_sibling_headings_share_an_id() -> None:
    """It should give identical sibling headings the same id (known collision)."""

    plan = parse_markdown("## Notes\nfirst\n## Notes\nsecond\n", "p", "p.md")

    assert collect_section_ids(plan.sections) == ["2_notes", "2_notes"]
    assert find_section(plan.sections, "2_notes").content == "first"


def test_document_without_headings_is_one_synthetic_section() -> None:
    """It should degrade to a single `Content` section."""

    plan = parse_markdown("just text\nmore text", "p", "p.md")

    assert len(plan.sections) == 1
    section = plan.sections[0]
    assert section.id == "1_content"
    assert section.heading == "Content"
    assert section.level == 1
    assert section.content == "just text\nmore text"
    assert (section.start_line, section.end_line) == (0, 1)


def test_empty_document() -> None:
    """It should parse empty text without failing."""

    plan = parse_markdown("", "empty", "empty.md")

    assert collect_section_ids(plan.sections) == ["1_content"]
    assert plan.metadata.word_count == 0
    assert plan.metadata.file_size == 0


def test_only_atx_headings_count() -> None:
    """It should ignore lines that are not `#{1,6}` followed by whitespace and text."""

    text = "#NoSpace\n####### Seven\n  # Indented\n## Real   \nbody"
    plan = parse_markdown(text, "p", "p.md")

    assert [s.heading for s in plan.sections] == ["Real"]
    assert plan.sections[0].content == "body"


def test_reparse_is_idempotent() -> None:
    """It should produce identical trees for identical text."""

    first = parse_markdown(NESTED_PLAN, "p", "p.md")
    second = parse_markdown(NESTED_PLAN, "p", "p.md")

    assert [s.model_dump() for s in first.sections] == [s.model_dump() for s in second.sections]


def test_body_edits_keep_section_ids() -> None:
    """It should keep ids stable when only section bodies change."""

    edited = NESTED_PLAN.replace("\ng\n", "\ncompletely rewritten goals\nwith two lines\n")
    before = collect_section_ids(parse_markdown(NESTED_PLAN, "p", "p.md").sections)
    after = collect_section_ids(parse_markdown(edited, "p", "p.md").sections)

    assert before == after


def test_flatten_sections_is_document_order() -> None:
    """It should flatten depth-first in source order."""

    plan = parse_markdown(NESTED_PLAN, "p", "p.md")

    assert [s.heading for s in flatten_sections(plan.sections)] == [
        "Plan",
        "Goals",
        "Non Goals",
        "Steps",
        "Appendix",
    ]
    assert find_section(plan.sections, "missing") is None


def test_hierarchy_invariant_on_irregular_levels() -> None:
    """It should keep child ranges disjoint and inside their parent for any level sequence."""

    text = "\n".join(["### a", "x", "# b", "###### c", "## d", "#### e", "y", "# f", "## g"])
    plan = parse_markdown(text, "p", "p.md")

    _assert_hierarchy(plan.sections)
    assert plan.metadata.section_count == 7


def test_json_form_uses_camel_case() -> None:
    """It should serialize with the camelCase field names of the wire format."""

    data = parse_markdown("## Setup\nx", "p", "p.md").to_json_dict()

    assert set(data) == {"id", "path", "title", "rawContent", "sections", "metadata"}
    assert data["sections"][0]["startLine"] == 0
    assert data["metadata"]["sectionCount"] == 1
