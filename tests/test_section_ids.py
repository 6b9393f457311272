"""Tests for section id generation."""

from __future__ import annotations

from planreview.utils.ids import generate_section_id, new_comment_id, parse_section_id, slugify


def test_slugify_normalizes_heading_text() -> None:
    """It should lowercase, drop punctuation and join words with dashes."""

    assert slugify("Hello, World! (v2)") == "hello-world-v2"
    assert slugify("A  B\tC") == "a-b-c"
    assert slugify("pre-existing - dash") == "pre-existing---dash"
    assert slugify("Über Café") == "ber-caf"


def test_slugify_truncates() -> None:
    """It should cut slugs at 50 characters by default."""

    assert slugify("a" * 60) == "a" * 50
    assert slugify("abcdef", max_length=3) == "abc"


def test_generate_section_id_without_ancestors() -> None:
    """It should build `<level>_<slug>` for top-level headings."""

    assert generate_section_id("Setup", 2) == "2_setup"
    assert generate_section_id("Implementation Plan", 1) == "1_implementation-plan"


def test_generate_section_id_with_ancestors() -> None:
    """It should prefix ancestor slugs, each cut to 20 characters."""

    assert generate_section_id("Goals", 2, ["overview"]) == "overview_2_goals"
    assert generate_section_id("X", 3, ["plan", "goals"]) == "plan_goals_3_x"
    assert generate_section_id("Goals", 2, ["x" * 30]) == "x" * 20 + "_2_goals"


def test_generate_section_id_is_total() -> None:
    """It should accept headings that normalize to nothing."""

    assert generate_section_id("!!!", 1) == "1_"
    assert generate_section_id("", 6) == "6_"


def test_level_is_part_of_the_id() -> None:
    """It should give a demoted heading a different id."""

    assert generate_section_id("Goals", 2) != generate_section_id("Goals", 3)


def test_parse_section_id_round_trips_components() -> None:
    """It should recover level, slug and ancestors."""

    parts = parse_section_id("plan_goals_3_non-goals")
    assert parts.level == 3
    assert parts.slug == "non-goals"
    assert parts.ancestors == ["plan", "goals"]

    assert parse_section_id("2_setup").ancestors == []


def test_parse_section_id_without_level() -> None:
    """It should default to level 1 when no level part exists."""

    parts = parse_section_id("weird")
    assert parts.level == 1
    assert parts.slug == "weird"


def test_comment_ids_are_unique() -> None:
    """It should never hand out the same comment id twice."""

    ids = {new_comment_id() for _ in range(200)}
    assert len(ids) == 200
