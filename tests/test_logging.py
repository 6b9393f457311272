"""Tests for logging setup."""

from __future__ import annotations

import logging

from rich.logging import RichHandler

from planreview.logging import _ContextFilter, configure_logging, get_logger, plan_context


def _rich_handlers() -> list[logging.Handler]:
    return [h for h in logging.getLogger().handlers if isinstance(h, RichHandler)]


def test_repeated_configuration_keeps_one_context_filter() -> None:
    """It should reuse the rich handler and its context filter across calls."""

    configure_logging("INFO")
    configure_logging("DEBUG")
    configure_logging("INFO")

    handlers = _rich_handlers()
    assert len(handlers) == 1
    assert sum(isinstance(f, _ContextFilter) for f in handlers[0].filters) == 1


def test_plan_context_is_stamped_on_records() -> None:
    """It should attach the bound plan id and action to each record."""

    configure_logging("INFO")
    handler = _rich_handlers()[0]
    record = get_logger("planreview.test").makeRecord("planreview.test", logging.INFO, __file__, 1, "msg", (), None)

    with plan_context(plan_id="doc", action="add_comment"):
        assert handler.filter(record)
    assert (record.plan_id, record.action) == ("doc", "add_comment")

    handler.filter(record)
    assert (record.plan_id, record.action) == ("-", "-")
