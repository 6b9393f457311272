"""Shared fixtures."""

from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Callable

import pytest

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from planreview.config import StorageLocations
from planreview.store.plan_index import PlanIndex
from planreview.store.review_store import ReviewStore


@pytest.fixture
def locations(tmp_path: Path) -> StorageLocations:
    plans = tmp_path / "plans"
    reviews = tmp_path / "plan-comments"
    plans.mkdir()
    reviews.mkdir()
    return StorageLocations(plans_dir=plans, reviews_dir=reviews)


@pytest.fixture
def store(locations: StorageLocations) -> ReviewStore:
    return ReviewStore(locations)


@pytest.fixture
def index(locations: StorageLocations, store: ReviewStore) -> PlanIndex:
    return PlanIndex(locations, store)


@pytest.fixture
def write_plan(locations: StorageLocations) -> Callable[..., Path]:
    """Write a plan file, optionally pinning its modification time."""

    def _write(plan_id: str, content: str, *, mtime: float | None = None) -> Path:
        path = locations.plan_path(plan_id)
        path.write_text(content, encoding="utf-8")
        if mtime is not None:
            os.utime(path, (mtime, mtime))
        return path

    return _write
