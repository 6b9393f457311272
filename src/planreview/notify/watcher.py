"""Polling watcher for the plans and reviews directories.

The watcher keeps the last *emitted* state of every relevant file (``mtime_ns`` and size).
Any difference becomes a pending change, which is only emitted once the file has stayed the
same for ``stability_threshold`` seconds. Editors that save through a temporary file and a
rename therefore produce one event, and a file that goes back to its emitted state before
settling produces none.

Plans are ``*.md`` files in the plans directory, review files are ``*.json`` files in the
reviews directory. Hidden files (including the store's temporary files) are ignored.
"""

from __future__ import annotations

import asyncio
import contextlib
import os
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from planreview.config import StorageLocations
from planreview.events import ChangeEvent, ChangeEventType
from planreview.logging import get_logger, log_exception
from planreview.notify.broker import EventBroker

logger = get_logger(__name__)

PLAN_SUFFIX = ".md"
REVIEW_SUFFIX = ".json"


@dataclass(frozen=True)
class FileSignature:
    mtime_ns: int
    size: int


@dataclass
class _PendingChange:
    signature: FileSignature | None  # None: file is gone
    changed_at: float


def _scan(directory: Path, suffix: str) -> dict[str, FileSignature]:
    found: dict[str, FileSignature] = {}
    try:
        entries = list(os.scandir(directory))
    except FileNotFoundError:
        return found
    for entry in entries:
        if entry.name.startswith(".") or not entry.name.endswith(suffix):
            continue
        try:
            if not entry.is_file():
                continue
            st = entry.stat()
        except FileNotFoundError:
            continue
        found[entry.path] = FileSignature(mtime_ns=st.st_mtime_ns, size=st.st_size)
    return found


class DirectoryWatcher:
    """Turns filesystem changes into debounced :class:`ChangeEvent` objects."""

    def __init__(
        self,
        locations: StorageLocations,
        broker: EventBroker | None = None,
        *,
        stability_threshold: float = 0.5,
        poll_interval: float = 0.1,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the watcher.

        Args:
            locations: Directories to watch.
            broker: Where settled events are published; optional for manual polling.
            stability_threshold: Seconds a file must stay unchanged before its event fires.
            poll_interval: Seconds between two polls in :meth:`run`.
            clock: Monotonic time source.
        """
        self._plans_dir = Path(locations.plans_dir)
        self._reviews_dir = Path(locations.reviews_dir)
        self._broker = broker
        self.stability_threshold = stability_threshold
        self.poll_interval = poll_interval
        self._clock = clock

        self._known: dict[str, FileSignature] = {}
        self._pending: dict[str, _PendingChange] = {}
        self._primed = False
        self._task: asyncio.Task | None = None

    def snapshot(self) -> dict[str, FileSignature]:
        """Current signatures of all plan and review files."""

        state = _scan(self._plans_dir, PLAN_SUFFIX)
        state.update(_scan(self._reviews_dir, REVIEW_SUFFIX))
        return state

    def prime(self) -> None:
        """Record the current state as already seen, without emitting anything."""

        self._known = self.snapshot()
        self._pending.clear()
        self._primed = True

    def poll(self, now: float | None = None) -> list[ChangeEvent]:
        """Take one snapshot and emit every change that has settled.

        Returns:
            Events emitted by this poll, also published to the broker if there is one.
        """

        events = self._collect(now)
        self._publish(events)
        return events

    def _collect(self, now: float | None = None) -> list[ChangeEvent]:
        if not self._primed:
            self.prime()
            return []

        try:
            current = self.snapshot()
        except OSError as e:
            logger.warning("File watcher error: %s", e)
            return []
        now = self._clock() if now is None else now

        for path in set(current) | set(self._known) | set(self._pending):
            signature = current.get(path)
            if signature == self._known.get(path):
                self._pending.pop(path, None)
                continue
            pending = self._pending.get(path)
            if pending is None or pending.signature != signature:
                self._pending[path] = _PendingChange(signature=signature, changed_at=now)

        events: list[ChangeEvent] = []
        for path in sorted(self._pending):
            pending = self._pending[path]
            if now - pending.changed_at < self.stability_threshold:
                continue
            previous = self._known.get(path)
            if pending.signature is None:
                self._known.pop(path, None)
            else:
                self._known[path] = pending.signature
            del self._pending[path]

            event = self._classify(path, existed=previous is not None, exists=pending.signature is not None)
            if event is not None:
                events.append(event)
        return events

    def _publish(self, events: list[ChangeEvent]) -> None:
        for event in events:
            logger.info("%s: %s", event.type.value, event.data.id)
            if self._broker is not None:
                self._broker.publish(event)

    def _classify(self, path: str, *, existed: bool, exists: bool) -> ChangeEvent | None:
        p = Path(path)
        plan_id = p.stem
        if p.suffix == PLAN_SUFFIX and p.parent == self._plans_dir:
            if not existed:
                kind = ChangeEventType.DOCUMENT_ADDED
            elif not exists:
                kind = ChangeEventType.DOCUMENT_REMOVED
            else:
                kind = ChangeEventType.DOCUMENT_CHANGED
        elif p.suffix == REVIEW_SUFFIX and p.parent == self._reviews_dir:
            kind = ChangeEventType.REVIEWS_CHANGED
        else:
            return None
        return ChangeEvent.build(kind, path=path, plan_id=plan_id)

    async def run(self) -> None:
        """Poll forever, publishing settled events."""

        if not self._primed:
            self.prime()
        logger.info("Watching for changes in: %s, %s", self._plans_dir, self._reviews_dir)
        while True:
            try:
                # Directory scans run off the loop; publishing stays on it.
                events = await asyncio.to_thread(self._collect)
            except Exception:
                log_exception(logger, "File watcher poll failed")
            else:
                self._publish(events)
            await asyncio.sleep(self.poll_interval)

    def start(self) -> asyncio.Task:
        """Start :meth:`run` as a task on the running event loop."""

        if self._task is None or self._task.done():
            self.prime()
            self._task = asyncio.create_task(self.run())
        return self._task

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None
