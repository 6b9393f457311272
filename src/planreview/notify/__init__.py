"""Change notification: filesystem watcher and subscriber fan-out."""

from __future__ import annotations

from planreview.notify.broker import EventBroker, Subscription
from planreview.notify.watcher import DirectoryWatcher

__all__ = ["DirectoryWatcher", "EventBroker", "Subscription"]
