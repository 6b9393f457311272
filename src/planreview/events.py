"""Change events pushed to subscribers.

Events only identify what changed; they never carry the new state. Subscribers re-fetch the
plan list or the plan itself when they receive one.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel


class ChangeEventType(str, Enum):
    """Kinds of change the watcher reports."""

    DOCUMENT_CHANGED = "document:changed"
    DOCUMENT_ADDED = "document:added"
    DOCUMENT_REMOVED = "document:removed"
    REVIEWS_CHANGED = "reviews:changed"


class ChangeEventData(BaseModel):
    path: str
    id: str


class ChangeEvent(BaseModel):
    """Envelope sent on the push channel: ``{"type": ..., "data": {"path": ..., "id": ...}}``."""

    type: ChangeEventType
    data: ChangeEventData

    @classmethod
    def build(cls, event_type: ChangeEventType, *, path: str, plan_id: str) -> "ChangeEvent":
        return cls(type=event_type, data=ChangeEventData(path=path, id=plan_id))

    def to_json(self) -> str:
        return self.model_dump_json()
