"""
Aggregate Root base class
"""

import uuid
from datetime import datetime, timezone
from typing import List, Optional

from .events import DomainEvent


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class AggregateRoot:
    """
    Base for aggregates with an optimistic concurrency version.

    ``version`` is bumped by every state change; ``persisted_version`` is
    the version last read from or written to storage and is what an update
    must match.
    """

    aggregate_type = "aggregate"

    def __init__(self, id: Optional[str] = None, version: int = 0,
                 created_at: Optional[datetime] = None, updated_at: Optional[datetime] = None):
        now = utc_now()
        self.id = id or str(uuid.uuid4())
        self.version = version
        self.persisted_version = version
        self.created_at = created_at or now
        self.updated_at = updated_at or now
        self._uncommitted_events: List[DomainEvent] = []

    def increment_version(self) -> None:
        self.version += 1
        self.updated_at = utc_now()

    def add_event(self, event_type: str, data: dict) -> DomainEvent:
        event = DomainEvent(
            aggregate_id=self.id,
            aggregate_type=self.aggregate_type,
            event_type=event_type,
            data=data,
        )
        self._uncommitted_events.append(event)
        return event

    def get_uncommitted_events(self) -> List[DomainEvent]:
        return list(self._uncommitted_events)

    def clear_uncommitted_events(self) -> None:
        self._uncommitted_events.clear()

    def mark_persisted(self) -> None:
        self.persisted_version = self.version
