"""
Domain Events and the In-Memory Event Bus

Modules publish domain events after a successful write; other modules
subscribe by event type. Delivery is in-process and best effort: a failing
handler is logged and never affects the publisher.
"""

import inspect
import logging
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Union

logger = logging.getLogger(__name__)


@dataclass
class DomainEvent:
    """Something that happened to an aggregate."""
    aggregate_id: str
    aggregate_type: str
    event_type: str
    data: Dict[str, Any] = field(default_factory=dict)
    event_version: int = 1
    event_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    occurred_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event_id": self.event_id,
            "aggregate_id": self.aggregate_id,
            "aggregate_type": self.aggregate_type,
            "event_type": self.event_type,
            "event_version": self.event_version,
            "occurred_at": self.occurred_at.isoformat(),
            "data": self.data,
        }


EventHandler = Callable[[DomainEvent], Union[None, Awaitable[None]]]


class EventBus(ABC):
    """Publish/subscribe contract handed to modules."""

    @abstractmethod
    def subscribe(self, event_type: str, handler: EventHandler) -> None:
        pass

    @abstractmethod
    async def publish(self, event: DomainEvent) -> None:
        pass

    async def publish_all(self, events: Iterable[DomainEvent]) -> None:
        for event in events:
            await self.publish(event)


class InMemoryEventBus(EventBus):
    """
    Event bus that dispatches to handlers registered in this process.

    Handlers may be plain functions or coroutine functions and run in
    subscription order.
    """

    def __init__(self):
        self._handlers: Dict[str, List[EventHandler]] = {}

    def subscribe(self, event_type: str, handler: EventHandler) -> None:
        self._handlers.setdefault(event_type, []).append(handler)
        logger.debug(f"Handler subscribed to {event_type}: {getattr(handler, '__name__', handler)}")

    def unsubscribe(self, event_type: str, handler: EventHandler) -> bool:
        handlers = self._handlers.get(event_type, [])
        if handler not in handlers:
            return False
        handlers.remove(handler)
        return True

    async def publish(self, event: DomainEvent) -> None:
        for handler in list(self._handlers.get(event.event_type, [])):
            try:
                result = handler(event)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.error(f"Error handling event {event.event_type} ({event.event_id}): {e}")

    def subscriber_count(self, event_type: str) -> int:
        return len(self._handlers.get(event_type, []))

    def event_types(self) -> List[str]:
        return list(self._handlers.keys())

    def clear(self) -> None:
        """Remove all handlers."""
        self._handlers.clear()


def log_event_handler(event: DomainEvent) -> None:
    """Handler that logs every event it receives."""
    logger.info(f"Event published: {event.event_type} - aggregate {event.aggregate_type}:{event.aggregate_id}")
