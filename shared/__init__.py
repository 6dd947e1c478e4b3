"""
Shared Kernel

Domain errors, events, the aggregate base class, configuration and HTTP
helpers used by every business module.
"""

from .aggregate import AggregateRoot
from .domain_errors import BusinessRuleError, DomainError, NotFoundError, ValidationError, ValidationErrors
from .events import DomainEvent, EventBus, InMemoryEventBus

__all__ = [
    "AggregateRoot",
    "DomainError",
    "NotFoundError",
    "ValidationError",
    "ValidationErrors",
    "BusinessRuleError",
    "DomainEvent",
    "EventBus",
    "InMemoryEventBus",
]
