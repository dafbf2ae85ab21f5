"""Event store implementations."""

from honeytrap.sensor.store.base import EventStore
from honeytrap.sensor.store.memory import MAX_CAPACITY, BoundedEventStore, DuplicateEventError

__all__ = ["MAX_CAPACITY", "BoundedEventStore", "DuplicateEventError", "EventStore"]
