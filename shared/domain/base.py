"""
Base Domain Classes

Building blocks used by the domain layer of every app:
- ValueObject: Immutable objects compared by value
- DomainEvent: Something that happened and that other contexts react to
"""

from abc import ABC
from dataclasses import asdict, dataclass, field
from datetime import date, datetime, time
from uuid import UUID, uuid4


@dataclass(frozen=True)
class ValueObject(ABC):
    """
    Base class for value objects

    Value objects are immutable and have no identity.
    Two value objects are equal if all their attributes are equal.
    """
    pass


@dataclass
class DomainEvent:
    """
    Base class for domain events

    Events are collected during a unit of work and handed to the
    message bus only after the surrounding transaction commits.
    """
    event_id: UUID = field(default_factory=uuid4, kw_only=True)
    occurred_at: datetime = field(default_factory=datetime.now, kw_only=True)

    def to_dict(self) -> dict:
        """Convert event to a JSON-friendly dictionary"""
        payload = {}
        for key, value in asdict(self).items():
            if isinstance(value, (UUID, date, datetime, time)):
                value = str(value) if isinstance(value, UUID) else value.isoformat()
            payload[key] = value
        payload['event_type'] = self.__class__.__name__
        return payload
