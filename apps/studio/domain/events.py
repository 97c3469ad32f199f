"""
Studio Domain Events

Events that represent things that have happened to studio bookings.
These are published after successful transaction commits.
"""

from dataclasses import dataclass
from datetime import date, time

from shared.domain.base import DomainEvent


@dataclass
class BookingCreated(DomainEvent):
    """
    Event: A booking request was written to the studio calendar

    Triggers:
    - Notify administrators that a venue inquiry awaits approval
    - Request the studio rules signature when recipient details were given
    """
    booking_id: int
    date: date
    start_time: time
    end_time: time
    title: str
    created_by_id: int | None = None
    client_id: int | None = None
    recipient_email: str = ""
    recipient_name: str = ""


@dataclass
class BookingConfirmed(DomainEvent):
    """
    Event: Booking moved to confirmed (manually or by a completed signature)

    Triggers:
    - Create the staff operations checklist
    """
    booking_id: int
    source: str = "manual"
