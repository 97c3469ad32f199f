"""
Studio event handlers.

Run after the booking transaction has committed. Failures are logged by
the message bus and never undo the booking itself.
"""

from __future__ import annotations

import logging

from shared.application.message_bus import message_bus

from .domain.events import BookingConfirmed, BookingCreated

logger = logging.getLogger(__name__)


def notify_admins_of_new_booking(event: BookingCreated) -> None:
    from apps.notifications.models import Notification
    from apps.notifications.services import notify_role
    from apps.users.models import CustomUser

    notify_role(
        [CustomUser.RoleChoices.ADMIN],
        "New Venue Rental Inquiry",
        f'Confirm Space & Gear Availability for "{event.title}"',
        kind=Notification.Kind.BOOKING_APPROVAL,
        data={"bookingId": event.booking_id, "date": event.date.isoformat()},
        dedupe_key=f"booking_approval:{event.booking_id}",
    )


def create_operations_checklist(event: BookingConfirmed) -> None:
    from .models import Booking
    from .services import ensure_operations_tasks

    booking = Booking.objects.filter(pk=event.booking_id).first()
    if booking is None:
        logger.warning(f"Booking {event.booking_id} vanished before its checklist was created")
        return
    ensure_operations_tasks(booking)


def register() -> None:
    message_bus.register_event_handler(BookingCreated, notify_admins_of_new_booking)
    message_bus.register_event_handler(BookingConfirmed, create_operations_checklist)
