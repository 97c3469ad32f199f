"""Signature event handlers."""

from shared.application.message_bus import message_bus

from apps.studio.domain.events import BookingCreated

from .gate import request_signature_for_new_booking


def register() -> None:
    message_bus.register_event_handler(BookingCreated, request_signature_for_new_booking)
