"""
Unit of Work Pattern

Wraps a database transaction and makes sure domain events recorded inside
it reach the message bus only after the transaction has committed.
"""

from typing import List
import logging

from django.db import transaction

from shared.domain.base import DomainEvent

logger = logging.getLogger(__name__)


class DjangoUnitOfWork:
    """
    Django implementation of Unit of Work

    Usage:
        with DjangoUnitOfWork() as uow:
            booking = Booking.objects.create(...)
            uow.record(BookingCreated(booking_id=booking.pk, ...))
        # BookingCreated handlers run after COMMIT

    Nested units of work join the outer transaction; their events are still
    deferred until the outermost commit through ``transaction.on_commit``.
    """

    def __init__(self, using: str | None = None):
        self.using = using
        self._events: List[DomainEvent] = []
        self._transaction = None

    def __enter__(self):
        self._transaction = transaction.atomic(using=self.using)
        self._transaction.__enter__()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        try:
            if exc_type is None:
                self.commit()
            else:
                self.rollback()
        finally:
            self._transaction.__exit__(exc_type, exc_val, exc_tb)

    def record(self, event: DomainEvent):
        """Queue an event for publishing after commit"""
        self._events.append(event)

    def commit(self):
        """
        Schedule publishing of the collected events

        ``transaction.on_commit`` drops the callback if the transaction
        is rolled back later on (for example by an outer atomic block).
        """
        events = self._events.copy()
        self._events.clear()

        logger.debug(f"Committing unit of work with {len(events)} events")
        if events:
            transaction.on_commit(lambda: self._publish_events(events), using=self.using)

    def rollback(self):
        """Discard the collected events"""
        if self._events:
            logger.warning(f"Rolling back unit of work, discarding {len(self._events)} events")
        self._events.clear()

    @staticmethod
    def _publish_events(events: List[DomainEvent]):
        from shared.application.message_bus import message_bus

        logger.info(f"Publishing {len(events)} domain events after commit")
        message_bus.publish_events(events)
