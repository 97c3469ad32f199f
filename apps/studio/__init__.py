"""Studio app: bookings of the studio space, holds and the staff checklist.

Owns the booking store, the conflict detector and the temporal status
resolver. Equipment reservations live in ``apps.inventory``.
"""
