"""
PostgreSQL exclusion constraints for time windows.

The application checks for overlaps under a per-day lock before writing.
These constraints make the database reject an overlapping row even if a
writer bypasses that path. They are installed after ``migrate`` and are
skipped on other database backends.
"""

from __future__ import annotations

import logging

from django.db import connections  # type: ignore

logger = logging.getLogger(__name__)

BOOKING_OVERLAP_CONSTRAINT = "studio_booking_no_overlap"

WINDOW_RANGE_SQL = "tsrange(date + start_time, date + end_time, '[)')"


def _constraint_exists(cursor, name: str) -> bool:
    cursor.execute("SELECT 1 FROM pg_constraint WHERE conname = %s", [name])
    return cursor.fetchone() is not None


def install_exclusion_constraint(using: str, table: str, name: str, elements: str, where: str = "") -> bool:
    """Add ``EXCLUDE USING gist (elements) [WHERE (where)]`` to ``table`` once."""
    connection = connections[using]
    if connection.vendor != "postgresql":
        return False

    with connection.cursor() as cursor:
        if _constraint_exists(cursor, name):
            return False
        cursor.execute("CREATE EXTENSION IF NOT EXISTS btree_gist")
        statement = f"ALTER TABLE {connection.ops.quote_name(table)} ADD CONSTRAINT {name} EXCLUDE USING gist ({elements})"
        if where:
            statement += f" WHERE ({where})"
        cursor.execute(statement)

    logger.info(f"Installed exclusion constraint {name} on {table}")
    return True


def install_booking_constraint(sender, using: str = "default", **kwargs) -> None:
    """post_migrate receiver for the studio app."""
    from .domain.status import occupying_statuses
    from .models import Booking

    statuses = ", ".join(f"'{status}'" for status in occupying_statuses())
    install_exclusion_constraint(
        using,
        Booking._meta.db_table,
        BOOKING_OVERLAP_CONSTRAINT,
        f"{WINDOW_RANGE_SQL} WITH &&",
        where=f"is_blocked OR status IN ({statuses})",
    )
