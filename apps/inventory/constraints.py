"""Database guard against double-allocated equipment (PostgreSQL only)."""

from __future__ import annotations

from apps.studio.constraints import WINDOW_RANGE_SQL, install_exclusion_constraint

RESERVATION_OVERLAP_CONSTRAINT = "inventory_reservation_no_overlap"


def install_reservation_constraint(sender, using: str = "default", **kwargs) -> None:
    from .models import Reservation

    install_exclusion_constraint(
        using,
        Reservation._meta.db_table,
        RESERVATION_OVERLAP_CONSTRAINT,
        f"equipment_id WITH =, {WINDOW_RANGE_SQL} WITH &&",
    )
