"""Inventory app: studio equipment and its time-scoped reservations."""
