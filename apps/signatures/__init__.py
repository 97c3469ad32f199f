"""Signatures app: the studio rules e-signature workflow that confirms bookings."""
