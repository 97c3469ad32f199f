"""Permission classes shared by the studio-facing APIs."""

from __future__ import annotations

from rest_framework import permissions  # type: ignore


def is_studio_staff(user) -> bool:
    if not user or not user.is_authenticated:
        return False
    if getattr(user, "is_superuser", False):
        return True
    return hasattr(user, "is_staff_member") and user.is_staff_member()


class IsStudioStaff(permissions.BasePermission):
    """Administrators and staff run the studio calendar."""

    def has_permission(self, request, view):  # type: ignore
        return is_studio_staff(request.user)


class IsBookingStakeholder(permissions.BasePermission):
    """Staff see every booking; anyone else only the bookings they made."""

    def has_object_permission(self, request, view, obj):  # type: ignore
        user = request.user
        if not user.is_authenticated:
            return False
        if is_studio_staff(user):
            return True
        return obj.booked_by_id == user.id
