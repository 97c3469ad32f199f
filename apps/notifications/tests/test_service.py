import pytest
from django.urls import reverse
from rest_framework.test import APIClient

from apps.notifications.models import Notification
from apps.notifications.services import create_in_app_notification, notify_role
from apps.users.models import CustomUser


@pytest.mark.django_db
def test_dedupe_key_makes_notification_idempotent():
    user = CustomUser.objects.create_user(email="staff@example.com", role=CustomUser.RoleChoices.STAFF)

    first = create_in_app_notification(
        user, "Document Signed", "Client signed", kind=Notification.Kind.DOCUMENT_SIGNED, dedupe_key="signed:env-1"
    )
    second = create_in_app_notification(
        user, "Document Signed", "Client signed", kind=Notification.Kind.DOCUMENT_SIGNED, dedupe_key="signed:env-1"
    )

    assert first is not None
    assert first.pk == second.pk
    assert Notification.objects.filter(user=user).count() == 1


@pytest.mark.django_db
def test_notifications_without_key_are_not_deduplicated():
    user = CustomUser.objects.create_user(email="staff@example.com", role=CustomUser.RoleChoices.STAFF)

    create_in_app_notification(user, "Hello", "One")
    create_in_app_notification(user, "Hello", "One")

    assert Notification.objects.filter(user=user).count() == 2


@pytest.mark.django_db
def test_notify_role_reaches_only_matching_active_users():
    admin = CustomUser.objects.create_user(email="admin@example.com", role=CustomUser.RoleChoices.ADMIN)
    CustomUser.objects.create_user(email="staff@example.com", role=CustomUser.RoleChoices.STAFF)
    CustomUser.objects.create_user(email="gone@example.com", role=CustomUser.RoleChoices.ADMIN, is_active=False)

    notifications = notify_role(
        [CustomUser.RoleChoices.ADMIN],
        "New Venue Rental Inquiry",
        "Confirm Space & Gear Availability",
        kind=Notification.Kind.BOOKING_APPROVAL,
        data={"bookingId": 1},
    )

    assert [n.user_id for n in notifications] == [admin.pk]
    assert notifications[0].data == {"bookingId": 1}


@pytest.mark.django_db
def test_mark_all_read_only_touches_own_notifications():
    user = CustomUser.objects.create_user(email="me@example.com")
    other = CustomUser.objects.create_user(email="other@example.com")
    create_in_app_notification(user, "A", "a")
    create_in_app_notification(other, "B", "b")

    client = APIClient()
    client.force_authenticate(user)
    response = client.post(reverse("notification-mark-all-read"))

    assert response.status_code == 200
    assert response.data == {"updated": 1}
    assert Notification.objects.get(user=other).is_read is False
