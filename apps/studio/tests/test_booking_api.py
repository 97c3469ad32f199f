"""Integration tests for the studio booking API."""

from __future__ import annotations

from datetime import date, time, timedelta

from django.urls import reverse
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APITestCase

from apps.inventory.models import EquipmentItem, Reservation
from apps.notifications.models import Notification
from apps.studio.models import Booking, OperationsTask, PublicCalendarToken
from apps.users.models import CustomUser

DAY = date(2030, 1, 10)


class BookingAPITests(APITestCase):
    """Covers creation, conflicts, confirmation and holds."""

    def setUp(self) -> None:
        self.admin = CustomUser.objects.create_user(email="admin@example.com", role=CustomUser.RoleChoices.ADMIN)
        self.staff = CustomUser.objects.create_user(email="staff@example.com", role=CustomUser.RoleChoices.STAFF)
        self.customer = CustomUser.objects.create_user(email="client@example.com")
        self.camera = EquipmentItem.objects.create(name="Camera X", category="camera")
        self.light = EquipmentItem.objects.create(name="Softbox", category="lighting")
        self.client.force_authenticate(self.customer)
        self.list_url = reverse("booking-list")

    def _payload(self, start: str = "09:00", end: str = "12:00", **extra) -> dict:
        payload = {
            "date": str(DAY),
            "start_time": start,
            "end_time": end,
            "booking_kind": "photo-shoot",
            "event_name": "Lookbook shoot",
        }
        payload.update(extra)
        return payload

    def _create(self, **kwargs) -> Booking:
        values = {"date": DAY, "start_time": time(9), "end_time": time(12), "event_name": "Lookbook shoot"}
        values.update(kwargs)
        return Booking.objects.create(**values)

    def test_client_can_create_booking(self) -> None:
        with self.captureOnCommitCallbacks(execute=True):
            response = self.client.post(self.list_url, self._payload(), format="json")

        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)
        booking = Booking.objects.get()
        self.assertEqual(booking.booked_by, self.customer)
        self.assertEqual(booking.status, Booking.Status.PENDING)
        self.assertEqual(response.data["display_status"], "pending")
        self.assertEqual(response.data["title"], "Lookbook shoot")

    def test_new_booking_notifies_every_admin_once(self) -> None:
        with self.captureOnCommitCallbacks(execute=True):
            response = self.client.post(self.list_url, self._payload(), format="json")

        notification = Notification.objects.get()
        self.assertEqual(notification.user, self.admin)
        self.assertEqual(notification.kind, Notification.Kind.BOOKING_APPROVAL)
        self.assertEqual(notification.title, "New Venue Rental Inquiry")
        self.assertEqual(notification.message, 'Confirm Space & Gear Availability for "Lookbook shoot"')
        self.assertEqual(notification.data, {"bookingId": response.data["id"], "date": str(DAY)})

    def test_overlap_is_rejected_with_conflicting_titles(self) -> None:
        self._create(status=Booking.Status.CONFIRMED)

        response = self.client.post(self.list_url, self._payload("11:00", "13:00"), format="json")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST, response.data)
        self.assertEqual(response.data["conflicting"], ["Lookbook shoot"])
        self.assertEqual(Booking.objects.count(), 1)

    def test_adjacent_booking_is_accepted(self) -> None:
        self._create(status=Booking.Status.CONFIRMED)

        response = self.client.post(self.list_url, self._payload("12:00", "14:00"), format="json")

        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)

    def test_booking_cannot_cross_midnight(self) -> None:
        response = self.client.post(self.list_url, self._payload("22:00", "02:00"), format="json")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(Booking.objects.exists())

    def test_clients_cannot_confirm_on_create(self) -> None:
        response = self.client.post(self.list_url, self._payload(status="confirmed"), format="json")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("status", response.data)

    def test_check_conflicts_endpoint(self) -> None:
        existing = self._create(status=Booking.Status.CONFIRMED)
        url = reverse("booking-check-conflicts")

        overlapping = self.client.post(
            url, {"date": str(DAY), "start_time": "11:00", "end_time": "13:00"}, format="json"
        )
        touching = self.client.post(
            url, {"date": str(DAY), "start_time": "12:00", "end_time": "14:00"}, format="json"
        )
        itself = self.client.post(
            url,
            {"date": str(DAY), "start_time": "09:00", "end_time": "12:00", "exclude_id": existing.pk},
            format="json",
        )

        self.assertEqual(overlapping.data, {"has_conflict": True, "conflicting_titles": ["Lookbook shoot"]})
        self.assertEqual(touching.data, {"has_conflict": False, "conflicting_titles": []})
        self.assertFalse(itself.data["has_conflict"])

    def test_create_with_equipment_reserves_it(self) -> None:
        response = self.client.post(self.list_url, self._payload(equipment_ids=[self.camera.pk]), format="json")

        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)
        self.assertEqual(response.data["equipment"], [{"id": self.camera.pk, "name": "Camera X"}])
        reservation = Reservation.objects.get()
        self.assertEqual((reservation.start_time, reservation.end_time), (time(9), time(12)))

    def test_equipment_taken_at_write_time_returns_409(self) -> None:
        # Reservation written by a concurrent request that the serializer never saw.
        other = self._create(start_time=time(13), end_time=time(15), event_name="Other shoot")
        Reservation.objects.create(
            booking=other, equipment=self.camera, date=DAY, start_time=time(10), end_time=time(11)
        )

        response = self.client.post(
            self.list_url, self._payload("09:00", "12:00", equipment_ids=[self.camera.pk]), format="json"
        )

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT, response.data)
        self.assertEqual(response.data["unavailable"], [self.camera.pk])
        self.assertEqual(response.data["unavailable_names"], ["Camera X"])
        self.assertEqual(Booking.objects.count(), 1)

    def test_clients_only_see_their_own_bookings(self) -> None:
        mine = self._create(booked_by=self.customer)
        self._create(date=DAY + timedelta(days=1), booked_by=self.staff, event_name="Staff shoot")

        response = self.client.get(self.list_url)

        self.assertEqual([row["id"] for row in response.data], [mine.pk])

    def test_month_filter(self) -> None:
        self.client.force_authenticate(self.staff)
        january = self._create()
        self._create(date=date(2030, 2, 3))

        response = self.client.get(self.list_url, {"month": "2030-01"})

        self.assertEqual([row["id"] for row in response.data], [january.pk])

    def test_update_can_extend_into_its_own_window(self) -> None:
        booking = self._create(booked_by=self.customer)
        url = reverse("booking-detail", args=[booking.pk])

        response = self.client.patch(url, {"start_time": "08:00", "end_time": "12:30"}, format="json")

        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        booking.refresh_from_db()
        self.assertEqual(booking.start_time, time(8))

    def test_moving_a_booking_moves_its_reservations(self) -> None:
        booking = self._create(booked_by=self.customer)
        Reservation.objects.create(booking=booking, equipment=self.camera, date=DAY, start_time=time(9), end_time=time(12))
        url = reverse("booking-detail", args=[booking.pk])

        response = self.client.patch(
            url, {"date": str(DAY + timedelta(days=1)), "start_time": "14:00", "end_time": "16:00"}, format="json"
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        reservation = Reservation.objects.get()
        self.assertEqual(reservation.date, DAY + timedelta(days=1))
        self.assertEqual((reservation.start_time, reservation.end_time), (time(14), time(16)))

    def test_staff_confirmation_creates_operations_checklist_once(self) -> None:
        booking = self._create()
        self.client.force_authenticate(self.staff)
        url = reverse("booking-confirm", args=[booking.pk])

        with self.captureOnCommitCallbacks(execute=True):
            first = self.client.post(url)
        with self.captureOnCommitCallbacks(execute=True):
            second = self.client.post(url)

        self.assertEqual(first.data, {"status": "confirmed", "changed": True})
        self.assertEqual(second.data, {"status": "confirmed", "changed": False})
        tasks = OperationsTask.objects.filter(booking=booking).order_by("id")
        self.assertEqual(
            [task.title for task in tasks],
            [
                "Send Entry Instructions to Client",
                "Pre-shoot Equipment Check",
                "Post-shoot Space Reset & Cleaning",
            ],
        )
        self.assertTrue(all(task.assigned_to == self.staff and task.due_date == DAY for task in tasks))

    def test_clients_cannot_confirm(self) -> None:
        booking = self._create(booked_by=self.customer)

        response = self.client.post(reverse("booking-confirm", args=[booking.pk]))

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_blocked_slots_cannot_be_confirmed(self) -> None:
        hold = self._create(status=Booking.Status.BLOCKED, is_blocked=True)
        self.client.force_authenticate(self.staff)

        response = self.client.post(reverse("booking-confirm", args=[hold.pk]))

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        hold.refresh_from_db()
        self.assertEqual(hold.status, Booking.Status.BLOCKED)

    def test_clients_cannot_move_their_confirmed_booking_back_to_pending(self) -> None:
        booking = self._create(booked_by=self.customer, status=Booking.Status.CONFIRMED)

        response = self.client.patch(
            reverse("booking-detail", args=[booking.pk]), {"status": "pending"}, format="json"
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("status", response.data)
        booking.refresh_from_db()
        self.assertEqual(booking.status, Booking.Status.CONFIRMED)

    def test_clients_may_resend_an_unchanged_status(self) -> None:
        booking = self._create(booked_by=self.customer)

        response = self.client.patch(
            reverse("booking-detail", args=[booking.pk]), {"status": "pending", "notes": "Bring steamer"}, format="json"
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        self.assertEqual(response.data["notes"], "Bring steamer")

    def test_staff_cannot_downgrade_a_confirmed_booking(self) -> None:
        booking = self._create(status=Booking.Status.CONFIRMED)
        self.client.force_authenticate(self.staff)

        response = self.client.patch(
            reverse("booking-detail", args=[booking.pk]), {"status": "pending"}, format="json"
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        booking.refresh_from_db()
        self.assertEqual(booking.status, Booking.Status.CONFIRMED)

    def test_releasing_a_hold_makes_it_a_pending_booking(self) -> None:
        hold = self._create(status=Booking.Status.BLOCKED, is_blocked=True)
        self.client.force_authenticate(self.staff)

        response = self.client.patch(reverse("booking-detail", args=[hold.pk]), {"is_blocked": False}, format="json")

        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        hold.refresh_from_db()
        self.assertFalse(hold.is_blocked)
        self.assertEqual(hold.status, Booking.Status.PENDING)
        self.assertEqual(response.data["display_status"], "pending")

    def test_blocking_releases_equipment(self) -> None:
        booking = self._create()
        Reservation.objects.create(booking=booking, equipment=self.camera, date=DAY, start_time=time(9), end_time=time(12))
        self.client.force_authenticate(self.staff)

        response = self.client.post(reverse("booking-block", args=[booking.pk]))

        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        self.assertEqual(response.data["display_status"], "blocked")
        self.assertFalse(Reservation.objects.exists())

    def test_holds_cannot_take_equipment(self) -> None:
        self.client.force_authenticate(self.staff)

        response = self.client.post(
            self.list_url, self._payload(is_blocked=True, equipment_ids=[self.camera.pk]), format="json"
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("equipment_ids", response.data)

    def test_staff_hold_sends_no_admin_notification(self) -> None:
        self.client.force_authenticate(self.staff)

        with self.captureOnCommitCallbacks(execute=True):
            response = self.client.post(self.list_url, self._payload(is_blocked=True), format="json")

        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)
        self.assertEqual(response.data["status"], "blocked")
        self.assertFalse(Notification.objects.exists())

    def test_reservations_action(self) -> None:
        booking = self._create(booked_by=self.customer)
        url = reverse("booking-reservations", args=[booking.pk])

        reserved = self.client.post(url, {"item_ids": [self.camera.pk, self.light.pk]}, format="json")
        released = self.client.delete(url, {"item_ids": [self.light.pk]}, format="json")
        listed = self.client.get(url)

        self.assertEqual(reserved.status_code, status.HTTP_201_CREATED, reserved.data)
        self.assertEqual(released.data, {"released": 1})
        self.assertEqual([row["equipment"] for row in listed.data], [self.camera.pk])

    def test_only_staff_can_delete(self) -> None:
        booking = self._create(booked_by=self.customer)
        url = reverse("booking-detail", args=[booking.pk])

        self.assertEqual(self.client.delete(url).status_code, status.HTTP_403_FORBIDDEN)
        self.client.force_authenticate(self.staff)
        self.assertEqual(self.client.delete(url).status_code, status.HTTP_204_NO_CONTENT)


class PublicCalendarTests(APITestCase):
    def setUp(self) -> None:
        self.staff = CustomUser.objects.create_user(email="staff@example.com", role=CustomUser.RoleChoices.STAFF)
        Booking.objects.create(
            date=DAY, start_time=time(9), end_time=time(12), event_name="Secret launch", status=Booking.Status.CONFIRMED
        )

    def test_staff_issue_tokens_and_anyone_reads_busy_windows(self) -> None:
        self.client.force_authenticate(self.staff)
        created = self.client.post(reverse("public-calendar-token-list"), {"label": "Website"}, format="json")
        self.assertEqual(created.status_code, status.HTTP_201_CREATED, created.data)
        self.client.force_authenticate(None)

        response = self.client.get(
            reverse("public-calendar", args=[created.data["token"]]), {"month": "2030-01"}
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(
            response.data,
            {"month": "2030-01", "busy": [{"date": "2030-01-10", "start_time": "09:00", "end_time": "12:00"}]},
        )
        self.assertNotIn("Secret launch", str(response.content))

    def test_expired_token_is_not_found(self) -> None:
        token = PublicCalendarToken.objects.create(expires_at=timezone.now() - timedelta(minutes=1))

        response = self.client.get(reverse("public-calendar", args=[token.token]))

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_bad_month_is_rejected(self) -> None:
        token = PublicCalendarToken.objects.create()

        response = self.client.get(reverse("public-calendar", args=[token.token]), {"month": "2030-13"})

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_clients_cannot_issue_tokens(self) -> None:
        customer = CustomUser.objects.create_user(email="client@example.com")
        self.client.force_authenticate(customer)

        response = self.client.post(reverse("public-calendar-token-list"), {"label": "Mine"}, format="json")

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
