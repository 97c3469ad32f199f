from datetime import date, time
from unittest.mock import MagicMock, patch

import requests
from django.test import TestCase, override_settings
from django.urls import reverse
from rest_framework.test import APITestCase

from apps.clients.models import Client
from apps.notifications.models import Notification
from apps.signatures import esign_client
from apps.signatures.esign_client import SignatureProviderError
from apps.signatures.gate import request_signature, refresh_status
from apps.signatures.models import SignatureRequest
from apps.signatures.tasks import refresh_outstanding_envelopes
from apps.studio.models import Booking
from apps.users.models import CustomUser

GATE_MODULE_PATH = "apps.signatures.gate"


def make_booking(**kwargs):
    values = {
        "date": date(2030, 3, 4),
        "start_time": time(10, 0),
        "end_time": time(12, 0),
        "event_name": "Catalogue shoot",
    }
    values.update(kwargs)
    return Booking.objects.create(**values)


class SignatureOnBookingCreationTest(APITestCase):
    def setUp(self):
        self.user = CustomUser.objects.create_user(email="client@example.com", password="pass")
        self.client.force_authenticate(self.user)
        self.url = reverse("booking-list")
        self.payload = {
            "date": "2030-03-04",
            "start_time": "10:00",
            "end_time": "12:00",
            "booking_kind": "photo-shoot",
            "event_name": "Catalogue shoot",
            "recipient_email": "client@example.com",
            "recipient_name": "Casey Client",
        }

    def test_new_booking_with_contact_gets_sent_signature_request(self):
        with self.captureOnCommitCallbacks(execute=True):
            response = self.client.post(self.url, self.payload, format="json")

        self.assertEqual(response.status_code, 201)
        signature_request = SignatureRequest.objects.get(booking_id=response.data["id"])
        self.assertEqual(signature_request.status, SignatureRequest.Status.SENT)
        self.assertEqual(signature_request.recipient_email, "client@example.com")
        self.assertEqual(signature_request.created_by, self.user)
        self.assertEqual(Booking.objects.get(pk=response.data["id"]).status, Booking.Status.PENDING)

    def test_booking_without_contact_gets_no_signature_request(self):
        payload = {k: v for k, v in self.payload.items() if not k.startswith("recipient_")}
        with self.captureOnCommitCallbacks(execute=True):
            response = self.client.post(self.url, payload, format="json")

        self.assertEqual(response.status_code, 201)
        self.assertFalse(SignatureRequest.objects.exists())

    @patch(f"{GATE_MODULE_PATH}.create_envelope")
    def test_provider_failure_keeps_the_booking(self, mock_create_envelope):
        mock_create_envelope.side_effect = SignatureProviderError("provider down")

        with self.assertLogs("apps.signatures.gate", level="ERROR"):
            with self.captureOnCommitCallbacks(execute=True):
                response = self.client.post(self.url, self.payload, format="json")

        self.assertEqual(response.status_code, 201)
        booking = Booking.objects.get(pk=response.data["id"])
        self.assertEqual(booking.status, Booking.Status.PENDING)
        self.assertFalse(SignatureRequest.objects.exists())


class RequestSignatureTest(TestCase):
    def test_new_request_supersedes_outstanding_ones(self):
        booking = make_booking()
        first = request_signature(booking, "client@example.com", "Casey")
        second = request_signature(booking, "client@example.com", "Casey")

        first.refresh_from_db()
        self.assertEqual(first.superseded_by, second)
        self.assertIsNone(second.superseded_by)
        self.assertEqual(SignatureRequest.objects.count(), 2)

    def test_sender_is_notified_when_client_is_linked(self):
        staff = CustomUser.objects.create_user(email="staff@example.com", role=CustomUser.RoleChoices.STAFF)
        client = Client.objects.create(name="Casey", email="client@example.com")
        booking = make_booking(client=client)

        signature_request = request_signature(booking, "client@example.com", "Casey", created_by=staff)

        self.assertEqual(signature_request.client, client)
        notification = Notification.objects.get(user=staff)
        self.assertEqual(notification.kind, Notification.Kind.SIGNATURE_SENT)
        self.assertEqual(notification.data["envelopeId"], signature_request.envelope_id)


class RefreshStatusTest(TestCase):
    def setUp(self):
        self.booking = make_booking()
        self.signature_request = SignatureRequest.objects.create(
            booking=self.booking,
            envelope_id="env-456",
            status=SignatureRequest.Status.SENT,
            recipient_email="client@example.com",
        )

    @patch(f"{GATE_MODULE_PATH}.get_envelope_status", return_value="delivered")
    def test_delivered_maps_to_viewed(self, mock_status):
        result = refresh_status("env-456")

        mock_status.assert_called_once_with("env-456")
        self.assertEqual(result.status, SignatureRequest.Status.VIEWED)
        self.booking.refresh_from_db()
        self.assertEqual(self.booking.status, Booking.Status.PENDING)

    @patch(f"{GATE_MODULE_PATH}.get_envelope_status", return_value="completed")
    def test_completed_confirms_the_booking(self, mock_status):
        result = refresh_status("env-456")

        self.assertEqual(result.status, SignatureRequest.Status.SIGNED)
        self.booking.refresh_from_db()
        self.assertEqual(self.booking.status, Booking.Status.CONFIRMED)

    @patch(f"{GATE_MODULE_PATH}.get_envelope_status", return_value="completed")
    def test_periodic_task_refreshes_outstanding_requests(self, mock_status):
        superseded = SignatureRequest.objects.create(
            booking=self.booking,
            envelope_id="env-old",
            status=SignatureRequest.Status.SENT,
            recipient_email="client@example.com",
            superseded_by=self.signature_request,
        )

        result = refresh_outstanding_envelopes()

        self.assertEqual(result, {"refreshed": 1, "failed": 0})
        mock_status.assert_called_once_with("env-456")
        superseded.refresh_from_db()
        self.assertEqual(superseded.status, SignatureRequest.Status.SENT)

    @patch(f"{GATE_MODULE_PATH}.get_envelope_status", side_effect=SignatureProviderError("timeout"))
    def test_periodic_task_counts_failures(self, mock_status):
        result = refresh_outstanding_envelopes()

        self.assertEqual(result, {"refreshed": 0, "failed": 1})


@override_settings(
    DEBUG=False,
    ESIGN_API_BASE_URL="https://esign.example.com/restapi",
    ESIGN_ACCOUNT_ID="acc-1",
    ESIGN_ACCESS_TOKEN="token-1",
    ESIGN_TEMPLATE_ID="tpl-1",
)
class EsignClientTest(TestCase):
    @patch("apps.signatures.esign_client.requests.post")
    def test_create_envelope_posts_template_roles(self, mock_post):
        mock_post.return_value = MagicMock(status_code=201)
        mock_post.return_value.json.return_value = {"envelopeId": "env-789", "status": "sent"}

        result = esign_client.create_envelope("client@example.com", "Casey", booking_id=7)

        self.assertEqual(result, {"envelope_id": "env-789", "status": "sent"})
        url = mock_post.call_args.args[0]
        self.assertEqual(url, "https://esign.example.com/restapi/v2.1/accounts/acc-1/envelopes")
        payload = mock_post.call_args.kwargs["json"]
        self.assertEqual(payload["templateId"], "tpl-1")
        self.assertEqual(payload["templateRoles"][0]["email"], "client@example.com")
        self.assertEqual(mock_post.call_args.kwargs["headers"]["Authorization"], "Bearer token-1")

    @patch("apps.signatures.esign_client.requests.post")
    def test_http_errors_become_provider_errors(self, mock_post):
        mock_post.side_effect = requests.exceptions.ConnectionError("refused")

        with self.assertRaises(SignatureProviderError):
            esign_client.create_envelope("client@example.com")

    @patch("apps.signatures.esign_client.requests.get")
    def test_get_envelope_status(self, mock_get):
        mock_get.return_value = MagicMock(status_code=200)
        mock_get.return_value.json.return_value = {"status": "completed"}

        self.assertEqual(esign_client.get_envelope_status("env-789"), "completed")

    @override_settings(ESIGN_ACCESS_TOKEN="")
    @patch("apps.signatures.esign_client.requests.post")
    def test_missing_credentials_emulate_envelopes(self, mock_post):
        result = esign_client.create_envelope("client@example.com")

        mock_post.assert_not_called()
        self.assertTrue(result["envelope_id"].startswith("emulated-"))
        self.assertEqual(result["status"], "sent")


class SignatureRequestApiTest(APITestCase):
    def setUp(self):
        self.staff = CustomUser.objects.create_user(email="staff@example.com", role=CustomUser.RoleChoices.STAFF)
        self.customer = CustomUser.objects.create_user(email="client@example.com")
        self.booking = make_booking()

    def test_pending_lists_outstanding_requests_for_staff(self):
        outstanding = SignatureRequest.objects.create(
            booking=self.booking, envelope_id="env-1", status=SignatureRequest.Status.SENT, recipient_email="a@example.com"
        )
        SignatureRequest.objects.create(
            booking=self.booking, envelope_id="env-2", status=SignatureRequest.Status.SIGNED, recipient_email="a@example.com"
        )
        self.client.force_authenticate(self.staff)

        response = self.client.get(reverse("signature-request-pending"))

        self.assertEqual(response.status_code, 200)
        self.assertEqual([row["id"] for row in response.data], [outstanding.pk])
        self.assertEqual(response.data[0]["booking_title"], "Catalogue shoot")

    def test_clients_cannot_list_signature_requests(self):
        self.client.force_authenticate(self.customer)

        response = self.client.get(reverse("signature-request-pending"))

        self.assertEqual(response.status_code, 403)

    def test_staff_can_send_a_request(self):
        self.client.force_authenticate(self.staff)

        response = self.client.post(
            reverse("signature-request-list"),
            {"booking": self.booking.pk, "recipient_email": "client@example.com", "recipient_name": "Casey"},
            format="json",
        )

        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.data["status"], SignatureRequest.Status.SENT)
        self.assertEqual(SignatureRequest.objects.get().created_by, self.staff)

    @patch(f"{GATE_MODULE_PATH}.get_envelope_status", return_value="completed")
    def test_refresh_action(self, mock_status):
        signature_request = SignatureRequest.objects.create(
            booking=self.booking, envelope_id="env-3", status=SignatureRequest.Status.SENT, recipient_email="a@example.com"
        )
        self.client.force_authenticate(self.staff)

        response = self.client.post(reverse("signature-request-refresh", args=[signature_request.pk]))

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["status"], SignatureRequest.Status.SIGNED)
