"""Views for the signature workflow: provider webhook and staff API."""

import json
import logging

from django.http import JsonResponse
from django.views.decorators.csrf import csrf_exempt
from rest_framework import mixins, permissions, status, viewsets  # type: ignore
from rest_framework.decorators import action  # type: ignore
from rest_framework.response import Response  # type: ignore

from apps.studio.permissions import IsStudioStaff

from .esign_client import SignatureProviderError
from .gate import handle_webhook_event, outstanding_requests, refresh_status, request_signature
from .models import SignatureRequest
from .serializers import SignatureRequestCreateSerializer, SignatureRequestSerializer
from .webhook_security import WebhookAuthenticationError, verify_webhook

logger = logging.getLogger(__name__)


@csrf_exempt
def esign_webhook(request):
    """
    Envelope status events from the e-signature provider.

    Accepts ``{"event": ..., "envelopeId": ...}`` and the provider's
    ``{"event": ..., "data": {"envelopeId": ...}}`` shape.
    """
    if request.method != 'POST':
        return JsonResponse({'status': 'error', 'message': 'Method not allowed'}, status=405)

    try:
        verify_webhook(request)
    except WebhookAuthenticationError as e:
        logger.error(f"E-signature webhook rejected: {e}")
        return JsonResponse({'status': 'error', 'message': 'Invalid signature'}, status=401)

    try:
        data = json.loads(request.body)
    except json.JSONDecodeError:
        logger.error("E-signature webhook: invalid JSON")
        return JsonResponse({'status': 'error', 'message': 'Invalid JSON'}, status=400)

    if not isinstance(data, dict) or not isinstance(data.get('data') or {}, dict):
        logger.error(f"E-signature webhook with unexpected payload shape: {data}")
        return JsonResponse({'status': 'error', 'message': 'Invalid payload'}, status=400)

    event_type = data.get('event') or data.get('eventType')
    envelope_id = data.get('envelopeId') or (data.get('data') or {}).get('envelopeId')
    if not event_type or not envelope_id:
        logger.error(f"E-signature webhook without event or envelopeId: {data}")
        return JsonResponse({'status': 'error', 'message': 'event and envelopeId are required'}, status=400)

    logger.info(f"E-signature webhook received: {event_type} {envelope_id}")
    result = handle_webhook_event(event_type, envelope_id)
    return JsonResponse({'status': 'success', **result}, status=200)


class SignatureRequestViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    mixins.CreateModelMixin,
    viewsets.GenericViewSet,
):
    """Staff view of signature requests."""

    queryset = SignatureRequest.objects.select_related("booking", "client").all()
    serializer_class = SignatureRequestSerializer
    permission_classes = [permissions.IsAuthenticated, IsStudioStaff]
    filterset_fields = ["status", "booking", "document_type"]

    def get_serializer_class(self):
        if self.action == "create":
            return SignatureRequestCreateSerializer
        return SignatureRequestSerializer

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        try:
            signature_request = request_signature(
                data["booking"],
                data["recipient_email"],
                data.get("recipient_name", ""),
                created_by=request.user,
                document_type=data.get("document_type", "studio_rules"),
            )
        except SignatureProviderError as e:
            return Response({"detail": str(e)}, status=status.HTTP_502_BAD_GATEWAY)
        return Response(SignatureRequestSerializer(signature_request).data, status=status.HTTP_201_CREATED)

    @action(detail=False, methods=["get"])
    def pending(self, request):
        serializer = SignatureRequestSerializer(outstanding_requests(), many=True)
        return Response(serializer.data)

    @action(detail=True, methods=["post"])
    def refresh(self, request, pk=None):
        signature_request = self.get_object()
        try:
            signature_request = refresh_status(signature_request.envelope_id)
        except SignatureProviderError as e:
            return Response({"detail": str(e)}, status=status.HTTP_502_BAD_GATEWAY)
        return Response(SignatureRequestSerializer(signature_request).data)
