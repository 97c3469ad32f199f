"""API views for the inventory domain."""

from __future__ import annotations

from rest_framework import permissions, status, viewsets  # type: ignore
from rest_framework.response import Response  # type: ignore
from rest_framework.views import APIView  # type: ignore

from apps.studio.permissions import IsStudioStaff

from .models import EquipmentItem
from .serializers import AvailabilityCheckSerializer, AvailabilityReportSerializer, EquipmentItemSerializer
from .services import check_availability


class EquipmentItemViewSet(viewsets.ModelViewSet):
    """Equipment catalogue; writes are limited to studio staff."""

    queryset = EquipmentItem.objects.all()
    serializer_class = EquipmentItemSerializer
    filterset_fields = ["status", "category"]

    def get_permissions(self):  # type: ignore
        if self.action in ("list", "retrieve"):
            return [permissions.IsAuthenticated()]
        return [permissions.IsAuthenticated(), IsStudioStaff()]


class AvailabilityCheckView(APIView):
    """Which requested items are free for a window, with optional advice."""

    permission_classes = [permissions.IsAuthenticated]

    def post(self, request):  # type: ignore
        serializer = AvailabilityCheckSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        report = check_availability(
            data["date"],
            data["start_time"],
            data["end_time"],
            data["booking_kind"],
            data["item_ids"],
            exclude_booking_id=data.get("exclude_booking_id"),
        )
        return Response(AvailabilityReportSerializer(report).data, status=status.HTTP_200_OK)
