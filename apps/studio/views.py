"""API views for the studio booking domain."""

from __future__ import annotations

from django.shortcuts import get_object_or_404  # type: ignore
from django.utils import timezone  # type: ignore
from rest_framework import permissions, status, viewsets  # type: ignore
from rest_framework.decorators import action  # type: ignore
from rest_framework.response import Response  # type: ignore
from rest_framework.views import APIView  # type: ignore

from apps.inventory.models import EquipmentItem
from apps.inventory.serializers import AvailabilityReportSerializer, ReservationSerializer
from apps.inventory.services import (
    EquipmentUnavailableError,
    IneligibleForEquipmentError,
    check_availability,
    release_equipment,
    reserve_equipment,
)
from shared.domain.value_objects import MonthRange

from .models import Booking, PublicCalendarToken
from .permissions import IsBookingStakeholder, IsStudioStaff, is_studio_staff
from .serializers import (
    BookingSerializer,
    BookingWriteSerializer,
    ConflictCheckSerializer,
    EquipmentSelectionSerializer,
    PublicCalendarTokenSerializer,
)
from .services import block_booking, busy_windows, confirm_booking, detect_conflicts


def equipment_conflict_response(exc: EquipmentUnavailableError) -> Response:
    return Response(
        {"detail": str(exc), "unavailable": exc.unavailable, "unavailable_names": exc.names},
        status=status.HTTP_409_CONFLICT,
    )


class BookingViewSet(viewsets.ModelViewSet):
    """Viewset for creating and managing studio bookings."""

    queryset = Booking.objects.select_related("client", "booked_by").prefetch_related("reservations__equipment")
    permission_classes = [permissions.IsAuthenticated, IsBookingStakeholder]
    filterset_fields = ["date", "status", "booking_kind", "is_blocked", "client"]

    def get_permissions(self):  # type: ignore
        if self.action in ("destroy", "confirm", "block"):
            return [permissions.IsAuthenticated(), IsStudioStaff()]
        return super().get_permissions()

    def get_serializer_class(self):  # type: ignore
        if self.action in ("create", "update", "partial_update"):
            return BookingWriteSerializer
        return BookingSerializer

    def get_queryset(self):  # type: ignore
        user = self.request.user
        qs = super().get_queryset()
        if not is_studio_staff(user):
            qs = qs.filter(booked_by=user)

        month = self.request.query_params.get("month")
        if month:
            try:
                month_range = MonthRange.parse(month)
            except ValueError:
                return qs.none()
            qs = qs.filter(date__gte=month_range.start, date__lte=month_range.end)
        return qs

    def _read_response(self, booking: Booking, status_code=status.HTTP_200_OK) -> Response:
        booking = Booking.objects.select_related("client").prefetch_related("reservations__equipment").get(pk=booking.pk)
        read_serializer = BookingSerializer(booking, context=self.get_serializer_context())
        return Response(read_serializer.data, status=status_code)

    def create(self, request, *args, **kwargs):  # type: ignore
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            booking = serializer.save()
        except EquipmentUnavailableError as exc:
            return equipment_conflict_response(exc)
        return self._read_response(booking, status.HTTP_201_CREATED)

    def update(self, request, *args, **kwargs):  # type: ignore
        partial = kwargs.pop("partial", False)
        instance = self.get_object()
        serializer = self.get_serializer(instance, data=request.data, partial=partial)
        serializer.is_valid(raise_exception=True)
        try:
            booking = serializer.save()
        except EquipmentUnavailableError as exc:
            return equipment_conflict_response(exc)
        return self._read_response(booking)

    @action(detail=False, methods=["post"], url_path="check-conflicts")
    def check_conflicts(self, request):  # type: ignore
        serializer = ConflictCheckSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        report = detect_conflicts(
            data["date"],
            data["start_time"],
            data["end_time"],
            exclude_booking_id=data.get("exclude_id"),
        )
        return Response({"has_conflict": report.has_conflict, "conflicting_titles": report.conflicting})

    @action(detail=True, methods=["post"])
    def confirm(self, request, pk=None):  # type: ignore
        booking: Booking = self.get_object()  # type: ignore
        if booking.occupies_as_block:
            return Response(
                {"detail": "Blocked slots cannot be confirmed."},
                status=status.HTTP_400_BAD_REQUEST,
            )
        changed = confirm_booking(booking.pk, source="manual")
        booking.refresh_from_db()
        return Response({"status": booking.status, "changed": changed})

    @action(detail=True, methods=["post"])
    def block(self, request, pk=None):  # type: ignore
        booking: Booking = self.get_object()  # type: ignore
        block_booking(booking)
        return self._read_response(booking)

    @action(detail=True, methods=["post"])
    def availability(self, request, pk=None):  # type: ignore
        booking: Booking = self.get_object()  # type: ignore
        serializer = EquipmentSelectionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        report = check_availability(
            booking.date,
            booking.start_time,
            booking.end_time,
            booking.booking_kind,
            serializer.validated_data["item_ids"],
            exclude_booking_id=booking.pk,
        )
        return Response(AvailabilityReportSerializer(report).data)

    @action(detail=True, methods=["get", "post", "delete"])
    def reservations(self, request, pk=None):  # type: ignore
        booking: Booking = self.get_object()  # type: ignore
        if request.method == "GET":
            serializer = ReservationSerializer(booking.reservations.select_related("equipment"), many=True)
            return Response(serializer.data)

        selection = EquipmentSelectionSerializer(data=request.data)
        selection.is_valid(raise_exception=True)
        item_ids = selection.validated_data["item_ids"]

        if request.method == "DELETE":
            released = release_equipment(booking, item_ids or None)
            return Response({"released": released})

        try:
            reserve_equipment(booking, item_ids)
        except IneligibleForEquipmentError as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)
        except EquipmentUnavailableError as exc:
            return equipment_conflict_response(exc)
        except EquipmentItem.DoesNotExist as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)
        serializer = ReservationSerializer(booking.reservations.select_related("equipment"), many=True)
        return Response(serializer.data, status=status.HTTP_201_CREATED)


class PublicCalendarTokenViewSet(viewsets.ModelViewSet):
    """Staff-managed share links for the busy/free calendar."""

    queryset = PublicCalendarToken.objects.all().order_by("-created_at")
    serializer_class = PublicCalendarTokenSerializer
    permission_classes = [permissions.IsAuthenticated, IsStudioStaff]
    http_method_names = ["get", "post", "delete", "head", "options"]

    def perform_create(self, serializer):  # type: ignore
        serializer.save(created_by=self.request.user)


class PublicCalendarView(APIView):
    """Busy windows for a month, for anyone holding a valid share token."""

    permission_classes = [permissions.AllowAny]
    authentication_classes: list = []

    def get(self, request, token):  # type: ignore
        share = get_object_or_404(PublicCalendarToken, token=token)
        if share.is_expired:
            return Response({"detail": "This calendar link has expired."}, status=status.HTTP_404_NOT_FOUND)

        month_param = request.query_params.get("month")
        try:
            month = MonthRange.parse(month_param) if month_param else MonthRange.containing(timezone.localdate())
        except ValueError as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)

        return Response(
            {
                "month": f"{month.start:%Y-%m}",
                "busy": busy_windows(month),
            }
        )
