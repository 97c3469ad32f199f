"""Serializers for the studio booking domain."""

from __future__ import annotations

from django.utils import timezone  # type: ignore

from rest_framework import serializers  # type: ignore

from apps.inventory.models import EquipmentItem
from apps.inventory.services import IneligibleForEquipmentError

from .models import Booking, PublicCalendarToken
from .permissions import is_studio_staff
from .services import BookingConflictError, create_booking, update_booking


def conflict_error(exc: BookingConflictError) -> serializers.ValidationError:
    return serializers.ValidationError({"non_field_errors": [str(exc)], "conflicting": exc.conflicting})


class BookingSerializer(serializers.ModelSerializer):
    """Booking as shown in lists, cards and the calendar sidebar."""

    title = serializers.ReadOnlyField()
    booked_by_id = serializers.ReadOnlyField()
    client_name = serializers.SerializerMethodField()
    display_status = serializers.SerializerMethodField()
    is_upcoming = serializers.SerializerMethodField()
    is_past = serializers.SerializerMethodField()
    equipment = serializers.SerializerMethodField()

    class Meta:
        model = Booking
        fields = [
            "id",
            "date",
            "start_time",
            "end_time",
            "booking_kind",
            "status",
            "display_status",
            "is_upcoming",
            "is_past",
            "is_blocked",
            "title",
            "event_name",
            "client",
            "client_name",
            "notes",
            "equipment_notes",
            "equipment",
            "booked_by_id",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields

    def _resolution(self, obj: Booking):
        # One "now" per response so a list never straddles midnight.
        now = self.context.setdefault("now", timezone.now())
        return obj.resolve_status(now)

    def get_client_name(self, obj: Booking) -> str | None:
        return obj.client.name if obj.client_id else None

    def get_display_status(self, obj: Booking) -> str:
        return self._resolution(obj).display_status.value

    def get_is_upcoming(self, obj: Booking) -> bool:
        return self._resolution(obj).is_upcoming

    def get_is_past(self, obj: Booking) -> bool:
        return self._resolution(obj).is_past

    def get_equipment(self, obj: Booking) -> list[dict]:
        return [
            {"id": reservation.equipment_id, "name": reservation.equipment.name}
            for reservation in obj.reservations.all()
        ]


class BookingWriteSerializer(serializers.ModelSerializer):
    """Create or edit a booking; conflicts are rejected before anything is written."""

    equipment_ids = serializers.ListField(
        child=serializers.IntegerField(min_value=1),
        required=False,
        write_only=True,
    )
    recipient_email = serializers.EmailField(required=False, allow_blank=True, write_only=True)
    recipient_name = serializers.CharField(required=False, allow_blank=True, write_only=True, max_length=255)

    class Meta:
        model = Booking
        fields = [
            "date",
            "start_time",
            "end_time",
            "booking_kind",
            "status",
            "is_blocked",
            "client",
            "event_name",
            "notes",
            "equipment_notes",
            "equipment_ids",
            "recipient_email",
            "recipient_name",
        ]
        extra_kwargs = {
            "status": {"required": False},
            "notes": {"required": False, "allow_blank": True},
            "equipment_notes": {"required": False, "allow_blank": True},
            "event_name": {"required": False, "allow_blank": True},
        }

    def validate_equipment_ids(self, value):  # type: ignore
        known = set(EquipmentItem.objects.filter(pk__in=value).values_list("id", flat=True))
        missing = [item_id for item_id in value if item_id not in known]
        if missing:
            raise serializers.ValidationError(f"Unknown equipment: {missing}")
        return value

    def validate(self, attrs):  # type: ignore
        start_time = attrs.get("start_time", getattr(self.instance, "start_time", None))
        end_time = attrs.get("end_time", getattr(self.instance, "end_time", None))
        if start_time is not None and end_time is not None and end_time <= start_time:
            raise serializers.ValidationError(
                "End time must be after start time on the same day. Bookings cannot cross midnight."
            )

        request = self.context.get("request")
        user = getattr(request, "user", None)
        if self.instance is None:
            if not is_studio_staff(user) and (
                attrs.get("status") not in (None, Booking.Status.PENDING) or attrs.get("is_blocked")
            ):
                raise serializers.ValidationError({"status": ["Only studio staff can confirm or block bookings."]})
        else:
            self._validate_status_change(attrs, user)

        if attrs.get("equipment_ids") and (attrs.get("is_blocked") or attrs.get("status") == Booking.Status.BLOCKED):
            raise serializers.ValidationError({"equipment_ids": ["Blocked slots cannot reserve equipment."]})
        return attrs

    def _validate_status_change(self, attrs, user) -> None:
        """Edits may only confirm, block or release a hold; clients may do none of these."""
        current_status = self.instance.status
        new_status = attrs.get("status", current_status)
        status_changed = new_status != current_status
        hold_changed = "is_blocked" in attrs and attrs["is_blocked"] != self.instance.is_blocked
        if not status_changed and not hold_changed:
            return

        if not is_studio_staff(user):
            raise serializers.ValidationError({"status": ["Only studio staff can change a booking's status."]})
        if current_status == Booking.Status.CONFIRMED and new_status == Booking.Status.PENDING:
            raise serializers.ValidationError({"status": ["Confirmed bookings cannot be moved back to pending."]})

    def create(self, validated_data):  # type: ignore
        request = self.context["request"]
        data = dict(validated_data)
        equipment_ids = data.pop("equipment_ids", [])
        recipient_email = data.pop("recipient_email", "")
        recipient_name = data.pop("recipient_name", "")
        try:
            return create_booking(
                data,
                equipment_ids=equipment_ids,
                booked_by=request.user if request.user.is_authenticated else None,
                recipient_email=recipient_email,
                recipient_name=recipient_name,
            )
        except BookingConflictError as exc:
            raise conflict_error(exc)
        except IneligibleForEquipmentError as exc:
            raise serializers.ValidationError({"equipment_ids": [str(exc)]})

    def update(self, instance, validated_data):  # type: ignore
        data = dict(validated_data)
        equipment_ids = data.pop("equipment_ids", None)
        data.pop("recipient_email", None)
        data.pop("recipient_name", None)
        try:
            return update_booking(instance, data, equipment_ids=equipment_ids)
        except BookingConflictError as exc:
            raise conflict_error(exc)
        except IneligibleForEquipmentError as exc:
            raise serializers.ValidationError({"equipment_ids": [str(exc)]})


class ConflictCheckSerializer(serializers.Serializer):
    date = serializers.DateField()
    start_time = serializers.TimeField()
    end_time = serializers.TimeField()
    exclude_id = serializers.IntegerField(required=False, allow_null=True)

    def validate(self, attrs):  # type: ignore
        if attrs["end_time"] <= attrs["start_time"]:
            raise serializers.ValidationError("End time must be after start time on the same day.")
        return attrs


class EquipmentSelectionSerializer(serializers.Serializer):
    item_ids = serializers.ListField(child=serializers.IntegerField(min_value=1), allow_empty=True)


class PublicCalendarTokenSerializer(serializers.ModelSerializer):
    class Meta:
        model = PublicCalendarToken
        fields = ["id", "token", "label", "expires_at", "created_at"]
        read_only_fields = ["id", "token", "created_at"]
