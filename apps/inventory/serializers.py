"""Serializers for the inventory domain."""

from __future__ import annotations

from rest_framework import serializers  # type: ignore

from apps.studio.models import Booking

from .models import EquipmentItem, Reservation


class EquipmentItemSerializer(serializers.ModelSerializer):
    class Meta:
        model = EquipmentItem
        fields = ["id", "name", "category", "status", "notes", "tags", "created_at", "updated_at"]
        read_only_fields = ["id", "created_at", "updated_at"]


class ReservationSerializer(serializers.ModelSerializer):
    equipment_name = serializers.ReadOnlyField(source="equipment.name")

    class Meta:
        model = Reservation
        fields = ["id", "booking", "equipment", "equipment_name", "date", "start_time", "end_time"]
        read_only_fields = fields


class AvailabilityCheckSerializer(serializers.Serializer):
    date = serializers.DateField()
    start_time = serializers.TimeField()
    end_time = serializers.TimeField()
    booking_kind = serializers.ChoiceField(choices=Booking.Kind.choices, default=Booking.Kind.PHOTO_SHOOT)
    item_ids = serializers.ListField(child=serializers.IntegerField(min_value=1), allow_empty=True)
    exclude_booking_id = serializers.IntegerField(required=False, allow_null=True)

    def validate(self, attrs):  # type: ignore
        if attrs["end_time"] <= attrs["start_time"]:
            raise serializers.ValidationError("End time must be after start time on the same day.")
        return attrs


class AvailabilityReportSerializer(serializers.Serializer):
    unavailable = serializers.ListField(child=serializers.IntegerField())
    unavailable_names = serializers.ListField(child=serializers.CharField())
    suggestion = serializers.CharField(required=False)
    alternatives = serializers.ListField(child=serializers.IntegerField(), required=False)

    def to_representation(self, instance):  # type: ignore
        data = {
            "unavailable": instance.unavailable,
            "unavailable_names": instance.unavailable_names,
        }
        if instance.suggestion:
            data["suggestion"] = instance.suggestion
        if instance.alternatives is not None:
            data["alternatives"] = instance.alternatives
        return data
