"""Serializers for signature requests."""

from rest_framework import serializers  # type: ignore

from apps.studio.models import Booking

from .models import SignatureRequest


class SignatureRequestSerializer(serializers.ModelSerializer):
    booking_title = serializers.SerializerMethodField()
    booking_date = serializers.SerializerMethodField()
    client_name = serializers.SerializerMethodField()

    class Meta:
        model = SignatureRequest
        fields = [
            "id",
            "booking",
            "booking_title",
            "booking_date",
            "client",
            "client_name",
            "document_type",
            "envelope_id",
            "status",
            "recipient_email",
            "recipient_name",
            "signed_at",
            "superseded_by",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields

    def get_booking_title(self, obj):
        return obj.booking.title if obj.booking_id else None

    def get_booking_date(self, obj):
        return obj.booking.date.isoformat() if obj.booking_id else None

    def get_client_name(self, obj):
        return obj.client.name if obj.client_id else None


class SignatureRequestCreateSerializer(serializers.Serializer):
    booking = serializers.PrimaryKeyRelatedField(queryset=Booking.objects.all())
    recipient_email = serializers.EmailField()
    recipient_name = serializers.CharField(required=False, allow_blank=True, max_length=255, default="")
    document_type = serializers.CharField(required=False, max_length=64, default="studio_rules")

    def validate_booking(self, value):
        if value.occupies_as_block:
            raise serializers.ValidationError("Blocked slots do not need a signature.")
        return value
