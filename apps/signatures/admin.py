from django.contrib import admin

from .models import SignatureRequest


@admin.register(SignatureRequest)
class SignatureRequestAdmin(admin.ModelAdmin):
    list_display = ("envelope_id", "booking", "recipient_email", "status", "signed_at", "created_at")
    list_filter = ("status", "document_type")
    search_fields = ("envelope_id", "recipient_email", "recipient_name")
    readonly_fields = ("envelope_id", "signed_at", "superseded_by", "created_at", "updated_at")
