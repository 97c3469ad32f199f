"""Admin registration for studio bookings."""

from __future__ import annotations

from django.contrib import admin

from .models import Booking, OperationsTask, PublicCalendarToken


class OperationsTaskInline(admin.TabularInline):
    model = OperationsTask
    extra = 0
    readonly_fields = ("task_type", "created_at")


@admin.register(Booking)
class BookingAdmin(admin.ModelAdmin):
    list_display = (
        "id",
        "date",
        "start_time",
        "end_time",
        "booking_kind",
        "event_name",
        "client",
        "status",
        "is_blocked",
        "created_at",
    )
    list_filter = ("status", "booking_kind", "is_blocked", "date")
    search_fields = ("event_name", "client__name", "notes")
    readonly_fields = ("created_at", "updated_at")
    inlines = [OperationsTaskInline]


@admin.register(OperationsTask)
class OperationsTaskAdmin(admin.ModelAdmin):
    list_display = ("title", "booking", "task_type", "status", "assigned_to", "due_date")
    list_filter = ("task_type", "status")


@admin.register(PublicCalendarToken)
class PublicCalendarTokenAdmin(admin.ModelAdmin):
    list_display = ("label", "token", "expires_at", "created_by", "created_at")
    readonly_fields = ("token", "created_at")
